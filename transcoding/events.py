"""
Outcomes of a transcoding job, handed to the reconciler and notifiers.

``to_message`` gives the JSON-safe dict a Celery task returns as its result.
"""
from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class JobCompleted:
    job_id: str
    result: dict = field(default_factory=dict)   # output_url, output_key, width, height, ...

    name = "job.completed"

    def to_message(self) -> dict:
        return {"name": self.name, "job_id": self.job_id, "result": dict(self.result)}


@dataclass(frozen=True)
class JobFailed:
    job_id: str
    error: str
    stage: str = "encode"   # "publish" once the encode itself succeeded

    name = "job.failed"

    def to_message(self) -> dict:
        return {"name": self.name, "job_id": self.job_id, "error": self.error, "stage": self.stage}


JobEvent = Union[JobCompleted, JobFailed]

