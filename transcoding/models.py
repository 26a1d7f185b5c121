import uuid
from dataclasses import dataclass
from typing import Optional

from django.db import models
from django.db.models import F
from django.db.models.functions import Least
from django.utils import timezone


class JobType(models.TextChoices):
    POST = "post"
    REEL = "reel"
    STORY = "story"
    MEDIA = "media"
    COURSE = "course"


@dataclass(frozen=True)
class CourseLinkage:
    """References into the course content system, carried only by course jobs."""
    video_id: str
    course_id: Optional[str] = None
    created_by: Optional[str] = None

    def to_json(self) -> dict:
        return {"video_id": self.video_id, "course_id": self.course_id, "created_by": self.created_by}

    @classmethod
    def from_json(cls, data: dict) -> "CourseLinkage":
        return cls(
            video_id=str(data["video_id"]),
            course_id=data.get("course_id"),
            created_by=data.get("created_by"),
        )


@dataclass(frozen=True)
class TranscodingRequest:
    input_path: str
    job_type: str
    submitted_by: str
    original_filename: str = ""
    linkage: Optional[CourseLinkage] = None

    def __post_init__(self):
        if self.job_type not in JobType.values:
            raise ValueError(f"Unsupported job type: {self.job_type!r}")
        if self.job_type == JobType.COURSE and self.linkage is None:
            raise ValueError("course jobs require a CourseLinkage")
        if self.job_type != JobType.COURSE and self.linkage is not None:
            raise ValueError(f"{self.job_type} jobs do not carry linkage")
        if not self.input_path:
            raise ValueError("input_path is required")
        if not self.submitted_by:
            raise ValueError("submitted_by is required")


class TranscodingJobQuerySet(models.QuerySet):
    """Status transitions are conditional updates so only one writer wins each edge."""

    def claim(self, job_id) -> bool:
        """QUEUED -> PROCESSING."""
        now = timezone.now()
        updated = self.filter(pk=job_id, status=TranscodingJob.Status.QUEUED).update(
            status=TranscodingJob.Status.PROCESSING,
            progress=10,
            started_at=now,
            updated_at=now,
        )
        return updated == 1

    def bump_progress(self, job_id, step: int = 5, ceiling: int = 90) -> bool:
        """Heartbeat while PROCESSING: progress moves up by `step`, never past `ceiling`."""
        updated = self.filter(pk=job_id, status=TranscodingJob.Status.PROCESSING, progress__lt=ceiling).update(
            progress=Least(F("progress") + step, ceiling, output_field=models.PositiveSmallIntegerField()),
            updated_at=timezone.now(),
        )
        return updated == 1

    def complete(self, job_id, *, output_url, output_key, width, height, duration_seconds, file_size_bytes) -> bool:
        """PROCESSING -> COMPLETED."""
        now = timezone.now()
        updated = self.filter(pk=job_id, status=TranscodingJob.Status.PROCESSING).update(
            status=TranscodingJob.Status.COMPLETED,
            progress=100,
            output_url=output_url,
            output_key=output_key,
            width=width,
            height=height,
            duration_seconds=duration_seconds,
            file_size_bytes=file_size_bytes,
            completed_at=now,
            updated_at=now,
        )
        return updated == 1

    def fail(self, job_id, error: str) -> bool:
        """QUEUED|PROCESSING -> FAILED."""
        now = timezone.now()
        updated = self.filter(pk=job_id, status__in=TranscodingJob.ACTIVE_STATUSES).update(
            status=TranscodingJob.Status.FAILED,
            error=(error or "Unknown error")[:4000],
            failed_at=now,
            updated_at=now,
        )
        return updated == 1

    def status_counts(self) -> dict:
        counts = {status: 0 for status in TranscodingJob.Status.values}
        for row in self.values("status").annotate(count=models.Count("id")).order_by():
            counts[row["status"]] = row["count"]
        return counts


class TranscodingJob(models.Model):
    class Status(models.TextChoices):
        QUEUED = "QUEUED"
        PROCESSING = "PROCESSING"
        COMPLETED = "COMPLETED"
        FAILED = "FAILED"

    ACTIVE_STATUSES = (Status.QUEUED, Status.PROCESSING)
    TERMINAL_STATUSES = (Status.COMPLETED, Status.FAILED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    input_path = models.CharField(max_length=1024)     # path on the encoding host
    job_type = models.CharField(max_length=16, choices=JobType.choices)
    submitted_by = models.CharField(max_length=64)
    original_filename = models.CharField(max_length=255, blank=True, default="")
    linkage = models.JSONField(null=True, blank=True)   # CourseLinkage for course jobs
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.QUEUED)
    progress = models.PositiveSmallIntegerField(default=0)  # 0..100
    error = models.TextField(blank=True, default="")

    output_url = models.CharField(max_length=1024, blank=True, default="")
    output_key = models.CharField(max_length=512, blank=True, default="")
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    duration_seconds = models.FloatField(null=True, blank=True)
    file_size_bytes = models.BigIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    objects = TranscodingJobQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["submitted_by", "-created_at"], name="transcoding_owner_idx"),
            models.Index(fields=["status"], name="transcoding_status_idx"),
        ]

    def __str__(self):
        return f"{self.job_type}:{self.id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def course_linkage(self) -> Optional[CourseLinkage]:
        if self.job_type != JobType.COURSE or not self.linkage:
            return None
        return CourseLinkage.from_json(self.linkage)

    @classmethod
    def from_request(cls, request: TranscodingRequest) -> "TranscodingJob":
        return cls(
            input_path=request.input_path,
            job_type=request.job_type,
            submitted_by=request.submitted_by,
            original_filename=request.original_filename,
            linkage=request.linkage.to_json() if request.linkage else None,
        )
