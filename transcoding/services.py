"""Submission and read-only status views over the job store."""
import math
import uuid

from .models import CourseLinkage, TranscodingJob, TranscodingRequest
from .errors import ForbiddenError, NotFoundError

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def submit_job(dispatcher, *, input_path, job_type, submitted_by, original_filename="",
               linkage: CourseLinkage | None = None) -> str:
    """Queue a job and return its id. May raise QueueFullError; never waits on encoding."""
    request = TranscodingRequest(
        input_path=str(input_path),
        job_type=job_type,
        submitted_by=str(submitted_by),
        original_filename=original_filename or "",
        linkage=linkage,
    )
    return dispatcher.submit(request)


def get_job_status(job_id, requester_id=None) -> TranscodingJob:
    try:
        pk = uuid.UUID(str(job_id))
    except ValueError:
        raise NotFoundError("Job not found")
    job = TranscodingJob.objects.filter(pk=pk).first()
    if job is None:
        raise NotFoundError("Job not found")
    if requester_id is not None and job.submitted_by != str(requester_id):
        raise ForbiddenError("Not authorized to view this job")
    return job


def list_jobs(submitted_by, status=None, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> dict:
    """Jobs submitted by one principal, newest first, with page metadata."""
    page = max(1, int(page))
    limit = min(MAX_PAGE_SIZE, max(1, int(limit)))

    qs = TranscodingJob.objects.filter(submitted_by=str(submitted_by))
    if status:
        qs = qs.filter(status=status)
    total = qs.count()
    offset = (page - 1) * limit
    jobs = list(qs.order_by("-created_at")[offset:offset + limit])
    return {
        "jobs": jobs,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }


def queue_stats(dispatcher) -> dict:
    """Dispatcher snapshot plus persisted per-status counts. Best effort, not atomic."""
    return {
        "queue": dispatcher.stats(),
        "job_counts": TranscodingJob.objects.status_counts(),
    }
