"""
Celery tasks for transcoding.

``transcode_job`` runs on the ``transcoding`` queue, one job per task; the
worker's ``--concurrency`` is the pool size and its warm shutdown lets running
jobs finish while queued ones stay on the broker. The beat-scheduled sweeps
on the ``maintenance`` queue repair what a lost worker or a failed completion
handler leaves behind, from the persisted job rows.
"""
import time
from datetime import timedelta
from pathlib import Path

import structlog
from celery import shared_task
from django.conf import settings
from django.utils import timezone

from content.models import CourseVideo, MediaRecord

from .models import JobType, TranscodingJob
from .reconciler import CompletionReconciler
from .runtime import build_completion_handler, get_runner
from .utils import remove_quietly

logger = structlog.get_logger(__name__)


@shared_task(acks_late=True)
def transcode_job(job_id: str):
    """Run one job, then apply its outcome to content and notify. Returns the event as a dict."""
    event = get_runner().run(job_id)
    if event is None:
        return None
    build_completion_handler().dispatch(event)
    return event.to_message()


def _unreconciled(job: TranscodingJob) -> bool:
    if job.job_type == JobType.COURSE:
        linkage = job.course_linkage
        return linkage is not None and CourseVideo.objects.filter(
            pk=linkage.video_id, status=CourseVideo.Status.UPLOADING
        ).exists()
    return MediaRecord.objects.filter(transcoding_job_id=job.id, transcoding_completed=False).exists()


@shared_task
def reconcile_completed_jobs(lookback_seconds: int | None = None) -> int:
    """Re-apply recently completed jobs whose content row was never flipped."""
    lookback = lookback_seconds or settings.TRANSCODING_RECONCILE_LOOKBACK_SECONDS
    since = timezone.now() - timedelta(seconds=lookback)
    reconciler = CompletionReconciler()
    applied = 0
    jobs = TranscodingJob.objects.filter(status=TranscodingJob.Status.COMPLETED, completed_at__gte=since)
    for job in jobs.iterator():
        if _unreconciled(job):
            applied += reconciler.on_completed(job.id)
    if applied:
        logger.info("transcoding.sweep.reconciled", count=applied)
    return applied


@shared_task
def fail_stale_jobs(stale_after_seconds: int | None = None) -> int:
    """Fail QUEUED/PROCESSING jobs older than the threshold; their worker is gone."""
    stale_after = stale_after_seconds or settings.TRANSCODING_STALE_AFTER_SECONDS
    cutoff = timezone.now() - timedelta(seconds=stale_after)
    failed = 0
    stale = TranscodingJob.objects.filter(status__in=TranscodingJob.ACTIVE_STATUSES, created_at__lt=cutoff)
    for job in stale.iterator():
        if TranscodingJob.objects.fail(job.id, "Job interrupted before completion"):
            remove_quietly(job.input_path)
            failed += 1
    if failed:
        logger.warning("transcoding.sweep.stale_failed", count=failed)
    return failed


@shared_task
def purge_work_dir(max_age_seconds: int | None = None) -> int:
    """Delete leftover encoder outputs older than the threshold."""
    max_age = max_age_seconds or settings.TRANSCODING_WORK_FILE_MAX_AGE_SECONDS
    work_dir = Path(settings.TRANSCODING_WORK_DIR)
    if not work_dir.is_dir():
        return 0
    cutoff = time.time() - max_age
    removed = 0
    for p in work_dir.iterdir():
        try:
            expired = p.is_file() and p.stat().st_mtime < cutoff
        except OSError:
            continue
        if expired and remove_quietly(p):
            removed += 1
    if removed:
        logger.info("transcoding.sweep.work_dir_purged", count=removed, path=str(work_dir))
    return removed
