"""
Applies finished jobs to the content they belong to.

Every write is conditional on the row still being in its pre-completion state,
so handling the same event twice changes nothing the second time.
"""
import structlog

from content.models import CourseVideo, MediaRecord

from .events import JobCompleted, JobFailed
from .models import JobType, TranscodingJob

logger = structlog.get_logger(__name__)


class CompletionReconciler:
    def handle(self, event) -> int:
        """Apply one event; returns the number of content rows changed."""
        if isinstance(event, JobCompleted):
            return self.on_completed(event.job_id)
        if isinstance(event, JobFailed):
            return self.on_failed(event.job_id, event.error, stage=event.stage)
        raise TypeError(f"Unsupported event: {event!r}")

    def on_completed(self, job_id) -> int:
        job = TranscodingJob.objects.filter(pk=job_id).first()
        if job is None or job.status != TranscodingJob.Status.COMPLETED:
            logger.warning("transcoding.reconcile.not_completed", job_id=str(job_id))
            return 0
        if job.job_type == JobType.COURSE:
            return self._reconcile_course(job)
        if job.job_type in (JobType.POST, JobType.REEL, JobType.STORY, JobType.MEDIA):
            return self._reconcile_media(job)
        raise ValueError(f"Unknown job type: {job.job_type}")

    def on_failed(self, job_id, error: str, stage: str = "encode") -> int:
        # The job row already carries the error; this only fills it if missing.
        # Media rows stay as they are (is_transcoding=True): no retry, no fallback.
        TranscodingJob.objects.filter(pk=job_id, status=TranscodingJob.Status.FAILED, error="").update(
            error=error or "Unknown error"
        )
        logger.info("transcoding.reconcile.failed_job", job_id=str(job_id), error=error, stage=stage)
        if stage != "publish":
            return 0
        job = TranscodingJob.objects.filter(pk=job_id, status=TranscodingJob.Status.FAILED).first()
        if job is None or job.job_type != JobType.COURSE:
            return 0
        return self._fail_course(job)

    def _reconcile_media(self, job: TranscodingJob) -> int:
        updated = MediaRecord.objects.filter(
            transcoding_job_id=job.id,
            transcoding_completed=False,
        ).update(
            url=job.output_url,
            is_transcoding=False,
            transcoding_completed=True,
        )
        if updated:
            logger.info("transcoding.reconcile.media_ready", job_id=str(job.id), url=job.output_url)
        else:
            logger.info("transcoding.reconcile.media_skipped", job_id=str(job.id))
        return updated

    def _reconcile_course(self, job: TranscodingJob) -> int:
        linkage = job.course_linkage
        if linkage is None:
            logger.error("transcoding.reconcile.missing_linkage", job_id=str(job.id))
            return 0
        updated = CourseVideo.objects.filter(
            pk=linkage.video_id,
            status=CourseVideo.Status.UPLOADING,
        ).update(
            status=CourseVideo.Status.READY,
            video_url=job.output_url,
            s3_key=job.output_key,
            duration=job.duration_seconds,
        )
        if updated:
            logger.info("transcoding.reconcile.course_video_ready", job_id=str(job.id), video_id=linkage.video_id)
        else:
            logger.info("transcoding.reconcile.course_video_skipped", job_id=str(job.id), video_id=linkage.video_id)
        return updated

    def _fail_course(self, job: TranscodingJob) -> int:
        """The encode worked but its output never reached the course video."""
        linkage = job.course_linkage
        if linkage is None:
            logger.error("transcoding.reconcile.missing_linkage", job_id=str(job.id))
            return 0
        updated = CourseVideo.objects.filter(
            pk=linkage.video_id,
            status=CourseVideo.Status.UPLOADING,
        ).update(status=CourseVideo.Status.FAILED)
        if updated:
            logger.warning("transcoding.reconcile.course_video_failed", job_id=str(job.id), video_id=linkage.video_id)
        return updated


class CompletionHandler:
    """
    Reconcile first, then hand the event to each notifier (e.g. push
    notifications, owned elsewhere). One failing consumer never stops the next.
    """

    def __init__(self, reconciler: CompletionReconciler | None = None, notifiers=()):
        self.reconciler = reconciler or CompletionReconciler()
        self.notifiers = list(notifiers)

    def dispatch(self, event):
        try:
            self.reconciler.handle(event)
        except Exception:
            logger.exception("transcoding.reconcile.error", job_id=event.job_id, event_name=event.name)
        for notify in self.notifiers:
            try:
                notify(event)
            except Exception:
                logger.exception("transcoding.notify.error", job_id=event.job_id, event_name=event.name)
