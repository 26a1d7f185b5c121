"""
Job submission and the per-job work a Celery worker runs.

``TranscodingDispatcher.submit`` writes the QUEUED row and, once that row is
committed, enqueues ``transcoding.tasks.transcode_job`` on the ``transcoding``
queue. Pool size is the worker's ``--concurrency``; with a prefetch multiplier
of 1 jobs start in submission order, but may finish out of order.

``JobRunner`` is what the task executes. Every status change goes through the
conditional updates on ``TranscodingJob.objects``, so a job is only ever
claimed once.
"""
import threading
import time

import structlog
from django.db import DatabaseError, connection, transaction

from .errors import QueueFullError
from .events import JobCompleted, JobFailed
from .models import TranscodingJob, TranscodingRequest
from .utils import remove_quietly

logger = structlog.get_logger(__name__)

TRANSCODING_QUEUE = "transcoding"


def output_key_for(job: TranscodingJob) -> str:
    """Object key the normalized video is published under."""
    linkage = job.course_linkage
    if linkage is not None:
        return f"videos/{linkage.course_id or 'course'}/{linkage.video_id}-{int(time.time() * 1000)}.mp4"
    return f"transcoded/{job.job_type}/{job.id}.mp4"


def send_to_worker(job_id: str):
    from .tasks import transcode_job

    transcode_job.apply_async(args=[job_id], queue=TRANSCODING_QUEUE)


class TranscodingDispatcher:
    """
    Capacity counts QUEUED rows. The check and the insert are serialized within
    this process; across web processes the bound is best effort.
    """

    def __init__(self, *, capacity: int = 100, workers: int | None = None, enqueue=send_to_worker):
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self.capacity = capacity
        self.workers = workers
        self.enqueue = enqueue
        self._lock = threading.Lock()

    def submit(self, request: TranscodingRequest) -> str:
        """Record a QUEUED job; it is enqueued when the surrounding transaction commits."""
        with self._lock:
            if self.capacity:
                waiting = TranscodingJob.objects.filter(status=TranscodingJob.Status.QUEUED).count()
                if waiting >= self.capacity:
                    raise QueueFullError(f"Transcoding queue is full ({self.capacity} jobs waiting)")
            job = TranscodingJob.from_request(request)
            job.save(force_insert=True)

        transaction.on_commit(lambda: self._send(job))
        logger.info(
            "transcoding.job.queued",
            job_id=str(job.id),
            job_type=job.job_type,
            original_filename=job.original_filename,
        )
        return str(job.id)

    def _send(self, job: TranscodingJob):
        try:
            self.enqueue(str(job.id))
        except Exception as e:
            logger.exception("transcoding.job.enqueue_failed", job_id=str(job.id))
            if TranscodingJob.objects.fail(job.id, f"Could not enqueue job: {e}"):
                remove_quietly(job.input_path)

    def stats(self) -> dict:
        counts = TranscodingJob.objects.status_counts()
        return {
            "queued": counts[TranscodingJob.Status.QUEUED],
            "processing": counts[TranscodingJob.Status.PROCESSING],
            "completed": counts[TranscodingJob.Status.COMPLETED],
            "failed": counts[TranscodingJob.Status.FAILED],
            "workers": self.workers,
            "capacity": self.capacity,
        }


class JobRunner:
    """Claim, encode, publish and finish one job. Errors are recorded on the job, not raised."""

    def __init__(self, *, encoder, blob_store, progress_interval: float | None = 5):
        self.encoder = encoder
        self.blob_store = blob_store
        self.progress_interval = progress_interval

    def run(self, job_id):
        job = TranscodingJob.objects.filter(pk=job_id).first()
        if job is None:
            logger.warning("transcoding.job.missing", job_id=str(job_id))
            return None
        if not TranscodingJob.objects.claim(job_id):
            logger.warning("transcoding.job.not_claimable", job_id=str(job_id), status=job.status)
            # a job failed elsewhere (e.g. by the stale sweep) no longer needs its input
            if TranscodingJob.objects.filter(pk=job_id, status__in=TranscodingJob.TERMINAL_STATUSES).exists():
                remove_quietly(job.input_path)
            return None

        log = logger.bind(job_id=str(job_id), job_type=job.job_type)
        log.info("transcoding.job.processing", original_filename=job.original_filename)
        stop = threading.Event()
        heartbeat = self._start_heartbeat(job_id, stop)
        output_path = None
        payload, error, stage = None, None, "encode"
        try:
            result = self.encoder.encode(job.input_path)
            output_path = result.output_path
            stage = "publish"
            published = self.blob_store.put(output_path, output_key_for(job), content_type="video/mp4")
            payload = {
                "output_url": published["url"],
                "output_key": published["key"],
                "width": result.width,
                "height": result.height,
                "duration_seconds": result.duration_seconds,
                "file_size_bytes": result.file_size_bytes,
            }
        except Exception as e:
            log.error("transcoding.job.failed", error=str(e), error_type=type(e).__name__, stage=stage)
            error = str(e) or type(e).__name__
        finally:
            stop.set()
            if heartbeat is not None:
                heartbeat.join()
            # files go before the terminal status is written;
            # every job type hands ownership of its input file to the pipeline
            remove_quietly(output_path)
            remove_quietly(job.input_path)

        if error is not None:
            return self._failed(job_id, error, stage)
        try:
            completed = TranscodingJob.objects.complete(job_id, **payload)
        except DatabaseError as e:
            log.exception("transcoding.job.complete_error")
            return self._failed(job_id, f"Could not record completion: {e}", "publish")
        if not completed:
            log.warning("transcoding.job.complete_rejected")
            return None
        log.info("transcoding.job.completed", output_url=payload["output_url"])
        return JobCompleted(job_id=str(job_id), result=payload)

    def _failed(self, job_id, error: str, stage: str):
        if TranscodingJob.objects.fail(job_id, error):
            return JobFailed(job_id=str(job_id), error=error, stage=stage)
        return None

    def _start_heartbeat(self, job_id, stop: threading.Event):
        if not self.progress_interval:
            return None
        t = threading.Thread(
            target=self._heartbeat,
            args=(job_id, stop),
            name=f"transcoding-progress-{job_id}",
            daemon=True,
        )
        t.start()
        return t

    def _heartbeat(self, job_id, stop: threading.Event):
        try:
            while not stop.wait(self.progress_interval):
                TranscodingJob.objects.bump_progress(job_id)
        except DatabaseError as e:
            logger.warning("transcoding.job.progress_error", job_id=str(job_id), error=str(e))
        finally:
            connection.close()
