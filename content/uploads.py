"""
Upload flows that feed the transcoding pipeline.

A full transcoding queue never fails the upload: the content is still created
and the original video is served as-is. The local upload belongs to the job
when one is queued and is removed here otherwise.
"""
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

import structlog
from django.db import transaction

from transcoding.errors import QueueFullError
from transcoding.models import CourseLinkage, JobType
from transcoding.services import submit_job
from transcoding.utils import guess_kind, remove_quietly

from .models import CourseVideo, MediaRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    path: Path
    original_filename: str
    mimetype: str = ""
    size: int | None = None

    @property
    def kind(self) -> str:
        return guess_kind(self.original_filename, self.mimetype or None)


def _storage_key(upload: UploadedFile, folder: str) -> str:
    return f"{folder}/{uuid4().hex}_{Path(upload.original_filename).name}"


def _try_submit(dispatcher, **kwargs):
    try:
        return submit_job(dispatcher, **kwargs)
    except QueueFullError as e:
        logger.warning("content.upload.transcoding_skipped", reason=str(e), job_type=kwargs.get("job_type"))
        return None


def attach_uploaded_media(dispatcher, blob_store, user_id, upload: UploadedFile, job_type=JobType.POST) -> dict:
    """
    Store the original, create the MediaRecord and, for videos, queue a
    transcoding job against it. Returns the reference a post/reel/story embeds.

    The record exists before its job is enqueued, so a fast worker always finds
    it. Unless a job took over the local upload, it is removed before returning.
    """
    owned = False
    try:
        kind = upload.kind
        if kind not in (MediaRecord.ResourceType.IMAGE, MediaRecord.ResourceType.VIDEO):
            raise ValueError(f"Unsupported media type for {upload.original_filename!r}")
        stored = blob_store.put(upload.path, _storage_key(upload, "user_uploads"), content_type=upload.mimetype or None)
        fmt = (upload.mimetype or "").split("/")[-1] or Path(upload.original_filename).suffix.lstrip(".")

        job_id = None
        with transaction.atomic():
            record = MediaRecord.objects.create(
                user_id=str(user_id),
                url=stored["url"],
                public_id=stored["key"],
                resource_type=kind,
                format=fmt,
                file_size=upload.size,
                original_filename=upload.original_filename,
                is_transcoding=kind == MediaRecord.ResourceType.VIDEO,
            )
            if kind == MediaRecord.ResourceType.VIDEO:
                job_id = _try_submit(
                    dispatcher,
                    input_path=upload.path,
                    job_type=job_type,
                    submitted_by=user_id,
                    original_filename=upload.original_filename,
                )
                MediaRecord.objects.filter(pk=record.pk).update(
                    transcoding_job_id=job_id,
                    is_transcoding=job_id is not None,
                )
        owned = job_id is not None
    finally:
        if not owned:
            remove_quietly(upload.path)

    return {
        "url": stored["url"],
        "public_id": stored["key"],
        "type": kind,
        "format": fmt,
        "transcoding_job_id": job_id,
        "is_transcoding": job_id is not None,
    }


def create_course_video(dispatcher, blob_store, created_by, upload: UploadedFile, course_id, title) -> dict:
    """Create a course video in UPLOADING and queue its transcoding job."""
    owned = False
    try:
        if upload.kind != "video":
            raise ValueError("File must be a video")
        if not course_id:
            raise ValueError("course_id is required")
        if not title or not title.strip():
            raise ValueError("title is required")

        with transaction.atomic():
            video = CourseVideo.objects.create(course_id=str(course_id), title=title.strip())
            job_id = _try_submit(
                dispatcher,
                input_path=upload.path,
                job_type=JobType.COURSE,
                submitted_by=created_by,
                original_filename=upload.original_filename,
                linkage=CourseLinkage(video_id=str(video.id), course_id=str(course_id), created_by=str(created_by)),
            )
        owned = job_id is not None
        if job_id is None:
            key = _storage_key(upload, f"videos/{course_id}")
            stored = blob_store.put(upload.path, key, content_type=upload.mimetype or None)
            CourseVideo.objects.filter(pk=video.pk).update(
                status=CourseVideo.Status.READY,
                video_url=stored["url"],
                s3_key=stored["key"],
            )
            video.refresh_from_db()
    finally:
        if not owned:
            remove_quietly(upload.path)

    return {
        "video_id": str(video.id),
        "job_id": job_id,
        "course_id": video.course_id,
        "title": video.title,
        "status": video.status,
        "original_filename": upload.original_filename,
        "file_size": upload.size,
        "mimetype": upload.mimetype,
    }
