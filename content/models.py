import uuid
from django.db import models


class MediaRecord(models.Model):
    """
    An uploaded asset. Content items embed it by public_id only; its current
    playable url and transcoding state live here.
    """
    class ResourceType(models.TextChoices):
        IMAGE = "image"
        VIDEO = "video"

    user_id = models.CharField(max_length=64)
    url = models.CharField(max_length=1024)
    public_id = models.CharField(max_length=512, unique=True)    # storage key
    resource_type = models.CharField(max_length=8, choices=ResourceType.choices)
    format = models.CharField(max_length=32, blank=True, default="")
    file_size = models.BigIntegerField(null=True, blank=True)
    original_filename = models.CharField(max_length=255, blank=True, default="")

    is_transcoding = models.BooleanField(default=False)
    transcoding_completed = models.BooleanField(default=False)
    transcoding_job_id = models.UUIDField(null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.public_id


class CourseVideo(models.Model):
    class Status(models.TextChoices):
        UPLOADING = "UPLOADING"
        READY = "READY"
        FAILED = "FAILED"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    course_id = models.CharField(max_length=64, db_index=True)
    title = models.CharField(max_length=255)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.UPLOADING)
    video_url = models.CharField(max_length=1024, blank=True, default="")
    s3_key = models.CharField(max_length=512, blank=True, default="")
    duration = models.FloatField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.title} ({self.status})"
