from rest_framework import serializers
from .models import TranscodingJob
from .services import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


class TranscodingJobSerializer(serializers.ModelSerializer):
    class Meta:
        model = TranscodingJob
        fields = [
            "id",
            "submitted_by",
            "job_type",
            "status",
            "progress",
            "error",
            "original_filename",
            "input_path",
            "output_url",
            "width",
            "height",
            "duration_seconds",
            "file_size_bytes",
            "created_at",
            "updated_at",
            "started_at",
            "completed_at",
            "failed_at",
        ]


class JobListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TranscodingJob.Status.choices, required=False)
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=MAX_PAGE_SIZE, required=False, default=DEFAULT_PAGE_SIZE)


class CourseVideoUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    course_id = serializers.CharField(max_length=64)
    title = serializers.CharField(max_length=255)

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("title is required")
        return value.strip()
