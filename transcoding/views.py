from rest_framework import status, views
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from content.uploads import UploadedFile, create_course_video

from .errors import ForbiddenError, NotFoundError
from .runtime import get_blob_store, get_dispatcher
from .serializers import CourseVideoUploadSerializer, JobListQuerySerializer, TranscodingJobSerializer
from .services import get_job_status, list_jobs, queue_stats
from .utils import guess_kind, save_uploaded_file


def _requester_id(request):
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return str(user.pk)
    return None


class CourseVideoUploadView(views.APIView):
    """
    Accepts a course video upload, stores it under MEDIA_ROOT, creates the
    course video in UPLOADING and queues its transcoding job.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = CourseVideoUploadSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        uploaded = ser.validated_data["file"]
        mimetype = getattr(uploaded, "content_type", "") or ""
        if guess_kind(uploaded.name, mimetype or None) != "video":
            return Response({"detail": "File must be a video"}, status=status.HTTP_400_BAD_REQUEST)

        path = save_uploaded_file(uploaded)
        data = create_course_video(
            get_dispatcher(),
            get_blob_store(),
            created_by=_requester_id(request),
            upload=UploadedFile(path=path, original_filename=uploaded.name, mimetype=mimetype, size=uploaded.size),
            course_id=ser.validated_data["course_id"],
            title=ser.validated_data["title"],
        )
        return Response(data, status=status.HTTP_201_CREATED)


class JobDetailView(views.APIView):
    permission_classes = [AllowAny]

    def get(self, request, job_id):
        try:
            job = get_job_status(job_id, requester_id=_requester_id(request))
        except NotFoundError as e:
            return Response({"detail": str(e)}, status=status.HTTP_404_NOT_FOUND)
        except ForbiddenError as e:
            return Response({"detail": str(e)}, status=status.HTTP_403_FORBIDDEN)
        return Response(TranscodingJobSerializer(job).data)


class JobListView(views.APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        query = JobListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        result = list_jobs(
            _requester_id(request),
            status=query.validated_data.get("status"),
            page=query.validated_data["page"],
            limit=query.validated_data["limit"],
        )
        return Response({
            "jobs": TranscodingJobSerializer(result["jobs"], many=True).data,
            "pagination": result["pagination"],
        })


class QueueStatsView(views.APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(queue_stats(get_dispatcher()))
