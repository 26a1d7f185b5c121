from django.urls import path
from .views import CourseVideoUploadView, JobDetailView, JobListView, QueueStatsView

urlpatterns = [
    path("uploads/course-video/", CourseVideoUploadView.as_view(), name="course_video_upload"),
    path("jobs/", JobListView.as_view(), name="job_list"),
    path("jobs/<str:job_id>/", JobDetailView.as_view(), name="job_detail"),
    path("stats/", QueueStatsView.as_view(), name="queue_stats"),
]
