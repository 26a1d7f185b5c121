"""
Tests for the transcoding REST endpoints
"""
import shutil
import tempfile
import uuid
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from content.models import CourseVideo
from transcoding.models import JobType, TranscodingJob

from .helpers import make_job


class ApiTestCase(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="alice", password="pw-alice-123")
        self.other = get_user_model().objects.create_user(username="bob", password="pw-bob-123")
        self.client = APIClient()

    def login(self, user=None):
        self.client.force_authenticate(user=user or self.user)


class JobDetailViewTest(ApiTestCase):
    def test_owner_sees_job(self):
        job = make_job(submitted_by=str(self.user.pk))
        self.login()
        resp = self.client.get(f"/api/transcoding/jobs/{job.id}/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["id"], str(job.id))
        self.assertEqual(resp.data["status"], "QUEUED")

    def test_anonymous_lookup_is_allowed(self):
        job = make_job(submitted_by=str(self.user.pk))
        resp = self.client.get(f"/api/transcoding/jobs/{job.id}/")
        self.assertEqual(resp.status_code, 200)

    def test_other_user_is_forbidden(self):
        job = make_job(submitted_by=str(self.user.pk))
        self.login(self.other)
        resp = self.client.get(f"/api/transcoding/jobs/{job.id}/")
        self.assertEqual(resp.status_code, 403)

    def test_unknown_job(self):
        self.login()
        self.assertEqual(self.client.get(f"/api/transcoding/jobs/{uuid.uuid4()}/").status_code, 404)
        self.assertEqual(self.client.get("/api/transcoding/jobs/garbage/").status_code, 404)


class JobListViewTest(ApiTestCase):
    def test_lists_own_jobs_with_pagination(self):
        for _ in range(3):
            make_job(submitted_by=str(self.user.pk))
        make_job(submitted_by=str(self.other.pk))
        self.login()

        resp = self.client.get("/api/transcoding/jobs/", {"limit": 2})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data["jobs"]), 2)
        self.assertEqual(resp.data["pagination"], {"page": 1, "limit": 2, "total": 3, "total_pages": 2})

    def test_status_filter_is_validated(self):
        self.login()
        self.assertEqual(self.client.get("/api/transcoding/jobs/", {"status": "DONE"}).status_code, 400)

    def test_requires_login(self):
        self.assertIn(self.client.get("/api/transcoding/jobs/").status_code, (401, 403))


class QueueStatsViewTest(ApiTestCase):
    def test_stats(self):
        make_job()
        dispatcher = mock.Mock()
        dispatcher.stats.return_value = {"queued": 0, "processing": 1, "completed": 4, "failed": 0}
        self.login()

        with mock.patch("transcoding.views.get_dispatcher", return_value=dispatcher):
            resp = self.client.get("/api/transcoding/stats/")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["queue"]["completed"], 4)
        self.assertEqual(resp.data["job_counts"]["QUEUED"], 1)


class CourseVideoUploadViewTest(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        override = override_settings(MEDIA_ROOT=self.media_root)
        override.enable()
        self.addCleanup(override.disable)

        self.job_id = str(uuid.uuid4())
        self.dispatcher = mock.Mock()
        self.dispatcher.submit.return_value = self.job_id
        for name, value in (("get_dispatcher", self.dispatcher), ("get_blob_store", mock.Mock())):
            patcher = mock.patch(f"transcoding.views.{name}", return_value=value)
            patcher.start()
            self.addCleanup(patcher.stop)

    def upload(self, name="lecture.mp4", content_type="video/mp4", **data):
        payload = {"course_id": "course-7", "title": "  Week 1  "}
        payload.update(data)
        payload["file"] = SimpleUploadedFile(name, b"\x00\x00\x00\x18ftypmp42", content_type=content_type)
        return self.client.post("/api/transcoding/uploads/course-video/", payload, format="multipart")

    def test_upload_creates_video_and_queues_job(self):
        self.login()
        resp = self.upload()

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["job_id"], self.job_id)
        self.assertEqual(resp.data["status"], "UPLOADING")
        self.assertEqual(resp.data["title"], "Week 1")

        video = CourseVideo.objects.get(pk=resp.data["video_id"])
        self.assertEqual(video.course_id, "course-7")
        [request] = self.dispatcher.submit.call_args.args
        self.assertEqual(request.job_type, JobType.COURSE)
        self.assertEqual(request.submitted_by, str(self.user.pk))
        self.assertEqual(request.linkage.video_id, str(video.id))
        self.assertTrue(request.input_path.startswith(self.media_root))

    def test_non_video_is_rejected(self):
        self.login()
        resp = self.upload(name="notes.pdf", content_type="application/pdf")
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(CourseVideo.objects.exists())
        self.dispatcher.submit.assert_not_called()

    def test_blank_title_is_rejected(self):
        self.login()
        self.assertEqual(self.upload(title="   ").status_code, 400)

    def test_requires_login(self):
        self.assertIn(self.upload().status_code, (401, 403))
        self.assertEqual(TranscodingJob.objects.count(), 0)
