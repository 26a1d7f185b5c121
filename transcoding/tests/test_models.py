"""
Tests for transcoding/models.py
"""
from django.test import SimpleTestCase, TestCase

from transcoding.models import CourseLinkage, JobType, TranscodingJob, TranscodingRequest

from .helpers import make_job


COMPLETION = {
    "output_url": "https://cdn.example.test/transcoded/post/x.mp4",
    "output_key": "transcoded/post/x.mp4",
    "width": 1280,
    "height": 720,
    "duration_seconds": 9.5,
    "file_size_bytes": 4096,
}


class TranscodingRequestTest(SimpleTestCase):
    def test_plain_post_job(self):
        req = TranscodingRequest(input_path="/tmp/a.mp4", job_type="post", submitted_by="u1")
        self.assertIsNone(req.linkage)

    def test_unknown_job_type(self):
        with self.assertRaises(ValueError):
            TranscodingRequest(input_path="/tmp/a.mp4", job_type="podcast", submitted_by="u1")

    def test_course_job_requires_linkage(self):
        with self.assertRaises(ValueError):
            TranscodingRequest(input_path="/tmp/a.mp4", job_type=JobType.COURSE, submitted_by="u1")

    def test_only_course_jobs_carry_linkage(self):
        with self.assertRaises(ValueError):
            TranscodingRequest(
                input_path="/tmp/a.mp4",
                job_type=JobType.REEL,
                submitted_by="u1",
                linkage=CourseLinkage(video_id="v1"),
            )

    def test_input_path_and_submitter_required(self):
        with self.assertRaises(ValueError):
            TranscodingRequest(input_path="", job_type="post", submitted_by="u1")
        with self.assertRaises(ValueError):
            TranscodingRequest(input_path="/tmp/a.mp4", job_type="post", submitted_by="")


class TranscodingJobTest(TestCase):
    def test_from_request_starts_queued(self):
        req = TranscodingRequest(
            input_path="/tmp/a.mp4",
            job_type=JobType.COURSE,
            submitted_by="u1",
            original_filename="lecture.mov",
            linkage=CourseLinkage(video_id="v1", course_id="c1", created_by="u1"),
        )
        job = TranscodingJob.from_request(req)
        job.save()
        job.refresh_from_db()
        self.assertEqual(job.status, TranscodingJob.Status.QUEUED)
        self.assertEqual(job.progress, 0)
        self.assertEqual(job.course_linkage, CourseLinkage(video_id="v1", course_id="c1", created_by="u1"))

    def test_course_linkage_absent_for_media_jobs(self):
        self.assertIsNone(make_job().course_linkage)

    def test_claim_once(self):
        job = make_job()
        self.assertTrue(TranscodingJob.objects.claim(job.id))
        self.assertFalse(TranscodingJob.objects.claim(job.id))
        job.refresh_from_db()
        self.assertEqual(job.status, TranscodingJob.Status.PROCESSING)
        self.assertEqual(job.progress, 10)
        self.assertIsNotNone(job.started_at)

    def test_complete_requires_processing(self):
        job = make_job()
        self.assertFalse(TranscodingJob.objects.complete(job.id, **COMPLETION))
        TranscodingJob.objects.claim(job.id)
        self.assertTrue(TranscodingJob.objects.complete(job.id, **COMPLETION))

        job.refresh_from_db()
        self.assertEqual(job.status, TranscodingJob.Status.COMPLETED)
        self.assertEqual(job.progress, 100)
        self.assertEqual(job.output_url, COMPLETION["output_url"])
        self.assertEqual((job.width, job.height), (1280, 720))
        self.assertIsNotNone(job.completed_at)
        self.assertTrue(job.is_terminal)

    def test_terminal_jobs_do_not_change(self):
        job = make_job()
        TranscodingJob.objects.claim(job.id)
        TranscodingJob.objects.complete(job.id, **COMPLETION)

        self.assertFalse(TranscodingJob.objects.fail(job.id, "late failure"))
        self.assertFalse(TranscodingJob.objects.claim(job.id))
        job.refresh_from_db()
        self.assertEqual(job.status, TranscodingJob.Status.COMPLETED)
        self.assertEqual(job.error, "")

    def test_fail_from_queued_and_processing(self):
        queued = make_job()
        processing = make_job()
        TranscodingJob.objects.claim(processing.id)

        self.assertTrue(TranscodingJob.objects.fail(queued.id, "boom"))
        self.assertTrue(TranscodingJob.objects.fail(processing.id, ""))

        queued.refresh_from_db()
        processing.refresh_from_db()
        self.assertEqual(queued.error, "boom")
        self.assertEqual(processing.error, "Unknown error")
        self.assertIsNotNone(processing.failed_at)
        self.assertFalse(TranscodingJob.objects.complete(processing.id, **COMPLETION))

    def test_fail_truncates_long_errors(self):
        job = make_job()
        TranscodingJob.objects.fail(job.id, "x" * 10000)
        job.refresh_from_db()
        self.assertEqual(len(job.error), 4000)

    def test_progress_heartbeat_steps_by_five_up_to_ninety(self):
        job = make_job()
        self.assertFalse(TranscodingJob.objects.bump_progress(job.id))   # still QUEUED

        TranscodingJob.objects.claim(job.id)
        seen = []
        while TranscodingJob.objects.bump_progress(job.id):
            seen.append(TranscodingJob.objects.get(pk=job.id).progress)
        self.assertEqual(seen, list(range(15, 95, 5)))

        TranscodingJob.objects.complete(job.id, **COMPLETION)
        self.assertFalse(TranscodingJob.objects.bump_progress(job.id))
        job.refresh_from_db()
        self.assertEqual(job.progress, 100)

    def test_status_counts_include_every_status(self):
        make_job()
        make_job()
        TranscodingJob.objects.fail(make_job().id, "bad")

        counts = TranscodingJob.objects.status_counts()
        self.assertEqual(counts, {"QUEUED": 2, "PROCESSING": 0, "COMPLETED": 0, "FAILED": 1})
