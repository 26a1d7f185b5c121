"""Fakes shared by the transcoding tests."""
import threading
import time
from pathlib import Path
from uuid import uuid4

from social_backend.celery import celery_app
from transcoding.encoder import EncodeResult
from transcoding.errors import EncodeError, MetadataError
from transcoding.models import JobType, TranscodingJob


class FakeEncoder:
    """
    Stands in for VideoEncoder. Inputs named *corrupt* fail probing, *broken*
    fail encoding; anything else produces a small output file.
    """

    def __init__(self, output_dir, width=1280, height=720, duration=12.5, gate=None, on_encode=None):
        self.output_dir = Path(output_dir)
        self.width = width
        self.height = height
        self.duration = duration
        self.gate = gate
        self.on_encode = on_encode
        self.calls = []
        self.outputs = []
        self._lock = threading.Lock()

    def encode(self, input_path):
        input_path = Path(input_path)
        with self._lock:
            self.calls.append(input_path.name)
        if self.on_encode is not None:
            self.on_encode(input_path)
        if self.gate is not None:
            self.gate.wait(10)
        if "corrupt" in input_path.name:
            raise MetadataError("Failed to get video metadata: Invalid data found when processing input")
        if "broken" in input_path.name:
            raise EncodeError("Video transcoding failed: encoder exited with status 1")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        out = self.output_dir / f"transcoded_{uuid4().hex}.mp4"
        out.write_bytes(b"\x00" * 64)
        with self._lock:
            self.outputs.append(out)
        return EncodeResult(
            output_path=out,
            width=self.width,
            height=self.height,
            duration_seconds=self.duration,
            file_size_bytes=64,
        )


class FakeBlobStore:
    def __init__(self, fail=False):
        self.fail = fail
        self.puts = []
        self._lock = threading.Lock()

    def put(self, local_path, key, content_type=None):
        if not Path(local_path).is_file():
            raise AssertionError(f"{local_path} does not exist at upload time")
        if self.fail:
            raise OSError("bucket unavailable")
        with self._lock:
            self.puts.append((key, content_type))
        return {"url": f"https://cdn.example.test/{key}", "key": key}


def make_input(directory, name="clip.mp4") -> Path:
    path = Path(directory) / name
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path


def wait_for(predicate, timeout=5.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def make_job(**kwargs):
    fields = {
        "input_path": "/tmp/uploads/clip.mp4",
        "job_type": JobType.POST,
        "submitted_by": "user-1",
        "original_filename": "clip.mp4",
    }
    fields.update(kwargs)
    return TranscodingJob.objects.create(**fields)


class EagerCeleryMixin:
    """Runs Celery tasks inline, on the thread that enqueues them."""

    def use_eager_celery(self):
        conf = celery_app.conf
        saved = (conf.task_always_eager, conf.task_eager_propagates)
        conf.task_always_eager = True
        conf.task_eager_propagates = True

        def restore():
            conf.task_always_eager, conf.task_eager_propagates = saved

        self.addCleanup(restore)


received_events = []


def record_event(event):
    """Notifier configured by dotted path in tests."""
    received_events.append(event)
