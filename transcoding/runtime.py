"""
Builds the transcoding parts from Django settings.

Web processes submit through ``get_dispatcher()`` and store originals through
``get_blob_store()``; Celery workers run jobs with ``get_runner()`` and apply
their outcome with ``build_completion_handler()``.
"""
from functools import lru_cache

from django.conf import settings
from django.utils.module_loading import import_string

from .dispatcher import JobRunner, TranscodingDispatcher
from .encoder import VideoEncoder
from .reconciler import CompletionHandler, CompletionReconciler
from .storage import build_blob_store


def build_encoder() -> VideoEncoder:
    return VideoEncoder(
        output_dir=settings.TRANSCODING_WORK_DIR,
        ffmpeg_bin=settings.FFMPEG_BIN,
        ffprobe_bin=settings.FFPROBE_BIN,
        timeout=settings.TRANSCODING_JOB_TIMEOUT_SECONDS,
    )


def build_dispatcher(**kwargs) -> TranscodingDispatcher:
    kwargs.setdefault("capacity", settings.TRANSCODING_QUEUE_CAPACITY)
    kwargs.setdefault("workers", settings.TRANSCODING_WORKERS)
    return TranscodingDispatcher(**kwargs)


def build_runner(*, encoder=None, blob_store=None) -> JobRunner:
    return JobRunner(
        encoder=encoder or build_encoder(),
        blob_store=blob_store or build_blob_store(),
        progress_interval=settings.TRANSCODING_PROGRESS_INTERVAL_SECONDS,
    )


def load_notifiers() -> list:
    """Callables named by dotted path in TRANSCODING_NOTIFIERS; each gets every job event."""
    return [import_string(path) for path in settings.TRANSCODING_NOTIFIERS]


def build_completion_handler(notifiers=None) -> CompletionHandler:
    if notifiers is None:
        notifiers = load_notifiers()
    return CompletionHandler(CompletionReconciler(), notifiers=notifiers)


@lru_cache(maxsize=None)
def get_dispatcher() -> TranscodingDispatcher:
    return build_dispatcher()


@lru_cache(maxsize=None)
def get_blob_store():
    return build_blob_store()


@lru_cache(maxsize=None)
def get_runner() -> JobRunner:
    return build_runner(blob_store=get_blob_store())
