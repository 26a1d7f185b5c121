"""Errors raised by the transcoding pipeline."""


class TranscodingError(Exception):
    """Base class for pipeline errors."""


class MetadataError(TranscodingError):
    """The input could not be probed. Never retried."""


class EncodeError(TranscodingError):
    """The encoder failed to produce an output file."""


class EncodeTimeoutError(EncodeError):
    """The encoder ran past the per-job timeout and was killed."""


class QueueFullError(TranscodingError):
    """The dispatcher queue is at capacity; nothing was recorded."""


class NotFoundError(TranscodingError):
    pass


class ForbiddenError(TranscodingError):
    pass
