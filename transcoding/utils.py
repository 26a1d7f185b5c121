import os, mimetypes
from pathlib import Path
from uuid import uuid4

import structlog
from django.conf import settings

logger = structlog.get_logger(__name__)


def save_uploaded_file(djangofile) -> Path:
    """Save to MEDIA_ROOT/uploads/<uuid>_<name> and return the absolute path."""
    uploads_dir = Path(settings.MEDIA_ROOT) / "uploads"
    uploads_dir.mkdir(parents=True, exist_ok=True)
    safe_name = f"{uuid4().hex}_{os.path.basename(djangofile.name)}"
    dest = uploads_dir / safe_name
    with open(dest, "wb") as f:
        for chunk in djangofile.chunks():
            f.write(chunk)
    return dest


def guess_kind(path: str, mimetype: str | None = None) -> str:
    """Return 'image' | 'video' | 'other' based on mimetype/extension."""
    mime = mimetype or mimetypes.guess_type(path)[0]
    if not mime:
        return "other"
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    return "other"


def remove_quietly(path) -> bool:
    """Delete a file; failures are logged, never raised. Returns True if a file was removed."""
    if not path:
        return False
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("transcoding.cleanup_failed", path=str(path), error=str(e))
        return False
