"""
ffmpeg/ffprobe adapter.

Every output is H.264 constrained baseline, level 3.1, yuv420p, 30 fps with a
fixed closed GOP of 30 frames and the moov atom at the front of the file, so
the result plays on old Android decoders and seeks predictably.
"""
import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

import structlog

from .errors import EncodeError, EncodeTimeoutError, MetadataError
from .utils import remove_quietly

logger = structlog.get_logger(__name__)

MAX_WIDTH = 1280
MAX_HEIGHT = 720


@dataclass(frozen=True)
class ProbeResult:
    width: int
    height: int
    duration_seconds: float


@dataclass(frozen=True)
class EncodeResult:
    output_path: Path
    width: int
    height: int
    duration_seconds: float
    file_size_bytes: int


def _even(value: float) -> int:
    return max(2, int(value / 2 + 0.5) * 2)


def target_resolution(width: int, height: int, max_width: int = MAX_WIDTH, max_height: int = MAX_HEIGHT) -> tuple[int, int]:
    """Fit (width, height) inside the bounds keeping aspect ratio; sizes within bounds pass through."""
    if width <= max_width and height <= max_height:
        return width, height
    scale = min(max_width / width, max_height / height)
    return _even(width * scale), _even(height * scale)


def build_ffmpeg_command(ffmpeg_bin: str, input_path: Path, output_path: Path, width: int, height: int) -> list[str]:
    return [
        ffmpeg_bin,
        "-y",
        "-i", str(input_path),
        "-vf", f"scale={width}:{height}",
        "-c:v", "libx264",
        "-profile:v", "baseline",
        "-level", "3.1",
        "-pix_fmt", "yuv420p",
        "-r", "30",
        "-preset", "fast",
        "-crf", "23",
        "-maxrate", "10M",
        "-bufsize", "20M",
        "-flags", "+cgop",
        "-x264-params", "keyint=30:min-keyint=30:scenecut=0",
        "-c:a", "aac",
        "-b:a", "128k",
        "-movflags", "+faststart",
        str(output_path),
    ]


def _stderr_tail(stderr, limit: int = 2000) -> str:
    if not stderr:
        return ""
    text = stderr.decode("utf-8", errors="ignore") if isinstance(stderr, bytes) else str(stderr)
    return text.strip()[-limit:]


class VideoEncoder:
    """Stateless wrapper around the ffmpeg binaries; safe to share between workers."""

    def __init__(self, *, output_dir: Path, ffmpeg_bin: str = "ffmpeg", ffprobe_bin: str = "ffprobe",
                 timeout: float | None = None, probe_timeout: float = 60):
        self.output_dir = Path(output_dir)
        self.ffmpeg_bin = ffmpeg_bin
        self.ffprobe_bin = ffprobe_bin
        self.timeout = timeout
        self.probe_timeout = probe_timeout

    def probe(self, input_path: Path) -> ProbeResult:
        cmd = [
            self.ffprobe_bin,
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(input_path),
        ]
        try:
            proc = subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=self.probe_timeout)
            metadata = json.loads(proc.stdout or "{}")
        except subprocess.CalledProcessError as e:
            raise MetadataError(f"Failed to get video metadata: {_stderr_tail(e.stderr) or e}") from e
        except subprocess.TimeoutExpired as e:
            raise MetadataError("Failed to get video metadata: ffprobe timed out") from e
        except (OSError, ValueError) as e:
            raise MetadataError(f"Failed to get video metadata: {e}") from e

        video = next((s for s in metadata.get("streams", []) if s.get("codec_type") == "video"), None)
        if video is None:
            raise MetadataError("Failed to get video metadata: no video stream")
        try:
            width, height = int(video["width"]), int(video["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise MetadataError("Failed to get video metadata: missing dimensions") from e
        if width <= 0 or height <= 0:
            raise MetadataError(f"Failed to get video metadata: invalid dimensions {width}x{height}")

        try:
            duration = float(metadata.get("format", {}).get("duration") or 0.0)
        except (TypeError, ValueError):
            duration = 0.0
        return ProbeResult(width=width, height=height, duration_seconds=duration)

    def encode(self, input_path) -> EncodeResult:
        """
        Normalize `input_path` into a new mp4 under `output_dir`.

        Raises MetadataError if the input cannot be probed and EncodeError
        (EncodeTimeoutError on timeout) if ffmpeg fails. No partial output is
        left behind on failure. The input is never touched.
        """
        input_path = Path(input_path)
        if not input_path.is_file():
            raise MetadataError(f"Input file not found: {input_path}")

        meta = self.probe(input_path)
        width, height = target_resolution(meta.width, meta.height)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"transcoded_{uuid4().hex}.mp4"
        cmd = build_ffmpeg_command(self.ffmpeg_bin, input_path, output_path, width, height)
        logger.info(
            "transcoding.encoder.start",
            input=str(input_path),
            source=f"{meta.width}x{meta.height}",
            target=f"{width}x{height}",
        )

        try:
            subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, timeout=self.timeout)
            if not output_path.is_file():
                raise EncodeError("Video transcoding failed: ffmpeg produced no output")
            size = output_path.stat().st_size
        except subprocess.TimeoutExpired as e:
            remove_quietly(output_path)
            raise EncodeTimeoutError(f"Video transcoding timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            remove_quietly(output_path)
            raise EncodeError(f"Video transcoding failed: {_stderr_tail(e.stderr) or e}") from e
        except OSError as e:
            remove_quietly(output_path)
            raise EncodeError(f"Video transcoding failed: {e}") from e
        except BaseException:
            remove_quietly(output_path)
            raise

        logger.info("transcoding.encoder.done", output=str(output_path), size=size)
        return EncodeResult(
            output_path=output_path,
            width=width,
            height=height,
            duration_seconds=meta.duration_seconds,
            file_size_bytes=size,
        )
