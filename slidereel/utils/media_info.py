"""Media file information utilities using FFprobe."""

import json
import subprocess
from dataclasses import dataclass
from typing import Optional

from slidereel.config import get_settings


def _get_settings():
    """Get settings lazily to avoid import issues in tests."""
    return get_settings()


@dataclass
class MediaInfo:
    """Video file information."""

    duration_ms: int | None = None
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    video_codec: str | None = None
    pix_fmt: str | None = None
    frame_count: int | None = None


def _run_ffprobe(file_path: str, *args) -> dict:
    """Run ffprobe and return parsed JSON."""
    settings = _get_settings()
    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        *args,
        file_path,
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise RuntimeError(f"ffprobe could not be started: {e}")
    if result.returncode != 0:
        raise RuntimeError(f"ffprobe failed: {result.stderr}")

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Failed to parse ffprobe output: {e}")


def _parse_rate(rate: Optional[str]) -> Optional[float]:
    if not rate or "/" not in rate:
        return None
    num, den = rate.split("/")
    if int(den) == 0:
        return None
    return int(num) / int(den)


def get_media_duration(file_path: str) -> int:
    """
    Get media file duration in milliseconds.

    Args:
        file_path: Path to media file

    Returns:
        Duration in milliseconds

    Raises:
        RuntimeError: If ffprobe fails or duration not found
    """
    data = _run_ffprobe(file_path, "-show_format")
    format_info = data.get("format", {})

    if "duration" not in format_info:
        raise RuntimeError(f"Duration not found in: {file_path}")

    return int(float(format_info["duration"]) * 1000)


def get_video_info(file_path: str) -> MediaInfo:
    """
    Get duration, geometry and codec parameters of the first video stream.

    Raises:
        RuntimeError: If ffprobe fails or no video stream is present
    """
    data = _run_ffprobe(file_path, "-show_format", "-show_streams", "-select_streams", "v")

    streams = data.get("streams", [])
    if not streams:
        raise RuntimeError(f"No video stream found in: {file_path}")
    stream = streams[0]

    info = MediaInfo(
        width=stream.get("width"),
        height=stream.get("height"),
        fps=_parse_rate(stream.get("r_frame_rate")),
        video_codec=stream.get("codec_name"),
        pix_fmt=stream.get("pix_fmt"),
    )
    if stream.get("nb_frames"):
        info.frame_count = int(stream["nb_frames"])

    format_info = data.get("format", {})
    if "duration" in format_info:
        info.duration_ms = int(float(format_info["duration"]) * 1000)

    return info
