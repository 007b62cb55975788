"""Media file information utilities using FFprobe."""

import asyncio
import json
import logging
import math
import subprocess
from typing import Any

from ayah_shorts.config import get_settings
from ayah_shorts.exceptions import ProbeFailureError

logger = logging.getLogger(__name__)


def _get_settings():
    """Get settings lazily to avoid import issues in tests."""
    return get_settings()


def _run_ffprobe(file_path: str, *args) -> dict:
    """Run ffprobe and return parsed JSON.

    Raises:
        ProbeFailureError: ffprobe missing, timed out, failed, or printed
            something that is not JSON.
    """
    settings = _get_settings()
    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        *args,
        file_path,
    ]

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=settings.probe_timeout_s,
        )
    except FileNotFoundError as e:
        raise ProbeFailureError(file_path, f"ffprobe not found ({settings.ffprobe_path})") from e
    except subprocess.TimeoutExpired as e:
        raise ProbeFailureError(file_path, f"ffprobe timed out after {settings.probe_timeout_s}s") from e

    if result.returncode != 0:
        raise ProbeFailureError(file_path, f"ffprobe exit {result.returncode}: {result.stderr.strip()}")

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ProbeFailureError(file_path, f"unparseable ffprobe output: {e}") from e


def parse_duration_value(raw: Any) -> float | None:
    """Coerce an ffprobe duration into positive seconds.

    ffprobe reports ``format.duration`` as a string ("4.200000"); some builds
    hand back a number. Anything non-numeric, non-finite or non-positive
    yields None.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def probe_duration(file_path: str, fallback: float | None = None) -> float:
    """
    Get an audio clip's duration in seconds, never failing.

    A single unreadable ayah must not abort an otherwise valid render, so any
    probe failure resolves to ``fallback`` (default: settings
    ``probe_fallback_seconds``, 5.0s).

    Args:
        file_path: Path to audio file
        fallback: Duration returned when probing fails

    Returns:
        Duration in seconds
    """
    if fallback is None:
        fallback = _get_settings().probe_fallback_seconds

    try:
        data = _run_ffprobe(file_path, "-show_format")
    except ProbeFailureError as e:
        logger.warning(f"[PROBE] {e}; using fallback {fallback}s")
        return fallback

    seconds = parse_duration_value(data.get("format", {}).get("duration"))
    if seconds is None:
        logger.warning(f"[PROBE] No usable duration for {file_path}; using fallback {fallback}s")
        return fallback
    return seconds


async def probe_duration_async(file_path: str, fallback: float | None = None) -> float:
    """Async wrapper around probe_duration (runs ffprobe in a worker thread)."""
    return await asyncio.to_thread(probe_duration, file_path, fallback)


def get_video_dimensions(file_path: str) -> tuple[int, int]:
    """
    Get video width and height.

    Args:
        file_path: Path to video file

    Returns:
        Tuple of (width, height)

    Raises:
        ProbeFailureError: If ffprobe fails or video stream not found
    """
    data = _run_ffprobe(file_path, "-show_streams", "-select_streams", "v")

    streams = data.get("streams", [])
    if not streams:
        raise ProbeFailureError(file_path, "no video stream")

    stream = streams[0]
    width = stream.get("width")
    height = stream.get("height")

    if not width or not height:
        raise ProbeFailureError(file_path, "video dimensions not found")

    return int(width), int(height)
