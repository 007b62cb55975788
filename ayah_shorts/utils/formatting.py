"""Time and file naming helpers for rendered shorts.

Usage:
    from ayah_shorts.utils.formatting import build_output_filename, format_duration

    path = build_output_filename("/out", surah_number=1, ayah_start=1, ayah_end=7, reciter_id="alafasy")
    # /out/2026-10-17T03-01-00-S1-A1-7-alafasy.mp4

    format_duration(125)   # "2:05"
    format_duration(3725)  # "1:02:05"
"""

import re
from datetime import datetime, timezone
from pathlib import Path


def filename_timestamp(now: datetime | None = None) -> str:
    """UTC ISO timestamp to the second, safe for file names (':' and '.' -> '-')."""
    now = now or datetime.now(timezone.utc)
    return re.sub(r"[:.]", "-", now.isoformat())[:19]


def build_output_filename(
    output_dir: str | Path,
    surah_number: int,
    ayah_start: int,
    ayah_end: int,
    reciter_id: str,
    ext: str = "mp4",
    now: datetime | None = None,
) -> str:
    """Build ``{output_dir}/{timestamp}-S{surah}-A{start}-{end}-{reciter}.{ext}``."""
    filename = f"{filename_timestamp(now)}-S{surah_number}-A{ayah_start}-{ayah_end}-{reciter_id}.{ext}"
    return str(Path(output_dir) / filename)


def format_duration(seconds: float) -> str:
    """Format seconds as ``m:ss``, or ``h:mm:ss`` from one hour up."""
    seconds = max(0, int(seconds))
    hrs, rem = divmod(seconds, 3600)
    mins, secs = divmod(rem, 60)
    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"
