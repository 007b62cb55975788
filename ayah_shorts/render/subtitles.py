"""SRT caption track encoding.

Writes the cue timeline as an SRT file and builds the ``subtitles`` filter
expression that burns it into the video.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Sequence

from ayah_shorts.render.style import SubtitleStyle
from ayah_shorts.render.timeline import CaptionCue

logger = logging.getLogger(__name__)

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def format_srt_timestamp(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS,mmm`` (rounded to the millisecond)."""
    total_ms = max(0, int(round(seconds * 1000)))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def sanitize_caption_text(text: Optional[str]) -> str:
    """Collapse internal line breaks to spaces and trim."""
    if not text:
        return ""
    return _LINE_BREAKS.sub(" ", text).strip()


def encode_srt(cues: Sequence[CaptionCue], style: Optional[SubtitleStyle] = None) -> str:
    """
    Serialize cues as SRT text.

    Block layout::

        {index}
        HH:MM:SS,mmm --> HH:MM:SS,mmm
        {primary}
        [secondary]
        <blank>

    The secondary line is written only when the style enables it and the cue
    has translation text. It is wrapped in ``<font size>`` so the smaller
    translation size survives ffmpeg's SRT -> ASS conversion.
    """
    show_secondary = bool(style and style.show_secondary)
    lines: list[str] = []

    for cue in cues:
        lines.append(str(cue.index))
        lines.append(f"{format_srt_timestamp(cue.start_s)} --> {format_srt_timestamp(cue.end_s)}")
        lines.append(sanitize_caption_text(cue.primary))

        secondary = sanitize_caption_text(cue.secondary)
        if show_secondary and secondary:
            lines.append(f'<font size="{style.secondary_font_size}">{secondary}</font>')

        lines.append("")

    return "\n".join(lines) + ("\n" if lines else "")


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


async def write_caption_track(
    path: str | Path,
    cues: Sequence[CaptionCue],
    style: Optional[SubtitleStyle] = None,
) -> str:
    """Encode cues and write them as a UTF-8 SRT file. Returns the path."""
    path = Path(path)
    text = encode_srt(cues, style)
    await asyncio.to_thread(_write_text, path, text)
    logger.info(f"[SUBTITLES] Wrote {len(cues)} cues to {path}")
    return str(path)


def escape_filter_path(path: str | Path) -> str:
    """Escape a file path for use inside a filtergraph option value.

    The result is meant to sit inside single quotes. Backslashes become
    forward slashes and ``:`` (the filter option separator) is
    backslash-escaped. Quotes take no escapes, so ``'`` closes the quote and
    is emitted as ``\\\\\\'`` (the option parser, one level down, still
    needs to see ``\\'``) before the quote is reopened.
    """
    normalized = str(path).replace("\\", "/")
    return normalized.replace(":", r"\:").replace("'", r"'\\\''")


def build_subtitles_filter(track_path: str | Path, style: SubtitleStyle) -> str:
    """Build the ``subtitles=...:force_style=...`` filter expression."""
    return f"subtitles='{escape_filter_path(track_path)}':force_style='{style.to_force_style()}'"
