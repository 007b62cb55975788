"""Caption timeline construction from ordered ayah audio clips.

Each ayah's cue starts where the previous one ended, so cue boundaries are
a running sum of the probed durations. Order matters: probing happens one
clip at a time in ayah order and the timeline is built from that sequence.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ayah_shorts.utils.media_info import probe_duration_async

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioSegment:
    """One ayah recitation clip with its probed duration."""

    index: int
    path: str
    duration_s: float


@dataclass(frozen=True)
class SegmentText:
    """Caption text for one ayah: verse text plus optional translation."""

    primary: str = ""
    secondary: Optional[str] = None


@dataclass(frozen=True)
class CaptionCue:
    """One timed caption entry."""

    index: int
    start_s: float
    end_s: float
    primary: str = ""
    secondary: Optional[str] = None

    @property
    def duration_s(self) -> float:
        return self.end_s - self.start_s


@dataclass(frozen=True)
class CaptionTimeline:
    """Ordered cues plus the total duration they cover."""

    cues: tuple[CaptionCue, ...] = field(default_factory=tuple)
    total_seconds: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.cues

    @property
    def total_ms(self) -> int:
        return int(round(self.total_seconds * 1000))


async def probe_segments(paths: Sequence[str], fallback: float | None = None) -> list[AudioSegment]:
    """Probe each audio clip in order and return AudioSegments in that order.

    Probes run one after another; a failed probe resolves to the fallback
    duration instead of raising.
    """
    segments: list[AudioSegment] = []
    for index, path in enumerate(paths):
        duration = await probe_duration_async(path, fallback)
        segments.append(AudioSegment(index=index, path=path, duration_s=duration))
    # Re-sequence by index so any future concurrent probing keeps ayah order
    segments.sort(key=lambda s: s.index)
    logger.info(f"[TIMELINE] Probed {len(segments)} segments: {[round(s.duration_s, 3) for s in segments]}")
    return segments


def build_timeline(
    segments: Sequence[AudioSegment],
    texts: Optional[Sequence[SegmentText]] = None,
) -> CaptionTimeline:
    """
    Build a cue timeline from ordered segments.

    cue[i].start = sum(duration[0..i-1]), cue[i].end = cue[i].start + duration[i].

    Args:
        segments: Audio segments in ayah order
        texts: Caption text per segment (same order); missing entries get
            empty text

    Returns:
        CaptionTimeline; zero segments gives an empty timeline with total 0
    """
    texts = texts or []
    cues: list[CaptionCue] = []
    cursor = 0.0

    for i, segment in enumerate(segments):
        duration = max(0.0, segment.duration_s)
        text = texts[i] if i < len(texts) else SegmentText()
        cues.append(
            CaptionCue(
                index=i + 1,
                start_s=cursor,
                end_s=cursor + duration,
                primary=text.primary,
                secondary=text.secondary,
            )
        )
        cursor += duration

    return CaptionTimeline(cues=tuple(cues), total_seconds=cursor)
