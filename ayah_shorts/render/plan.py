"""Declarative render plan and its FFmpeg command.

A RenderPlan captures everything the encode needs: the background clip, the
ayah audio clips in order, the video filter stages, codec presets and the
output path. build_ffmpeg_command() turns it into an argv list without
running anything.

Filter graph layout (N audio clips, inputs 1..N)::

    [0:v:0]scale=..,pad=..[,subtitles=..][vout];
    [1:a:0][2:a:0]..concat=n=N:v=0:a=1[aout]
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

from ayah_shorts.config import get_settings
from ayah_shorts.exceptions import InvalidRenderRequestError
from ayah_shorts.render.geometry import CanvasGeometry, CanvasSize, canvas_of, scale_pad_filter
from ayah_shorts.render.style import SubtitleStyle
from ayah_shorts.render.subtitles import build_subtitles_filter
from ayah_shorts.render.timeline import AudioSegment, CaptionTimeline

logger = logging.getLogger(__name__)

STAGE_SCALE_PAD = "scale_pad"
STAGE_SUBTITLES = "subtitles"


@dataclass(frozen=True)
class CodecParams:
    """Encoder presets for the final output."""

    video_codec: str = "libx264"
    crf: int = 28
    preset: str = "veryfast"
    pix_fmt: str = "yuv420p"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"

    @classmethod
    def from_settings(cls) -> "CodecParams":
        settings = get_settings()
        return cls(
            video_codec=settings.render_video_codec,
            crf=settings.render_crf,
            preset=settings.render_preset,
            pix_fmt=settings.render_pix_fmt,
            audio_codec=settings.render_audio_codec,
            audio_bitrate=settings.render_audio_bitrate,
        )


@dataclass(frozen=True)
class FilterStage:
    """One stage of the background video filter chain."""

    name: str
    expression: str


@dataclass
class RenderPlan:
    """Everything needed to run one encode."""

    video_path: str
    audio_paths: list[str]
    filter_stages: list[FilterStage]
    output_path: str
    expected_total_duration_ms: int
    codec: CodecParams = field(default_factory=CodecParams)
    caption_path: Optional[str] = None
    canvas: Optional[CanvasSize] = None

    @property
    def has_captions(self) -> bool:
        return any(stage.name == STAGE_SUBTITLES for stage in self.filter_stages)

    def video_filter(self) -> str:
        """Comma-joined video chain (without stream labels)."""
        return ",".join(stage.expression for stage in self.filter_stages)

    def audio_concat_filter(self) -> str:
        inputs = "".join(f"[{i + 1}:a:0]" for i in range(len(self.audio_paths)))
        return f"{inputs}concat=n={len(self.audio_paths)}:v=0:a=1[aout]"

    def filter_complex(self) -> str:
        return f"[0:v:0]{self.video_filter()}[vout];{self.audio_concat_filter()}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "video_path": self.video_path,
            "audio_paths": list(self.audio_paths),
            "filter_stages": [{"name": s.name, "expression": s.expression} for s in self.filter_stages],
            "caption_path": self.caption_path,
            "output_path": self.output_path,
            "expected_total_duration_ms": self.expected_total_duration_ms,
            "codec": {
                "video_codec": self.codec.video_codec,
                "crf": self.codec.crf,
                "preset": self.codec.preset,
                "pix_fmt": self.codec.pix_fmt,
                "audio_codec": self.codec.audio_codec,
                "audio_bitrate": self.codec.audio_bitrate,
            },
        }


def compose_render_plan(
    audio_segments: Sequence[AudioSegment],
    video_input: str,
    geometry: Union[CanvasGeometry, CanvasSize],
    output_path: str,
    style: Optional[SubtitleStyle] = None,
    timeline: Optional[CaptionTimeline] = None,
    caption_path: Optional[str] = None,
    codec: Optional[CodecParams] = None,
) -> RenderPlan:
    """
    Assemble a RenderPlan.

    The scale+pad stage always comes first. The subtitles stage is appended
    only when captions are enabled (a style and a caption file are given) and
    the timeline has at least one cue. Audio keeps the given ayah order.

    Args:
        audio_segments: Probed ayah clips in order
        video_input: Background video path
        geometry: Exact scale/pad geometry, or a bare canvas when the source
            size is unknown
        output_path: Destination file
        style: Caption style (None = captions disabled)
        timeline: Cue timeline; its total is the progress denominator
        caption_path: SRT file for burn-in
        codec: Encoder presets (default: from settings)

    Raises:
        InvalidRenderRequestError: No audio segments
    """
    if not audio_segments:
        raise InvalidRenderRequestError("At least one audio segment is required")

    stages = [FilterStage(STAGE_SCALE_PAD, scale_pad_filter(geometry))]

    captions_enabled = style is not None and caption_path is not None
    if captions_enabled and timeline is not None and not timeline.is_empty:
        stages.append(FilterStage(STAGE_SUBTITLES, build_subtitles_filter(caption_path, style)))
    elif captions_enabled:
        logger.info("[PLAN] Captions enabled but timeline is empty; skipping burn-in")

    if timeline is not None:
        total_seconds = timeline.total_seconds
    else:
        total_seconds = sum(s.duration_s for s in audio_segments)

    plan = RenderPlan(
        video_path=str(video_input),
        audio_paths=[s.path for s in audio_segments],
        filter_stages=stages,
        output_path=str(output_path),
        expected_total_duration_ms=int(round(total_seconds * 1000)),
        codec=codec or CodecParams.from_settings(),
        caption_path=caption_path if len(stages) > 1 else None,
        canvas=canvas_of(geometry),
    )
    logger.info(
        f"[PLAN] {len(plan.audio_paths)} audio clips, stages={[s.name for s in stages]}, "
        f"expected={plan.expected_total_duration_ms}ms"
    )
    return plan


def build_ffmpeg_command(plan: RenderPlan, ffmpeg_path: Optional[str] = None) -> list[str]:
    """Build the FFmpeg argv for a plan without executing it.

    Output length is bounded by the shorter of the background video and the
    concatenated audio (-shortest); the background is never looped.
    """
    ffmpeg_path = ffmpeg_path or get_settings().ffmpeg_path
    codec = plan.codec

    inputs: list[str] = ["-i", plan.video_path]
    for path in plan.audio_paths:
        inputs.extend(["-i", path])

    return [
        ffmpeg_path,
        "-y",
        *inputs,
        "-filter_complex", plan.filter_complex(),
        "-map", "[vout]",
        "-map", "[aout]",
        "-c:v", codec.video_codec,
        "-preset", codec.preset,
        "-crf", str(codec.crf),
        "-pix_fmt", codec.pix_fmt,
        "-c:a", codec.audio_codec,
        "-b:a", codec.audio_bitrate,
        "-shortest",
        "-movflags", "+faststart",
        plan.output_path,
    ]
