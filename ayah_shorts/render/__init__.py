from ayah_shorts.render.executor import (
    FFmpegExecutor,
    RenderCompletedEvent,
    RenderFailedEvent,
    RenderProgressEvent,
    progress_percent,
)
from ayah_shorts.render.geometry import (
    AspectRatio,
    CanvasGeometry,
    CanvasSize,
    ResolutionTier,
    compute_scale_pad,
    resolve_canvas,
    resolve_geometry,
)
from ayah_shorts.render.plan import RenderPlan, build_ffmpeg_command, compose_render_plan
from ayah_shorts.render.style import CaptionColor, CaptionPosition, SubtitleStyle, resolve_style
from ayah_shorts.render.subtitles import build_subtitles_filter, encode_srt, write_caption_track
from ayah_shorts.render.timeline import (
    AudioSegment,
    CaptionCue,
    CaptionTimeline,
    SegmentText,
    build_timeline,
    probe_segments,
)

__all__ = [
    "FFmpegExecutor",
    "RenderProgressEvent",
    "RenderCompletedEvent",
    "RenderFailedEvent",
    "progress_percent",
    "AspectRatio",
    "ResolutionTier",
    "CanvasSize",
    "CanvasGeometry",
    "resolve_canvas",
    "resolve_geometry",
    "compute_scale_pad",
    "RenderPlan",
    "compose_render_plan",
    "build_ffmpeg_command",
    "CaptionColor",
    "CaptionPosition",
    "SubtitleStyle",
    "resolve_style",
    "encode_srt",
    "write_caption_track",
    "build_subtitles_filter",
    "AudioSegment",
    "SegmentText",
    "CaptionCue",
    "CaptionTimeline",
    "probe_segments",
    "build_timeline",
]
