"""Output canvas sizing and aspect-preserving scale/pad.

The background clip is scaled to fit entirely inside the canvas and centred,
with black bars on the axis it does not fill. It is never stretched.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

logger = logging.getLogger(__name__)


class ResolutionTier(str, Enum):
    """Output quality bucket; drives the baseline (short side) width."""

    LOW = "low"
    HIGH = "high"


class AspectRatio(str, Enum):
    """Supported output aspect ratios (width:height)."""

    PORTRAIT = "9:16"
    SQUARE = "1:1"
    FOUR_FIVE = "4:5"
    LANDSCAPE = "16:9"


BASELINE_WIDTHS: dict[ResolutionTier, int] = {
    ResolutionTier.LOW: 720,
    ResolutionTier.HIGH: 1080,
}

DEFAULT_ASPECT_RATIO = AspectRatio.PORTRAIT


@dataclass(frozen=True)
class CanvasSize:
    """Target output size in pixels."""

    width: int
    height: int


@dataclass(frozen=True)
class CanvasGeometry:
    """Target canvas plus the scaled source placed inside it."""

    target_width: int
    target_height: int
    scaled_width: int
    scaled_height: int
    pad_x: int
    pad_y: int

    @property
    def canvas(self) -> CanvasSize:
        return CanvasSize(self.target_width, self.target_height)

    def scale_pad_filter(self) -> str:
        """FFmpeg ``scale,pad`` chain for this geometry."""
        return (
            f"scale={self.scaled_width}:{self.scaled_height},"
            f"pad={self.target_width}:{self.target_height}:{self.pad_x}:{self.pad_y}"
        )


def resolve_canvas(
    resolution_tier: Union[ResolutionTier, str],
    aspect_ratio: Union[AspectRatio, str],
) -> CanvasSize:
    """
    Compute the output canvas for a resolution tier and aspect ratio tag.

    Baseline width is 720 (low) or 1080 (high):
        9:16 -> w x round(w*16/9)
        1:1  -> w x w
        4:5  -> w x round(w*5/4)
        16:9 -> round(w*16/9) x w

    An unrecognized aspect ratio tag falls back to 9:16 with a warning.

    Raises:
        ValueError: Unknown resolution tier
    """
    w = BASELINE_WIDTHS[ResolutionTier(resolution_tier)]

    try:
        ratio = AspectRatio(aspect_ratio)
    except ValueError:
        logger.warning(
            f"[GEOMETRY] Unrecognized aspect ratio {aspect_ratio!r}, defaulting to {DEFAULT_ASPECT_RATIO.value}"
        )
        ratio = DEFAULT_ASPECT_RATIO

    if ratio is AspectRatio.SQUARE:
        return CanvasSize(w, w)
    if ratio is AspectRatio.FOUR_FIVE:
        return CanvasSize(w, int(round(w * 5 / 4)))
    if ratio is AspectRatio.LANDSCAPE:
        return CanvasSize(int(round(w * 16 / 9)), w)
    return CanvasSize(w, int(round(w * 16 / 9)))


def compute_scale_pad(src_w: int, src_h: int, target_w: int, target_h: int) -> CanvasGeometry:
    """
    Fit a source frame inside the target, preserving its aspect ratio.

    The scaled frame matches the target exactly on one axis and is no larger
    than the target on the other; padding centres it (odd remainders leave
    the extra pixel on the right/bottom).

    Raises:
        ValueError: Non-positive dimensions
    """
    if src_w <= 0 or src_h <= 0 or target_w <= 0 or target_h <= 0:
        raise ValueError(f"Invalid dimensions: source {src_w}x{src_h}, target {target_w}x{target_h}")

    # Compare aspect ratios without floating point: src_w/src_h >= target_w/target_h
    if src_w * target_h >= src_h * target_w:
        scaled_w = target_w
        scaled_h = min(target_h, max(1, int(round(src_h * target_w / src_w))))
    else:
        scaled_h = target_h
        scaled_w = min(target_w, max(1, int(round(src_w * target_h / src_h))))

    return CanvasGeometry(
        target_width=target_w,
        target_height=target_h,
        scaled_width=scaled_w,
        scaled_height=scaled_h,
        pad_x=(target_w - scaled_w) // 2,
        pad_y=(target_h - scaled_h) // 2,
    )


def fit_expression_filter(canvas: CanvasSize) -> str:
    """Scale/pad chain evaluated by ffmpeg itself, for when the source size is unknown."""
    return (
        f"scale={canvas.width}:{canvas.height}:force_original_aspect_ratio=decrease,"
        f"pad={canvas.width}:{canvas.height}:(ow-iw)/2:(oh-ih)/2"
    )


def resolve_geometry(
    source_size: Optional[tuple[int, int]],
    resolution_tier: Union[ResolutionTier, str],
    aspect_ratio: Union[AspectRatio, str],
) -> Union[CanvasGeometry, CanvasSize]:
    """Resolve the canvas and, when the source size is known, the exact scale/pad."""
    canvas = resolve_canvas(resolution_tier, aspect_ratio)
    if source_size is None:
        return canvas
    return compute_scale_pad(source_size[0], source_size[1], canvas.width, canvas.height)


def scale_pad_filter(geometry: Union[CanvasGeometry, CanvasSize]) -> str:
    """Scale/pad filter for either an exact geometry or a bare canvas."""
    if isinstance(geometry, CanvasGeometry):
        return geometry.scale_pad_filter()
    return fit_expression_filter(geometry)


def canvas_of(geometry: Union[CanvasGeometry, CanvasSize]) -> CanvasSize:
    if isinstance(geometry, CanvasGeometry):
        return geometry.canvas
    return geometry
