"""Caption styling for burned-in subtitles.

Maps the user-facing caption options (color mode, position, sizes) onto the
ASS style overrides that ffmpeg's ``subtitles`` filter accepts through
``force_style``. Colours are ASS ``&HAABBGGRR`` values (alpha 00 = opaque,
80 = half transparent).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)


class CaptionColor(str, Enum):
    """Caption colour modes."""

    WHITE = "white"
    YELLOW = "yellow"
    BLACK_OUTLINE = "black_outline"


class CaptionPosition(str, Enum):
    """Vertical caption placement."""

    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


ASS_WHITE = "&H00FFFFFF"
ASS_GOLD = "&H0037AFD4"  # #D4AF37
ASS_BLACK = "&H00000000"
ASS_BLACK_HALF = "&H80000000"

# WrapStyle=1: no smart wrapping, so right-to-left verses are not split mid-word
NO_SMART_WRAP = 1

# colour mode -> (primary, outline, outline width)
_COLOR_TABLE: dict[CaptionColor, tuple[str, str, int]] = {
    CaptionColor.WHITE: (ASS_WHITE, ASS_BLACK_HALF, 2),
    CaptionColor.YELLOW: (ASS_GOLD, ASS_BLACK_HALF, 2),
    CaptionColor.BLACK_OUTLINE: (ASS_WHITE, ASS_BLACK, 3),
}

# position -> (ASS numpad alignment, vertical margin as fraction of canvas height)
_POSITION_TABLE: dict[CaptionPosition, tuple[int, float]] = {
    CaptionPosition.TOP: (8, 0.05),
    CaptionPosition.MIDDLE: (5, 0.0),
    CaptionPosition.BOTTOM: (2, 0.08),
}


@dataclass(frozen=True)
class SubtitleStyle:
    """Resolved caption style, ready for ffmpeg's force_style."""

    font_size: int
    primary_colour: str
    outline_colour: str
    back_colour: str
    outline: int
    alignment: int
    margin_v: int
    shadow: int = 1
    wrap_style: int = NO_SMART_WRAP
    show_secondary: bool = False
    secondary_font_size: int = 24

    def to_force_style(self) -> str:
        """Render as the comma-separated ``force_style`` value."""
        return ",".join(
            [
                f"FontSize={self.font_size}",
                f"PrimaryColour={self.primary_colour}",
                f"OutlineColour={self.outline_colour}",
                f"BackColour={self.back_colour}",
                f"Outline={self.outline}",
                f"Shadow={self.shadow}",
                f"Alignment={self.alignment}",
                f"MarginV={self.margin_v}",
                f"WrapStyle={self.wrap_style}",
            ]
        )


def _coerce(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"[STYLE] Unknown {enum_cls.__name__} {value!r}, using {default.value}")
        return default


def resolve_style(
    color_mode: Union[CaptionColor, str],
    position: Union[CaptionPosition, str],
    font_size: int,
    show_secondary: bool,
    secondary_font_size: int,
    canvas_height: int,
) -> SubtitleStyle:
    """
    Resolve caption options into a SubtitleStyle.

    Pure: identical inputs always give an identical style. Unknown colour
    modes fall back to white, unknown positions to bottom.

    Args:
        color_mode: white / yellow / black_outline
        position: top / middle / bottom
        font_size: Primary (verse) font size
        show_secondary: Whether the translation line is rendered
        secondary_font_size: Translation font size
        canvas_height: Output height in pixels, for the vertical margin

    Returns:
        SubtitleStyle
    """
    color = _coerce(CaptionColor, color_mode, CaptionColor.WHITE)
    pos = _coerce(CaptionPosition, position, CaptionPosition.BOTTOM)

    primary, outline_colour, outline_width = _COLOR_TABLE[color]
    alignment, margin_ratio = _POSITION_TABLE[pos]

    return SubtitleStyle(
        font_size=font_size,
        primary_colour=primary,
        outline_colour=outline_colour,
        back_colour=ASS_BLACK_HALF,
        outline=outline_width,
        alignment=alignment,
        margin_v=int(round(canvas_height * margin_ratio)),
        show_secondary=show_secondary,
        secondary_font_size=secondary_font_size,
    )
