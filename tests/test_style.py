"""Tests for caption style resolution."""

import pytest

from ayah_shorts.render.style import (
    ASS_BLACK,
    ASS_BLACK_HALF,
    ASS_GOLD,
    ASS_WHITE,
    CaptionColor,
    CaptionPosition,
    SubtitleStyle,
    resolve_style,
)


class TestResolveStyle:
    """Tests for mapping caption options onto ASS overrides."""

    @pytest.mark.parametrize(
        "color, primary, outline_colour, outline",
        [
            ("white", ASS_WHITE, ASS_BLACK_HALF, 2),
            ("yellow", ASS_GOLD, ASS_BLACK_HALF, 2),
            ("black_outline", ASS_WHITE, ASS_BLACK, 3),
        ],
    )
    def test_color_table(self, color, primary, outline_colour, outline):
        style = resolve_style(color, "bottom", 48, False, 24, 1280)
        assert style.primary_colour == primary
        assert style.outline_colour == outline_colour
        assert style.outline == outline
        assert style.back_colour == ASS_BLACK_HALF

    @pytest.mark.parametrize(
        "position, alignment, margin_v",
        [
            (CaptionPosition.TOP, 8, 64),
            (CaptionPosition.MIDDLE, 5, 0),
            (CaptionPosition.BOTTOM, 2, 102),
        ],
    )
    def test_position_table(self, position, alignment, margin_v):
        style = resolve_style(CaptionColor.WHITE, position, 48, False, 24, 1280)
        assert style.alignment == alignment
        assert style.margin_v == margin_v

    def test_no_smart_wrap_and_shadow(self):
        style = resolve_style("white", "bottom", 48, False, 24, 1280)
        assert style.wrap_style == 1
        assert style.shadow == 1

    def test_pure(self):
        args = ("yellow", "middle", 60, True, 30, 1920)
        assert resolve_style(*args) == resolve_style(*args)
        assert hash(resolve_style(*args)) == hash(resolve_style(*args))

    def test_unknown_values_fall_back(self, caplog):
        style = resolve_style("purple", "left", 48, False, 24, 1000)
        assert style.primary_colour == ASS_WHITE
        assert style.alignment == 2
        assert style.margin_v == 80
        assert "Unknown CaptionColor" in caplog.text

    def test_force_style_string(self):
        style = SubtitleStyle(
            font_size=48,
            primary_colour=ASS_WHITE,
            outline_colour=ASS_BLACK_HALF,
            back_colour=ASS_BLACK_HALF,
            outline=2,
            alignment=2,
            margin_v=102,
        )
        assert style.to_force_style() == (
            "FontSize=48,PrimaryColour=&H00FFFFFF,OutlineColour=&H80000000,"
            "BackColour=&H80000000,Outline=2,Shadow=1,Alignment=2,MarginV=102,WrapStyle=1"
        )
