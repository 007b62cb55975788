"""Tests for canvas sizing and aspect-preserving scale/pad."""

import itertools

import pytest

from ayah_shorts.render.geometry import (
    AspectRatio,
    CanvasGeometry,
    CanvasSize,
    ResolutionTier,
    compute_scale_pad,
    fit_expression_filter,
    resolve_canvas,
    resolve_geometry,
    scale_pad_filter,
)


class TestResolveCanvas:
    """Tests for the tier x aspect ratio table."""

    @pytest.mark.parametrize(
        "tier, ratio, expected",
        [
            ("low", "9:16", (720, 1280)),
            ("low", "1:1", (720, 720)),
            ("low", "4:5", (720, 900)),
            ("low", "16:9", (1280, 720)),
            ("high", "9:16", (1080, 1920)),
            ("high", "1:1", (1080, 1080)),
            ("high", "4:5", (1080, 1350)),
            ("high", "16:9", (1920, 1080)),
        ],
    )
    def test_table(self, tier, ratio, expected):
        assert resolve_canvas(tier, ratio) == CanvasSize(*expected)

    def test_accepts_enums(self):
        assert resolve_canvas(ResolutionTier.HIGH, AspectRatio.SQUARE) == CanvasSize(1080, 1080)

    def test_unknown_ratio_defaults_to_portrait(self, caplog):
        assert resolve_canvas("low", "21:9") == CanvasSize(720, 1280)
        assert "Unrecognized aspect ratio" in caplog.text

    def test_unknown_tier_raises(self):
        with pytest.raises(ValueError):
            resolve_canvas("ultra", "9:16")


class TestComputeScalePad:
    """Tests for fitting a source frame inside the canvas."""

    def test_landscape_into_square(self):
        """1920x1080 into 1080x1080 scales to 1080x608 with ~236px bars."""
        geometry = compute_scale_pad(1920, 1080, 1080, 1080)
        assert (geometry.scaled_width, geometry.scaled_height) == (1080, 608)
        assert geometry.pad_x == 0
        assert geometry.pad_y == 236
        assert geometry.scale_pad_filter() == "scale=1080:608,pad=1080:1080:0:236"

    def test_landscape_into_portrait(self):
        geometry = compute_scale_pad(1920, 1080, 720, 1280)
        assert (geometry.scaled_width, geometry.scaled_height) == (720, 405)
        assert geometry.pad_y == (1280 - 405) // 2

    def test_portrait_into_landscape(self):
        geometry = compute_scale_pad(1080, 1920, 1280, 720)
        assert (geometry.scaled_width, geometry.scaled_height) == (405, 720)
        assert geometry.pad_x == (1280 - 405) // 2
        assert geometry.pad_y == 0

    def test_same_ratio_no_padding(self):
        geometry = compute_scale_pad(540, 960, 1080, 1920)
        assert geometry == CanvasGeometry(1080, 1920, 1080, 1920, 0, 0)

    @pytest.mark.parametrize(
        "src, target",
        list(
            itertools.product(
                [(1920, 1080), (1080, 1920), (1, 1000), (1000, 1), (333, 777), (640, 480), (4096, 2160)],
                [(720, 1280), (720, 720), (720, 900), (1280, 720), (1080, 1920), (1920, 1080)],
            )
        ),
    )
    def test_fit_properties(self, src, target):
        g = compute_scale_pad(*src, *target)
        assert g.scaled_width <= g.target_width
        assert g.scaled_height <= g.target_height
        assert g.scaled_width == g.target_width or g.scaled_height == g.target_height

        rem_x = g.target_width - g.scaled_width
        rem_y = g.target_height - g.scaled_height
        assert g.pad_x >= 0 and g.pad_y >= 0
        assert abs(g.pad_x - (rem_x - g.pad_x)) <= 1
        assert abs(g.pad_y - (rem_y - g.pad_y)) <= 1

    @pytest.mark.parametrize("dims", [(0, 1080, 720, 1280), (1920, -1, 720, 1280), (1920, 1080, 0, 0)])
    def test_invalid_dimensions(self, dims):
        with pytest.raises(ValueError):
            compute_scale_pad(*dims)


class TestResolveGeometry:
    """Tests for geometry with and without a known source size."""

    def test_known_source(self):
        geometry = resolve_geometry((1920, 1080), "high", "1:1")
        assert isinstance(geometry, CanvasGeometry)
        assert scale_pad_filter(geometry) == "scale=1080:608,pad=1080:1080:0:236"

    def test_unknown_source_uses_fit_expression(self):
        geometry = resolve_geometry(None, "low", "9:16")
        assert geometry == CanvasSize(720, 1280)
        assert scale_pad_filter(geometry) == fit_expression_filter(geometry)
        assert scale_pad_filter(geometry) == (
            "scale=720:1280:force_original_aspect_ratio=decrease,pad=720:1280:(ow-iw)/2:(oh-ih)/2"
        )
