"""Tests for feats_metrics.core.palette — HSL conversion and colour buckets."""

import numpy as np
import pytest
from feats_metrics.core.palette import classify, classify_array, classify_rgb, hsl_of, hue_bucket, rgb_to_hsl
from feats_metrics.core.types import BUCKETS, DEFAULT_CALIBRATION, ColorBucket


class TestHslOf:
    def test_white(self):
        assert hsl_of(255, 255, 255) == (0.0, 0.0, 1.0)

    def test_black(self):
        assert hsl_of(0, 0, 0) == (0.0, 0.0, 0.0)

    def test_pure_red(self):
        h, s, l = hsl_of(255, 0, 0)
        assert h == 0.0
        assert s == 1.0
        assert l == pytest.approx(0.5)

    def test_green_and_blue_hues(self):
        assert hsl_of(0, 255, 0)[0] == pytest.approx(120.0)
        assert hsl_of(0, 0, 255)[0] == pytest.approx(240.0)

    def test_magenta_wraps_below_360(self):
        h, _s, _l = hsl_of(255, 0, 128)
        assert 300 < h < 360

    def test_vectorised_matches_scalar(self):
        rng = np.random.default_rng(3)
        pixels = rng.integers(0, 256, size=(200, 3), dtype=np.uint8)
        hue, sat, light = rgb_to_hsl(pixels)
        for i, px in enumerate(pixels):
            h, s, l = hsl_of(int(px[0]), int(px[1]), int(px[2]))
            assert hue[i] == pytest.approx(h)
            assert sat[i] == pytest.approx(s)
            assert light[i] == pytest.approx(l)

    def test_alpha_channel_ignored(self):
        rgba = np.array([[255, 0, 0, 0]], dtype=np.uint8)
        hue, sat, light = rgb_to_hsl(rgba)
        assert (hue[0], sat[0], light[0]) == (0.0, 1.0, 0.5)


class TestClassifyPriority:
    def test_dark_is_black_even_when_saturated(self):
        assert classify(120.0, 1.0, 0.1) == ColorBucket.BLACK

    def test_black_boundary_inclusive(self):
        assert classify(200.0, 0.9, 0.15) == ColorBucket.BLACK

    def test_light_unsaturated_is_white(self):
        assert classify(0.0, 0.0, 0.95) == ColorBucket.WHITE

    def test_light_but_saturated_is_a_hue(self):
        # pale pink tint: very light, but HSL saturation is high
        assert classify(350.0, 1.0, 0.95) == ColorBucket.RED

    def test_low_saturation_is_gray(self):
        assert classify(200.0, 0.1, 0.5) == ColorBucket.GRAY

    def test_gray_rgb(self):
        assert classify_rgb(128, 128, 128) == ColorBucket.GRAY


class TestHueRanges:
    @pytest.mark.parametrize(
        'hue,expected',
        [
            (0.0, ColorBucket.RED),
            (14.9, ColorBucket.RED),
            (15.0, ColorBucket.ORANGE),
            (44.9, ColorBucket.ORANGE),
            (45.0, ColorBucket.YELLOW),
            (70.0, ColorBucket.GREEN),
            (150.0, ColorBucket.TEAL),
            (190.0, ColorBucket.BLUE),
            (249.9, ColorBucket.BLUE),
            (250.0, ColorBucket.PURPLE),
            (290.0, ColorBucket.PINK),
            (339.9, ColorBucket.PINK),
            (340.0, ColorBucket.RED),
            (359.9, ColorBucket.RED),
        ],
    )
    def test_edges(self, hue, expected):
        assert hue_bucket(hue) == expected
        assert classify(hue, 0.8, 0.5) == expected

    def test_blue_purple_split_is_tunable(self):
        cal = DEFAULT_CALIBRATION.with_overrides(blue_purple_split=260)
        assert classify(255.0, 0.8, 0.5) == ColorBucket.PURPLE
        assert classify(255.0, 0.8, 0.5, cal) == ColorBucket.BLUE

    def test_common_colours(self):
        assert classify_rgb(200, 40, 40) == ColorBucket.RED
        assert classify_rgb(255, 140, 0) == ColorBucket.ORANGE
        assert classify_rgb(230, 210, 30) == ColorBucket.YELLOW
        assert classify_rgb(40, 180, 60) == ColorBucket.GREEN
        assert classify_rgb(0, 160, 160) == ColorBucket.TEAL
        assert classify_rgb(40, 60, 200) == ColorBucket.BLUE
        assert classify_rgb(130, 40, 200) == ColorBucket.PURPLE
        assert classify_rgb(230, 60, 170) == ColorBucket.PINK


class TestClassifyArray:
    def test_matches_scalar(self):
        rng = np.random.default_rng(11)
        pixels = rng.integers(0, 256, size=(500, 3), dtype=np.uint8)
        indices = classify_array(*rgb_to_hsl(pixels))
        for i, px in enumerate(pixels):
            assert BUCKETS[indices[i]] == classify_rgb(int(px[0]), int(px[1]), int(px[2]))

    def test_shape_preserved(self):
        grid = np.zeros((4, 5, 3), dtype=np.uint8)
        assert classify_array(*rgb_to_hsl(grid)).shape == (4, 5)


class TestColorBucket:
    def test_achromatic(self):
        assert not ColorBucket.GRAY.chromatic
        assert not ColorBucket.BLACK.chromatic
        assert not ColorBucket.WHITE.chromatic

    def test_chromatic(self):
        assert ColorBucket.TEAL.chromatic
        assert ColorBucket.RED.value == 'Red'
