"""Tests for the adaptive paper-white detector and the region masks builder."""

import numpy as np
import pytest
from feats_metrics.core.masks import build_masks, overlay
from feats_metrics.core.threshold import detect_white_threshold, lightness_of
from feats_metrics.core.types import DEFAULT_CALIBRATION


def _solid(r: int, g: int, b: int, w: int = 20, h: int = 20) -> np.ndarray:
    return np.full((h, w, 3), [r, g, b], dtype=np.uint8)


class TestDetectWhiteThreshold:
    def test_true_white_paper(self):
        assert detect_white_threshold(_solid(255, 255, 255)) == pytest.approx(0.9)

    def test_dim_paper_scales_threshold(self):
        # photographed paper at grey 200: threshold is 90% of its lightness
        assert detect_white_threshold(_solid(200, 200, 200)) == pytest.approx(200 / 255 * 0.9)

    def test_brightest_pixel_wins(self):
        arr = _solid(150, 150, 150)
        arr[0, 0] = [220, 220, 220]
        assert detect_white_threshold(arr) == pytest.approx(220 / 255 * 0.9)

    def test_dark_image_falls_back_to_true_white(self):
        assert detect_white_threshold(_solid(60, 60, 60)) == pytest.approx(0.9)

    def test_empty_image(self):
        assert detect_white_threshold(np.zeros((0, 0, 3), dtype=np.uint8)) == pytest.approx(0.9)

    def test_coefficient_is_tunable(self):
        cal = DEFAULT_CALIBRATION.with_overrides(white_coefficient=0.8)
        assert detect_white_threshold(_solid(255, 255, 255), cal) == pytest.approx(0.8)

    def test_lightness_of(self):
        light = lightness_of(np.array([[[255, 0, 0], [255, 255, 255]]], dtype=np.uint8))
        assert light[0, 0] == pytest.approx(0.5)
        assert light[0, 1] == pytest.approx(1.0)


def _masks(arr: np.ndarray):
    return build_masks(arr, detect_white_threshold(arr))


class TestBuildMasks:
    def test_partition_is_exact(self):
        rng = np.random.default_rng(5)
        arr = rng.integers(0, 256, size=(40, 30, 3), dtype=np.uint8)
        m = _masks(arr)
        assert np.all(m.background | m.ink | m.colored)
        assert not np.any(m.background & m.ink)
        assert not np.any(m.background & m.colored)
        assert not np.any(m.ink & m.colored)
        counts = m.counts()
        assert counts['background'] + counts['ink'] + counts['colored'] == m.total == 1200

    def test_white_page_is_background(self):
        m = _masks(_solid(255, 255, 255))
        assert m.counts() == {'background': 400, 'ink': 0, 'colored': 0}

    def test_dim_paper_still_background(self):
        arr = _solid(190, 190, 190)
        arr[5:10, 5:10] = [200, 40, 40]
        m = _masks(arr)
        assert m.counts()['background'] == 375
        assert m.counts()['colored'] == 25

    def test_bright_saturated_is_never_background(self):
        arr = _solid(255, 255, 255)
        arr[:5, :] = [255, 235, 235]  # pale pink: very light, but saturated
        m = _masks(arr)
        assert not m.background[:5, :].any()
        assert m.colored[:5, :].all()

    def test_dark_strokes_are_ink(self):
        arr = _solid(255, 255, 255)
        arr[10, :] = [30, 30, 30]
        m = _masks(arr)
        assert m.ink[10, :].all()
        assert m.counts()['ink'] == 20

    def test_ink_threshold_is_tunable(self):
        arr = _solid(255, 255, 255)
        arr[10, :] = [80, 80, 80]  # lightness 0.31
        assert _masks(arr).counts()['ink'] == 0
        cal = DEFAULT_CALIBRATION.with_overrides(ink_lightness=0.35)
        assert build_masks(arr, detect_white_threshold(arr, cal), cal).counts()['ink'] == 20

    def test_overlay_colours(self):
        arr = _solid(255, 255, 255, w=3, h=1)
        arr[0, 1] = [0, 0, 0]
        arr[0, 2] = [40, 60, 200]
        preview = overlay(_masks(arr))
        assert preview[0, 0].tolist() == [255, 255, 255]
        assert preview[0, 1].tolist() == [0, 0, 0]
        assert preview[0, 2].tolist() == [240, 140, 30]
