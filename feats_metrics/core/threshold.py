"""Adaptive paper-white detection.

Photographs of paper vary in exposure, so a fixed cutoff (e.g. 245/255)
misses dim paper. Instead the brightest pixel in the image is taken as
"paper white" and anything at least `white_coefficient` (90%) as light, and
low in saturation, counts as background. If even the brightest pixel is
darker than `dark_image_floor` the image is treated as pathologically dark
and paper is assumed to be true white (lightness 1.0).
"""

import numpy as np

from feats_metrics.core.types import DEFAULT_CALIBRATION, Calibration


def lightness_of(rgb: np.ndarray) -> np.ndarray:
    """HSL lightness (max + min) / 2 as a [0, 1] float grid."""
    arr = rgb[..., :3]
    return (arr.max(axis=-1).astype(np.float64) + arr.min(axis=-1).astype(np.float64)) / 2.0 / 255.0


def detect_white_threshold(
    rgb: np.ndarray,
    calibration: Calibration = DEFAULT_CALIBRATION,
    lightness: np.ndarray | None = None,
) -> float:
    """Return the lightness a pixel must reach to count as paper."""
    light = lightness_of(rgb) if lightness is None else lightness
    max_light = float(light.max()) if light.size else 0.0
    if max_light < calibration.dark_image_floor:
        max_light = 1.0
    return max_light * calibration.white_coefficient


def is_paper(
    lightness: np.ndarray,
    saturation: np.ndarray,
    threshold: float,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> np.ndarray:
    """Background test: light enough AND unsaturated. Bright saturated colour is never paper."""
    return (lightness >= threshold) & (saturation < calibration.paper_saturation)
