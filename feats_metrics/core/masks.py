"""Partition an image into background, ink and colored-fill masks.

Tests are applied in strict order so the masks never overlap:
background first, then ink on what remains, then colored is the rest.
Without a template the ink mask is a heuristic: dark pixels are assumed
to be the printed line art.
"""

import numpy as np

from feats_metrics.core.palette import rgb_to_hsl
from feats_metrics.core.threshold import is_paper
from feats_metrics.core.types import DEFAULT_CALIBRATION, Calibration, PixelMasks


def build_masks(
    rgb: np.ndarray,
    white_threshold: float,
    calibration: Calibration = DEFAULT_CALIBRATION,
    hsl: tuple[np.ndarray, np.ndarray, np.ndarray] | None = None,
) -> PixelMasks:
    _hue, sat, light = rgb_to_hsl(rgb) if hsl is None else hsl

    background = is_paper(light, sat, white_threshold, calibration)
    ink = ~background & (light < calibration.ink_lightness)
    colored = ~(background | ink)
    return PixelMasks(background=background, ink=ink, colored=colored)


def overlay(masks: PixelMasks) -> np.ndarray:
    """Render masks as an RGB preview: white = background, black = ink, orange = colored."""
    h, w = masks.background.shape
    out = np.zeros((h, w, 3), dtype=np.uint8)
    out[masks.background] = [255, 255, 255]
    out[masks.ink] = [0, 0, 0]
    out[masks.colored] = [240, 140, 30]
    return out
