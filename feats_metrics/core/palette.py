"""Colour-space conversion and named colour buckets.

Pixels are bucketed on HSL (hue in degrees, saturation and lightness as
fractions). Rules are checked in priority order, first match wins:

  1. lightness <= black_lightness              -> Black
  2. lightness >= white_lightness, low sat     -> White
  3. saturation < gray_saturation              -> Gray
  4. hue ranges around the circle, wrapping back to Red at 340

Extreme lightness is checked before saturation because HSL saturation is
unstable near black and white.
"""

from bisect import bisect_right

import numpy as np

from feats_metrics.core.types import BUCKETS, DEFAULT_CALIBRATION, Calibration, ColorBucket


def hue_edges(calibration: Calibration = DEFAULT_CALIBRATION) -> tuple[float, ...]:
    """Lower edges of every hue range after the first Red range."""
    return (15.0, 45.0, 70.0, 150.0, 190.0, calibration.blue_purple_split, calibration.purple_pink_split, 340.0)


# Bucket for each slot between consecutive hue edges. Slot 0 is [0, 15), slot 8 is [340, 360).
HUE_SLOTS: tuple[ColorBucket, ...] = (
    ColorBucket.RED,
    ColorBucket.ORANGE,
    ColorBucket.YELLOW,
    ColorBucket.GREEN,
    ColorBucket.TEAL,
    ColorBucket.BLUE,
    ColorBucket.PURPLE,
    ColorBucket.PINK,
    ColorBucket.RED,
)


def hsl_of(r: int, g: int, b: int) -> tuple[float, float, float]:
    """Convert one 0-255 RGB triple to (hue degrees, saturation, lightness)."""
    rf, gf, bf = r / 255.0, g / 255.0, b / 255.0
    mx = max(rf, gf, bf)
    mn = min(rf, gf, bf)
    light = (mx + mn) / 2.0
    if mx == mn:
        return 0.0, 0.0, light
    d = mx - mn
    sat = d / (2.0 - mx - mn) if light > 0.5 else d / (mx + mn)
    if mx == rf:
        hue = (gf - bf) / d + (6.0 if gf < bf else 0.0)
    elif mx == gf:
        hue = (bf - rf) / d + 2.0
    else:
        hue = (rf - gf) / d + 4.0
    return hue * 60.0, sat, light


def rgb_to_hsl(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorised HSL for an (..., 3+) uint8 array. Alpha, if present, is ignored."""
    arr = rgb[..., :3].astype(np.float64) / 255.0
    r, g, b = arr[..., 0], arr[..., 1], arr[..., 2]
    mx = arr.max(axis=-1)
    mn = arr.min(axis=-1)
    light = (mx + mn) / 2.0
    delta = mx - mn
    chromatic = delta > 0

    sat = np.zeros_like(light)
    denom = np.where(light > 0.5, 2.0 - mx - mn, mx + mn)
    np.divide(delta, denom, out=sat, where=chromatic)

    safe = np.where(chromatic, delta, 1.0)
    hue = np.select(
        [~chromatic, mx == r, mx == g],
        [0.0, np.mod((g - b) / safe, 6.0), (b - r) / safe + 2.0],
        (r - g) / safe + 4.0,
    )
    return hue * 60.0, sat, light


def hue_bucket(hue: float, calibration: Calibration = DEFAULT_CALIBRATION) -> ColorBucket:
    """Bucket a hue in degrees, ignoring saturation and lightness."""
    return HUE_SLOTS[bisect_right(hue_edges(calibration), hue % 360.0)]


def classify(
    hue: float,
    saturation: float,
    lightness: float,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> ColorBucket:
    """Map one HSL sample to its named bucket."""
    if lightness <= calibration.black_lightness:
        return ColorBucket.BLACK
    if lightness >= calibration.white_lightness and saturation < calibration.paper_saturation:
        return ColorBucket.WHITE
    if saturation < calibration.gray_saturation:
        return ColorBucket.GRAY
    return hue_bucket(hue, calibration)


def classify_array(
    hue: np.ndarray,
    saturation: np.ndarray,
    lightness: np.ndarray,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> np.ndarray:
    """Vectorised classify(). Returns indices into BUCKETS, same shape as the inputs."""
    slot_to_index = np.array([BUCKETS.index(b) for b in HUE_SLOTS])
    by_hue = slot_to_index[np.searchsorted(np.array(hue_edges(calibration)), np.mod(hue, 360.0), side='right')]
    return np.select(
        [
            lightness <= calibration.black_lightness,
            (lightness >= calibration.white_lightness) & (saturation < calibration.paper_saturation),
            saturation < calibration.gray_saturation,
        ],
        [BUCKETS.index(ColorBucket.BLACK), BUCKETS.index(ColorBucket.WHITE), BUCKETS.index(ColorBucket.GRAY)],
        by_hue,
    )


def classify_rgb(r: int, g: int, b: int, calibration: Calibration = DEFAULT_CALIBRATION) -> ColorBucket:
    """Convenience: bucket a 0-255 RGB triple."""
    return classify(*hsl_of(r, g, b), calibration=calibration)
