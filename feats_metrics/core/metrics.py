"""Reduce region masks and pixel data to the CVMetrics feature vector.

  white_space_ratio      |background| / total
  dominant_colors        top chromatic buckets inside the colored mask,
                         as percentages of chromatic pixels only
  line_visibility_score  min((|ink| / total) / baseline_line_coverage, 1)
  rebellion_score        1 - line_visibility_score (inference only; an
                         approximation, not a measurement)
  fill_consistency_score 1 - spread / ceiling, clamped to [0, 1]

Fill consistency has two strategies. 'stddev' (default) averages the
per-channel standard deviation over the colored mask. 'neighbor' averages
the L1 distance from each colored pixel to its right-hand neighbour.

Every metric falls back to 0 (or an empty colour list) on degenerate
input rather than raising.
"""

import numpy as np
from PIL import Image

from feats_metrics.core.palette import classify_array, rgb_to_hsl
from feats_metrics.core.types import (
    BUCKETS,
    DEFAULT_CALIBRATION,
    Calibration,
    ColorBucket,
    CVMetrics,
    DominantColor,
    PixelMasks,
)


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def white_space_ratio(masks: PixelMasks) -> float:
    if masks.total == 0:
        return 0.0
    return masks.counts()['background'] / masks.total


def _histogram_sample(rgb: np.ndarray, mask: np.ndarray, size: int) -> tuple[np.ndarray, np.ndarray]:
    """Shrink pixels (area-averaged) and mask (nearest) so neither side exceeds `size`."""
    h, w = mask.shape
    if h <= size and w <= size:
        return rgb, mask
    target = (min(w, size), min(h, size))
    small = np.array(Image.fromarray(np.ascontiguousarray(rgb[..., :3])).resize(target, Image.Resampling.BOX))
    small_mask = np.array(Image.fromarray(mask.astype(np.uint8) * 255).resize(target, Image.Resampling.NEAREST)) > 0
    return small, small_mask


def bucket_counts(
    rgb: np.ndarray,
    colored: np.ndarray,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> dict[ColorBucket, int]:
    """Count every bucket (chromatic or not) among colored pixels of the histogram sample."""
    if colored.size == 0:
        return {}
    sample, sample_mask = _histogram_sample(rgb, colored, calibration.histogram_size)
    if not sample_mask.any():
        return {}
    hue, sat, light = rgb_to_hsl(sample[sample_mask])
    indices = classify_array(hue, sat, light, calibration)
    counts = np.bincount(indices.ravel(), minlength=len(BUCKETS))
    return {bucket: int(counts[i]) for i, bucket in enumerate(BUCKETS) if counts[i] > 0}


def colour_distribution(counts: dict[ColorBucket, int]) -> list[DominantColor]:
    """Chromatic buckets as percentages of the chromatic total, highest first. Ties keep bucket order."""
    chromatic = {b: c for b, c in counts.items() if b.chromatic}
    total = sum(chromatic.values())
    if total == 0:
        return []
    ordered = sorted(chromatic.items(), key=lambda item: (-item[1], BUCKETS.index(item[0])))
    return [DominantColor(color=b, percentage=c / total * 100.0) for b, c in ordered]


def dominant_colors(
    rgb: np.ndarray,
    colored: np.ndarray,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> list[DominantColor]:
    return colour_distribution(bucket_counts(rgb, colored, calibration))[: calibration.top_colours]


def line_visibility_score(masks: PixelMasks, calibration: Calibration = DEFAULT_CALIBRATION) -> float:
    """Ink coverage relative to an untouched line-art page. Saturates at 1."""
    if masks.total == 0:
        return 0.0
    ink_ratio = masks.counts()['ink'] / masks.total
    return _clamp(ink_ratio / calibration.baseline_line_coverage)


def _stddev_spread(rgb: np.ndarray, colored: np.ndarray) -> float | None:
    pixels = rgb[..., :3][colored].astype(np.float64)
    if len(pixels) == 0:
        return None
    return float(pixels.std(axis=0).mean())


def _neighbor_spread(rgb: np.ndarray, colored: np.ndarray) -> float | None:
    if colored.shape[1] < 2:
        return None
    arr = rgb[..., :3].astype(np.int32)
    diffs = np.abs(arr[:, :-1] - arr[:, 1:]).sum(axis=-1)
    sampled = diffs[colored[:, :-1]]
    if sampled.size == 0:
        return None
    return float(sampled.mean())


def fill_consistency_score(
    rgb: np.ndarray,
    colored: np.ndarray,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> float:
    """Near 1 for smooth deliberate fills, near 0 for scribbled noisy ones."""
    if calibration.fill_strategy == 'neighbor':
        spread = _neighbor_spread(rgb, colored)
        ceiling = calibration.neighbor_ceiling
    else:
        spread = _stddev_spread(rgb, colored)
        ceiling = calibration.stddev_ceiling
    if spread is None:
        return 0.0
    return _clamp(1.0 - spread / ceiling)


def aggregate(
    rgb: np.ndarray,
    masks: PixelMasks,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> CVMetrics:
    """Compute the full feature vector by inference (no template)."""
    visibility = line_visibility_score(masks, calibration)
    return CVMetrics(
        white_space_ratio=white_space_ratio(masks),
        dominant_colors=dominant_colors(rgb, masks.colored, calibration),
        line_visibility_score=visibility,
        rebellion_score=1.0 - visibility,
        fill_consistency_score=fill_consistency_score(rgb, masks.colored, calibration),
        method='inference',
    )
