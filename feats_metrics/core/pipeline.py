"""Pipeline entry points: bytes or PIL image in, CVMetrics out.

  decode -> flatten alpha -> downscale (area) -> HSL
         -> white threshold -> masks -> aggregate
         -> (template given) boundary score, taken from the full-resolution
            image, overrides rebellion/visibility

The pipeline is a pure function of its inputs and calibration. It holds
no state between calls, so concurrent calls need no locking.
"""

import numpy as np
from PIL import Image

from feats_metrics.core.boundary import score_rebellion
from feats_metrics.core.imaging import (
    DEFAULT_READY_TIMEOUT,
    Decoder,
    PillowDecoder,
    downscale,
    flatten_alpha,
    wait_until_ready,
)
from feats_metrics.core.masks import build_masks
from feats_metrics.core.metrics import aggregate
from feats_metrics.core.palette import rgb_to_hsl
from feats_metrics.core.threshold import detect_white_threshold
from feats_metrics.core.types import DEFAULT_CALIBRATION, Calibration, CVMetrics, PixelMasks


def prepare(image: Image.Image, calibration: Calibration = DEFAULT_CALIBRATION) -> Image.Image:
    """RGB on white paper, longest side bounded by calibration.max_dimension."""
    return downscale(flatten_alpha(image), calibration.max_dimension)


def segment(rgb: np.ndarray, calibration: Calibration = DEFAULT_CALIBRATION) -> tuple[float, PixelMasks]:
    """Return (white_threshold, masks) for a prepared RGB array."""
    hsl = rgb_to_hsl(rgb)
    threshold = detect_white_threshold(rgb, calibration, lightness=hsl[2])
    return threshold, build_masks(rgb, threshold, calibration, hsl=hsl)


def analyze(
    image: Image.Image,
    template: Image.Image | None = None,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> CVMetrics:
    prepared = prepare(image, calibration)
    if prepared.width == 0 or prepared.height == 0:
        return CVMetrics(0.0, [], 0.0, 0.0, 0.0, method='inference' if template is None else 'template')

    rgb = np.asarray(prepared, dtype=np.uint8)
    _threshold, masks = segment(rgb, calibration)
    metrics = aggregate(rgb, masks, calibration)

    if template is not None:
        score = score_rebellion(image, template, calibration)
        metrics.rebellion_score = score.rebellion_score
        metrics.line_visibility_score = score.line_visibility_score
        metrics.method = 'template'
    return metrics


def analyze_bytes(
    data: bytes,
    template_data: bytes | None = None,
    decoder: Decoder | None = None,
    calibration: Calibration = DEFAULT_CALIBRATION,
    ready_timeout: float = DEFAULT_READY_TIMEOUT,
) -> CVMetrics:
    """Decode and analyse. Raises DecodeError or DependencyUnavailableError; never returns partial metrics."""
    decoder = decoder or PillowDecoder()
    wait_until_ready(decoder, timeout=ready_timeout)
    image = decoder.decode(data)
    template = decoder.decode(template_data) if template_data is not None else None
    return analyze(image, template, calibration)
