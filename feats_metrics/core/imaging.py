"""Decoding, readiness gating and resampling.

The decoder is injected rather than read from global state. A decoder that
wraps a slow-starting native backend reports `is_ready() == False` until it
can decode; `wait_until_ready()` polls it with a bounded timeout and raises
DependencyUnavailableError instead of hanging.

All shrinking uses area averaging (Image.Resampling.BOX) so downscaling
never introduces aliased colour noise.

Wide greyscale modes (16-bit PNG decodes as I;16 or I, float TIFF as F)
are scaled to 8 bits before conversion. Pillow's convert() clips them at
255, which would turn every mid-grey into paper.
"""

import io
import time

import numpy as np
from PIL import Image, UnidentifiedImageError

from feats_metrics.core.errors import DecodeError, DependencyUnavailableError

DEFAULT_READY_TIMEOUT = 10.0  # seconds
DEFAULT_READY_INTERVAL = 0.1  # seconds
PAPER_WHITE = (255, 255, 255, 255)


class Decoder:
    """Turns encoded image bytes into a PIL image.

    Subclasses must override `decode`. Override `is_ready` when the backend
    needs time to start; the default is always ready.
    """

    def is_ready(self) -> bool:
        return True

    def decode(self, data: bytes) -> Image.Image:
        """Return the decoded image or raise DecodeError. Abstract."""
        raise NotImplementedError(f'{type(self).__name__} must implement decode()')


class PillowDecoder(Decoder):
    """Decode PNG/JPEG/etc. with Pillow. Always ready."""

    def decode(self, data: bytes) -> Image.Image:
        if not data:
            raise DecodeError('empty image data')
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise DecodeError(f'cannot decode image: {e}') from e
        return image


def wait_until_ready(
    decoder: Decoder,
    timeout: float = DEFAULT_READY_TIMEOUT,
    interval: float = DEFAULT_READY_INTERVAL,
) -> None:
    """Block until decoder.is_ready(), or raise DependencyUnavailableError after `timeout` seconds."""
    deadline = time.monotonic() + timeout
    while not decoder.is_ready():
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise DependencyUnavailableError(f'image decoder not ready after {timeout:g}s')
        time.sleep(min(interval, remaining))


_WIDE_INT_MODES = ('I;16', 'I;16L', 'I;16B', 'I;16N', 'I')


def to_8bit(image: Image.Image) -> Image.Image:
    """Scale 16-bit integer (I;16*, I) or [0, 1] float (F) greyscale to mode L. Other modes pass through."""
    if image.mode in _WIDE_INT_MODES:
        levels = np.asarray(image).astype(np.int64) >> 8
    elif image.mode == 'F':
        levels = np.rint(np.asarray(image, dtype=np.float64) * 255.0)
    else:
        return image
    if image.width == 0 or image.height == 0:
        return Image.new('L', image.size)
    return Image.fromarray(np.clip(levels, 0, 255).astype(np.uint8))


def flatten_alpha(image: Image.Image) -> Image.Image:
    """Return an 8-bit RGB copy. Transparent pixels are composited onto white paper."""
    image = to_8bit(image)
    has_alpha = image.mode in ('RGBA', 'LA', 'PA') or (image.mode == 'P' and 'transparency' in image.info)
    if not has_alpha:
        return image.convert('RGB')
    rgba = image.convert('RGBA')
    paper = Image.new('RGBA', rgba.size, PAPER_WHITE)
    return Image.alpha_composite(paper, rgba).convert('RGB')


def downscale(image: Image.Image, max_dimension: int) -> Image.Image:
    """Shrink so the longest side is at most max_dimension. Never enlarges. 0 disables."""
    longest = max(image.size)
    if max_dimension <= 0 or longest <= max_dimension:
        return image
    ratio = max_dimension / longest
    size = (max(1, round(image.width * ratio)), max(1, round(image.height * ratio)))
    return image.resize(size, Image.Resampling.BOX)


def resize_mask(mask: np.ndarray, size: tuple[int, int]) -> np.ndarray:
    """Resample a boolean mask to `size` (width, height). A pixel with any coverage stays set."""
    h, w = mask.shape
    if (w, h) == size:
        return mask
    resized = Image.fromarray(mask.astype(np.uint8) * 255).resize(size, Image.Resampling.BOX)
    return np.asarray(resized) > 0
