"""Template-relative boundary scoring.

When the blank template is available, rebellion is measured instead of
inferred:

  template_lines  template grey < template_line_level (template is clean,
                  so a fixed threshold is used, not the adaptive one)
  user_ink        user grey < user_ink_level (looser: any visible mark,
                  whatever its colour)
  spill           user_ink minus template_lines
  rebellion       |spill| / |user_ink|, 0 when the user made no marks

Both masks are built at full resolution, before any analysis downscale:
thin lines averaged down to mid-grey would fall out of the template mask
while still counting as user ink. When the template and the coloured page
differ in size, the boolean line mask is resampled, not the template
pixels, and any partial line coverage stays a line.

line_visibility_score is reported as 1 - rebellion in this mode too. That
is an approximation; it does not re-measure line darkness in the user image.

`line_tolerance` grows the template lines by N pixels to absorb slight
misregistration between a photographed page and its template.
"""

import numpy as np
from PIL import Image, ImageFilter

from feats_metrics.core.imaging import flatten_alpha, resize_mask
from feats_metrics.core.types import DEFAULT_CALIBRATION, BoundaryScore, Calibration


def _grey(image: Image.Image) -> np.ndarray:
    return np.asarray(flatten_alpha(image).convert('L'))


def template_line_mask(
    template: Image.Image,
    calibration: Calibration = DEFAULT_CALIBRATION,
    size: tuple[int, int] | None = None,
) -> np.ndarray:
    """Line pixels of the blank template, optionally resampled to `size` (width, height)."""
    lines = _grey(template) < calibration.template_line_level
    if size is not None:
        lines = resize_mask(lines, size)
    if calibration.line_tolerance > 0:
        window = 2 * calibration.line_tolerance + 1
        grown = Image.fromarray(lines.astype(np.uint8) * 255).filter(ImageFilter.MaxFilter(window))
        lines = np.asarray(grown) > 0
    return lines


def user_ink_mask(image: Image.Image, calibration: Calibration = DEFAULT_CALIBRATION) -> np.ndarray:
    return _grey(image) < calibration.user_ink_level


def boundary_masks(
    user: Image.Image,
    template: Image.Image,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (template_lines, user_ink, spill), all at the user image's size."""
    lines = template_line_mask(template, calibration, size=user.size)
    ink = user_ink_mask(user, calibration)
    spill = ink & ~lines
    return lines, ink, spill


def score_from_masks(lines: np.ndarray, ink: np.ndarray, spill: np.ndarray) -> BoundaryScore:
    ink_count = int(np.count_nonzero(ink))
    spill_count = int(np.count_nonzero(spill))
    rebellion = spill_count / ink_count if ink_count else 0.0
    return BoundaryScore(
        rebellion_score=rebellion,
        line_visibility_score=1.0 - rebellion,
        user_ink_pixels=ink_count,
        spill_pixels=spill_count,
        template_line_pixels=int(np.count_nonzero(lines)),
    )


def score_rebellion(
    user: Image.Image,
    template: Image.Image,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> BoundaryScore:
    return score_from_masks(*boundary_masks(user, template, calibration))
