"""Measure colouring outside the lines against the blank template.

Requires --template (the uncoloured page). Scored at the coloured image's
full resolution; the template's line mask is resampled to that size if
they differ. Template lines are pixels with
grey < template_line_level; user marks are pixels with grey < user_ink_level.
Spill = user marks that are not on a template line.

  rebellion = spill pixels / user mark pixels   (0 if no marks at all)

Generates <tmp_dir>/rebellion.png: red = spill, green = marks on template
lines, light grey = template lines left untouched.

Example:
    uv run feats-tool boundary ./tmp colored.png --template blank.png
    uv run feats-tool boundary ./tmp photo.jpg --template blank.png --set line_tolerance=2
"""

import os

import numpy as np
from PIL import Image

from feats_metrics.core.boundary import boundary_masks, score_from_masks
from feats_metrics.core.types import Artwork, Report, Technique

technique = Technique(
    name='boundary',
    help='Template-relative rebellion score (spill outside the lines). Requires --template.',
)


@technique.run
def run(artwork: Artwork, report: Report, args) -> None:
    if artwork.template is None:
        report.add('boundary', {'error': '--template blank template image required'})
        return

    lines, ink, spill = boundary_masks(artwork.image, artwork.template, artwork.calibration)
    score = score_from_masks(lines, ink, spill)

    h, w = lines.shape
    diff_img = np.full((h, w, 3), 255, dtype=np.uint8)
    diff_img[lines] = [210, 210, 210]
    diff_img[ink & lines] = [0, 200, 0]
    diff_img[spill] = [200, 0, 0]

    tmp_dir = getattr(args, 'tmp_dir', '.tmp')
    os.makedirs(tmp_dir, exist_ok=True)
    diff_path = os.path.join(tmp_dir, 'rebellion.png')
    Image.fromarray(diff_img).save(diff_path)

    report.add(
        'boundary',
        {
            'rebellion_score': round(score.rebellion_score, 4),
            'line_visibility_score': round(score.line_visibility_score, 4),
            'user_ink_pixels': score.user_ink_pixels,
            'spill_pixels': score.spill_pixels,
            'template_line_pixels': score.template_line_pixels,
            'diff_image': diff_path,
        },
    )
