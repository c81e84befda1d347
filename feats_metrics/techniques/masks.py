"""Save the background / ink / colored region masks as PNGs.

Writes to <tmp_dir>:
  background.png  paper pixels (white)
  ink.png         dark line-art pixels (white)
  colored.png     user-applied colour (white)
  regions.png     overlay: white = paper, black = ink, orange = colored

Reports the adaptive white threshold and the pixel count of each mask.
Useful for checking calibration on a badly lit photograph.

Example:
    uv run feats-tool masks ./tmp colored.jpg
    uv run feats-tool masks ./tmp colored.jpg --set white_coefficient=0.85
"""

import os

import numpy as np
from PIL import Image

from feats_metrics.core.masks import overlay
from feats_metrics.core.pipeline import prepare, segment
from feats_metrics.core.types import Artwork, Report, Technique

technique = Technique(
    name='masks',
    help='Split into background / ink / colored masks. Save each as a PNG.',
)


@technique.run
def run(artwork: Artwork, report: Report, args) -> None:
    prepared = prepare(artwork.image, artwork.calibration)
    if prepared.width == 0 or prepared.height == 0:
        report.add('masks', {'error': 'image has no pixels'})
        return

    rgb = np.asarray(prepared, dtype=np.uint8)
    threshold, masks = segment(rgb, artwork.calibration)

    tmp_dir = getattr(args, 'tmp_dir', '.tmp')
    os.makedirs(tmp_dir, exist_ok=True)
    files = []
    for name, mask in (('background', masks.background), ('ink', masks.ink), ('colored', masks.colored)):
        path = os.path.join(tmp_dir, f'{name}.png')
        Image.fromarray(mask.astype(np.uint8) * 255).save(path)
        files.append(path)
    overlay_path = os.path.join(tmp_dir, 'regions.png')
    Image.fromarray(overlay(masks)).save(overlay_path)
    files.append(overlay_path)

    report.add(
        'masks',
        {
            'white_threshold': round(threshold, 4),
            'counts': masks.counts(),
            'width': prepared.width,
            'height': prepared.height,
            'files': files,
        },
    )
