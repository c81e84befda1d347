"""Full colour-bucket distribution of the colored region.

Same bucketing as 'metrics' (HSL, 100x100 area-averaged sample) but not
truncated to the top three. Chromatic buckets are reported as percentages
of chromatic pixels; Gray/Black/White pixels inside the colored region are
reported separately as the achromatic share.

Example:
    uv run feats-tool palette ./tmp colored.jpg
"""

import numpy as np

from feats_metrics.core.metrics import bucket_counts, colour_distribution
from feats_metrics.core.pipeline import prepare, segment
from feats_metrics.core.types import Artwork, Report, Technique

technique = Technique(
    name='palette',
    help='Chromatic bucket distribution (all buckets) plus achromatic share.',
)


@technique.run
def run(artwork: Artwork, report: Report, args) -> None:
    rgb = np.asarray(prepare(artwork.image, artwork.calibration), dtype=np.uint8)
    _threshold, masks = segment(rgb, artwork.calibration)
    counts = bucket_counts(rgb, masks.colored, artwork.calibration)

    samples = sum(counts.values())
    achromatic = {b.value: c for b, c in counts.items() if not b.chromatic}
    achromatic_total = sum(achromatic.values())
    report.add(
        'palette',
        {
            'chromatic': [c.to_dict() for c in colour_distribution(counts)],
            'achromatic': achromatic,
            'achromatic_pct': round(achromatic_total / samples * 100, 1) if samples else 0.0,
            'samples': samples,
        },
    )
