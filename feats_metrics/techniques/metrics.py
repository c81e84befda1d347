"""Full pipeline: white space, dominant colours, line visibility, rebellion, fill consistency.

Downscales to at most 800px on the longest side (area averaging), finds
the adaptive paper-white threshold, splits pixels into background / ink /
colored masks, and reduces them to the feature vector.

With --template, rebellion is measured by subtracting the template's line
art from the user's marks (method 'template'). Without it, rebellion is
inferred as 1 - line visibility (method 'inference').

Tune constants with --set NAME=VALUE or FEATS_<NAME> env vars, e.g.
--set fill_strategy=neighbor --set blue_purple_split=260.

Example:
    uv run feats-tool metrics ./tmp colored.jpg
    uv run feats-tool metrics ./tmp colored.jpg --template blank.png --json
"""

from feats_metrics.core.pipeline import analyze
from feats_metrics.core.types import Artwork, Report, Technique

technique = Technique(
    name='metrics',
    help='Compute the CVMetrics feature vector (space, colours, boundary, fill consistency).',
)


@technique.run
def run(artwork: Artwork, report: Report, args) -> None:
    metrics = analyze(artwork.image, artwork.template, artwork.calibration)
    report.add('metrics', metrics.to_dict())
