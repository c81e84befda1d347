"""Run every measurement technique, combine into a single report.

Runs: masks, metrics, palette.
Runs boundary too if --template is provided.
Skips: narrate (requires API key — run explicitly).

Example:
    uv run feats-tool all ./tmp colored.jpg
    uv run feats-tool all ./tmp colored.jpg --template blank.png --json
"""

from feats_metrics.core.types import Artwork, Report, Technique

technique = Technique(
    name='all',
    help='Run every measurement technique (except narrate). Combine into a single report.',
    automatic=False,
)


@technique.run
def run(artwork: Artwork, report: Report, args) -> None:
    from feats_metrics.registry import automatic

    for tech in automatic():
        # boundary only runs when a template is available
        if tech.name == 'boundary' and artwork.template is None:
            continue
        tech.execute(artwork, report, args)
