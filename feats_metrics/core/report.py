"""Report builder — text and JSON output for feats-tool results."""

import json
import os
from datetime import datetime
from typing import Any

from feats_metrics.core.history import AnalysisRecord
from feats_metrics.core.types import Report


def _pct(value: float) -> str:
    return f'{value * 100:.1f}%'


def _colours(colours: list[dict[str, Any]]) -> str:
    if not colours:
        return '(none)'
    return ', '.join(f'{c["color"]}:{c["percentage"]:.1f}%' for c in colours)


def _metrics_lines(data: dict[str, Any]) -> list[str]:
    return [
        f'  white space: {_pct(data["white_space_ratio"])}',
        f'  colours: {_colours(data["dominant_colors"])}',
        f'  line visibility: {data["line_visibility_score"]:.2f}',
        f'  rebellion: {data["rebellion_score"]:.2f} ({data["method"]})',
        f'  fill consistency: {data["fill_consistency_score"]:.2f}',
    ]


def format_text(report: Report) -> str:
    """Format report as human-readable text."""
    lines = []
    dim = f'{report.image_width}×{report.image_height}'
    header = f'feats-tool: {report.image_path} ({dim})'
    if report.template_path:
        header += f' — template {os.path.basename(report.template_path)}'
    lines.append(header)
    lines.append('')

    for name, data in report.sections.items():
        lines.append(f'── {name}')
        if 'error' in data:
            lines.append(f'  error: {data["error"]}')
        elif name == 'metrics':
            lines.extend(_metrics_lines(data))
        elif name == 'masks':
            counts = data['counts']
            lines.append(f'  white threshold: {data["white_threshold"]:.3f}')
            lines.append(f'  background={counts["background"]} ink={counts["ink"]} colored={counts["colored"]}')
            lines.append(f'  files: {", ".join(data["files"])}')
        elif name == 'palette':
            lines.append(f'  chromatic: {_colours(data["chromatic"])}')
            lines.append(f'  achromatic share: {data["achromatic_pct"]:.1f}%')
        elif name == 'boundary':
            lines.append(
                f'  rebellion: {data["rebellion_score"]:.2f}  '
                f'spill {data["spill_pixels"]}/{data["user_ink_pixels"]} ink px'
            )
            lines.append(f'  diff: {data["diff_image"]}')
        elif name == 'narrate':
            for item in data['visual_evidence']:
                lines.append(f'  • {item}')
            lines.append(f'  {data["personality_snapshot"]}')
            lines.append(f'  ({data["disclaimer"]})')
        else:
            for k, v in data.items():
                lines.append(f'  {name}.{k}: {v}')
        lines.append('')

    return '\n'.join(lines).rstrip() + '\n'


def format_json(report: Report) -> str:
    """Format report as JSON."""
    obj: dict[str, Any] = {
        'image': report.image_path,
        'dimensions': {'width': report.image_width, 'height': report.image_height},
    }
    if report.template_path:
        obj['template'] = report.template_path
    obj['sections'] = report.sections
    return json.dumps(obj, indent=2)


def format_history(records: list[AnalysisRecord]) -> str:
    """One line per stored analysis, newest first."""
    if not records:
        return 'No analyses recorded.'
    lines = []
    for r in records:
        when = datetime.fromtimestamp(r.timestamp).strftime('%Y-%m-%d %H:%M')
        who = f' [{r.user_name}]' if r.user_name else ''
        m = r.metrics
        lines.append(
            f'{when}  {r.id[:8]}{who}  {os.path.basename(r.image_path)}  '
            f'space={_pct(m.get("white_space_ratio", 0.0))}  '
            f'rebellion={m.get("rebellion_score", 0.0):.2f}  '
            f'colours={_colours(m.get("dominant_colors", []))}'
        )
    return '\n'.join(lines)
