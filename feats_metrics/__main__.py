"""feats-tool — Objective colouring metrics for coloring-page artwork.

Usage: uv run feats-tool <technique> <tmp_dir> <image> [options]

Techniques are auto-discovered from feats_metrics/techniques/.
Each technique module's docstring is its documentation.
Run `feats-tool help <technique>` for full module docs.

Environment variables / .env loading:
  OS environment variables are always used first.
  If a variable is not set, feats-tool looks for a .env file starting from
  the current directory and walking up, stopping at the nearest .git boundary.
  Use --env-file to override the .env location explicitly.
  Calibration constants can be set with FEATS_<NAME>=value or --set name=value.
"""

import argparse
import importlib
import json
import os
import sys
from pathlib import Path

from feats_metrics import registry
from feats_metrics.core.env import load_calibration, load_env
from feats_metrics.core.errors import FeatsError
from feats_metrics.core.history import AnalysisRecord, HistoryStore
from feats_metrics.core.imaging import PillowDecoder, wait_until_ready
from feats_metrics.core.report import format_history, format_json, format_text
from feats_metrics.core.types import Artwork, Calibration, Emotion, Report

# Techniques whose results are worth keeping in --history
_RECORDED = {'metrics', 'all', 'narrate'}


def _load_technique_module(name: str) -> object:
    """Load the raw module for a technique (for docstring access)."""
    return importlib.import_module(f'feats_metrics.techniques.{name}')


def _short_doc(name: str, fallback: str) -> str:
    doc = (_load_technique_module(name).__doc__ or '').strip()
    return doc.splitlines()[0] if doc else fallback


def _build_parser() -> argparse.ArgumentParser:
    techniques = registry.all_techniques()

    epilog = (
        'Examples:\n'
        '  feats-tool metrics ./tmp colored.jpg\n'
        '  feats-tool all ./tmp colored.jpg --template blank.png --json\n'
        '  feats-tool masks ./tmp photo.jpg --set white_coefficient=0.85\n'
        '  feats-tool narrate ./tmp colored.jpg --emotion Joy,Excited --history history.json\n'
        '  feats-tool history history.json\n'
        '  feats-tool help metrics\n'
        '\n'
        'Provider env vars (set in .env or environment):\n'
        '  OPENAI_API_KEY  + OPENAI_API_URL=https://api.openai.com/v1\n'
        '  GEMINI_API_KEY  (OpenAI-compatible endpoint, URL built in)\n'
        '  Any OpenAI-compatible: NAME_API_KEY + NAME_API_URL + NAME_MODEL\n'
        '\n'
        f'Calibration names: {", ".join(Calibration.names())}\n'
    )
    parser = argparse.ArgumentParser(
        prog='feats-tool',
        description='Objective colouring metrics for coloring-page artwork.',
        epilog=epilog,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        '--env-file',
        metavar='PATH',
        default=None,
        help='Path to .env file (default: walk up from cwd to .git boundary)',
    )
    sub = parser.add_subparsers(dest='technique', help='Technique to run')

    # Auto-register each technique as a subcommand using module docstring
    for name, tech in sorted(techniques.items()):
        p = sub.add_parser(name, help=_short_doc(name, tech.help))
        p.add_argument('tmp_dir', help='Working directory for artefacts')
        p.add_argument('image', help='Path to the coloured image (PNG/JPG)')
        p.add_argument('-t', '--template', help='Blank template image for exact boundary scoring')
        p.add_argument('-j', '--json', action='store_true', help='Output JSON instead of text')
        p.add_argument(
            '-s',
            '--set',
            action='append',
            default=[],
            metavar='NAME=VALUE',
            help='Override a calibration constant (repeatable)',
        )
        p.add_argument('-k', '--api-key', help='LLM API key (overrides env var)')
        p.add_argument(
            '-p',
            '--provider',
            default='openai',
            help='LLM provider name (default: openai). Any OpenAI-compatible name works.',
        )
        p.add_argument('-e', '--emotion', metavar='P,S[,T]', help='Self-reported emotion: primary,secondary[,tertiary]')
        p.add_argument('-n', '--name', help='Name to store with the analysis')
        p.add_argument('-H', '--history', metavar='PATH', help='Append the analysis to this history file')

    # `help` subcommand — prints full module docstring for a technique
    help_parser = sub.add_parser('help', help='Print full docs for a technique')
    help_parser.add_argument('command', nargs='?', help='Technique name')

    # `history` subcommand — lists stored analyses, newest first
    history_parser = sub.add_parser('history', help='List stored analyses, newest first')
    history_parser.add_argument('path', help='History file written by --history')
    history_parser.add_argument('-l', '--limit', type=int, default=None, help='Show at most N records')
    history_parser.add_argument('-j', '--json', action='store_true', help='Output JSON instead of text')

    return parser


def _print_help(command: str | None) -> None:
    """Print full module docstring for a technique."""
    techniques = registry.all_techniques()

    if command is None:
        print('Available techniques:\n')
        for name, tech in sorted(techniques.items()):
            print(f'  {name:<10} {_short_doc(name, tech.help)}')
        print('\nRun: feats-tool help <technique> for full docs.')
        return

    if command not in techniques:
        print(f'Unknown technique: {command}', file=sys.stderr)
        print(f'Available: {", ".join(sorted(techniques))}', file=sys.stderr)
        sys.exit(1)

    doc = (_load_technique_module(command).__doc__ or '').strip()
    if not doc:
        print(f'(No module docs for {command!r})')
        return
    print(doc)


def _print_history(args: argparse.Namespace) -> None:
    records = HistoryStore(args.path).list_recent(args.limit)
    if args.json:
        print(json.dumps([r.to_dict() for r in records], indent=2))
    else:
        print(format_history(records))


def _load_artwork(args: argparse.Namespace) -> Artwork:
    """Decode the image (and template) and resolve calibration. Raises FeatsError."""
    calibration = load_calibration(args.set)
    decoder = PillowDecoder()
    wait_until_ready(decoder)
    image = decoder.decode(Path(args.image).read_bytes())
    template = decoder.decode(Path(args.template).read_bytes()) if args.template else None
    return Artwork(name=os.path.basename(args.image), image=image, template=template, calibration=calibration)


def _record(report: Report, args: argparse.Namespace) -> AnalysisRecord:
    narrative = report.sections.get('narrate')
    record = AnalysisRecord.new(
        image_path=args.image,
        metrics=report.sections['metrics'],
        template_path=args.template,
        user_name=args.name,
        emotion=args.emotion.to_dict() if args.emotion else None,
        narrative=narrative if narrative and 'error' not in narrative else None,
    )
    HistoryStore(args.history).put(record)
    return record


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Load .env before anything else — OS env vars always win
    env_path = load_env(env_file=getattr(args, 'env_file', None))
    if env_path:
        print(f'feats-tool: loaded {env_path}', file=sys.stderr)

    if not args.technique:
        parser.print_help()
        sys.exit(1)

    if args.technique == 'help':
        _print_help(getattr(args, 'command', None))
        return

    if args.technique == 'history':
        try:
            _print_history(args)
        except FeatsError as e:
            print(f'feats-tool: history failed: {e}', file=sys.stderr)
            sys.exit(1)
        return

    for label, path in (('image', args.image), ('template', args.template)):
        if path and not os.path.isfile(path):
            print(f'Error: {label} not found: {path}', file=sys.stderr)
            sys.exit(1)

    if args.emotion:
        try:
            args.emotion = Emotion.parse(args.emotion)
        except ValueError as e:
            parser.error(str(e))

    try:
        artwork = _load_artwork(args)
    except FeatsError as e:
        print(f'feats-tool: analysis failed: {e}', file=sys.stderr)
        sys.exit(1)

    report = Report(
        image_path=args.image,
        image_width=artwork.image.width,
        image_height=artwork.image.height,
        template_path=args.template,
    )

    tech = registry.get(args.technique)
    tech.execute(artwork, report, args)

    if args.json:
        print(format_json(report))
    else:
        print(format_text(report), end='')

    if args.history and args.technique in _RECORDED and 'metrics' in report.sections:
        try:
            record = _record(report, args)
        except FeatsError as e:
            print(f'feats-tool: history failed: {e}', file=sys.stderr)
            sys.exit(1)
        print(f'feats-tool: saved analysis {record.id} to {args.history}', file=sys.stderr)


if __name__ == '__main__':
    main()
