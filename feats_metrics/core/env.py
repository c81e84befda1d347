"""Environment and calibration loading for feats-tool.

Load order (first wins):
  1. --set NAME=VALUE flags on the command line.
  2. Existing OS environment variables — never overwritten.
  3. .env file at --env-file path (if explicitly provided).
  4. .env file walking up from cwd, stopping at .git (file or dir).
  5. Calibration defaults.

Calibration constants are read from FEATS_<NAME> variables, e.g.
FEATS_WHITE_COEFFICIENT=0.85 or FEATS_FILL_STRATEGY=neighbor.
"""

import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from feats_metrics.core.errors import CalibrationError
from feats_metrics.core.types import DEFAULT_CALIBRATION, Calibration

ENV_PREFIX = 'FEATS_'


def _find_dotenv(start: Path) -> Path | None:
    """Walk up from start, return first .env found, stop at .git boundary."""
    current = start.resolve()
    while True:
        candidate = current / '.env'
        if candidate.is_file():
            return candidate
        # .git can be a dir (normal clone) or file (worktree)
        if (current / '.git').exists():
            return None
        parent = current.parent
        if parent == current:
            return None
        current = parent


def _parse_dotenv(path: Path) -> dict[str, str]:
    """Parse a .env file into a dict. Handles KEY=value, KEY="value" and `export KEY=value`."""
    result: dict[str, str] = {}
    for line in path.read_text(encoding='utf-8').splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, _, raw_value = line.partition('=')
        key = key.strip().removeprefix('export ').strip()
        value = raw_value.strip().strip('"').strip("'")
        if key:
            result[key] = value
    return result


def load_env(env_file: str | None = None) -> Path | None:
    """Load .env into os.environ for keys not already set.

    Returns the path that was loaded, or None if no .env was found/used.
    """
    if env_file:
        path = Path(env_file)
        if not path.is_file():
            return None
    else:
        path = _find_dotenv(Path.cwd())
        if path is None:
            return None

    for key, value in _parse_dotenv(path).items():
        if key not in os.environ:
            os.environ[key] = value

    return path


def _parse_assignments(assignments: Iterable[str]) -> dict[str, str]:
    result: dict[str, str] = {}
    for item in assignments:
        name, sep, value = item.partition('=')
        if not sep or not name.strip():
            raise CalibrationError(f'expected NAME=VALUE, got {item!r}')
        result[name.strip().lower()] = value.strip()
    return result


def load_calibration(
    assignments: Iterable[str] = (),
    environ: Mapping[str, str] | None = None,
    base: Calibration = DEFAULT_CALIBRATION,
) -> Calibration:
    """Build a Calibration from FEATS_<NAME> variables, then NAME=VALUE assignments on top."""
    env = os.environ if environ is None else environ
    overrides: dict[str, str] = {}
    for name in Calibration.names():
        value = env.get(ENV_PREFIX + name.upper())
        if value is not None and value != '':
            overrides[name] = value
    overrides.update(_parse_assignments(assignments))
    if not overrides:
        return base
    return base.with_overrides(**overrides)
