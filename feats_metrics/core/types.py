"""Shared types for feats-tool: Calibration, ColorBucket, PixelMasks, CVMetrics, Technique, Report."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any

import numpy as np
from PIL import Image

from feats_metrics.core.errors import CalibrationError


class ColorBucket(str, Enum):
    """Named colour buckets. Declaration order is the tie-break order for equal counts."""

    RED = 'Red'
    ORANGE = 'Orange'
    YELLOW = 'Yellow'
    GREEN = 'Green'
    TEAL = 'Teal'
    BLUE = 'Blue'
    PURPLE = 'Purple'
    PINK = 'Pink'
    GRAY = 'Gray'
    BLACK = 'Black'
    WHITE = 'White'

    @property
    def chromatic(self) -> bool:
        return self not in ACHROMATIC


ACHROMATIC = frozenset({ColorBucket.GRAY, ColorBucket.BLACK, ColorBucket.WHITE})

# Index order used by vectorised classification
BUCKETS: tuple[ColorBucket, ...] = tuple(ColorBucket)

FILL_STRATEGIES = ('stddev', 'neighbor')

# Fields that must lie in [0, 1]
_FRACTIONS = (
    'white_coefficient',
    'dark_image_floor',
    'paper_saturation',
    'ink_lightness',
    'black_lightness',
    'white_lightness',
    'gray_saturation',
)


@dataclass(frozen=True)
class Calibration:
    """Tunable constants for the pipeline.

    None of these are semantic contracts. Override them with
    `with_overrides()`, FEATS_<NAME> environment variables or `--set NAME=VALUE`.
    """

    max_dimension: int = 800  # longest side analysed, 0 disables downscaling
    histogram_size: int = 100  # side of the colour histogram downscale
    top_colours: int = 3
    white_coefficient: float = 0.90  # fraction of brightest lightness that counts as paper
    dark_image_floor: float = 0.5  # below this max lightness, assume true white paper
    paper_saturation: float = 0.2  # paper must be less saturated than this
    ink_lightness: float = 0.25  # darker than this is line art
    baseline_line_coverage: float = 0.05  # ink share of an untouched line-art page
    fill_strategy: str = 'stddev'
    stddev_ceiling: float = 60.0  # avg channel std-dev that scores 0
    neighbor_ceiling: float = 50.0  # avg right-neighbour L1 distance that scores 0
    black_lightness: float = 0.15
    white_lightness: float = 0.93
    gray_saturation: float = 0.15
    blue_purple_split: float = 250.0
    purple_pink_split: float = 290.0
    template_line_level: int = 128  # template grey below this is a line
    user_ink_level: int = 235  # user grey below this is a mark
    line_tolerance: int = 0  # template lines grown by this many pixels

    def __post_init__(self) -> None:
        for name in _FRACTIONS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise CalibrationError(f'{name} must be within [0, 1], got {value}')
        if not 0.0 < self.baseline_line_coverage <= 1.0:
            raise CalibrationError(f'baseline_line_coverage must be within (0, 1], got {self.baseline_line_coverage}')
        if self.stddev_ceiling <= 0 or self.neighbor_ceiling <= 0:
            raise CalibrationError('messiness ceilings must be positive')
        if not 190.0 < self.blue_purple_split < self.purple_pink_split < 340.0:
            raise CalibrationError(
                f'hue splits must satisfy 190 < blue_purple_split < purple_pink_split < 340, '
                f'got {self.blue_purple_split}, {self.purple_pink_split}'
            )
        for name in ('template_line_level', 'user_ink_level'):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise CalibrationError(f'{name} must be within [0, 255], got {value}')
        if self.max_dimension < 0 or self.histogram_size < 1 or self.top_colours < 1 or self.line_tolerance < 0:
            raise CalibrationError('sizes and counts must be non-negative (histogram_size, top_colours >= 1)')
        if self.fill_strategy not in FILL_STRATEGIES:
            raise CalibrationError(f'fill_strategy must be one of {FILL_STRATEGIES}, got {self.fill_strategy!r}')

    @classmethod
    def names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def with_overrides(self, **values: Any) -> Calibration:
        """Return a copy with the given constants replaced. String values are coerced."""
        known = set(self.names())
        coerced: dict[str, Any] = {}
        for name, value in values.items():
            if name not in known:
                raise CalibrationError(f'Unknown calibration constant: {name}. Known: {", ".join(sorted(known))}')
            kind = type(getattr(self, name))
            try:
                coerced[name] = kind(value)
            except (TypeError, ValueError) as e:
                raise CalibrationError(f'{name}: cannot use {value!r} as {kind.__name__}') from e
        return replace(self, **coerced)


DEFAULT_CALIBRATION = Calibration()


@dataclass(frozen=True)
class PixelMasks:
    """Three disjoint boolean masks that together cover every pixel."""

    background: np.ndarray
    ink: np.ndarray
    colored: np.ndarray

    @property
    def total(self) -> int:
        return int(self.background.size)

    def counts(self) -> dict[str, int]:
        return {
            'background': int(np.count_nonzero(self.background)),
            'ink': int(np.count_nonzero(self.ink)),
            'colored': int(np.count_nonzero(self.colored)),
        }


@dataclass(frozen=True)
class DominantColor:
    color: ColorBucket
    percentage: float  # share of chromatic pixels, 0-100

    def to_dict(self) -> dict[str, Any]:
        return {'color': self.color.value, 'percentage': round(self.percentage, 2)}


@dataclass(frozen=True)
class BoundaryScore:
    """Result of comparing a coloured image against its blank template."""

    rebellion_score: float
    line_visibility_score: float
    user_ink_pixels: int
    spill_pixels: int
    template_line_pixels: int


@dataclass
class CVMetrics:
    """Feature vector describing how an image was coloured.

    `method` is 'inference' when rebellion is the complement of line
    visibility, 'template' when it was measured against a blank template.
    """

    white_space_ratio: float
    dominant_colors: list[DominantColor]
    line_visibility_score: float
    rebellion_score: float
    fill_consistency_score: float
    method: str = 'inference'

    def to_dict(self) -> dict[str, Any]:
        return {
            'white_space_ratio': round(self.white_space_ratio, 4),
            'dominant_colors': [c.to_dict() for c in self.dominant_colors],
            'line_visibility_score': round(self.line_visibility_score, 4),
            'rebellion_score': round(self.rebellion_score, 4),
            'fill_consistency_score': round(self.fill_consistency_score, 4),
            'method': self.method,
        }


@dataclass(frozen=True)
class Emotion:
    """Self-reported emotion triple from the emotion wheel."""

    primary: str
    secondary: str
    tertiary: str | None = None

    @classmethod
    def parse(cls, text: str) -> Emotion:
        """Parse 'primary,secondary[,tertiary]'."""
        parts = [p.strip() for p in text.split(',') if p.strip()]
        if len(parts) < 2 or len(parts) > 3:
            raise ValueError(f'emotion must be PRIMARY,SECONDARY[,TERTIARY], got {text!r}')
        return cls(parts[0], parts[1], parts[2] if len(parts) == 3 else None)

    def to_dict(self) -> dict[str, str | None]:
        return {'primary': self.primary, 'secondary': self.secondary, 'tertiary': self.tertiary}


@dataclass
class Narrative:
    """Answer from the generative text collaborator."""

    visual_evidence: list[str]
    personality_snapshot: str
    disclaimer: str

    def to_dict(self) -> dict[str, Any]:
        return {
            'visual_evidence': list(self.visual_evidence),
            'personality_snapshot': self.personality_snapshot,
            'disclaimer': self.disclaimer,
        }


@dataclass
class Artwork:
    """A decoded coloured image, its optional blank template, and the calibration to analyse it with."""

    name: str
    image: Image.Image
    template: Image.Image | None = None
    calibration: Calibration = DEFAULT_CALIBRATION


class Technique:
    """A self-registering analysis technique.

    Usage in a technique module:

        technique = Technique(name='palette', help='Chromatic bucket distribution')

        @technique.run
        def run(artwork, report, args):
            ...
    """

    def __init__(self, name: str, help: str = '', automatic: bool = True):
        self.name = name
        self.help = help
        self.automatic = automatic  # False: runs only when asked for by name
        self._run_fn: Callable | None = None

    def run(self, fn: Callable) -> Callable:
        """Decorator to register the run function."""
        self._run_fn = fn
        return fn

    def execute(self, artwork: Artwork, report: Report, args: Any) -> None:
        """Execute the technique's run function."""
        if self._run_fn is None:
            raise RuntimeError(f'Technique {self.name} has no run function')
        self._run_fn(artwork, report, args)


@dataclass
class Report:
    """Accumulates results from techniques for text/JSON output."""

    image_path: str = ''
    image_width: int = 0
    image_height: int = 0
    template_path: str | None = None
    sections: dict[str, dict[str, Any]] = field(default_factory=dict)

    def add(self, technique_name: str, data: dict[str, Any]) -> None:
        """Add (or replace) the results of one technique."""
        self.sections[technique_name] = data
