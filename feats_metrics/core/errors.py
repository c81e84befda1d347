"""Error types raised by the analysis pipeline.

Every failure is terminal for the analysis call that raised it. Degenerate
images (blank, zero-area, no chromatic pixels) are NOT errors: the affected
metrics fall back to 0 or an empty colour list.
"""


class FeatsError(Exception):
    """Base class for all feats-tool failures."""


class DecodeError(FeatsError):
    """Input bytes could not be turned into a pixel buffer."""


class DependencyUnavailableError(FeatsError):
    """The image decoder never reported ready within the allowed wait."""


class CalibrationError(FeatsError, ValueError):
    """A calibration override named an unknown constant or an invalid value."""


class HistoryError(FeatsError):
    """The history file exists but is not a readable history."""
