"""Error types raised by the worm analysis pipeline.

All errors derive from ``ValueError`` so code that already guards against bad
input data with ``except ValueError`` keeps working.
"""


class WormAnalysisError(ValueError):
    """Base class for data problems detected during analysis."""


class InsufficientDataError(WormAnalysisError):
    """Too few usable (non-missing, non-degenerate) observations."""


class DegenerateVarianceError(InsufficientDataError):
    """A sequence has zero variance, so a correlation is undefined."""


class DimensionMismatchError(WormAnalysisError):
    """Sequences or matrices that must line up have different shapes."""


class MissingRequiredColumnError(WormAnalysisError):
    """An expected column is absent after column-name normalisation."""


__all__ = [
    "WormAnalysisError",
    "InsufficientDataError",
    "DegenerateVarianceError",
    "DimensionMismatchError",
    "MissingRequiredColumnError",
]
