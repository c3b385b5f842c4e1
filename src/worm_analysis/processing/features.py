"""Velocity features and min-max scaling for worm recordings.

Positions are zero-filled before differencing. The normaliser leaves missing
values missing; correlations exclude them row by row later on.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from worm_analysis.exceptions import DimensionMismatchError
from worm_analysis.io.table_loader import X_COLUMN, Y_COLUMN

VELOCITY_COLUMN = 'velocity'
VELOCITY_X_COLUMN = 'velocity_x'
VELOCITY_Y_COLUMN = 'velocity_y'
VELOCITY_COLUMNS = [VELOCITY_COLUMN, VELOCITY_X_COLUMN, VELOCITY_Y_COLUMN]


def _zero_filled(values: Iterable) -> np.ndarray:
    numeric = pd.to_numeric(pd.Series(list(values), dtype=object), errors='coerce')
    return numeric.fillna(0.0).to_numpy(dtype=float)


def derive_velocity(
    x: Sequence,
    y: Sequence,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Compute frame-to-frame velocity from a position trace.

    Missing or non-numeric positions are treated as 0 before differencing.
    The first sample has no predecessor, so all three outputs start at 0.

    Args:
        x: Ordered x positions
        y: Ordered y positions (same length as ``x``)

    Returns:
        Tuple of (velocity magnitude, velocity_x, velocity_y)

    Raises:
        DimensionMismatchError: If ``x`` and ``y`` differ in length
    """
    x_values = _zero_filled(x)
    y_values = _zero_filled(y)
    if len(x_values) != len(y_values):
        raise DimensionMismatchError(
            f"x and y must have the same length ({len(x_values)} != {len(y_values)})"
        )

    velocity_x = np.zeros_like(x_values)
    velocity_y = np.zeros_like(y_values)
    velocity_x[1:] = np.diff(x_values)
    velocity_y[1:] = np.diff(y_values)
    magnitude = np.sqrt(velocity_x ** 2 + velocity_y ** 2)

    return magnitude, velocity_x, velocity_y


def add_velocity_features(
    df: pd.DataFrame,
    x_column: str = X_COLUMN,
    y_column: str = Y_COLUMN,
) -> pd.DataFrame:
    """Return a copy of ``df`` with ``velocity``, ``velocity_x`` and ``velocity_y`` columns."""

    out = df.copy()
    magnitude, velocity_x, velocity_y = derive_velocity(out[x_column], out[y_column])
    out[VELOCITY_COLUMN] = magnitude
    out[VELOCITY_X_COLUMN] = velocity_x
    out[VELOCITY_Y_COLUMN] = velocity_y
    return out


def normalize_min_max(values: Sequence) -> np.ndarray:
    """
    Rescale a sequence so its minimum maps to 0 and its maximum to 1.

    Only non-missing values enter the min/max; missing values stay NaN.
    A zero-range input (all present values equal) maps every present value
    to 0.0, and an all-missing input is returned as all NaN.
    """
    array = pd.to_numeric(pd.Series(list(values), dtype=object), errors='coerce').to_numpy(dtype=float)
    present = ~np.isnan(array)
    if not present.any():
        return array

    low = array[present].min()
    high = array[present].max()
    scaled = np.full_like(array, np.nan)
    if high == low:
        scaled[present] = 0.0
        return scaled

    scaled[present] = (array[present] - low) / (high - low)
    return scaled


def normalize_columns(df: pd.DataFrame, columns: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """Apply :func:`normalize_min_max` to each of ``columns`` (all numeric columns by default)."""

    out = df.copy()
    if columns is None:
        columns = out.select_dtypes(include='number').columns
    for column in columns:
        out[column] = normalize_min_max(out[column])
    return out


__all__ = [
    'VELOCITY_COLUMN',
    'VELOCITY_X_COLUMN',
    'VELOCITY_Y_COLUMN',
    'VELOCITY_COLUMNS',
    'derive_velocity',
    'add_velocity_features',
    'normalize_min_max',
    'normalize_columns',
]
