"""Neuron-behaviour correlation with bootstrap significance."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from worm_analysis.exceptions import (
    DegenerateVarianceError,
    DimensionMismatchError,
    InsufficientDataError,
)
from worm_analysis.io.table_loader import BEHAVIOR_COLUMN

RandomSource = Union[None, int, np.random.Generator]

BOOTSTRAP_METHODS = ('centered', 'raw')
DEFAULT_N_RESAMPLES = 1000

# Slack for comparing |ci| with |c0| so float noise in identical resamples
# does not flip the count.
_P_VALUE_TOLERANCE = 1e-12


@dataclass(frozen=True)
class BootstrapResult:
    """Observed correlation, its bootstrap p-value and the resampled distribution."""

    observed: float
    p_value: float
    resampled: np.ndarray
    n_resamples: int
    n_excluded: int
    method: str


def _as_float_array(values: Iterable) -> np.ndarray:
    return pd.to_numeric(pd.Series(list(values), dtype=object), errors='coerce').to_numpy(dtype=float)


def complete_cases(a: Sequence, b: Sequence) -> Tuple[np.ndarray, np.ndarray]:
    """
    Drop rows where either sequence is missing.

    Raises:
        DimensionMismatchError: If the sequences differ in length
    """
    a_values = _as_float_array(a)
    b_values = _as_float_array(b)
    if len(a_values) != len(b_values):
        raise DimensionMismatchError(
            f"Sequences must have equal length ({len(a_values)} != {len(b_values)})"
        )
    keep = ~(np.isnan(a_values) | np.isnan(b_values))
    return a_values[keep], b_values[keep]


def pearson_complete_case(a: Sequence, b: Sequence) -> float:
    """
    Pearson correlation over the rows where both sequences are present.

    Args:
        a: First numeric sequence
        b: Second numeric sequence, same length as ``a``

    Returns:
        Correlation coefficient in [-1, 1]

    Raises:
        DimensionMismatchError: If the sequences differ in length
        InsufficientDataError: If fewer than 2 complete rows remain
        DegenerateVarianceError: If either sequence is constant over the complete rows
    """
    a_values, b_values = complete_cases(a, b)
    if len(a_values) < 2:
        raise InsufficientDataError(
            f"Need at least 2 complete observations for a correlation, got {len(a_values)}"
        )
    if np.all(a_values == a_values[0]) or np.all(b_values == b_values[0]):
        raise DegenerateVarianceError("Correlation undefined for a zero-variance sequence")

    a_centered, a_norm = _scaled_centered(a_values)
    b_centered, b_norm = _scaled_centered(b_values)
    denominator = a_norm * b_norm
    if not np.isfinite(denominator) or denominator == 0:
        raise DegenerateVarianceError("Correlation undefined: variance is zero or not finite")

    r = np.dot(a_centered, b_centered) / denominator
    return float(np.clip(r, -1.0, 1.0))


def _scaled_centered(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Centre along the last axis, keeping values near unit magnitude.

    Values are divided by their max magnitude before and after centring so
    the dot products neither overflow nor underflow. Returns the centred
    values and their Euclidean norm (0 or non-finite when degenerate).
    """
    with np.errstate(invalid='ignore', divide='ignore', over='ignore'):
        scale = np.abs(values).max(axis=-1, keepdims=True)
        scaled = values / np.where(scale > 0, scale, 1.0)
        centered = scaled - scaled.mean(axis=-1, keepdims=True)
        spread = np.abs(centered).max(axis=-1, keepdims=True)
        centered = centered / np.where(spread > 0, spread, 1.0)
        norm = np.sqrt(np.einsum('...i,...i->...', centered, centered))
    return centered, norm


def _resolve_rng(rng: RandomSource) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def _rowwise_pearson(a: np.ndarray, b: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Correlate matching rows of two (R, n) arrays; second value flags degenerate rows."""

    a_centered, a_norm = _scaled_centered(a)
    b_centered, b_norm = _scaled_centered(b)
    numerator = np.einsum('ij,ij->i', a_centered, b_centered)
    denominator = a_norm * b_norm

    degenerate = (
        np.all(a == a[:, :1], axis=1)
        | np.all(b == b[:, :1], axis=1)
        | ~np.isfinite(denominator)
        | (denominator == 0)
    )
    r = np.full(a.shape[0], np.nan)
    valid = ~degenerate
    r[valid] = np.clip(numerator[valid] / denominator[valid], -1.0, 1.0)
    return r, degenerate


def bootstrap_correlation(
    feature: Sequence,
    label: Sequence,
    n_resamples: int = DEFAULT_N_RESAMPLES,
    rng: RandomSource = None,
    method: str = 'centered',
) -> BootstrapResult:
    """
    Bootstrap the joint (feature, label) distribution to test a correlation.

    Each resample draws ``n`` row indices with replacement and uses the same
    indices for both sequences, so the feature/label pairing is preserved.
    Resamples in which either sequence is constant have no defined
    correlation; they are left out of the p-value denominator and counted in
    ``n_excluded``.

    With ``method='centered'`` the bootstrap distribution is shifted onto the
    null hypothesis and the p-value is the fraction of resamples with
    ``|ci - c0| >= |c0|``. With ``method='raw'`` it is the fraction with
    ``|ci| >= |c0|``.

    Args:
        feature: Numeric sequence (e.g. one neuron trace)
        label: Numeric sequence of the same length (e.g. behaviour codes)
        n_resamples: Number of bootstrap resamples
        rng: ``numpy.random.Generator``, integer seed, or None for fresh entropy
        method: 'centered' or 'raw'

    Returns:
        BootstrapResult with the observed correlation, p-value and the valid
        resampled correlations

    Raises:
        InsufficientDataError: If there are fewer than 2 complete rows or every
            resample is degenerate
        DegenerateVarianceError: If the observed data has zero variance
        ValueError: For an unknown method or a non-positive resample count
    """
    if method not in BOOTSTRAP_METHODS:
        raise ValueError(f"Unknown bootstrap method '{method}', expected one of {BOOTSTRAP_METHODS}")
    if n_resamples <= 0:
        raise ValueError("n_resamples must be a positive integer")

    feature_values, label_values = complete_cases(feature, label)
    n = len(feature_values)
    if n == 0:
        raise InsufficientDataError("Cannot bootstrap an empty sample")

    observed = pearson_complete_case(feature_values, label_values)

    generator = _resolve_rng(rng)
    indices = generator.integers(0, n, size=(n_resamples, n))
    resampled, degenerate = _rowwise_pearson(feature_values[indices], label_values[indices])

    valid = resampled[~degenerate]
    n_excluded = int(degenerate.sum())
    if valid.size == 0:
        raise InsufficientDataError(f"All {n_resamples} bootstrap resamples had zero variance")

    if method == 'centered':
        extreme = np.abs(valid - observed) >= abs(observed) - _P_VALUE_TOLERANCE
    else:
        extreme = np.abs(valid) >= abs(observed) - _P_VALUE_TOLERANCE

    return BootstrapResult(
        observed=observed,
        p_value=float(extreme.mean()),
        resampled=valid,
        n_resamples=n_resamples,
        n_excluded=n_excluded,
        method=method,
    )


def correlate_neurons_with_behavior(
    table: pd.DataFrame,
    neuron_columns: List[str],
    label_column: str = BEHAVIOR_COLUMN,
    n_resamples: int = DEFAULT_N_RESAMPLES,
    rng: RandomSource = None,
    method: str = 'centered',
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Correlate every neuron trace with the behaviour label.

    Neurons whose correlation is undefined (constant trace, too few complete
    rows) are kept in the output with NaN values and a ``status`` of
    'degenerate' or 'insufficient' rather than dropped.

    Args:
        table: Observation table
        neuron_columns: Neuron columns to test
        label_column: Column holding the behaviour code
        n_resamples: Bootstrap resamples per neuron
        rng: Shared random source; a seed is turned into one Generator for the whole table
        method: Bootstrap p-value method
        verbose: Whether to print progress information

    Returns:
        DataFrame indexed by neuron with columns correlation, p_value,
        n_resamples_used, n_resamples_excluded, status
    """
    if verbose:
        print(f"Correlating {len(neuron_columns)} neurons with '{label_column}' ({n_resamples} resamples)...")
        start_time = time.time()

    generator = _resolve_rng(rng)
    labels = table[label_column]

    rows = []
    for neuron in neuron_columns:
        row = {
            'neuron': neuron,
            'correlation': np.nan,
            'p_value': np.nan,
            'n_resamples_used': 0,
            'n_resamples_excluded': 0,
            'status': 'ok',
        }
        try:
            result = bootstrap_correlation(table[neuron], labels, n_resamples=n_resamples, rng=generator, method=method)
        except DegenerateVarianceError:
            row['status'] = 'degenerate'
        except InsufficientDataError:
            row['status'] = 'insufficient'
        else:
            row.update(
                correlation=result.observed,
                p_value=result.p_value,
                n_resamples_used=len(result.resampled),
                n_resamples_excluded=result.n_excluded,
            )
        rows.append(row)

    results = pd.DataFrame(
        rows,
        columns=['neuron', 'correlation', 'p_value', 'n_resamples_used', 'n_resamples_excluded', 'status'],
    ).set_index('neuron')

    if verbose:
        skipped = (results['status'] != 'ok').sum()
        print(f"  Done in {time.time() - start_time:.2f} seconds"
              f" ({skipped} neuron(s) without a defined correlation)")

    return results


__all__ = [
    'BootstrapResult',
    'BOOTSTRAP_METHODS',
    'DEFAULT_N_RESAMPLES',
    'complete_cases',
    'pearson_complete_case',
    'bootstrap_correlation',
    'correlate_neurons_with_behavior',
]
