"""Representational dissimilarity / similarity matrices and their comparison."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from worm_analysis.analysis.correlation import pearson_complete_case
from worm_analysis.exceptions import (
    DimensionMismatchError,
    InsufficientDataError,
    WormAnalysisError,
)

ALL_ROWS = 'all'
MISSING_LABEL = 'missing_label'

MatrixLike = Union[np.ndarray, pd.DataFrame]


@dataclass
class SimilarityResult:
    """Per-partition neuron similarity matrices plus the partitions that were skipped."""

    matrices: Dict[Hashable, pd.DataFrame] = field(default_factory=dict)
    omitted: Dict[Hashable, str] = field(default_factory=dict)
    row_counts: Dict[Hashable, int] = field(default_factory=dict)
    degenerate_columns: Dict[Hashable, List[str]] = field(default_factory=dict)

    def summary(self) -> pd.DataFrame:
        """One row per partition: usable row count and whether it was computed or omitted."""

        rows = []
        for label in sorted(self.row_counts, key=str):
            rows.append({
                'partition': label,
                'n_rows': self.row_counts[label],
                'computed': label in self.matrices,
                'omitted_reason': self.omitted.get(label, ''),
                'n_degenerate_columns': len(self.degenerate_columns.get(label, [])),
            })
        return pd.DataFrame(rows, columns=['partition', 'n_rows', 'computed', 'omitted_reason', 'n_degenerate_columns'])


def compute_rdm(features: MatrixLike) -> np.ndarray:
    """
    Pairwise Euclidean distances between observations.

    Args:
        features: (n_observations, n_features) matrix

    Returns:
        (n, n) symmetric distance matrix with an exact zero diagonal

    Raises:
        InsufficientDataError: If there are no observations
        WormAnalysisError: If the matrix contains missing values
    """
    values = np.asarray(features, dtype=float)
    if values.ndim != 2:
        raise DimensionMismatchError(f"Expected a 2-D feature matrix, got shape {values.shape}")
    if values.shape[0] == 0:
        raise InsufficientDataError("Cannot build an RDM from zero observations")
    if np.isnan(values).any():
        raise WormAnalysisError("Feature matrix contains missing values; fill or drop them before building an RDM")

    if values.shape[0] == 1:
        return np.zeros((1, 1))

    rdm = squareform(pdist(values, metric='euclidean'))
    np.fill_diagonal(rdm, 0.0)
    return rdm


def _correlation_matrix(block: pd.DataFrame) -> pd.DataFrame:
    corr = block.corr(method='pearson')
    values = corr.to_numpy(copy=True)
    np.fill_diagonal(values, 1.0)
    return pd.DataFrame(values, index=corr.index, columns=corr.columns)


def compute_similarity_by_label(
    table: pd.DataFrame,
    columns: Sequence[str],
    labels: Optional[Union[str, Sequence]] = None,
    min_rows: int = 2,
) -> SimilarityResult:
    """
    Neuron-by-neuron Pearson similarity, optionally split by behaviour.

    Rows are grouped by label; within each group rows with any missing value
    in ``columns`` are dropped. Groups left with fewer than ``min_rows`` rows
    are recorded in ``SimilarityResult.omitted`` instead of raising, as are
    rows with no label (under ``MISSING_LABEL``).

    Args:
        table: Observation table
        columns: Columns (neurons) forming the similarity matrix
        labels: Column name in ``table`` or a per-row sequence; None uses one partition
        min_rows: Minimum usable rows per partition (at least 2)

    Returns:
        SimilarityResult
    """
    if min_rows < 2:
        raise ValueError("min_rows must be at least 2 for a correlation")

    columns = list(columns)
    block = table[columns]

    if labels is None:
        partition_labels = pd.Series(ALL_ROWS, index=table.index)
    elif isinstance(labels, str):
        partition_labels = table[labels]
    else:
        if len(labels) != len(table):
            raise DimensionMismatchError(f"Got {len(labels)} labels for {len(table)} rows")
        partition_labels = pd.Series(list(labels), index=table.index)

    result = SimilarityResult()
    n_unlabelled = int(partition_labels.isna().sum())
    if n_unlabelled:
        result.row_counts[MISSING_LABEL] = n_unlabelled
        result.omitted[MISSING_LABEL] = f"{n_unlabelled} row(s) without a label"

    for label, group in block.groupby(partition_labels, sort=True):
        usable = group.dropna()
        result.row_counts[label] = len(usable)
        if len(usable) < min_rows:
            result.omitted[label] = f"{len(usable)} usable row(s), need at least {min_rows}"
            continue

        constant = [col for col in columns if usable[col].nunique() < 2]
        if constant:
            result.degenerate_columns[label] = constant
        result.matrices[label] = _correlation_matrix(usable)

    return result


def compare_matrices(a: MatrixLike, b: MatrixLike) -> float:
    """
    Second-order comparison of two square matrices.

    Both matrices are flattened in full (diagonal and both triangles) and
    correlated with :func:`pearson_complete_case`, so NaN entries are excluded
    pairwise.

    Raises:
        DimensionMismatchError: If either matrix is not square or the shapes differ
    """
    a_values = np.asarray(a, dtype=float)
    b_values = np.asarray(b, dtype=float)
    for name, values in (('first', a_values), ('second', b_values)):
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise DimensionMismatchError(f"The {name} matrix must be square, got shape {values.shape}")
    if a_values.shape != b_values.shape:
        raise DimensionMismatchError(f"Matrix shapes differ: {a_values.shape} vs {b_values.shape}")

    return pearson_complete_case(a_values.ravel(), b_values.ravel())


def compare_partition_matrices(result: SimilarityResult) -> pd.DataFrame:
    """
    Compare every pair of partition matrices in ``result``.

    Pairs whose comparison is undefined keep a NaN correlation and a note.
    """
    rows = []
    labels = sorted(result.matrices, key=str)
    for label_a, label_b in itertools.combinations(labels, 2):
        row = {'label_a': label_a, 'label_b': label_b, 'correlation': np.nan, 'note': ''}
        try:
            row['correlation'] = compare_matrices(result.matrices[label_a], result.matrices[label_b])
        except InsufficientDataError as exc:
            row['note'] = str(exc)
        rows.append(row)
    return pd.DataFrame(rows, columns=['label_a', 'label_b', 'correlation', 'note'])


__all__ = [
    'ALL_ROWS',
    'MISSING_LABEL',
    'SimilarityResult',
    'compute_rdm',
    'compute_similarity_by_label',
    'compare_matrices',
    'compare_partition_matrices',
]
