from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pandas as pd
import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from worm_analysis.analysis.similarity import (  # noqa: E402
    ALL_ROWS,
    MISSING_LABEL,
    compare_matrices,
    compare_partition_matrices,
    compute_rdm,
    compute_similarity_by_label,
)
from worm_analysis.exceptions import (  # noqa: E402
    DimensionMismatchError,
    InsufficientDataError,
    WormAnalysisError,
)

NEURONS = ["neuron_1", "neuron_2", "neuron_3", "neuron_4"]


def make_table(labels: list, seed: int = 0) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    table = pd.DataFrame(rng.normal(size=(len(labels), len(NEURONS))), columns=NEURONS)
    table["behavior_name"] = labels
    return table


def test_rdm_is_symmetric_with_zero_diagonal() -> None:
    features = np.random.default_rng(0).normal(size=(8, 3))

    rdm = compute_rdm(features)

    assert rdm.shape == (8, 8)
    assert np.all(np.diag(rdm) == 0.0)
    np.testing.assert_allclose(rdm, rdm.T)


def test_rdm_uses_euclidean_distance() -> None:
    rdm = compute_rdm([[0.0, 0.0], [3.0, 4.0], [0.0, 1.0]])

    assert rdm[0, 1] == pytest.approx(5.0)
    assert rdm[0, 2] == pytest.approx(1.0)
    assert rdm[1, 2] == pytest.approx(np.sqrt(18.0))


def test_rdm_rejects_missing_values_and_empty_input() -> None:
    with pytest.raises(WormAnalysisError, match="missing values"):
        compute_rdm([[0.0, np.nan], [1.0, 2.0]])

    with pytest.raises(InsufficientDataError):
        compute_rdm(np.empty((0, 3)))


def test_similarity_matrices_have_unit_diagonal_and_are_symmetric() -> None:
    table = make_table(["forward"] * 12 + ["reverse"] * 8)

    result = compute_similarity_by_label(table, NEURONS, labels="behavior_name")

    assert set(result.matrices) == {"forward", "reverse"}
    for matrix in result.matrices.values():
        values = matrix.to_numpy()
        assert values.shape == (4, 4)
        assert np.all(np.diag(values) == 1.0)
        np.testing.assert_allclose(values, values.T)
        assert list(matrix.columns) == NEURONS


def test_small_partitions_are_reported_as_omitted() -> None:
    table = make_table(["forward"] * 10 + ["turn"])

    result = compute_similarity_by_label(table, NEURONS, labels="behavior_name")

    assert "turn" not in result.matrices
    assert "turn" in result.omitted
    assert "1 usable row" in result.omitted["turn"]
    summary = result.summary().set_index("partition")
    assert bool(summary.loc["turn", "computed"]) is False
    assert bool(summary.loc["forward", "computed"]) is True


def test_unlabelled_rows_are_reported_as_omitted() -> None:
    table = make_table(["forward"] * 6 + [None] * 3)

    result = compute_similarity_by_label(table, NEURONS, labels="behavior_name")

    assert list(result.matrices) == ["forward"]
    assert result.row_counts[MISSING_LABEL] == 3
    assert "3 row(s) without a label" in result.omitted[MISSING_LABEL]
    summary = result.summary().set_index("partition")
    assert bool(summary.loc[MISSING_LABEL, "computed"]) is False


def test_rows_with_missing_values_are_dropped_within_partition() -> None:
    table = make_table(["forward"] * 6 + ["stop"] * 3)
    table.loc[[6, 7], "neuron_2"] = np.nan

    result = compute_similarity_by_label(table, NEURONS, labels="behavior_name")

    assert result.row_counts == {"forward": 6, "stop": 1}
    assert "stop" in result.omitted


def test_constant_column_keeps_unit_diagonal() -> None:
    table = make_table(["forward"] * 10)
    table["neuron_3"] = 1.0

    result = compute_similarity_by_label(table, NEURONS, labels="behavior_name")

    matrix = result.matrices["forward"]
    assert matrix.loc["neuron_3", "neuron_3"] == 1.0
    assert np.isnan(matrix.loc["neuron_3", "neuron_1"])
    assert result.degenerate_columns["forward"] == ["neuron_3"]


def test_unpartitioned_similarity_uses_single_partition() -> None:
    table = make_table(["forward"] * 5 + ["reverse"] * 5)

    result = compute_similarity_by_label(table, NEURONS)

    assert list(result.matrices) == [ALL_ROWS]
    expected = table[NEURONS].corr().to_numpy()
    np.testing.assert_allclose(result.matrices[ALL_ROWS].to_numpy(), expected)


def test_label_sequence_must_match_rows() -> None:
    table = make_table(["forward"] * 5)

    with pytest.raises(DimensionMismatchError):
        compute_similarity_by_label(table, NEURONS, labels=["forward"] * 4)


def test_compare_matrix_with_itself_is_one() -> None:
    rdm = compute_rdm(np.random.default_rng(2).normal(size=(6, 3)))

    assert compare_matrices(rdm, rdm) == pytest.approx(1.0)


def test_compare_uses_full_flattened_matrices() -> None:
    a = np.array([[1.0, 2.0], [3.0, 4.0]])
    b = np.array([[2.0, 1.0], [5.0, 9.0]])

    assert compare_matrices(a, b) == pytest.approx(np.corrcoef(a.ravel(), b.ravel())[0, 1])


def test_compare_shape_mismatch_raises() -> None:
    with pytest.raises(DimensionMismatchError):
        compare_matrices(np.eye(3), np.eye(4))

    with pytest.raises(DimensionMismatchError, match="square"):
        compare_matrices(np.ones((2, 3)), np.ones((2, 3)))


def test_compare_partition_matrices_lists_each_pair() -> None:
    table = make_table(["forward"] * 10 + ["reverse"] * 10 + ["stop"] * 10)
    result = compute_similarity_by_label(table, NEURONS, labels="behavior_name")

    comparison = compare_partition_matrices(result)

    pairs = set(zip(comparison["label_a"], comparison["label_b"]))
    assert pairs == {("forward", "reverse"), ("forward", "stop"), ("reverse", "stop")}
    assert comparison["correlation"].between(-1, 1).all()
