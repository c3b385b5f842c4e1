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

from worm_analysis.exceptions import DimensionMismatchError  # noqa: E402
from worm_analysis.processing.features import (  # noqa: E402
    add_velocity_features,
    derive_velocity,
    normalize_columns,
    normalize_min_max,
)


def test_square_path_velocities() -> None:
    x = [0, 1, 1, 0, 0]
    y = [0, 0, 1, 1, 0]

    magnitude, velocity_x, velocity_y = derive_velocity(x, y)

    assert list(magnitude) == [0, 1, 1, 1, 1]
    assert list(velocity_x) == [0, 1, 0, -1, 0]
    assert list(velocity_y) == [0, 0, 1, 0, -1]


def test_first_velocity_is_zero_and_magnitude_matches_components() -> None:
    rng = np.random.default_rng(3)
    x = rng.normal(size=30).cumsum()
    y = rng.normal(size=30).cumsum()

    magnitude, velocity_x, velocity_y = derive_velocity(x, y)

    assert magnitude[0] == velocity_x[0] == velocity_y[0] == 0
    np.testing.assert_allclose(magnitude, np.sqrt(velocity_x ** 2 + velocity_y ** 2))


def test_constant_positions_have_zero_velocity() -> None:
    magnitude, velocity_x, velocity_y = derive_velocity([4.0] * 6, [-2.0] * 6)

    assert not magnitude.any()
    assert not velocity_x.any()
    assert not velocity_y.any()


def test_missing_positions_are_zero_filled_before_differencing() -> None:
    magnitude, velocity_x, velocity_y = derive_velocity([1.0, np.nan, 3.0], [None, 2.0, "bad"])

    assert list(velocity_x) == [0, -1, 3]
    assert list(velocity_y) == [0, 2, -2]
    assert not np.isnan(magnitude).any()


def test_single_sample_yields_single_zero_row() -> None:
    magnitude, velocity_x, velocity_y = derive_velocity([7.0], [9.0])

    assert list(magnitude) == [0]
    assert list(velocity_x) == [0]
    assert list(velocity_y) == [0]


def test_mismatched_position_lengths_raise() -> None:
    with pytest.raises(DimensionMismatchError):
        derive_velocity([0, 1, 2], [0, 1])


def test_add_velocity_features_keeps_original_columns() -> None:
    df = pd.DataFrame({"time": [0, 1, 2], "x": [0, 3, 3], "y": [0, 4, 4]})

    out = add_velocity_features(df)

    assert list(out["velocity"]) == [0, 5, 0]
    assert list(out["velocity_x"]) == [0, 3, 0]
    assert "velocity" not in df.columns


def test_normalize_maps_min_to_zero_and_max_to_one() -> None:
    scaled = normalize_min_max([2.0, 4.0, 6.0, 3.0])

    assert scaled.min() == 0
    assert scaled.max() == 1
    assert list(scaled) == [0.0, 0.5, 1.0, pytest.approx(0.25)]


def test_normalize_is_idempotent() -> None:
    values = np.random.default_rng(1).normal(size=20)

    once = normalize_min_max(values)
    twice = normalize_min_max(once)

    np.testing.assert_allclose(once, twice)


def test_normalize_passes_missing_values_through() -> None:
    scaled = normalize_min_max([np.nan, 10.0, 20.0, None])

    assert np.isnan(scaled[0]) and np.isnan(scaled[3])
    assert list(scaled[1:3]) == [0.0, 1.0]


def test_normalize_zero_range_maps_to_zero() -> None:
    scaled = normalize_min_max([5.0, np.nan, 5.0])

    assert scaled[0] == 0.0 and scaled[2] == 0.0
    assert np.isnan(scaled[1])


def test_normalize_all_missing_stays_missing() -> None:
    assert np.isnan(normalize_min_max([np.nan, np.nan])).all()


def test_normalize_columns_only_touches_requested_columns() -> None:
    df = pd.DataFrame({"neuron_1": [1.0, 3.0], "x": [10.0, 20.0]})

    out = normalize_columns(df, ["neuron_1"])

    assert list(out["neuron_1"]) == [0.0, 1.0]
    assert list(out["x"]) == [10.0, 20.0]
