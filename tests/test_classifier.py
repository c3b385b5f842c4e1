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

from worm_analysis.analysis.classifier import (  # noqa: E402
    BehaviorClassifier,
    cross_dataset_predictions,
    train_behavior_classifier,
)
from worm_analysis.exceptions import InsufficientDataError, MissingRequiredColumnError  # noqa: E402

FEATURES = ["neuron_1", "neuron_2"]


def make_separable_table(seed: int = 0, n: int = 80) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    behavior = np.tile([-1, 1], n // 2)
    return pd.DataFrame({
        "behavior": behavior,
        "neuron_1": behavior * 2.0 + rng.normal(scale=0.2, size=n),
        "neuron_2": rng.normal(size=n),
    })


def test_classifier_learns_separable_behaviour() -> None:
    table = make_separable_table()

    classifier = train_behavior_classifier(table, FEATURES, random_state=0)

    assert classifier.score(table) > 0.95
    assert set(classifier.classes_) == {-1, 1}


def test_predictions_stay_within_training_labels() -> None:
    classifier = train_behavior_classifier(make_separable_table(), FEATURES, random_state=0)
    other = make_separable_table(seed=1)
    other["behavior"] = 2

    predicted = classifier.predict(other)

    assert len(predicted) == len(other)
    assert set(np.unique(predicted)).issubset({-1, 1})


def test_missing_features_are_zero_filled() -> None:
    table = make_separable_table()
    table.loc[0:5, "neuron_2"] = np.nan

    classifier = BehaviorClassifier(FEATURES, scale=True, random_state=0).fit(table)

    assert classifier.score(table) > 0.9


def test_feature_schema_mismatch_raises() -> None:
    classifier = train_behavior_classifier(make_separable_table(), FEATURES, random_state=0)

    with pytest.raises(MissingRequiredColumnError, match="neuron_2"):
        classifier.predict(make_separable_table().drop(columns=["neuron_2"]))


def test_single_behaviour_cannot_be_trained() -> None:
    table = make_separable_table()
    table["behavior"] = 1

    with pytest.raises(InsufficientDataError):
        train_behavior_classifier(table, FEATURES)


def test_predict_before_fit_raises() -> None:
    with pytest.raises(RuntimeError):
        BehaviorClassifier(FEATURES).predict(make_separable_table())


def test_cross_dataset_predictions_notes_schema_mismatch() -> None:
    train = make_separable_table(seed=0)
    others = {
        "worm2": make_separable_table(seed=1),
        "worm3": make_separable_table(seed=2).drop(columns=["neuron_1"]),
    }

    accuracy = cross_dataset_predictions("worm1", train, others, FEATURES, random_state=0, verbose=False)

    assert list(accuracy["dataset"]) == ["worm1", "worm2", "worm3"]
    assert accuracy.loc[0, "note"] == "training set"
    assert accuracy.loc[1, "accuracy"] > 0.9
    assert np.isnan(accuracy.loc[2, "accuracy"])
    assert "neuron_1" in accuracy.loc[2, "note"]
