"""Linear SVM behaviour decoder."""

from __future__ import annotations

import time
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import LinearSVC

from worm_analysis.exceptions import InsufficientDataError, MissingRequiredColumnError
from worm_analysis.io.table_loader import BEHAVIOR_COLUMN


class BehaviorClassifier:
    """
    Maps a feature table (neuron activity, velocities) to behaviour codes.

    Features are zero-filled before fitting and predicting. Predictions are
    always drawn from the labels seen during training.

    Args:
        feature_columns: Columns used as input features
        scale: Standardise features before the SVM
        random_state: Seed forwarded to ``LinearSVC``
    """

    def __init__(self, feature_columns: Sequence[str], scale: bool = False, random_state: Optional[int] = None):
        self.feature_columns = list(feature_columns)
        self.scale = scale
        self.random_state = random_state
        self.model = None
        self.classes_: Optional[np.ndarray] = None

    def _features(self, table: pd.DataFrame) -> np.ndarray:
        missing = [col for col in self.feature_columns if col not in table.columns]
        if missing:
            raise MissingRequiredColumnError(f"Feature column(s) {missing} not found in table")
        return table[self.feature_columns].apply(pd.to_numeric, errors='coerce').fillna(0.0).to_numpy(dtype=float)

    def fit(self, table: pd.DataFrame, label_column: str = BEHAVIOR_COLUMN) -> 'BehaviorClassifier':
        if label_column not in table.columns:
            raise MissingRequiredColumnError(f"Label column '{label_column}' not found in table")

        labelled = table[table[label_column].notna()]
        labels = labelled[label_column].to_numpy()
        if len(np.unique(labels)) < 2:
            raise InsufficientDataError("Need at least two distinct behaviours to train a classifier")

        svm = LinearSVC(random_state=self.random_state)
        self.model = make_pipeline(StandardScaler(), svm) if self.scale else svm
        self.model.fit(self._features(labelled), labels)
        self.classes_ = np.unique(labels)
        return self

    def predict(self, table: pd.DataFrame) -> np.ndarray:
        if self.model is None:
            raise RuntimeError("Classifier has not been fitted")
        return self.model.predict(self._features(table))

    def score(self, table: pd.DataFrame, label_column: str = BEHAVIOR_COLUMN) -> float:
        """Fraction of labelled rows predicted correctly."""

        if label_column not in table.columns:
            raise MissingRequiredColumnError(f"Label column '{label_column}' not found in table")
        labelled = table[table[label_column].notna()]
        if labelled.empty:
            return np.nan
        predicted = self.predict(labelled)
        return float(np.mean(predicted == labelled[label_column].to_numpy()))


def train_behavior_classifier(
    table: pd.DataFrame,
    feature_columns: Sequence[str],
    label_column: str = BEHAVIOR_COLUMN,
    scale: bool = False,
    random_state: Optional[int] = None,
) -> BehaviorClassifier:
    """Fit a :class:`BehaviorClassifier` on one observation table."""

    return BehaviorClassifier(feature_columns, scale=scale, random_state=random_state).fit(table, label_column)


def cross_dataset_predictions(
    train_name: str,
    train_table: pd.DataFrame,
    other_tables: Dict[str, pd.DataFrame],
    feature_columns: Sequence[str],
    label_column: str = BEHAVIOR_COLUMN,
    random_state: Optional[int] = None,
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Train on one dataset and report accuracy on itself and on every other dataset.

    Datasets lacking one of the feature columns are reported with a NaN
    accuracy and a note instead of aborting the whole comparison.

    Returns:
        DataFrame with columns dataset, n_rows, accuracy, note
    """
    if verbose:
        print(f"Training behaviour classifier on '{train_name}' ({len(feature_columns)} features)...")
        start_time = time.time()

    classifier = train_behavior_classifier(
        train_table, feature_columns, label_column=label_column, random_state=random_state
    )

    rows: List[Dict] = [{
        'dataset': train_name,
        'n_rows': len(train_table),
        'accuracy': classifier.score(train_table, label_column),
        'note': 'training set',
    }]
    for name, table in other_tables.items():
        row = {'dataset': name, 'n_rows': len(table), 'accuracy': np.nan, 'note': ''}
        try:
            row['accuracy'] = classifier.score(table, label_column)
        except MissingRequiredColumnError as exc:
            row['note'] = str(exc)
        rows.append(row)

    if verbose:
        print(f"  Classifier trained and evaluated in {time.time() - start_time:.2f} seconds")

    return pd.DataFrame(rows, columns=['dataset', 'n_rows', 'accuracy', 'note'])


__all__ = ['BehaviorClassifier', 'train_behavior_classifier', 'cross_dataset_predictions']
