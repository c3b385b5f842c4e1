"""
Batch Analysis Pipeline for C. elegans Recordings

This module runs the whole analysis over a list of datasets in one call:
1. Load and clean each recording
2. Derive velocity features and normalise neuron traces
3. Correlate neurons with behaviour (bootstrap significance)
4. Build per-behaviour similarity matrices and compare them
5. Train a behaviour classifier on the first dataset and score the others

Usage:
    from worm_analysis.processing.pipeline import AnalysisConfig, DatasetDescriptor, run_analysis

    results = run_analysis(
        [DatasetDescriptor('worm1', path='worm1.csv'), DatasetDescriptor('worm2', path='worm2.xlsx')],
        AnalysisConfig(n_resamples=1000, seed=42),
    )
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from worm_analysis.analysis.classifier import cross_dataset_predictions
from worm_analysis.analysis.correlation import DEFAULT_N_RESAMPLES, correlate_neurons_with_behavior
from worm_analysis.analysis.similarity import (
    SimilarityResult,
    compare_partition_matrices,
    compute_rdm,
    compute_similarity_by_label,
)
from worm_analysis.exceptions import InsufficientDataError
from worm_analysis.io.table_loader import (
    BEHAVIOR_COLUMN,
    DEFAULT_NEURON_PREFIX,
    decode_behavior_labels,
    load_observation_table,
    neuron_columns,
    prepare_observation_table,
)
from worm_analysis.processing.features import VELOCITY_COLUMNS, add_velocity_features, normalize_columns

BEHAVIOR_NAME_COLUMN = 'behavior_name'


@dataclass
class AnalysisConfig:
    """Run-time parameters for one batch analysis."""

    n_resamples: int = DEFAULT_N_RESAMPLES
    seed: Optional[int] = 42
    neuron_prefix: str = DEFAULT_NEURON_PREFIX
    normalize_neurons: bool = True
    bootstrap_method: str = 'centered'
    min_partition_rows: int = 2
    compute_observation_rdm: bool = False
    train_classifier: bool = True
    verbose: bool = True


@dataclass
class DatasetDescriptor:
    """Where to find one recording and how to read it."""

    name: str
    path: Optional[str] = None
    table: Optional[pd.DataFrame] = None
    neuron_prefix: Optional[str] = None
    sheet_name: Optional[str] = None


@dataclass
class DatasetResult:
    """Everything computed for a single recording."""

    name: str
    table: pd.DataFrame
    neuron_columns: List[str]
    correlations: pd.DataFrame
    similarity: SimilarityResult
    partition_comparison: pd.DataFrame
    observation_rdm: Optional[np.ndarray] = None


@dataclass
class AnalysisResults:
    """Per-dataset results plus the cross-dataset classifier scores."""

    datasets: Dict[str, DatasetResult] = field(default_factory=dict)
    classifier_accuracy: Optional[pd.DataFrame] = None


def _load_descriptor(descriptor: DatasetDescriptor, neuron_prefix: str, verbose: bool) -> pd.DataFrame:
    if descriptor.table is not None:
        return prepare_observation_table(descriptor.table, neuron_prefix=neuron_prefix)
    if descriptor.path is None:
        raise ValueError(f"Dataset '{descriptor.name}' has neither a path nor a table")
    return load_observation_table(
        descriptor.path,
        neuron_prefix=neuron_prefix,
        sheet_name=descriptor.sheet_name,
        verbose=verbose,
    )


def process_dataset(
    descriptor: DatasetDescriptor,
    config: Optional[AnalysisConfig] = None,
) -> DatasetResult:
    """
    Run the per-dataset part of the analysis.

    Column and shape problems (missing required columns, mismatched lengths)
    propagate and abort this dataset; behaviour partitions with too few rows
    are reported in the similarity result instead.

    Args:
        descriptor: Dataset to process
        config: Analysis parameters (defaults to ``AnalysisConfig()``)

    Returns:
        DatasetResult
    """
    config = config or AnalysisConfig()
    verbose = config.verbose
    prefix = descriptor.neuron_prefix or config.neuron_prefix

    if verbose:
        print(f"Processing dataset: {descriptor.name}")
        start_time = time.time()

    # Step 1: Load and clean
    if verbose:
        print("Step 1: Loading and normalising columns")
    table = _load_descriptor(descriptor, prefix, verbose)
    neurons = neuron_columns(table, prefix)

    # Step 2: Derived features
    if verbose:
        print("Step 2: Deriving velocity features")
    table = add_velocity_features(table)
    if config.normalize_neurons:
        table = normalize_columns(table, neurons)
    table[BEHAVIOR_NAME_COLUMN] = decode_behavior_labels(table[BEHAVIOR_COLUMN])

    # Step 3: Neuron-behaviour correlations
    if verbose:
        print("Step 3: Correlating neurons with behaviour")
    rng = np.random.default_rng(config.seed)
    correlations = correlate_neurons_with_behavior(
        table,
        neurons,
        label_column=BEHAVIOR_COLUMN,
        n_resamples=config.n_resamples,
        rng=rng,
        method=config.bootstrap_method,
        verbose=verbose,
    )

    # Step 4: Similarity matrices per behaviour
    if verbose:
        print("Step 4: Building per-behaviour similarity matrices")
    similarity = compute_similarity_by_label(
        table,
        neurons,
        labels=BEHAVIOR_NAME_COLUMN,
        min_rows=config.min_partition_rows,
    )
    if verbose:
        print(f"  Computed {len(similarity.matrices)} partition(s): {', '.join(map(str, similarity.matrices))}")
        for label, reason in similarity.omitted.items():
            print(f"  Warning: omitted behaviour '{label}' ({reason})")
    partition_comparison = compare_partition_matrices(similarity)

    observation_rdm = None
    if config.compute_observation_rdm:
        if verbose:
            print("Step 5: Building observation RDM")
        observation_rdm = compute_rdm(table[neurons].fillna(0.0))

    if verbose:
        print(f"Dataset '{descriptor.name}' processed in {time.time() - start_time:.2f} seconds")

    return DatasetResult(
        name=descriptor.name,
        table=table,
        neuron_columns=neurons,
        correlations=correlations,
        similarity=similarity,
        partition_comparison=partition_comparison,
        observation_rdm=observation_rdm,
    )


def run_analysis(
    descriptors: Sequence[DatasetDescriptor],
    config: Optional[AnalysisConfig] = None,
) -> AnalysisResults:
    """
    Process every dataset, then train a classifier on the first one.

    The classifier uses the velocity features plus the first dataset's neuron
    columns; datasets that do not share that schema are reported with a note.
    """
    config = config or AnalysisConfig()
    if not descriptors:
        raise ValueError("No datasets to analyse")

    names = [descriptor.name for descriptor in descriptors]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"Dataset names must be unique, duplicated: {duplicates}")

    results = AnalysisResults()
    for descriptor in descriptors:
        results.datasets[descriptor.name] = process_dataset(descriptor, config)

    if config.train_classifier:
        first = results.datasets[descriptors[0].name]
        others = {name: result.table for name, result in results.datasets.items() if name != first.name}
        try:
            results.classifier_accuracy = cross_dataset_predictions(
                first.name,
                first.table,
                others,
                feature_columns=VELOCITY_COLUMNS + first.neuron_columns,
                random_state=config.seed,
                verbose=config.verbose,
            )
        except InsufficientDataError as exc:
            if config.verbose:
                print(f"  Warning: Could not train behaviour classifier: {exc}")

    return results


__all__ = [
    'BEHAVIOR_NAME_COLUMN',
    'AnalysisConfig',
    'DatasetDescriptor',
    'DatasetResult',
    'AnalysisResults',
    'process_dataset',
    'run_analysis',
]
