"""Statistical analysis utilities for C. elegans recordings."""

from worm_analysis.analysis.correlation import (
    BootstrapResult,
    bootstrap_correlation,
    complete_cases,
    correlate_neurons_with_behavior,
    pearson_complete_case,
)

from worm_analysis.analysis.similarity import (
    SimilarityResult,
    compare_matrices,
    compare_partition_matrices,
    compute_rdm,
    compute_similarity_by_label,
)

from worm_analysis.analysis.classifier import (
    BehaviorClassifier,
    cross_dataset_predictions,
    train_behavior_classifier,
)

__all__ = [
    "BootstrapResult",
    "bootstrap_correlation",
    "complete_cases",
    "correlate_neurons_with_behavior",
    "pearson_complete_case",
    "SimilarityResult",
    "compare_matrices",
    "compare_partition_matrices",
    "compute_rdm",
    "compute_similarity_by_label",
    "BehaviorClassifier",
    "cross_dataset_predictions",
    "train_behavior_classifier",
]
