"""
Processing module for C. elegans recordings.

This module contains functions for preparing recordings for analysis, including:
- Velocity feature derivation
- Min-max normalisation
- The batch pipeline over a list of datasets
"""

from worm_analysis.processing.features import (
    VELOCITY_COLUMNS,
    add_velocity_features,
    derive_velocity,
    normalize_columns,
    normalize_min_max,
)
from worm_analysis.processing.pipeline import (
    AnalysisConfig,
    AnalysisResults,
    DatasetDescriptor,
    DatasetResult,
    process_dataset,
    run_analysis,
)

__all__ = [
    'VELOCITY_COLUMNS',
    'add_velocity_features',
    'derive_velocity',
    'normalize_columns',
    'normalize_min_max',
    'AnalysisConfig',
    'AnalysisResults',
    'DatasetDescriptor',
    'DatasetResult',
    'process_dataset',
    'run_analysis',
]
