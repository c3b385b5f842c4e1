"""
Input/Output module for C. elegans recordings.

This module contains functions for loading recordings from delimited text and
spreadsheet files and normalising their column names.
"""

from worm_analysis.io.table_loader import (
    BEHAVIOR_LABELS,
    decode_behavior_labels,
    load_observation_table,
    neuron_columns,
    normalize_column_names,
    prepare_observation_table,
    read_table,
    validate_observation_table,
)
from worm_analysis.io.result_writer import save_analysis_results, save_dataset_results

__all__ = [
    'BEHAVIOR_LABELS',
    'decode_behavior_labels',
    'load_observation_table',
    'neuron_columns',
    'normalize_column_names',
    'prepare_observation_table',
    'read_table',
    'validate_observation_table',
    'save_analysis_results',
    'save_dataset_results',
]
