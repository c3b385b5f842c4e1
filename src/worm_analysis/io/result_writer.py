"""
Result Writer for C. elegans Analyses

This module provides functions for saving analysis result tables to CSV.
"""

import os
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd


def _safe_name(value: Any) -> str:
    return str(value).replace(' ', '_').replace(os.sep, '_')


def save_dataset_results(
    result,
    output_dir: str,
    overwrite: bool = True,
    verbose: bool = True,
) -> List[str]:
    """
    Save the tables computed for one dataset.

    Files written (``<name>`` is the dataset name):
    - ``<name>_correlations.csv``
    - ``<name>_similarity_<behavior>.csv`` for each computed partition
    - ``<name>_similarity_summary.csv`` (lists omitted partitions too)
    - ``<name>_partition_comparison.csv``

    Args:
        result: DatasetResult from the pipeline
        output_dir: Directory for the CSV files (created if needed)
        overwrite: Whether to overwrite existing files
        verbose: Whether to print progress information

    Returns:
        List of written file paths

    Raises:
        FileExistsError: If a file exists and overwrite is False
    """
    os.makedirs(output_dir, exist_ok=True)
    stem = _safe_name(result.name)

    tables: Dict[str, pd.DataFrame] = {
        f"{stem}_correlations.csv": result.correlations,
        f"{stem}_similarity_summary.csv": result.similarity.summary(),
        f"{stem}_partition_comparison.csv": result.partition_comparison,
    }
    for label, matrix in result.similarity.matrices.items():
        tables[f"{stem}_similarity_{_safe_name(label)}.csv"] = matrix

    written = []
    for file_name, df in tables.items():
        path = os.path.join(output_dir, file_name)
        if os.path.exists(path) and not overwrite:
            raise FileExistsError(f"Output file {path} already exists and overwrite=False")
        # Matrices and the correlation table carry meaningful indices
        df.to_csv(path, index=not isinstance(df.index, pd.RangeIndex))
        written.append(path)
        if verbose:
            print(f"  Saved {file_name} ({len(df)} rows)")

    return written


def save_analysis_results(
    results,
    output_dir: str,
    metadata: Optional[Dict[str, Any]] = None,
    overwrite: bool = True,
    verbose: bool = True,
) -> List[str]:
    """
    Save every dataset's tables, the classifier scores and a run metadata file.

    Args:
        results: AnalysisResults from ``run_analysis``
        output_dir: Directory for the CSV files
        metadata: Optional run parameters to record alongside the results
        overwrite: Whether to overwrite existing files
        verbose: Whether to print progress information

    Returns:
        List of written file paths
    """
    if verbose:
        print(f"Saving results to: {output_dir}")
        start_time = time.time()

    os.makedirs(output_dir, exist_ok=True)
    written: List[str] = []
    for result in results.datasets.values():
        written.extend(save_dataset_results(result, output_dir, overwrite=overwrite, verbose=verbose))

    if results.classifier_accuracy is not None:
        path = os.path.join(output_dir, 'classifier_accuracy.csv')
        if os.path.exists(path) and not overwrite:
            raise FileExistsError(f"Output file {path} already exists and overwrite=False")
        results.classifier_accuracy.to_csv(path, index=False)
        written.append(path)
        if verbose:
            print(f"  Saved classifier_accuracy.csv ({len(results.classifier_accuracy)} rows)")

    metadata = dict(metadata or {})
    metadata.update({
        'timestamp': datetime.now().isoformat(),
        'datasets': ', '.join(results.datasets.keys()),
        'row_counts': ', '.join(f"{name}: {len(r.table)}" for name, r in results.datasets.items()),
    })
    metadata_path = os.path.join(output_dir, 'metadata.csv')
    pd.Series(metadata, name='value').to_csv(metadata_path, index_label='key')
    written.append(metadata_path)

    if verbose:
        print(f"Successfully saved {len(written)} files in {time.time() - start_time:.2f} seconds")

    return written


__all__ = ['save_dataset_results', 'save_analysis_results']
