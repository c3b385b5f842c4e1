"""
Visualization tools for neuron-behaviour analyses.

This module provides visualization functions for:
- Worm trajectories coloured by behaviour
- Neural activity heatmaps with a behaviour strip
- Neuron-behaviour correlations and their bootstrap distributions
- Per-behaviour similarity matrices (plain and hierarchically clustered)
"""

import time
import warnings
from typing import List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.colors import ListedColormap

from worm_analysis.io.table_loader import (
    BEHAVIOR_COLUMN,
    BEHAVIOR_LABELS,
    X_COLUMN,
    Y_COLUMN,
    decode_behavior_labels,
)

# Set style
sns.set_style('whitegrid')
plt.rcParams['figure.facecolor'] = 'white'

BEHAVIOR_COLORS = {
    'reverse': '#e74c3c',   # Red
    'stop': '#95a5a6',      # Grey
    'forward': '#2ecc71',   # Green
    'turn': '#3498db',      # Blue
    'unknown': '#2c3e50',   # Dark
}


def behavior_names(table: pd.DataFrame) -> pd.Series:
    """Behaviour names per row, decoding the integer codes when needed."""

    if 'behavior_name' in table.columns:
        return table['behavior_name']
    return decode_behavior_labels(table[BEHAVIOR_COLUMN])


def plot_trajectory_with_behavior(table: pd.DataFrame,
                                  figsize: Tuple[int, int] = (8, 8),
                                  title: str = 'Worm Trajectory',
                                  output_path: Optional[str] = None) -> plt.Figure:
    """
    Plot the x/y trajectory with each sample coloured by behaviour.

    Args:
        table: Observation table with x, y and behaviour columns
        figsize: Figure size
        title: Plot title
        output_path: Optional path to save the figure

    Returns:
        Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)
    names = behavior_names(table)

    ax.plot(table[X_COLUMN], table[Y_COLUMN], color='lightgray', linewidth=1, zorder=1)
    for behavior, color in BEHAVIOR_COLORS.items():
        mask = names == behavior
        if mask.any():
            ax.scatter(table.loc[mask, X_COLUMN], table.loc[mask, Y_COLUMN],
                       c=color, label=behavior, s=12, alpha=0.8, zorder=2)

    ax.set_xlabel('x', fontsize=11)
    ax.set_ylabel('y', fontsize=11)
    ax.set_title(title, fontsize=13, fontweight='bold')
    ax.set_aspect('equal', adjustable='datalim')
    ax.legend(loc='upper right', framealpha=0.9)

    plt.tight_layout()
    if output_path:
        fig.savefig(output_path, dpi=100, bbox_inches='tight')
    return fig


def plot_neural_activity(table: pd.DataFrame,
                         neuron_columns: List[str],
                         figsize: Tuple[int, int] = (14, 8),
                         output_path: Optional[str] = None) -> plt.Figure:
    """
    Heatmap of neuron traces over time with a behaviour strip underneath.

    Returns:
        Figure object
    """
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=figsize, sharex=True,
                                   gridspec_kw={'height_ratios': [8, 1]})

    activity = table[neuron_columns].to_numpy(dtype=float).T
    image = ax1.imshow(activity, aspect='auto', cmap='viridis', interpolation='nearest')
    fig.colorbar(image, ax=[ax1, ax2], label='Activity', fraction=0.03)
    ax1.set_yticks(range(len(neuron_columns)))
    ax1.set_yticklabels(neuron_columns, fontsize=6)
    ax1.set_ylabel('Neuron', fontsize=11)
    ax1.set_title('Neural Activity', fontsize=13, fontweight='bold')
    ax1.grid(False)

    # Behaviour strip uses a fixed category order so colours are stable across datasets
    order = list(BEHAVIOR_COLORS)
    codes = behavior_names(table).map({name: idx for idx, name in enumerate(order)}).to_numpy(dtype=float)
    ax2.imshow(codes[np.newaxis, :], aspect='auto', interpolation='nearest',
               cmap=ListedColormap([BEHAVIOR_COLORS[name] for name in order]),
               vmin=-0.5, vmax=len(order) - 0.5)
    ax2.set_yticks([])
    ax2.set_xlabel('Sample', fontsize=11)
    ax2.grid(False)

    if output_path:
        fig.savefig(output_path, dpi=100, bbox_inches='tight')
    return fig


def plot_neuron_behavior_correlations(correlations: pd.DataFrame,
                                      alpha: float = 0.05,
                                      figsize: Tuple[int, int] = (14, 5),
                                      output_path: Optional[str] = None) -> plt.Figure:
    """
    Bar plot of neuron-behaviour correlations, sorted by strength.

    Bars for neurons with ``p_value < alpha`` are highlighted.

    Args:
        correlations: Table from ``correlate_neurons_with_behavior``
        alpha: Significance threshold
        figsize: Figure size
        output_path: Optional path to save the figure

    Returns:
        Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    ordered = correlations.dropna(subset=['correlation'])
    ordered = ordered.reindex(ordered['correlation'].abs().sort_values(ascending=False).index)
    significant = ordered['p_value'] < alpha
    colors = np.where(significant, '#e74c3c', '#95a5a6')

    ax.bar(range(len(ordered)), ordered['correlation'], color=colors, edgecolor='black', linewidth=0.5)
    ax.axhline(y=0, color='black', linewidth=0.8)
    ax.set_xticks(range(len(ordered)))
    ax.set_xticklabels(ordered.index, rotation=90, fontsize=7)
    ax.set_ylim(-1, 1)
    ax.set_xlabel('Neuron', fontsize=11)
    ax.set_ylabel('Correlation with behaviour', fontsize=11)
    ax.set_title(f'Neuron-Behaviour Correlations ({significant.sum()} with p < {alpha})',
                 fontsize=13, fontweight='bold')
    ax.grid(True, alpha=0.3, axis='y')

    plt.tight_layout()
    if output_path:
        fig.savefig(output_path, dpi=100, bbox_inches='tight')
    return fig


def plot_bootstrap_distribution(result,
                                title: str = 'Bootstrap Distribution',
                                figsize: Tuple[int, int] = (8, 5),
                                output_path: Optional[str] = None) -> plt.Figure:
    """Histogram of resampled correlations with the observed value marked."""

    fig, ax = plt.subplots(figsize=figsize)

    ax.hist(result.resampled, bins=40, color='#3498db', edgecolor='white', alpha=0.8)
    ax.axvline(result.observed, color='#e74c3c', linewidth=2,
               label=f'observed r = {result.observed:.3f}')
    ax.set_xlabel('Resampled correlation', fontsize=11)
    ax.set_ylabel('Count', fontsize=11)
    ax.set_title(f'{title} (p = {result.p_value:.3f}, {result.method})', fontsize=13, fontweight='bold')
    ax.legend()

    plt.tight_layout()
    if output_path:
        fig.savefig(output_path, dpi=100, bbox_inches='tight')
    return fig


def plot_similarity_matrices(similarity,
                             figsize_per_panel: Tuple[int, int] = (5, 4),
                             output_path: Optional[str] = None) -> plt.Figure:
    """
    One heatmap per computed behaviour partition.

    Omitted partitions get an empty panel stating why they were skipped.
    """
    labels = sorted(set(similarity.matrices) | set(similarity.omitted), key=str)
    n_panels = max(1, len(labels))
    fig, axes = plt.subplots(1, n_panels, figsize=(figsize_per_panel[0] * n_panels, figsize_per_panel[1]),
                             squeeze=False)

    for ax, label in zip(axes[0], labels):
        if label in similarity.matrices:
            sns.heatmap(similarity.matrices[label], ax=ax, cmap='coolwarm', center=0, vmin=-1, vmax=1,
                        square=True, xticklabels=False, yticklabels=False,
                        cbar_kws={'label': 'Pearson r'})
            ax.set_title(f'{label} (n={similarity.row_counts[label]})', fontsize=11, fontweight='bold')
        else:
            ax.axis('off')
            ax.text(0.5, 0.5, f'{label}\nomitted:\n{similarity.omitted[label]}',
                    ha='center', va='center', fontsize=10, transform=ax.transAxes)

    plt.suptitle('Neuron Similarity by Behaviour', fontsize=14, fontweight='bold')
    plt.tight_layout()
    if output_path:
        fig.savefig(output_path, dpi=100, bbox_inches='tight')
    return fig


def plot_clustered_similarity(matrix: pd.DataFrame,
                              method: str = 'average',
                              title: Optional[str] = None,
                              output_path: Optional[str] = None):
    """
    Hierarchically clustered similarity heatmap.

    NaN entries (constant neurons) are drawn as 0 so the linkage is defined.
    A matrix with fewer than two neurons cannot be clustered; a warning is
    issued and nothing is drawn.

    Returns:
        seaborn ClusterGrid, or None for a matrix smaller than 2x2
    """
    if matrix.shape[0] < 2:
        warnings.warn(f"Skipping clustered heatmap{f' for {title}' if title else ''}: "
                      f"need at least 2 neurons, got {matrix.shape[0]}")
        return None

    grid = sns.clustermap(matrix.fillna(0.0), method=method, metric='euclidean', cmap='coolwarm',
                          center=0, vmin=-1, vmax=1, figsize=(9, 9),
                          xticklabels=True, yticklabels=True)
    if title:
        grid.figure.suptitle(title, fontsize=13, fontweight='bold')
    if output_path:
        grid.savefig(output_path, dpi=100, bbox_inches='tight')
    return grid


def plot_classifier_accuracy(accuracy: pd.DataFrame,
                             figsize: Tuple[int, int] = (8, 5),
                             output_path: Optional[str] = None) -> plt.Figure:
    """Bar plot of decoding accuracy per dataset with the chance level marked."""

    fig, ax = plt.subplots(figsize=figsize)

    scored = accuracy.dropna(subset=['accuracy'])
    ax.bar(scored['dataset'], scored['accuracy'] * 100, color='#16a085', edgecolor='black', alpha=0.8)
    ax.axhline(y=100 / len(BEHAVIOR_LABELS), color='gray', linestyle='--', alpha=0.7, label='chance')
    ax.set_ylim(0, 100)
    ax.set_ylabel('Accuracy (%)', fontsize=11)
    ax.set_title('Behaviour Decoding Accuracy', fontsize=13, fontweight='bold')
    ax.legend()
    ax.grid(True, alpha=0.3, axis='y')

    plt.tight_layout()
    if output_path:
        fig.savefig(output_path, dpi=100, bbox_inches='tight')
    return fig


def create_dataset_report(result, save_path: str, verbose: bool = True) -> None:
    """
    Write every figure for one dataset into a multi-page PDF.

    Args:
        result: DatasetResult from the pipeline
        save_path: Path of the PDF report
        verbose: Whether to print progress information
    """
    from matplotlib.backends.backend_pdf import PdfPages

    if verbose:
        print(f"Creating report for '{result.name}'...")
        start_time = time.time()

    figures = [
        plot_trajectory_with_behavior(result.table, title=f'{result.name} - Trajectory'),
        plot_neural_activity(result.table, result.neuron_columns),
        plot_neuron_behavior_correlations(result.correlations),
        plot_similarity_matrices(result.similarity),
    ]

    with PdfPages(save_path) as pdf:
        for fig in figures:
            pdf.savefig(fig, bbox_inches='tight')
            plt.close(fig)

    if verbose:
        print(f"  Report saved to {save_path} in {time.time() - start_time:.2f} seconds")


__all__ = [
    'BEHAVIOR_COLORS',
    'behavior_names',
    'plot_trajectory_with_behavior',
    'plot_neural_activity',
    'plot_neuron_behavior_correlations',
    'plot_bootstrap_distribution',
    'plot_similarity_matrices',
    'plot_clustered_similarity',
    'plot_classifier_accuracy',
    'create_dataset_report',
]
