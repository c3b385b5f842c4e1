"""
Visualization module for C. elegans analyses.

This module contains functions for plotting trajectories, neural activity,
correlation results and similarity matrices, and for animating a recording.
"""

from worm_analysis.visualization.plots import (
    create_dataset_report,
    plot_bootstrap_distribution,
    plot_classifier_accuracy,
    plot_clustered_similarity,
    plot_neural_activity,
    plot_neuron_behavior_correlations,
    plot_similarity_matrices,
    plot_trajectory_with_behavior,
)

from worm_analysis.visualization.animation import (
    animate_trajectory,
    save_trajectory_animation,
)

__all__ = [
    # Static figures
    'create_dataset_report',
    'plot_bootstrap_distribution',
    'plot_classifier_accuracy',
    'plot_clustered_similarity',
    'plot_neural_activity',
    'plot_neuron_behavior_correlations',
    'plot_similarity_matrices',
    'plot_trajectory_with_behavior',

    # Animation
    'animate_trajectory',
    'save_trajectory_animation',
]
