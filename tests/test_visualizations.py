from __future__ import annotations

from pathlib import Path
import sys

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from worm_analysis.analysis.correlation import bootstrap_correlation  # noqa: E402
from worm_analysis.processing.pipeline import AnalysisConfig, DatasetDescriptor, process_dataset  # noqa: E402
from worm_analysis.visualization import (  # noqa: E402
    animate_trajectory,
    create_dataset_report,
    plot_bootstrap_distribution,
    plot_classifier_accuracy,
    plot_clustered_similarity,
    plot_neural_activity,
    plot_neuron_behavior_correlations,
    plot_similarity_matrices,
    plot_trajectory_with_behavior,
    save_trajectory_animation,
)


@pytest.fixture(scope="module")
def dataset_result():
    rng = np.random.default_rng(0)
    behavior = np.array([1] * 15 + [-1] * 15 + [0] * 10 + [2])
    n = len(behavior)
    table = pd.DataFrame({
        "time": np.arange(n),
        "x": rng.normal(size=n).cumsum(),
        "y": rng.normal(size=n).cumsum(),
        "behavior": behavior,
        "neuron_1": behavior + rng.normal(scale=0.2, size=n),
        "neuron_2": rng.normal(size=n),
        "neuron_3": rng.normal(size=n),
    })
    config = AnalysisConfig(n_resamples=100, seed=0, verbose=False)
    return process_dataset(DatasetDescriptor("worm1", table=table), config)


def test_static_figures_are_created(dataset_result, tmp_path: Path) -> None:
    figures = [
        plot_trajectory_with_behavior(dataset_result.table),
        plot_neural_activity(dataset_result.table, dataset_result.neuron_columns),
        plot_neuron_behavior_correlations(dataset_result.correlations),
        plot_similarity_matrices(dataset_result.similarity, output_path=str(tmp_path / "similarity.png")),
    ]

    for fig in figures:
        assert isinstance(fig, plt.Figure)
        plt.close(fig)

    assert (tmp_path / "similarity.png").exists()


def test_similarity_figure_has_panel_for_omitted_partition(dataset_result) -> None:
    fig = plot_similarity_matrices(dataset_result.similarity)

    # forward, reverse, stop plus the omitted 'turn' panel
    assert len(fig.axes) >= 4
    texts = [text.get_text() for ax in fig.axes for text in ax.texts]
    assert any("turn" in text and "omitted" in text for text in texts)
    plt.close(fig)


def test_bootstrap_and_accuracy_plots() -> None:
    feature = np.random.default_rng(1).normal(size=30)
    result = bootstrap_correlation(feature, feature + 0.5 * feature ** 2, n_resamples=100, rng=0)

    fig = plot_bootstrap_distribution(result)
    assert "p =" in fig.axes[0].get_title()
    plt.close(fig)

    accuracy = pd.DataFrame({"dataset": ["a", "b"], "accuracy": [0.9, np.nan], "note": ["", "mismatch"]})
    fig = plot_classifier_accuracy(accuracy)
    assert len(fig.axes[0].patches) == 1
    plt.close(fig)


def test_clustered_similarity(dataset_result, tmp_path: Path) -> None:
    matrix = dataset_result.similarity.matrices["forward"]
    output = tmp_path / "clustered.png"

    grid = plot_clustered_similarity(matrix, title="forward", output_path=str(output))

    assert output.exists()
    assert len(grid.dendrogram_row.reordered_ind) == len(matrix)
    plt.close(grid.figure)


def test_clustered_similarity_skips_single_neuron(tmp_path: Path) -> None:
    rng = np.random.default_rng(3)
    behavior = np.array([1] * 15 + [-1] * 15)
    table = pd.DataFrame({
        "time": np.arange(30),
        "x": rng.normal(size=30).cumsum(),
        "y": rng.normal(size=30).cumsum(),
        "behavior": behavior,
        "neuron_1": behavior + rng.normal(scale=0.2, size=30),
    })
    result = process_dataset(DatasetDescriptor("single", table=table), AnalysisConfig(n_resamples=50, verbose=False))
    matrix = result.similarity.matrices["forward"]
    output = tmp_path / "clustered.png"

    assert matrix.shape == (1, 1)
    with pytest.warns(UserWarning, match="at least 2 neurons"):
        grid = plot_clustered_similarity(matrix, title="forward", output_path=str(output))

    assert grid is None
    assert not output.exists()


def test_animation_is_built_and_validates_step(dataset_result) -> None:
    fig, anim = animate_trajectory(dataset_result.table, dataset_result.neuron_columns, step=5)

    assert anim._fig is fig
    plt.close(fig)

    with pytest.raises(ValueError):
        animate_trajectory(dataset_result.table, dataset_result.neuron_columns, step=0)


def test_save_animation_and_report(dataset_result, tmp_path: Path) -> None:
    gif_path = tmp_path / "trajectory.gif"
    pdf_path = tmp_path / "report.pdf"

    save_trajectory_animation(
        dataset_result.table,
        dataset_result.neuron_columns,
        str(gif_path),
        step=10,
        fps=5,
        verbose=False,
    )
    create_dataset_report(dataset_result, str(pdf_path), verbose=False)

    assert gif_path.stat().st_size > 0
    assert pdf_path.stat().st_size > 0
