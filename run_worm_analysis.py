#!/usr/bin/env python3
"""Run the neuron-behaviour analysis over one or more worm recordings."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402


REPO_ROOT = Path(__file__).resolve().parent
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from worm_analysis.io.result_writer import save_analysis_results  # noqa: E402
from worm_analysis.processing.pipeline import (  # noqa: E402
    AnalysisConfig,
    DatasetDescriptor,
    run_analysis,
)
from worm_analysis.visualization.animation import save_trajectory_animation  # noqa: E402
from worm_analysis.visualization.plots import (  # noqa: E402
    plot_classifier_accuracy,
    plot_clustered_similarity,
    plot_neural_activity,
    plot_neuron_behavior_correlations,
    plot_similarity_matrices,
    plot_trajectory_with_behavior,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "tables",
        nargs="+",
        type=Path,
        help="One or more recordings (.csv, .tsv, .txt, .xls, .xlsx).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=REPO_ROOT / "outputs",
        help="Directory where result tables and figures are written (default: ./outputs).",
    )
    parser.add_argument(
        "--n-resamples",
        type=int,
        default=1000,
        help="Bootstrap resamples per neuron (default: 1000).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for the bootstrap and the classifier (default: 42).",
    )
    parser.add_argument(
        "--neuron-prefix",
        default="neuron",
        help="Column-name prefix identifying neuron traces (default: neuron).",
    )
    parser.add_argument(
        "--bootstrap-method",
        choices=["centered", "raw"],
        default="centered",
        help="How the bootstrap p-value is computed (default: centered).",
    )
    parser.add_argument(
        "--no-normalize",
        action="store_true",
        help="Keep raw neuron traces instead of min-max scaling them.",
    )
    parser.add_argument(
        "--observation-rdm",
        action="store_true",
        help="Also compute the observation-by-observation distance matrix.",
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip figure generation.",
    )
    parser.add_argument(
        "--animate",
        action="store_true",
        help="Render a GIF of each trajectory (slow for long recordings).",
    )
    parser.add_argument(
        "--animation-step",
        type=int,
        default=5,
        help="Use every N-th sample as an animation frame (default: 5).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce console output from the analysis pipeline.",
    )
    return parser.parse_args()


def save_figures(results, output_dir: Path, animate: bool, animation_step: int, verbose: bool) -> None:
    for name, result in results.datasets.items():
        figures = {
            f"{name}_trajectory.png": plot_trajectory_with_behavior(result.table, title=f"{name} - Trajectory"),
            f"{name}_activity.png": plot_neural_activity(result.table, result.neuron_columns),
            f"{name}_correlations.png": plot_neuron_behavior_correlations(result.correlations),
            f"{name}_similarity.png": plot_similarity_matrices(result.similarity),
        }
        for file_name, fig in figures.items():
            fig.savefig(output_dir / file_name, dpi=100, bbox_inches="tight")
            plt.close(fig)

        for label, matrix in result.similarity.matrices.items():
            grid = plot_clustered_similarity(
                matrix,
                title=f"{name} - {label}",
                output_path=str(output_dir / f"{name}_clustered_{label}.png"),
            )
            if grid is not None:
                plt.close(grid.figure)

        if animate:
            save_trajectory_animation(
                result.table,
                result.neuron_columns,
                str(output_dir / f"{name}_trajectory.gif"),
                step=animation_step,
                verbose=verbose,
            )

    if results.classifier_accuracy is not None:
        fig = plot_classifier_accuracy(results.classifier_accuracy)
        fig.savefig(output_dir / "classifier_accuracy.png", dpi=100, bbox_inches="tight")
        plt.close(fig)


def main() -> int:
    args = parse_args()
    args.output_dir.mkdir(parents=True, exist_ok=True)

    descriptors = []
    for table_path in args.tables:
        if not table_path.exists():
            print(f"✗ Skipping missing file: {table_path}")
            continue
        descriptors.append(DatasetDescriptor(name=table_path.stem, path=str(table_path)))

    if not descriptors:
        print("No recordings to analyse")
        return 1

    config = AnalysisConfig(
        n_resamples=args.n_resamples,
        seed=args.seed,
        neuron_prefix=args.neuron_prefix,
        normalize_neurons=not args.no_normalize,
        bootstrap_method=args.bootstrap_method,
        compute_observation_rdm=args.observation_rdm,
        verbose=not args.quiet,
    )

    print("=" * 60)
    print(f"Analysing {len(descriptors)} recording(s)")
    print("=" * 60)

    results = run_analysis(descriptors, config)

    save_analysis_results(
        results,
        str(args.output_dir),
        metadata={
            "n_resamples": args.n_resamples,
            "seed": args.seed,
            "neuron_prefix": args.neuron_prefix,
            "bootstrap_method": args.bootstrap_method,
        },
        verbose=not args.quiet,
    )

    if not args.no_plots:
        save_figures(results, args.output_dir, args.animate, args.animation_step, verbose=not args.quiet)

    print("\n=== SUMMARY ===")
    for name, result in results.datasets.items():
        significant = (result.correlations["p_value"] < 0.05).sum()
        print(f"  {name}: {len(result.table)} rows, {len(result.neuron_columns)} neurons, "
              f"{significant} significant at p < 0.05")
        for label, reason in result.similarity.omitted.items():
            print(f"    ⚠ behaviour '{label}' omitted from similarity analysis: {reason}")

    if results.classifier_accuracy is not None:
        print("\n  Classifier accuracy:")
        for _, row in results.classifier_accuracy.iterrows():
            print(f"    {row['dataset']}: {row['accuracy'] * 100:.1f}% {row['note']}")

    print(f"\n✓ Results written to {args.output_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
