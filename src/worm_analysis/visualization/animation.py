"""Animated worm trajectory alongside the neural activity at each frame."""

import time
from typing import List, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.animation import FuncAnimation, PillowWriter

from worm_analysis.io.table_loader import TIME_COLUMN, X_COLUMN, Y_COLUMN
from worm_analysis.visualization.plots import BEHAVIOR_COLORS, behavior_names


def animate_trajectory(
    table: pd.DataFrame,
    neuron_columns: List[str],
    step: int = 1,
    trail_length: int = 50,
    fps: int = 10,
    figsize: Tuple[int, int] = (14, 6),
) -> Tuple[plt.Figure, FuncAnimation]:
    """
    Build an animation of the worm moving through the arena.

    Left panel: trajectory with a fading trail, the current point coloured by
    behaviour. Right panel: activity of every neuron at the current sample.

    Args:
        table: Observation table (time, x, y, behaviour, neuron columns)
        neuron_columns: Neuron columns to show
        step: Use every ``step``-th sample as a frame
        trail_length: Number of past samples drawn as the trail
        fps: Frames per second
        figsize: Figure size

    Returns:
        (figure, FuncAnimation) tuple
    """
    if step <= 0:
        raise ValueError("step must be a positive integer")

    x = table[X_COLUMN].to_numpy(dtype=float)
    y = table[Y_COLUMN].to_numpy(dtype=float)
    times = table[TIME_COLUMN].to_numpy()
    names = behavior_names(table).to_numpy()
    activity = table[neuron_columns].to_numpy(dtype=float)
    frames = np.arange(0, len(table), step)

    fig, (ax_path, ax_neurons) = plt.subplots(1, 2, figsize=figsize,
                                              gridspec_kw={'width_ratios': [1, 2]})

    # Fixed limits so the arena does not rescale between frames
    pad = 0.05 * max(np.nanmax(x) - np.nanmin(x), np.nanmax(y) - np.nanmin(y), 1.0)
    ax_path.set_xlim(np.nanmin(x) - pad, np.nanmax(x) + pad)
    ax_path.set_ylim(np.nanmin(y) - pad, np.nanmax(y) + pad)
    ax_path.set_aspect('equal', adjustable='box')
    ax_path.set_xlabel('x')
    ax_path.set_ylabel('y')
    trail, = ax_path.plot([], [], '-', color='gray', alpha=0.5, linewidth=1)
    head = ax_path.scatter([x[0]], [y[0]], s=120, c=BEHAVIOR_COLORS.get(names[0], 'black'), zorder=5)
    title_path = ax_path.set_title('')

    finite = activity[np.isfinite(activity)]
    low, high = (finite.min(), finite.max()) if finite.size else (0.0, 1.0)
    bars = ax_neurons.bar(range(len(neuron_columns)), np.nan_to_num(activity[0]), color='#3498db')
    ax_neurons.set_ylim(min(0.0, low), high if high > low else low + 1.0)
    ax_neurons.set_xticks(range(len(neuron_columns)))
    ax_neurons.set_xticklabels(neuron_columns, rotation=90, fontsize=6)
    ax_neurons.set_ylabel('Activity')
    ax_neurons.set_title('Neural Activity')

    def update(frame):
        start = max(0, frame - trail_length)
        trail.set_data(x[start:frame + 1], y[start:frame + 1])
        head.set_offsets([[x[frame], y[frame]]])
        head.set_color(BEHAVIOR_COLORS.get(names[frame], 'black'))
        title_path.set_text(f't={times[frame]}  ({names[frame]})')
        for bar, value in zip(bars, np.nan_to_num(activity[frame])):
            bar.set_height(value)
        return []

    plt.tight_layout()
    anim = FuncAnimation(fig, update, frames=frames, interval=1000 / fps, blit=False)
    return fig, anim


def save_trajectory_animation(
    table: pd.DataFrame,
    neuron_columns: List[str],
    output_path: str,
    step: int = 1,
    fps: int = 10,
    verbose: bool = True,
) -> str:
    """Render :func:`animate_trajectory` to a GIF file."""

    if verbose:
        print(f"Rendering trajectory animation to {output_path}...")
        start_time = time.time()

    fig, anim = animate_trajectory(table, neuron_columns, step=step, fps=fps)
    anim.save(output_path, writer=PillowWriter(fps=fps))
    plt.close(fig)

    if verbose:
        print(f"  Animation saved in {time.time() - start_time:.2f} seconds")

    return output_path


__all__ = ['animate_trajectory', 'save_trajectory_animation']
