"""
Visualization utilities for recorded trajectories.
"""

from typing import List, Optional

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.animation as animation

AXIS_LABELS = ("X Position", "Y Position", "Z Position")


def animate_particles(trajectory: np.ndarray, save_path: Optional[str] = None, interval: int = 50):
    """Create an animated 3D scatter plot of point positions.

    Args:
        trajectory: Array of shape (frames, num_points, 3).
        save_path: Where to write the animation (e.g. 'cloth_animation.mp4',
            needs ffmpeg). Nothing is written if None.
        interval: Delay between frames in milliseconds.

    Returns:
        The matplotlib animation.
    """
    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection="3d")
    lower = trajectory.min(axis=(0, 1)) - 0.1
    upper = trajectory.max(axis=(0, 1)) + 0.1

    def animate(frame):
        ax.clear()
        positions = trajectory[frame]
        ax.scatter(positions[:, 0], positions[:, 1], positions[:, 2], s=20, alpha=0.7)
        ax.set_xlim(lower[0], upper[0])
        ax.set_ylim(lower[1], upper[1])
        ax.set_zlim(lower[2], upper[2])
        ax.set_title(f'Cloth Simulation - Frame {frame}/{len(trajectory)}')
        ax.set_xlabel(AXIS_LABELS[0])
        ax.set_ylabel(AXIS_LABELS[1])
        ax.set_zlabel(AXIS_LABELS[2])

    anim = animation.FuncAnimation(fig, animate, frames=len(trajectory),
                                   interval=interval, repeat=True)

    if save_path:
        anim.save(save_path, writer='ffmpeg')

    return anim


def plot_trajectories(
    trajectory: np.ndarray,
    particle_indices: Optional[List[int]] = None,
    figsize: tuple = (12, 8),
) -> plt.Figure:
    """Plot 3D paths of selected points.

    Args:
        trajectory: Array of shape (frames, num_points, 3) containing positions.
        particle_indices: Indices of points to plot. If None, plots a sample.
        figsize: Figure size.

    Returns:
        The matplotlib figure.
    """
    if particle_indices is None:
        num_particles = trajectory.shape[1]
        particle_indices = list(range(0, num_particles, max(1, num_particles // 10)))

    fig = plt.figure(figsize=figsize)
    ax = fig.add_subplot(111, projection="3d")

    for idx in particle_indices:
        path = trajectory[:, idx]
        ax.plot(path[:, 0], path[:, 1], path[:, 2], label=f"Particle {idx}", alpha=0.7)

    ax.set_xlabel(AXIS_LABELS[0])
    ax.set_ylabel(AXIS_LABELS[1])
    ax.set_zlabel(AXIS_LABELS[2])
    ax.set_title("Particle Trajectories")
    ax.legend(loc="upper left", fontsize="small")

    return fig


def plot_particle_over_time(
    trajectory: np.ndarray,
    particle_index: int,
    figsize: tuple = (15, 4),
) -> plt.Figure:
    """Plot x, y and z of a single point over time.

    Args:
        trajectory: Array of shape (frames, num_points, 3) containing positions.
        particle_index: Index of the point to plot.
        figsize: Figure size.

    Returns:
        The matplotlib figure.
    """
    fig, axes = plt.subplots(1, 3, figsize=figsize)

    frames = np.arange(len(trajectory))
    for axis, (ax, label) in enumerate(zip(axes, AXIS_LABELS)):
        ax.plot(frames, trajectory[:, particle_index, axis])
        ax.set_xlabel("Time (frame)")
        ax.set_ylabel(label)
        ax.set_title(f"Particle {particle_index} - {label}")
        ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig
