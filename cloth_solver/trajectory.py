"""
Saving and loading recorded trajectories.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


def save_trajectory(trajectory: np.ndarray, path: str):
    """Save a trajectory to a numpy file.

    Args:
        trajectory: Array of shape (frames, points, 3).
        path: Path to save the file.
    """
    np.save(path, trajectory)
    logger.info("Saved trajectory to %s with shape %s", path, trajectory.shape)


def load_trajectory(path: str) -> np.ndarray:
    """Load a trajectory from a numpy file.

    Args:
        path: Path to the trajectory file.

    Returns:
        Trajectory array of shape (frames, points, 3).
    """
    trajectory = np.load(path)
    if trajectory.ndim != 3 or trajectory.shape[2] != 3:
        raise ValueError(f"expected a (frames, points, 3) trajectory, got shape {trajectory.shape}")
    logger.info("Loaded trajectory from %s with shape %s", path, trajectory.shape)
    return trajectory
