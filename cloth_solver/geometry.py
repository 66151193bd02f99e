"""
Cloth geometry creation functions.

These functions create the initial particle positions, spring connectivity,
rest lengths, and pin constraints of a rectangular cloth lying flat at
``config.cloth_height``.
"""

from typing import Tuple

import numpy as np

from .config import SimConfig


def make_grid_positions(config: SimConfig) -> np.ndarray:
    """Create initial grid positions for cloth particles.

    Particles are arranged row by row in the plane ``z = cloth_height``,
    starting from the corner at the origin of the xy plane.

    Args:
        config: Simulation configuration.

    Returns:
        Array of shape (num_particles, 3) containing 3D positions.
    """
    w, h, dx = config.width, config.height, config.space_delta
    j, i = np.divmod(np.arange(w * h), w)
    return np.column_stack([i * dx, j * dx, np.full(w * h, config.cloth_height)]).astype(np.float64)


def make_edges_and_rests(config: SimConfig) -> Tuple[np.ndarray, np.ndarray]:
    """Create spring connectivity and rest lengths.

    Each spring connects two adjacent particles. The rest length is the
    initial distance between the particles.

    Args:
        config: Simulation configuration.

    Returns:
        Tuple of:
            - edges: Array of shape (num_edges, 2) with particle indices.
            - rest_lengths: Array of shape (num_edges,) with rest lengths.
    """
    w, h = config.width, config.height

    edges = []
    for j in range(h):
        for i in range(w):
            curr = j * w + i
            if i + 1 < w:
                edges.append((curr, curr + 1))
            if j + 1 < h:
                edges.append((curr, (j + 1) * w + i))
            if config.use_diagonals:
                if i + 1 < w and j + 1 < h:
                    edges.append((curr, (j + 1) * w + (i + 1)))
                if i - 1 >= 0 and j + 1 < h:
                    edges.append((curr, (j + 1) * w + (i - 1)))

    edges = np.array(edges, dtype=np.int64).reshape(-1, 2)
    pos = make_grid_positions(config)
    rest_lengths = np.linalg.norm(pos[edges[:, 0]] - pos[edges[:, 1]], axis=1)
    return edges, rest_lengths


def make_pins(config: SimConfig) -> np.ndarray:
    """Create the fixed point mask for the cloth.

    The two corners of the last row are fixed.

    Args:
        config: Simulation configuration.

    Returns:
        Boolean array of shape (num_particles,).
    """
    w, h = config.width, config.height
    pins = np.zeros(w * h, dtype=bool)
    pins[(h - 1) * w] = True
    pins[(h - 1) * w + w - 1] = True
    return pins
