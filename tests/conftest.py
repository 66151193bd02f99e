import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from cloth_solver import SimConfig


@pytest.fixture
def make_config():
    """Build a SimConfig that stays on the numpy path and skips device lookup."""

    def _make(**overrides):
        options = dict(device="cpu", acceleration_threshold=None)
        options.update(overrides)
        return SimConfig(**options)

    return _make


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


def laplacian_system(points: np.ndarray, edges, diagonal: float = 100.0, k: float = 1.0) -> np.ndarray:
    """``diagonal * I + k L ⊗ I3`` for a point graph, a well conditioned SPD test matrix."""
    n = len(points)
    laplacian = np.zeros((n, n))
    for a, b in edges:
        laplacian[a, a] += k
        laplacian[b, b] += k
        laplacian[a, b] -= k
        laplacian[b, a] -= k
    return diagonal * np.eye(3 * n) + np.kron(laplacian, np.eye(3))


def grid_points(width: int, height: int, z: float = 40.0):
    j, i = np.divmod(np.arange(width * height), width)
    points = np.column_stack([i, j, np.full(width * height, z)]).astype(float)
    edges = []
    for row in range(height):
        for column in range(width):
            index = row * width + column
            if column + 1 < width:
                edges.append((index, index + 1))
            if row + 1 < height:
                edges.append((index, index + width))
    return points, edges
