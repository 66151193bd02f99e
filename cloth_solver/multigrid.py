"""
Galerkin multigrid for the Newton systems of the simulator.

Based on "A Scalable Galerkin Multigrid Method for Real-time Simulation of
Deformable Objects" (Xian, Tong, Liu 2019). Coarse levels are nested subsets of
the points chosen by furthest point sampling. Every fine point is attached to
its nearest coarse point, which gives block sparse interpolation operators:

- level 0 -> 1: a 3x12 block ``(x, y, z, 1) ⊗ I3`` per fine point, so each
  coarse point carries a 3x4 affine map (12 unknowns);
- deeper levels: a 12x12 identity block per fine point.

Restriction is the transpose of interpolation and the coarse system matrices
are ``A[l+1] = U[l]^T A[l] U[l]``.
"""

import logging
import math
from typing import List, Optional, Tuple

import numpy as np

from . import solver
from .errors import ShapeMismatchError
from .matrix import Matrix, Vector

logger = logging.getLogger(__name__)

BLOCK_SIZE = 12


def _as_points(points) -> np.ndarray:
    points = np.asarray(points, dtype=np.float64)
    if points.ndim == 1:
        if points.size % 3:
            raise ShapeMismatchError(f"flat point buffer length {points.size} is not a multiple of 3")
        points = points.reshape(-1, 3)
    return points


def furthest_point_ordering(points: np.ndarray, count: int, start: int = 0) -> np.ndarray:
    """Order ``count`` points by furthest point sampling, starting at ``start``.

    Each new point is the one with the largest distance to those already
    chosen. Ties go to the lowest index.
    """
    points = _as_points(points)
    chosen = [start]
    distances = np.sum((points - points[start]) ** 2, axis=1)
    while len(chosen) < count:
        furthest = int(np.argmax(distances))
        chosen.append(furthest)
        distances = np.minimum(distances, np.sum((points - points[furthest]) ** 2, axis=1))
    return np.array(chosen, dtype=np.int64)


def build_grid_hierarchy(points, depth: int, grid_ratio: float = 2) -> List[np.ndarray]:
    """Build nested point index sets, one per level.

    Level 0 holds every point. Level ``l`` holds the first
    ``max(2, ceil(n / grid_ratio**l))`` points of a single furthest point
    ordering, so every level is a subset of the previous one.

    Args:
        points: ``(n, 3)`` array or flat ``3n`` buffer of positions.
        depth: Number of coarse levels.
        grid_ratio: Size ratio between consecutive levels.

    Returns:
        List of ``depth + 1`` index arrays.
    """
    points = _as_points(points)
    n = len(points)
    sizes = [min(n, max(2, math.ceil(n / grid_ratio ** level))) for level in range(1, depth + 1)]
    grids = [np.arange(n, dtype=np.int64)]
    if not sizes:
        return grids
    ordering = furthest_point_ordering(points, sizes[0])
    grids.extend(ordering[:size] for size in sizes)
    return grids


def interpolation_mappings(points, grids: List[np.ndarray]) -> List[np.ndarray]:
    """For each level pair, map every fine grid entry to its nearest coarse grid entry.

    ``mappings[l][i]`` is the position in ``grids[l + 1]`` nearest to point
    ``grids[l][i]``.
    """
    points = _as_points(points)
    mappings = []
    for fine, coarse in zip(grids[:-1], grids[1:]):
        differences = points[fine][:, None, :] - points[coarse][None, :, :]
        mappings.append(np.argmin(np.sum(differences ** 2, axis=2), axis=1))
    return mappings


def _homogeneous(points: np.ndarray) -> np.ndarray:
    return np.hstack([points, np.ones((len(points), 1))])


def interpolation_matrices(points, grids: List[np.ndarray]) -> List[Matrix]:
    """Dense interpolation operators ``U[l]`` from level ``l + 1`` to level ``l``."""
    points = _as_points(points)
    mappings = interpolation_mappings(points, grids)
    homogeneous = _homogeneous(points)
    interpolations = []
    for level, mapping in enumerate(mappings):
        fine_count, coarse_count = len(grids[level]), len(grids[level + 1])
        block_height = 3 if level == 0 else BLOCK_SIZE
        u = Matrix.zero(block_height * fine_count, BLOCK_SIZE * coarse_count)
        for i, c in enumerate(mapping):
            rows = slice(block_height * i, block_height * (i + 1))
            columns = slice(BLOCK_SIZE * c, BLOCK_SIZE * (c + 1))
            if level == 0:
                u.array[rows, columns] = np.kron(homogeneous[grids[0][i]][None, :], np.eye(3))
            else:
                u.array[rows, columns] = np.eye(BLOCK_SIZE)
        interpolations.append(u)
    return interpolations


def restriction_matrices(interpolations: List[Matrix]) -> List[Matrix]:
    return [u.transpose() for u in interpolations]


class Multigrid:
    """Multigrid hierarchy with per-level system matrices.

    The hierarchy is fixed at construction. Only the system matrices change,
    through :meth:`update_system_matrices`.

    Attributes:
        grids: Point indices per level, finest first.
        interpolation_mappings: Nearest coarse entry for each fine entry.
        interpolations: Dense ``U[l]`` operators.
        restrictions: Dense ``U[l]^T`` operators.
        system_matrices: ``A[l]`` per level, set by ``update_system_matrices``.
        regularizations: ``(coarse_index, n n^T ⊗ I3)`` pairs added to the
            diagonal blocks of ``A[1]`` to remove its null space.
    """

    def __init__(self, points, depth: int = 2, grid_ratio: float = 4):
        """Build the hierarchy.

        Args:
            points: ``(n, 3)`` array or flat ``3n`` buffer of reference positions.
            depth: Number of coarse levels (at least 1).
            grid_ratio: Size ratio between consecutive levels.
        """
        if depth < 1:
            raise ValueError(f"multigrid depth must be at least 1, got {depth}")
        self.points = _as_points(points).copy()
        self.grids = build_grid_hierarchy(self.points, depth, grid_ratio)
        self.interpolation_mappings = interpolation_mappings(self.points, self.grids)
        self.interpolations = interpolation_matrices(self.points, self.grids)
        self.restrictions = restriction_matrices(self.interpolations)
        self.system_matrices: List[Optional[Matrix]] = [None] * len(self.grids)
        self._homogeneous = _homogeneous(self.points)
        self.regularizations = self._build_regularizations()
        logger.debug(
            "Multigrid levels: %s", [len(grid) for grid in self.grids]
        )

    @property
    def depth(self) -> int:
        return len(self.grids) - 1

    def level_size(self, level: int) -> int:
        """Number of unknowns at ``level``."""
        return (3 if level == 0 else BLOCK_SIZE) * len(self.grids[level])

    def _build_regularizations(self) -> List[Tuple[int, Matrix]]:
        mapping = self.interpolation_mappings[0]
        regularizations = []
        for coarse_index in range(len(self.grids[1])):
            ub = self._homogeneous[self.grids[0][mapping == coarse_index]]
            ubt_ub = ub.T @ ub
            values, vectors = np.linalg.eigh(ubt_ub)
            threshold = 1e-8 * max(values[-1], 1.0)
            for value, n in zip(values, vectors.T):
                if value < threshold:
                    block = np.kron(np.outer(n, n), np.eye(3))
                    regularizations.append((coarse_index, Matrix.from_array(block)))
        return regularizations

    def interpolate(self, level: int, coarse: Vector) -> Vector:
        """Apply ``U[level]`` to a vector of level ``level + 1``.

        Equivalent to ``interpolations[level] @ coarse`` without forming the
        product.
        """
        if len(coarse) != self.level_size(level + 1):
            raise ShapeMismatchError(
                f"expected {self.level_size(level + 1)} coarse entries, got {len(coarse)}"
            )
        mapping = self.interpolation_mappings[level]
        blocks = coarse.elements.reshape(-1, BLOCK_SIZE)[mapping]
        if level == 0:
            h = self._homogeneous[self.grids[0]]
            fine = np.einsum("nw,nwr->nr", h, blocks.reshape(-1, 4, 3))
        else:
            fine = blocks
        return Vector(fine.reshape(-1))

    def restrict(self, level: int, fine: Vector) -> Vector:
        """Apply ``U[level]^T`` to a vector of level ``level``."""
        if len(fine) != self.level_size(level):
            raise ShapeMismatchError(
                f"expected {self.level_size(level)} fine entries, got {len(fine)}"
            )
        mapping = self.interpolation_mappings[level]
        coarse = np.zeros((len(self.grids[level + 1]), BLOCK_SIZE))
        if level == 0:
            h = self._homogeneous[self.grids[0]]
            f = fine.elements.reshape(-1, 3)
            contributions = (h[:, :, None] * f[:, None, :]).reshape(-1, BLOCK_SIZE)
        else:
            contributions = fine.elements.reshape(-1, BLOCK_SIZE)
        np.add.at(coarse, mapping, contributions)
        return Vector(coarse.reshape(-1))

    def update_system_matrices(self, a: Matrix):
        """Set ``A[0] = a`` and recompute the Galerkin coarse matrices.

        ``A[1]`` is regularized before deeper levels are built from it.
        """
        if a.shape != (self.level_size(0), self.level_size(0)):
            raise ShapeMismatchError(
                f"system matrix must be {self.level_size(0)} square, got {a.height}x{a.width}"
            )
        self.system_matrices[0] = a
        for level in range(self.depth):
            coarse = self.restrictions[level].multiply(a).multiply(self.interpolations[level])
            if level == 0:
                self._regularize(coarse)
            self.system_matrices[level + 1] = coarse
            a = coarse

    def _regularize(self, a1: Matrix):
        if not self.regularizations:
            return
        diagonal = np.diag(a1.array)
        scale = float(np.mean(diagonal[diagonal > 0])) if np.any(diagonal > 0) else 1.0
        for index, block in self.regularizations:
            a1.add_block(block.multiply_scalar_new(scale), index, index)

    def _smooth(self, level: int, x: Vector, b: Vector, smooth_count: int):
        if level == 0:
            solver.jacobi(self.system_matrices[0], x, b, iteration_count=smooth_count)
        else:
            solver.gauss_seidel(self.system_matrices[level], x, b, iteration_count=smooth_count)

    def _v_cycle(self, level: int, x: Vector, b: Vector, smooth_count: int) -> Vector:
        a = self.system_matrices[level]
        if level == self.depth:
            return solver.lu(a, b)
        self._smooth(level, x, b, smooth_count)
        residual = b.subtract_new(a.multiply_vector(x))
        coarse_residual = self.restrict(level, residual)
        correction = self._v_cycle(
            level + 1, Vector.zero(len(coarse_residual)), coarse_residual, smooth_count
        )
        x.add(self.interpolate(level, correction))
        self._smooth(level, x, b, smooth_count)
        return x

    def solve(self, x: Vector, b: Vector, iterations: int = 1, smooth_count: int = 3) -> Vector:
        """Solve ``A[0] x = b`` with V-cycles, updating ``x`` in place.

        Jacobi smooths the finest level and Gauss-Seidel the intermediate
        ones. The coarsest level is solved directly by LU.

        Args:
            x: Initial guess, overwritten with the result.
            b: Right-hand side.
            iterations: Number of V-cycles.
            smooth_count: Smoothing sweeps per visit of a level.

        Returns:
            ``x``.
        """
        if self.system_matrices[0] is None:
            raise RuntimeError("update_system_matrices must be called before solve")
        for _ in range(iterations):
            self._v_cycle(0, x, b, smooth_count)
        return x

    def solve_two_level(self, a: Matrix, x: Vector, b: Vector, smooth_count: int = 5) -> Vector:
        """Solve ``a x = b`` with the fine level and the first coarse level only.

        Pre-smooth with Jacobi, solve the restricted residual on level 1 by LU,
        add the interpolated correction and post-smooth.

        Args:
            a: Fine system matrix.
            x: Initial guess. It is not modified.
            b: Right-hand side.
            smooth_count: Jacobi sweeps before and after the coarse correction.

        Returns:
            New solution vector.
        """
        self.update_system_matrices(a)
        x1 = x.clone()
        solver.jacobi(a, x1, b, iteration_count=smooth_count)
        residual = b.subtract_new(a.multiply_vector(x1))
        correction = solver.lu(self.system_matrices[1], self.restrict(0, residual))
        x1.add(self.interpolate(0, correction))
        solver.jacobi(a, x1, b, iteration_count=smooth_count)
        logger.debug(
            "Two-level residual norm %g", b.subtract_new(a.multiply_vector(x1)).norm()
        )
        return x1
