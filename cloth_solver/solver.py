"""
Linear system solvers.

Direct solvers use triangular substitution on a Cholesky or LU factorization;
iterative solvers (Jacobi, Gauss-Seidel) update an initial guess in place.
"""

import logging
from typing import Optional

import numpy as np

from .decomposition import LUDecomposition, cholesky as cholesky_decomposition, lu as lu_decomposition
from .errors import NotConvergedError, ShapeMismatchError, SingularMatrixError
from .matrix import Matrix, Vector

logger = logging.getLogger(__name__)


def _check_system(a: Matrix, b: Vector):
    if not a.is_square() or a.height != len(b):
        raise ShapeMismatchError(
            f"cannot solve {a.height}x{a.width} system with right-hand side of length {len(b)}"
        )


def forward_substitution(lower: np.ndarray, b: np.ndarray, unit_diagonal: bool = False) -> np.ndarray:
    """Solve ``L y = b`` for lower triangular ``L``."""
    n = b.size
    y = np.zeros(n)
    for i in range(n):
        y[i] = b[i] - np.dot(lower[i, :i], y[:i])
        if not unit_diagonal:
            y[i] /= lower[i, i]
    return y


def back_substitution(upper: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Solve ``U x = y`` for upper triangular ``U``."""
    n = y.size
    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        x[i] = (y[i] - np.dot(upper[i, i + 1:], x[i + 1:])) / upper[i, i]
    return x


def cholesky(a: Matrix, b: Vector, skips_decomposition: bool = False) -> Vector:
    """Solve ``A x = b`` through the Cholesky factor of ``A``.

    Args:
        a: Symmetric positive definite matrix, or its lower triangular factor
            ``L`` when ``skips_decomposition`` is set.
        b: Right-hand side.
        skips_decomposition: Treat ``a`` as ``L`` directly.

    Returns:
        Solution vector.

    Raises:
        NotPositiveDefiniteError: If ``a`` must be factorized and is not
            positive definite.
    """
    _check_system(a, b)
    lower = a if skips_decomposition else cholesky_decomposition(a)
    y = forward_substitution(lower.array, b.elements)
    return Vector(back_substitution(lower.array.T, y))


def lu(a: Matrix, b: Vector, decomposition: Optional[LUDecomposition] = None) -> Vector:
    """Solve ``A x = b`` through an LU factorization of ``A``.

    Args:
        a: Square matrix.
        b: Right-hand side.
        decomposition: Precomputed ``lu(a)`` result to reuse.

    Returns:
        Solution vector.

    Raises:
        SingularMatrixError: If ``a`` has no LU factorization.
    """
    _check_system(a, b)
    lower, upper, permutation = decomposition or lu_decomposition(a)
    rhs = b.elements if permutation is None else b.elements[permutation]
    y = forward_substitution(lower.array, rhs, unit_diagonal=True)
    return Vector(back_substitution(upper.array, y))


def _iterate(a: Matrix, x: Vector, b: Vector, sweep, iteration_count, tolerance, max_iterations, name):
    _check_system(a, b)
    diagonal = np.diag(a.array)
    if np.any(diagonal == 0):
        raise SingularMatrixError(f"{name} requires a nonzero diagonal")
    if iteration_count is not None:
        for _ in range(iteration_count):
            sweep(a.array, x.elements, b.elements, diagonal)
        return x
    for iteration in range(1, max_iterations + 1):
        sweep(a.array, x.elements, b.elements, diagonal)
        residual = a.array @ x.elements - b.elements
        if np.dot(residual, residual) < tolerance:
            logger.debug("%s converged after %d iterations", name, iteration)
            return x
    raise NotConvergedError(
        f"{name} did not converge within {max_iterations} iterations",
        result=x,
        iterations=max_iterations,
    )


def _jacobi_sweep(a, x, b, diagonal):
    x[:] = (b - a @ x + diagonal * x) / diagonal


def _gauss_seidel_sweep(a, x, b, diagonal):
    for i in range(x.size):
        x[i] = (b[i] - np.dot(a[i], x) + a[i, i] * x[i]) / diagonal[i]


def jacobi(
    a: Matrix,
    x: Vector,
    b: Vector,
    iteration_count: Optional[int] = None,
    tolerance: float = 1e-3,
    max_iterations: int = 10000,
) -> Vector:
    """Solve ``A x = b`` by Jacobi iteration, updating ``x`` in place.

    Args:
        a: Square matrix with nonzero diagonal.
        x: Initial guess, overwritten with the result.
        b: Right-hand side.
        iteration_count: Exact number of sweeps. Takes precedence over
            ``tolerance`` when given.
        tolerance: Stop once the squared residual norm drops below this.
        max_iterations: Ceiling on sweeps in tolerance mode.

    Returns:
        ``x``.

    Raises:
        NotConvergedError: If ``max_iterations`` is reached in tolerance mode.
    """
    return _iterate(a, x, b, _jacobi_sweep, iteration_count, tolerance, max_iterations, "Jacobi")


def gauss_seidel(
    a: Matrix,
    x: Vector,
    b: Vector,
    iteration_count: Optional[int] = None,
    tolerance: float = 1e-3,
    max_iterations: int = 10000,
) -> Vector:
    """Solve ``A x = b`` by Gauss-Seidel iteration, updating ``x`` in place.

    Same arguments and stopping rules as :func:`jacobi`.
    """
    return _iterate(
        a, x, b, _gauss_seidel_sweep, iteration_count, tolerance, max_iterations, "Gauss-Seidel"
    )
