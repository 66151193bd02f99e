"""
Eigenvalues by the shifted QR algorithm and eigenvectors by inverse iteration.

See https://people.inf.ethz.ch/arbenz/ewp/Lnotes/chapter4.pdf for the QR
algorithm with Hessenberg reduction and deflation.
"""

import logging
from typing import List

import numpy as np

from .decomposition import hessenberg_reduction, qr
from .errors import NotConvergedError, ShapeMismatchError, SingularMatrixError
from .matrix import Matrix, Vector

logger = logging.getLogger(__name__)

# Unshifted QR sweeps applied to the final 2x2 block.
UNSHIFTED_ITERATIONS = 70


def _deflate(matrix: Matrix, index: int) -> Matrix:
    """Remove row ``index`` and column ``index``."""
    keep = [i for i in range(matrix.height) if i != index]
    return Matrix.from_array(matrix.array[np.ix_(keep, keep)])


def _wilkinson_shift(top_left: float, bottom_left: float, bottom_right: float) -> float:
    d = (top_left - bottom_right) / 2
    sign = 1.0 if d >= 0 else -1.0
    return bottom_right + d - sign * np.sqrt(d * d + bottom_left * bottom_left)


def _eigenvalues_without_shift(matrix: Matrix) -> List[float]:
    for _ in range(UNSHIFTED_ITERATIONS):
        q, r = qr(matrix)
        matrix = r.multiply(q)
    return [matrix[i, i] for i in range(matrix.height)]


def eigenvalues(matrix: Matrix, tolerance: float = 1e-2, max_iterations: int = 1000) -> List[float]:
    """Approximate the (real) eigenvalues of a square matrix.

    Rows that are entirely zero contribute an eigenvalue of zero and are
    deflated first. The remainder is reduced to Hessenberg form and iterated
    with Wilkinson-shifted QR steps; each time the last subdiagonal entry drops
    below ``tolerance`` its diagonal entry is recorded and the last row and
    column are deflated. The final 2x2 block is handled by a fixed number of
    unshifted QR sweeps, so results for blocks with complex or nearly equal
    eigenvalues are approximate.

    Args:
        matrix: Square matrix. It is not modified.
        tolerance: Convergence threshold on the absolute subdiagonal entry.
        max_iterations: QR steps allowed per deflated eigenvalue.

    Returns:
        Eigenvalues in the order they were found, with multiplicity.

    Raises:
        ShapeMismatchError: If the matrix is not square.
        NotConvergedError: If a shifted QR phase exceeds ``max_iterations``.
    """
    if not matrix.is_square():
        raise ShapeMismatchError("eigenvalues require a square matrix")
    values: List[float] = []
    h = matrix.clone()

    row = 0
    while row < h.height and h.height > 1:
        if not np.any(h.array[row]):
            values.append(0.0)
            h = _deflate(h, row)
        else:
            row += 1

    if h.height <= 2:
        return values + _eigenvalues_without_shift(h)

    h = hessenberg_reduction(h)
    for m in range(h.height - 1, 1, -1):
        for iteration in range(max_iterations):
            shift = Matrix(_wilkinson_shift(h[m - 1, m - 1], h[m, m - 1], h[m, m]), h.height, h.height)
            q, r = qr(h.subtract_new(shift))
            h = r.multiply(q).add(shift)
            if abs(h[m, m - 1]) <= tolerance:
                break
        else:
            raise NotConvergedError(
                f"shifted QR did not converge within {max_iterations} iterations",
                result=values,
                iterations=max_iterations,
            )
        logger.debug("Eigenvalue %g deflated after %d QR steps", h[m, m], iteration + 1)
        values.append(h[m, m])
        h = _deflate(h, m)
    return values + _eigenvalues_without_shift(h)


def eigenvector_of(
    matrix: Matrix,
    eigenvalue: float,
    approximate_zero_by: float = 1e-6,
    residual_tolerance: float = 1e-2,
    max_iterations: int = 100,
) -> Vector:
    """Find a unit eigenvector for a known eigenvalue by inverse iteration.

    Starts from the all-ones vector. An eigenvalue closer to zero than
    ``approximate_zero_by`` is replaced by ``approximate_zero_by``, and an exact
    eigenvalue is nudged by the same amount when the shifted matrix turns out
    to be singular.

    Args:
        matrix: Square matrix.
        eigenvalue: Eigenvalue of ``matrix`` (approximate is fine).
        approximate_zero_by: Smallest magnitude used for the shift.
        residual_tolerance: Stop when ``|(A - lambda I) x|`` drops below this.
        max_iterations: Ceiling on inverse iteration steps.

    Returns:
        Unit eigenvector.
    """
    if not matrix.is_square():
        raise ShapeMismatchError("eigenvectors require a square matrix")
    n = matrix.height
    if abs(eigenvalue) < approximate_zero_by:
        eigenvalue = approximate_zero_by
    shifted = matrix.subtract_new(Matrix.identity(n).multiply_scalar(eigenvalue))
    try:
        inverse = shifted.inverse()
    except SingularMatrixError:
        nudged = matrix.subtract_new(
            Matrix.identity(n).multiply_scalar(eigenvalue + approximate_zero_by)
        )
        inverse = nudged.inverse()
    x = Vector.ones(n)
    for _ in range(max_iterations):
        x = inverse.multiply_vector(x).normalize()
        if shifted.multiply_vector(x).norm() < residual_tolerance:
            return x
    raise NotConvergedError(
        f"inverse iteration did not converge within {max_iterations} iterations",
        result=x,
        iterations=max_iterations,
    )
