"""
Matrix decompositions: Cholesky, LU, QR (Gram-Schmidt), Householder Hessenberg
reduction and Hessian modification.
"""

import logging
import math
from collections import namedtuple

import numpy as np

from .errors import NotPositiveDefiniteError, ShapeMismatchError, SingularMatrixError
from .matrix import Matrix, Vector

logger = logging.getLogger(__name__)

LUDecomposition = namedtuple("LUDecomposition", ["lower", "upper", "permutation"])
LUDecomposition.__doc__ = """Result of :func:`lu`.

``permutation`` is ``None`` when no row swap was needed, otherwise an index
array such that ``A[permutation] == lower @ upper``.
"""

QRDecomposition = namedtuple("QRDecomposition", ["q", "r"])


def _require_square(matrix: Matrix, name: str):
    if not matrix.is_square():
        raise ShapeMismatchError(
            f"{name} requires a square matrix, got {matrix.height}x{matrix.width}"
        )


def cholesky(matrix: Matrix) -> Matrix:
    """Compute the lower triangular factor ``L`` with ``L L^T == A``.

    Only the lower triangle of ``matrix`` is read.

    Args:
        matrix: Symmetric positive definite matrix.

    Returns:
        Lower triangular Cholesky factor.

    Raises:
        ShapeMismatchError: If the matrix is not square.
        NotPositiveDefiniteError: If a non-positive diagonal residual appears.
    """
    _require_square(matrix, "Cholesky decomposition")
    a = matrix.array
    n = matrix.height
    lower = np.zeros((n, n))
    for j in range(n):
        residual = a[j, j] - np.dot(lower[j, :j], lower[j, :j])
        if not residual > 0:
            raise NotPositiveDefiniteError(
                f"matrix is not positive definite (column {j})", column=j
            )
        lower[j, j] = np.sqrt(residual)
        lower[j + 1:, j] = (a[j + 1:, j] - lower[j + 1:, :j] @ lower[j, :j]) / lower[j, j]
    return Matrix(lower.reshape(-1), n, n)


def lu(matrix: Matrix) -> LUDecomposition:
    """Doolittle LU decomposition by row elimination.

    No pivoting is done while the diagonal of ``U`` stays nonzero. When a zero
    pivot appears, the first row below it with a nonzero entry in that column
    is swapped in and the swap is recorded in ``permutation``.

    Args:
        matrix: Square matrix.

    Returns:
        ``LUDecomposition(lower, upper, permutation)``.

    Raises:
        ShapeMismatchError: If the matrix is not square.
        SingularMatrixError: If no nonzero pivot exists for some column.
    """
    _require_square(matrix, "LU decomposition")
    n = matrix.height
    upper = matrix.array.copy()
    lower = np.eye(n)
    order = np.arange(n)
    swapped = False
    for i in range(n):
        if upper[i, i] == 0:
            candidates = np.nonzero(upper[i + 1:, i])[0]
            if candidates.size == 0:
                raise SingularMatrixError(f"zero pivot in column {i}")
            k = i + 1 + candidates[0]
            upper[[i, k]] = upper[[k, i]]
            lower[[i, k], :i] = lower[[k, i], :i]
            order[[i, k]] = order[[k, i]]
            swapped = True
        for row in range(i + 1, n):
            factor = upper[row, i] / upper[i, i]
            lower[row, i] = factor
            upper[row] -= factor * upper[i]
    return LUDecomposition(
        Matrix(lower.reshape(-1), n, n),
        Matrix(upper.reshape(-1), n, n),
        order if swapped else None,
    )


def qr(matrix: Matrix) -> QRDecomposition:
    """QR decomposition by classical Gram-Schmidt orthogonalization.

    Columns that are linearly dependent on the previous ones yield a zero
    column in ``Q`` and a zero diagonal entry in ``R``. There is no
    re-orthogonalization, so this is meant for small well-conditioned matrices.

    Args:
        matrix: ``m x n`` matrix with ``m >= n``.

    Returns:
        ``QRDecomposition(q, r)`` with ``q`` of shape ``m x n`` and ``r`` upper
        triangular ``n x n``.
    """
    a = matrix.array
    m, n = matrix.shape
    if m < n:
        raise ShapeMismatchError(f"QR decomposition requires height >= width, got {m}x{n}")
    q = np.zeros((m, n))
    r = np.zeros((n, n))
    for j in range(n):
        column = a[:, j]
        r[:j, j] = q[:, :j].T @ column
        v = column - q[:, :j] @ r[:j, j]
        norm = np.linalg.norm(v)
        r[j, j] = norm
        if norm != 0:
            q[:, j] = v / norm
    return QRDecomposition(Matrix(q.reshape(-1), m, n), Matrix(r.reshape(-1), n, n))


def hessenberg_reduction(matrix: Matrix) -> Matrix:
    """Reduce a square matrix to upper Hessenberg form by Householder reflections.

    The result is similar to the input, so it has the same eigenvalues.

    Args:
        matrix: Square matrix. It is not modified.

    Returns:
        New upper Hessenberg matrix.
    """
    _require_square(matrix, "Hessenberg reduction")
    n = matrix.height
    a = matrix.clone()
    for k in range(n - 2):
        sigma = sum(a[j, k] ** 2 for j in range(k + 1, n))
        if sigma == 0:
            continue
        # a zero subdiagonal entry counts as positive
        alpha = -math.copysign(math.sqrt(sigma), a[k + 1, k])
        r = math.sqrt(0.5 * (alpha * alpha - a[k + 1, k] * alpha))
        v = Vector.zero(n)
        v[k + 1] = (a[k + 1, k] - alpha) / (2 * r)
        for j in range(k + 2, n):
            v[j] = a[j, k] / (2 * r)
        reflector = Matrix.identity(n).subtract(v.outer_product(v).multiply_scalar(2))
        a = reflector.multiply(a).multiply(reflector)
    return a


def hessian_modification(
    matrix: Matrix,
    first_shift: float = 1e-3,
    step: float = 2,
    max_attempts: int = 64,
) -> Matrix:
    """Factorize ``A + tau I`` for the smallest tried ``tau`` that is positive definite.

    ``tau`` starts at zero when every diagonal entry is positive, otherwise at
    ``-min(diag(A)) + first_shift``, and is multiplied by ``step`` after each
    failed Cholesky attempt. The input matrix is not modified.

    Args:
        matrix: Square (typically symmetric) matrix.
        first_shift: Smallest nonzero shift to try.
        step: Growth factor for the shift.
        max_attempts: Number of Cholesky attempts before giving up.

    Returns:
        Lower triangular Cholesky factor of the shifted matrix.

    Raises:
        ShapeMismatchError: If the matrix is not square.
        SingularMatrixError: If the matrix has non-finite entries or no shift
            succeeded within ``max_attempts``.
    """
    _require_square(matrix, "Hessian modification")
    if not np.all(np.isfinite(matrix.elements)):
        raise SingularMatrixError("matrix has non-finite entries")
    min_diagonal = float(np.min(np.diag(matrix.array))) if matrix.height else 0.0
    tau = 0.0 if min_diagonal > 0 else -min_diagonal + first_shift
    for _ in range(max_attempts):
        shifted = matrix.clone()
        if tau != 0:
            shifted.array[np.diag_indices(matrix.height)] += tau
        try:
            lower = cholesky(shifted)
        except NotPositiveDefiniteError:
            tau = max(step * tau, first_shift)
            continue
        if tau != 0:
            logger.debug("Hessian modified with shift tau=%g", tau)
        return lower
    raise SingularMatrixError(
        f"could not make matrix positive definite after {max_attempts} shifts (tau={tau:g})"
    )
