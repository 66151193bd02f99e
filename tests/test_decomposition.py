import numpy as np
import pytest

from cloth_solver.decomposition import cholesky, hessenberg_reduction, hessian_modification, lu, qr
from cloth_solver.errors import NotPositiveDefiniteError, ShapeMismatchError, SingularMatrixError
from cloth_solver.matrix import Matrix

NOT_POSITIVE_DEFINITE = Matrix(
    [
        0.2985329031944275, 0.10807351022958755, 0.10807351022958755,
        0.01267128437757492, 0.2985329031944275, 0.01267128437757492,
        -0.2859558165073395, -0.2859558165073395, 0.2985329031944275,
    ],
    3,
    3,
)


def test_cholesky():
    a = Matrix.from_array([[4, 12, -16], [12, 37, -43], [-16, -43, 98]])
    lower = cholesky(a)
    np.testing.assert_allclose(lower.array, [[2, 0, 0], [6, 1, 0], [-8, 5, 3]])
    np.testing.assert_allclose(lower.multiply(lower.transpose()).array, a.array)


def test_cholesky_rejects_non_positive_definite():
    with pytest.raises(NotPositiveDefiniteError):
        cholesky(NOT_POSITIVE_DEFINITE)


def test_cholesky_rejects_non_square():
    with pytest.raises(ShapeMismatchError):
        cholesky(Matrix.zero(2, 3))


@pytest.mark.parametrize(
    "a, expected_lower, expected_upper",
    [
        (
            [[1, 2, 4], [3, 8, 14], [2, 6, 13]],
            [[1, 0, 0], [3, 1, 0], [2, 1, 1]],
            [[1, 2, 4], [0, 2, 2], [0, 0, 3]],
        ),
        (
            [[3, 1, 6], [-6, 0, -16], [0, 8, -17]],
            [[1, 0, 0], [-2, 1, 0], [0, 4, 1]],
            [[3, 1, 6], [0, 2, -4], [0, 0, -1]],
        ),
    ],
)
def test_lu(a, expected_lower, expected_upper):
    lower, upper, permutation = lu(Matrix.from_array(a))
    assert permutation is None
    np.testing.assert_allclose(lower.array, expected_lower)
    np.testing.assert_allclose(upper.array, expected_upper)
    np.testing.assert_allclose(lower.multiply(upper).array, a)


def test_lu_swaps_rows_on_zero_pivot():
    a = np.array([[0, 1, 2], [1, 1, 1], [2, 0, 1]], dtype=float)
    lower, upper, permutation = lu(Matrix.from_array(a))
    assert permutation is not None
    np.testing.assert_allclose(lower.multiply(upper).array, a[permutation])
    assert np.allclose(np.triu(upper.array), upper.array)


def test_lu_of_singular_matrix_raises():
    with pytest.raises(SingularMatrixError):
        lu(Matrix.from_array([[1, 2], [2, 4]]))


def test_qr():
    a = Matrix.from_array([[12, -51, 4], [6, 167, -68], [-4, 24, -41]])
    q, r = qr(a)
    np.testing.assert_allclose(
        q.array,
        [[6 / 7, -69 / 175, -58 / 175], [3 / 7, 158 / 175, 6 / 175], [-2 / 7, 6 / 35, -33 / 35]],
        atol=1e-12,
    )
    np.testing.assert_allclose(r.array, [[14, 21, -14], [0, 175, -70], [0, 0, 35]], atol=1e-10)
    np.testing.assert_allclose(q.transpose().multiply(q).array, np.eye(3), atol=1e-12)
    np.testing.assert_allclose(q.multiply(r).array, a.array, atol=1e-10)


def test_hessenberg_reduction_is_similar_and_upper_hessenberg():
    a = Matrix.from_array([[-5, 2, 1, 2], [-9, 7, 3, 1], [3, 2, 8, -1], [1, 4, 5, -3]])
    h = hessenberg_reduction(a)
    np.testing.assert_allclose(np.tril(h.array, -2), 0, atol=1e-10)
    np.testing.assert_allclose(
        np.sort_complex(np.linalg.eigvals(h.array)),
        np.sort_complex(np.linalg.eigvals(a.array)),
        atol=1e-8,
    )
    assert a[0, 0] == -5


def test_hessenberg_reduction_with_zero_subdiagonal_entry():
    a = Matrix.from_array([[1, 0, 0], [0, 2, 0], [5, 0, 3]])
    h = hessenberg_reduction(a)
    assert abs(h[2, 0]) < 1e-12
    np.testing.assert_allclose(np.sort(np.linalg.eigvals(h.array).real), [1, 2, 3], atol=1e-10)


def test_hessenberg_reduction_skips_reduced_columns():
    a = Matrix.from_array([[1, 2, 3], [0, 5, 6], [0, 7, 8]])
    np.testing.assert_array_equal(hessenberg_reduction(a).array, a.array)


def test_hessian_modification_keeps_positive_definite_matrix():
    a = Matrix.from_array([[4, 12, -16], [12, 37, -43], [-16, -43, 98]])
    np.testing.assert_allclose(hessian_modification(a).array, cholesky(a).array)


def test_hessian_modification_shifts_indefinite_matrix():
    a = Matrix.from_array([[1, 0], [0, -1]])
    lower = hessian_modification(a)
    shifted = lower.multiply(lower.transpose()).array
    tau = shifted[0, 0] - 1
    assert tau > 1
    np.testing.assert_allclose(shifted - a.array, tau * np.eye(2), atol=1e-12)
    np.testing.assert_array_equal(a.array, [[1, 0], [0, -1]])


def test_hessian_modification_with_positive_diagonal_but_indefinite():
    lower = hessian_modification(NOT_POSITIVE_DEFINITE)
    shifted = lower.multiply(lower.transpose()).array
    assert np.all(np.linalg.eigvalsh(shifted) > 0)


def test_hessian_modification_rejects_non_finite():
    with pytest.raises(SingularMatrixError):
        hessian_modification(Matrix.from_array([[np.nan, 0], [0, 1]]))
