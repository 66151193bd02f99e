import logging

import numpy as np
import pytest

from cloth_solver.descent import update_by_newton_multigrid, update_by_newton_raphson
from cloth_solver.matrix import Matrix, Vector
from cloth_solver.multigrid import Multigrid

from conftest import grid_points, laplacian_system


def quadratic(a: np.ndarray, b: np.ndarray):
    """f(x) = 1/2 x^T A x - b^T x with its gradient and Hessian."""
    f = lambda x: 0.5 * x.elements @ a @ x.elements - b @ x.elements
    gradient = lambda x: Vector(a @ x.elements - b)
    hessian = lambda x: Matrix.from_array(a)
    return f, gradient, hessian


@pytest.mark.parametrize("simulates_inertia", [True, False])
def test_newton_step_solves_quadratic(simulates_inertia):
    a = np.array([[4.0, 1.0], [1.0, 3.0]])
    b = np.array([1.0, 2.0])
    x = Vector([10.0, -10.0])
    assert update_by_newton_raphson(x, *quadratic(a, b), simulates_inertia=simulates_inertia)
    np.testing.assert_allclose(x.elements, np.linalg.solve(a, b))


def test_zero_gradient_is_a_no_op():
    a = np.eye(2)
    x = Vector([1.0, 2.0])
    assert not update_by_newton_raphson(x, *quadratic(a, x.elements.copy()), simulates_inertia=True)
    np.testing.assert_array_equal(x.elements, [1.0, 2.0])


def test_failed_hessian_modification_skips_step(caplog):
    x = Vector([1.0, 1.0])
    with caplog.at_level(logging.WARNING, logger="cloth_solver.descent"):
        updated = update_by_newton_raphson(
            x,
            lambda x: 0.0,
            lambda x: Vector([1.0, 1.0]),
            lambda x: Matrix.from_array([[np.nan, 0.0], [0.0, 1.0]]),
        )
    assert not updated
    np.testing.assert_array_equal(x.elements, [1.0, 1.0])
    assert "Skipping Newton step" in caplog.text


def test_indefinite_hessian_still_descends():
    f = lambda x: x[0] ** 2 - x[1] ** 2 + 0.25 * x[1] ** 4
    gradient = lambda x: Vector([2 * x[0], -2 * x[1] + x[1] ** 3])
    hessian = lambda x: Matrix.from_array([[2.0, 0.0], [0.0, -2.0 + 3 * x[1] ** 2]])
    x = Vector([1.0, 0.5])
    before = f(x)
    assert update_by_newton_raphson(x, f, gradient, hessian)
    assert f(x) < before


def test_saddle_point_guard_moves_along_zero_gradient_entries():
    a = np.diag([2.0, 2.0])
    f, gradient, hessian = quadratic(a, np.zeros(2))
    x = Vector([1.0, 0.0])
    update_by_newton_raphson(x, f, gradient, hessian, simulates_inertia=True, tries_orthogonal_directions=0.5)
    np.testing.assert_allclose(x.elements, [0.0, 0.25])


def test_newton_multigrid_step_reaches_minimizer():
    points, edges = grid_points(3, 3)
    a = laplacian_system(points, edges)
    target = points.reshape(-1) + 0.1
    multigrid = Multigrid(points, depth=1, grid_ratio=4)
    x = Vector(points.reshape(-1))
    updated = update_by_newton_multigrid(
        multigrid,
        x,
        lambda y: Vector(a @ (y.elements - target)),
        lambda y: Matrix.from_array(a),
        Vector.zero(len(x)),
        0.1,
    )
    assert updated
    np.testing.assert_allclose(x.elements, target, atol=1e-6)


def test_newton_multigrid_applies_inertial_prediction():
    points, edges = grid_points(2, 2)
    a = laplacian_system(points, edges)
    velocity = Vector(np.tile([0.0, 0.0, -1.0], 4))
    multigrid = Multigrid(points, depth=1)
    x = Vector(points.reshape(-1))
    # energy minimized at the predicted point, so the correction is zero
    predicted = points.reshape(-1) + 0.1 * velocity.elements
    update_by_newton_multigrid(
        multigrid,
        x,
        lambda y: Vector(a @ (y.elements - predicted)),
        lambda y: Matrix.from_array(a),
        velocity,
        0.1,
    )
    np.testing.assert_allclose(x.elements, predicted, atol=1e-10)


def test_newton_multigrid_skips_singular_system(caplog):
    points, _ = grid_points(2, 2)
    multigrid = Multigrid(points, depth=1)
    x = Vector(points.reshape(-1))
    with caplog.at_level(logging.WARNING, logger="cloth_solver.descent"):
        updated = update_by_newton_multigrid(
            multigrid,
            x,
            lambda y: Vector.ones(len(y)),
            lambda y: Matrix.zero(len(y), len(y)),
            Vector.ones(len(x)),
            0.1,
        )
    assert not updated
    np.testing.assert_array_equal(x.elements, points.reshape(-1))
    assert "Skipping multigrid Newton step" in caplog.text
