import logging

import numpy as np
import pytest

from cloth_solver import Mode, Simulator, SpringData
from cloth_solver.errors import ShapeMismatchError
from cloth_solver.matrix import Vector


def falling_point(make_config, z=40.0, **overrides):
    return Simulator([0.0, 0.0, z], [False], [], [1.0], config=make_config(**overrides))


def hanging_spring(make_config, **overrides):
    options = dict(air_resistance=0.15, ground_height=-100.0)
    options.update(overrides)
    return Simulator(
        [0, 0, 0, 0, 0, -5],
        lambda index: index == 0,
        [(0, 1)],
        [1.0, 1.0],
        [5.0],
        [1.0],
        make_config(**options),
    )


def test_spring_data_other_end():
    s = SpringData(3, 7, 1.0, 2.0)
    assert s.other_end(3) == 7
    assert s.other_end(7) == 3


@pytest.mark.parametrize("mode", list(Mode))
def test_free_fall_single_step(make_config, mode):
    simulator = falling_point(make_config, mode=mode, multigrid_depth=1)
    simulator.simulate()
    np.testing.assert_allclose(simulator.get_positions(), [[0.0, 0.0, 39.902]], atol=1e-9)
    np.testing.assert_allclose(simulator.velocities.elements, [0.0, 0.0, -0.98], atol=1e-8)


def test_air_resistance_scales_velocity(make_config):
    simulator = falling_point(make_config, air_resistance=0.5)
    simulator.simulate()
    np.testing.assert_allclose(simulator.velocities.elements, [0.0, 0.0, -0.49], atol=1e-8)


def test_ground_collision(make_config):
    simulator = falling_point(make_config, z=0.05)
    simulator.simulate()
    position = simulator.get_positions()[0]
    assert position[2] == 0
    # fell 0.098 in one step: v = -0.48, bounced with restitution 0.9
    np.testing.assert_allclose(simulator.velocities.elements, [0.0, 0.0, 0.432], atol=1e-8)


def test_hanging_spring_settles(make_config):
    simulator = hanging_spring(make_config)
    trajectory = simulator.run(100)
    end = trajectory[-1, 1]
    # rest length plus m g / k
    assert end[2] == pytest.approx(-14.8, abs=0.05)
    assert end[0] == pytest.approx(0, abs=1e-9)
    assert np.linalg.norm(trajectory[-1] - trajectory[-2]) < 0.05
    np.testing.assert_allclose(trajectory[-1, 0], [0, 0, 0], atol=1e-3)


def test_horizontal_spring_swings_down_and_settles(make_config):
    simulator = Simulator(
        [0, 0, 0, 5, 0, 0],
        lambda index: index == 0,
        [(0, 1)],
        [1.0, 1.0],
        config=make_config(air_resistance=0.15, ground_height=-100.0),
    )
    assert simulator.springs[0].restlength == 5
    trajectory = simulator.run(100)
    end = trajectory[:, 1]
    assert np.all(end[:, 2] >= -100.0)
    assert end[-1, 2] < -5
    assert np.linalg.norm(end[-1] - end[-2]) < 0.1


def test_spring_at_rest_without_gravity_stays_put(make_config):
    simulator = Simulator(
        [0, 0, 0, 5, 0, 0], [True, False], [(0, 1)], [1.0, 1.0], config=make_config(gravity=0.0)
    )
    before = simulator.get_positions()
    simulator.simulate()
    np.testing.assert_array_equal(simulator.get_positions(), before)
    np.testing.assert_array_equal(simulator.velocities.elements, 0)


def test_simulation_is_deterministic(make_config):
    first = hanging_spring(make_config).run(20)
    second = hanging_spring(make_config).run(20)
    np.testing.assert_array_equal(first, second)


@pytest.mark.parametrize("mode", [Mode.PROJECTIVE_DYNAMICS, Mode.MULTIGRID])
def test_fixed_points_do_not_move(make_config, mode):
    config = make_config(width=3, height=3, mode=mode, multigrid_depth=1)
    simulator = Simulator.from_config(config)
    trajectory = simulator.run(5)
    fixed = simulator.is_fixed
    assert fixed.sum() == 2
    original = simulator.original_positions.elements.reshape(-1, 3)
    for frame in trajectory:
        np.testing.assert_array_equal(frame[fixed], original[fixed])
    assert np.all(trajectory[-1][~fixed, 2] < config.cloth_height)


def test_fixed_points_are_held_by_penalty_in_newton_mode(make_config):
    config = make_config(width=3, height=3)
    simulator = Simulator.from_config(config)
    trajectory = simulator.run(5)
    original = simulator.original_positions.elements.reshape(-1, 3)
    np.testing.assert_allclose(trajectory[-1][simulator.is_fixed], original[simulator.is_fixed], atol=1e-2)
    assert np.all(trajectory[-1][~simulator.is_fixed, 2] < config.cloth_height)


def test_gradient_and_hessian_match_finite_differences(make_config, rng):
    config = make_config(width=2, height=2, spring_constant=10.0)
    simulator = Simulator.from_config(config)
    simulator.velocities = Vector(rng.standard_normal(12))
    x = simulator.positions.add_new(Vector(0.1 * rng.standard_normal(12)))
    gradient = simulator.gradient(x).elements
    hessian = simulator.hessian(x).array
    eps = 1e-6
    for i in range(12):
        step = np.zeros(12)
        step[i] = eps
        forward = simulator.energy(x.add_new(Vector(step)))
        backward = simulator.energy(x.subtract_new(Vector(step)))
        assert gradient[i] == pytest.approx((forward - backward) / (2 * eps), rel=1e-5, abs=1e-3)
        column = (
            simulator.gradient(x.add_new(Vector(step))).elements
            - simulator.gradient(x.subtract_new(Vector(step))).elements
        ) / (2 * eps)
        np.testing.assert_allclose(hessian[:, i], column, rtol=1e-5, atol=1e-3)
    np.testing.assert_allclose(hessian, hessian.T)


def test_fixed_points_are_decoupled_outside_newton_mode(make_config):
    config = make_config(width=2, height=2, mode=Mode.PROJECTIVE_DYNAMICS)
    simulator = Simulator.from_config(config)
    x = simulator.positions.add_new(Vector(np.full(12, 0.3)))
    gradient = simulator.gradient(x).elements.reshape(-1, 3)
    np.testing.assert_array_equal(gradient[simulator.is_fixed], 0)
    hessian = simulator.hessian(x).array
    index = int(np.flatnonzero(simulator.is_fixed)[0])
    dofs = slice(3 * index, 3 * index + 3)
    block = hessian[dofs, dofs]
    np.testing.assert_allclose(block, np.eye(3) * config.mass / config.timestep ** 2)
    assert np.count_nonzero(hessian[dofs]) == 3
    assert np.count_nonzero(hessian[:, dofs]) == 3


def test_constructor_defaults_and_adjacency(make_config):
    simulator = Simulator(
        np.array([[0, 0, 0], [3, 0, 0], [0, 4, 0], [3, 4, 0]], dtype=float),
        [False] * 4,
        [(0, 1), (0, 2), (1, 3), (2, 3), (0, 3)],
        [1, 1, 1, 1],
        config=make_config(),
    )
    assert simulator.point_count == 4
    assert simulator.springs_connected_to == [[0, 1, 4], [0, 2], [1, 3], [2, 3, 4]]
    assert [s.restlength for s in simulator.springs] == pytest.approx([3, 4, 4, 3, 5])
    assert all(s.spring_constant == 1 for s in simulator.springs)
    np.testing.assert_array_equal(simulator.get_position(3).elements, [3, 4, 0])


@pytest.mark.parametrize(
    "positions, is_fixed, springs, masses, error",
    [
        ([0, 0, 0, 1], [False], [], [1], ShapeMismatchError),
        ([0, 0, 0], [False], [], [1, 1], ShapeMismatchError),
        ([0, 0, 0], [False, True], [], [1], ShapeMismatchError),
        ([0, 0, 0], [False], [], [0], ValueError),
        ([0, 0, 0, 1, 0, 0], [False, False], [(0, 2)], [1, 1], ValueError),
        ([0, 0, 0, 1, 0, 0], [False, False], [(1, 1)], [1, 1], ValueError),
    ],
)
def test_constructor_validation(make_config, positions, is_fixed, springs, masses, error):
    with pytest.raises(error):
        Simulator(positions, is_fixed, springs, masses, config=make_config())


def test_run_and_reset(make_config):
    simulator = Simulator.from_config(make_config(width=3, height=2, steps=4))
    trajectory = simulator.run()
    assert trajectory.shape == (4, 6, 3)
    np.testing.assert_array_equal(trajectory[-1], simulator.get_positions())
    assert simulator.run(2, record=False) is None
    simulator.reset()
    np.testing.assert_array_equal(simulator.positions.elements, simulator.original_positions.elements)
    np.testing.assert_array_equal(simulator.velocities.elements, 0)


def test_multigrid_is_built_on_demand(make_config):
    simulator = Simulator.from_config(make_config(width=3, height=3, mode=Mode.MULTIGRID, multigrid_depth=1))
    assert simulator.multigrid is not None
    assert simulator.multigrid.depth == 1
    assert Simulator.from_config(make_config(width=3, height=3)).multigrid is None


def test_simulator_logs_creation(make_config, caplog):
    with caplog.at_level(logging.INFO, logger="cloth_solver.simulation"):
        falling_point(make_config)
    assert "Simulator created: 1 points, 0 springs, 0 fixed, mode=newton" in caplog.text
