import numpy as np

from cloth_solver import make_edges_and_rests, make_grid_positions, make_pins


def test_grid_positions(make_config):
    config = make_config(width=3, height=2, space_delta=0.5, cloth_height=7.0)
    positions = make_grid_positions(config)
    assert positions.shape == (6, 3)
    np.testing.assert_array_equal(positions[0], [0, 0, 7])
    np.testing.assert_array_equal(positions[2], [1, 0, 7])
    np.testing.assert_array_equal(positions[3], [0, 0.5, 7])


def test_structural_edges(make_config):
    config = make_config(width=3, height=3)
    edges, rests = make_edges_and_rests(config)
    # 2 * w * (h - 1) for a square grid
    assert edges.shape == (12, 2)
    assert edges.dtype == np.int64
    np.testing.assert_allclose(rests, 1.0)
    assert {tuple(edge) for edge in edges} >= {(0, 1), (0, 3), (4, 5), (4, 7)}


def test_diagonal_edges(make_config):
    config = make_config(width=3, height=3, use_diagonals=True)
    edges, rests = make_edges_and_rests(config)
    assert len(edges) == 12 + 8
    assert {tuple(edge) for edge in edges} >= {(0, 4), (1, 3)}
    np.testing.assert_allclose(sorted(rests)[-8:], np.sqrt(2))


def test_pins(make_config):
    pins = make_pins(make_config(width=4, height=3))
    assert pins.dtype == bool
    np.testing.assert_array_equal(np.flatnonzero(pins), [8, 11])
