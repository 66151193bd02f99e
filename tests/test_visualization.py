import matplotlib.pyplot as plt
import numpy as np
import pytest
from matplotlib.animation import FuncAnimation

from cloth_solver.visualization import animate_particles, plot_particle_over_time, plot_trajectories


@pytest.fixture
def trajectory():
    frames = np.linspace(0, 1, 3)
    points = np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 1.0]])
    return points[None] - np.array([0, 0, 1.0]) * frames[:, None, None]


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def test_animate_particles_renders_frames(trajectory):
    anim = animate_particles(trajectory)
    assert isinstance(anim, FuncAnimation)
    html = anim.to_jshtml()
    assert "base64" in html


def test_plot_trajectories(trajectory):
    fig = plot_trajectories(trajectory)
    ax = fig.axes[0]
    assert len(ax.lines) == 2
    assert ax.get_title() == "Particle Trajectories"


def test_plot_selected_trajectory(trajectory):
    fig = plot_trajectories(trajectory, particle_indices=[1])
    assert len(fig.axes[0].lines) == 1


def test_plot_particle_over_time(trajectory):
    fig = plot_particle_over_time(trajectory, 1)
    assert len(fig.axes) == 3
    np.testing.assert_allclose(fig.axes[2].lines[0].get_ydata(), [1.0, 0.5, 0.0])
