"""
Cloth Solver Package

Mass-spring cloth simulation by Newton's method, Projective Dynamics and
Galerkin multigrid, on top of a small dense linear algebra library.
"""

from .config import Mode, SimConfig
from .errors import (
    ClothSolverError,
    NotConvergedError,
    NotPositiveDefiniteError,
    ShapeMismatchError,
    SingularMatrixError,
)
from .geometry import make_grid_positions, make_edges_and_rests, make_pins
from .matrix import Matrix, Orientation, Vector
from .multigrid import Multigrid
from .simulation import Simulator, SpringData
from .trajectory import save_trajectory, load_trajectory
from .visualization import animate_particles, plot_trajectories
from .logging_config import setup_logging

__all__ = [
    "Mode",
    "SimConfig",
    "ClothSolverError",
    "NotConvergedError",
    "NotPositiveDefiniteError",
    "ShapeMismatchError",
    "SingularMatrixError",
    "make_grid_positions",
    "make_edges_and_rests",
    "make_pins",
    "Matrix",
    "Orientation",
    "Vector",
    "Multigrid",
    "Simulator",
    "SpringData",
    "save_trajectory",
    "load_trajectory",
    "animate_particles",
    "plot_trajectories",
    "setup_logging",
]
