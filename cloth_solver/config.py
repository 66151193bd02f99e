"""
Configuration dataclass for the spring and cloth simulators.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import warp as wp


class Mode(Enum):
    """Update strategy used by ``Simulator.simulate``."""

    NEWTON = "newton"
    PROJECTIVE_DYNAMICS = "projective"
    MULTIGRID = "multigrid"


@dataclass
class SimConfig:
    """Configuration for a simulation.

    Attributes:
        timestep: Time step of implicit Euler (seconds per step).
        gravity: Gravitational acceleration along -z (m/s^2).
        air_resistance: Fraction of velocity lost per step, in [0, 1].
        ground_height: Height of the ground plane.
        constant_of_restitution: Fraction of velocity kept after hitting the
            ground, in [0, 1].
        mode: Update strategy.
        fixed_point_stiffness: Stiffness of the penalty holding fixed points
            at their rest position (Newton mode only).
        simulates_inertia: Take full Newton steps instead of a line search.
        projective_iterations: Local/global iterations per Projective Dynamics step.
        multigrid_depth: Number of coarse multigrid levels.
        multigrid_grid_ratio: Size ratio between consecutive multigrid levels.
        multigrid_smooth_count: Jacobi sweeps per multigrid smoothing pass.
        acceleration_threshold: Vector length above which elementwise updates
            run as Warp kernels. None keeps everything on numpy.
        width: Number of particles along x of the cloth grid.
        height: Number of particles along y of the cloth grid.
        space_delta: Distance between adjacent particles in the grid.
        mass: Mass of each particle in kg.
        spring_constant: Spring constant (stiffness). Higher = stiffer cloth.
        cloth_height: Initial z coordinate of the cloth grid.
        steps: Total number of simulation steps.
        use_diagonals: Whether to include diagonal springs (8-connectivity vs 4).
        device: Warp device to use ('cpu' or 'cuda:0', etc.).
    """

    timestep: float = 0.1
    gravity: float = 9.8
    air_resistance: float = 0.0
    ground_height: float = 0.0
    constant_of_restitution: float = 0.9
    mode: Mode = Mode.NEWTON
    fixed_point_stiffness: float = 1e5
    simulates_inertia: bool = True
    projective_iterations: int = 1
    multigrid_depth: int = 2
    multigrid_grid_ratio: float = 4
    multigrid_smooth_count: int = 5
    acceleration_threshold: Optional[int] = 100
    width: int = 8
    height: int = 8
    space_delta: float = 1.0
    mass: float = 1.0
    spring_constant: float = 10.0
    cloth_height: float = 40.0
    steps: int = 100
    use_diagonals: bool = False
    device: Optional[str] = None

    def __post_init__(self):
        """Validate ranges, initialize warp and set default device if not specified."""
        if isinstance(self.mode, str):
            self.mode = Mode(self.mode)
        for name in ("air_resistance", "constant_of_restitution"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.timestep <= 0:
            raise ValueError(f"timestep must be positive, got {self.timestep}")
        if self.projective_iterations < 1:
            raise ValueError("projective_iterations must be at least 1")
        if self.multigrid_depth < 1:
            raise ValueError("multigrid_depth must be at least 1")
        if self.device is None:
            wp.init()
            self.device = str(wp.get_device())

    @property
    def num_particles(self) -> int:
        """Total number of particles in the cloth."""
        return self.width * self.height

    @property
    def wp_device(self):
        """Get the warp device object."""
        return wp.get_device(self.device)
