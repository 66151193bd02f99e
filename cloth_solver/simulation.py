"""
Mass-spring simulator.

Each call to :meth:`Simulator.simulate` moves the points toward the minimum of
the implicit Euler step energy

    E(x) = 1/(2h^2) |x - x0 - h v|^2_M + sum_i m_i g z_i + sum_springs k/2 (|p - q| - L)^2

(plus a stiff penalty on fixed points in Newton mode) using one of three
strategies: a Newton step, Projective Dynamics, or a Newton step solved by
two-level multigrid.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from . import kinetic, solver, spring
from .acceleration import AccelerationContext
from .config import Mode, SimConfig
from .decomposition import hessian_modification
from .descent import update_by_newton_multigrid, update_by_newton_raphson
from .errors import ShapeMismatchError, SingularMatrixError
from .geometry import make_edges_and_rests, make_grid_positions, make_pins
from .matrix import Matrix, Vector
from .multigrid import Multigrid

logger = logging.getLogger(__name__)

FixedPredicate = Union[Callable[[int], bool], Sequence[bool], np.ndarray]


@dataclass(frozen=True)
class SpringData:
    """A spring between two points."""

    origin_index: int
    end_index: int
    restlength: float
    spring_constant: float

    def other_end(self, index: int) -> int:
        return self.end_index if self.origin_index == index else self.origin_index


class Simulator:
    """Mass-spring simulator with Newton, Projective Dynamics and multigrid updates.

    Attributes:
        config: Simulation configuration.
        positions: Current positions (3n).
        original_positions: Reference positions the fixed point penalty pulls toward (3n).
        velocities: Current velocities (3n).
        mass3: Point masses replicated per coordinate (3n).
        is_fixed: Boolean mask of fixed points (n).
        springs: Springs in construction order.
        springs_connected_to: For each point, indices of the springs touching it.
        acceleration: Elementwise arithmetic strategies.
        multigrid: Multigrid hierarchy (multigrid mode only).
    """

    def __init__(
        self,
        positions,
        is_fixed: FixedPredicate,
        spring_indices,
        masses,
        rest_lengths: Optional[Sequence[float]] = None,
        spring_constants: Optional[Sequence[float]] = None,
        config: Optional[SimConfig] = None,
    ):
        """Initialize the simulator.

        Args:
            positions: Flat 3n buffer or (n, 3) array of initial positions.
            is_fixed: Predicate ``index -> bool`` or boolean sequence of length n.
            spring_indices: Pairs ``(origin_index, end_index)``.
            masses: Mass of each point (n).
            rest_lengths: Rest length per spring. Defaults to the initial distance.
            spring_constants: Stiffness per spring. Defaults to 1.
            config: Simulation configuration. Defaults to ``SimConfig()``.

        Raises:
            ShapeMismatchError: If array lengths are inconsistent.
            ValueError: If masses are not positive or a spring index is out of range.
        """
        self.config = config if config is not None else SimConfig()

        positions = np.asarray(positions, dtype=np.float64).reshape(-1)
        if positions.size % 3:
            raise ShapeMismatchError(f"position buffer length {positions.size} is not a multiple of 3")
        n = positions.size // 3
        masses = np.asarray(masses, dtype=np.float64).reshape(-1)
        if masses.size != n:
            raise ShapeMismatchError(f"expected {n} masses, got {masses.size}")
        if np.any(masses <= 0):
            raise ValueError("masses must be positive")
        if callable(is_fixed):
            fixed = np.array([bool(is_fixed(i)) for i in range(n)], dtype=bool)
        else:
            fixed = np.asarray(is_fixed, dtype=bool).reshape(-1)
            if fixed.size != n:
                raise ShapeMismatchError(f"expected {n} fixed flags, got {fixed.size}")

        self.positions = Vector(positions)
        self.original_positions = self.positions.clone()
        self.velocities = Vector.zero(positions.size)
        self.mass3 = Vector(np.repeat(masses, 3))
        self.is_fixed = fixed

        self.springs: List[SpringData] = []
        self.springs_connected_to: List[List[int]] = [[] for _ in range(n)]
        for spring_index, (origin_index, end_index) in enumerate(spring_indices):
            origin_index, end_index = int(origin_index), int(end_index)
            if not (0 <= origin_index < n and 0 <= end_index < n) or origin_index == end_index:
                raise ValueError(f"invalid spring ({origin_index}, {end_index}) for {n} points")
            restlength = (
                float(rest_lengths[spring_index])
                if rest_lengths is not None
                else self.get_position(origin_index).subtract(self.get_position(end_index)).norm()
            )
            spring_constant = (
                float(spring_constants[spring_index]) if spring_constants is not None else 1.0
            )
            self.springs.append(SpringData(origin_index, end_index, restlength, spring_constant))
            self.springs_connected_to[origin_index].append(spring_index)
            self.springs_connected_to[end_index].append(spring_index)

        self.acceleration = AccelerationContext.from_config(self.config)
        self.multigrid: Optional[Multigrid] = None
        if self.config.mode is Mode.MULTIGRID:
            self._build_multigrid()
        self._projective_factor: Optional[Matrix] = None

        logger.info(
            "Simulator created: %d points, %d springs, %d fixed, mode=%s",
            n,
            len(self.springs),
            int(fixed.sum()),
            self.config.mode.value,
        )

    @classmethod
    def from_config(cls, config: SimConfig) -> "Simulator":
        """Build a cloth grid simulator from the grid parameters of ``config``."""
        edges, rest_lengths = make_edges_and_rests(config)
        return cls(
            make_grid_positions(config),
            make_pins(config),
            edges,
            np.full(config.num_particles, config.mass),
            rest_lengths,
            np.full(len(edges), config.spring_constant),
            config,
        )

    @property
    def point_count(self) -> int:
        return len(self.positions) // 3

    def _build_multigrid(self):
        self.multigrid = Multigrid(
            self.original_positions.elements,
            self.config.multigrid_depth,
            self.config.multigrid_grid_ratio,
        )

    def get_position(self, index: int, of: Optional[Vector] = None) -> Vector:
        """Position of point ``index`` in ``of`` (current positions by default)."""
        return (of if of is not None else self.positions).block(index, 3)

    def get_positions(self) -> np.ndarray:
        """Get current positions as an (n, 3) numpy array."""
        return self.positions.elements.reshape(-1, 3).copy()

    def reset(self):
        """Reset simulation to initial state."""
        self.positions = self.original_positions.clone()
        self.velocities = Vector.zero(len(self.positions))

    def simulate(self):
        """Advance the simulation by one timestep."""
        previous_positions = self.positions.clone()
        mode = self.config.mode
        if mode is Mode.NEWTON:
            x = self.positions.clone()
            update_by_newton_raphson(
                x,
                self.energy,
                self.gradient,
                self.hessian,
                simulates_inertia=self.config.simulates_inertia,
            )
        elif mode is Mode.PROJECTIVE_DYNAMICS:
            x = self._update_by_projective_dynamics()
        else:
            if self.multigrid is None:
                self._build_multigrid()
            x = self.positions.clone()
            update_by_newton_multigrid(
                self.multigrid,
                x,
                self.gradient,
                self.hessian,
                self.velocities,
                self.config.timestep,
                self.config.multigrid_smooth_count,
            )
        self.positions = x
        if mode is not Mode.NEWTON:
            self._unmove_fixed_points(previous_positions)

        backend = self.acceleration.backend_for(len(x))
        self.velocities = backend.scale(
            self.positions.subtract_new(previous_positions),
            (1 - self.config.air_resistance) / self.config.timestep,
        )
        self._handle_collisions()

    def run(self, steps: Optional[int] = None, record: bool = True) -> Optional[np.ndarray]:
        """Run simulation for multiple steps.

        Args:
            steps: Number of steps to run. If None, uses config.steps.
            record: Whether to record trajectory.

        Returns:
            If record=True, returns trajectory array of shape (steps, num_points, 3).
            Otherwise returns None.
        """
        if steps is None:
            steps = self.config.steps

        trajectory = [] if record else None

        for step in range(steps):
            self.simulate()
            if record:
                trajectory.append(self.get_positions())
            logger.debug("Step %d/%d done", step + 1, steps)

        if record:
            return np.array(trajectory)
        return None

    def energy(self, positions: Vector) -> float:
        """Step energy at ``positions``, relative to the current state."""
        config = self.config
        total = kinetic.energy_gain(
            positions, self.positions, self.velocities, config.timestep, self.mass3
        )
        total += config.gravity * float(np.dot(self.mass3.elements[2::3], positions.elements[2::3]))
        for s in self.springs:
            total += spring.energy(
                self.get_position(s.origin_index, positions),
                self.get_position(s.end_index, positions),
                s.restlength,
                s.spring_constant,
            )
        if config.mode is Mode.NEWTON and self.is_fixed.any():
            offsets = (positions.elements - self.original_positions.elements).reshape(-1, 3)
            total += 0.5 * config.fixed_point_stiffness * float(np.sum(offsets[self.is_fixed] ** 2))
        return total

    def gradient(self, positions: Vector) -> Vector:
        """Gradient of :meth:`energy`.

        Outside Newton mode the entries of fixed points are zero.
        """
        config = self.config
        gradient = kinetic.gradient_energy_gain(
            positions, self.positions, self.velocities, config.timestep, self.mass3
        )
        per_point = gradient.elements.reshape(-1, 3)
        per_point[:, 2] += self.mass3.elements[2::3] * config.gravity
        for index in range(self.point_count):
            position = self.get_position(index, positions)
            for spring_index in self.springs_connected_to[index]:
                s = self.springs[spring_index]
                per_point[index] += spring.energy_gradient(
                    position,
                    self.get_position(s.other_end(index), positions),
                    s.restlength,
                    s.spring_constant,
                ).elements
        if config.mode is Mode.NEWTON:
            offsets = (positions.elements - self.original_positions.elements).reshape(-1, 3)
            per_point[self.is_fixed] += config.fixed_point_stiffness * offsets[self.is_fixed]
        else:
            per_point[self.is_fixed] = 0
        return gradient

    def hessian(self, positions: Vector) -> Matrix:
        """Hessian of :meth:`energy`.

        Outside Newton mode the rows and columns of fixed points are decoupled
        and keep only their inertial diagonal.
        """
        config = self.config
        hessian = kinetic.hessian_energy_gain(config.timestep, self.mass3)
        for index in range(self.point_count):
            position = self.get_position(index, positions)
            for spring_index in self.springs_connected_to[index]:
                s = self.springs[spring_index]
                other = s.other_end(index)
                block = spring.energy_hessian(
                    position, self.get_position(other, positions), s.restlength, s.spring_constant
                )
                hessian.add_block(block, index, index)
                hessian.add_block(block.multiply_scalar(-1), index, other)
        fixed_indices = np.flatnonzero(self.is_fixed)
        if config.mode is Mode.NEWTON:
            penalty = Matrix.identity(3).multiply_scalar(config.fixed_point_stiffness)
            for index in fixed_indices:
                hessian.add_block(penalty, index, index)
        elif fixed_indices.size:
            dofs = (3 * fixed_indices[:, None] + np.arange(3)).reshape(-1)
            inertial = self.mass3.elements[dofs] / config.timestep ** 2
            hessian.array[dofs, :] = 0
            hessian.array[:, dofs] = 0
            hessian.array[dofs, dofs] = inertial
        return hessian

    def _unmove_fixed_points(self, previous_positions: Vector):
        per_point = self.positions.elements.reshape(-1, 3)
        per_point[self.is_fixed] = previous_positions.elements.reshape(-1, 3)[self.is_fixed]

    def _handle_collisions(self):
        """Clamp points below the ground and bounce their velocities."""
        positions = self.positions.elements.reshape(-1, 3)
        velocities = self.velocities.elements.reshape(-1, 3)
        below = positions[:, 2] < self.config.ground_height
        if not below.any():
            return
        positions[below, 2] = self.config.ground_height
        velocities[below] *= self.config.constant_of_restitution
        velocities[below, 2] *= -1

    def _prefactor_projective_dynamics(self):
        """Factor ``M/h^2 + sum_i k_i S_i^T S_i`` once.

        ``S_i`` selects ``x_origin - x_end`` of spring ``i``.
        """
        h = self.config.timestep
        lhs = Matrix.from_array(np.diag(self.mass3.elements / (h * h)))
        identity = Matrix.identity(3)
        for s in self.springs:
            stiffness = identity.multiply_scalar_new(s.spring_constant)
            coupling = identity.multiply_scalar_new(-s.spring_constant)
            lhs.add_block(stiffness, s.origin_index, s.origin_index)
            lhs.add_block(stiffness, s.end_index, s.end_index)
            lhs.add_block(coupling, s.origin_index, s.end_index)
            lhs.add_block(coupling, s.end_index, s.origin_index)
        self._projective_factor = hessian_modification(lhs)

    def _local_solve(self, positions: Vector) -> List[np.ndarray]:
        """Project every spring vector onto its rest length."""
        projections = []
        for s in self.springs:
            d = (
                self.get_position(s.origin_index, positions)
                .subtract(self.get_position(s.end_index, positions))
                .elements
            )
            length = np.linalg.norm(d)
            projections.append(d * (s.restlength / length) if length > 0 else np.zeros(3))
        return projections

    def _update_by_projective_dynamics(self) -> Vector:
        config = self.config
        h = config.timestep
        try:
            if self._projective_factor is None:
                self._prefactor_projective_dynamics()
        except SingularMatrixError as error:
            logger.warning("Skipping Projective Dynamics step: %s", error)
            return self.positions.clone()

        backend = self.acceleration.backend_for(len(self.positions))
        inertial = backend.axpy(self.velocities, self.positions, h)
        inertial.elements[2::3] -= h * h * config.gravity
        momentum = self.mass3.elements / (h * h) * inertial.elements

        x = inertial
        for _ in range(config.projective_iterations):
            rhs = momentum.copy().reshape(-1, 3)
            for s, p in zip(self.springs, self._local_solve(x)):
                rhs[s.origin_index] += s.spring_constant * p
                rhs[s.end_index] -= s.spring_constant * p
            x = solver.cholesky(
                self._projective_factor, Vector(rhs.reshape(-1)), skips_decomposition=True
            )
        return x
