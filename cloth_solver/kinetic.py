"""
Inertial term of implicit Euler: ``E(x) = 1/(2h^2) |x - x0 - h v|^2_M``.
"""

import numpy as np

from .matrix import Matrix, Vector


def _inertial_offset(x: Vector, x0: Vector, v: Vector, h: float) -> Vector:
    return x.subtract_new(x0).subtract(v.multiply_scalar_new(h))


def energy_gain(x: Vector, x0: Vector, v: Vector, h: float, mass: Vector) -> float:
    """Kinetic energy gained by moving from the inertial prediction ``x0 + h v`` to ``x``.

    Args:
        x: Candidate positions (3n).
        x0: Positions at the start of the step (3n).
        v: Velocities at the start of the step (3n).
        h: Timestep.
        mass: Per-coordinate masses (3n).
    """
    offset = _inertial_offset(x, x0, v, h)
    return float(np.dot(mass.elements, offset.elements ** 2)) / (2 * h * h)


def gradient_energy_gain(x: Vector, x0: Vector, v: Vector, h: float, mass: Vector) -> Vector:
    return _inertial_offset(x, x0, v, h).multiply_elementwise(mass).multiply_scalar(1 / (h * h))


def hessian_energy_gain(h: float, mass: Vector) -> Matrix:
    """Constant diagonal Hessian ``M / h^2``."""
    return Matrix.from_array(np.diag(mass.elements / (h * h)))
