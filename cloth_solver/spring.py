"""
Elastic energy of a linear spring, ``E(p, q) = k/2 (|p - q| - L)^2``.

Gradients and Hessians are taken with respect to ``p``. Derivatives with
respect to ``q`` follow by symmetry: the gradient and the ``q q`` block of the
Hessian are the negated and identical ones, and the ``p q`` block is the
negated ``p p`` block.
"""

import numpy as np

from .matrix import Matrix, Vector


def energy(p: Vector, q: Vector, restlength: float, spring_constant: float) -> float:
    stretch = p.subtract_new(q).norm() - restlength
    return 0.5 * spring_constant * stretch * stretch


def energy_gradient(p: Vector, q: Vector, restlength: float, spring_constant: float) -> Vector:
    """``k (1 - L/|d|) d`` with ``d = p - q``. Zero when ``p == q``."""
    d = p.subtract_new(q)
    length = d.norm()
    if length == 0:
        return Vector.zero(len(d))
    return d.multiply_scalar(spring_constant * (1 - restlength / length))


def energy_hessian(p: Vector, q: Vector, restlength: float, spring_constant: float) -> Matrix:
    """Exact Hessian ``k (I - L/|d| (I - d d^T / |d|^2))`` with ``d = p - q``.

    For coincident endpoints the direction is undefined and ``k I`` is returned.
    """
    d = p.subtract_new(q).elements
    length = np.linalg.norm(d)
    identity = np.eye(d.size)
    if length == 0:
        return Matrix.from_array(spring_constant * identity)
    projection = identity - np.outer(d, d) / (length * length)
    return Matrix.from_array(spring_constant * (identity - restlength / length * projection))
