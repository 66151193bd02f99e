"""
Descent updates ``x1 = x0 + a p`` used by the simulator.

Numerical failures (a Hessian that cannot be made positive definite, a
singular coarse system) are recoverable: the update is skipped, ``x`` is left
untouched and ``False`` is returned so the caller can retry on the next frame.
"""

import logging
from typing import Callable

import numpy as np

from . import solver
from .decomposition import hessian_modification
from .errors import SingularMatrixError
from .line_search import find_stepsize_by_wolfe_conditions
from .matrix import Matrix, Vector
from .multigrid import Multigrid

logger = logging.getLogger(__name__)

Objective = Callable[[Vector], float]
Gradient = Callable[[Vector], Vector]
Hessian = Callable[[Vector], Matrix]


def update_by_newton_raphson(
    x: Vector,
    f: Objective,
    gradient: Gradient,
    hessian: Hessian,
    simulates_inertia: bool = False,
    tries_orthogonal_directions: float = 0.0,
) -> bool:
    """Take one Newton step on ``x`` in place.

    The Hessian is made positive definite by :func:`hessian_modification` and
    ``H p = -grad f`` is solved with its Cholesky factor.

    Args:
        x: Current point, updated in place.
        f: Objective.
        gradient: Gradient of ``f``.
        hessian: Hessian of ``f``.
        simulates_inertia: Take the full step instead of searching for a
            Wolfe stepsize. ``f`` is not evaluated in that case.
        tries_orthogonal_directions: Saddle point guard. When nonzero, exact
            zeros of the negated gradient are replaced by this value so the
            direction is not orthogonal to the corresponding coordinates.

    Returns:
        Whether ``x`` was updated.
    """
    try:
        lower = hessian_modification(hessian(x))
    except SingularMatrixError as error:
        logger.warning("Skipping Newton step: %s", error)
        return False
    descent = gradient(x).multiply_scalar(-1)
    if tries_orthogonal_directions != 0:
        descent.elements[descent.elements == 0] = tries_orthogonal_directions
    p = solver.cholesky(lower, descent, skips_decomposition=True)
    if not np.all(np.isfinite(p.elements)):
        logger.warning("Skipping Newton step: non-finite search direction")
        return False
    if p.norm() == 0:
        return False
    if simulates_inertia:
        stepsize = 1.0
    else:
        stepsize = find_stepsize_by_wolfe_conditions(
            lambda a: f(x.add_new(p.multiply_scalar_new(a))),
            lambda a: gradient(x.add_new(p.multiply_scalar_new(a))).dot(p),
            upperbound=1e3,
            initial_step=1.0,
        )
        logger.debug("Wolfe stepsize %g", stepsize)
    x.add(p.multiply_scalar(stepsize))
    return True


def update_by_newton_multigrid(
    multigrid: Multigrid,
    x: Vector,
    gradient: Gradient,
    hessian: Hessian,
    velocity: Vector,
    timestep: float,
    smooth_count: int = 5,
) -> bool:
    """Advance ``x`` by inertia, then take a Newton step solved by two-level multigrid.

    The Newton system is linearized at the prediction ``x + v dt``.

    Args:
        multigrid: Hierarchy built for the points of ``x``.
        x: Current positions, updated in place.
        gradient: Gradient of the step energy.
        hessian: Hessian of the step energy.
        velocity: Current velocities.
        timestep: Step length.
        smooth_count: Jacobi sweeps per smoothing pass.

    Returns:
        Whether ``x`` was updated.
    """
    predicted = x.add_new(velocity.multiply_scalar_new(timestep))
    try:
        h = hessian(predicted)
        b = gradient(predicted).multiply_scalar(-1)
        p = multigrid.solve_two_level(h, Vector.zero(len(x)), b, smooth_count)
    except SingularMatrixError as error:
        logger.warning("Skipping multigrid Newton step: %s", error)
        return False
    if not np.all(np.isfinite(p.elements)):
        logger.warning("Skipping multigrid Newton step: non-finite correction")
        return False
    x.elements[:] = predicted.add(p).elements
    return True
