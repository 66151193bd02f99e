"""
Line search for a stepsize satisfying the strong Wolfe conditions.

Bracket-and-zoom as in Nocedal & Wright, Numerical Optimization, Algorithms 3.5
and 3.6. ``f`` and ``df`` are the objective and its directional derivative as
functions of the stepsize ``a``, i.e. ``f(a) = E(x + a p)`` and
``df(a) = grad E(x + a p) . p``.

While bracketing, the trial stepsize doubles until it reaches ``upperbound``.
Quadratic interpolation is only used inside the zoom phase.
"""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ScalarFunction = Callable[[float], float]


def satisfies_sufficient_decrease(c1: float, stepsize: float, f_step: float, f0: float, df0: float) -> bool:
    """First Wolfe condition: ``f(a) <= f(0) + c1 a f'(0)``."""
    return f_step <= f0 + c1 * stepsize * df0


def satisfies_curvature(c2: float, df_step: float, df0: float) -> bool:
    """Strong curvature condition: ``|f'(a)| <= -c2 f'(0)``."""
    return abs(df_step) <= -c2 * df0


def interpolate_quadratic(lower: float, upper: float, f: ScalarFunction, df: ScalarFunction) -> float:
    """Minimizer of the quadratic through ``f(lower)``, ``f'(lower)`` and ``f(upper)``.

    Falls back to bisection when the quadratic is not convex or its minimizer
    lies outside the bracket.
    """
    d = upper - lower
    f_lower = f(lower)
    df_lower = df(lower)
    curvature = f(upper) - f_lower - df_lower * d
    if curvature > 0:
        stepsize = lower - df_lower * d * d / (2 * curvature)
        if min(lower, upper) < stepsize < max(lower, upper):
            return stepsize
    return 0.5 * (lower + upper)


def _zoom(
    lower: float,
    upper: float,
    f: ScalarFunction,
    df: ScalarFunction,
    c1: float,
    c2: float,
    f0: float,
    df0: float,
    max_iterations: int,
) -> float:
    stepsize = lower
    for _ in range(max_iterations):
        stepsize = interpolate_quadratic(lower, upper, f, df)
        f_step = f(stepsize)
        if not satisfies_sufficient_decrease(c1, stepsize, f_step, f0, df0) or f_step >= f(lower):
            upper = stepsize
            continue
        df_step = df(stepsize)
        if satisfies_curvature(c2, df_step, df0):
            return stepsize
        if df_step * (upper - lower) >= 0:
            upper = lower
        lower = stepsize
    logger.debug("Wolfe zoom stopped after %d iterations at stepsize %g", max_iterations, stepsize)
    return stepsize


def find_stepsize_by_wolfe_conditions(
    f: ScalarFunction,
    df: ScalarFunction,
    upperbound: float = 1e9,
    c1: float = 0.1,
    c2: float = 0.9,
    initial_step: Optional[float] = None,
    max_iterations: int = 50,
) -> float:
    """Find a stepsize satisfying the strong Wolfe conditions.

    Args:
        f: Objective as a function of stepsize.
        df: Directional derivative as a function of stepsize.
        upperbound: Largest stepsize considered.
        c1: Sufficient decrease parameter, ``0 < c1 < 0.5``.
        c2: Curvature parameter, ``c1 < c2 < 1``.
        initial_step: First trial stepsize. Defaults to 1.
        max_iterations: Ceiling on bracketing and zoom iterations each.

    Returns:
        The first stepsize satisfying both conditions, or the last trial once
        the iteration ceiling is reached. Returns 0 if the search direction is
        not a descent direction.
    """
    f0 = f(0.0)
    df0 = df(0.0)
    if df0 >= 0:
        return 0.0
    stepsize = min(1.0 if initial_step is None else initial_step, upperbound)
    previous, f_previous = 0.0, f0
    for i in range(max_iterations):
        f_step = f(stepsize)
        if not satisfies_sufficient_decrease(c1, stepsize, f_step, f0, df0) or (
            i > 0 and f_step >= f_previous
        ):
            return _zoom(previous, stepsize, f, df, c1, c2, f0, df0, max_iterations)
        df_step = df(stepsize)
        if satisfies_curvature(c2, df_step, df0):
            return stepsize
        if df_step >= 0:
            return _zoom(stepsize, previous, f, df, c1, c2, f0, df0, max_iterations)
        if stepsize >= upperbound:
            return stepsize
        previous, f_previous = stepsize, f_step
        stepsize = min(2 * stepsize, upperbound)
    return stepsize
