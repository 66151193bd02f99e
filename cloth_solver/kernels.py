"""
Warp kernels for the batched elementwise path.

Kernels work on flat float64 arrays so results match the numpy path up to
floating point rounding.

Note: Kernels must be defined at module level (not inside classes) per Warp requirements.
"""

import warp as wp


@wp.kernel
def axpy(
    x: wp.array(dtype=wp.float64),
    y: wp.array(dtype=wp.float64),
    alpha: wp.float64,
    out: wp.array(dtype=wp.float64),
):
    """Compute ``out = alpha * x + y`` elementwise.

    Args:
        x: Scaled operand.
        y: Added operand.
        alpha: Scale factor.
        out: Result array (may alias ``y``).
    """
    i = wp.tid()
    out[i] = alpha * x[i] + y[i]


@wp.kernel
def scale(
    x: wp.array(dtype=wp.float64),
    alpha: wp.float64,
    out: wp.array(dtype=wp.float64),
):
    """Compute ``out = alpha * x`` elementwise."""
    i = wp.tid()
    out[i] = alpha * x[i]
