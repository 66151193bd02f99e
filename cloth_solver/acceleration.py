"""
Elementwise vector arithmetic with an optional batched (Warp) path.

The path is a strategy chosen from the operand length by a pure function, and
both strategies live in an :class:`AccelerationContext` owned by whoever
constructs it (normally the simulator). There is no module level state.
"""

import logging
from enum import Enum
from typing import Optional

import numpy as np
import warp as wp

from . import kernels
from .matrix import Vector

logger = logging.getLogger(__name__)


class ElementwisePath(Enum):
    SCALAR = "scalar"
    BATCHED = "batched"


def select_path(size: int, threshold: Optional[int]) -> ElementwisePath:
    """Batched for operands longer than ``threshold``, scalar otherwise.

    A ``threshold`` of ``None`` disables the batched path.
    """
    if threshold is not None and size > threshold:
        return ElementwisePath.BATCHED
    return ElementwisePath.SCALAR


class ScalarBackend:
    """Elementwise operations on the host with numpy."""

    path = ElementwisePath.SCALAR

    def axpy(self, x: Vector, y: Vector, alpha: float) -> Vector:
        """Return ``alpha * x + y`` as a new vector."""
        return Vector(alpha * x.elements + y.elements)

    def scale(self, x: Vector, alpha: float) -> Vector:
        return Vector(alpha * x.elements)


class BatchedBackend:
    """Elementwise operations launched as Warp kernels on a device.

    Attributes:
        device: Warp device the kernels run on.
    """

    path = ElementwisePath.BATCHED

    def __init__(self, device: Optional[str] = None):
        wp.init()
        self.device = wp.get_device(device)

    def _to_device(self, vector: Vector) -> wp.array:
        return wp.array(np.ascontiguousarray(vector.elements), dtype=wp.float64, device=self.device)

    def axpy(self, x: Vector, y: Vector, alpha: float) -> Vector:
        x_wp = self._to_device(x)
        y_wp = self._to_device(y)
        out = wp.zeros(len(x), dtype=wp.float64, device=self.device)
        wp.launch(
            kernels.axpy,
            dim=len(x),
            inputs=[x_wp, y_wp, wp.float64(alpha), out],
            device=self.device,
        )
        return Vector(out.numpy())

    def scale(self, x: Vector, alpha: float) -> Vector:
        x_wp = self._to_device(x)
        out = wp.zeros(len(x), dtype=wp.float64, device=self.device)
        wp.launch(
            kernels.scale,
            dim=len(x),
            inputs=[x_wp, wp.float64(alpha), out],
            device=self.device,
        )
        return Vector(out.numpy())


class AccelerationContext:
    """Holds the elementwise strategies and picks one per operand length.

    Attributes:
        threshold: Operand length above which the batched path is used, or
            ``None`` to always use the scalar path.
    """

    def __init__(self, device: Optional[str] = None, threshold: Optional[int] = 100):
        self.threshold = threshold
        self.scalar = ScalarBackend()
        self.batched = BatchedBackend(device) if threshold is not None else None
        logger.debug("Acceleration context: device=%s threshold=%s", device, threshold)

    @classmethod
    def from_config(cls, config) -> "AccelerationContext":
        return cls(device=config.device, threshold=config.acceleration_threshold)

    def backend_for(self, size: int):
        """Return the backend to use for operands of length ``size``."""
        if select_path(size, self.threshold) is ElementwisePath.BATCHED:
            return self.batched
        return self.scalar
