"""
Exceptions raised by the linear algebra and simulation layers.
"""

from typing import Any, Optional


class ClothSolverError(Exception):
    """Base class for all errors raised by this package."""


class ShapeMismatchError(ClothSolverError, ValueError):
    """Operands have incompatible shapes (or a square matrix was required)."""


class SingularMatrixError(ClothSolverError, ArithmeticError):
    """A matrix could not be factorized or inverted because it is singular."""


class NotPositiveDefiniteError(SingularMatrixError):
    """Cholesky decomposition failed because the matrix is not positive definite.

    Attributes:
        column: Column at which a non-positive diagonal residual appeared.
    """

    def __init__(self, message: str, column: Optional[int] = None):
        super().__init__(message)
        self.column = column


class NotConvergedError(ClothSolverError, RuntimeError):
    """An iterative method reached its iteration ceiling before converging.

    Attributes:
        result: Last iterate computed before giving up.
        iterations: Number of iterations performed.
    """

    def __init__(self, message: str, result: Any = None, iterations: int = 0):
        super().__init__(message)
        self.result = result
        self.iterations = iterations
