"""
Dense matrix and vector types backed by flat row-major numpy buffers.

Mutating operations (``add``, ``subtract``, ``multiply_scalar``, ``set``) write
in place and return ``self`` so calls can be chained. The ``*_new`` variants
clone first and leave the receiver untouched.
"""

from enum import Enum
from typing import Iterable, Tuple, Union

import numpy as np

from .errors import ShapeMismatchError, SingularMatrixError

ArrayLike = Union[Iterable[float], np.ndarray]


def _as_buffer(elements: ArrayLike) -> np.ndarray:
    return np.array(elements, dtype=np.float64).reshape(-1)


class Matrix:
    """Dense ``height x width`` matrix.

    Attributes:
        elements: Flat row-major float64 buffer of length ``height * width``.
        height: Number of rows.
        width: Number of columns.
    """

    def __init__(self, elements: Union[ArrayLike, float], height: int, width: int):
        """Create a matrix.

        Args:
            elements: Flat row-major values, or a scalar which is placed on the
                diagonal of an otherwise zero matrix.
            height: Number of rows.
            width: Number of columns.

        Raises:
            ShapeMismatchError: If the buffer length is not ``height * width``.
        """
        if np.isscalar(elements):
            buffer = np.zeros(height * width, dtype=np.float64)
            buffer.reshape(height, width)[np.diag_indices(min(height, width))] = elements
        else:
            buffer = _as_buffer(elements)
        if buffer.size != height * width:
            raise ShapeMismatchError(
                f"buffer of length {buffer.size} cannot form a {height}x{width} matrix"
            )
        self.elements = buffer
        self.height = height
        self.width = width

    @classmethod
    def zero(cls, height: int, width: int) -> "Matrix":
        return cls(np.zeros(height * width), height, width)

    @classmethod
    def identity(cls, size: int) -> "Matrix":
        return cls(1.0, size, size)

    @classmethod
    def from_array(cls, array: ArrayLike) -> "Matrix":
        """Create a matrix from a nested sequence or a 2D numpy array."""
        array = np.array(array, dtype=np.float64)
        if array.ndim != 2:
            raise ShapeMismatchError(f"expected a 2D array, got {array.ndim}D")
        return cls(array.reshape(-1), array.shape[0], array.shape[1])

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    @property
    def array(self) -> np.ndarray:
        """2D view onto the buffer. Writes go through to the matrix."""
        return self.elements.reshape(self.height, self.width)

    def __getitem__(self, index: Tuple[int, int]) -> float:
        row, column = index
        return float(self.elements[row * self.width + column])

    def __setitem__(self, index: Tuple[int, int], value: float):
        row, column = index
        self.elements[row * self.width + column] = value

    def __repr__(self) -> str:
        return f"Matrix({self.height}x{self.width}, {self.array.tolist()})"

    def set(self, row: int, column: int, value: float) -> "Matrix":
        self[row, column] = value
        return self

    def is_square(self) -> bool:
        return self.height == self.width

    def clone(self) -> "Matrix":
        return Matrix(self.elements.copy(), self.height, self.width)

    def _check_same_shape(self, other: "Matrix", operation: str):
        if self.shape != other.shape:
            raise ShapeMismatchError(
                f"cannot {operation} {self.height}x{self.width} and "
                f"{other.height}x{other.width} matrices"
            )

    def add(self, other: "Matrix") -> "Matrix":
        self._check_same_shape(other, "add")
        self.elements += other.elements
        return self

    def add_new(self, other: "Matrix") -> "Matrix":
        return self.clone().add(other)

    def subtract(self, other: "Matrix") -> "Matrix":
        self._check_same_shape(other, "subtract")
        self.elements -= other.elements
        return self

    def subtract_new(self, other: "Matrix") -> "Matrix":
        return self.clone().subtract(other)

    def multiply_scalar(self, scalar: float) -> "Matrix":
        self.elements *= scalar
        return self

    def multiply_scalar_new(self, scalar: float) -> "Matrix":
        return self.clone().multiply_scalar(scalar)

    def multiply(self, other: "Matrix") -> "Matrix":
        """Dense matrix product ``self @ other``."""
        if self.width != other.height:
            raise ShapeMismatchError(
                f"cannot multiply {self.height}x{self.width} by "
                f"{other.height}x{other.width}"
            )
        product = self.array @ other.array
        return Matrix(product.reshape(-1), self.height, other.width)

    def multiply_vector(self, vector: "Vector") -> "Vector":
        """Matrix-vector product with a column vector."""
        if vector.orientation is not Orientation.COLUMN or len(vector) != self.width:
            raise ShapeMismatchError(
                f"cannot multiply {self.height}x{self.width} matrix by "
                f"{vector.height}x{vector.width} vector"
            )
        return Vector(self.array @ vector.elements)

    def __matmul__(self, other):
        if isinstance(other, Vector):
            return self.multiply_vector(other)
        return self.multiply(other)

    def transpose(self) -> "Matrix":
        return Matrix(self.array.T.reshape(-1), self.width, self.height)

    def kronecker_product(self, other: "Matrix") -> "Matrix":
        """Block matrix ``self ⊗ other`` of shape ``(h*oh, w*ow)``."""
        product = np.kron(self.array, other.array)
        return Matrix(product.reshape(-1), product.shape[0], product.shape[1])

    def swap_rows(self, i: int, j: int) -> "Matrix":
        if i != j:
            self.array[[i, j]] = self.array[[j, i]]
        return self

    def inverse(self) -> "Matrix":
        """Invert by Gauss-Jordan elimination, swapping rows on zero pivots.

        Raises:
            ShapeMismatchError: If the matrix is not square.
            SingularMatrixError: If a column has no nonzero pivot.
        """
        if not self.is_square():
            raise ShapeMismatchError("only square matrices can be inverted")
        n = self.height
        work = self.array.copy()
        inverse = np.eye(n)
        for column in range(n):
            if work[column, column] == 0:
                candidates = np.nonzero(work[column + 1:, column])[0]
                if candidates.size == 0:
                    raise SingularMatrixError(f"no nonzero pivot in column {column}")
                swap = column + 1 + candidates[0]
                work[[column, swap]] = work[[swap, column]]
                inverse[[column, swap]] = inverse[[swap, column]]
            pivot = work[column, column]
            work[column] /= pivot
            inverse[column] /= pivot
            for row in range(n):
                if row == column:
                    continue
                factor = work[row, column]
                if factor != 0:
                    work[row] -= factor * work[column]
                    inverse[row] -= factor * inverse[column]
        return Matrix(inverse.reshape(-1), n, n)

    def block(
        self, row_block: int, column_block: int, block_height: int, block_width: int
    ) -> "Matrix":
        """Copy of the ``(row_block, column_block)`` block of the given size."""
        row0, column0 = row_block * block_height, column_block * block_width
        sub = self.array[row0:row0 + block_height, column0:column0 + block_width]
        return Matrix(sub.copy().reshape(-1), block_height, block_width)

    def add_block(self, block: "Matrix", row_block: int, column_block: int) -> "Matrix":
        """Add ``block`` onto the ``(row_block, column_block)`` block in place."""
        row0, column0 = row_block * block.height, column_block * block.width
        self.array[row0:row0 + block.height, column0:column0 + block.width] += block.array
        return self


class Orientation(Enum):
    """Whether a vector is a column (``n x 1``) or a row (``1 x n``)."""

    COLUMN = "column"
    ROW = "row"


class Vector:
    """Dense vector over a flat float64 buffer with an explicit orientation.

    Attributes:
        elements: Flat float64 buffer.
        orientation: Column or row.
    """

    def __init__(self, elements: ArrayLike, orientation: Orientation = Orientation.COLUMN):
        self.elements = _as_buffer(elements)
        self.orientation = orientation

    @classmethod
    def zero(cls, size: int) -> "Vector":
        return cls(np.zeros(size))

    @classmethod
    def ones(cls, size: int) -> "Vector":
        return cls(np.ones(size))

    @property
    def height(self) -> int:
        return self.elements.size if self.orientation is Orientation.COLUMN else 1

    @property
    def width(self) -> int:
        return 1 if self.orientation is Orientation.COLUMN else self.elements.size

    def __len__(self) -> int:
        return self.elements.size

    def __getitem__(self, index: int) -> float:
        return float(self.elements[index])

    def __setitem__(self, index: int, value: float):
        self.elements[index] = value

    def __repr__(self) -> str:
        return f"Vector({self.elements.tolist()}, {self.orientation.value})"

    def set(self, index: int, value: float) -> "Vector":
        self.elements[index] = value
        return self

    def clone(self) -> "Vector":
        return Vector(self.elements.copy(), self.orientation)

    def _check_same_shape(self, other: "Vector", operation: str):
        if len(self) != len(other) or self.orientation is not other.orientation:
            raise ShapeMismatchError(
                f"cannot {operation} {self.height}x{self.width} and "
                f"{other.height}x{other.width} vectors"
            )

    def add(self, other: "Vector") -> "Vector":
        self._check_same_shape(other, "add")
        self.elements += other.elements
        return self

    def add_new(self, other: "Vector") -> "Vector":
        return self.clone().add(other)

    def subtract(self, other: "Vector") -> "Vector":
        self._check_same_shape(other, "subtract")
        self.elements -= other.elements
        return self

    def subtract_new(self, other: "Vector") -> "Vector":
        return self.clone().subtract(other)

    def multiply_scalar(self, scalar: float) -> "Vector":
        self.elements *= scalar
        return self

    def multiply_scalar_new(self, scalar: float) -> "Vector":
        return self.clone().multiply_scalar(scalar)

    def multiply_elementwise(self, other: "Vector") -> "Vector":
        self._check_same_shape(other, "multiply")
        self.elements *= other.elements
        return self

    def multiply_elementwise_new(self, other: "Vector") -> "Vector":
        return self.clone().multiply_elementwise(other)

    def dot(self, other: "Vector") -> float:
        if len(self) != len(other):
            raise ShapeMismatchError(
                f"cannot take dot product of vectors of length {len(self)} and {len(other)}"
            )
        return float(np.dot(self.elements, other.elements))

    def squared_norm(self) -> float:
        return float(np.dot(self.elements, self.elements))

    def norm(self) -> float:
        return float(np.sqrt(self.squared_norm()))

    def normalize(self) -> "Vector":
        """Scale to unit length in place. A zero vector is left as is."""
        norm = self.norm()
        if norm != 0:
            self.elements /= norm
        return self

    def normalize_new(self) -> "Vector":
        return self.clone().normalize()

    def project_to(self, other: "Vector") -> "Vector":
        """Orthogonal projection of this vector onto the line spanned by ``other``."""
        squared_norm = other.squared_norm()
        if squared_norm == 0:
            return Vector.zero(len(other))
        return other.multiply_scalar_new(self.dot(other) / squared_norm)

    def outer_product(self, other: "Vector") -> Matrix:
        """Matrix ``self other^T`` of shape ``(len(self), len(other))``."""
        product = np.outer(self.elements, other.elements)
        return Matrix(product.reshape(-1), product.shape[0], product.shape[1])

    def transpose(self) -> "Vector":
        """Flip between column and row orientation in place."""
        self.orientation = (
            Orientation.ROW if self.orientation is Orientation.COLUMN else Orientation.COLUMN
        )
        return self

    def transpose_new(self) -> "Vector":
        return self.clone().transpose()

    def as_matrix(self) -> Matrix:
        return Matrix(self.elements.copy(), self.height, self.width)

    def kronecker_product(self, other: Matrix) -> Matrix:
        return self.as_matrix().kronecker_product(other)

    def block(self, index: int, size: int) -> "Vector":
        """Copy of the ``index``-th contiguous block of ``size`` entries."""
        return Vector(self.elements[index * size:(index + 1) * size].copy())

    def set_block(self, index: int, block: "Vector", add: bool = False) -> "Vector":
        start = index * len(block)
        if add:
            self.elements[start:start + len(block)] += block.elements
        else:
            self.elements[start:start + len(block)] = block.elements
        return self
