"""Dense float32 matrix used throughout the network engine.

Operations come in two families.  In-place operations (``add_inplace``,
``scale_inplace``, ``multiply_inplace``, ``square``, ``sigmoid``,
``randomize`` ...) mutate the receiver and return it so calls can be chained
inside the training loop without allocating.  Pure operations (``add``,
``subtract``, ``scale``, ``multiply``, ``matmul``, ``transpose``) leave their
operands untouched and return a new matrix.

Shapes are never broadcast.  Any operand mismatch raises
:class:`~sigmanet.core.errors.ShapeMismatch`.
"""

from __future__ import annotations

from numbers import Real
from typing import Iterable, Sequence

import numpy as np

from .activations import sigmoid as _sigmoid
from .errors import IndexOutOfRange, InvalidDimension, Shape, ShapeMismatch
from .types import Array

DTYPE = np.float32


class Matrix:
    """A ``rows x cols`` row-major buffer of float32 values."""

    __slots__ = ("_data",)

    def __init__(self, rows: int = 0, cols: int = 0, fill: float = 0.0) -> None:
        rows, cols = int(rows), int(cols)
        if rows < 0 or cols < 0:
            raise InvalidDimension(f"matrix dimensions must be >= 0, got ({rows}, {cols})")
        self._data = np.full((rows, cols), fill, dtype=DTYPE)

    # ------------------------------------------------------------------
    # Construction

    @classmethod
    def create(cls, rows: int, cols: int, fill: float = 0.0) -> "Matrix":
        return cls(rows, cols, fill)

    @classmethod
    def from_array(cls, values: Array | Sequence) -> "Matrix":
        """Copy a 1-D (treated as a row vector) or 2-D array-like."""

        arr = np.array(values, dtype=DTYPE)
        if arr.ndim == 1:
            arr = arr.reshape(1, -1)
        if arr.ndim != 2:
            raise InvalidDimension(f"expected a 1-D or 2-D array, got {arr.ndim}-D")
        return cls._wrap(np.ascontiguousarray(arr))

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[float]]) -> "Matrix":
        return cls.from_array([list(row) for row in rows])

    @classmethod
    def _wrap(cls, arr: Array) -> "Matrix":
        m = cls.__new__(cls)
        m._data = arr.astype(DTYPE, copy=False)
        return m

    def copy(self) -> "Matrix":
        return Matrix._wrap(self._data.copy())

    # ------------------------------------------------------------------
    # Introspection

    @property
    def rows(self) -> int:
        return int(self._data.shape[0])

    @property
    def cols(self) -> int:
        return int(self._data.shape[1])

    @property
    def shape(self) -> Shape:
        return self.rows, self.cols

    @property
    def size(self) -> int:
        return int(self._data.size)

    @property
    def data(self) -> Array:
        """Live view of the underlying buffer."""

        return self._data

    def to_numpy(self) -> Array:
        return self._data.copy()

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"Matrix(rows={self.rows}, cols={self.cols})"

    def format(self, precision: int = 6) -> str:
        """Render the matrix as a bracketed block, one row per line."""

        lines = ["["]
        for r in range(self.rows):
            cells = []
            for value in self._data[r]:
                # Pad non-negative values so columns line up with the sign.
                text = f"{float(value):.{precision}f}"
                cells.append(text if value < 0 else " " + text)
            lines.append("  " + ", ".join(cells))
        lines.append("]")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Element access

    def _check_index(self, row: int, col: int) -> None:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexOutOfRange(row, col, self.shape)

    def at(self, row: int, col: int) -> float:
        self._check_index(row, col)
        return float(self._data[row, col])

    def set(self, row: int, col: int, value: float) -> None:
        self._check_index(row, col)
        self._data[row, col] = value

    def fill(self, value: float) -> "Matrix":
        self._data.fill(value)
        return self

    def assign(self, other: "Matrix") -> "Matrix":
        """Overwrite this matrix's content with ``other``'s."""

        self._require_same_shape("assign", other)
        np.copyto(self._data, other._data)
        return self

    # ------------------------------------------------------------------
    # In-place family

    def add_inplace(self, other: "Matrix") -> "Matrix":
        self._require_same_shape("add_inplace", other)
        self._data += other._data
        return self

    def subtract_inplace(self, other: "Matrix") -> "Matrix":
        self._require_same_shape("subtract_inplace", other)
        self._data -= other._data
        return self

    def scale_inplace(self, value: float) -> "Matrix":
        self._data *= DTYPE(value)
        return self

    def multiply_inplace(self, other: "Matrix") -> "Matrix":
        self._require_same_shape("multiply_inplace", other)
        self._data *= other._data
        return self

    def square(self) -> "Matrix":
        np.square(self._data, out=self._data)
        return self

    def sigmoid(self) -> "Matrix":
        self._data[...] = _sigmoid(self._data)
        return self

    def randomize(
        self,
        min: float = 0.0,
        max: float = 1.0,
        rng: np.random.Generator | None = None,
    ) -> "Matrix":
        """Fill with uniform noise in ``[min, max)``."""

        if not max > min:
            raise InvalidDimension(f"randomize requires max > min, got [{min}, {max})")
        rng = rng if rng is not None else np.random.default_rng()
        self._data[...] = rng.uniform(min, max, size=self.shape).astype(DTYPE)
        return self

    # ------------------------------------------------------------------
    # Pure family

    def add(self, other: "Matrix") -> "Matrix":
        self._require_same_shape("add", other)
        return Matrix._wrap(self._data + other._data)

    def subtract(self, other: "Matrix") -> "Matrix":
        self._require_same_shape("subtract", other)
        return Matrix._wrap(self._data - other._data)

    def scale(self, value: float) -> "Matrix":
        return Matrix._wrap(self._data * DTYPE(value))

    def multiply(self, other: "Matrix") -> "Matrix":
        self._require_same_shape("multiply", other)
        return Matrix._wrap(self._data * other._data)

    def matmul(self, other: "Matrix") -> "Matrix":
        if self.cols != other.rows:
            raise ShapeMismatch("matmul", self.shape, other.shape)
        return Matrix._wrap(np.matmul(self._data, other._data))

    def transpose(self) -> "Matrix":
        return Matrix._wrap(np.ascontiguousarray(self._data.T))

    @property
    def T(self) -> "Matrix":
        return self.transpose()

    def sum(self) -> float:
        return float(self._data.sum(dtype=DTYPE))

    def argmax(self) -> int:
        if self.size == 0:
            raise InvalidDimension("argmax of an empty matrix")
        return int(np.argmax(self._data))

    def allclose(self, other: "Matrix", atol: float = 1e-6) -> bool:
        return self.shape == other.shape and bool(
            np.allclose(self._data, other._data, atol=atol, rtol=0.0)
        )

    # ------------------------------------------------------------------
    # Operators

    def __iadd__(self, other: "Matrix") -> "Matrix":
        return self.add_inplace(other)

    def __isub__(self, other: "Matrix") -> "Matrix":
        return self.subtract_inplace(other)

    def __imul__(self, value: float) -> "Matrix":
        if not isinstance(value, Real):
            return NotImplemented
        return self.scale_inplace(value)

    def __add__(self, other: "Matrix") -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: "Matrix") -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, value: float) -> "Matrix":
        if not isinstance(value, Real):
            return NotImplemented
        return self.scale(value)

    __rmul__ = __mul__

    def __matmul__(self, other: "Matrix") -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.matmul(other)

    # ------------------------------------------------------------------

    def _require_same_shape(self, operation: str, other: "Matrix") -> None:
        if self.shape != other.shape:
            raise ShapeMismatch(operation, self.shape, other.shape)


__all__ = ["DTYPE", "Matrix"]
