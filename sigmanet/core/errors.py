"""Exception hierarchy for SigmaNet."""

from __future__ import annotations

from typing import Tuple

Shape = Tuple[int, int]


class SigmaNetError(Exception):
    """Base class for every error raised by :mod:`sigmanet`."""


class ShapeMismatch(SigmaNetError, ValueError):
    """Operand dimensions are incompatible for ``operation``."""

    def __init__(self, operation: str, left: Shape, right: Shape) -> None:
        self.operation = operation
        self.left = tuple(left)
        self.right = tuple(right)
        super().__init__(
            f"{operation}: incompatible shapes {self.left} and {self.right}"
        )


class InvalidDimension(SigmaNetError, ValueError):
    """A dimension or range argument is out of its valid domain."""


class IndexOutOfRange(SigmaNetError, IndexError):
    """Element access outside of a matrix."""

    def __init__(self, row: int, col: int, shape: Shape) -> None:
        self.row = row
        self.col = col
        self.shape = tuple(shape)
        super().__init__(f"index ({row}, {col}) out of range for shape {self.shape}")


class LabelCountMismatch(SigmaNetError, ValueError):
    """Number of output labels differs from the output layer width."""

    def __init__(self, labels: int, neurons: int) -> None:
        self.labels = labels
        self.neurons = neurons
        super().__init__(
            f"{labels} output labels given for an output layer of {neurons} neurons"
        )


class CorruptModel(SigmaNetError):
    """A persisted model is truncated or describes an inconsistent layer chain."""


class IOFailure(SigmaNetError, OSError):
    """A model file could not be opened for reading or writing."""


class DatasetError(SigmaNetError, ValueError):
    """A dataset file or sample request is invalid."""


__all__ = [
    "CorruptModel",
    "DatasetError",
    "IOFailure",
    "IndexOutOfRange",
    "InvalidDimension",
    "LabelCountMismatch",
    "Shape",
    "ShapeMismatch",
    "SigmaNetError",
]
