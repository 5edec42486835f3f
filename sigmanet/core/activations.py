"""Activation utilities for SigmaNet."""

from __future__ import annotations

import numpy as np

from .types import Array


def sigmoid(x: Array) -> Array:
    """Return the logistic sigmoid of ``x`` as float32.

    Evaluated as ``exp(-|x|)`` based halves so neither tail overflows.
    """

    x = np.asarray(x, dtype=np.float32)
    z = np.exp(-np.abs(x))
    return np.where(x >= 0, 1.0 / (1.0 + z), z / (1.0 + z)).astype(np.float32)


def sigmoid_derivative_from_output(a: Array) -> Array:
    """Derivative of the sigmoid expressed through its output ``a``."""

    a = np.asarray(a, dtype=np.float32)
    return a * (np.float32(1.0) - a)
