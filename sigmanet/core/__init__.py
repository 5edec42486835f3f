"""Core numerical primitives for SigmaNet."""

from . import activations, codec, errors, types
from .layer import Layer
from .matrix import Matrix
from .network import Network, mean_squared_error

__all__ = [
    "Layer",
    "Matrix",
    "Network",
    "activations",
    "codec",
    "errors",
    "mean_squared_error",
    "types",
]
