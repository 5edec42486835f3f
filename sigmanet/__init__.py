"""SigmaNet public API."""

from .core import activations, codec, errors, types  # noqa: F401
from .core.errors import (
    CorruptModel,
    DatasetError,
    IndexOutOfRange,
    InvalidDimension,
    IOFailure,
    LabelCountMismatch,
    ShapeMismatch,
    SigmaNetError,
)
from .core.layer import Layer
from .core.matrix import Matrix
from .core.network import Network, mean_squared_error
from .core.types import Prediction, StepResult, TrainingProgress
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer, evaluate, train_step

__version__ = "0.1.0"

__all__ = [
    "CorruptModel",
    "DatasetError",
    "IOFailure",
    "IndexOutOfRange",
    "InvalidDimension",
    "LabelCountMismatch",
    "Layer",
    "Matrix",
    "Network",
    "Prediction",
    "ShapeMismatch",
    "SigmaNetError",
    "StepResult",
    "Trainer",
    "TrainingProgress",
    "activations",
    "codec",
    "errors",
    "evaluate",
    "load_preset",
    "mean_squared_error",
    "presets",
    "run_pipeline",
    "train_step",
    "types",
]
