"""Core typing contracts for SigmaNet."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from .matrix import Matrix

Array = np.ndarray


@dataclass
class TrainingProgress:
    """Training session state owned by the caller, not by the network.

    ``trained`` counts completed epochs and ``data_index`` is the dataset
    index of the next sample to train on.  Both are persisted alongside the
    weights so a run can resume mid-dataset.
    """

    trained: int = 0
    data_index: int = 0

    def advance(self, dataset_size: int) -> bool:
        """Move past the current sample; return True when an epoch completed."""

        self.data_index += 1
        if self.data_index >= dataset_size:
            self.data_index = 0
            self.trained += 1
            return True
        return False


@dataclass(frozen=True)
class Prediction:
    """Result of classifying one input."""

    index: int
    label: str
    confidence: float
    outputs: "Matrix"


@dataclass(frozen=True)
class StepResult:
    """Outcome of training on one sample."""

    index: int
    error: float
    epoch: int
    epoch_completed: bool = False


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`sigmanet.training.pipelines.run_pipeline`."""

    steps: int
    epochs: int
    model_path: str
    metrics_path: str
    manifest_path: str
    summary_path: str = ""
