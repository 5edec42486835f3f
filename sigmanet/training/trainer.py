"""Sample-at-a-time training loop for :class:`~sigmanet.core.network.Network`."""

from __future__ import annotations

from typing import Dict, List, Sequence

from ..core.network import Network, mean_squared_error
from ..core.types import StepResult, TrainingProgress
from ..data.registry import Dataset

DEFAULT_MAX_EPOCHS = 3


def train_step(network: Network, dataset: Dataset, index: int) -> float:
    """Train on sample ``index`` and return its error before the update.

    Indices past the end of the dataset are a no-op returning ``0.0``.
    """

    if index >= dataset.count():
        return 0.0
    expected = dataset.get_output(index)
    network.forward(dataset.get_input(index))
    cost = mean_squared_error(network.outputs, expected)
    network.backprop(expected)
    return cost


def evaluate(network: Network, dataset: Dataset) -> Dict[str, float]:
    """Forward every sample and report mean error and argmax accuracy."""

    total = dataset.count()
    if total == 0:
        return {"error": 0.0, "accuracy": 0.0, "count": 0}
    errors = 0.0
    correct = 0
    for index in range(total):
        expected = dataset.get_output(index)
        outputs = network.forward(dataset.get_input(index))
        errors += mean_squared_error(outputs, expected)
        correct += int(outputs.argmax() == expected.argmax())
    return {"error": errors / total, "accuracy": correct / total, "count": total}


class Trainer:
    """Drive a network through a dataset one sample per :meth:`step`.

    The :class:`TrainingProgress` cursor is the only session state; it is
    passed in (or created) by the caller and can be persisted with the
    model to resume later.  Pausing a run is simply not calling ``step``.
    """

    def __init__(
        self,
        network: Network,
        dataset: Dataset,
        progress: TrainingProgress | None = None,
        callbacks: Sequence[object] | None = None,
        max_epochs: int = DEFAULT_MAX_EPOCHS,
    ) -> None:
        if dataset.count() == 0:
            raise ValueError("cannot train on an empty dataset")
        self.network = network
        self.dataset = dataset
        self.progress = progress or TrainingProgress()
        self.callbacks = list(callbacks or [])
        self.max_epochs = int(max_epochs)
        self.steps = 0
        self._epoch_errors: List[float] = []

    @property
    def done(self) -> bool:
        return self.progress.trained >= self.max_epochs

    def step(self) -> StepResult:
        """Train on the sample under the cursor and advance it."""

        if not 0 <= self.progress.data_index < self.dataset.count():
            # A cursor saved against a larger dataset starts a fresh epoch.
            self.progress.data_index = 0
        index = self.progress.data_index
        epoch = self.progress.trained
        error = train_step(self.network, self.dataset, index)
        self._epoch_errors.append(error)
        self.steps += 1
        completed = self.progress.advance(self.dataset.count())

        self._emit("on_step", self.steps, {"error": error, "index": index, "epoch": epoch})
        if completed:
            mean_error = sum(self._epoch_errors) / len(self._epoch_errors)
            self._epoch_errors = []
            self._emit("on_epoch", self.progress.trained, {"error": mean_error})
        return StepResult(index=index, error=error, epoch=epoch, epoch_completed=completed)

    def run(self, steps: int | None = None) -> List[StepResult]:
        """Step until ``max_epochs`` epochs are done or ``steps`` samples ran."""

        results: List[StepResult] = []
        while not self.done and (steps is None or len(results) < steps):
            results.append(self.step())
        return results

    def _emit(self, hook: str, counter: int, metrics: Dict[str, float]) -> None:
        for callback in self.callbacks:
            method = getattr(callback, hook, None)
            if method is not None:
                method(counter, metrics)


__all__ = ["DEFAULT_MAX_EPOCHS", "Trainer", "evaluate", "train_step"]
