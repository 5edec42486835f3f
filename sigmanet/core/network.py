"""Sigmoid multilayer perceptron trained one sample at a time."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np

from . import codec
from .activations import sigmoid_derivative_from_output
from .errors import CorruptModel, InvalidDimension, LabelCountMismatch, ShapeMismatch
from .layer import Layer
from .matrix import Matrix
from .types import Array, Prediction, TrainingProgress

DEFAULT_LEARN_RATE = 0.01
DEFAULT_INIT_RANGE = (-0.5, 0.5)


def mean_squared_error(output: Matrix, expected: Matrix) -> float:
    """Mean of the squared differences across the output vector."""

    if output.cols == 0:
        raise InvalidDimension("error of an empty output vector")
    return output.subtract(expected).square().sum() / output.cols


def _as_matrix(values: Matrix | Array | Sequence[float]) -> Matrix:
    if isinstance(values, Matrix):
        return values
    return Matrix.from_array(values)


def default_labels(count: int) -> List[str]:
    return [str(i) for i in range(count)]


class Network:
    """Ordered stack of :class:`Layer` objects, input layer first.

    Parameters
    ----------
    topology:
        Neuron count per layer, e.g. ``[784, 20, 10]``.
    output_labels:
        Human readable name for each output neuron.  Defaults to
        ``"0".."n-1"``.
    learn_rate:
        Gradient descent step size used by :meth:`backprop`.
    rng, seed:
        Source of the uniform weight initialisation.  ``rng`` wins when both
        are given.
    init_range:
        Half-open interval the initial weights are drawn from.
    """

    def __init__(
        self,
        topology: Sequence[int],
        output_labels: Sequence[str] | None = None,
        learn_rate: float = DEFAULT_LEARN_RATE,
        *,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
        init_range: Tuple[float, float] = DEFAULT_INIT_RANGE,
    ) -> None:
        topology = [int(n) for n in topology]
        if not topology:
            raise InvalidDimension("a network needs at least one layer")
        if min(topology) <= 0:
            raise InvalidDimension(f"every layer needs at least one neuron, got {topology}")
        labels = list(output_labels) if output_labels is not None else default_labels(topology[-1])
        if len(labels) != topology[-1]:
            raise LabelCountMismatch(len(labels), topology[-1])

        layers = [Layer.create(topology[0])]
        for neurons in topology[1:]:
            layers.append(layers[-1].derive_next(neurons))

        rng = rng if rng is not None else np.random.default_rng(seed)
        low, high = init_range
        for layer in layers:
            layer.weights.randomize(low, high, rng=rng)

        self.layers: List[Layer] = layers
        self.output_labels: List[str] = labels
        self.learn_rate = float(learn_rate)

    def __repr__(self) -> str:
        return f"<Network topology={self.topology} learn_rate={self.learn_rate}>"

    # ------------------------------------------------------------------
    # Introspection

    @property
    def topology(self) -> List[int]:
        return [layer.neuron_count for layer in self.layers]

    @property
    def outputs(self) -> Matrix:
        return self.layers[-1].outputs

    @property
    def input_size(self) -> int:
        return self.layers[0].neuron_count

    @property
    def output_size(self) -> int:
        return self.layers[-1].neuron_count

    @property
    def parameter_count(self) -> int:
        return sum(layer.parameter_count for layer in self.layers)

    # ------------------------------------------------------------------
    # Propagation

    def forward(self, input: Matrix | Array | Sequence[float]) -> Matrix:
        """Compute every layer's activations for ``input`` and return the output."""

        input = _as_matrix(input)
        first = self.layers[0]
        if input.shape != first.outputs.shape:
            raise ShapeMismatch("forward", input.shape, first.outputs.shape)
        first.outputs = input.copy()
        for previous, current in zip(self.layers[:-1], self.layers[1:]):
            Layer.forward(current, previous)
        return self.outputs

    def backprop(self, expected: Matrix | Array | Sequence[float]) -> None:
        """Apply one gradient descent update against ``expected``.

        The output error ``output - expected`` is pushed backwards through
        the stack; each step updates the biases of layer ``i`` and the
        weights feeding it before the error is propagated through those
        (already updated) weights and the sigmoid derivative of layer
        ``i - 1``.
        """

        expected = _as_matrix(expected)
        output = self.outputs
        if expected.shape != output.shape:
            raise ShapeMismatch("backprop", expected.shape, output.shape)

        rate = -self.learn_rate
        delta = output.subtract(expected)
        for i in range(len(self.layers) - 1, 0, -1):
            current = self.layers[i]
            previous = self.layers[i - 1]

            current.biased.add_inplace(delta.scale(rate))
            previous.weights.add_inplace(
                previous.outputs.transpose().matmul(delta).scale_inplace(rate)
            )

            slope = Matrix.from_array(sigmoid_derivative_from_output(previous.outputs.data))
            delta = delta.matmul(previous.weights.transpose()).multiply_inplace(slope)

    def error(self, expected: Matrix | Array | Sequence[float]) -> float:
        """Mean squared error of the current outputs against ``expected``."""

        expected = _as_matrix(expected)
        if expected.shape != self.outputs.shape:
            raise ShapeMismatch("error", expected.shape, self.outputs.shape)
        return mean_squared_error(self.outputs, expected)

    def predict(self, input: Matrix | Array | Sequence[float]) -> Prediction:
        outputs = self.forward(input)
        index = outputs.argmax()
        return Prediction(
            index=index,
            label=self.output_labels[index],
            confidence=outputs.at(0, index),
            outputs=outputs.copy(),
        )

    # ------------------------------------------------------------------
    # Persistence

    def validate(self) -> None:
        """Check the layer chain invariant, raising :class:`CorruptModel`."""

        codec.validate_layers(self.layers)

    def save(self, path: str | Path, progress: TrainingProgress | None = None) -> None:
        codec.save_file(path, self, progress or TrainingProgress())

    def load(self, path: str | Path) -> TrainingProgress:
        """Replace every layer with the ones stored at ``path``."""

        layers, progress = codec.load_file(path)
        self._replace_layers(layers)
        return progress

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        output_labels: Sequence[str] | None = None,
        learn_rate: float = DEFAULT_LEARN_RATE,
    ) -> Tuple["Network", TrainingProgress]:
        layers, progress = codec.load_file(path)
        network = cls.__new__(cls)
        network.learn_rate = float(learn_rate)
        network.output_labels = []
        network._replace_layers(layers)
        if output_labels is not None:
            labels = list(output_labels)
            if len(labels) != network.output_size:
                raise LabelCountMismatch(len(labels), network.output_size)
            network.output_labels = labels
        return network, progress

    def _replace_layers(self, layers: List[Layer]) -> None:
        if not layers:
            raise CorruptModel("model contains no layers")
        codec.validate_layers(layers)
        self.layers = layers
        if len(self.output_labels) != self.output_size:
            self.output_labels = default_labels(self.output_size)


__all__ = ["DEFAULT_LEARN_RATE", "Network", "default_labels", "mean_squared_error"]
