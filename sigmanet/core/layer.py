"""A single stage of the network."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import InvalidDimension
from .matrix import Matrix


@dataclass
class Layer:
    """Activations, biases and the weights bridging to the next layer.

    ``outputs`` and ``biased`` are ``1 x N`` row vectors.  ``weights`` has
    shape ``(N, M)`` where ``M`` is the width of the following layer; on the
    output layer it stays empty.
    """

    outputs: Matrix
    biased: Matrix
    weights: Matrix = field(default_factory=Matrix)

    @classmethod
    def create(cls, neuron_count: int) -> "Layer":
        neuron_count = int(neuron_count)
        if neuron_count <= 0:
            raise InvalidDimension(f"a layer needs at least one neuron, got {neuron_count}")
        return cls(outputs=Matrix(1, neuron_count), biased=Matrix(1, neuron_count))

    @property
    def neuron_count(self) -> int:
        return self.outputs.cols

    @property
    def parameter_count(self) -> int:
        return self.biased.size + self.weights.size

    def derive_next(self, neuron_count: int) -> "Layer":
        """Create the following layer and size this layer's weights to reach it."""

        following = Layer.create(neuron_count)
        self.weights = Matrix(self.outputs.cols, following.outputs.cols)
        return following

    @staticmethod
    def forward(current: "Layer", previous: "Layer") -> None:
        current.outputs = (
            previous.outputs.matmul(previous.weights)
            .add_inplace(current.biased)
            .sigmoid()
        )


__all__ = ["Layer"]
