import numpy as np
import pytest

from sigmanet.core.errors import InvalidDimension, LabelCountMismatch, ShapeMismatch
from sigmanet.core.layer import Layer
from sigmanet.core.matrix import Matrix
from sigmanet.core.network import Network, mean_squared_error


def _sig(x):
    return 1.0 / (1.0 + np.exp(-x))


def test_layer_create_and_derive_next():
    first = Layer.create(3)
    assert first.outputs.shape == (1, 3)
    assert first.biased.shape == (1, 3)
    assert first.weights.shape == (0, 0)

    second = first.derive_next(5)
    assert second.outputs.shape == (1, 5)
    assert first.weights.shape == (3, 5)
    assert second.weights.shape == (0, 0)

    with pytest.raises(InvalidDimension):
        Layer.create(0)


def test_layer_forward_applies_sigmoid_of_affine_map():
    previous = Layer.create(2)
    current = previous.derive_next(1)
    previous.outputs = Matrix.from_array([1.0, 2.0])
    previous.weights = Matrix.from_rows([[0.5], [-0.25]])
    current.biased = Matrix.from_array([0.1])
    Layer.forward(current, previous)
    assert current.outputs.at(0, 0) == pytest.approx(_sig(0.1), abs=1e-6)


def test_topology_784_20_10_with_ten_labels():
    labels = [str(i) for i in range(10)]
    network = Network([784, 20, 10], labels, seed=0)
    assert network.output_size == 10
    assert len(network.output_labels) == 10
    assert network.topology == [784, 20, 10]
    assert network.layers[0].weights.shape == (784, 20)
    assert network.layers[1].weights.shape == (20, 10)
    assert network.layers[2].weights.shape == (0, 0)


def test_topology_with_wrong_label_count_fails():
    with pytest.raises(LabelCountMismatch) as info:
        Network([784, 20, 10], [str(i) for i in range(9)])
    assert info.value.labels == 9
    assert info.value.neurons == 10


@pytest.mark.parametrize("topology", [[], [3, 0, 2], [-1]])
def test_invalid_topologies(topology):
    with pytest.raises(InvalidDimension):
        Network(topology)


def test_initial_parameters():
    network = Network([4, 6, 3], seed=5)
    for layer in network.layers:
        assert np.all(layer.biased.data == 0.0)
    for layer in network.layers[:-1]:
        assert layer.weights.data.min() >= -0.5
        assert layer.weights.data.max() < 0.5
    assert network.output_labels == ["0", "1", "2"]
    assert network.parameter_count == 4 + 4 * 6 + 6 + 6 * 3 + 3


def test_identity_weights_scenario():
    network = Network([2, 2], seed=0)
    network.layers[0].weights = Matrix.from_rows([[1.0, 0.0], [0.0, 1.0]])
    output = network.forward([1.0, 0.0])
    np.testing.assert_allclose(output.data, [[0.7310586, 0.5]], atol=1e-5)


def test_forward_is_deterministic():
    network = Network([3, 5, 2], seed=11)
    sample = [0.2, 0.4, 0.9]
    first = network.forward(sample).to_numpy()
    second = network.forward(sample).to_numpy()
    assert np.array_equal(first, second)
    assert first.tobytes() == second.tobytes()


def test_forward_keeps_intermediate_activations():
    network = Network([2, 3, 2], seed=2)
    network.forward([0.5, 0.5])
    hidden = network.layers[1].outputs.data
    assert hidden.shape == (1, 3)
    assert np.all((hidden > 0.0) & (hidden < 1.0))


def test_forward_rejects_wrong_input_width():
    network = Network([3, 2], seed=0)
    with pytest.raises(ShapeMismatch):
        network.forward([1.0, 0.0])


def test_backprop_rejects_wrong_expected_shape():
    network = Network([2, 3, 2], seed=0)
    network.forward([0.1, 0.2])
    with pytest.raises(ShapeMismatch):
        network.backprop([1.0, 0.0, 0.0])


def test_backprop_does_not_increase_error_for_small_step():
    network = Network([2, 3, 2], learn_rate=0.05, seed=0)
    sample = [0.3, 0.9]
    expected = Matrix.from_array([1.0, 0.0])

    network.forward(sample)
    before = network.error(expected)
    assert before > 0.0
    network.backprop(expected)
    network.forward(sample)
    after = network.error(expected)
    assert after <= before


def test_backprop_matches_reference_update():
    network = Network([2, 3, 2], learn_rate=0.1, seed=3)
    x = np.array([[0.25, 0.75]], dtype=np.float32)
    y = np.array([[0.0, 1.0]], dtype=np.float32)
    rate = np.float32(0.1)

    w0 = network.layers[0].weights.to_numpy()
    w1 = network.layers[1].weights.to_numpy()
    b1 = network.layers[1].biased.to_numpy()
    b2 = network.layers[2].biased.to_numpy()

    a1 = _sig(x @ w0 + b1).astype(np.float32)
    a2 = _sig(a1 @ w1 + b2).astype(np.float32)
    delta = a2 - y
    b2 = b2 - rate * delta
    w1 = w1 - rate * (a1.T @ delta)
    delta = (delta @ w1.T) * (a1 * (1 - a1))
    b1 = b1 - rate * delta
    w0 = w0 - rate * (x.T @ delta)

    network.forward(x)
    network.backprop(y)

    np.testing.assert_allclose(network.layers[2].biased.data, b2, atol=1e-6)
    np.testing.assert_allclose(network.layers[1].weights.data, w1, atol=1e-6)
    np.testing.assert_allclose(network.layers[1].biased.data, b1, atol=1e-6)
    np.testing.assert_allclose(network.layers[0].weights.data, w0, atol=1e-6)


def test_mean_squared_error():
    output = Matrix.from_array([1.0, 0.0, 0.5, 0.5])
    expected = Matrix.from_array([0.0, 0.0, 0.5, 1.0])
    assert mean_squared_error(output, expected) == pytest.approx((1.0 + 0.25) / 4)
    with pytest.raises(ShapeMismatch):
        mean_squared_error(output, Matrix(1, 3))


def test_predict_reports_label_and_confidence():
    network = Network([2, 2], ["cat", "dog"], seed=0)
    network.layers[0].weights = Matrix.from_rows([[4.0, -4.0], [-4.0, 4.0]])
    prediction = network.predict([0.0, 1.0])
    assert prediction.index == 1
    assert prediction.label == "dog"
    assert prediction.confidence == pytest.approx(_sig(4.0), abs=1e-6)
    assert prediction.outputs.shape == (1, 2)


def test_seeded_networks_are_identical():
    a = Network([3, 4, 2], seed=9)
    b = Network([3, 4, 2], seed=9)
    for la, lb in zip(a.layers, b.layers):
        assert np.array_equal(la.weights.data, lb.weights.data)
