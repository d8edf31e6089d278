"""
Tests for layers, gradient history and the network.
"""

import pytest

from rprop_forecast.config import ForecastConfig
from rprop_forecast.exceptions import ConfigError, DimensionError, NotReadyError
from rprop_forecast.linalg import Matrix, Vector
from rprop_forecast.model import GradientHistory, Layer, Network


def test_gradient_history_depth():
    """Newest first, oldest evicted beyond the depth"""
    history = GradientHistory((1, 2))
    assert len(history) == 1
    assert history.previous is None and history.two_back is None

    for value in (1.0, 2.0, 3.0):
        history.push(Matrix.full(1, 2, value))

    assert len(history) == 3
    assert history.depth == 3
    assert history.current[0, 0] == 3.0
    assert history.previous[0, 0] == 2.0
    assert history.two_back[0, 0] == 1.0

    history.reset_current()
    assert history.current == Matrix.zeros(1, 2)
    assert history.previous[0, 0] == 2.0

    with pytest.raises(DimensionError):
        history.push(Matrix.zeros(2, 2))


def test_layer_shapes_and_orthogonal_rows():
    """m neurons with n inputs carry an m x (n + 1) weight matrix"""
    layer = Layer(3, 4, generator=0)

    assert layer.weights.shape == (3, 5)
    assert layer.weights_diff == Matrix.zeros(3, 5)
    assert layer.gradients.current.shape == (3, 5)
    for r in range(1, 3):
        for i in range(r):
            assert abs(layer.weights.extract_row(r).dot(layer.weights.extract_row(i))) < 1e-12


def test_layer_feed():
    """Output is sigmoid(W . [x, 1]) and the input keeps the bias entry"""
    layer = Layer(2, 2, generator=1)
    layer.weights = Matrix([[1.0, -1.0, 0.5], [0.0, 2.0, -1.0]])

    output = layer.feed(Vector([2.0, 1.0]))

    assert layer.input.tolist() == [2.0, 1.0, 1.0]
    assert output.allclose(Vector([0.8175744761936437, 0.7310585786300049]))

    output[0] = 42.0
    assert layer.output[0] != 42.0

    with pytest.raises(DimensionError):
        layer.feed(Vector([1.0, 2.0, 3.0]))


def test_layer_deltas():
    """Output delta from the target, hidden delta from the successor"""
    hidden = Layer(2, 1, generator=2)
    out = Layer(1, 2, generator=3)
    hidden.output = Vector([0.5, 0.25])
    out.output = Vector([0.6])
    out.weights = Matrix([[2.0, -4.0, 7.0]])

    out_delta = out.delta_from_target(Vector([1.0]))
    assert out_delta[0] == pytest.approx(0.4 * 0.6 * 0.4)

    hidden_delta = hidden.delta_from_next(out)
    assert hidden_delta[0] == pytest.approx(2.0 * out_delta[0] * 0.25)
    assert hidden_delta[1] == pytest.approx(-4.0 * out_delta[0] * 0.1875)


def test_delta_from_next_requires_successor_delta():
    hidden = Layer(2, 1, generator=2)
    out = Layer(1, 2, generator=3)

    with pytest.raises(NotReadyError):
        hidden.delta_from_next(out)

    mismatched = Layer(1, 3, generator=4)
    mismatched.delta = Vector([0.1])
    with pytest.raises(DimensionError):
        hidden.delta_from_next(mismatched)


def test_gradient_accumulation():
    """delta (x) input is summed into the current accumulator"""
    layer = Layer(1, 2, generator=5)
    layer.input = Vector([1.0, -2.0, 1.0])
    layer.delta = Vector([0.5])

    layer.accumulate_gradient()
    layer.accumulate_gradient()

    assert layer.gradients.current.tolist() == [[1.0, -2.0, 1.0]]


def test_apply_weight_changes():
    """weights += step * sgn(gradient), then a fresh accumulator"""
    layer = Layer(1, 2, generator=6)
    before = layer.weights.copy()
    gradient = Matrix([[3.0, -0.5, 0.0]])
    layer.add_gradient(gradient)
    layer.weights_diff = Matrix([[0.1, 0.2, 0.3]])

    layer.apply_weight_changes()

    expected = before + Matrix([[0.1, -0.2, 0.0]])
    assert layer.weights.allclose(expected)
    assert layer.gradients.current == Matrix.zeros(1, 3)
    assert layer.gradients.previous == gradient


def test_network_structure():
    """[estimate_length * channels, *hidden, 1]"""
    network = Network(2, [3, 4], 2, generator=0)

    assert network.structure == [4, 3, 4, 1]
    assert len(network) == 3
    assert network.input_size == 4
    assert network.first().weights.shape == (3, 5)
    assert network.last().weights.shape == (1, 5)
    assert [layer.output_size for layer in reversed(network)] == [1, 4, 3]


def test_network_without_hidden_layers():
    network = Network(3, [], 1, generator=0)

    assert network.structure == [3, 1]
    assert len(network) == 1


def test_network_feed():
    """Single output inside (0, 1), returned as a copy"""
    network = Network(2, [3], 2, generator=0)

    output = network.feed(Vector([0.1, -0.2, 0.3, 0.0]))

    assert len(output) == 1
    assert 0.0 < output[0] < 1.0
    output[0] = 5.0
    assert network.last().output[0] != 5.0

    with pytest.raises(DimensionError):
        network.feed(Vector([0.1, 0.2]))


def test_network_seeded_initialization():
    """Same seed, same weights"""
    a = Network(2, [3], 1, generator=9)
    b = Network(2, [3], 1, generator=9)
    c = Network(2, [3], 1, generator=10)

    assert all(x.weights == y.weights for x, y in zip(a, b))
    assert a.first().weights != c.first().weights


def test_network_from_config():
    config = ForecastConfig(estimate_length=4, hidden_layers=[6], seed=3)

    network = Network.from_config(config, channel_count=2)

    assert network.structure == [8, 6, 1]
    assert network.first().weights == Network.from_config(config, 2).first().weights


def test_network_invalid_arguments():
    with pytest.raises(ConfigError):
        Network(0, [3], 1)
    with pytest.raises(ConfigError):
        Network(2, [3], 0)
    with pytest.raises(ConfigError):
        Network(2, [0], 1)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
