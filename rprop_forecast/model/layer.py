"""
Layer - one fully-connected sigmoid layer of the network.

The bias is folded into the weight matrix: every input is extended by a
constant 1, so a layer with n inputs and m neurons carries an
m x (n + 1) weight matrix.

Besides the weights a layer keeps everything RPROP needs between epochs:
- weights_diff: per-weight step size
- gradients: the accumulated gradient of the current epoch and of the two
  epochs before it
"""

from collections import deque
from typing import Optional, Tuple, Union

import torch

from ..exceptions import DimensionError, NotReadyError
from ..linalg import Matrix, Vector, orthogonalize, random_fill


class GradientHistory:
    """
    Fixed-depth history of gradient matrices, newest first.

    current is the accumulator of the running epoch, previous and two_back
    are the finished gradients of the epochs before. Pushing a new
    accumulator evicts the oldest entry.

    Args:
        shape: Shape of the gradient matrices
        depth: Number of matrices kept
    """

    def __init__(self, shape: Tuple[int, int], depth: int = 3):
        self.shape = shape
        self._items = deque(maxlen=depth)
        self.push_zeros()

    def push(self, gradient: Matrix) -> None:
        if gradient.shape != self.shape:
            raise DimensionError("GradientHistory.push", self.shape, gradient.shape)
        self._items.appendleft(gradient)

    def push_zeros(self) -> None:
        self.push(Matrix.zeros(*self.shape))

    def reset_current(self) -> None:
        """Discard whatever was accumulated in the running epoch"""
        self._items[0] = Matrix.zeros(*self.shape)

    def __getitem__(self, i: int) -> Optional[Matrix]:
        return self._items[i] if i < len(self._items) else None

    def __len__(self) -> int:
        return len(self._items)

    @property
    def depth(self) -> int:
        return self._items.maxlen

    @property
    def current(self) -> Matrix:
        return self._items[0]

    @property
    def previous(self) -> Optional[Matrix]:
        return self[1]

    @property
    def two_back(self) -> Optional[Matrix]:
        return self[2]


class Layer:
    """
    Fully-connected layer with sigmoid activation.

    Weights start as uniform draws from [init_low, init_high) whose rows are
    then orthogonalized.

    Args:
        output_size: Number of neurons
        input_size: Length of the input vector (without the bias entry)
        generator: torch.Generator or seed for the weight initialization
        init_low: Lower bound of the initial weights
        init_high: Upper bound of the initial weights
    """

    def __init__(
        self,
        output_size: int,
        input_size: int,
        generator: Optional[Union[torch.Generator, int]] = None,
        init_low: float = -0.01,
        init_high: float = 0.01,
    ):
        self.output_size = output_size
        self.input_size = input_size

        self.weights = orthogonalize(
            random_fill(output_size, input_size + 1, init_low, init_high, generator)
        )
        self.weights_diff = Matrix.zeros(output_size, input_size + 1)
        self.gradients = GradientHistory(self.weights.shape)

        self.input = Vector.zeros(input_size + 1)
        self.output = Vector.zeros(output_size)
        self.delta: Optional[Vector] = None

    @property
    def size(self) -> int:
        return self.output_size

    def __repr__(self) -> str:
        return f"Layer({self.input_size} -> {self.output_size})"

    # ------------------------------------------------------------------ #
    #  Forward pass
    # ------------------------------------------------------------------ #

    def feed(self, x: Vector) -> Vector:
        """
        Compute sigmoid(weights . [x, 1]).

        The bias-augmented input and the output are kept for the backward
        pass; the caller receives its own copy of the output.
        """
        if len(x) != self.input_size:
            raise DimensionError("Layer.feed", (self.input_size,), (len(x),))

        self.input = x.append(1.0)
        self.output = Vector._wrap(torch.sigmoid(self.weights.matvec(self.input).data))
        return self.output.copy()

    def lambda_(self) -> Vector:
        """Sigmoid derivative in terms of the output: output * (1 - output)"""
        return self.output.multiply(Vector.ones(self.output_size).subtract(self.output))

    # ------------------------------------------------------------------ #
    #  Backward pass
    # ------------------------------------------------------------------ #

    def delta_from_target(self, target: Vector) -> Vector:
        """Output layer delta: (target - output) * output * (1 - output)"""
        self.delta = target.subtract(self.output).multiply(self.lambda_())
        return self.delta

    def delta_from_next(self, next_layer: "Layer") -> Vector:
        """
        Hidden layer delta from the successor's delta:

            delta[u] = sum_succ next.weights[succ, u] * next.delta[succ] * lambda[u]

        The successor's bias column has no neuron in this layer and is dropped.
        """
        if next_layer.delta is None:
            raise NotReadyError("Successor layer has no delta yet")
        if next_layer.input_size != self.output_size:
            raise DimensionError(
                "Layer.delta_from_next", (self.output_size,), (next_layer.input_size,)
            )
        propagated = next_layer.delta.matmul(next_layer.weights).drop_last()
        self.delta = propagated.multiply(self.lambda_())
        return self.delta

    def add_gradient(self, gradient: Matrix) -> None:
        """Accumulate into the gradient of the running epoch"""
        self.gradients.current.add_(gradient)

    def accumulate_gradient(self) -> None:
        """Accumulate delta (x) input, the gradient of the last backward pass"""
        if self.delta is None:
            raise NotReadyError("No delta computed for this layer")
        self.add_gradient(self.delta.dyadic(self.input))

    def apply_weight_changes(self) -> None:
        """
        weights += weights_diff * sgn(current gradient), then start a fresh
        accumulator for the next epoch.
        """
        self.weights.add_(self.weights_diff.hadamard(self.gradients.current.sign()))
        self.gradients.push_zeros()
