"""
Network - an ordered stack of fully-connected sigmoid layers.

Structure: [estimate_length * channel_count, *hidden_layers, 1]. The input
"layer" has no weights of its own and is not part of the layer list.

Layers keep their last input and output for backpropagation, so the whole
network is one exclusive region: every forward pass (and every training
step built on it) runs under the network's lock.
"""

import logging
import threading
from typing import Iterator, List, Optional, Sequence, Union

import torch

from ..config import ForecastConfig
from ..exceptions import ConfigError
from ..linalg import Vector, make_generator
from .layer import Layer

logger = logging.getLogger(__name__)


class Network:
    """
    Feed-forward network with a single output neuron.

    Args:
        estimate_length: Points per channel the network consumes
        hidden_layers: Sizes of the hidden layers
        channel_count: Number of chart channels per point
        generator: torch.Generator or seed for the weight initialization
        init_low: Lower bound of the initial weights
        init_high: Upper bound of the initial weights
    """

    def __init__(
        self,
        estimate_length: int,
        hidden_layers: Sequence[int],
        channel_count: int,
        generator: Optional[Union[torch.Generator, int]] = None,
        init_low: float = -0.01,
        init_high: float = 0.01,
    ):
        if estimate_length <= 0:
            raise ConfigError(f"Invalid estimate_length: {estimate_length}")
        if channel_count <= 0:
            raise ConfigError(f"Invalid channel_count: {channel_count}")
        if any(size <= 0 for size in hidden_layers):
            raise ConfigError(f"Invalid hidden_layers: {list(hidden_layers)}")

        if generator is None or isinstance(generator, int):
            generator = make_generator(generator)

        self.estimate_length = estimate_length
        self.channel_count = channel_count
        self.structure: List[int] = [estimate_length * channel_count, *hidden_layers, 1]

        self.layers: List[Layer] = [
            Layer(self.structure[i], self.structure[i - 1], generator, init_low, init_high)
            for i in range(1, len(self.structure))
        ]
        self.lock = threading.RLock()

        logger.info(f"Initialized Network: structure={self.structure}")

    @classmethod
    def from_config(
        cls,
        config: ForecastConfig,
        channel_count: int,
        generator: Optional[torch.Generator] = None,
    ) -> "Network":
        return cls(
            estimate_length=config.estimate_length,
            hidden_layers=config.hidden_layers,
            channel_count=channel_count,
            generator=generator if generator is not None else config.seed,
            init_low=config.init_low,
            init_high=config.init_high,
        )

    @property
    def input_size(self) -> int:
        return self.structure[0]

    def feed(self, x: Vector) -> Vector:
        """Forward pass; returns a fresh copy of the output layer's output"""
        with self.lock:
            for layer in self.layers:
                x = layer.feed(x)
            return x

    def first(self) -> Layer:
        return self.layers[0]

    def last(self) -> Layer:
        return self.layers[-1]

    def __getitem__(self, i: int) -> Layer:
        return self.layers[i]

    def __len__(self) -> int:
        return len(self.layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(self.layers)

    def __reversed__(self) -> Iterator[Layer]:
        return reversed(self.layers)

    def __repr__(self) -> str:
        return f"Network(structure={self.structure})"
