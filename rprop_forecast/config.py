"""
Configuration module for RPROP Forecast.

All hyperparameters of the network, the RPROP rule and the training loop
are defined here as a dataclass, validated on construction.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .exceptions import ConfigError


@dataclass
class ForecastConfig:
    """
    Main configuration for a forecasting run.

    Defines the network shape (estimate length and hidden layers), the
    RPROP factors and clamps, and the training loop parameters.
    """

    # ========== Network Shape ==========
    estimate_length: int = 10
    """Number of historical points per channel fed into the network"""

    hidden_layers: List[int] = field(default_factory=lambda: [10])
    """Sizes of the hidden layers (input and output sizes are derived)"""

    init_low: float = -0.01
    """Lower bound of the uniform weight initialization"""

    init_high: float = 0.01
    """Upper bound of the uniform weight initialization"""

    # ========== RPROP ==========
    increase_factor: float = 1.2
    """Step size growth factor c+ when consecutive gradient signs agree"""

    decrease_factor: float = 0.5
    """Step size shrink factor c- when consecutive gradient signs flip"""

    initial_step: float = 0.1
    """Step size every weight starts with after the first epoch"""

    max_step: float = 1.0
    """Upper clamp for a single weight's step size"""

    min_step: float = 1e-6
    """Lower clamp for a single weight's step size"""

    # ========== Training ==========
    num_epochs: int = 1000
    """Number of epochs the background loop runs unless stopped"""

    log_interval: int = 100
    """How often (in epochs) the trainer logs its progress"""

    # ========== Data ==========
    output_channel: Optional[str] = None
    """Chart channel to estimate (default: the first channel)"""

    normalize_channel: Optional[str] = None
    """Channel the standardization is fitted on (default: the first channel)"""

    # ========== Miscellaneous ==========
    seed: Optional[int] = None
    """Random seed for weight initialization (None: nondeterministic)"""

    def __post_init__(self):
        """Validate hyperparameters"""
        if self.estimate_length <= 0:
            raise ConfigError(f"Invalid estimate_length: {self.estimate_length}")
        if any(size <= 0 for size in self.hidden_layers):
            raise ConfigError(f"Invalid hidden_layers: {self.hidden_layers}")
        if self.increase_factor <= 1.0:
            raise ConfigError(f"Invalid increase_factor: {self.increase_factor}")
        if not 0.0 < self.decrease_factor < 1.0:
            raise ConfigError(f"Invalid decrease_factor: {self.decrease_factor}")
        if not 0.0 < self.min_step <= self.initial_step <= self.max_step:
            raise ConfigError(
                "Step sizes must satisfy 0 < min_step <= initial_step <= max_step"
            )
        if self.init_low >= self.init_high:
            raise ConfigError("init_low must be smaller than init_high")
        if self.num_epochs < 0:
            raise ConfigError(f"Invalid num_epochs: {self.num_epochs}")
        if self.log_interval <= 0:
            raise ConfigError(f"Invalid log_interval: {self.log_interval}")

    def get_structure(self, channel_count: int) -> List[int]:
        """
        Calculate the layer sizes of the network.

        The input layer consumes estimate_length points of every channel,
        the output layer always holds a single neuron:

            [estimate_length * channel_count, *hidden_layers, 1]
        """
        if channel_count <= 0:
            raise ConfigError(f"Invalid channel_count: {channel_count}")
        return [self.estimate_length * channel_count, *self.hidden_layers, 1]
