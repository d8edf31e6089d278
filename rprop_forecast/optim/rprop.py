"""
Resilient propagation (RPROP) - sign-based step size adaptation.

Every weight w_ij has its own step size Δ_ij. After an epoch the step size
is adapted from the signs of the last three accumulated gradients only,
never from their magnitude:

    s  = g_t[i,j]   * g_t-1[i,j]
    s' = g_t-1[i,j] * g_t-2[i,j]

    s > 0 and s' >= 0:  Δ ← min(Δ * c+, max_step)    (same direction: speed up)
    s < 0:              Δ ← max(Δ * c-, min_step)    (overshot: slow down)
    otherwise:          Δ unchanged

The weight then moves by Δ in the direction of the current gradient's sign
(see Layer.apply_weight_changes). Until three gradients exist every step
size is reset to initial_step.

References:
    Riedmiller & Braun, "A direct adaptive method for faster
    backpropagation learning: The RPROP algorithm", 1993.
"""

from typing import Dict

import torch

from ..config import ForecastConfig
from ..exceptions import ConfigError
from ..linalg import Matrix


class ResilientStepRule:
    """
    RPROP step size rule.

    Args:
        increase_factor: Growth factor c+ (> 1, default: 1.2)
        decrease_factor: Shrink factor c- (in (0, 1), default: 0.5)
        initial_step: Step size before adaptation starts (default: 0.1)
        max_step: Upper clamp (default: 1.0)
        min_step: Lower clamp (default: 1e-6)
    """

    def __init__(
        self,
        increase_factor: float = 1.2,
        decrease_factor: float = 0.5,
        initial_step: float = 0.1,
        max_step: float = 1.0,
        min_step: float = 1e-6,
    ):
        if increase_factor <= 1.0:
            raise ConfigError(f"Invalid increase_factor: {increase_factor}")
        if not 0.0 < decrease_factor < 1.0:
            raise ConfigError(f"Invalid decrease_factor: {decrease_factor}")
        if not 0.0 < min_step <= initial_step <= max_step:
            raise ConfigError(
                f"Invalid step bounds: min={min_step}, initial={initial_step}, max={max_step}"
            )

        self.increase_factor = increase_factor
        self.decrease_factor = decrease_factor
        self.initial_step = initial_step
        self.max_step = max_step
        self.min_step = min_step

    @classmethod
    def from_config(cls, config: ForecastConfig) -> "ResilientStepRule":
        return cls(
            increase_factor=config.increase_factor,
            decrease_factor=config.decrease_factor,
            initial_step=config.initial_step,
            max_step=config.max_step,
            min_step=config.min_step,
        )

    def compute(self, layer) -> Matrix:
        """
        New step sizes for a layer, without touching the layer.

        Args:
            layer: Layer whose gradient history holds the finished epoch

        Returns:
            Step size matrix with the shape of the layer's weights
        """
        history = layer.gradients
        if history.two_back is None:
            return Matrix.full(*layer.weights.shape, self.initial_step)

        g0 = history.current.data
        g1 = history.previous.data
        g2 = history.two_back.data
        step = layer.weights_diff.data

        agree = g0 * g1
        agreed_before = g1 * g2

        increased = torch.clamp(step * self.increase_factor, max=self.max_step)
        decreased = torch.clamp(step * self.decrease_factor, min=self.min_step)

        new_step = torch.where(
            (agree > 0) & (agreed_before >= 0),
            increased,
            torch.where(agree < 0, decreased, step),
        )
        return Matrix._wrap(new_step)

    def update(self, layer) -> None:
        """Store the new step sizes in layer.weights_diff"""
        layer.weights_diff = self.compute(layer)

    @staticmethod
    def get_step_stats(network) -> Dict[str, float]:
        """Mean / min / max step size over all weights of a network"""
        steps = torch.cat([layer.weights_diff.data.flatten() for layer in network])
        if steps.numel() == 0:
            return {'mean_step': 0.0, 'min_step': 0.0, 'max_step': 0.0}
        return {
            'mean_step': steps.mean().item(),
            'min_step': steps.min().item(),
            'max_step': steps.max().item(),
        }
