"""Training infrastructure for RPROP Forecast"""

from .trainer import Trainer, TrainingProgress, TrainingState

__all__ = [
    "Trainer",
    "TrainingProgress",
    "TrainingState",
]
