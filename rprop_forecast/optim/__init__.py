"""Weight update rules for RPROP Forecast"""

from .rprop import ResilientStepRule

__all__ = [
    "ResilientStepRule",
]
