"""Model components for RPROP Forecast"""

from .layer import GradientHistory, Layer
from .network import Network

__all__ = [
    "GradientHistory",
    "Layer",
    "Network",
]
