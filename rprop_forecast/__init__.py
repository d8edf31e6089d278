"""
RPROP Forecast: time series estimation with resilient backpropagation

A small feed-forward sigmoid network learns the growth of a multivariate
chart. Raw values pass through a reversible transform chain (log-returns,
standardization) on the way in, and network outputs are inverted through
the same chain on the way out.

Core principle: every numeric step is dimension-checked and every data
transform has an exact inverse, so an estimate can always be traced back
to the scale of the original chart.
"""

__version__ = "0.1.0"
__author__ = "RPROP Forecast Team"

from .config import ForecastConfig
from .exceptions import (
    ConfigError,
    DimensionError,
    ForecastError,
    InsufficientDataError,
    NotReadyError,
    NumericDegeneracyError,
)
from .forecaster import Forecaster, initialize

__all__ = [
    "ForecastConfig",
    "Forecaster",
    "initialize",
    "ForecastError",
    "DimensionError",
    "ConfigError",
    "InsufficientDataError",
    "NotReadyError",
    "NumericDegeneracyError",
]
