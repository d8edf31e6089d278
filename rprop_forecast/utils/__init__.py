"""Utility functions for RPROP Forecast"""

from .logging_utils import setup_logger, MetricsLogger

__all__ = [
    "setup_logger",
    "MetricsLogger",
]
