"""
Error taxonomy for RPROP Forecast.

Every error raised by the core derives from ForecastError so that callers
(and the background training loop) can catch the whole family at once.
"""

from typing import Optional, Tuple


class ForecastError(Exception):
    """Base class for all errors raised by rprop_forecast"""


class DimensionError(ForecastError, ValueError):
    """
    Shape mismatch in a vector or matrix operation.

    Args:
        operation: Name of the operation that failed (e.g. 'Matrix.add')
        left: Shape of the left operand
        right: Shape of the right operand
    """

    def __init__(
        self,
        operation: str,
        left: Optional[Tuple[int, ...]] = None,
        right: Optional[Tuple[int, ...]] = None,
    ):
        self.operation = operation
        self.left = left
        self.right = right

        message = f"Dimension error in {operation}"
        if left is not None or right is not None:
            message += f": {left} vs {right}"
        super().__init__(message)


class ConfigError(ForecastError, ValueError):
    """Invalid hyperparameters, rejected before any state is created"""


class InsufficientDataError(ForecastError, ValueError):
    """Too little history for the requested estimate length"""


class NotReadyError(ForecastError, RuntimeError):
    """Operation requested before a required prior step"""


class NumericDegeneracyError(ForecastError, ArithmeticError):
    """Computation would produce NaN/Inf (zero norm, zero deviation, ...)"""
