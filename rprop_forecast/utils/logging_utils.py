"""
Logging utilities for RPROP Forecast.
"""

import json
import logging
import math
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union


def setup_logger(name: str = 'rprop_forecast', level: int = logging.INFO) -> logging.Logger:
    """
    Set up logger with consistent formatting.

    Calling it again for the same name only adjusts the level.

    Args:
        name: Logger name
        level: Logging level

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not any(getattr(h, '_rprop_forecast', False) for h in logger.handlers):
        # Console handler
        handler = logging.StreamHandler(sys.stdout)
        handler._rprop_forecast = True

        # Formatter
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger


class MetricsLogger:
    """
    Logs training metrics to a JSON-lines file and/or the console.

    Args:
        log_file: Path of the JSON-lines file (None: console only)
        echo_interval: Echo every n-th step to the console
    """

    def __init__(self, log_file: Optional[Union[str, Path]] = None, echo_interval: int = 1):
        self.log_file = Path(log_file) if log_file is not None else None
        self.echo_interval = echo_interval
        self.logger = logging.getLogger('rprop_forecast.metrics')

    def log(self, metrics: Dict[str, Any], step: int, epoch: int = 0) -> None:
        """
        Log metrics.

        Args:
            metrics: Dictionary of metric name -> value
            step: Global step number
            epoch: Epoch number
        """
        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'step': step,
            'epoch': epoch,
            **{k: (None if isinstance(v, float) and not math.isfinite(v) else v)
               for k, v in metrics.items()},
        }

        if self.log_file is not None:
            with open(self.log_file, 'a') as f:
                f.write(json.dumps(log_entry) + '\n')

        if step % self.echo_interval == 0:
            metrics_str = ', '.join(
                f'{k}: {v:.4g}' for k, v in metrics.items() if isinstance(v, (int, float))
            )
            self.logger.info(f"Step {step} - {metrics_str}")

    def log_summary(self, summary: str) -> None:
        """Log a summary string"""
        self.logger.info(summary)
