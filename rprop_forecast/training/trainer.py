"""
Training loop for RPROP Forecast.

The Trainer runs batch backpropagation with RPROP weight updates, either
synchronously (train) or in a background thread (start / stop) that polls
a cancellation event at every epoch boundary.

State machine:

    IDLE --start()--> RUNNING --(max epochs | stop() | DimensionError)--> STOPPED

A stopped trainer is not resumed; callers build a fresh Network and
Trainer to train again.
"""

import enum
import logging
import math
import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..config import ForecastConfig
from ..data.pattern import DataPattern
from ..exceptions import (
    ConfigError,
    DimensionError,
    ForecastError,
    NotReadyError,
    NumericDegeneracyError,
)
from ..linalg import Vector
from ..model import Network
from ..optim import ResilientStepRule
from ..utils import MetricsLogger

logger = logging.getLogger(__name__)


class TrainingState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TrainingProgress:
    """Snapshot of the training loop"""

    epoch: int
    max_epochs: int
    error: float
    state: TrainingState

    @property
    def fraction(self) -> float:
        """Completed share of the epochs (0 when no epochs were requested)"""
        return self.epoch / self.max_epochs if self.max_epochs else 0.0


class Trainer:
    """
    RPROP trainer for a Network.

    Args:
        network: Network to train (mutated in place)
        increase_factor: RPROP growth factor c+
        decrease_factor: RPROP shrink factor c-
        rule: Prebuilt step rule (overrides the factors)
        log_interval: Log progress every log_interval epochs
        metrics_logger: Optional sink for per-epoch metrics
    """

    def __init__(
        self,
        network: Network,
        increase_factor: float = 1.2,
        decrease_factor: float = 0.5,
        rule: Optional[ResilientStepRule] = None,
        log_interval: int = 100,
        metrics_logger: Optional[MetricsLogger] = None,
    ):
        if log_interval <= 0:
            raise ConfigError(f"Invalid log_interval: {log_interval}")

        self.network = network
        self.rule = rule or ResilientStepRule(increase_factor, decrease_factor)
        self.log_interval = log_interval
        self.metrics_logger = metrics_logger

        self.patterns: List[DataPattern] = []

        # Training state
        self.state = TrainingState.IDLE
        self.current_epoch = 0
        self.max_epochs = 0
        self.epoch_error = math.nan
        self.last_error: Optional[ForecastError] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        network: Network,
        config: ForecastConfig,
        metrics_logger: Optional[MetricsLogger] = None,
    ) -> "Trainer":
        return cls(
            network,
            rule=ResilientStepRule.from_config(config),
            log_interval=config.log_interval,
            metrics_logger=metrics_logger,
        )

    def set_patterns(self, patterns: Sequence[DataPattern]) -> None:
        self.patterns = list(patterns)

    # ------------------------------------------------------------------ #
    #  Backpropagation
    # ------------------------------------------------------------------ #

    def backpropagation(self, net_output: Vector, pattern: DataPattern) -> float:
        """
        Propagate the error of one pattern from the output layer back to
        the first layer and accumulate every layer's gradient.

        Must run right after the forward pass of the same pattern, under
        the network lock.

        Returns:
            Squared error 0.5 * |target - output|^2 of the pattern
        """
        layers = list(reversed(self.network))

        output_layer = layers[0]
        output_layer.delta_from_target(pattern.target)
        output_layer.accumulate_gradient()

        for next_layer, layer in zip(layers, layers[1:]):
            layer.delta_from_next(next_layer)
            layer.accumulate_gradient()

        return 0.5 * pattern.target.subtract(net_output).norm2()

    def train_epoch(self) -> float:
        """
        One epoch: every pattern priority times through forward and backward
        pass, then one batched RPROP update of all layers.

        Weights are only touched after every pattern went through, so an
        error raised mid-epoch leaves the weights of the previous epochs
        intact (the partial gradients are discarded).

        Returns:
            Mean squared error over all replays of the epoch
        """
        if not self.patterns:
            raise NotReadyError("No training patterns set")

        total_error = 0.0
        replays = 0

        try:
            for pattern in self.patterns:
                for _ in range(pattern.priority):
                    with self.network.lock:
                        net_output = self.network.feed(pattern.input)
                        total_error += self.backpropagation(net_output, pattern)
                    replays += 1

            with self.network.lock:
                steps = [self.rule.compute(layer) for layer in self.network]
                for layer, step in zip(self.network, steps):
                    layer.weights_diff = step
                    layer.apply_weight_changes()
        except ForecastError:
            with self.network.lock:
                for layer in self.network:
                    layer.gradients.reset_current()
            raise

        return total_error / replays if replays else 0.0

    # ------------------------------------------------------------------ #
    #  Epoch loop
    # ------------------------------------------------------------------ #

    def train(self, max_epochs: int) -> TrainingProgress:
        """
        Run up to max_epochs epochs in the calling thread.

        Stops early when stop is requested (checked before every epoch) or
        when an epoch fails with a DimensionError. An epoch failing with a
        NumericDegeneracyError is skipped and training continues.
        """
        if max_epochs < 0:
            raise ConfigError(f"Invalid max_epochs: {max_epochs}")

        self.max_epochs = max_epochs
        self.current_epoch = 0
        self.state = TrainingState.RUNNING
        logger.info(f"Training started: {len(self.patterns)} patterns, {max_epochs} epochs")

        try:
            for epoch in range(max_epochs):
                if self._stop_event.is_set():
                    logger.info(f"Training cancelled after {epoch} epochs")
                    break

                try:
                    self.epoch_error = self.train_epoch()
                except DimensionError as e:
                    self.last_error = e
                    logger.exception(f"Epoch {epoch} failed, stopping training")
                    break
                except NumericDegeneracyError as e:
                    self.last_error = e
                    logger.warning(f"Epoch {epoch} aborted: {e}")
                else:
                    self._log_epoch(epoch)

                self.current_epoch = epoch + 1
            else:
                logger.info(f"Training complete: {self.current_epoch} epochs, error={self.epoch_error:.6f}")
        finally:
            self.state = TrainingState.STOPPED

        return self.current_progress()

    def _log_epoch(self, epoch: int) -> None:
        if self.metrics_logger is not None:
            metrics = {'error': self.epoch_error, **ResilientStepRule.get_step_stats(self.network)}
            self.metrics_logger.log(metrics, step=epoch + 1, epoch=epoch)

        if (epoch + 1) % self.log_interval == 0:
            logger.info(f"Epoch {epoch + 1}/{self.max_epochs} - error: {self.epoch_error:.6f}")

    # ------------------------------------------------------------------ #
    #  Background training
    # ------------------------------------------------------------------ #

    def start(self, max_epochs: int) -> bool:
        """
        Train in a background thread.

        Returns:
            True if a thread was started, False if one is already running
        """
        with self._start_lock:
            if self.is_running():
                logger.debug("Training already running, start ignored")
                return False
            if self.state is not TrainingState.IDLE:
                raise NotReadyError("Trainer already ran; create a new trainer to train again")
            if not self.patterns:
                raise NotReadyError("No training patterns set")
            if max_epochs < 0:
                raise ConfigError(f"Invalid max_epochs: {max_epochs}")

            self._stop_event.clear()
            self.max_epochs = max_epochs
            self.state = TrainingState.RUNNING

            self._thread = threading.Thread(
                target=self._run, args=(max_epochs,), name="rprop-training", daemon=True
            )
            self._thread.start()
            return True

    def _run(self, max_epochs: int) -> None:
        try:
            self.train(max_epochs)
        except Exception:
            logger.exception("Training thread failed")
            raise

    def stop(self) -> None:
        """Request cancellation and block until the background thread exited"""
        if self._thread is None:
            return

        self._stop_event.set()
        self._thread.join()
        logger.info(f"Training stopped at epoch {self.current_epoch}/{self.max_epochs}")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def current_progress(self) -> TrainingProgress:
        return TrainingProgress(
            epoch=self.current_epoch,
            max_epochs=self.max_epochs,
            error=self.epoch_error,
            state=self.state,
        )
