"""
Forecaster - the entry point of the core.

Binds a DataHandler (chart and transforms), a Network and its Trainer, and
exposes the operations a front end drives: load data, initialize, start /
stop background training, poll progress and ask for the current estimate.
"""

import dataclasses
import logging
import math
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import ForecastConfig
from .data import Chart, DataHandler, DataPattern
from .exceptions import ConfigError, NotReadyError
from .model import Network
from .training import Trainer, TrainingProgress, TrainingState
from .utils import MetricsLogger

logger = logging.getLogger(__name__)


def _build(
    config: ForecastConfig,
    channel_count: int,
    metrics_logger: Optional[MetricsLogger] = None,
) -> Tuple[Network, Trainer]:
    network = Network.from_config(config, channel_count)
    trainer = Trainer.from_config(network, config, metrics_logger)
    return network, trainer


def initialize(
    estimate_length: int,
    hidden_layers: Sequence[int],
    channel_count: int,
    increase_factor: float = 1.2,
    decrease_factor: float = 0.5,
    seed: Optional[int] = None,
) -> Tuple[Network, Trainer]:
    """
    Create a fresh Network and its Trainer.

    Raises:
        ConfigError: if estimate_length <= 0, channel_count <= 0 or any other
            hyperparameter is out of range
    """
    if channel_count <= 0:
        raise ConfigError(f"Invalid channel_count: {channel_count}")
    config = ForecastConfig(
        estimate_length=estimate_length,
        hidden_layers=list(hidden_layers),
        increase_factor=increase_factor,
        decrease_factor=decrease_factor,
        seed=seed,
    )
    return _build(config, channel_count)


class Forecaster:
    """
    Estimates a future value of a chart with an RPROP-trained network.

    Typical use:

        forecaster = Forecaster(ForecastConfig(estimate_length=5))
        forecaster.load_chart(chart, output_channel='close')
        forecaster.start(max_epochs=500)
        ...
        forecaster.current_progress()
        forecaster.estimate()
        forecaster.stop()

    Args:
        config: Hyperparameters (default: ForecastConfig())
        metrics_logger: Optional sink for per-epoch metrics
    """

    def __init__(
        self,
        config: Optional[ForecastConfig] = None,
        metrics_logger: Optional[MetricsLogger] = None,
    ):
        self.config = config or ForecastConfig()
        self.metrics_logger = metrics_logger
        self.data = DataHandler(self.config.normalize_channel)

        self.network: Optional[Network] = None
        self.trainer: Optional[Trainer] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    #  Data
    # ------------------------------------------------------------------ #

    def load_chart(self, chart: Chart, output_channel: Optional[str] = None) -> None:
        """
        Load new raw data.

        Stops any running training; the current network and trainer are
        discarded because their patterns no longer match the data.
        """
        self.stop()
        with self._lock:
            self.data.load(chart, output_channel or self.config.output_channel)
            self.network = None
            self.trainer = None

    def load_patterns(
        self,
        chart: Optional[Chart] = None,
        estimate_length: Optional[int] = None,
    ) -> List[DataPattern]:
        """
        Build the training patterns, loading chart first if given.

        The patterns are handed to the trainer if one is bound and has not
        started yet. An estimate_length other than the configured one
        becomes the new configured length; a bound network is rebuilt for
        it, since its input size depends on the length.
        """
        if chart is not None:
            self.load_chart(chart)
        if not self.data.is_loaded:
            raise NotReadyError("No chart loaded")

        if estimate_length is None:
            estimate_length = self.config.estimate_length
        patterns = self.data.training_patterns(estimate_length)

        if estimate_length != self.config.estimate_length:
            config = dataclasses.replace(self.config, estimate_length=estimate_length)
            if self.trainer is None:
                self.config = config
                return patterns

            self.stop()
            with self._lock:
                self._initialize(config, self.data.channel_count)
                return self.trainer.patterns

        if self.trainer is not None and self.trainer.state is TrainingState.IDLE:
            self.trainer.set_patterns(patterns)
        return patterns

    # ------------------------------------------------------------------ #
    #  Model
    # ------------------------------------------------------------------ #

    def initialize(
        self,
        estimate_length: Optional[int] = None,
        hidden_layers: Optional[Sequence[int]] = None,
        channel_count: Optional[int] = None,
        increase_factor: Optional[float] = None,
        decrease_factor: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> Tuple[Network, Trainer]:
        """
        Create a fresh Network and Trainer, replacing the current ones.

        Arguments left as None keep the value of the current config. The
        channel count defaults to the loaded chart's. If a chart is loaded
        its training patterns are bound to the new trainer.
        """
        overrides: Dict[str, Any] = {
            'estimate_length': estimate_length,
            'hidden_layers': list(hidden_layers) if hidden_layers is not None else None,
            'increase_factor': increase_factor,
            'decrease_factor': decrease_factor,
            'seed': seed,
        }
        config = dataclasses.replace(
            self.config, **{k: v for k, v in overrides.items() if v is not None}
        )

        if channel_count is None:
            if not self.data.is_loaded:
                raise NotReadyError("Load a chart or pass channel_count")
            channel_count = self.data.channel_count
        elif channel_count <= 0:
            raise ConfigError(f"Invalid channel_count: {channel_count}")
        elif self.data.is_loaded and channel_count != self.data.channel_count:
            raise ConfigError(
                f"channel_count={channel_count} does not match the loaded chart "
                f"({self.data.channel_count} channels)"
            )

        self.stop()
        with self._lock:
            self._initialize(config, channel_count)
            return self.network, self.trainer

    def _initialize(self, config: ForecastConfig, channel_count: int) -> None:
        network, trainer = _build(config, channel_count, self.metrics_logger)
        if self.data.is_loaded:
            trainer.set_patterns(self.data.training_patterns(config.estimate_length))

        self.config = config
        self.network = network
        self.trainer = trainer

    # ------------------------------------------------------------------ #
    #  Training control
    # ------------------------------------------------------------------ #

    def start(self, max_epochs: Optional[int] = None) -> bool:
        """
        Start background training.

        A no-op returning False while training is already running. A
        trainer that already ran is replaced by a freshly initialized
        network and trainer.
        """
        with self._lock:
            if self.trainer is not None and self.trainer.is_running():
                logger.info("Training already running, start ignored")
                return False
            if not self.data.is_loaded:
                raise NotReadyError("No chart loaded")

            if self.trainer is None or self.trainer.state is not TrainingState.IDLE:
                self._initialize(self.config, self.data.channel_count)

            epochs = self.config.num_epochs if max_epochs is None else max_epochs
            return self.trainer.start(epochs)

    def stop(self) -> None:
        """Stop training and wait for the background thread; safe to call any time"""
        trainer = self.trainer
        if trainer is not None:
            trainer.stop()

    def is_running(self) -> bool:
        return self.trainer is not None and self.trainer.is_running()

    def current_progress(self) -> TrainingProgress:
        if self.trainer is None:
            return TrainingProgress(epoch=0, max_epochs=0, error=math.nan, state=TrainingState.IDLE)
        return self.trainer.current_progress()

    # ------------------------------------------------------------------ #
    #  Estimation
    # ------------------------------------------------------------------ #

    def estimate(self) -> float:
        """
        Estimate of the output channel estimate_length points after the
        end of the chart.

        Raises:
            NotReadyError: if no network is initialized or no chart loaded
        """
        network = self.network
        if network is None or not self.data.is_loaded:
            raise NotReadyError("Initialize a network and load a chart before estimating")

        window = self.data.latest_window(network.estimate_length)
        net_output = network.feed(self.data.input_vector(window))
        return self.data.estimate_value(net_output, window.last())

    def snapshot(self) -> Dict[str, Any]:
        """Status payload for a front end: estimate and training progress"""
        progress = self.current_progress()
        return {
            'estimate_value': self.estimate(),
            'estimate_length': self.network.estimate_length,
            'progress': progress.fraction,
            'epoch': progress.epoch,
            'max_epochs': progress.max_epochs,
            'error': progress.error,
            'running': self.is_running(),
        }
