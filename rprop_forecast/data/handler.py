"""
DataHandler - owns the loaded chart and converts between chart values and
network vectors.

Training patterns are cut from the chart with a sliding segment of
2 * estimate_length + 1 points:

    segment = [ p_0 ... p_L | p_L+1 ... p_2L ]
    input   = log-returns of p_0..p_L (L points x channels), standardized
    target  = sigmoid(standardize(ln(p_2L / p_L))) of the output channel

The estimate made from the last L + 1 chart points is therefore the value
of the output channel L points after the end of the chart.
"""

import logging
from typing import List, Optional

from ..exceptions import ConfigError, InsufficientDataError, NotReadyError
from ..linalg import Vector
from .chart import Chart, ChartPoint
from .pattern import DataPattern, pattern_priority
from .transforms import (
    LogReturnTransform,
    SigmoidTransform,
    StandardizationTransform,
    TransformChain,
)

logger = logging.getLogger(__name__)


class DataHandler:
    """
    Loads a chart and prepares it for the network.

    Args:
        normalize_channel: Channel the standardization is fitted on
            (default: the first channel of the loaded chart)
    """

    def __init__(self, normalize_channel: Optional[str] = None):
        self.normalize_channel = normalize_channel
        self.chart: Optional[Chart] = None
        self.output_channel: Optional[str] = None
        self.chain: Optional[TransformChain] = None
        self.squash = SigmoidTransform()

    def load(self, chart: Chart, output_channel: Optional[str] = None) -> None:
        """
        Store a chart and fit the transform chain on it.

        Args:
            chart: Time-ordered chart with one or more channels
            output_channel: Channel to estimate (default: the first channel)
        """
        if len(chart) < 3:
            raise InsufficientDataError(
                f"A chart needs at least 3 points to be standardized, got {len(chart)}"
            )
        keys = chart.keys()
        if output_channel is None:
            output_channel = keys[0]
        if output_channel not in keys:
            raise ConfigError(f"Unknown output channel {output_channel!r}, chart has {keys}")
        if self.normalize_channel is not None and self.normalize_channel not in keys:
            raise ConfigError(f"Unknown normalize channel {self.normalize_channel!r}")

        self.chain = TransformChain.fit(chart, self.normalize_channel)
        self.chart = chart
        self.output_channel = output_channel

        logger.info(
            f"Loaded chart with {len(chart)} points, channels={keys}, "
            f"output={output_channel}, {self.standardization}"
        )

    @property
    def is_loaded(self) -> bool:
        return self.chart is not None

    @property
    def channel_count(self) -> int:
        self._require_loaded()
        return len(self.chart.keys())

    @property
    def log_return(self) -> LogReturnTransform:
        self._require_loaded()
        return self.chain[0]

    @property
    def standardization(self) -> StandardizationTransform:
        self._require_loaded()
        return self.chain[1]

    def _require_loaded(self) -> None:
        if self.chain is None:
            raise NotReadyError("No chart loaded")

    # ------------------------------------------------------------------ #
    #  Patterns
    # ------------------------------------------------------------------ #

    def training_patterns(self, estimate_length: int) -> List[DataPattern]:
        """
        Cut the loaded chart into training patterns.

        Produces len(chart) - 2 * estimate_length patterns in time order,
        the later ones replayed more often (see pattern_priority).

        Raises:
            InsufficientDataError: if len(chart) <= 2 * estimate_length
        """
        self._require_loaded()
        if estimate_length <= 0:
            raise ConfigError(f"Invalid estimate_length: {estimate_length}")

        pattern_length = 2 * estimate_length
        num_patterns = len(self.chart) - pattern_length
        if num_patterns <= 0:
            raise InsufficientDataError(
                f"Chart of {len(self.chart)} points is too short for "
                f"estimate_length={estimate_length} (needs more than {pattern_length})"
            )

        patterns = []
        for i in range(num_patterns):
            segment = self.chart.sub_chart(i, i + pattern_length + 1)

            patterns.append(DataPattern(
                input=self.input_vector(segment.sub_chart(0, estimate_length + 1)),
                target=self.target_vector(
                    segment.sub_chart(estimate_length + 1), segment[estimate_length]
                ),
                priority=pattern_priority(estimate_length, num_patterns - i),
            ))

        logger.debug(f"Generated {len(patterns)} patterns for estimate_length={estimate_length}")
        return patterns

    def latest_window(self, estimate_length: int) -> Chart:
        """The last estimate_length + 1 points (one extra for the first growth rate)"""
        self._require_loaded()
        if len(self.chart) < estimate_length + 1:
            raise InsufficientDataError(
                f"Chart of {len(self.chart)} points is too short for estimate_length={estimate_length}"
            )
        return self.chart.sub_chart(len(self.chart) - estimate_length - 1)

    # ------------------------------------------------------------------ #
    #  Conversions
    # ------------------------------------------------------------------ #

    def input_vector(self, window: Chart) -> Vector:
        """
        Network input for a window of L + 1 points.

        Consecutive growth rates inside the window (its first point is only
        the reference), standardized with the statistics of the whole chart and
        flattened point by point.
        """
        self._require_loaded()
        converted = LogReturnTransform.from_chart(window).convert_chart(window)
        converted = self.standardization.convert_chart(converted)
        return Vector(converted.flatten())

    def target_vector(self, future: Chart, last_input: ChartPoint) -> Vector:
        """Network target: the last future value relative to the last input point"""
        self._require_loaded()
        value = self.log_return.convert(
            last_input[self.output_channel], future.last()[self.output_channel]
        )
        value = self.standardization.convert(value)
        return Vector([self.squash.convert(value)])

    def estimate_value(self, net_output: Vector, last_input: ChartPoint) -> float:
        """Invert target_vector: network output back to the output channel's scale"""
        self._require_loaded()
        value = self.squash.reconvert(net_output[0])
        value = self.standardization.reconvert(value)
        return self.log_return.reconvert(last_input[self.output_channel], value)


def load_patterns(
    chart: Chart,
    estimate_length: int,
    output_channel: Optional[str] = None,
    normalize_channel: Optional[str] = None,
) -> List[DataPattern]:
    """Build the training patterns of a chart without keeping a handler"""
    if len(chart) <= 2 * estimate_length:
        raise InsufficientDataError(
            f"Chart of {len(chart)} points is too short for estimate_length={estimate_length}"
        )
    handler = DataHandler(normalize_channel)
    handler.load(chart, output_channel)
    return handler.training_patterns(estimate_length)
