"""
Reversible numeric transforms that turn raw chart values into network
friendly inputs and network outputs back into readable estimates.

Each transform works on whole charts and on vectors. A TransformChain
applies its stages in order and inverts them in reverse order:

    raw chart --LogReturnTransform--> log-growth rates
              --StandardizationTransform--> centred, spread 2 sigma = 1
    (targets) --SigmoidTransform--> (0, 1), reachable by the output neuron
"""

import math
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, List, Optional

import numpy as np
import torch

from ..exceptions import InsufficientDataError, NumericDegeneracyError
from ..linalg import Vector, sigmoid, sigmoid_inv
from .chart import Chart, ChartPoint


class Transform(ABC):
    """
    Interface for reversible transforms.
    Implement this to add new stages to a TransformChain.
    """

    @abstractmethod
    def convert_chart(self, chart: Chart) -> Chart:
        """Forward transform of a whole chart"""
        pass

    @abstractmethod
    def reconvert_chart(self, chart: Chart) -> Chart:
        """Exact inverse of convert_chart"""
        pass

    @abstractmethod
    def convert_vector(self, vector: Vector) -> Vector:
        """Forward transform of a vector of values"""
        pass

    @abstractmethod
    def reconvert_vector(self, vector: Vector, key: Optional[str] = None) -> Vector:
        """
        Inverse transform of a vector.

        Args:
            vector: Converted values
            key: Channel the values belong to (needed by stateful stages)
        """
        pass


class UnaryTransform(Transform):
    """Transform defined by a scalar function and its inverse"""

    @abstractmethod
    def convert(self, d: float) -> float:
        pass

    @abstractmethod
    def reconvert(self, d: float) -> float:
        pass

    def convert_chart(self, chart: Chart) -> Chart:
        return chart.apply(self.convert)

    def reconvert_chart(self, chart: Chart) -> Chart:
        return chart.apply(self.reconvert)

    def convert_vector(self, vector: Vector) -> Vector:
        return vector.apply(self.convert)

    def reconvert_vector(self, vector: Vector, key: Optional[str] = None) -> Vector:
        return vector.apply(self.reconvert)


class BinaryTransform(Transform):
    """Transform of consecutive value pairs; needs a reference to invert"""

    @abstractmethod
    def convert(self, a: float, b: float) -> float:
        pass

    @abstractmethod
    def reconvert(self, a: float, c: float) -> float:
        pass


class LogReturnTransform(BinaryTransform):
    """
    Converts consecutive values a, b into the log-growth ln(b / a).

    The first point of the source chart is kept as reference so the
    original values can be rebuilt from the growth rates.

    Args:
        reference: First point of the chart this transform belongs to
    """

    def __init__(self, reference: ChartPoint):
        self.reference = reference

    @classmethod
    def from_chart(cls, chart: Chart) -> "LogReturnTransform":
        if len(chart) == 0:
            raise InsufficientDataError("Log-return transform needs a non-empty chart")
        return cls(chart[0])

    def convert(self, a: float, b: float) -> float:
        """(a, b) -> ln(b / a)"""
        if a <= 0 or b <= 0:
            raise NumericDegeneracyError(f"Log-return undefined for {a} -> {b}")
        return math.log(b / a)

    def reconvert(self, a: float, c: float) -> float:
        """(a, c) -> a * exp(c)"""
        return a * math.exp(c)

    def convert_chart(self, chart: Chart) -> Chart:
        """A chart of N points becomes a chart of N - 1 growth rates"""
        return Chart(
            ChartPoint.combine(self.convert, previous, point)
            for previous, point in zip(chart, chart[1:])
        )

    def reconvert_chart(self, chart: Chart, include_reference: bool = True) -> Chart:
        """
        Rebuild the values by walking forward from the reference point.

        With include_reference the reference point is prepended, so that
        reconvert_chart(convert_chart(c)) reproduces c point for point.
        """
        points = [self.reference] if include_reference else []
        value = self.reference

        for point in chart:
            value = ChartPoint.combine(self.reconvert, value, point)
            points.append(value)

        return Chart(points)

    def convert_vector(self, vector: Vector) -> Vector:
        """
        Element 0 is the base value; elements 1..n-1 become the log-growth
        relative to it. Element 0 itself is kept.
        """
        if len(vector) == 0:
            return vector.copy()
        data = vector.data
        if bool((data <= 0).any()):
            raise NumericDegeneracyError("Log-return undefined for non-positive values")
        converted = data.clone()
        converted[1:] = torch.log(data[1:] / data[0])
        return Vector._wrap(converted)

    def reconvert_vector(self, vector: Vector, key: Optional[str] = None) -> Vector:
        """Accumulate the growth rates starting at the reference value of key"""
        if key is None:
            key = next(iter(self.reference))
        start = self.reference[key]
        return Vector._wrap(start * torch.exp(torch.cumsum(vector.data, dim=0)))


class StandardizationTransform(UnaryTransform):
    """
    Rescales values to d -> 2 (d - mean) / std.

    Log-growth rates of a chart are roughly normally distributed; doubling
    the standardized value spreads them over the range where the sigmoid
    activation is most sensitive.

    Args:
        mean: Mean of the reference values
        std: Sample standard deviation of the reference values
    """

    def __init__(self, mean: float, std: float):
        if not math.isfinite(std) or std <= 0:
            raise NumericDegeneracyError(f"Standard deviation must be positive, got {std}")
        self.mean = float(mean)
        self.std = float(std)

    @classmethod
    def fit(cls, chart: Chart, channel: Optional[str] = None) -> "StandardizationTransform":
        """
        Fit mean and sample standard deviation on one channel.

        Args:
            chart: Reference chart
            channel: Channel to fit on (default: the first channel)
        """
        if len(chart) < 2:
            raise NumericDegeneracyError(
                "Standardization needs at least two values to estimate a deviation"
            )
        if channel is None:
            channel = chart.keys()[0]
        values = chart.column(channel)
        return cls(np.mean(values), np.std(values, ddof=1))

    def convert(self, d: float) -> float:
        return (d - self.mean) / self.std * 2

    def reconvert(self, d: float) -> float:
        return d * self.std / 2 + self.mean

    def convert_vector(self, vector: Vector) -> Vector:
        return Vector._wrap((vector.data - self.mean) / self.std * 2)

    def reconvert_vector(self, vector: Vector, key: Optional[str] = None) -> Vector:
        return Vector._wrap(vector.data * self.std / 2 + self.mean)

    def __repr__(self) -> str:
        return f"StandardizationTransform(mean={self.mean:.6g}, std={self.std:.6g})"


class SigmoidTransform(UnaryTransform):
    """Squashes values into (0, 1) with the logistic function"""

    def convert(self, d: float) -> float:
        return sigmoid(d)

    def reconvert(self, d: float) -> float:
        return sigmoid_inv(d)

    def convert_vector(self, vector: Vector) -> Vector:
        return Vector._wrap(torch.sigmoid(vector.data))

    def reconvert_vector(self, vector: Vector, key: Optional[str] = None) -> Vector:
        data = vector.data
        if bool(((data <= 0) | (data >= 1)).any()):
            raise NumericDegeneracyError("sigmoid_inv undefined outside (0, 1)")
        return Vector._wrap(torch.logit(data))


class TransformChain:
    """
    Ordered stages applied first to last and inverted last to first.

    Args:
        stages: Transforms in application order
    """

    def __init__(self, stages: Iterable[Transform] = ()):
        self.stages: List[Transform] = list(stages)

    @classmethod
    def fit(cls, chart: Chart, channel: Optional[str] = None) -> "TransformChain":
        """
        Standard two-stage chain for a raw chart: log-return, then a
        standardization fitted on the log-return output.
        """
        log_return = LogReturnTransform.from_chart(chart)
        standardization = StandardizationTransform.fit(
            log_return.convert_chart(chart), channel
        )
        return cls([log_return, standardization])

    def __len__(self) -> int:
        return len(self.stages)

    def __getitem__(self, index: int) -> Transform:
        return self.stages[index]

    def __iter__(self) -> Iterator[Transform]:
        return iter(self.stages)

    def append(self, stage: Transform) -> None:
        self.stages.append(stage)

    def subchain(self, start: int) -> "TransformChain":
        return TransformChain(self.stages[start:])

    def convert_at(self, chart: Chart, index: int) -> Chart:
        return self.stages[index].convert_chart(chart)

    def reconvert_at(self, chart: Chart, index: int) -> Chart:
        return self.stages[index].reconvert_chart(chart)

    def convert(self, chart: Chart) -> Chart:
        for stage in self.stages:
            chart = stage.convert_chart(chart)
        return chart

    def reconvert(self, chart: Chart) -> Chart:
        for stage in reversed(self.stages):
            chart = stage.reconvert_chart(chart)
        return chart

    def convert_vector(self, vector: Vector) -> Vector:
        for stage in self.stages:
            vector = stage.convert_vector(vector)
        return vector

    def reconvert_vector(self, vector: Vector, key: Optional[str] = None) -> Vector:
        for stage in reversed(self.stages):
            vector = stage.reconvert_vector(vector, key)
        return vector
