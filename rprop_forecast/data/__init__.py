"""Data pipeline for RPROP Forecast"""

from .chart import Chart, ChartPoint
from .pattern import DataPattern, pattern_priority
from .transforms import (
    BinaryTransform,
    LogReturnTransform,
    SigmoidTransform,
    StandardizationTransform,
    Transform,
    TransformChain,
    UnaryTransform,
)
from .handler import DataHandler, load_patterns
from .synthetic import generate_random_walk, random_walk_chart

__all__ = [
    "Chart",
    "ChartPoint",
    "DataPattern",
    "pattern_priority",
    "Transform",
    "UnaryTransform",
    "BinaryTransform",
    "LogReturnTransform",
    "StandardizationTransform",
    "SigmoidTransform",
    "TransformChain",
    "DataHandler",
    "load_patterns",
    "generate_random_walk",
    "random_walk_chart",
]
