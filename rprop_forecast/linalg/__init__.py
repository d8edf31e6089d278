"""Dimension-checked linear algebra for RPROP Forecast"""

from .vector import Vector
from .matrix import Matrix
from .functions import (
    identity,
    make_generator,
    orthogonalize,
    random_fill,
    round_to,
    sgn,
    sigmoid,
    sigmoid_inv,
)

__all__ = [
    "Vector",
    "Matrix",
    "identity",
    "make_generator",
    "orthogonalize",
    "random_fill",
    "round_to",
    "sgn",
    "sigmoid",
    "sigmoid_inv",
]
