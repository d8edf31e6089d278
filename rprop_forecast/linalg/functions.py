"""
Helper functions shared across the package: special matrices, random
initialization, Gram-Schmidt orthogonalization and the scalar activation
functions.
"""

import math
from typing import Optional, Union

import torch

from ..exceptions import NumericDegeneracyError
from .matrix import Matrix
from .vector import DTYPE

# Squared norms at or below this are treated as zero divisors
ZERO_NORM = 1e-30


def make_generator(seed: Optional[int] = None) -> torch.Generator:
    """
    Create a torch random generator.

    With seed=None the generator is seeded nondeterministically, so weight
    initialization differs between runs.
    """
    generator = torch.Generator()
    if seed is None:
        generator.seed()
    else:
        generator.manual_seed(seed)
    return generator


def identity(n: int) -> Matrix:
    """Identity matrix of size n x n"""
    return Matrix._wrap(torch.eye(n, dtype=DTYPE))


def random_fill(
    n: int,
    m: int,
    low: float,
    high: float,
    generator: Optional[Union[torch.Generator, int]] = None,
) -> Matrix:
    """
    Matrix of independent uniform draws from [low, high).

    Args:
        n: Number of rows
        m: Number of columns
        low: Lower bound
        high: Upper bound
        generator: torch.Generator or integer seed (None: global torch RNG)
    """
    if isinstance(generator, int):
        generator = make_generator(generator)
    values = torch.rand(n, m, generator=generator, dtype=DTYPE)
    return Matrix._wrap(values * (high - low) + low)


def orthogonalize(matrix: Matrix) -> Matrix:
    """
    Orthogonalize the rows of a matrix in place (Gram-Schmidt).

    Row 0 stays untouched; row r is reduced against the already processed
    rows 0..r-1 with the projection coefficient <row_r, row_i> / |row_i|^2.
    Only the first min(rows, cols) rows can be made orthogonal.

    Raises:
        NumericDegeneracyError: if a row has (numerically) zero norm when
            it is needed as a divisor
    """
    n = min(matrix.rows, matrix.cols)

    for r in range(1, n):
        row = matrix.extract_row(r)

        for i in range(r):
            passed = matrix.extract_row(i)
            norm2 = passed.norm2()
            if norm2 <= ZERO_NORM:
                raise NumericDegeneracyError(
                    f"Cannot orthogonalize against zero-norm row {i}"
                )
            row.subtract_(passed.scale(row.dot(passed) / norm2))

        matrix.set_row(r, row)

    return matrix


def sigmoid(x: float) -> float:
    """Logistic function 1 / (1 + exp(-x)), stable for large |x|"""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def sigmoid_inv(y: float) -> float:
    """
    Inverse of the logistic function, log(y / (1 - y)).

    Raises:
        NumericDegeneracyError: if y is outside the open interval (0, 1)
    """
    if not 0.0 < y < 1.0:
        raise NumericDegeneracyError(f"sigmoid_inv undefined for {y}")
    return math.log(y / (1.0 - y))


def sgn(x: float) -> float:
    """Signum returning 0 for 0"""
    if x == 0:
        return 0.0
    return 1.0 if x > 0 else -1.0


def round_to(d: float, decimal_places: int) -> float:
    """Round half away from zero to the given number of decimal places"""
    factor = 10 ** decimal_places
    return math.floor(abs(d) * factor + 0.5) / factor * (1 if d >= 0 else -1)
