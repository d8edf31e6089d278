"""
Dense real-valued vector with strict length checks.

A Vector wraps a one-dimensional float64 tensor. Its length is fixed at
construction; every binary operation requires an operand of equal length
and raises DimensionError otherwise. Nothing is broadcast or truncated.
"""

from typing import Callable, Iterable, List, Union

import numpy as np
import torch

from ..exceptions import DimensionError

DTYPE = torch.float64


def _as_tensor(data, operation: str) -> torch.Tensor:
    """Copy arbitrary array-like data into a float64 tensor"""
    if isinstance(data, torch.Tensor):
        return data.detach().to(DTYPE).clone()
    try:
        if not isinstance(data, (list, tuple, np.ndarray)):
            data = list(data)
        return torch.from_numpy(np.array(data, dtype=np.float64))
    except (TypeError, ValueError) as e:
        raise DimensionError(operation) from e


class Vector:
    """
    Ordered fixed-length sequence of real numbers.

    Operations without a trailing underscore return a new Vector and leave
    both operands untouched. Methods ending in '_' mutate in place and
    return self.

    Args:
        data: Values (list, tuple, numpy array, tensor or another Vector)
    """

    __slots__ = ("_data",)

    def __init__(self, data: Union[Iterable[float], torch.Tensor, "Vector"]):
        if isinstance(data, Vector):
            data = data._data
        tensor = _as_tensor(data, "Vector")
        if tensor.dim() != 1:
            raise DimensionError("Vector", tuple(tensor.shape))
        self._data = tensor

    # ------------------------------------------------------------------ #
    #  Construction helpers
    # ------------------------------------------------------------------ #

    @classmethod
    def full(cls, n: int, fill: float) -> "Vector":
        return cls(torch.full((n,), float(fill), dtype=DTYPE))

    @classmethod
    def zeros(cls, n: int) -> "Vector":
        return cls(torch.zeros(n, dtype=DTYPE))

    @classmethod
    def ones(cls, n: int) -> "Vector":
        return cls(torch.ones(n, dtype=DTYPE))

    @classmethod
    def _wrap(cls, tensor: torch.Tensor) -> "Vector":
        """Adopt a freshly computed tensor without copying it again"""
        vector = cls.__new__(cls)
        vector._data = tensor
        return vector

    # ------------------------------------------------------------------ #
    #  Element access
    # ------------------------------------------------------------------ #

    @property
    def data(self) -> torch.Tensor:
        """Underlying tensor (shared, not copied)"""
        return self._data

    def __len__(self) -> int:
        return self._data.shape[0]

    def __getitem__(self, i: int) -> float:
        return float(self._data[i])

    def __setitem__(self, i: int, value: float) -> None:
        self._data[i] = float(value)

    def __iter__(self):
        return iter(self._data.tolist())

    def tolist(self) -> List[float]:
        return self._data.tolist()

    def copy(self) -> "Vector":
        return Vector._wrap(self._data.clone())

    def __repr__(self) -> str:
        return f"Vector({self._data.tolist()})"

    # ------------------------------------------------------------------ #
    #  Shape checks
    # ------------------------------------------------------------------ #

    def _check_same_length(self, other: "Vector", operation: str) -> None:
        if len(self) != len(other):
            raise DimensionError(operation, (len(self),), (len(other),))

    # ------------------------------------------------------------------ #
    #  Arithmetic
    # ------------------------------------------------------------------ #

    def add(self, other: "Vector") -> "Vector":
        self._check_same_length(other, "Vector.add")
        return Vector._wrap(self._data + other._data)

    def subtract(self, other: "Vector") -> "Vector":
        self._check_same_length(other, "Vector.subtract")
        return Vector._wrap(self._data - other._data)

    def scale(self, factor: float) -> "Vector":
        return Vector._wrap(self._data * float(factor))

    def multiply(self, other: "Vector") -> "Vector":
        """Coordinate-wise product"""
        self._check_same_length(other, "Vector.multiply")
        return Vector._wrap(self._data * other._data)

    def dot(self, other: "Vector") -> float:
        """Scalar product"""
        self._check_same_length(other, "Vector.dot")
        return float(torch.dot(self._data, other._data))

    def matmul(self, matrix) -> "Vector":
        """
        Vector-matrix product v . M (the vector multiplies from the left).

        Requires len(v) == M.rows; the result has M.cols entries.
        """
        if len(self) != matrix.rows:
            raise DimensionError("Vector.matmul", (len(self),), matrix.shape)
        return Vector._wrap(self._data @ matrix.data)

    def dyadic(self, other: "Vector"):
        """Outer product: a Matrix with len(self) rows and len(other) cols"""
        from .matrix import Matrix

        return Matrix._wrap(torch.outer(self._data, other._data))

    def add_(self, other: "Vector") -> "Vector":
        self._check_same_length(other, "Vector.add_")
        self._data += other._data
        return self

    def subtract_(self, other: "Vector") -> "Vector":
        self._check_same_length(other, "Vector.subtract_")
        self._data -= other._data
        return self

    def scale_(self, factor: float) -> "Vector":
        self._data *= float(factor)
        return self

    __add__ = add
    __sub__ = subtract

    def __mul__(self, other):
        if isinstance(other, Vector):
            return self.multiply(other)
        return self.scale(other)

    __rmul__ = __mul__

    def __matmul__(self, other):
        if isinstance(other, Vector):
            return self.dot(other)
        return self.matmul(other)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return len(self) == len(other) and bool(torch.equal(self._data, other._data))

    __hash__ = None

    # ------------------------------------------------------------------ #
    #  Norms, maps and reshaping
    # ------------------------------------------------------------------ #

    def norm2(self) -> float:
        """Squared L2 norm"""
        return float(torch.dot(self._data, self._data))

    def norm(self) -> float:
        """L2 norm"""
        return float(torch.linalg.vector_norm(self._data))

    def apply(self, fn: Callable[[float], float]) -> "Vector":
        """Element-wise map with a scalar function"""
        return Vector._wrap(self._data.clone().apply_(fn))

    def drop_last(self) -> "Vector":
        if len(self) == 0:
            raise DimensionError("Vector.drop_last", (0,))
        return Vector._wrap(self._data[:-1].clone())

    def concat(self, other: "Vector") -> "Vector":
        return Vector._wrap(torch.cat((self._data, other._data)))

    def append(self, value: float) -> "Vector":
        """New vector with one extra trailing entry"""
        tail = torch.tensor([float(value)], dtype=DTYPE)
        return Vector._wrap(torch.cat((self._data, tail)))

    def allclose(self, other: "Vector", atol: float = 1e-9) -> bool:
        self._check_same_length(other, "Vector.allclose")
        return bool(torch.allclose(self._data, other._data, atol=atol))
