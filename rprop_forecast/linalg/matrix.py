"""
Dense real-valued matrix with strict shape checks.

Binary operations require compatible dimensions:
- add / subtract / hadamard: equal shape
- matmul: left.cols == right.rows
- matvec: cols == len(vector)

Any mismatch raises DimensionError naming the operation.
"""

from typing import Callable, Iterable, List, Tuple, Union

import torch

from ..exceptions import DimensionError
from .vector import DTYPE, Vector, _as_tensor


class Matrix:
    """
    Rectangular real-valued grid (rows x cols).

    Like Vector, plain methods return new matrices and methods ending in
    '_' mutate in place and return self.

    Args:
        data: Nested rows (lists, numpy array, tensor or another Matrix)
    """

    __slots__ = ("_data",)

    def __init__(self, data: Union[Iterable[Iterable[float]], torch.Tensor, "Matrix"]):
        if isinstance(data, Matrix):
            data = data._data
        tensor = _as_tensor(data, "Matrix")
        if tensor.dim() != 2:
            raise DimensionError("Matrix", tuple(tensor.shape))
        self._data = tensor

    @classmethod
    def full(cls, n: int, m: int, fill: float) -> "Matrix":
        return cls._wrap(torch.full((n, m), float(fill), dtype=DTYPE))

    @classmethod
    def zeros(cls, n: int, m: int) -> "Matrix":
        return cls._wrap(torch.zeros(n, m, dtype=DTYPE))

    @classmethod
    def _wrap(cls, tensor: torch.Tensor) -> "Matrix":
        matrix = cls.__new__(cls)
        matrix._data = tensor
        return matrix

    # ------------------------------------------------------------------ #
    #  Shape and element access
    # ------------------------------------------------------------------ #

    @property
    def data(self) -> torch.Tensor:
        """Underlying tensor (shared, not copied)"""
        return self._data

    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def cols(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    def __getitem__(self, index: Tuple[int, int]) -> float:
        i, j = index
        return float(self._data[i, j])

    def __setitem__(self, index: Tuple[int, int], value: float) -> None:
        i, j = index
        self._data[i, j] = float(value)

    def tolist(self) -> List[List[float]]:
        return self._data.tolist()

    def copy(self) -> "Matrix":
        return Matrix._wrap(self._data.clone())

    def fill_(self, value: float) -> "Matrix":
        self._data.fill_(float(value))
        return self

    def __repr__(self) -> str:
        rows = "\n".join(" ".join(f"{v:g}" for v in row) for row in self._data.tolist())
        return f"Matrix({self.rows}x{self.cols})\n{rows}"

    def _check_same_shape(self, other: "Matrix", operation: str) -> None:
        if self.shape != other.shape:
            raise DimensionError(operation, self.shape, other.shape)

    # ------------------------------------------------------------------ #
    #  Rows
    # ------------------------------------------------------------------ #

    def extract_row(self, r: int) -> Vector:
        """Copy of row r as a Vector"""
        return Vector._wrap(self._data[r].clone())

    def set_row(self, r: int, row: Vector) -> None:
        if len(row) != self.cols:
            raise DimensionError("Matrix.set_row", self.shape, (len(row),))
        self._data[r] = row.data

    def drop_last_column(self) -> "Matrix":
        return Matrix._wrap(self._data[:, :-1].clone())

    # ------------------------------------------------------------------ #
    #  Arithmetic
    # ------------------------------------------------------------------ #

    def add(self, other: "Matrix") -> "Matrix":
        self._check_same_shape(other, "Matrix.add")
        return Matrix._wrap(self._data + other._data)

    def subtract(self, other: "Matrix") -> "Matrix":
        self._check_same_shape(other, "Matrix.subtract")
        return Matrix._wrap(self._data - other._data)

    def hadamard(self, other: "Matrix") -> "Matrix":
        """Coordinate-wise product"""
        self._check_same_shape(other, "Matrix.hadamard")
        return Matrix._wrap(self._data * other._data)

    def scale(self, factor: float) -> "Matrix":
        return Matrix._wrap(self._data * float(factor))

    def matmul(self, other: "Matrix") -> "Matrix":
        if self.cols != other.rows:
            raise DimensionError("Matrix.matmul", self.shape, other.shape)
        return Matrix._wrap(self._data @ other._data)

    def matvec(self, vector: Vector) -> Vector:
        """Matrix-vector product M . v (the vector multiplies from the right)"""
        if self.cols != len(vector):
            raise DimensionError("Matrix.matvec", self.shape, (len(vector),))
        return Vector._wrap(torch.mv(self._data, vector.data))

    def transpose(self) -> "Matrix":
        return Matrix._wrap(self._data.t().clone())

    def add_(self, other: "Matrix") -> "Matrix":
        self._check_same_shape(other, "Matrix.add_")
        self._data += other._data
        return self

    def subtract_(self, other: "Matrix") -> "Matrix":
        self._check_same_shape(other, "Matrix.subtract_")
        self._data -= other._data
        return self

    def scale_(self, factor: float) -> "Matrix":
        self._data *= float(factor)
        return self

    __add__ = add
    __sub__ = subtract

    def __mul__(self, other):
        if isinstance(other, Matrix):
            return self.hadamard(other)
        return self.scale(other)

    __rmul__ = __mul__

    def __matmul__(self, other):
        if isinstance(other, Vector):
            return self.matvec(other)
        return self.matmul(other)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(torch.equal(self._data, other._data))

    __hash__ = None

    # ------------------------------------------------------------------ #
    #  Maps
    # ------------------------------------------------------------------ #

    def apply(self, fn: Callable[[float], float]) -> "Matrix":
        """Element-wise map with a scalar function"""
        return Matrix._wrap(self._data.clone().apply_(fn))

    def sign(self) -> "Matrix":
        """Element-wise signum (0 stays 0)"""
        return Matrix._wrap(torch.sign(self._data))

    def allclose(self, other: "Matrix", atol: float = 1e-9) -> bool:
        self._check_same_shape(other, "Matrix.allclose")
        return bool(torch.allclose(self._data, other._data, atol=atol))
