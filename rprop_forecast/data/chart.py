"""
Chart model - channel-keyed time series.

A ChartPoint maps channel names ('open', 'close', ...) to floats with the
keys always iterated in lexicographic order. A Chart is a time-ordered
sequence of ChartPoints that all share the identical key set.
"""

from collections.abc import Mapping, Sequence
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import numpy as np
import pandas as pd

from ..exceptions import DimensionError


class ChartPoint(Mapping):
    """
    One observation of every channel of a chart.

    Args:
        values: Mapping of channel name to value
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping] = None):
        values = values or {}
        self._values: Dict[str, float] = {
            key: float(values[key]) for key in sorted(values)
        }

    @classmethod
    def from_arrays(cls, keys: Iterable[str], values: Iterable[float]) -> "ChartPoint":
        """Build a point from an ordered key list and matching values"""
        keys = list(keys)
        values = list(values)
        if len(keys) != len(values):
            raise DimensionError("ChartPoint.from_arrays", (len(keys),), (len(values),))
        return cls(dict(zip(keys, values)))

    def __getitem__(self, key: str) -> float:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def value_array(self) -> np.ndarray:
        """Values in key order"""
        return np.fromiter(self._values.values(), dtype=np.float64, count=len(self))

    def apply(self, op: Callable[[float], float]) -> "ChartPoint":
        """New point with op applied to every value"""
        return ChartPoint({key: op(value) for key, value in self._values.items()})

    @staticmethod
    def combine(
        op: Callable[[float, float], float],
        a: "ChartPoint",
        b: "ChartPoint",
    ) -> "ChartPoint":
        """
        New point with op(a[key], b[key]) for every key present in both.
        """
        return ChartPoint({key: op(a[key], b[key]) for key in a if key in b})

    def __repr__(self) -> str:
        return "ChartPoint({" + ", ".join(f"{k!r}: {v}" for k, v in self._values.items()) + "})"


class Chart(Sequence):
    """
    Ordered sequence of ChartPoints (time ascending).

    Indexing with an int returns a ChartPoint, slicing returns a new Chart.

    Args:
        points: ChartPoints (or plain mappings) in time order

    Raises:
        DimensionError: if the points do not share the identical key set
    """

    __slots__ = ("_points", "_keys")

    def __init__(self, points: Iterable[Mapping] = ()):
        self._points: List[ChartPoint] = [
            p if isinstance(p, ChartPoint) else ChartPoint(p) for p in points
        ]
        self._keys: List[str] = list(self._points[0]) if self._points else []

        for index, point in enumerate(self._points):
            if list(point) != self._keys:
                raise DimensionError(
                    f"Chart (point {index} has keys {list(point)}, expected {self._keys})"
                )

    # ------------------------------------------------------------------ #
    #  Construction helpers
    # ------------------------------------------------------------------ #

    @classmethod
    def from_columns(cls, columns: Mapping) -> "Chart":
        """Build a chart from channel name -> sequence of values"""
        keys = sorted(columns)
        arrays = [np.asarray(columns[key], dtype=np.float64) for key in keys]
        lengths = {len(a) for a in arrays}
        if len(lengths) > 1:
            raise DimensionError("Chart.from_columns", tuple(sorted(lengths)))
        return cls(ChartPoint.from_arrays(keys, row) for row in zip(*arrays))

    @classmethod
    def from_values(cls, values: Iterable[float], key: str = "value") -> "Chart":
        """Single-channel chart"""
        return cls.from_columns({key: list(values)})

    @classmethod
    def from_frame(cls, df: pd.DataFrame, columns: Optional[List[str]] = None) -> "Chart":
        """
        Build a chart from a DataFrame whose rows are time-ordered.

        Args:
            df: DataFrame (index is ignored)
            columns: Numeric columns to use (default: all numeric columns)
        """
        if columns is None:
            columns = list(df.select_dtypes(include="number").columns)
        return cls.from_columns({str(c): df[c].to_numpy(dtype=np.float64) for c in columns})

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({key: self.column(key) for key in self._keys})

    # ------------------------------------------------------------------ #
    #  Sequence protocol
    # ------------------------------------------------------------------ #

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Chart(self._points[index])
        return self._points[index]

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[ChartPoint]:
        return iter(self._points)

    def __repr__(self) -> str:
        return f"Chart(points={len(self)}, keys={self._keys})"

    # ------------------------------------------------------------------ #
    #  Chart operations
    # ------------------------------------------------------------------ #

    def keys(self) -> List[str]:
        """Channel names in lexicographic order (empty for an empty chart)"""
        return list(self._keys)

    def column(self, key: str) -> np.ndarray:
        """All values of one channel in time order"""
        if self._points and key not in self._points[0]:
            raise KeyError(key)
        return np.fromiter((p[key] for p in self._points), dtype=np.float64, count=len(self))

    def last(self) -> ChartPoint:
        return self._points[-1]

    def sub_chart(self, start: int, stop: Optional[int] = None) -> "Chart":
        return Chart(self._points[start:stop])

    def apply(self, op: Callable[[float], float]) -> "Chart":
        """New chart with op applied to every value"""
        return Chart(p.apply(op) for p in self._points)

    def flatten(self) -> List[float]:
        """All values point by point, channels in key order"""
        return [value for point in self._points for value in point.values()]
