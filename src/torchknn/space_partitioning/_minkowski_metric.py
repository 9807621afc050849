"""Distance metrics used by the k-d tree searcher."""

from __future__ import annotations

import dataclasses
import math
from typing import Protocol, Sequence, runtime_checkable

import numpy as np


@runtime_checkable
class Metric(Protocol):
    """Coordinate-access and distance capability consumed by the searcher.

    Distances are handled in a *reduced* form that is cheaper to compute
    and preserves ordering (e.g. squared Euclidean distance). A metric is
    usable for exact k-d tree pruning when
    ``reduced_axis_distance(a[d] - b[d]) <= reduced_distance(a, b)`` holds
    for every axis ``d``.

    ``reduced_distances`` receives host numpy arrays: ``points`` of shape
    (n, d) and a float64 ``query`` of shape (d,). It must return float64
    values equal to ``reduced_distance`` row by row, since the searcher
    mixes both when ranking candidates.
    """

    def reduced_distance(
        self, a: Sequence[float], b: Sequence[float]
    ) -> float: ...

    def reduced_distances(
        self, points: np.ndarray, query: np.ndarray
    ) -> np.ndarray: ...

    def reduced_axis_distance(self, delta: float) -> float: ...

    def to_distance(self, reduced: float) -> float: ...


@dataclasses.dataclass(frozen=True)
class MinkowskiMetric:
    """Minkowski p-norm distance.

    Attributes
    ----------
    p : float
        Norm order, ``0 < p <= inf``. ``p=2`` is Euclidean (reduced form is
        the squared distance), ``p=1`` Manhattan, ``p=inf`` Chebyshev.
    """

    p: float = 2.0

    def __post_init__(self) -> None:
        if math.isnan(self.p) or self.p <= 0:
            raise ValueError(f"p must be > 0, got {self.p}")

    def reduced_distance(self, a: Sequence[float], b: Sequence[float]) -> float:
        p = self.p
        total = 0.0
        if p == 2.0:
            for x, y in zip(a, b):
                delta = x - y
                total += delta * delta
        elif p == 1.0:
            for x, y in zip(a, b):
                total += abs(x - y)
        elif math.isinf(p):
            for x, y in zip(a, b):
                total = max(total, abs(x - y))
        else:
            for x, y in zip(a, b):
                total += abs(x - y) ** p
        return total

    def reduced_distances(
        self, points: np.ndarray, query: np.ndarray
    ) -> np.ndarray:
        # Column by column in float64 so that every row accumulates in the
        # same order, and rounds the same way, as reduced_distance.
        difference = np.subtract(points, query, dtype=np.float64)
        p = self.p
        total = np.zeros(difference.shape[0], dtype=np.float64)
        for d in range(difference.shape[1]):
            column = difference[:, d]
            if p == 2.0:
                total = total + column * column
            elif p == 1.0:
                total = total + np.abs(column)
            elif math.isinf(p):
                total = np.maximum(total, np.abs(column))
            else:
                # Python pow, so rounding matches reduced_distance exactly.
                powers = [abs(value) ** p for value in column.tolist()]
                total = total + np.array(powers, dtype=np.float64)
        return total

    def reduced_axis_distance(self, delta: float) -> float:
        if self.p == 2.0:
            return delta * delta
        if self.p == 1.0 or math.isinf(self.p):
            return abs(delta)
        return abs(delta) ** self.p

    def to_distance(self, reduced: float) -> float:
        if self.p == 2.0:
            return math.sqrt(reduced)
        if self.p == 1.0 or math.isinf(self.p):
            return reduced
        return reduced ** (1.0 / self.p)


def minkowski_metric(p: float = 2.0) -> MinkowskiMetric:
    """Return the Minkowski metric of order ``p``.

    Parameters
    ----------
    p : float, default=2.0
        Minkowski p-norm (2.0 = Euclidean, 1.0 = Manhattan,
        ``math.inf`` = Chebyshev).

    Examples
    --------
    >>> metric = minkowski_metric(2.0)
    >>> metric.reduced_distance([0.0, 0.0, 0.0], [1.0, 2.0, 2.0])
    9.0
    >>> metric.to_distance(9.0)
    3.0
    """
    return MinkowskiMetric(float(p))


def _resolve_metric(p: float, metric: Metric | None) -> Metric:
    if metric is not None:
        if not isinstance(metric, Metric):
            raise TypeError(
                f"metric must implement the Metric protocol, "
                f"got {type(metric).__name__}"
            )
        return metric
    return minkowski_metric(p)
