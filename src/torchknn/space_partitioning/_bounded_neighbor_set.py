"""Fixed-capacity candidate set used during k-nearest-neighbor search."""

from __future__ import annotations

import heapq
import math


class BoundedNeighborSet:
    """Keeps the ``capacity`` best ``(reduced_distance, index)`` candidates.

    Candidates are ordered lexicographically, so equal distances are
    resolved in favour of the lower input index. Internally a max-heap of
    negated keys; the largest kept key is the pruning threshold.

    Parameters
    ----------
    capacity : int
        Maximum number of candidates kept, at least 1.

    Examples
    --------
    >>> candidates = BoundedNeighborSet(2)
    >>> for distance, index in [(4.0, 0), (1.0, 1), (9.0, 2)]:
    ...     _ = candidates.push(distance, index)
    >>> candidates.sorted()
    [(1.0, 1), (4.0, 0)]
    """

    __slots__ = ("_capacity", "_heap")

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._heap: list[tuple[float, int]] = []

    def __len__(self) -> int:
        return len(self._heap)

    @property
    def capacity(self) -> int:
        return self._capacity

    def is_full(self) -> bool:
        return len(self._heap) >= self._capacity

    def worst(self) -> float:
        """Largest kept reduced distance, ``inf`` while not full."""
        if len(self._heap) < self._capacity:
            return math.inf
        return -self._heap[0][0]

    def push(self, distance: float, index: int) -> bool:
        """Offer a candidate; return whether it was kept."""
        heap = self._heap
        if len(heap) < self._capacity:
            heapq.heappush(heap, (-distance, -index))
            return True
        worst_distance, worst_index = heap[0]
        if (distance, index) < (-worst_distance, -worst_index):
            heapq.heapreplace(heap, (-distance, -index))
            return True
        return False

    def sorted(self) -> list[tuple[float, int]]:
        """Kept candidates in ascending ``(distance, index)`` order."""
        return sorted((-distance, -index) for distance, index in self._heap)
