"""Atomic publication of built trees to concurrent readers."""

from __future__ import annotations

import threading

from torch import Tensor

from ._exceptions import IndexNotPublishedError
from ._k_nearest_neighbors import NeighborResult, _k_nearest_neighbors
from ._kd_tree import KdTree
from ._minkowski_metric import Metric
from ._search_arena import _SearchArena


class SpatialIndexHandle:
    """Shared reference to the tree currently serving queries.

    A tree is only handed to the handle after :func:`kd_tree` returns, and
    the swap is a single reference assignment, so readers see either the
    previous complete tree or the new complete tree. Searches need no lock:
    each reads one snapshot and trees are never modified.

    Parameters
    ----------
    tree : KdTree, optional
        Tree to publish immediately.

    Examples
    --------
    >>> handle = SpatialIndexHandle(kd_tree(torch.randn(100, 3)))
    >>> result = handle.k_nearest_neighbors(torch.zeros(3), k=5)
    >>> old = handle.publish(kd_tree(torch.randn(200, 3)))
    """

    def __init__(self, tree: KdTree | None = None) -> None:
        self._lock = threading.Lock()
        # The tree and its host views are swapped together as one reference.
        self._arena = None
        if tree is not None:
            self.publish(tree)

    def _snapshot(self) -> _SearchArena:
        arena = self._arena
        if arena is None:
            raise IndexNotPublishedError("no k-d tree has been published")
        return arena

    @property
    def tree(self) -> KdTree:
        """Snapshot of the published tree."""
        return self._snapshot().tree

    def is_published(self) -> bool:
        return self._arena is not None

    def publish(self, tree: KdTree) -> KdTree | None:
        """Replace the served tree and return the previous one."""
        if not isinstance(tree, KdTree):
            raise TypeError(f"expected KdTree, got {type(tree).__name__}")
        arena = _SearchArena(tree)
        # Serializes publishers; readers never take the lock.
        with self._lock:
            previous, self._arena = self._arena, arena
        if previous is None:
            return None
        return previous.tree

    def k_nearest_neighbors(
        self,
        query: Tensor,
        k: int = 10,
        *,
        p: float = 2.0,
        metric: Metric | None = None,
        leaf_size: int = 32,
        cancel=None,
    ) -> NeighborResult:
        """Search the tree that is published when the call starts.

        Uses the host views prepared at publish time, so no per-call setup
        is spent on the tree.
        """
        return _k_nearest_neighbors(
            self._snapshot(), query, k, p, metric, leaf_size, cancel
        )
