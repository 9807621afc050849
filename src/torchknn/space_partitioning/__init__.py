"""k-d tree spatial index and exact k-nearest-neighbor search.

This module provides:
- ``kd_tree``: median-partitioned k-d tree construction, O(n log n)
- ``k_nearest_neighbors``: branch-and-bound search, O(log n) average per query
- ``exhaustive_k_nearest_neighbors``: linear-scan reference with the same
  contract
- ``SpatialIndexHandle``: atomic publication of trees to concurrent readers

Note: Built trees are immutable. Searches only read the tree, so any number
of threads may query the same tree without locking.
"""

from ._bounded_neighbor_set import BoundedNeighborSet
from ._bounding_box import BoundingBox, bounding_box
from ._exceptions import (
    DimensionMismatchError,
    EmptyInputError,
    IndexNotPublishedError,
    InvalidKError,
    NonFiniteInputError,
    SpatialIndexError,
    UnbalancedTreeWarning,
)
from ._exhaustive_search import exhaustive_k_nearest_neighbors
from ._k_nearest_neighbors import NeighborResult, k_nearest_neighbors
from ._kd_tree import KdTree, kd_tree
from ._minkowski_metric import Metric, MinkowskiMetric, minkowski_metric
from ._spatial_index_handle import SpatialIndexHandle

__all__ = [
    "BoundedNeighborSet",
    "BoundingBox",
    "DimensionMismatchError",
    "EmptyInputError",
    "IndexNotPublishedError",
    "InvalidKError",
    "KdTree",
    "Metric",
    "MinkowskiMetric",
    "NeighborResult",
    "NonFiniteInputError",
    "SpatialIndexError",
    "SpatialIndexHandle",
    "UnbalancedTreeWarning",
    "bounding_box",
    "exhaustive_k_nearest_neighbors",
    "k_nearest_neighbors",
    "kd_tree",
    "minkowski_metric",
]
