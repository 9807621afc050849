"""k-nearest neighbors query with tree traversal."""

from __future__ import annotations

import math
import numbers

import numpy as np
import torch
from tensordict import tensorclass
from torch import Tensor

from ._bounded_neighbor_set import BoundedNeighborSet
from ._exceptions import DimensionMismatchError, InvalidKError
from ._kd_tree import KdTree
from ._minkowski_metric import Metric, _resolve_metric
from ._search_arena import _SearchArena
from ._validation import _as_float_tensor, _check_finite


@tensorclass
class NeighborResult:
    """Nearest neighbors of one query (or a batch of queries).

    Entries are sorted by ascending distance; equal distances are ordered
    by ascending input index.

    Attributes
    ----------
    indices : Tensor
        Input indices of the neighbors, shape (*, m), where
        ``m = min(k, n)``. ``-1`` marks a slot left empty by a cancelled
        search.
    points : Tensor
        Neighbor coordinates, shape (*, m, d). NaN for empty slots.
    distances : Tensor
        Metric distances (not reduced/squared), shape (*, m). ``inf`` for
        empty slots.
    complete : Tensor
        ``False`` where the search was cancelled before it finished and the
        entries are only the best found so far, shape (*,).
    """

    indices: Tensor
    points: Tensor
    distances: Tensor
    complete: Tensor


def _check_k(k) -> int:
    if isinstance(k, bool) or not isinstance(k, numbers.Integral):
        raise InvalidKError(f"k must be an integer, got {type(k).__name__}")
    if k < 1:
        raise InvalidKError(f"k must be >= 1, got {k}")
    return int(k)


def _check_queries(
    queries, d: int, against: str = "tree"
) -> tuple[Tensor, bool]:
    queries = _as_float_tensor(queries)
    if queries.dim() not in (1, 2):
        raise RuntimeError(
            f"query must be 1D (d,) or 2D (m, d), got {queries.dim()}D"
        )
    single = queries.dim() == 1
    if queries.shape[-1] != d:
        raise DimensionMismatchError(
            f"Query dimension ({queries.shape[-1]}) must match "
            f"{against} dimension ({d})"
        )
    _check_finite(queries, "query")
    return queries, single


def _search(
    arena: _SearchArena,
    query: list[float],
    capacity: int,
    metric: Metric,
    leaf_size: int,
    cancel,
) -> tuple[list[tuple[float, int]], bool]:
    candidates = BoundedNeighborSet(capacity)
    push = candidates.push
    distance = metric.reduced_distance
    distances = metric.reduced_distances
    axis_distance = metric.reduced_axis_distance

    points = arena.points
    node_point = arena.node_point
    split_dim = arena.split_dim
    left = arena.left
    right = arena.right
    subtree_end = arena.subtree_end
    query_array = np.asarray(query, dtype=np.float64)

    # Entries are (node, plane distance). The near child is pushed with
    # -1.0 so it is always visited; a far child carries its reduced distance
    # to the splitting plane and is re-checked against the threshold that is
    # current when it is popped, after the near subtree has been searched.
    stack = [(0, -1.0)]
    while stack:
        if cancel is not None and cancel.is_set():
            return candidates.sorted(), False

        node, plane = stack.pop()
        worst = candidates.worst()
        if plane > worst:
            continue

        end = subtree_end.item(node)
        if end - node <= leaf_size:
            # Small subtrees are contiguous node ranges; scan them at once.
            members = node_point[node:end]
            reduced = distances(points[members], query_array)
            keep = reduced <= worst
            for value, index in zip(
                reduced[keep].tolist(), members[keep].tolist()
            ):
                push(value, index)
            continue

        index = node_point.item(node)
        point = points[index].tolist()
        push(distance(point, query), index)

        axis = split_dim.item(node)
        delta = query[axis] - point[axis]
        if delta < 0:
            near, far = left.item(node), right.item(node)
        else:
            near, far = right.item(node), left.item(node)

        if far >= 0:
            stack.append((far, axis_distance(delta)))
        if near >= 0:
            stack.append((near, -1.0))

    return candidates.sorted(), True


def _neighbor_result(
    tree_points: Tensor,
    rows: list[list[tuple[float, int]]],
    finished: list[bool],
    capacity: int,
    dtype: torch.dtype,
    metric: Metric,
    single: bool,
) -> NeighborResult:
    index_rows = []
    distance_rows = []
    for found in rows:
        padding = capacity - len(found)
        index_rows.append([index for _, index in found] + [-1] * padding)
        distance_rows.append(
            [metric.to_distance(reduced) for reduced, _ in found]
            + [math.inf] * padding
        )

    if single:
        index_rows, distance_rows = index_rows[0], distance_rows[0]
        batch_size = []
        shape = (capacity,)
        complete = torch.tensor(finished[0])
    else:
        batch_size = [len(rows)]
        shape = (len(rows), capacity)
        complete = torch.tensor(finished, dtype=torch.bool)

    device = tree_points.device
    indices = torch.tensor(index_rows, dtype=torch.int64).reshape(shape)
    distances = torch.tensor(distance_rows, dtype=dtype).reshape(shape)
    indices = indices.to(device)

    if all(finished):
        neighbor_points = tree_points[indices]
    else:
        neighbor_points = torch.full(
            (*shape, tree_points.shape[-1]),
            math.nan,
            dtype=tree_points.dtype,
            device=device,
        )
        found_mask = indices >= 0
        neighbor_points[found_mask] = tree_points[indices[found_mask]]

    return NeighborResult(
        indices=indices,
        points=neighbor_points,
        distances=distances.to(device),
        complete=complete.to(device),
        batch_size=batch_size,
    )


def _k_nearest_neighbors(
    arena: _SearchArena,
    query,
    k,
    p: float,
    metric: Metric | None,
    leaf_size: int,
    cancel,
) -> NeighborResult:
    k = _check_k(k)
    if isinstance(leaf_size, bool) or not isinstance(
        leaf_size, numbers.Integral
    ):
        raise TypeError(
            f"leaf_size must be an integer, got {type(leaf_size).__name__}"
        )
    if leaf_size < 1:
        raise ValueError(f"leaf_size must be >= 1, got {leaf_size}")
    metric = _resolve_metric(p, metric)

    tree_points = arena.tree.points
    n, d = arena.points.shape
    queries, single = _check_queries(query, d)
    capacity = min(k, n)

    rows = []
    finished = []
    for query_point in queries.reshape(-1, d).tolist():
        found, complete = _search(
            arena, query_point, capacity, metric, leaf_size, cancel
        )
        rows.append(found)
        finished.append(complete)

    dtype = torch.promote_types(tree_points.dtype, queries.dtype)
    return _neighbor_result(
        tree_points, rows, finished, capacity, dtype, metric, single
    )


def k_nearest_neighbors(
    tree: KdTree,
    query: Tensor,
    k: int = 10,
    *,
    p: float = 2.0,
    metric: Metric | None = None,
    leaf_size: int = 32,
    cancel=None,
) -> NeighborResult:
    """Find the k nearest neighbors of a query point using tree traversal.

    Parameters
    ----------
    tree : KdTree
        Spatial index built by kd_tree().
    query : Tensor, shape (d,) or (m, d)
        Query point, or a batch of independent query points.
    k : int, default=10
        Number of neighbors to find. Fewer are returned only when the tree
        holds fewer than ``k`` points.
    p : float, default=2.0
        Minkowski p-norm (2.0 = Euclidean, 1.0 = Manhattan). Ignored when
        ``metric`` is given.
    metric : Metric, optional
        Custom distance capability replacing the Minkowski metric.
    leaf_size : int, default=32
        Subtrees holding at most this many points are scanned with one
        vectorized distance computation instead of node by node. Does not
        change the result.
    cancel : object with ``is_set()``, optional
        For example a :class:`threading.Event`. Checked before every node
        visit; once set, the best candidates found so far are returned with
        ``complete`` set to ``False``.

    Returns
    -------
    NeighborResult
        ``min(k, n)`` neighbors per query. Batch size is ``[]`` for a single
        query and ``[m]`` for a batch.

    Raises
    ------
    InvalidKError
        If ``k`` is not a positive integer.
    DimensionMismatchError
        If the query dimension differs from the tree dimension.
    NonFiniteInputError
        If the query has NaN or infinite coordinates.

    Notes
    -----
    Depth-first branch and bound. At every node the near child (the side of
    the splitting plane the query lies on) is searched first. The far child
    is searched unless the candidate set already holds ``k`` points *and*
    the distance from the query to the splitting plane exceeds the current
    k-th best distance. The threshold is always the live k-th best
    distance, never a fixed radius, so results are exact for query points
    arbitrarily far from the data.

    Average cost is O(log n) node visits for low-dimensional, well spread
    data; the worst case is O(n).

    The tree is only read, so concurrent calls on the same tree are safe.
    :class:`SpatialIndexHandle` keeps the host views of its tree between
    calls and is the cheaper entry point for serving many queries.

    Examples
    --------
    >>> points = torch.randn(1000, 3)
    >>> tree = kd_tree(points)
    >>> result = k_nearest_neighbors(tree, torch.zeros(3), k=10)
    >>> result.indices.shape
    torch.Size([10])
    """
    if not isinstance(tree, KdTree):
        raise RuntimeError(f"Unsupported tree type: {type(tree).__name__}")

    return _k_nearest_neighbors(
        _SearchArena(tree), query, k, p, metric, leaf_size, cancel
    )
