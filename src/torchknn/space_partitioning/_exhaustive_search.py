"""Brute-force k-nearest neighbors by linear scan."""

from __future__ import annotations

import torch
from torch import Tensor

from ._exceptions import EmptyInputError
from ._k_nearest_neighbors import NeighborResult, _check_k, _check_queries
from ._minkowski_metric import Metric, _resolve_metric
from ._validation import _as_float_tensor, _check_finite


def exhaustive_k_nearest_neighbors(
    points: Tensor,
    query: Tensor,
    k: int = 10,
    *,
    p: float = 2.0,
    metric: Metric | None = None,
) -> NeighborResult:
    """Find the k nearest neighbors by comparing against every point.

    Same contract, ordering and tie rule as :func:`k_nearest_neighbors`
    without building an index. Intended as a reference for validating the
    tree search and for small point sets.

    Parameters
    ----------
    points : Tensor, shape (n, d)
        Points to search.
    query : Tensor, shape (d,) or (m, d)
        Query point or batch of query points.
    k : int, default=10
        Number of neighbors to return.
    p : float, default=2.0
        Minkowski p-norm. Ignored when ``metric`` is given.
    metric : Metric, optional
        Custom distance capability.

    Returns
    -------
    NeighborResult
        ``min(k, n)`` neighbors per query, always complete.

    Notes
    -----
    Distances are accumulated in float64 so that ordering matches the tree
    search exactly. O(n log n) per query.
    """
    points = _as_float_tensor(points)
    if points.dim() != 2:
        raise RuntimeError(f"points must be 2D (n, d), got {points.dim()}D")
    n, d = points.shape
    if n == 0:
        raise EmptyInputError("cannot search an empty point set")
    _check_finite(points, "points")

    k = _check_k(k)
    metric = _resolve_metric(p, metric)
    queries, single = _check_queries(query, d, against="point")
    if single:
        queries = queries.unsqueeze(0)

    capacity = min(k, n)
    points64 = points.detach().cpu().to(torch.float64).numpy()

    index_rows = []
    distance_rows = []
    for query_point in queries.detach().cpu().to(torch.float64).numpy():
        reduced = torch.from_numpy(
            metric.reduced_distances(points64, query_point)
        )
        # A stable sort keeps equal distances in input order.
        order = torch.sort(reduced, stable=True).indices
        nearest = order[:capacity]
        index_rows.append(nearest)
        distance_rows.append(
            [metric.to_distance(value) for value in reduced[nearest].tolist()]
        )

    m = queries.shape[0]
    device = points.device
    dtype = torch.promote_types(points.dtype, queries.dtype)
    if m > 0:
        indices = torch.stack(index_rows).to(device)
    else:
        indices = torch.empty((0, capacity), dtype=torch.int64, device=device)
    distances = torch.tensor(distance_rows, dtype=dtype, device=device)
    distances = distances.reshape(m, capacity)

    result = NeighborResult(
        indices=indices,
        points=points[indices],
        distances=distances,
        complete=torch.ones(m, dtype=torch.bool, device=device),
        batch_size=[m],
    )
    if single:
        return result[0]
    return result
