"""k-d tree construction by median-of-dimension partitioning."""

from __future__ import annotations

import math
import warnings

import torch
from tensordict import tensorclass
from torch import Tensor

from ._exceptions import EmptyInputError, UnbalancedTreeWarning
from ._validation import _as_float_tensor, _check_finite


@tensorclass
class KdTree:
    """k-d tree spatial data structure.

    Nodes live in flat arrays (node ``0`` is the root) and each node stores
    exactly one input point. Use `kd_tree()` to construct instances; a built
    tree is never modified.

    Attributes
    ----------
    points : Tensor
        The tree's own copy of the input points in input order, shape
        [n, d].
    node_point : Tensor
        Input index of the point stored at each node, shape [n].
    split_dim : Tensor
        Splitting dimension per node (``node_depth % d``), shape [n].
    left : Tensor
        Left child node (-1 if absent), shape [n]. Every point below it has
        ``coordinate[split_dim] < node coordinate``.
    right : Tensor
        Right child node (-1 if absent), shape [n]. Every point below it has
        ``coordinate[split_dim] >= node coordinate``.
    node_depth : Tensor
        Depth of each node, root is 0, shape [n].
    subtree_end : Tensor
        One past the last node of the subtree rooted at each node, shape
        [n]. Nodes are numbered in pre-order, so the subtree of node ``i``
        is exactly nodes ``i`` to ``subtree_end[i] - 1``.

    Examples
    --------
    >>> points = torch.randn(100, 3)
    >>> tree = kd_tree(points)
    >>> tree.points.shape
    torch.Size([100, 3])
    """

    points: Tensor
    node_point: Tensor
    split_dim: Tensor
    left: Tensor
    right: Tensor
    node_depth: Tensor
    subtree_end: Tensor


def _split_tensor(
    points: Tensor, indices: Tensor, d: int
) -> tuple[int, Tensor, Tensor]:
    coords = points[indices, d]
    median_rank = indices.shape[0] // 2
    value = torch.kthvalue(coords, median_rank + 1).values

    less = coords < value
    # indices are ascending, so the first match has the lowest input index
    median_position = int(torch.nonzero(coords == value)[0])

    right_mask = ~less
    right_mask[median_position] = False

    median = int(indices[median_position])
    return median, indices[less], indices[right_mask]


def _split_rows(
    rows: list[tuple[int, list[float]]], d: int
) -> tuple[int, list, list]:
    ordered = sorted(rows, key=lambda row: (row[1][d], row[0]))
    position = len(ordered) // 2
    value = ordered[position][1][d]
    while position > 0 and ordered[position - 1][1][d] == value:
        position -= 1
    return ordered[position][0], ordered[:position], ordered[position + 1 :]


def kd_tree(
    points: Tensor,
    *,
    small_partition_size: int = 64,
) -> KdTree:
    """Build a k-d tree from points using median partitioning.

    Parameters
    ----------
    points : Tensor, shape [n, d]
        Points to index. Sequences are converted with ``torch.as_tensor``
        and integer input is promoted to the default floating dtype.
    small_partition_size : int, default=64
        Partitions with at most this many points are split in plain Python
        instead of with tensor kernels. Does not change the resulting tree.

    Returns
    -------
    KdTree
        Immutable tree holding a copy of ``points``.

    Raises
    ------
    EmptyInputError
        If ``points`` holds no points.
    NonFiniteInputError
        If any coordinate is NaN or infinite.

    Notes
    -----
    The splitting dimension cycles with depth (``depth % d``). At each node
    the ``(len // 2)``-th smallest coordinate ``v`` along that dimension is
    found with ``torch.kthvalue`` (linear-time selection). The node takes
    the lowest-index point with coordinate ``v``, points strictly below
    ``v`` go left and all remaining points go right. Ties therefore never
    violate the left-subtree invariant, and the tree depends only on the
    input order, so building twice gives identical splits.

    Heavily duplicated coordinates can make the tree deeper than
    logarithmic; an :class:`UnbalancedTreeWarning` is issued when that
    happens.

    The input tensor is not modified.

    Examples
    --------
    >>> points = torch.randn(1000, 3)
    >>> tree = kd_tree(points)
    >>> int(tree.node_point.shape[0])
    1000
    """
    points = _as_float_tensor(points)
    if points.dim() != 2:
        raise RuntimeError(f"points must be 2D (n, d), got {points.dim()}D")
    if small_partition_size < 1:
        raise ValueError(
            f"small_partition_size must be >= 1, got {small_partition_size}"
        )

    n, d = points.shape
    if n == 0:
        raise EmptyInputError("cannot build a k-d tree from zero points")
    if d == 0:
        raise RuntimeError("points must have at least one coordinate")
    _check_finite(points, "points")

    points = points.detach().clone().contiguous()

    node_point = torch.empty(n, dtype=torch.int64)
    split_dim = torch.empty(n, dtype=torch.int64)
    left = torch.full((n,), -1, dtype=torch.int64)
    right = torch.full((n,), -1, dtype=torch.int64)
    node_depth = torch.empty(n, dtype=torch.int64)
    subtree_end = torch.empty(n, dtype=torch.int64)

    # Shared-memory views; scalar writes through numpy are much cheaper.
    node_point_view = node_point.numpy()
    split_dim_view = split_dim.numpy()
    left_view = left.numpy()
    right_view = right.numpy()
    node_depth_view = node_depth.numpy()
    subtree_end_view = subtree_end.numpy()

    # (subset, depth, parent node, goes left of parent)
    stack = [(torch.arange(n, device=points.device), 0, -1, False)]
    next_node = 0

    while stack:
        subset, level, parent, is_left = stack.pop()

        node = next_node
        next_node += 1
        if parent >= 0:
            if is_left:
                left_view[parent] = node
            else:
                right_view[parent] = node

        axis = level % d

        if isinstance(subset, list):
            median, lower, upper = _split_rows(subset, axis)
        elif subset.shape[0] <= small_partition_size:
            rows = list(zip(subset.tolist(), points[subset].tolist()))
            median, lower, upper = _split_rows(rows, axis)
        else:
            median, lower, upper = _split_tensor(points, subset, axis)

        node_point_view[node] = median
        split_dim_view[node] = axis
        node_depth_view[node] = level
        # Pre-order numbering keeps every subtree a contiguous node range.
        subtree_end_view[node] = node + len(subset)

        # Right is pushed first so nodes are numbered in pre-order.
        if len(upper) > 0:
            stack.append((upper, level + 1, node, False))
        if len(lower) > 0:
            stack.append((lower, level + 1, node, True))

    maximum_depth = int(node_depth.max())
    if maximum_depth > 2 * math.ceil(math.log2(n + 1)) + 1:
        warnings.warn(
            f"k-d tree over {n} points reached depth {maximum_depth}; "
            f"duplicate coordinates degrade search towards a linear scan.",
            UnbalancedTreeWarning,
            stacklevel=2,
        )

    device = points.device
    return KdTree(
        points=points,
        node_point=node_point.to(device),
        split_dim=split_dim.to(device),
        left=left.to(device),
        right=right.to(device),
        node_depth=node_depth.to(device),
        subtree_end=subtree_end.to(device),
        batch_size=[],
    )
