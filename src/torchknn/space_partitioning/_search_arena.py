"""Host-memory views of a built tree used by the searcher."""

from __future__ import annotations

from ._kd_tree import KdTree


class _SearchArena:
    """numpy views over the tensors of a :class:`KdTree`.

    The views share memory with CPU trees, so building one is O(1). Trees
    on other devices are copied to host memory once. Holding an arena
    avoids re-reading tensorclass fields on every query.
    """

    __slots__ = (
        "tree",
        "points",
        "node_point",
        "split_dim",
        "left",
        "right",
        "subtree_end",
    )

    def __init__(self, tree: KdTree) -> None:
        self.tree = tree
        self.points = tree.points.detach().cpu().numpy()
        self.node_point = tree.node_point.cpu().numpy()
        self.split_dim = tree.split_dim.cpu().numpy()
        self.left = tree.left.cpu().numpy()
        self.right = tree.right.cpu().numpy()
        self.subtree_end = tree.subtree_end.cpu().numpy()
