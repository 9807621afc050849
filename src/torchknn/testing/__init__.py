"""Testing helpers for the torchknn spatial index.

Example usage:

    import hypothesis

    from torchknn.testing import assert_split_invariant
    from torchknn.testing.strategies import point_clouds

    @hypothesis.given(point_clouds())
    def test_split_invariant(points):
        assert_split_invariant(kd_tree(points))
"""

from ._tree_checks import assert_split_invariant, subtree_indices
from .strategies import point_clouds, query_points

__all__ = [
    "assert_split_invariant",
    "point_clouds",
    "query_points",
    "subtree_indices",
]
