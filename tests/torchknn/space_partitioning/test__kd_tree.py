# tests/torchknn/space_partitioning/test__kd_tree.py
import dataclasses
import math
import warnings

import hypothesis
import pytest
import torch
from tensordict import TensorDict

from torchknn.space_partitioning import (
    EmptyInputError,
    KdTree,
    NonFiniteInputError,
    UnbalancedTreeWarning,
    kd_tree,
)
from torchknn.testing import assert_split_invariant, subtree_indices
from torchknn.testing.strategies import point_clouds


class TestKdTreeBasic:
    """Tests for kd_tree build function."""

    def test_returns_kdtree_instance(self):
        """kd_tree returns a KdTree instance."""
        points = torch.randn(100, 3)
        tree = kd_tree(points)
        assert isinstance(tree, KdTree)

    def test_stores_original_points(self):
        """KdTree stores the points in input order."""
        points = torch.randn(100, 3)
        tree = kd_tree(points)
        torch.testing.assert_close(tree.points, points)

    def test_one_node_per_point(self):
        """Every point is stored at exactly one node."""
        points = torch.randn(100, 3)
        tree = kd_tree(points)

        sorted_indices = torch.sort(tree.node_point)[0]
        torch.testing.assert_close(sorted_indices, torch.arange(100))

    def test_child_ids_are_valid(self):
        """Children are -1 or node ids below n, each node has one parent."""
        points = torch.randn(100, 3)
        tree = kd_tree(points)

        children = torch.cat([tree.left, tree.right])
        children = children[children >= 0]
        assert (children < 100).all()
        assert (children > 0).all()
        assert torch.unique(children).shape[0] == 99

    def test_preserves_dtype(self):
        """Points keep their floating dtype."""
        points = torch.randn(100, 3, dtype=torch.float64)
        tree = kd_tree(points)
        assert tree.points.dtype == torch.float64

    def test_integer_input_is_promoted(self):
        """Integer coordinates become the default floating dtype."""
        tree = kd_tree([[0, 0, 0], [1, 2, 3]])
        assert tree.points.dtype == torch.get_default_dtype()

    def test_does_not_alias_input(self):
        """Mutating the input after construction does not change the tree."""
        points = torch.randn(20, 3)
        tree = kd_tree(points)
        expected = points.clone()

        points.zero_()

        torch.testing.assert_close(tree.points, expected)

    def test_does_not_modify_input(self):
        """Construction leaves the input untouched."""
        points = torch.randn(500, 3)
        expected = points.clone()
        kd_tree(points)
        torch.testing.assert_close(points, expected)


class TestKdTreeStructure:
    """Tests for median partitioning."""

    def test_known_tree(self):
        """Six points produce the expected median splits."""
        points = torch.tensor(
            [
                [1.0, 2.0, 3.0],
                [4.0, 5.0, 6.0],
                [7.0, 8.0, 9.0],
                [2.0, 3.0, 4.0],
                [5.0, 6.0, 7.0],
                [8.0, 9.0, 10.0],
            ]
        )
        tree = kd_tree(points)

        assert tree.node_point.tolist() == [4, 3, 0, 1, 5, 2]
        assert tree.left.tolist() == [1, 2, -1, -1, 5, -1]
        assert tree.right.tolist() == [4, 3, -1, -1, -1, -1]
        assert tree.node_depth.tolist() == [0, 1, 2, 2, 1, 2]
        assert tree.split_dim.tolist() == [0, 1, 2, 2, 1, 2]
        assert tree.subtree_end.tolist() == [6, 4, 3, 4, 6, 6]

    def test_split_dimension_cycles_with_depth(self):
        """split_dim == depth % d for every node."""
        points = torch.randn(300, 4)
        tree = kd_tree(points)
        torch.testing.assert_close(tree.split_dim, tree.node_depth % 4)

    def test_split_invariant(self):
        """Left subtrees are strictly below, right subtrees at or above."""
        torch.manual_seed(0)
        points = torch.randn(400, 3)
        assert_split_invariant(kd_tree(points))

    def test_subtrees_are_contiguous_node_ranges(self):
        """Pre-order numbering puts each subtree in nodes [i, subtree_end)."""
        torch.manual_seed(2)
        tree = kd_tree(torch.randn(300, 3), small_partition_size=16)

        for node in range(300):
            end = int(tree.subtree_end[node])
            assert sorted(subtree_indices(tree, node)) == sorted(
                tree.node_point[node:end].tolist()
            )

    def test_balanced_depth(self):
        """Distinct coordinates give depth floor(log2(n))."""
        torch.manual_seed(0)
        points = torch.randn(1000, 3, dtype=torch.float64)
        tree = kd_tree(points)
        assert int(tree.node_depth.max()) == math.floor(math.log2(1000))

    def test_single_point_is_leaf(self):
        """A single point becomes a childless root."""
        tree = kd_tree(torch.tensor([[1.0, 2.0, 3.0]]))
        assert tree.node_point.tolist() == [0]
        assert tree.left.tolist() == [-1]
        assert tree.right.tolist() == [-1]

    def test_duplicate_coordinates_go_right(self):
        """Ties on the split coordinate keep the strict-left invariant."""
        points = torch.tensor(
            [[1.0, 0.0, 0.0]] * 4 + [[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]]
        )
        tree = kd_tree(points)
        assert_split_invariant(tree)
        # Median value 1.0 is held by the lowest-index duplicate.
        assert int(tree.node_point[0]) == 0

    def test_small_partition_size_does_not_change_tree(self):
        """Python and tensor partitioning build identical trees."""
        torch.manual_seed(3)
        points = torch.randint(-3, 4, (300, 3)).to(torch.float64)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UnbalancedTreeWarning)
            tensor_tree = kd_tree(points, small_partition_size=1)
            python_tree = kd_tree(points, small_partition_size=1000)
            default_tree = kd_tree(points)

        for tree in (python_tree, default_tree):
            torch.testing.assert_close(tree.node_point, tensor_tree.node_point)
            torch.testing.assert_close(tree.left, tensor_tree.left)
            torch.testing.assert_close(tree.right, tensor_tree.right)

    def test_build_is_deterministic(self):
        """Building twice from the same points yields the same splits."""
        points = torch.randn(2000, 3)
        first = kd_tree(points)
        second = kd_tree(points.clone())

        torch.testing.assert_close(first.node_point, second.node_point)
        torch.testing.assert_close(first.split_dim, second.split_dim)
        torch.testing.assert_close(first.left, second.left)
        torch.testing.assert_close(first.right, second.right)

    @hypothesis.settings(max_examples=50, deadline=None)
    @hypothesis.given(point_clouds(max_points=80))
    def test_split_invariant_property(self, points):
        """The split invariant holds for arbitrary finite inputs."""
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UnbalancedTreeWarning)
            tree = kd_tree(points, small_partition_size=8)
        assert sorted(tree.node_point.tolist()) == list(range(len(points)))
        assert_split_invariant(tree)


class TestKdTreeValidation:
    """Tests for input validation."""

    def test_requires_2d_input(self):
        """Raises RuntimeError for 1D input."""
        with pytest.raises(RuntimeError, match="must be 2D"):
            kd_tree(torch.randn(100))

    def test_empty_input(self):
        """Zero points raise EmptyInputError."""
        with pytest.raises(EmptyInputError):
            kd_tree(torch.empty(0, 3))

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_input(self, value):
        """NaN and infinite coordinates are rejected."""
        points = torch.randn(50, 3)
        points[10, 1] = value
        with pytest.raises(NonFiniteInputError):
            kd_tree(points)

    def test_invalid_small_partition_size(self):
        with pytest.raises(ValueError, match="small_partition_size"):
            kd_tree(torch.randn(10, 3), small_partition_size=0)


class TestKdTreeEdgeCases:
    """Tests for edge cases and numerical stability."""

    def test_duplicate_points_warn(self):
        """All-identical points build a valid but unbalanced tree."""
        points = torch.zeros(50, 3)
        with pytest.warns(UnbalancedTreeWarning):
            tree = kd_tree(points)
        assert tree.node_point.shape[0] == 50
        assert_split_invariant(tree)

    def test_two_dimensional_points(self):
        """Dimensions other than three are supported."""
        points = torch.randn(100, 2)
        tree = kd_tree(points)
        assert set(tree.split_dim.tolist()) == {0, 1}
        assert_split_invariant(tree)

    def test_collinear_points(self):
        """Handles collinear points (1D manifold in 3D)."""
        t = torch.linspace(0, 1, 100).unsqueeze(1)
        points = torch.cat([t, torch.zeros(100, 2)], dim=1)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UnbalancedTreeWarning)
            tree = kd_tree(points)
        assert_split_invariant(tree)

    def test_float64_precision_preserved(self):
        """Splits distinguish values that differ below float32 precision."""
        base = 1e8
        epsilon = 1e-6
        points = torch.tensor(
            [[base + i * epsilon, 0.0, 0.0] for i in range(4)],
            dtype=torch.float64,
        )
        tree = kd_tree(points)
        root_value = tree.points[tree.node_point[0], 0]
        assert base < root_value < base + 3 * epsilon


class TestKdTreeSerialization:
    """Tests for KdTree as a tensorclass."""

    def test_to_tensordict(self):
        """KdTree can be converted to TensorDict."""
        tree = kd_tree(torch.randn(100, 3))
        td = tree.to_tensordict()
        assert "points" in td.keys()
        assert "node_point" in td.keys()

    def test_from_tensordict(self):
        """KdTree can be reconstructed from TensorDict."""
        tree = kd_tree(torch.randn(100, 3))
        tree2 = KdTree.from_tensordict(tree.to_tensordict())
        torch.testing.assert_close(tree.points, tree2.points)
        torch.testing.assert_close(tree.left, tree2.left)

    def test_field_names_leave_tensordict_api_intact(self):
        """Tree fields never hide TensorDict attributes such as depth."""
        for field in dataclasses.fields(KdTree):
            assert not hasattr(TensorDict, field.name), field.name
        tree = kd_tree(torch.randn(10, 3))
        assert "node_depth" in tree.to_tensordict().keys()
