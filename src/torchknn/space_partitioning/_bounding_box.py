"""Axis-aligned bounding box of a point collection."""

from __future__ import annotations

import torch
from tensordict import tensorclass
from torch import Tensor

from ._exceptions import DimensionMismatchError, EmptyInputError
from ._kd_tree import KdTree
from ._validation import _as_float_tensor


@tensorclass
class BoundingBox:
    """Axis-aligned bounding box.

    Attributes
    ----------
    lower : Tensor
        Smallest coordinate along each axis, shape (d,).
    upper : Tensor
        Largest coordinate along each axis, shape (d,).
    """

    lower: Tensor
    upper: Tensor

    def extent(self) -> Tensor:
        """Side length along each axis, shape (d,)."""
        return self.upper - self.lower

    def surface_area(self) -> Tensor:
        """Sum of face areas, ``2 * sum_i e_i * e_{(i + 1) % d}``.

        For ``d = 3`` this is the surface area of the box.
        """
        extent = self.extent()
        return 2.0 * (extent * torch.roll(extent, shifts=-1)).sum()

    def contains(self, query: Tensor) -> Tensor:
        """Whether each query point lies inside the box (inclusive)."""
        query = _as_float_tensor(query)
        if query.shape[-1] != self.lower.shape[-1]:
            raise DimensionMismatchError(
                f"Query dimension ({query.shape[-1]}) must match "
                f"box dimension ({self.lower.shape[-1]})"
            )
        inside = (query >= self.lower) & (query <= self.upper)
        return inside.all(dim=-1)


def bounding_box(points: Tensor | KdTree) -> BoundingBox:
    """Compute the bounding box of points or of the points in a tree.

    Parameters
    ----------
    points : Tensor, shape (n, d), or KdTree
        Point collection.

    Returns
    -------
    BoundingBox

    Examples
    --------
    >>> box = bounding_box(torch.tensor([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]]))
    >>> box.surface_area()
    tensor(22.)
    """
    if isinstance(points, KdTree):
        points = points.points
    points = _as_float_tensor(points)
    if points.dim() != 2:
        raise RuntimeError(f"points must be 2D (n, d), got {points.dim()}D")
    if points.shape[0] == 0:
        raise EmptyInputError("cannot bound zero points")
    return BoundingBox(
        lower=points.amin(dim=0),
        upper=points.amax(dim=0),
        batch_size=[],
    )
