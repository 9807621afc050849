"""Uniformly distributed random point collections."""

from __future__ import annotations

from typing import Optional

import torch
from torch import Tensor


def uniform_points(
    n: int,
    *,
    dimension: int = 3,
    low: float = -1000.0,
    high: float = 1000.0,
    decimals: Optional[int] = None,
    dtype: Optional[torch.dtype] = None,
    generator: Optional[torch.Generator] = None,
) -> Tensor:
    """Draw points uniformly from the box ``[low, high]^dimension``.

    Parameters
    ----------
    n : int
        Number of points, at least 1.
    dimension : int, default=3
        Coordinates per point.
    low, high : float
        Bounds of every coordinate.
    decimals : int, optional
        Round coordinates to this many decimal places. Rounding can create
        duplicate coordinates, which the k-d tree handles.
    dtype : torch.dtype, optional
        Floating dtype, defaults to ``torch.get_default_dtype()``.
    generator : torch.Generator, optional
        Source of randomness for reproducible collections.

    Returns
    -------
    Tensor, shape (n, dimension)

    Examples
    --------
    >>> generator = torch.Generator().manual_seed(0)
    >>> points = uniform_points(1000, decimals=2, generator=generator)
    >>> points.shape
    torch.Size([1000, 3])
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    if dimension < 1:
        raise ValueError(f"dimension must be >= 1, got {dimension}")
    if not low < high:
        raise ValueError(f"low ({low}) must be less than high ({high})")

    points = torch.rand(n, dimension, dtype=dtype, generator=generator)
    points = points * (high - low) + low
    if decimals is not None:
        points = torch.round(points, decimals=decimals)
    # Rounding and float error must not push coordinates out of range.
    return points.clamp(min=low, max=high)
