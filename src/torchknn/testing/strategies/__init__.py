"""Hypothesis strategies for spatial index testing."""

from ._point_clouds import point_clouds, query_points

__all__ = [
    "point_clouds",
    "query_points",
]
