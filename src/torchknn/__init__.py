"""torchknn: exact k-nearest-neighbor search over static point sets."""

from . import (
    point_source,
    space_partitioning,
)

__all__ = [
    "point_source",
    "space_partitioning",
]

__version__ = "0.1.0"
