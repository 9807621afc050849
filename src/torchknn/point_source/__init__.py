"""Point collections to index: random generation and file loading."""

from ._load_points import load_points
from ._uniform_points import uniform_points

__all__ = [
    "load_points",
    "uniform_points",
]
