"""Loading point collections from disk."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

import numpy as np
import torch
from torch import Tensor


def load_points(path: Union[str, os.PathLike]) -> Tensor:
    """Load an (n, d) point collection.

    Parameters
    ----------
    path : str or PathLike
        ``.npy`` file written by :func:`numpy.save`, or ``.pt`` file holding
        a single tensor written by :func:`torch.save`.

    Returns
    -------
    Tensor, shape (n, d)
        Floating-point coordinates. Integer files are promoted to the
        default floating dtype.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".npy":
        points = torch.from_numpy(np.load(path, allow_pickle=False))
    elif suffix == ".pt":
        points = torch.load(path, weights_only=True)
        if not isinstance(points, Tensor):
            raise ValueError(
                f"{path} must contain a single tensor, "
                f"got {type(points).__name__}"
            )
    else:
        raise ValueError(
            f"unsupported point file suffix {suffix!r}, expected .npy or .pt"
        )

    if points.dim() != 2:
        raise RuntimeError(f"points must be 2D (n, d), got {points.dim()}D")
    if not points.is_floating_point():
        points = points.to(torch.get_default_dtype())
    return points
