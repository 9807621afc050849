"""Input conversion shared by the builder and the searchers."""

from __future__ import annotations

import torch
from torch import Tensor

from ._exceptions import NonFiniteInputError


def _as_float_tensor(value) -> Tensor:
    tensor = torch.as_tensor(value)
    if not tensor.is_floating_point():
        tensor = tensor.to(torch.get_default_dtype())
    return tensor


def _check_finite(tensor: Tensor, name: str) -> None:
    if not torch.isfinite(tensor).all():
        raise NonFiniteInputError(
            f"{name} must contain only finite coordinates"
        )
