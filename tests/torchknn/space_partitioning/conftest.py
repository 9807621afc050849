"""Test fixtures for space_partitioning tests."""

import pytest
import torch


@pytest.fixture
def line_points():
    """Eleven points (0, 0, 0) ... (10, 0, 0) on the x axis."""
    x = torch.arange(11, dtype=torch.float64)
    zeros = torch.zeros(11, dtype=torch.float64)
    return torch.stack([x, zeros, zeros], dim=1)


@pytest.fixture
def clustered_points():
    """1000 points in a tight cluster around the origin."""
    generator = torch.Generator().manual_seed(7)
    return 1e-3 * torch.randn(
        1000, 3, dtype=torch.float64, generator=generator
    )
