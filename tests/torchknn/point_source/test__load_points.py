# tests/torchknn/point_source/test__load_points.py
import numpy as np
import pytest
import torch

from torchknn.point_source import load_points


class TestLoadPoints:
    """Tests for loading point collections from files."""

    def test_load_npy(self, tmp_path):
        array = np.random.default_rng(0).normal(size=(20, 3))
        path = tmp_path / "points.npy"
        np.save(path, array)

        points = load_points(path)

        torch.testing.assert_close(points, torch.from_numpy(array))

    def test_load_pt(self, tmp_path):
        expected = torch.randn(20, 3)
        path = tmp_path / "points.pt"
        torch.save(expected, path)

        torch.testing.assert_close(load_points(str(path)), expected)

    def test_integer_file_is_promoted(self, tmp_path):
        path = tmp_path / "grid.npy"
        np.save(path, np.arange(12).reshape(4, 3))
        assert load_points(path).dtype == torch.get_default_dtype()

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "points.csv"
        path.write_text("0,0,0\n")
        with pytest.raises(ValueError, match="unsupported"):
            load_points(path)

    def test_requires_2d(self, tmp_path):
        path = tmp_path / "flat.pt"
        torch.save(torch.zeros(3), path)
        with pytest.raises(RuntimeError, match="must be 2D"):
            load_points(path)

    def test_rejects_non_tensor(self, tmp_path):
        path = tmp_path / "dict.pt"
        torch.save({"points": torch.zeros(2, 3)}, path)
        with pytest.raises(ValueError, match="single tensor"):
            load_points(path)
