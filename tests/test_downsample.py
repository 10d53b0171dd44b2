"""
Unit tests for the alpha-weighted downsampler.
"""

import numpy as np
import pytest

from conftest import BLUE, RED, solid
from knit_chart.downsample import downsample, grid_size, pixelate


class TestGridSize:
    def test_width_is_resolution_height_follows_aspect(self):
        assert grid_size(200, 100, 32) == (32, 16)

    def test_resolution_is_clamped(self):
        assert grid_size(100, 100, 2) == (8, 8)
        assert grid_size(100, 100, 999) == (128, 128)

    def test_height_never_zero(self):
        assert grid_size(1000, 1, 8) == (8, 1)

    def test_invalid_source_raises(self):
        with pytest.raises(ValueError):
            grid_size(0, 10, 16)


class TestDownsample:
    def test_same_size_is_identity(self):
        rng = np.random.default_rng(7)
        bm = rng.integers(0, 256, size=(5, 7, 4), dtype=np.uint8)
        bm[..., 3] = rng.integers(1, 256, size=(5, 7), dtype=np.uint8)
        out = downsample(bm, 7, 5)
        assert np.array_equal(out, bm)

    def test_block_average(self):
        bm = solid(4, 4, (0, 0, 0))
        bm[:2, :2, :3] = (100, 200, 40)
        bm[:2, 2:, :3] = (200, 100, 60)
        out = downsample(bm, 2, 2)
        assert out.shape == (2, 2, 4)
        assert tuple(out[0, 0]) == (100, 200, 40, 255)
        assert tuple(out[0, 1]) == (200, 100, 60, 255)
        assert tuple(out[1, 0]) == (0, 0, 0, 255)

    def test_rgb_is_alpha_weighted(self):
        bm = solid(2, 1, RED)
        bm[0, 1, :3] = BLUE
        bm[0, 1, 3] = 0
        out = downsample(bm, 1, 1)
        # Transparent blue contributes no colour, but halves the alpha.
        assert tuple(out[0, 0, :3]) == RED
        assert out[0, 0, 3] == 128

    def test_fully_transparent_cell_is_zero(self):
        bm = solid(4, 4, (90, 80, 70), alpha=0)
        out = downsample(bm, 2, 2)
        assert not out.any()

    def test_uneven_ratio_covers_source(self):
        bm = solid(5, 5, (10, 20, 30))
        out = downsample(bm, 2, 3)
        assert out.shape == (3, 2, 4)
        assert np.all(out[..., :3] == (10, 20, 30))
        assert np.all(out[..., 3] == 255)

    def test_matches_per_cell_average(self):
        rng = np.random.default_rng(11)
        bm = rng.integers(0, 256, size=(23, 37, 4), dtype=np.uint8)
        out = downsample(bm, 10, 7)
        ys = [(int(np.floor(j * 23 / 7)), int(np.ceil((j + 1) * 23 / 7))) for j in range(7)]
        xs = [(int(np.floor(i * 37 / 10)), int(np.ceil((i + 1) * 37 / 10))) for i in range(10)]
        for j, (ya, yb) in enumerate(ys):
            for i, (xa, xb) in enumerate(xs):
                cell = bm[ya:yb, xa:xb].astype(np.float64)
                a = cell[..., 3]
                rgb = np.rint((cell[..., :3] * a[..., None]).sum(axis=(0, 1)) / a.sum())
                assert tuple(out[j, i, :3]) == tuple(int(c) for c in rgb)
                assert out[j, i, 3] == int(np.rint(a.mean()))

    def test_deterministic(self, gradient_32x32):
        a = downsample(gradient_32x32, 9, 9)
        b = downsample(gradient_32x32, 9, 9)
        assert np.array_equal(a, b)

    def test_rejects_wrong_dtype(self):
        with pytest.raises(TypeError):
            downsample(np.zeros((4, 4, 4), dtype=np.float32), 2, 2)

    def test_rejects_bad_target(self, gradient_32x32):
        with pytest.raises(ValueError):
            downsample(gradient_32x32, 0, 4)


class TestPixelate:
    def test_uses_grid_size(self, gradient_32x32):
        out = pixelate(gradient_32x32, 16)
        assert out.shape == (16, 16, 4)
