"""
Unit tests for the sharpening pre-filter.
"""

import numpy as np

from conftest import solid
from knit_chart.edges import sharpen


class TestSharpen:
    def test_uniform_image_unchanged(self):
        bm = solid(6, 5, (120, 60, 30))
        assert np.array_equal(sharpen(bm), bm)

    def test_interior_spike_is_amplified_and_clamped(self):
        bm = solid(5, 5, (100, 100, 100))
        bm[2, 2, :3] = (120, 100, 80)
        out = sharpen(bm)
        # 5 * centre - 4 * neighbours
        assert tuple(out[2, 2, :3]) == (200, 100, 0)
        # orthogonal neighbours lose the difference
        assert tuple(out[1, 2, :3]) == (80, 100, 120)

    def test_clamps_to_byte_range(self):
        bm = solid(3, 3, (0, 0, 0))
        bm[1, 1, :3] = (255, 255, 255)
        out = sharpen(bm)
        assert tuple(out[1, 1, :3]) == (255, 255, 255)
        bm2 = solid(3, 3, (255, 255, 255))
        bm2[1, 1, :3] = (0, 0, 0)
        assert tuple(sharpen(bm2)[1, 1, :3]) == (0, 0, 0)

    def test_border_and_alpha_copied(self, gradient_32x32):
        bm = gradient_32x32.copy()
        bm[..., 3] = np.arange(32, dtype=np.uint8)[None, :] * 8
        out = sharpen(bm)
        assert np.array_equal(out[0], bm[0])
        assert np.array_equal(out[-1], bm[-1])
        assert np.array_equal(out[:, 0], bm[:, 0])
        assert np.array_equal(out[:, -1], bm[:, -1])
        assert np.array_equal(out[..., 3], bm[..., 3])

    def test_small_image_is_copied(self):
        bm = solid(2, 2, (1, 2, 3))
        out = sharpen(bm)
        assert np.array_equal(out, bm)
        assert out is not bm

    def test_does_not_mutate_input(self, gradient_32x32):
        before = gradient_32x32.copy()
        sharpen(gradient_32x32)
        assert np.array_equal(gradient_32x32, before)
