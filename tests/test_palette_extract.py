"""
Unit tests for palette extraction (weighted k-means in Lab).

Palettes are compared by membership: with seed=None the order may vary.
"""

import numpy as np
import pytest

from conftest import BLUE, RED, WHITE, solid
from knit_chart.palette_extract import extract_palette


def _two_cluster_image():
    """8x8: noisy reds on the left, noisy blues on the right."""
    rng = np.random.default_rng(3)
    bm = solid(8, 8, (0, 0, 0))
    jitter = rng.integers(0, 6, size=(8, 4, 3))
    bm[:, :4, :3] = np.array(RED) - np.array([1, 0, 0]) * jitter
    bm[:, 4:, :3] = np.array(BLUE) - np.array([0, 0, 1]) * jitter
    return bm


class TestSmallInputs:
    def test_red_blue_k2(self, red_blue_2x2):
        assert set(extract_palette(red_blue_2x2, 2)) == {RED, BLUE}

    def test_fully_transparent_gives_empty(self, transparent_4x4):
        for k in (2, 8, 16):
            assert extract_palette(transparent_4x4, k) == []

    def test_fewer_distinct_than_k_returns_all_by_frequency(self):
        bm = solid(4, 1, WHITE)
        bm[0, 3, :3] = RED
        assert extract_palette(bm, 8) == [WHITE, RED]

    def test_invisible_pixels_ignored(self, red_blue_2x2):
        bm = red_blue_2x2.copy()
        bm[1, :, 3] = 0
        assert extract_palette(bm, 4) == [RED]

    def test_k_below_one_rejected(self, red_blue_2x2):
        with pytest.raises(ValueError):
            extract_palette(red_blue_2x2, 0)


class TestClustering:
    @pytest.mark.parametrize("k", [2, 3, 5, 8, 16])
    def test_exactly_k_unique_colours(self, gradient_32x32, k):
        palette = extract_palette(gradient_32x32, k, seed=11)
        assert len(palette) == k
        assert len(set(palette)) == k

    def test_colours_inside_source_bounds(self, gradient_32x32):
        rgb = gradient_32x32[..., :3].reshape(-1, 3)
        lo, hi = rgb.min(axis=0), rgb.max(axis=0)
        for colour in extract_palette(gradient_32x32, 6, seed=5):
            assert np.all(np.array(colour) >= lo)
            assert np.all(np.array(colour) <= hi)

    def test_separates_two_clusters(self):
        palette = extract_palette(_two_cluster_image(), 2, seed=1)
        assert len(palette) == 2
        near_red = [c for c in palette if np.linalg.norm(np.subtract(c, RED)) < 10]
        near_blue = [c for c in palette if np.linalg.norm(np.subtract(c, BLUE)) < 10]
        assert len(near_red) == 1
        assert len(near_blue) == 1

    def test_seed_makes_runs_repeatable(self, gradient_32x32):
        a = extract_palette(gradient_32x32, 7, seed=42)
        b = extract_palette(gradient_32x32, 7, seed=42)
        assert a == b

    def test_unseeded_runs_agree_on_size(self, gradient_32x32):
        a = extract_palette(gradient_32x32, 4)
        b = extract_palette(gradient_32x32, 4)
        assert len(a) == len(b) == 4

    def test_entries_are_plain_int_tuples(self, gradient_32x32):
        for colour in extract_palette(gradient_32x32, 3, seed=0):
            assert isinstance(colour, tuple)
            assert all(type(c) is int for c in colour)

    def test_single_iteration_still_fills_palette(self, gradient_32x32):
        palette = extract_palette(gradient_32x32, 9, seed=2, max_iter=1)
        assert len(set(palette)) == 9
