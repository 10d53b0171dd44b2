from __future__ import annotations

"""
Area-weighted downsampling of RGBA bitmaps onto the chart grid.

Each target cell averages the source rectangle
  [floor(x * W/w), ceil((x + 1) * W/w)) x [floor(y * H/h), ceil((y + 1) * H/h))
with RGB weighted by alpha and alpha averaged over the rectangle. Sums are
taken one target row band at a time, then split into cells with a running
sum over columns, so only one band is ever held as float64.
"""

import math
from typing import Tuple

import numpy as np

from .constants import RESOLUTION_MAX, RESOLUTION_MIN
from .core_types import Bitmap, assert_u8_rgba


def grid_size(width: int, height: int, resolution: int) -> Tuple[int, int]:
    """
    Target grid (w, h) for a source of width x height.
    Width is the clamped resolution, height follows the aspect ratio.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid source size {width}x{height}")
    res = int(min(max(int(resolution), RESOLUTION_MIN), RESOLUTION_MAX))
    grid_h = max(1, int(round(res * height / float(width))))
    return res, grid_h


def _cell_bounds(src_len: int, dst_len: int) -> Tuple[np.ndarray, np.ndarray]:
    """[start, end) source spans per target cell along one axis."""
    ratio = src_len / float(dst_len)
    starts = np.empty(dst_len, dtype=np.int64)
    ends = np.empty(dst_len, dtype=np.int64)
    for i in range(dst_len):
        s = int(math.floor(i * ratio))
        e = int(math.ceil((i + 1) * ratio))
        s = min(max(s, 0), src_len - 1)
        e = min(max(e, s + 1), src_len)
        starts[i] = s
        ends[i] = e
    return starts, ends


def _prefix(cols: np.ndarray) -> np.ndarray:
    """Zero-padded running sum along the first axis."""
    out = np.zeros((cols.shape[0] + 1,) + cols.shape[1:], dtype=np.float64)
    np.cumsum(cols, axis=0, out=out[1:])
    return out


def downsample(source: Bitmap, target_width: int, target_height: int) -> Bitmap:
    """
    Reduce a bitmap to target_width x target_height by alpha-weighted box averaging.

    Fully transparent rectangles give (0, 0, 0, 0). Deterministic.
    """
    src = assert_u8_rgba(source)
    src_h, src_w = int(src.shape[0]), int(src.shape[1])
    tw, th = int(target_width), int(target_height)
    if tw <= 0 or th <= 0:
        raise ValueError(f"invalid target size {tw}x{th}")
    if src_h == 0 or src_w == 0:
        raise ValueError("cannot downsample an empty bitmap")

    x1, x2 = _cell_bounds(src_w, tw)
    y1, y2 = _cell_bounds(src_h, th)

    sum_rgb = np.empty((th, tw, 3), dtype=np.float64)
    sum_a = np.empty((th, tw), dtype=np.float64)
    for j in range(th):
        band = src[y1[j] : y2[j]]
        alpha = band[..., 3].astype(np.float64)
        col_rgb = np.einsum("hwc,hw->wc", band[..., :3].astype(np.float64), alpha)
        col_a = alpha.sum(axis=0)
        cum_rgb = _prefix(col_rgb)
        cum_a = _prefix(col_a)
        sum_rgb[j] = cum_rgb[x2] - cum_rgb[x1]
        sum_a[j] = cum_a[x2] - cum_a[x1]

    area = ((y2 - y1)[:, None] * (x2 - x1)[None, :]).astype(np.float64)

    out = np.zeros((th, tw, 4), dtype=np.uint8)
    has_alpha = sum_a > 0.0
    safe_a = np.where(has_alpha, sum_a, 1.0)
    rgb = np.rint(sum_rgb / safe_a[..., None])
    out[..., :3] = np.where(has_alpha[..., None], np.clip(rgb, 0, 255), 0).astype(
        np.uint8
    )
    out[..., 3] = np.clip(np.rint(sum_a / area), 0, 255).astype(np.uint8)
    return out


def pixelate(source: Bitmap, resolution: int) -> Bitmap:
    """Downsample to the aspect-preserving grid for the given resolution."""
    src = assert_u8_rgba(source)
    gw, gh = grid_size(int(src.shape[1]), int(src.shape[0]), resolution)
    return downsample(src, gw, gh)


__all__ = ["grid_size", "downsample", "pixelate"]
