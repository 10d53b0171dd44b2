from __future__ import annotations

"""
Map every visible grid cell onto a palette.

Two strategies:
  quantize        : nearest palette colour per pixel (Lab distance), new array.
  dither_in_place : Floyd-Steinberg error diffusion in RGB, raster order,
                    error only flows into visible neighbours.

Alpha is never touched. An empty palette leaves pixels unchanged.
"""

from typing import Sequence

import numpy as np

from .colour_convert import nearest_palette_indices, rgb_to_lab
from .constants import KERNEL_FS
from .core_types import Bitmap, ColourLike, assert_u8_rgba, palette_to_array
from .utils import visible_mask


def quantize(bitmap: Bitmap, palette: Sequence[ColourLike]) -> Bitmap:
    """Return a copy with each visible pixel's RGB replaced by its nearest palette colour."""
    src = assert_u8_rgba(bitmap)
    out = src.copy()
    pal_rgb = palette_to_array(palette)
    if pal_rgb.shape[0] == 0:
        return out

    mask = visible_mask(src)
    if not np.any(mask):
        return out

    # Map unique colours once, then scatter back.
    visible_rgb = src[..., :3][mask]
    uniques, inverse = np.unique(visible_rgb, axis=0, return_inverse=True)
    nearest = nearest_palette_indices(rgb_to_lab(uniques), rgb_to_lab(pal_rgb))
    out_rgb = out[..., :3]
    out_rgb[mask] = pal_rgb[nearest[inverse.reshape(-1)]]
    return out


def dither_in_place(bitmap: Bitmap, palette: Sequence[ColourLike]) -> Bitmap:
    """
    Floyd-Steinberg dithering. Mutates and returns the bitmap.

    Pixels are visited left-to-right, top-to-bottom; each later pixel sees the
    error pushed by earlier ones, so the order must not change.
    """
    bm = assert_u8_rgba(bitmap)
    pal_rgb = palette_to_array(palette)
    if pal_rgb.shape[0] == 0:
        return bm

    height, width = int(bm.shape[0]), int(bm.shape[1])
    mask = visible_mask(bm)
    pal_lab = rgb_to_lab(pal_rgb).astype(np.float64)
    pal_f = pal_rgb.astype(np.float64)
    work = bm[..., :3].astype(np.float64)

    for y in range(height):
        for x in range(width):
            if not mask[y, x]:
                continue
            old = work[y, x].copy()
            lab = rgb_to_lab(old).astype(np.float64)
            diff = pal_lab - lab
            j = int(np.argmin(np.sum(diff * diff, axis=1)))
            bm[y, x, :3] = pal_rgb[j]

            err = old - pal_f[j]
            for dx, dy, w in KERNEL_FS:
                nx, ny = x + dx, y + dy
                if 0 <= ny < height and 0 <= nx < width and mask[ny, nx]:
                    work[ny, nx] = np.clip(work[ny, nx] + err * w, 0.0, 255.0)
    return bm


def map_to_palette(
    bitmap: Bitmap, palette: Sequence[ColourLike], dither: bool = False
) -> Bitmap:
    """Return a mapped copy using either strategy."""
    if dither:
        return dither_in_place(assert_u8_rgba(bitmap).copy(), palette)
    return quantize(bitmap, palette)


__all__ = ["quantize", "dither_in_place", "map_to_palette"]
