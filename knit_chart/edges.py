from __future__ import annotations

"""
Edge enhancement applied to the full-resolution source before downsampling.

3x3 sharpening cross:
     0 -1  0
    -1  5 -1
     0 -1  0
Interior pixels only; border rows/columns and the alpha channel are copied
from the source unchanged.
"""

import numpy as np

from .constants import SHARPEN_CENTER, SHARPEN_NEIGHBOUR
from .core_types import Bitmap, assert_u8_rgba


def sharpen(bitmap: Bitmap) -> Bitmap:
    """Return a sharpened copy of the bitmap (same shape, uint8)."""
    src = assert_u8_rgba(bitmap)
    out = src.copy()
    height, width = int(src.shape[0]), int(src.shape[1])
    if height < 3 or width < 3:
        return out

    rgb = src[..., :3].astype(np.float32)
    centre = rgb[1:-1, 1:-1]
    neighbours = rgb[:-2, 1:-1] + rgb[2:, 1:-1] + rgb[1:-1, :-2] + rgb[1:-1, 2:]
    conv = SHARPEN_CENTER * centre + SHARPEN_NEIGHBOUR * neighbours
    out[1:-1, 1:-1, :3] = np.clip(np.rint(conv), 0, 255).astype(np.uint8)
    return out


__all__ = ["sharpen"]
