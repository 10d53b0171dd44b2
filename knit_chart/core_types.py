from __future__ import annotations

"""
Core type aliases and lightweight helpers shared by the chart pipeline.
"""

from typing import List, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBTuple = Tuple[int, int, int]
RGBATuple = Tuple[int, int, int, int]
ColourLike = Union[RGBTuple, RGBATuple, Sequence[int]]

Bitmap = NDArray[np.uint8]  # (H, W, 4) RGBA
U8Image = NDArray[np.uint8]  # (H, W, 3)
Lab = NDArray[np.float32]  # (..., 3) CIE Lab

Palette = List[RGBTuple]  # frequency order, index = swatch position


# Small helpers


def rgb_to_hex(rgb: ColourLike) -> str:
    """RGB tuple to lowercase hex string '#rrggbb'."""
    return f"#{int(rgb[0]):02x}{int(rgb[1]):02x}{int(rgb[2]):02x}"


def hex_to_rgb(hex_str: str) -> RGBTuple:
    """Parse '#rgb' or '#rrggbb' (case-insensitive) into an RGB tuple."""
    s = hex_str.strip().lower()
    if not s.startswith("#"):
        raise ValueError("hex must start with '#'")
    if len(s) == 4:
        r, g, b = s[1], s[2], s[3]
        s = f"#{r}{r}{g}{g}{b}{b}"
    if len(s) != 7:
        raise ValueError("hex must be '#rrggbb' or '#rgb'")
    return (int(s[1:3], 16), int(s[3:5], 16), int(s[5:7], 16))


def coerce_to_rgb_tuple(value: Union[ColourLike, NDArray[np.generic], str]) -> RGBTuple:
    """
    Coerce a hex string, a 3/4-length sequence or an array row to an RGB tuple.
    Channels are checked against 0..255.
    """
    if isinstance(value, str):
        return hex_to_rgb(value)
    if isinstance(value, np.ndarray):
        if value.size < 3:
            raise ValueError("array too small for RGB")
        flat = value.reshape(-1)
        rgb = (int(flat[0]), int(flat[1]), int(flat[2]))
    else:
        if len(value) < 3:
            raise ValueError("sequence too small for RGB")
        rgb = (int(value[0]), int(value[1]), int(value[2]))
    if any(c < 0 or c > 255 for c in rgb):
        raise ValueError(f"channel out of range: {rgb}")
    return rgb


def palette_to_array(palette: Sequence[ColourLike]) -> U8Image:
    """Palette sequence to a (P,3) uint8 array. Empty input gives shape (0,3)."""
    if len(palette) == 0:
        return np.zeros((0, 3), dtype=np.uint8)
    return np.array([coerce_to_rgb_tuple(c) for c in palette], dtype=np.uint8)


def assert_u8_rgba(bitmap: np.ndarray) -> Bitmap:
    """Validate a uint8 (H,W,4) bitmap and return it typed as Bitmap."""
    if bitmap.dtype != np.uint8 or bitmap.ndim != 3 or bitmap.shape[-1] != 4:
        raise TypeError("expected uint8 (H,W,4) RGBA bitmap")
    return bitmap  # type: ignore[return-value]


def bitmap_from_buffer(width: int, height: int, buffer: Union[bytes, bytearray, Sequence[int]]) -> Bitmap:
    """
    Build a bitmap from a flat row-major RGBA buffer.
    Raises ValueError when len(buffer) != width*height*4.
    """
    width, height = int(width), int(height)
    if width < 0 or height < 0:
        raise ValueError("width and height must be non-negative")
    expected = width * height * 4
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        flat = np.frombuffer(bytes(buffer), dtype=np.uint8)
    else:
        flat = np.asarray(buffer, dtype=np.int64).reshape(-1)
        if flat.size and (flat.min() < 0 or flat.max() > 255):
            raise ValueError("buffer values must be in 0..255")
        flat = flat.astype(np.uint8)
    if flat.size != expected:
        raise ValueError(
            f"buffer length {flat.size} does not match {width}x{height}x4={expected}"
        )
    return flat.reshape(height, width, 4).copy()


def bitmap_to_buffer(bitmap: Bitmap) -> Tuple[int, int, bytes]:
    """Return (width, height, flat RGBA bytes) for a bitmap."""
    bm = assert_u8_rgba(bitmap)
    height, width = int(bm.shape[0]), int(bm.shape[1])
    return width, height, np.ascontiguousarray(bm).tobytes()


__all__ = [
    # aliases / types
    "RGBTuple",
    "RGBATuple",
    "ColourLike",
    "Bitmap",
    "U8Image",
    "Lab",
    "Palette",
    # helpers
    "rgb_to_hex",
    "hex_to_rgb",
    "coerce_to_rgb_tuple",
    "palette_to_array",
    "assert_u8_rgba",
    "bitmap_from_buffer",
    "bitmap_to_buffer",
]
