from __future__ import annotations

"""
Colour conversions and perceptual distance (D65).

Exports:
  rgb_to_linear(srgb)
  rgb_to_lab(rgb)
  to_perceptual(colour)
  colour_distance(c1, c2)
  lab_distance_sq(src_lab, pal_lab)
  nearest_palette_indices(src_lab, pal_lab)
"""

import math
from typing import Tuple

import numpy as np

from .core_types import ColourLike, Lab, coerce_to_rgb_tuple

# Reference white (D65) on the 0..100 XYZ scale
XN, YN, ZN = 95.047, 100.000, 108.883

LAB_EPSILON = 0.008856
LAB_KAPPA_SLOPE = 7.787


# sRGB to linear


def rgb_to_linear(srgb: np.ndarray) -> np.ndarray:
    """
    Convert sRGB (non-linear 0..1) to linear RGB (0..1). Vectorised.
    Args:
      srgb: array in 0..1 (float), any shape
    Returns:
      float32 array, same shape
    """
    srgb_f = np.asarray(srgb, dtype=np.float32)
    with np.errstate(invalid="ignore"):
        linear = np.where(
            srgb_f <= 0.04045, srgb_f / 12.92, ((srgb_f + 0.055) / 1.055) ** 2.4
        )
    return linear.astype(np.float32, copy=False)


# sRGB to Lab (D65)


def rgb_to_lab(rgb: np.ndarray) -> Lab:
    """
    sRGB to CIE Lab (D65).
    Accepts uint8 or float channels on the 0..255 scale. Preserves shape (...,3).
    Returns float32.
    """
    rgb_f = np.asarray(rgb, dtype=np.float32) / 255.0

    r_lin = rgb_to_linear(rgb_f[..., 0]) * 100.0
    g_lin = rgb_to_linear(rgb_f[..., 1]) * 100.0
    b_lin = rgb_to_linear(rgb_f[..., 2]) * 100.0

    # Linear RGB -> XYZ (D65)
    X = 0.4124564 * r_lin + 0.3575761 * g_lin + 0.1804375 * b_lin
    Y = 0.2126729 * r_lin + 0.7151522 * g_lin + 0.0721750 * b_lin
    Z = 0.0193339 * r_lin + 0.1191920 * g_lin + 0.9503041 * b_lin

    x, y, z = X / XN, Y / YN, Z / ZN

    def f(t: np.ndarray) -> np.ndarray:
        with np.errstate(invalid="ignore"):
            return np.where(
                t > LAB_EPSILON, np.cbrt(t), LAB_KAPPA_SLOPE * t + 16.0 / 116.0
            ).astype(np.float32, copy=False)

    fx, fy, fz = f(x), f(y), f(z)

    out = np.empty(rgb_f.shape, dtype=np.float32)
    out[..., 0] = 116.0 * fy - 16.0
    out[..., 1] = 500.0 * (fx - fy)
    out[..., 2] = 200.0 * (fy - fz)
    return out


def to_perceptual(colour: ColourLike) -> Tuple[float, float, float]:
    """Single colour (hex or (r, g, b[, a])) to an (L, a, b) tuple. Alpha is ignored."""
    lab = rgb_to_lab(np.array(coerce_to_rgb_tuple(colour), dtype=np.float32))
    return (float(lab[0]), float(lab[1]), float(lab[2]))


def colour_distance(c1: ColourLike, c2: ColourLike) -> float:
    """Euclidean distance between two colours in Lab."""
    l1, a1, b1 = to_perceptual(c1)
    l2, a2, b2 = to_perceptual(c2)
    return math.sqrt((l1 - l2) ** 2 + (a1 - a2) ** 2 + (b1 - b2) ** 2)


# Vectorised lookups


def lab_distance_sq(src_lab: Lab, pal_lab: Lab) -> np.ndarray:
    """Pairwise squared Lab distances: [N,3] x [P,3] -> [N,P] float64."""
    src = np.asarray(src_lab, dtype=np.float64).reshape(-1, 3)
    pal = np.asarray(pal_lab, dtype=np.float64).reshape(-1, 3)
    diff = pal[None, :, :] - src[:, None, :]
    return np.sum(diff * diff, axis=2)


def nearest_palette_indices(src_lab: Lab, pal_lab: Lab) -> np.ndarray:
    """For each source Lab row, index of the nearest palette row. Ties go to the lower index."""
    return np.argmin(lab_distance_sq(src_lab, pal_lab), axis=1).astype(np.int32)


__all__ = [
    "XN",
    "YN",
    "ZN",
    "rgb_to_linear",
    "rgb_to_lab",
    "to_perceptual",
    "colour_distance",
    "lab_distance_sq",
    "nearest_palette_indices",
]
