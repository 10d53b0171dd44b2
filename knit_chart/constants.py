"""
Tunables and configuration ranges used across the project.

- Grid and palette ranges (RESOLUTION_*, MAX_COLORS_*)
- Visibility threshold shared by palette extraction and mapping
- Clustering, dithering, sharpening and background-removal knobs
- Edit history bound and export names
"""
from __future__ import annotations

from typing import Tuple

# =========================
# Grid / palette ranges
# =========================
RESOLUTION_MIN = 8
RESOLUTION_MAX = 128
DEFAULT_RESOLUTION = 32

MAX_COLORS_MIN = 2
MAX_COLORS_MAX = 16
DEFAULT_MAX_COLORS = 8

# Painted block edge in working-grid cells. 1 paints a single cell.
DEFAULT_BLOCK_SIZE = 1

# =========================
# Visibility
# =========================
# A pixel is visible when alpha > VISIBLE_ALPHA_MIN.
VISIBLE_ALPHA_MIN = 0

# =========================
# Palette extraction (k-means)
# =========================
KMEANS_MAX_ITER = 20

# Stop when no centroid channel moves more than this (0..255 units).
KMEANS_CONVERGENCE = 1.0

# =========================
# Error diffusion: Floyd-Steinberg (weights sum to 16)
# =========================
KERNEL_FS: Tuple[Tuple[int, int, float], ...] = (
    (1, 0, 7 / 16),
    (-1, 1, 3 / 16),
    (0, 1, 5 / 16),
    (1, 1, 1 / 16),
)

# =========================
# Edge enhancement
# =========================
SHARPEN_CENTER = 5.0
SHARPEN_NEIGHBOUR = -1.0

# =========================
# Background removal
# =========================
# Device-RGB Euclidean distance below which a pixel matches a corner colour.
BACKGROUND_THRESHOLD = 40.0

# =========================
# Session
# =========================
HISTORY_LIMIT = 100

DEFAULT_PAINT_COLOUR = (0, 0, 0)

DEFAULT_EXPORT_NAME = "knitting-pattern.png"
OUTPUT_SUFFIX = "_chart"

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"}
