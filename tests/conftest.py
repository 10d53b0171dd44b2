"""
Shared fixtures for knit_chart tests.
"""

import io

import numpy as np
import pytest
from PIL import Image

RED = (255, 0, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


def solid(width, height, rgb, alpha=255):
    """Uniform RGBA bitmap."""
    bm = np.zeros((height, width, 4), dtype=np.uint8)
    bm[..., :3] = rgb
    bm[..., 3] = alpha
    return bm


@pytest.fixture
def red_blue_2x2():
    """Top row red, bottom row blue, fully opaque."""
    bm = solid(2, 2, RED)
    bm[1, :, :3] = BLUE
    return bm


@pytest.fixture
def transparent_4x4():
    return np.zeros((4, 4, 4), dtype=np.uint8)


@pytest.fixture
def framed_16x16():
    """White 16x16 with a black 8x8 square in the middle."""
    bm = solid(16, 16, WHITE)
    bm[4:12, 4:12, :3] = BLACK
    return bm


@pytest.fixture
def gradient_32x32():
    """Smooth colour gradient with many distinct colours."""
    ys, xs = np.mgrid[0:32, 0:32]
    bm = np.zeros((32, 32, 4), dtype=np.uint8)
    bm[..., 0] = (xs * 8).astype(np.uint8)
    bm[..., 1] = (ys * 8).astype(np.uint8)
    bm[..., 2] = ((xs + ys) * 4).astype(np.uint8)
    bm[..., 3] = 255
    return bm


@pytest.fixture
def png_bytes(framed_16x16):
    buf = io.BytesIO()
    Image.fromarray(framed_16x16).save(buf, format="PNG")
    return buf.getvalue()
