"""
knit_chart package.

Purpose:
  Turn any raster image into a small-palette pixel grid ("knitting chart")
  that can be edited by hand and exported as PNG. See make_chart.py for the CLI.

Public API:
  EditSession     : working grid + palette + undo history, runs the pipeline.
  ChartSettings   : resolution, colour count, dithering, edge filter, block size, seed.
  downsample      : alpha-weighted box averaging onto the grid.
  sharpen         : optional 3x3 edge enhancement before downsampling.
  extract_palette : seeded, frequency-weighted k-means in Lab.
  quantize / dither_in_place : palette mapping, direct or Floyd-Steinberg.
  colour_convert  : sRGB -> Lab and perceptual distance.
  image_io        : Pillow decode / PNG encode.

Quick start:
  from knit_chart import EditSession, ChartSettings
  session = EditSession(ChartSettings(resolution=48, max_colors=6, seed=1))
  session.load_path(Path("photo.jpg"))
  session.recolor_palette(0, "#223355")
  session.save_png(Path("knitting-pattern.png"))
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import core_types
from . import constants
from . import image_io
from . import utils

from .colour_convert import colour_distance, rgb_to_lab, to_perceptual  # noqa: E402
from .core_types import bitmap_from_buffer, bitmap_to_buffer  # noqa: E402
from .downsample import downsample, grid_size, pixelate  # noqa: E402
from .edges import sharpen  # noqa: E402
from .history import History, Snapshot  # noqa: E402
from .image_io import ImageDecodeError  # noqa: E402
from .palette_extract import extract_palette  # noqa: E402
from .pixel_map import dither_in_place, map_to_palette, quantize  # noqa: E402
from .session import ChartSettings, EditSession  # noqa: E402

__all__ = [
    "__version__",
    "colour_convert",
    "core_types",
    "constants",
    "image_io",
    "utils",
    "colour_distance",
    "rgb_to_lab",
    "to_perceptual",
    "bitmap_from_buffer",
    "bitmap_to_buffer",
    "downsample",
    "grid_size",
    "pixelate",
    "sharpen",
    "History",
    "Snapshot",
    "ImageDecodeError",
    "extract_palette",
    "dither_in_place",
    "map_to_palette",
    "quantize",
    "ChartSettings",
    "EditSession",
]
