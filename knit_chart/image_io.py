from __future__ import annotations

import io
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .core_types import Bitmap, assert_u8_rgba

"""
Image I/O helpers: decode to an sRGB RGBA bitmap, encode to PNG.
"""

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]


class ImageDecodeError(ValueError):
    """Raised when image bytes cannot be decoded."""


def _convert_to_srgb_rgba(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes and ImageCms is not None:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im.convert("RGBA"),
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGBA",
            )
            if im2 is None:
                return im.convert("RGBA")
            return im2
        except (ImageCms.PyCMSError, OSError, ValueError):
            return im.convert("RGBA")

    return im.convert("RGBA")


def _decode(source: Union[Path, str, io.BytesIO], label: str) -> Bitmap:
    try:
        with Image.open(source) as im0:
            im0.load()
            im = _convert_to_srgb_rgba(im0)
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise ImageDecodeError(f"cannot decode image {label}: {exc}") from exc
    arr = np.array(im, dtype=np.uint8)
    if arr.ndim != 3 or arr.shape[0] == 0 or arr.shape[1] == 0:
        raise ImageDecodeError(f"decoded image {label} is empty")
    return arr


def load_image_rgba(path: Path) -> Bitmap:
    """Decode an image file into an (H,W,4) uint8 bitmap."""
    path = Path(path)
    if not path.is_file():
        raise ImageDecodeError(f"not a file: {path}")
    return _decode(path, path.name)


def decode_image_bytes(data: bytes) -> Bitmap:
    """Decode in-memory image bytes (upload, drop or paste payload)."""
    if not data:
        raise ImageDecodeError("no image data")
    return _decode(io.BytesIO(data), f"({len(data):,} bytes)")


def encode_png(bitmap: Bitmap) -> bytes:
    """Encode an RGBA bitmap as PNG bytes."""
    bm = np.ascontiguousarray(assert_u8_rgba(bitmap))
    buf = io.BytesIO()
    Image.fromarray(bm).save(buf, format="PNG")
    return buf.getvalue()


def save_png_rgba(path: Path, bitmap: Bitmap) -> Path:
    """Write a bitmap as PNG. A non-.png suffix is replaced."""
    path = Path(path)
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    data = encode_png(bitmap)
    path.write_bytes(data)
    return path


__all__ = [
    "ImageDecodeError",
    "load_image_rgba",
    "decode_image_bytes",
    "encode_png",
    "save_png_rgba",
]
