# unmatte/image_io.py
from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps

from .core_types import U8Image, assert_rgba_image

"""
Image I/O helpers (RGBA in sRGB), PNG encoding, and transparent-margin trim.
"""

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]


def _convert_to_srgb_rgba(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes and ImageCms is not None and im.mode in ("RGB", "RGBA"):
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im,
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode=im.mode,
            )
            if im2 is not None:
                return im2.convert("RGBA")
        except (ImageCms.PyCMSError, OSError, ValueError):
            pass

    return im.convert("RGBA")


def _to_rgba_array(im: Image.Image) -> U8Image:
    return np.array(_convert_to_srgb_rgba(im), dtype=np.uint8)


def load_image_rgba(path: Path) -> U8Image:
    """Decode any Pillow-readable file to a uint8 (H,W,4) RGBA array."""
    with Image.open(path) as im0:
        return _to_rgba_array(im0)


def decode_image_bytes(data: bytes) -> U8Image:
    """Decode an in-memory image to a uint8 (H,W,4) RGBA array."""
    with Image.open(io.BytesIO(data)) as im0:
        return _to_rgba_array(im0)


def encode_png_bytes(rgba: U8Image) -> bytes:
    """Encode an RGBA array as PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(assert_rgba_image(rgba)).save(buf, format="PNG")
    return buf.getvalue()


def save_image_rgba(path: Path, rgba: U8Image) -> Path:
    """Write PNG; a non-.png suffix is replaced. Returns the written path."""
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    Image.fromarray(assert_rgba_image(rgba)).save(path)
    return path


def trim_to_content(rgba: U8Image) -> U8Image:
    """
    Crop to the bounding box of pixels with alpha > 0.

    Empty or fully transparent input gives a 1x1 transparent image.
    """
    if rgba.shape[0] == 0 or rgba.shape[1] == 0:
        return np.zeros((1, 1, 4), dtype=np.uint8)
    visible = rgba[..., 3] > 0
    rows = np.flatnonzero(visible.any(axis=1))
    cols = np.flatnonzero(visible.any(axis=0))
    if rows.size == 0:
        return np.zeros((1, 1, 4), dtype=np.uint8)
    y0, y1 = int(rows[0]), int(rows[-1]) + 1
    x0, x1 = int(cols[0]), int(cols[-1]) + 1
    return np.ascontiguousarray(rgba[y0:y1, x0:x1])


__all__ = [
    "load_image_rgba",
    "decode_image_bytes",
    "encode_png_bytes",
    "save_image_rgba",
    "trim_to_content",
]
