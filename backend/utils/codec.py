# template-compositor/backend/utils/codec.py

from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, EncodeError


# Pillow raises all of these for truncated / corrupt / unsupported input.
_DECODE_FAILURES = (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError)


def decode_image(image_bytes: bytes, role: str) -> Image.Image:
    """Decode an encoded image buffer into a fully loaded RGBA image."""
    try:
        img = Image.open(io.BytesIO(image_bytes))
        return _ensure_rgba(img)
    except _DECODE_FAILURES as e:
        raise DecodeError(role, str(e)) from e


def probe_dimensions(image_bytes: bytes, role: str) -> Tuple[int, int]:
    """Read (width, height) from the image header without decoding pixels."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return img.size
    except _DECODE_FAILURES as e:
        raise DecodeError(role, str(e)) from e


def encode_png(img: Image.Image) -> bytes:
    out = io.BytesIO()
    try:
        # PNG is lossless and keeps the alpha channel
        _ensure_rgba(img).save(out, format="PNG")
    except (OSError, ValueError) as e:
        raise EncodeError(str(e)) from e
    return out.getvalue()


def _ensure_rgba(img: Image.Image) -> Image.Image:
    if img.mode == "RGBA":
        img.load()
        return img
    return img.convert("RGBA")
