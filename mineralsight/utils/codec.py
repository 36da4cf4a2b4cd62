"""Base64 image transport for the HTTP API. No engine imports."""

from __future__ import annotations

import base64
import binascii
import io

import numpy as np
from numpy.typing import NDArray
from PIL import Image, UnidentifiedImageError


class ImageDecodeError(ValueError):
    pass


def decode_image(data: str) -> NDArray[np.uint8]:
    """Decode a base64 PNG/JPEG/BMP (optionally a data: URL) into an RGB array."""
    if "," in data and data.lstrip().startswith("data:"):
        data = data.split(",", 1)[1]
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Image is not valid base64: {e}") from e
    try:
        with Image.open(io.BytesIO(raw)) as img:
            return np.asarray(img.convert("RGB"), dtype=np.uint8).copy()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Unsupported image data: {e}") from e


def encode_png(pixels: NDArray[np.uint8]) -> str:
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")
