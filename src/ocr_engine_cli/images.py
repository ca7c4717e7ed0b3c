from __future__ import annotations

import io
from typing import Union

import numpy as np
from PIL import Image

ImageLike = Union[Image.Image, np.ndarray]


def image_to_bytes(image: ImageLike, fmt: str = "PNG") -> bytes:
    """Encode an in-memory image so it can travel as ``image_base64``."""
    if isinstance(image, np.ndarray):
        image = Image.fromarray(_as_uint8(image))
    if not isinstance(image, Image.Image):
        raise TypeError(f"Unsupported image type: {type(image).__name__}")
    if fmt.upper() in ("JPEG", "JPG") and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def _as_uint8(array: np.ndarray) -> np.ndarray:
    if array.dtype == np.uint8:
        return array
    if np.issubdtype(array.dtype, np.floating) and array.size and array.max() <= 1.0:
        array = array * 255.0
    return np.clip(array, 0, 255).astype(np.uint8)
