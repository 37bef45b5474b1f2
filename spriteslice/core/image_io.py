"""Image loading and PNG encoding using Pillow."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from . import PixelBuffer
from .errors import InvalidImageError, ProcessingError
from ..utils import file_tools, validators

logger = logging.getLogger(__name__)


def load_image(path: Path) -> PixelBuffer:
    """Decode an image file into an RGBA buffer."""

    validated_path = validators.validate_image_path(path)
    try:
        with Image.open(validated_path) as image:
            buffer = from_image(image)
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError(validated_path, reason=f"Could not decode: {exc}") from exc

    logger.debug("Loaded %s -> %sx%s", validated_path, buffer.width, buffer.height)
    return buffer


def decode_image(data: bytes, name: str = "<upload>") -> PixelBuffer:
    """Decode in-memory image bytes into an RGBA buffer."""

    try:
        with Image.open(io.BytesIO(data)) as image:
            return from_image(image)
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError(Path(name), reason=f"Could not decode: {exc}") from exc


def from_image(image: Image.Image) -> PixelBuffer:
    rgba = image.convert("RGBA")
    return PixelBuffer(np.array(rgba, dtype=np.uint8))


def to_image(buffer: PixelBuffer) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(buffer.pixels))


def encode_png(buffer: PixelBuffer) -> bytes:
    """Encode a buffer as PNG bytes."""

    if buffer.width == 0 or buffer.height == 0:
        raise ProcessingError("Cannot encode an empty buffer")
    handle = io.BytesIO()
    to_image(buffer).save(handle, format="PNG")
    return handle.getvalue()


def save_png(buffer: PixelBuffer, path: Path) -> Path:
    """Persist a buffer as PNG."""

    file_tools.ensure_directory(path.parent)
    path.write_bytes(encode_png(buffer))
    return path
