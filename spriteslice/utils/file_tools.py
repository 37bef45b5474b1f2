"""Filesystem helpers."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> Path:
    """Create a directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)
    return path


def default_output_dir(image_path: Path) -> Path:
    """Return a default frames directory next to the image file."""

    return image_path.with_name(f"{image_path.stem}_frames")


def format_frame_filename(prefix: str, index: int, suffix: str = ".png") -> str:
    """Format an exported frame filename such as ``sprite_007.png``."""

    if not suffix.startswith("."):
        suffix = "." + suffix
    return f"{prefix}_{index:03d}{suffix}"
