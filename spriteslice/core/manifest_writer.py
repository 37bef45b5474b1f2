"""Sprite-atlas manifest building and frame export."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Sequence

from . import Frame, Size
from . import image_io
from ..utils import file_tools

logger = logging.getLogger(__name__)

APP_NAME = "SpriteSlice"
MANIFEST_VERSION = "1.0"
MANIFEST_FILENAME = "data.json"


def frame_filename(prefix: str, index: int) -> str:
    return file_tools.format_frame_filename(prefix, index)


def frame_entry(frame: Frame, filename: str) -> dict[str, Any]:
    """Describe one exported frame in atlas terms."""

    w, h = frame.trimmed_size.w, frame.trimmed_size.h
    return {
        "filename": filename,
        "frame": {"x": 0, "y": 0, "w": w, "h": h},
        "rotated": False,
        "trimmed": frame.trimmed,
        "spriteSourceSize": {"x": frame.trim_offset.x, "y": frame.trim_offset.y, "w": w, "h": h},
        "sourceSize": {"w": frame.original_size.w, "h": frame.original_size.h},
        "sheetRect": frame.source_rect.to_dict(),
    }


def build_manifest(frames: Sequence[Frame], image_size: Size, prefix: str) -> dict[str, Any]:
    """Create the JSON-ready manifest for an ordered frame list."""

    return {
        "meta": {
            "app": APP_NAME,
            "version": MANIFEST_VERSION,
            "image": "spritesheet.png",
            "format": "RGBA8888",
            "size": {"w": image_size.w, "h": image_size.h},
            "scale": "1",
        },
        "frames": [frame_entry(frame, frame_filename(prefix, idx)) for idx, frame in enumerate(frames)],
    }


def write_frames(frames: Iterable[Frame], output_dir: Path, prefix: str) -> list[Path]:
    """Write each frame as ``<prefix>_NNN.png`` in order."""

    file_tools.ensure_directory(output_dir)
    paths = []
    for idx, frame in enumerate(frames):
        paths.append(image_io.save_png(frame.pixels, output_dir / frame_filename(prefix, idx)))
    logger.info("Wrote %s frame(s) to %s", len(paths), output_dir)
    return paths


def write_manifest(manifest: dict[str, Any], path: Path) -> Path:
    """Persist a manifest as indented JSON."""

    file_tools.ensure_directory(path.parent)
    path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    logger.info("Wrote manifest to %s", path)
    return path
