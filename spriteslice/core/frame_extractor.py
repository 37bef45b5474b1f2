"""Per-rectangle frame materialization: slice, key, bounds check, trim."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Iterator, Optional

from . import Frame, Offset, PixelBuffer, ProcessingSettings, Rect, Size
from .bounds_scanner import scan_bounds
from .color_key import apply_color_key_settings
from .color_model import color_key_settings
from ..utils import validators

logger = logging.getLogger(__name__)


def extract_frame(source: PixelBuffer, rect: Rect, processing: ProcessingSettings) -> Optional[Frame]:
    """Materialize one frame, or return None when the slice has no opaque pixel left."""

    validators.validate_rect(rect)
    sliced = source.crop(rect.x, rect.y, rect.w, rect.h)

    color_key = color_key_settings(processing)
    if color_key is not None:
        apply_color_key_settings(sliced, color_key)

    bounds = scan_bounds(sliced)
    if bounds is None:
        logger.debug("Skipping %s: no opaque pixels", rect.id)
        return None

    original_size = Size(rect.w, rect.h)
    if processing.auto_trim:
        pixels = sliced.crop(bounds.x, bounds.y, bounds.w, bounds.h)
        trim_offset = Offset(bounds.x, bounds.y)
        trimmed_size = Size(bounds.w, bounds.h)
    else:
        pixels = sliced
        trim_offset = Offset(0, 0)
        trimmed_size = original_size

    return Frame(
        id=rect.id,
        pixels=pixels,
        source_rect=rect,
        trim_offset=trim_offset,
        trimmed_size=trimmed_size,
        original_size=original_size,
    )


def iter_frames(source: PixelBuffer, rects: Iterable[Rect], processing: ProcessingSettings) -> Iterator[Frame]:
    """Yield frames one-by-one in rect order, skipping empty slices."""

    for rect in rects:
        frame = extract_frame(source, rect, processing)
        if frame is not None:
            yield frame


def extract_frames(
    source: PixelBuffer,
    rects: Iterable[Rect],
    processing: ProcessingSettings,
    workers: int | None = None,
) -> list[Frame]:
    """Extract all frames; output order follows ``rects`` minus empty slices."""

    rect_list = list(rects)
    if workers and workers > 1 and len(rect_list) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda rect: extract_frame(source, rect, processing), rect_list))
        frames = [frame for frame in results if frame is not None]
    else:
        frames = list(iter_frames(source, rect_list, processing))

    logger.info("Extracted %s frame(s) from %s rect(s)", len(frames), len(rect_list))
    return frames
