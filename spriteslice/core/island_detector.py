"""Connected-component ("island") detection over an opacity mask."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from . import ColorKeySettings, PixelBuffer, Rect, RectSource
from .color_key import build_opacity_mask

logger = logging.getLogger(__name__)


def detect_islands(
    buffer: PixelBuffer,
    min_width: int = 2,
    min_height: int = 2,
    color_key: Optional[ColorKeySettings] = None,
) -> list[Rect]:
    """Return bounding rects of 4-connected opaque regions in row-major discovery order.

    Regions narrower than ``min_width`` or shorter than ``min_height`` are
    dropped. With ``color_key`` set, keyed-out pixels count as transparent.
    """

    min_width = max(1, int(min_width))
    min_height = max(1, int(min_height))
    width, height = buffer.width, buffer.height
    mask = build_opacity_mask(buffer, color_key)
    return _label_mask(mask, width, height, min_width, min_height)


def _label_mask(mask: np.ndarray, width: int, height: int, min_width: int, min_height: int) -> list[Rect]:
    opaque = mask.ravel().tobytes()
    visited = bytearray(width * height)
    rects: list[Rect] = []
    discarded = 0

    for seed in np.flatnonzero(mask).tolist():
        if visited[seed]:
            continue
        visited[seed] = 1
        stack = [seed]
        min_x = max_x = seed % width
        min_y = max_y = seed // width

        while stack:
            current = stack.pop()
            cy, cx = divmod(current, width)
            if cx < min_x:
                min_x = cx
            elif cx > max_x:
                max_x = cx
            if cy < min_y:
                min_y = cy
            elif cy > max_y:
                max_y = cy

            if cy > 0:
                up = current - width
                if opaque[up] and not visited[up]:
                    visited[up] = 1
                    stack.append(up)
            if cy < height - 1:
                down = current + width
                if opaque[down] and not visited[down]:
                    visited[down] = 1
                    stack.append(down)
            if cx > 0:
                left = current - 1
                if opaque[left] and not visited[left]:
                    visited[left] = 1
                    stack.append(left)
            if cx < width - 1:
                right = current + 1
                if opaque[right] and not visited[right]:
                    visited[right] = 1
                    stack.append(right)

        w = max_x - min_x + 1
        h = max_y - min_y + 1
        if w >= min_width and h >= min_height:
            rects.append(Rect(RectSource.ISLAND, str(len(rects)), min_x, min_y, w, h))
        else:
            discarded += 1

    logger.debug("Detected %s island(s) in %sx%s image, discarded %s below size", len(rects), width, height, discarded)
    return rects
