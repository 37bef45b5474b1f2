"""Alpha bounding-box scans."""

from __future__ import annotations

from typing import Optional

import numpy as np

from . import Bounds, PixelBuffer, Rect


def scan_bounds(buffer: PixelBuffer) -> Optional[Bounds]:
    """Return the tight box around pixels with alpha > 0, or None for a fully transparent buffer."""

    return _bounds_of(buffer.alpha > 0)


def scan_bounds_region(buffer: PixelBuffer, rect: Rect) -> Optional[Bounds]:
    """Scan a sub-region of ``buffer``; the result is local to ``rect``."""

    x0, y0 = max(0, rect.x), max(0, rect.y)
    x1, y1 = min(buffer.width, rect.x + rect.w), min(buffer.height, rect.y + rect.h)
    if x1 <= x0 or y1 <= y0:
        return None
    found = _bounds_of(buffer.alpha[y0:y1, x0:x1] > 0)
    if found is None:
        return None
    return Bounds(found.x + x0 - rect.x, found.y + y0 - rect.y, found.w, found.h)


def _bounds_of(opaque: np.ndarray) -> Optional[Bounds]:
    rows = np.flatnonzero(opaque.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(opaque.any(axis=0))
    min_y, max_y = int(rows[0]), int(rows[-1])
    min_x, max_x = int(cols[0]), int(cols[-1])
    return Bounds(min_x, min_y, max_x - min_x + 1, max_y - min_y + 1)
