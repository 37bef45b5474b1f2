"""Fixed-size grid rectangle enumeration."""

from __future__ import annotations

import logging

from . import GridSettings, Rect, RectSource
from ..utils import validators

logger = logging.getLogger(__name__)


def calculate_grid_rects(image_width: int, image_height: int, grid: GridSettings) -> list[Rect]:
    """Walk the grid cursor row by row; cells are not inspected for content."""

    if grid.width <= 0 or grid.height <= 0:
        return []
    validators.validate_grid(grid)

    rects: list[Rect] = []
    y = grid.margin_y
    while y + grid.height <= image_height:
        x = grid.margin_x
        while x + grid.width <= image_width:
            rects.append(Rect(RectSource.GRID, str(len(rects)), x, y, grid.width, grid.height))
            x += grid.width + grid.spacing_x
        y += grid.height + grid.spacing_y

    logger.debug("Grid %sx%s over %sx%s produced %s cell(s)", grid.width, grid.height, image_width, image_height, len(rects))
    return rects


def grid_dimensions(image_width: int, image_height: int, grid: GridSettings) -> tuple[int, int]:
    """Return ``(columns, rows)`` for the grid that fits the image."""

    if grid.width <= 0 or grid.height <= 0:
        return 0, 0
    validators.validate_grid(grid)
    columns = _count_steps(grid.margin_x, grid.width, grid.spacing_x, image_width)
    rows = _count_steps(grid.margin_y, grid.height, grid.spacing_y, image_height)
    if columns == 0 or rows == 0:
        return 0, 0
    return columns, rows


def _count_steps(start: int, size: int, spacing: int, limit: int) -> int:
    count = 0
    position = start
    while position + size <= limit:
        count += 1
        position += size + spacing
    return count
