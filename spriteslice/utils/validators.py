"""Validation helpers for user inputs."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..core import ColorRGB, GridSettings, Rect
from ..core.color_model import hex_to_rgb
from ..core.errors import InvalidImageError, ValidationError


ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"}
MAX_TOLERANCE = 255
MAX_FEATHER = 50


def validate_image_path(path: Path) -> Path:
    """Ensure the image path exists and appears to be a supported format."""

    if not path:
        raise InvalidImageError(Path("<unset>"), reason="No path provided")
    if not path.exists():
        raise InvalidImageError(path, reason="File not found")
    if path.suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
        raise InvalidImageError(path, reason="Unsupported format")
    return path


def parse_optional_int(value: str | None, field: str) -> Optional[int]:
    """Parse a positive integer from a string value, if provided."""

    if value is None or value == "":
        return None
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be an integer") from exc
    if parsed <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return parsed


def parse_hex_color(value: str | None, field: str = "Key color") -> Optional[ColorRGB]:
    """Parse a strict ``#rrggbb`` string for interactive input, rejecting malformed values."""

    if value is None or value.strip() == "":
        return None
    color = hex_to_rgb(value.strip())
    if color is None:
        raise ValidationError(f"{field} must be a hex color like #ff00ff")
    return color


def validate_tolerance(value: Optional[float], field: str = "Tolerance") -> None:
    """Ensure tolerance is within a safe range."""

    if value is None:
        return
    if value < 0 or value > MAX_TOLERANCE:
        raise ValidationError(f"{field} must be between 0 and {MAX_TOLERANCE}")


def validate_feather(value: Optional[float], field: str = "Feather") -> None:
    if value is None:
        return
    if value < 0 or value > MAX_FEATHER:
        raise ValidationError(f"{field} must be between 0 and {MAX_FEATHER}")


def validate_min_size(min_width: int, min_height: int) -> None:
    """Island size thresholds must be at least one pixel."""

    if min_width < 1 or min_height < 1:
        raise ValidationError("Minimum island width and height must be at least 1")


def validate_grid(grid: GridSettings) -> None:
    """Reject grids whose cursor would never advance."""

    if grid.width > 0 and grid.width + grid.spacing_x <= 0:
        raise ValidationError("Cell width plus horizontal spacing must be greater than zero")
    if grid.height > 0 and grid.height + grid.spacing_y <= 0:
        raise ValidationError("Cell height plus vertical spacing must be greater than zero")


def validate_rect(rect: Rect) -> Rect:
    """Reject rectangles without a positive area."""

    if rect.w <= 0 or rect.h <= 0:
        raise ValidationError(f"Rect {rect.id} must have positive width and height, got {rect.w}x{rect.h}")
    return rect
