from pathlib import Path

import pytest

from spriteslice.core import ColorRGB, GridSettings, Rect, RectSource
from spriteslice.core.errors import InvalidImageError, ValidationError
from spriteslice.utils import validators


def test_validate_image_path_checks_existence_and_extension(tmp_path: Path):
    good = tmp_path / "sheet.PNG"
    good.write_bytes(b"")
    assert validators.validate_image_path(good) == good

    with pytest.raises(InvalidImageError, match="File not found"):
        validators.validate_image_path(tmp_path / "missing.png")

    other = tmp_path / "notes.txt"
    other.write_text("x")
    with pytest.raises(InvalidImageError, match="Unsupported format"):
        validators.validate_image_path(other)


def test_parse_optional_int():
    assert validators.parse_optional_int("", "Width") is None
    assert validators.parse_optional_int("5", "Width") == 5
    with pytest.raises(ValidationError, match="Width must be greater than zero"):
        validators.parse_optional_int("0", "Width")
    with pytest.raises(ValidationError, match="integer"):
        validators.parse_optional_int("abc", "Width")


def test_parse_hex_color_is_strict():
    assert validators.parse_hex_color(" #00FF00 ") == ColorRGB(0, 255, 0)
    assert validators.parse_hex_color("") is None
    with pytest.raises(ValidationError):
        validators.parse_hex_color("green")


def test_tolerance_and_feather_ranges():
    validators.validate_tolerance(0)
    validators.validate_tolerance(255)
    validators.validate_feather(50)
    with pytest.raises(ValidationError):
        validators.validate_tolerance(256)
    with pytest.raises(ValidationError):
        validators.validate_feather(51)
    with pytest.raises(ValidationError):
        validators.validate_feather(-1)


def test_validate_rect_requires_positive_area():
    rect = Rect(RectSource.MANUAL, "a", 0, 0, 1, 1)
    assert validators.validate_rect(rect) is rect
    with pytest.raises(ValidationError):
        validators.validate_rect(Rect(RectSource.MANUAL, "a", 0, 0, 1, -3))


def test_validate_grid_allows_degenerate_cells():
    validators.validate_grid(GridSettings(width=0, height=0, spacing_x=-5))
    with pytest.raises(ValidationError):
        validators.validate_grid(GridSettings(width=4, height=4, spacing_y=-10))


def test_validate_min_size():
    validators.validate_min_size(1, 1)
    with pytest.raises(ValidationError):
        validators.validate_min_size(0, 3)
