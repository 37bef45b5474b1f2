"""Hex/RGB conversion and color distance helpers."""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence, Union

import numpy as np

from . import ColorKeySettings, ColorRGB, ProcessingSettings

_HEX_PATTERN = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


def hex_to_rgb(value: object) -> Optional[ColorRGB]:
    """Parse ``#rrggbb`` (leading ``#`` optional); anything else yields None."""

    if not isinstance(value, str):
        return None
    match = _HEX_PATTERN.fullmatch(value)
    if not match:
        return None
    r, g, b = (int(part, 16) for part in match.groups())
    return ColorRGB(r, g, b)


def parse_hex_colors(values: Iterable[object]) -> list[ColorRGB]:
    """Convert a list of hex strings, dropping malformed entries."""

    colors = []
    for value in values or ():
        color = hex_to_rgb(value)
        if color is not None:
            colors.append(color)
    return colors


def color_key_settings(processing: ProcessingSettings) -> Optional[ColorKeySettings]:
    """Return the active key settings, or None when keying is off or no color parses."""

    if not processing.color_key_enabled:
        return None
    colors = parse_hex_colors(processing.color_key_colors)
    if not colors:
        return None
    return ColorKeySettings(
        colors=tuple(colors),
        tolerance=processing.color_key_tolerance,
        feather=processing.color_key_feather,
    )


def color_distance_squared(pixel: Union[ColorRGB, Sequence[int]], target: ColorRGB) -> int:
    """Squared euclidean distance over R, G and B; alpha is ignored."""

    if isinstance(pixel, ColorRGB):
        r, g, b = pixel.r, pixel.g, pixel.b
    else:
        r, g, b = int(pixel[0]), int(pixel[1]), int(pixel[2])
    return (r - target.r) ** 2 + (g - target.g) ** 2 + (b - target.b) ** 2


def color_distance_squared_array(rgb: np.ndarray, target: ColorRGB) -> np.ndarray:
    """Vectorised :func:`color_distance_squared` over an ``(..., 3)`` array."""

    diff = rgb[..., :3].astype(np.int32) - np.array([target.r, target.g, target.b], dtype=np.int32)
    return np.einsum("...i,...i->...", diff, diff)
