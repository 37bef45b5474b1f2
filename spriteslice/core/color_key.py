"""Color-key background removal and opacity masks."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np

from . import ColorKeySettings, ColorRGB, PixelBuffer
from .color_model import color_distance_squared_array

logger = logging.getLogger(__name__)


def apply_color_key(buffer: PixelBuffer, target: ColorRGB, tolerance: float, feather: float) -> None:
    """Make pixels near ``target`` transparent, in place.

    Pixels within ``tolerance`` lose all alpha. Pixels inside the feather band
    keep a share of their alpha that grows linearly from 0 at the tolerance
    radius to the original value at ``tolerance + feather``. RGB is untouched.
    """

    tol = max(0.0, float(tolerance))
    feather_px = max(0.0, float(feather))
    dist_sq = color_distance_squared_array(buffer.pixels, target)
    alpha = buffer.alpha

    keyed = dist_sq <= tol * tol
    if feather_px > 0:
        band = ~keyed & (dist_sq <= (tol + feather_px) ** 2)
        if band.any():
            t = (np.sqrt(dist_sq[band]) - tol) / feather_px
            # round half up
            alpha[band] = np.floor(alpha[band].astype(np.float64) * t + 0.5).astype(np.uint8)
    alpha[keyed] = 0


def apply_color_keys(
    buffer: PixelBuffer, targets: Iterable[ColorRGB], tolerance: float, feather: float
) -> None:
    """Apply each key color in turn on the already-keyed buffer."""

    for target in targets:
        apply_color_key(buffer, target, tolerance, feather)


def apply_color_key_settings(buffer: PixelBuffer, settings: ColorKeySettings) -> None:
    apply_color_keys(buffer, settings.colors, settings.tolerance, settings.feather)


def build_opacity_mask(buffer: PixelBuffer, color_key: Optional[ColorKeySettings] = None) -> np.ndarray:
    """Return a boolean ``alpha > 0`` mask, keyed on a copy when ``color_key`` is set."""

    if color_key is None or not color_key.colors:
        return buffer.alpha > 0
    keyed = buffer.copy()
    apply_color_key_settings(keyed, color_key)
    mask = keyed.alpha > 0
    logger.debug(
        "Built keyed opacity mask with %s color(s): %s of %s pixels opaque",
        len(color_key.colors),
        int(mask.sum()),
        mask.size,
    )
    return mask
