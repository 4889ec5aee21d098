"""
Portrait Filters

Colour-ratio and local-contrast heuristics standing in for face analysis.
They are NOT detectors:

- The skin gate also accepts warm surfaces (wood, brick, tan fabric), which
  then get smoothed and warmed along with real skin.
- The eye heuristic brightens any small dark spot (pupils, nostrils, text,
  dark buttons).
"""

import numpy as np

from denoise_filters import bilateral_rgb
from pixel_buffer import PixelBuffer, has_interior, luma, merge_interior
from sharpen_filters import unsharp_rgb

SKIN_SMOOTH_RADIUS = 2
SKIN_SIGMA_SPACE = 2.0
SKIN_SIGMA_COLOR = 20.0

WARM_FACTORS = np.array([1.05, 1.0, 0.95])

EYE_DARKNESS_RATIO = 0.7
EYE_HIGHLIGHT = np.array([1.15, 1.2, 1.3])


def skin_tone_mask(r, g, b):
    """
    Element-wise skin candidate test; works on scalars and arrays alike.

    Absolute bounds plus ratios against the pixel's own average brightness:
    red clearly above average, blue below it.
    """
    r = np.asarray(r, dtype=np.float64)
    g = np.asarray(g, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    avg = (r + g + b) / 3.0
    safe_avg = np.where(avg > 0, avg, 1.0)

    spread = np.maximum(np.maximum(r, g), b) - np.minimum(np.minimum(r, g), b)
    return (
        (avg > 0)
        & (r > 95) & (g > 40) & (b > 20)
        & (r > g) & (r > b)
        & (np.abs(r - g) > 15)
        & (spread > 15)
        & (r / safe_avg > 1.1)
        & (b / safe_avg < 0.95)
    )


def is_skin_tone(r, g, b) -> bool:
    return bool(skin_tone_mask(r, g, b))


def _skin_mask(rgb):
    return skin_tone_mask(rgb[:, :, 0], rgb[:, :, 1], rgb[:, :, 2])


def skin_smoothing(buf: PixelBuffer, radius=SKIN_SMOOTH_RADIUS) -> PixelBuffer:
    """Bilateral blur kept only on skin-gated pixels."""
    if not has_interior(buf.height, buf.width, radius):
        return buf

    rgb = buf.rgb()
    skin = _skin_mask(rgb)
    if not skin.any():
        return buf

    smoothed = bilateral_rgb(rgb, radius, SKIN_SIGMA_SPACE, SKIN_SIGMA_COLOR)
    filtered = np.where(skin[:, :, np.newaxis], smoothed, rgb)
    return buf.with_rgb(merge_interior(rgb, filtered, radius))


def eye_highlight(buf: PixelBuffer) -> PixelBuffer:
    """
    Brighten and cool pixels much darker than their four axis neighbours
    (luma below 0.7x the neighbour average).
    """
    if not has_interior(buf.height, buf.width, 1):
        return buf

    rgb = buf.rgb()
    gray = luma(rgb)
    neighbours = np.zeros_like(gray)
    neighbours[1:-1, 1:-1] = (
        gray[1:-1, :-2] + gray[1:-1, 2:] + gray[:-2, 1:-1] + gray[2:, 1:-1]
    ) / 4.0

    dark = gray < EYE_DARKNESS_RATIO * neighbours
    filtered = np.where(dark[:, :, np.newaxis], rgb * EYE_HIGHLIGHT, rgb)
    return buf.with_rgb(merge_interior(rgb, filtered, 1))


def selective_sharpen(buf: PixelBuffer, strength, radius=1) -> PixelBuffer:
    """Unsharp mask on everything except skin (hair, eyes, clothing edges)."""
    if strength <= 0:
        return buf

    rgb = buf.rgb()
    sharpened = unsharp_rgb(rgb, strength, radius)
    skin = _skin_mask(rgb)
    return buf.with_rgb(np.where(skin[:, :, np.newaxis], rgb, sharpened))


def skin_tone_warm(buf: PixelBuffer) -> PixelBuffer:
    """Slightly more red, slightly less blue on skin pixels."""
    rgb = buf.rgb()
    skin = _skin_mask(rgb)
    if not skin.any():
        return buf
    return buf.with_rgb(np.where(skin[:, :, np.newaxis], rgb * WARM_FACTORS, rgb))
