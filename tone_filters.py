"""
Tone Filters

Per-pixel colour and brightness stages. None of them looks at neighbours,
so they touch every pixel including the frame border. Alpha is never changed.
"""

import numpy as np

from pixel_buffer import PixelBuffer, luma

# Night vision phosphor tint (R, G, B multipliers on grey)
GREEN_TINT = np.array([0.2, 1.0, 0.2])

SATURATION_BOOST = 1.1
NEUTRAL_SPREAD = 20


def brightness_contrast(buf: PixelBuffer, brightness=100, contrast=100) -> PixelBuffer:
    """
    out = ((in * brightness/100) - 128) * contrast/100 + 128

    Identity at brightness=100, contrast=100.
    """
    rgb = buf.rgb()
    out = (rgb * (brightness / 100.0) - 128.0) * (contrast / 100.0) + 128.0
    return buf.with_rgb(out)


def build_gamma_table(gamma) -> np.ndarray:
    """256-entry lookup: table[v] = round(255 * (v/255) ** gamma)."""
    levels = np.arange(256, dtype=np.float64) / 255.0
    return np.clip(np.floor(255.0 * np.power(levels, gamma) + 0.5), 0, 255)


def gamma_correction(buf: PixelBuffer, gamma=1.0) -> PixelBuffer:
    table = build_gamma_table(gamma)
    rgb = buf.pixels[:, :, :3]
    return buf.with_rgb(table[rgb])


def grayscale(buf: PixelBuffer) -> PixelBuffer:
    gray = luma(buf.rgb())
    return buf.with_rgb(np.repeat(gray[:, :, np.newaxis], 3, axis=2))


def brightness_boost(buf: PixelBuffer, percent=100) -> PixelBuffer:
    """Scale all colour channels by percent/100."""
    return buf.with_rgb(buf.rgb() * (percent / 100.0))


def green_tint(buf: PixelBuffer) -> PixelBuffer:
    """Push a grey frame towards phosphor green using its luma."""
    gray = luma(buf.rgb())
    return buf.with_rgb(gray[:, :, np.newaxis] * GREEN_TINT)


def color_differentiation(buf: PixelBuffer) -> PixelBuffer:
    """
    Mild saturation boost around each pixel's own average.

    Near-neutral pixels (all channel pairs closer than 20) are additionally
    warmed a touch so greys separate from each other.
    """
    rgb = buf.rgb()
    avg = rgb.mean(axis=2, keepdims=True)
    out = avg + (rgb - avg) * SATURATION_BOOST

    r, g, b = rgb[:, :, 0], rgb[:, :, 1], rgb[:, :, 2]
    neutral = (
        (np.abs(r - g) < NEUTRAL_SPREAD)
        & (np.abs(g - b) < NEUTRAL_SPREAD)
        & (np.abs(b - r) < NEUTRAL_SPREAD)
    )
    out[:, :, 0] = np.where(neutral, out[:, :, 0] * 1.02, out[:, :, 0])
    out[:, :, 2] = np.where(neutral, out[:, :, 2] * 0.98, out[:, :, 2])
    return buf.with_rgb(out)
