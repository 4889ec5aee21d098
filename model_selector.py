"""
Model Selector

Picks an enhancement profile for "auto" requests from two cheap statistics
gathered in one pass over the frame.
"""

import numpy as np

from enhancement_profile import EnhancementProfile
from pixel_buffer import PixelBuffer

NOISE_THRESHOLD = 10.0
LOW_CONTRAST_THRESHOLD = 20.0
MID_GREY = 128.0


def analyze_frame(buf: PixelBuffer):
    """
    Returns (noise_level, contrast_level).

    noise_level: mean over pixels of the average absolute R,G,B difference to
    the previous pixel in scan order (the first pixel counts as 0).
    contrast_level: mean distance of each pixel's (R+G+B)/3 from mid grey.
    """
    flat = buf.rgb().reshape(-1, 3)
    count = flat.shape[0]

    step = np.abs(np.diff(flat, axis=0)).mean(axis=1)
    noise_level = float(step.sum()) / count

    brightness = flat.mean(axis=1)
    contrast_level = float(np.abs(brightness - MID_GREY).mean())
    return noise_level, contrast_level


def select_profile(buf: PixelBuffer) -> EnhancementProfile:
    """
    Noisy frames -> HYBRID (non-local means first), flat low-contrast frames
    -> ULTRA_DETAIL (texture and detail boost), everything else ->
    SUPER_RESOLUTION (sharpening).
    """
    noise_level, contrast_level = analyze_frame(buf)

    if noise_level > NOISE_THRESHOLD:
        return EnhancementProfile.HYBRID
    elif contrast_level < LOW_CONTRAST_THRESHOLD:
        return EnhancementProfile.ULTRA_DETAIL
    else:
        return EnhancementProfile.SUPER_RESOLUTION
