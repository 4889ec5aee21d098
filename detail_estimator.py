"""
Detail Estimator

Gradient-energy score used to report how much "detail" enhancement added.
Reporting only; nothing in the pipeline is steered by it.
"""

import numpy as np

from pixel_buffer import PixelBuffer


def estimate_detail(buf: PixelBuffer) -> float:
    """
    Sum, over interior pixels, of absolute R,G,B differences to the right
    and lower neighbours.
    """
    rgb = buf.rgb()
    height, width = rgb.shape[:2]
    if height < 3 or width < 3:
        return 0.0

    centre = rgb[1:-1, 1:-1]
    right = rgb[1:-1, 2:]
    below = rgb[2:, 1:-1]
    return float(np.abs(centre - right).sum() + np.abs(centre - below).sum())


def resolution_increase_percent(enhanced: PixelBuffer, original: PixelBuffer) -> int:
    """
    round(detail(enhanced) / detail(original) * 100 - 100).

    A featureless original yields 0 when the output is still featureless and
    100 when enhancement introduced any detail.
    """
    enhanced_detail = estimate_detail(enhanced)
    original_detail = estimate_detail(original)

    if original_detail == 0:
        return 0 if enhanced_detail == 0 else 100
    return int(np.floor(enhanced_detail / original_detail * 100.0 - 100.0 + 0.5))
