"""
Denoise Filters

Neighbourhood smoothing stages. Every stage reads the untouched input
snapshot and leaves a border as wide as its window radius unmodified.

Cost notes:
- bilateral_denoise: O(W*H*(2r+1)^2), fine for live frames at r=3.
- non_local_means_denoise: O(W*H*search^2*patch^2). This is the expensive
  path; run it on a background worker, never on the thread that delivers
  live frames.
"""

import cv2
import numpy as np

from pixel_buffer import (
    PixelBuffer, has_interior, merge_interior, offset_view, pad_edges, window_offsets,
)

BILATERAL_RADIUS = 3
NLM_SEARCH_RADIUS = 5
NLM_PATCH_RADIUS = 1
MEDIAN_MAX_RADIUS = 3
VARIANCE_THRESHOLD = 50.0
VARIANCE_BLEND = 0.7


def bilateral_rgb(rgb, radius, sigma_space, sigma_color):
    """
    Bilateral-weighted average of every pixel's (2r+1)^2 window.

    Range distance is the Euclidean RGB distance to the window centre. The
    centre always has weight 1, so the normaliser never vanishes.
    """
    height, width = rgb.shape[:2]
    padded = pad_edges(rgb, radius)
    acc = np.zeros_like(rgb)
    total = np.zeros((height, width))

    for dy, dx in window_offsets(radius):
        neighbour = offset_view(padded, radius, dy, dx, height, width)
        spatial = np.exp(-(dy * dy + dx * dx) / (2.0 * sigma_space ** 2))
        color_dist2 = np.sum((neighbour - rgb) ** 2, axis=2)
        weight = spatial * np.exp(-color_dist2 / (2.0 * sigma_color ** 2))
        acc += neighbour * weight[:, :, np.newaxis]
        total += weight

    return acc / total[:, :, np.newaxis]


def bilateral_denoise(buf: PixelBuffer, strength=0.5, radius=BILATERAL_RADIUS) -> PixelBuffer:
    """
    Edge-preserving smoothing. sigma_space = 3*strength, sigma_color = 10*strength.
    strength <= 0 leaves the frame unchanged.
    """
    if strength <= 0 or not has_interior(buf.height, buf.width, radius):
        return buf

    rgb = buf.rgb()
    filtered = bilateral_rgb(rgb, radius, 3.0 * strength, 10.0 * strength)
    return buf.with_rgb(merge_interior(rgb, filtered, radius))


def non_local_means_denoise(buf: PixelBuffer, strength=0.5,
                            search_radius=NLM_SEARCH_RADIUS,
                            patch_radius=NLM_PATCH_RADIUS) -> PixelBuffer:
    """
    Patch-similarity weighted average over a (2*search_radius+1)^2 window.

    weight = exp(-sum_sq_patch_diff / h^2), h = 10 * strength. The pixel
    itself joins the average with weight 1. Reads past the frame edge are
    edge-replicated.
    """
    h = 10.0 * strength
    if h <= 0 or not has_interior(buf.height, buf.width, patch_radius):
        return buf

    rgb = buf.rgb()
    height, width = rgb.shape[:2]
    reach = search_radius + patch_radius
    padded = pad_edges(rgb, reach)
    patch = 2 * patch_radius + 1

    # Image extended by the patch margin, so box sums cover whole patches
    region_h = height + 2 * patch_radius
    region_w = width + 2 * patch_radius
    base = offset_view(padded, search_radius, 0, 0, region_h, region_w)

    acc = rgb.copy()
    total = np.ones((height, width))

    for sy, sx in window_offsets(search_radius):
        if sy == 0 and sx == 0:
            continue
        shifted = offset_view(padded, search_radius, sy, sx, region_h, region_w)
        diff2 = np.sum((base - shifted) ** 2, axis=2)
        patch_dist = cv2.boxFilter(diff2, -1, (patch, patch), normalize=False,
                                   borderType=cv2.BORDER_REPLICATE)
        patch_dist = patch_dist[patch_radius:patch_radius + height,
                                patch_radius:patch_radius + width]

        weight = np.exp(-patch_dist / (h * h))
        centre = shifted[patch_radius:patch_radius + height, patch_radius:patch_radius + width]
        acc += centre * weight[:, :, np.newaxis]
        total += weight

    filtered = acc / total[:, :, np.newaxis]
    return buf.with_rgb(merge_interior(rgb, filtered, patch_radius))


def median_radius(noise_reduction) -> int:
    """0..100% noise reduction -> median radius 0..2, capped at 3."""
    return int(min(MEDIAN_MAX_RADIUS, max(0, np.floor(noise_reduction / 50.0 + 0.5))))


def median_denoise(buf: PixelBuffer, noise_reduction=0) -> PixelBuffer:
    radius = median_radius(noise_reduction)
    if radius == 0:
        return buf

    rgb = np.ascontiguousarray(buf.pixels[:, :, :3])
    return buf.with_rgb(cv2.medianBlur(rgb, 2 * radius + 1))


def adaptive_noise_reduction(buf: PixelBuffer, threshold=VARIANCE_THRESHOLD,
                             blend=VARIANCE_BLEND) -> PixelBuffer:
    """
    Variance-gated smoothing: pixels whose 3x3 neighbourhood variance exceeds
    `threshold` in any channel are blended towards the local mean.
    """
    if not has_interior(buf.height, buf.width, 1):
        return buf

    rgb = buf.rgb()
    mean = cv2.blur(rgb, (3, 3))
    mean_sq = cv2.blur(rgb * rgb, (3, 3))
    variance = mean_sq - mean * mean

    noisy = np.any(variance > threshold, axis=2)
    blended = rgb * (1.0 - blend) + mean * blend
    filtered = np.where(noisy[:, :, np.newaxis], blended, rgb)
    return buf.with_rgb(merge_interior(rgb, filtered, 1))
