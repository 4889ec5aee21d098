"""
Sharpen Filters

Unsharp-family sharpeners, Sobel-gated edge boosts and local-contrast detail
stages. Kernel-based stages leave a border as wide as their kernel radius
untouched.
"""

import cv2
import numpy as np

from pixel_buffer import PixelBuffer, has_interior, luma, merge_interior

EDGE_THRESHOLD = 10.0
EDGE_BOOST_STRENGTH = 0.5

MICRO_CONTRAST_WINDOW = 5
MICRO_CONTRAST_THRESHOLD = 10.0
MICRO_CONTRAST_GAIN = 0.3

DETAIL_MAP_SCALE = 50.0
DETAIL_MAP_GAIN = 0.2

NATURAL_BLEND = 0.2  # share of the filtered value


def _natural_kernel():
    """5x5 near-identity kernel: centre 1.8, negative ring rescaled to sum to 1."""
    ring = -np.array([
        [0.003, 0.013, 0.022, 0.013, 0.003],
        [0.013, 0.059, 0.097, 0.059, 0.013],
        [0.022, 0.097, 0.000, 0.097, 0.022],
        [0.013, 0.059, 0.097, 0.059, 0.013],
        [0.003, 0.013, 0.022, 0.013, 0.003],
    ])
    centre = 1.8
    kernel = ring * ((1.0 - centre) / ring.sum())
    kernel[2, 2] = centre
    return kernel


NATURAL_KERNEL = _natural_kernel()

SUPERRES_KERNEL = np.array([
    [-0.1, -0.1, -0.1],
    [-0.1,  1.8, -0.1],
    [-0.1, -0.1, -0.1],
])


# ---------------------------------------------------------------------------
# Blur / unsharp family
# ---------------------------------------------------------------------------

def gaussian_blur_rgb(rgb, radius):
    """Separable, normalised Gaussian of size 2r+1 with replicated edges."""
    kernel = cv2.getGaussianKernel(2 * radius + 1, -1, cv2.CV_64F)
    return cv2.sepFilter2D(rgb, -1, kernel, kernel, borderType=cv2.BORDER_REPLICATE)


def gaussian_blur(buf: PixelBuffer, radius=1) -> PixelBuffer:
    if radius <= 0:
        return buf
    return buf.with_rgb(gaussian_blur_rgb(buf.rgb(), radius))


def unsharp_rgb(rgb, strength, radius):
    mask = rgb - gaussian_blur_rgb(rgb, radius)
    return rgb + mask * strength


def unsharp_mask(buf: PixelBuffer, strength, radius=1) -> PixelBuffer:
    """out = original + (original - blurred) * strength. Identity for strength <= 0."""
    if strength <= 0:
        return buf
    return buf.with_rgb(unsharp_rgb(buf.rgb(), strength, radius))


def high_pass_sharpen(buf: PixelBuffer, strength) -> PixelBuffer:
    """Unsharp mask over a wider (radius 2) blur, lifting coarser detail."""
    return unsharp_mask(buf, strength, radius=2)


def natural_sharpen(buf: PixelBuffer) -> PixelBuffer:
    """
    Fixed 5x5 kernel convolved with the original, then blended 0.8/0.2 with it.

    No explicit blur-and-subtract step; the kernel's negative ring plays the
    part of the mask.
    """
    if not has_interior(buf.height, buf.width, 2):
        return buf

    rgb = buf.rgb()
    filtered = cv2.filter2D(rgb, -1, NATURAL_KERNEL, borderType=cv2.BORDER_REPLICATE)
    blended = rgb * (1.0 - NATURAL_BLEND) + filtered * NATURAL_BLEND
    return buf.with_rgb(merge_interior(rgb, blended, 2))


def superres_sharpen(buf: PixelBuffer, sharpness=100) -> PixelBuffer:
    """3x3 detail kernel blended in with factor sharpness/100."""
    if not has_interior(buf.height, buf.width, 1):
        return buf

    factor = sharpness / 100.0
    rgb = buf.rgb()
    filtered = cv2.filter2D(rgb, -1, SUPERRES_KERNEL, borderType=cv2.BORDER_REPLICATE)
    blended = rgb * (1.0 - factor) + filtered * factor
    return buf.with_rgb(merge_interior(rgb, blended, 1))


# ---------------------------------------------------------------------------
# Sobel-gated edges
# ---------------------------------------------------------------------------

def sobel_gradients(gray):
    """Horizontal and vertical 3x3 Sobel responses of a single-channel image."""
    gray = np.asarray(gray, dtype=np.float64)
    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
    return gx, gy


def gradient_magnitude(gray):
    gx, gy = sobel_gradients(gray)
    return np.sqrt(gx * gx + gy * gy)


def sobel_edge_boost(buf: PixelBuffer, strength=EDGE_BOOST_STRENGTH,
                     threshold=EDGE_THRESHOLD) -> PixelBuffer:
    """
    Push edge pixels away from their 3x3 mean by 1 + strength * magnitude/255.

    Pixels whose luma gradient magnitude is at or below `threshold` are left
    alone, which keeps flat regions flat.
    """
    if not has_interior(buf.height, buf.width, 1):
        return buf

    rgb = buf.rgb()
    magnitude = gradient_magnitude(luma(rgb))
    mean = cv2.blur(rgb, (3, 3))

    factor = 1.0 + strength * magnitude / 255.0
    boosted = mean + (rgb - mean) * factor[:, :, np.newaxis]
    filtered = np.where((magnitude > threshold)[:, :, np.newaxis], boosted, rgb)
    return buf.with_rgb(merge_interior(rgb, filtered, 1))


def edge_preserving_sharpen(buf: PixelBuffer, strength, threshold=EDGE_THRESHOLD) -> PixelBuffer:
    """Scale strong-edge pixels by 1 + strength * magnitude/100."""
    if not has_interior(buf.height, buf.width, 1):
        return buf

    rgb = buf.rgb()
    magnitude = gradient_magnitude(luma(rgb))
    factor = np.where(magnitude > threshold, 1.0 + strength * magnitude / 100.0, 1.0)
    return buf.with_rgb(merge_interior(rgb, rgb * factor[:, :, np.newaxis], 1))


# ---------------------------------------------------------------------------
# Local contrast
# ---------------------------------------------------------------------------

def micro_contrast_detail(buf: PixelBuffer, window=MICRO_CONTRAST_WINDOW,
                          threshold=MICRO_CONTRAST_THRESHOLD,
                          gain=MICRO_CONTRAST_GAIN) -> PixelBuffer:
    """
    Amplify textured pixels only.

    Local contrast is the per-channel max - min over a window x window
    neighbourhood. When any channel exceeds `threshold`, the pixel is scaled
    by 1 + (sum of the three contrasts / 100) * gain.
    """
    border = window // 2
    if not has_interior(buf.height, buf.width, border):
        return buf

    rgb = buf.rgb()
    kernel = np.ones((window, window), np.uint8)
    local_min = cv2.erode(rgb, kernel)
    local_max = cv2.dilate(rgb, kernel)
    contrast = local_max - local_min

    textured = np.any(contrast > threshold, axis=2)
    factor = 1.0 + contrast.sum(axis=2) / 100.0 * gain
    filtered = np.where(textured[:, :, np.newaxis], rgb * factor[:, :, np.newaxis], rgb)
    return buf.with_rgb(merge_interior(rgb, filtered, border))


def detail_map(gray):
    """Mean absolute difference to the four axis neighbours; 0 on the border."""
    gray = np.asarray(gray, dtype=np.float64)
    detail = np.zeros_like(gray)
    height, width = gray.shape
    if not has_interior(height, width, 1):
        return detail

    centre = gray[1:-1, 1:-1]
    detail[1:-1, 1:-1] = (
        np.abs(centre - gray[1:-1, :-2])
        + np.abs(centre - gray[1:-1, 2:])
        + np.abs(centre - gray[:-2, 1:-1])
        + np.abs(centre - gray[2:, 1:-1])
    ) / 4.0
    return detail


def detail_map_boost(buf: PixelBuffer, gain=DETAIL_MAP_GAIN, scale=DETAIL_MAP_SCALE) -> PixelBuffer:
    """Brighten each pixel in proportion to its high-frequency detail."""
    rgb = buf.rgb()
    strength = detail_map(luma(rgb)) / scale
    return buf.with_rgb(rgb * (1.0 + strength * gain)[:, :, np.newaxis])
