"""
Pixel Buffer

Immutable RGBA8 frame plus the numeric helpers shared by every filter stage.

Stages never write into their input: the backing array is flagged read-only,
so a stage has to build its result in a fresh array and wrap it with
`with_rgb`. Neighbourhood reads therefore always see the pre-filter snapshot.
"""

import cv2
import numpy as np

from errors import InvalidDimensions, StageFailure

CHANNELS = 4

# Rec. 601 weights, same as cv2.COLOR_RGB2GRAY
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


class PixelBuffer:
    """
    A width x height grid of interleaved R,G,B,A bytes, row-major, no padding.

    Usage:
        buf = PixelBuffer(2, 1, bytes([255, 0, 0, 255, 0, 0, 255, 255]))
        rgb = buf.rgb()            # float copy, safe to modify
        out = buf.with_rgb(rgb * 0.5)
    """

    def __init__(self, width, height, data):
        if isinstance(data, (bytes, bytearray, memoryview)):
            flat = np.frombuffer(data, dtype=np.uint8).copy()
        else:
            flat = np.array(data, dtype=np.uint8).reshape(-1)

        width, height = int(width), int(height)
        if width <= 0 or height <= 0 or flat.size != width * height * CHANNELS:
            raise InvalidDimensions(width, height, flat.size)

        self._pixels = flat.reshape(height, width, CHANNELS)
        self._pixels.setflags(write=False)

    @classmethod
    def from_array(cls, array):
        """Wrap an (H, W, 4) uint8 array (copied)."""
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] != CHANNELS:
            raise InvalidDimensions(
                array.shape[1] if array.ndim > 1 else 0,
                array.shape[0] if array.ndim > 0 else 0,
                array.size,
            )
        return cls(array.shape[1], array.shape[0], array)

    @classmethod
    def from_bgr(cls, frame):
        """Build a buffer from an OpenCV BGR camera frame (alpha = 255)."""
        return cls.from_array(cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA))

    @classmethod
    def filled(cls, width, height, rgba):
        """Uniform buffer where every pixel is `rgba`."""
        pixels = np.empty((int(height), int(width), CHANNELS), dtype=np.uint8)
        pixels[:, :] = rgba
        return cls.from_array(pixels)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def pixels(self) -> np.ndarray:
        """Read-only (H, W, 4) view of the samples."""
        return self._pixels

    def rgb(self) -> np.ndarray:
        """Colour channels as a writable float64 (H, W, 3) copy."""
        return self._pixels[:, :, :3].astype(np.float64)

    def luma(self) -> np.ndarray:
        return luma(self.rgb())

    def with_rgb(self, values):
        """
        New buffer with these colour channels and this buffer's alpha.

        Values are rounded half-up and clamped to [0, 255]. Wrong shapes and
        non-finite values raise StageFailure, so no corrupt frame escapes.
        """
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.height, self.width, 3):
            raise StageFailure(
                f"expected shape {(self.height, self.width, 3)}, got {values.shape}"
            )
        if not np.all(np.isfinite(values)):
            raise StageFailure("non-finite channel value produced")

        out = np.empty_like(self._pixels)
        out[:, :, :3] = clamp_channels(values)
        out[:, :, 3] = self._pixels[:, :, 3]
        return PixelBuffer.from_array(out)

    def to_bytes(self) -> bytes:
        return self._pixels.tobytes()

    def to_bgr(self) -> np.ndarray:
        """OpenCV BGR frame for display."""
        return cv2.cvtColor(self._pixels, cv2.COLOR_RGBA2BGR)

    def __len__(self):
        return self._pixels.size

    def __eq__(self, other):
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self._pixels.shape == other._pixels.shape and np.array_equal(
            self._pixels, other._pixels
        )

    __hash__ = None

    def __repr__(self):
        return f"PixelBuffer({self.width}x{self.height})"


# ---------------------------------------------------------------------------
# Shared numeric helpers
# ---------------------------------------------------------------------------

def clamp_channels(values) -> np.ndarray:
    """Round half-up (like Math.round) and clamp into uint8."""
    return np.clip(np.floor(np.asarray(values, dtype=np.float64) + 0.5), 0, 255).astype(np.uint8)


def luma(rgb) -> np.ndarray:
    return np.asarray(rgb, dtype=np.float64) @ LUMA_WEIGHTS


def pad_edges(values, radius):
    """Edge-replicate the two spatial axes by `radius`."""
    pad = [(radius, radius), (radius, radius)] + [(0, 0)] * (values.ndim - 2)
    return np.pad(values, pad, mode='edge')


def offset_view(padded, radius, dy, dx, height, width):
    """Slice of an edge-padded array aligned so [y, x] reads source[y+dy, x+dx]."""
    return padded[radius + dy:radius + dy + height, radius + dx:radius + dx + width]


def window_offsets(radius):
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            yield dy, dx


def has_interior(height, width, border) -> bool:
    return height > 2 * border and width > 2 * border


def merge_interior(original, filtered, border):
    """
    Copy of `original` whose interior comes from `filtered`.

    The outer `border` rows/columns keep their original values.
    """
    out = np.array(original, dtype=np.float64, copy=True)
    height, width = out.shape[:2]
    if not has_interior(height, width, border):
        return out
    out[border:height - border, border:width - border] = \
        filtered[border:height - border, border:width - border]
    return out

