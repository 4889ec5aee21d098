"""
Tests for the detail score used in processing reports.
"""

import unittest
import numpy as np

from detail_estimator import estimate_detail, resolution_increase_percent
from pixel_buffer import PixelBuffer
from tone_filters import brightness_contrast


class TestDetailEstimator(unittest.TestCase):
    def test_identical_copy_is_zero(self):
        rng = np.random.default_rng(5)
        pixels = rng.integers(0, 256, (10, 10, 4), dtype=np.uint8)
        original = PixelBuffer.from_array(pixels)
        copy = PixelBuffer.from_array(pixels.copy())
        self.assertEqual(resolution_increase_percent(copy, original), 0)

    def test_flat_buffer_has_no_detail(self):
        flat = PixelBuffer.filled(6, 6, (50, 60, 70, 255))
        self.assertEqual(estimate_detail(flat), 0)
        self.assertEqual(resolution_increase_percent(flat, flat), 0)

    def test_detail_from_nothing(self):
        flat = PixelBuffer.filled(4, 4, (50, 50, 50, 255))
        pixels = flat.pixels.copy()
        pixels[1, 1, :3] = 90
        self.assertEqual(resolution_increase_percent(PixelBuffer.from_array(pixels), flat), 100)

    def test_known_score(self):
        pixels = np.zeros((3, 3, 4), dtype=np.uint8)
        pixels[1, 1, :3] = (10, 20, 30)
        # only (1,1) is interior: right and lower neighbours are 0
        self.assertEqual(estimate_detail(PixelBuffer.from_array(pixels)), 120)

    def test_stronger_contrast_reports_increase(self):
        rng = np.random.default_rng(6)
        pixels = rng.integers(100, 156, (10, 10, 4), dtype=np.uint8)
        original = PixelBuffer.from_array(pixels)
        stretched = brightness_contrast(original, 100, 200)
        self.assertGreater(resolution_increase_percent(stretched, original), 50)

    def test_tiny_buffer(self):
        self.assertEqual(estimate_detail(PixelBuffer.filled(2, 2, (1, 2, 3, 4))), 0)


if __name__ == '__main__':
    unittest.main()
