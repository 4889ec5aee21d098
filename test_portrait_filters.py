"""
Tests for the skin and eye heuristics.
"""

import unittest
import numpy as np

from pixel_buffer import PixelBuffer
from portrait_filters import (
    eye_highlight, is_skin_tone, selective_sharpen, skin_smoothing, skin_tone_mask,
    skin_tone_warm,
)

SKIN = (220, 170, 140)
SKY = (100, 150, 220)


class TestSkinToneClassifier(unittest.TestCase):
    def test_typical_skin(self):
        self.assertTrue(is_skin_tone(*SKIN))

    def test_non_skin(self):
        self.assertFalse(is_skin_tone(*SKY))
        self.assertFalse(is_skin_tone(128, 128, 128))
        self.assertFalse(is_skin_tone(0, 0, 0))
        self.assertFalse(is_skin_tone(255, 0, 0))  # fails the green/blue lower bounds

    def test_deterministic(self):
        results = {is_skin_tone(*SKIN) for _ in range(20)}
        self.assertEqual(results, {True})

    def test_array_matches_scalar(self):
        rng = np.random.default_rng(7)
        samples = rng.integers(0, 256, (200, 3))
        mask = skin_tone_mask(samples[:, 0], samples[:, 1], samples[:, 2])
        for (r, g, b), flag in zip(samples, mask):
            self.assertEqual(is_skin_tone(r, g, b), bool(flag))


class TestPortraitStages(unittest.TestCase):
    def test_skin_tone_warm_only_skin(self):
        pixels = np.zeros((1, 2, 4), dtype=np.uint8)
        pixels[0, 0] = SKIN + (255,)
        pixels[0, 1] = SKY + (255,)
        out = skin_tone_warm(PixelBuffer.from_array(pixels))

        self.assertEqual(list(out.pixels[0, 0]), [231, 170, 133, 255])
        self.assertEqual(list(out.pixels[0, 1]), list(SKY) + [255])

    def test_skin_smoothing_ignores_non_skin(self):
        rng = np.random.default_rng(3)
        pixels = np.full((8, 8, 4), 255, dtype=np.uint8)
        pixels[:, :, :3] = rng.integers(0, 60, (8, 8, 3))  # too dark for skin
        buf = PixelBuffer.from_array(pixels)
        self.assertIs(skin_smoothing(buf), buf)

    def test_skin_smoothing_flat_skin_unchanged(self):
        buf = PixelBuffer.filled(8, 8, SKIN + (255,))
        self.assertEqual(skin_smoothing(buf), buf)

    def test_skin_smoothing_softens_blemish(self):
        pixels = np.full((7, 7, 4), 255, dtype=np.uint8)
        pixels[:, :, :3] = SKIN
        pixels[3, 3, :3] = (200, 150, 120)
        out = skin_smoothing(PixelBuffer.from_array(pixels))
        self.assertGreater(out.pixels[3, 3, 0], 200)

    def test_eye_highlight_dark_spot(self):
        pixels = np.full((5, 5, 4), 200, dtype=np.uint8)
        pixels[2, 2, :3] = 60
        out = eye_highlight(PixelBuffer.from_array(pixels))

        self.assertEqual(list(out.pixels[2, 2]), [69, 72, 78, 200])
        self.assertEqual(list(out.pixels[2, 1]), [200, 200, 200, 200])

    def test_eye_highlight_flat_unchanged(self):
        buf = PixelBuffer.filled(5, 5, (90, 90, 90, 255))
        self.assertEqual(eye_highlight(buf), buf)

    def test_selective_sharpen_guard(self):
        buf = PixelBuffer.filled(4, 4, SKY + (255,))
        self.assertIs(selective_sharpen(buf, 0), buf)

    def test_selective_sharpen_skips_skin(self):
        pixels = np.full((6, 6, 4), 255, dtype=np.uint8)
        pixels[:, :, :3] = SKIN
        pixels[:, 3:, :3] = (230, 180, 150)
        buf = PixelBuffer.from_array(pixels)
        self.assertEqual(selective_sharpen(buf, 1.0), buf)


if __name__ == '__main__':
    unittest.main()
