#!/usr/bin/env python3

"""hdrtools-rgba_unittest.py: hdrtools-rgba unittest.

# runme
# $ ./hdrtools-rgba_unittest.py
"""

import importlib
import numpy as np
import sys

hdrtools_rgba = importlib.import_module("hdrtools-rgba")
hdrtools_tga = importlib.import_module("hdrtools-tga")
hdrtools_unittest = importlib.import_module("hdrtools-unittest")


remapTestCases = [
    # one row: the flip is a no-op, checks channel order
    {
        "name": "2x1",
        "width": 2,
        "height": 1,
        "samples": np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], dtype=np.float16),
        "rgba": (
            (1.0, 2.0, 3.0, 1.0),
            (4.0, 5.0, 6.0, 1.0),
        ),
    },
    # one column: checks the flip
    {
        "name": "1x2",
        "width": 1,
        "height": 2,
        "samples": np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], dtype=np.float16),
        "rgba": (
            (4.0, 5.0, 6.0, 1.0),
            (1.0, 2.0, 3.0, 1.0),
        ),
    },
    {
        "name": "2x2",
        "width": 2,
        "height": 2,
        "samples": np.array(
            [0.5, 0.25, 0.125, -0.5, -0.25, -0.125, 8.0, 16.0, 32.0, 0.0, -0.0, 65504.0],
            dtype=np.float16,
        ),
        "rgba": (
            (8.0, 16.0, 32.0, 1.0),
            (0.0, -0.0, 65504.0, 1.0),
            (0.5, 0.25, 0.125, 1.0),
            (-0.5, -0.25, -0.125, 1.0),
        ),
    },
    # special values travel untouched, alpha stays opaque
    {
        "name": "special-values",
        "width": 1,
        "height": 1,
        "samples": np.array([np.inf, -np.inf, 6.0e-8], dtype=np.float16),
        "rgba": ((np.inf, -np.inf, 6.0e-8, 1.0),),
    },
]


class MainTest(hdrtools_unittest.TestCase):

    def testRemapTestCases(self):
        """rgba remap test."""
        function_name = "testRemapTestCases"

        for test_case in self.getTestCases(function_name, remapTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            width, height = test_case["width"], test_case["height"]
            source_image = hdrtools_tga.SourceImage(
                width, height, 48, test_case["samples"]
            )
            destination_image = hdrtools_rgba.remap(source_image)
            self.assertEqual(width, destination_image.width)
            self.assertEqual(height, destination_image.height)
            self.assertEqual(width * height, len(destination_image.pixels))
            self.assertEqual(hdrtools_rgba.RGBA_DTYPE, destination_image.pixels.dtype)
            expected = np.array(test_case["rgba"], dtype=np.float16)
            actual = destination_image.pixels.view("<f2").reshape(-1, 4)
            self.compareHalf(actual, expected, test_case["name"])

    def testRemapFlipInvariant(self):
        """rgba pixel (r, c) comes from source row height - 1 - r."""
        width, height = 5, 4
        rng = np.random.default_rng(17)
        samples = rng.uniform(-100, 100, width * height * 3).astype(np.float16)
        source_image = hdrtools_tga.SourceImage(width, height, 48, samples)
        grid = source_image.grid()
        destination_image = hdrtools_rgba.remap(source_image)
        for row in range(height):
            for col in range(width):
                r, g, b, a = destination_image.pixel(row, col)
                expected_r, expected_g, expected_b = grid[height - 1 - row, col]
                self.assertEqual((expected_r, expected_g, expected_b), (r, g, b))
                self.assertEqual(1.0, a)

    def testRemapAlphaConstancy(self):
        """rgba alpha is opaque whatever the source holds."""
        samples = np.array([np.nan, 0.0, -1.0] * 6, dtype=np.float16)
        source_image = hdrtools_tga.SourceImage(3, 2, 48, samples)
        destination_image = hdrtools_rgba.remap(source_image)
        np.testing.assert_array_equal(
            destination_image.pixels["a"], np.ones(6, dtype=np.float16)
        )

    def testRemapBitExact(self):
        """rgba copy keeps every 16-bit pattern, NaN payloads included."""
        bits = np.array(
            [0x7E01, 0xFC00, 0x0001, 0x8000, 0x7BFF, 0x3C00], dtype="<u2"
        )
        source_image = hdrtools_tga.SourceImage(1, 2, 48, bits.view("<f2"))
        destination_image = hdrtools_rgba.remap(source_image)
        records = destination_image.pixels.view("<u2").reshape(-1, 4)
        np.testing.assert_array_equal(
            records[:, :3],
            [[0x8000, 0x7BFF, 0x3C00], [0x7E01, 0xFC00, 0x0001]],
        )
        np.testing.assert_array_equal(records[:, 3], [0x3C00, 0x3C00])

    def testComponent(self):
        """rgba component is a (height, width) view."""
        samples = np.arange(12, dtype=np.float16)
        source_image = hdrtools_tga.SourceImage(2, 2, 48, samples)
        destination_image = hdrtools_rgba.remap(source_image)
        red = destination_image.component("r")
        self.assertEqual((2, 2), red.shape)
        self.assertTrue(np.shares_memory(red, destination_image.pixels))
        np.testing.assert_array_equal(red, [[6.0, 9.0], [0.0, 3.0]])


if __name__ == "__main__":
    hdrtools_unittest.main(sys.argv)
