#!/usr/bin/env python3

"""hdrtools-tga_unittest.py: hdrtools-tga unittest.

# runme
# $ ./hdrtools-tga_unittest.py
"""

import importlib
import numpy as np
import sys

hdrtools_common = importlib.import_module("hdrtools-common")
hdrtools_tga = importlib.import_module("hdrtools-tga")
hdrtools_unittest = importlib.import_module("hdrtools-unittest")


# 12-byte preamble: uncompressed true-color, no color map, origin (0, 0)
PREAMBLE = b"\x00\x00\x02\x00\x00\x00\x00\x00\x00\x00\x00\x00"

# half-float samples (little-endian)
H_0_0 = b"\x00\x00"
H_0_25 = b"\x00\x34"
H_0_5 = b"\x00\x38"
H_1_0 = b"\x00\x3c"
H_M1_0 = b"\x00\xbc"
H_2_0 = b"\x00\x40"
H_3_0 = b"\x00\x42"
H_4_0 = b"\x00\x44"
H_INF = b"\x00\x7c"


tgaReadTestCases = [
    {
        "name": "2x1",
        "debug": 0,
        "contents": PREAMBLE
        + b"\x02\x00\x01\x00\x30\x00"
        + H_1_0
        + H_2_0
        + H_0_5
        + H_M1_0
        + H_0_25
        + H_3_0,
        "width": 2,
        "height": 1,
        "grid": np.array(
            [
                [[1.0, 2.0, 0.5], [-1.0, 0.25, 3.0]],
            ],
            dtype=np.float16,
        ),
    },
    {
        "name": "1x2",
        "debug": 0,
        "contents": PREAMBLE
        + b"\x01\x00\x02\x00\x30\x00"
        + H_1_0
        + H_2_0
        + H_0_5
        + H_4_0
        + H_0_0
        + H_INF,
        "width": 1,
        "height": 2,
        "grid": np.array(
            [
                [[1.0, 2.0, 0.5]],
                [[4.0, 0.0, np.inf]],
            ],
            dtype=np.float16,
        ),
    },
    {
        "name": "preamble-ignored",
        "debug": 0,
        # RLE image type, non-zero color map spec and origin: all ignored
        "contents": b"\x00\x01\x0a\x01\x00\x02\x00\x10\x05\x00\x07\x00"
        + b"\x01\x00\x01\x00\x30\x20"
        + H_1_0
        + H_2_0
        + H_3_0,
        "width": 1,
        "height": 1,
        "grid": np.array(
            [
                [[1.0, 2.0, 3.0]],
            ],
            dtype=np.float16,
        ),
    },
    {
        "name": "trailing-footer",
        "debug": 1,
        "contents": PREAMBLE
        + b"\x01\x00\x01\x00\x30\x00"
        + H_0_25
        + H_0_5
        + H_1_0
        + b"\x00" * 8
        + b"TRUEVISION-XFILE.\x00",
        "width": 1,
        "height": 1,
        "grid": np.array(
            [
                [[0.25, 0.5, 1.0]],
            ],
            dtype=np.float16,
        ),
    },
]

tgaReadErrorTestCases = [
    {
        "name": "24bpp",
        "contents": PREAMBLE + b"\x01\x00\x01\x00\x18\x00" + b"\x10\x20\x30",
        "short_read": "error",
        "exception": hdrtools_common.UnsupportedFormatError,
    },
    {
        "name": "32bpp",
        "contents": PREAMBLE + b"\x01\x00\x01\x00\x20\x00" + H_1_0 + H_1_0,
        "short_read": "zero-fill",
        "exception": hdrtools_common.UnsupportedFormatError,
    },
    {
        "name": "truncated-header",
        "contents": PREAMBLE + b"\x01\x00",
        "short_read": "error",
        "exception": hdrtools_common.IoError,
    },
    {
        "name": "empty",
        "contents": b"",
        "short_read": "zero-fill",
        "exception": hdrtools_common.IoError,
    },
    {
        "name": "short-payload",
        "contents": PREAMBLE + b"\x02\x00\x01\x00\x30\x00" + H_1_0 + H_2_0 + H_3_0,
        "short_read": "error",
        "exception": hdrtools_common.IoError,
    },
]

tgaShortReadTestCases = [
    {
        "name": "missing-pixel",
        "contents": PREAMBLE
        + b"\x02\x00\x01\x00\x30\x00"
        + H_1_0
        + H_2_0
        + H_3_0
        + H_4_0,
        "samples_read": 4,
        "samples": np.array([1.0, 2.0, 3.0, 4.0, 0.0, 0.0], dtype=np.float16),
    },
    {
        "name": "odd-byte",
        "contents": PREAMBLE
        + b"\x01\x00\x01\x00\x30\x00"
        + H_0_5
        + H_0_25
        + b"\x00",
        "samples_read": 2,
        "samples": np.array([0.5, 0.25, 0.0], dtype=np.float16),
    },
    {
        "name": "header-only",
        "contents": PREAMBLE + b"\x01\x00\x01\x00\x30\x00",
        "samples_read": 0,
        "samples": np.array([0.0, 0.0, 0.0], dtype=np.float16),
    },
]


class MainTest(hdrtools_unittest.TestCase):

    def writeInfile(self, contents):
        infile = self.getTempFile(prefix="hdrtools-tga_unittest.infile.", suffix=".tga")
        with open(infile, "wb") as f:
            f.write(contents)
        return infile

    def testTgaReadTestCases(self):
        """tga read test."""
        function_name = "testTgaReadTestCases"

        for test_case in self.getTestCases(function_name, tgaReadTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            infile = self.writeInfile(test_case["contents"])
            with open(self.getTempFile("hdrtools-tga_unittest.log.", ".txt"), "w") as logfd:
                source_image = hdrtools_tga.read_tga(
                    infile, logfd=logfd, debug=test_case["debug"]
                )
            self.assertEqual(test_case["width"], source_image.width)
            self.assertEqual(test_case["height"], source_image.height)
            self.assertEqual(48, source_image.bit_depth)
            self.assertEqual(source_image.num_samples, source_image.samples_read)
            self.compareHalf(
                source_image.grid(), test_case["grid"], test_case["name"]
            )

    def testTgaReadErrorTestCases(self):
        """tga read error test."""
        function_name = "testTgaReadErrorTestCases"

        for test_case in self.getTestCases(function_name, tgaReadErrorTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            infile = self.writeInfile(test_case["contents"])
            config_dict = hdrtools_common.Config()
            config_dict.set("short_read", test_case["short_read"])
            with open(self.getTempFile("hdrtools-tga_unittest.log.", ".txt"), "w") as logfd:
                with self.assertRaises(test_case["exception"], msg=test_case["name"]):
                    hdrtools_tga.read_tga(infile, config_dict=config_dict, logfd=logfd)

    def testTgaShortReadTestCases(self):
        """tga zero-fill short read test."""
        function_name = "testTgaShortReadTestCases"

        for test_case in self.getTestCases(function_name, tgaShortReadTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            infile = self.writeInfile(test_case["contents"])
            config_dict = hdrtools_common.Config()
            config_dict.set("short_read", "zero-fill")
            with open(self.getTempFile("hdrtools-tga_unittest.log.", ".txt"), "w") as logfd:
                source_image = hdrtools_tga.read_tga(
                    infile, config_dict=config_dict, logfd=logfd
                )
            self.assertEqual(test_case["samples_read"], source_image.samples_read)
            self.assertEqual(len(test_case["samples"]), len(source_image.samples))
            self.compareHalf(
                source_image.samples, test_case["samples"], test_case["name"]
            )

    def testMissingFile(self):
        """tga missing file test."""
        infile = self.getTempFile(prefix="hdrtools-tga_unittest.missing.", suffix=".tga")
        with open(self.getTempFile("hdrtools-tga_unittest.log.", ".txt"), "w") as logfd:
            with self.assertRaises(hdrtools_common.IoError):
                hdrtools_tga.read_tga(infile, logfd=logfd)

    def testFileClosedOnRejection(self):
        """tga reader releases the file on a format error."""
        infile = self.writeInfile(tgaReadErrorTestCases[0]["contents"])
        with open(self.getTempFile("hdrtools-tga_unittest.log.", ".txt"), "w") as logfd:
            tga_file_reader = hdrtools_tga.TGAFileReader(infile, logfd=logfd)
            with self.assertRaises(hdrtools_common.UnsupportedFormatError):
                with tga_file_reader:
                    tga_file_reader.read_image()
        self.assertTrue(tga_file_reader.fin.closed)

    def testGridIsReadOnlyView(self):
        """tga grid is a read-only view over the samples."""
        infile = self.writeInfile(tgaReadTestCases[0]["contents"])
        with open(self.getTempFile("hdrtools-tga_unittest.log.", ".txt"), "w") as logfd:
            source_image = hdrtools_tga.read_tga(infile, logfd=logfd)
        grid = source_image.grid()
        self.assertEqual((1, 2, 3), grid.shape)
        self.assertTrue(np.shares_memory(grid, source_image.samples))
        self.assertFalse(grid.flags.writeable)

    def testTgaWriteRead(self):
        """tga writer output is accepted by the reader."""
        outfile = self.getTempFile(prefix="hdrtools-tga_unittest.outfile.", suffix=".tga")
        samples = np.arange(2 * 3 * 3, dtype=np.float16) / 4
        hdrtools_tga.write_tga(outfile, samples, 3, 2)
        with open(outfile, "rb") as f:
            contents = f.read()
        self.assertEqual(PREAMBLE + b"\x03\x00\x02\x00\x30\x00", contents[:18])
        self.assertEqual(18 + 2 * len(samples), len(contents))
        with open(self.getTempFile("hdrtools-tga_unittest.log.", ".txt"), "w") as logfd:
            source_image = hdrtools_tga.read_tga(outfile, logfd=logfd)
        self.compareHalf(source_image.samples, samples, "write-read")


if __name__ == "__main__":
    hdrtools_unittest.main(sys.argv)
