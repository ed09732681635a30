#!/usr/bin/env python3

"""hdrtools-tga2exr_unittest.py: hdrtools-tga2exr (and hdrtools-io) unittest.

# runme
# $ ./hdrtools-tga2exr_unittest.py
"""

import contextlib
import importlib
import io
import numpy as np
import os
import sys

hdrtools_common = importlib.import_module("hdrtools-common")
hdrtools_exr = importlib.import_module("hdrtools-exr")
hdrtools_io = importlib.import_module("hdrtools-io")
hdrtools_tga = importlib.import_module("hdrtools-tga")
hdrtools_tga2exr = importlib.import_module("hdrtools-tga2exr")
hdrtools_unittest = importlib.import_module("hdrtools-unittest")


class FailingEncoder:
    def write(self, outfile, header, frame_buffer):
        with open(outfile, "wb") as f:
            f.write(b"v/1\x01")
        raise ValueError("broken encoder")


class GarbageEncoder:
    def write(self, outfile, header, frame_buffer):
        with open(outfile, "wb") as f:
            f.write(b"not an exr file")


# writes a valid EXR with the R and G channels exchanged
class ChannelSwapEncoder(hdrtools_exr.OpenEXREncoder):
    def write(self, outfile, header, frame_buffer):
        swapped = hdrtools_exr.FrameBuffer(
            frame_buffer.buffer, frame_buffer.width, frame_buffer.height
        )
        for name, binding in frame_buffer.bindings.items():
            swapped.insert(
                hdrtools_exr.ChannelBinding(
                    {"R": "G", "G": "R"}.get(name, name),
                    binding.pixel_type,
                    binding.offset,
                    binding.xstride,
                    binding.ystride,
                )
            )
        super().write(outfile, header, swapped)


class RecordingEncoder:
    def __init__(self):
        self.headers = []

    def write(self, outfile, header, frame_buffer):
        self.headers.append(header)


# contents: (width, height, bit_depth, number of samples written)
mainTestCases = [
    {
        "name": "3x3",
        "contents": (3, 3, 48, 27),
        "options": ["--verify"],
        "encoder": None,
        "exit_code": 0,
        "outfile_exists": True,
    },
    {
        "name": "2x1-piz",
        "contents": (2, 1, 48, 6),
        "options": ["--compression", "piz", "--verify"],
        "encoder": None,
        "exit_code": 0,
        "outfile_exists": True,
    },
    {
        "name": "24bpp",
        "contents": (3, 3, 24, 27),
        "options": [],
        "encoder": None,
        "exit_code": 4,
        "outfile_exists": False,
    },
    {
        "name": "missing-infile",
        "contents": None,
        "options": [],
        "encoder": None,
        "exit_code": 3,
        "outfile_exists": False,
    },
    {
        "name": "short-payload",
        "contents": (3, 3, 48, 20),
        "options": [],
        "encoder": None,
        "exit_code": 3,
        "outfile_exists": False,
    },
    {
        "name": "short-payload-zero-fill",
        "contents": (3, 3, 48, 20),
        "options": ["--short-read", "zero-fill", "--verify"],
        "encoder": None,
        "exit_code": 0,
        "outfile_exists": True,
    },
    {
        "name": "zero-width",
        "contents": (0, 3, 48, 0),
        "options": [],
        "encoder": None,
        "exit_code": 5,
        "outfile_exists": False,
    },
    {
        "name": "encoder-failure",
        "contents": (3, 3, 48, 27),
        "options": [],
        "encoder": FailingEncoder,
        "exit_code": 6,
        "outfile_exists": False,
    },
    {
        "name": "encoder-failure-keep-partial",
        "contents": (3, 3, 48, 27),
        "options": ["--no-remove-partial"],
        "encoder": FailingEncoder,
        "exit_code": 6,
        "outfile_exists": True,
    },
    {
        "name": "verify-garbage",
        "contents": (3, 3, 48, 27),
        "options": ["--verify"],
        "encoder": GarbageEncoder,
        "exit_code": 6,
        "outfile_exists": False,
    },
    {
        "name": "verify-garbage-keep-partial",
        "contents": (3, 3, 48, 27),
        "options": ["--verify", "--no-remove-partial"],
        "encoder": GarbageEncoder,
        "exit_code": 6,
        "outfile_exists": True,
    },
    {
        "name": "verify-channel-swap",
        "contents": (3, 3, 48, 27),
        "options": ["--verify"],
        "encoder": ChannelSwapEncoder,
        "exit_code": 6,
        "outfile_exists": False,
    },
]


class MainTest(hdrtools_unittest.TestCase):

    def writeInfile(self, contents):
        infile = self.getTempFile(
            prefix="hdrtools-tga2exr_unittest.infile.", suffix=".tga"
        )
        if contents is None:
            return infile
        width, height, bit_depth, num_samples = contents
        samples = np.arange(num_samples, dtype=np.float16) / 2
        hdrtools_tga.write_tga(infile, samples, width, height, bit_depth)
        return infile

    def testMainTestCases(self):
        """tga2exr CLI exit code test."""
        function_name = "testMainTestCases"

        for test_case in self.getTestCases(function_name, mainTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            infile = self.writeInfile(test_case["contents"])
            outfile = self.getTempFile(
                prefix="hdrtools-tga2exr_unittest.outfile.", suffix=".exr"
            )
            encoder = test_case["encoder"]() if test_case["encoder"] else None
            argv = ["hdrtools-tga2exr.py", "--quiet"] + test_case["options"]
            argv += [infile, outfile]
            stderr = io.StringIO()
            with contextlib.redirect_stderr(stderr):
                exit_code = hdrtools_tga2exr.main(argv, encoder=encoder)
            self.assertEqual(
                test_case["exit_code"],
                exit_code,
                f"error on {test_case['name']}: {stderr.getvalue()}",
            )
            self.assertEqual(
                test_case["outfile_exists"],
                os.path.exists(outfile),
                f"error on {test_case['name']}",
            )
            if exit_code != 0:
                self.assertTrue(stderr.getvalue().startswith("error: "))

    def testMainUsage(self):
        """tga2exr needs two paths."""
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as cm:
                hdrtools_tga2exr.main(["hdrtools-tga2exr.py", "image.tga"])
        self.assertEqual(2, cm.exception.code)

    def testMainBadLogfile(self):
        """tga2exr reports an unwritable log file."""
        infile = self.writeInfile((2, 2, 48, 12))
        outfile = self.getTempFile(
            prefix="hdrtools-tga2exr_unittest.outfile.", suffix=".exr"
        )
        logfile = os.path.join(
            self.getTempFile(prefix="hdrtools-tga2exr_unittest.nodir.", suffix=""),
            "log.txt",
        )
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            exit_code = hdrtools_tga2exr.main(
                ["hdrtools-tga2exr.py", "--logfile", logfile, infile, outfile]
            )
        self.assertNotEqual(0, exit_code)
        self.assertTrue(stderr.getvalue().startswith("error: logfile: "))
        self.assertFalse(os.path.exists(outfile))

    def testMainLogfile(self):
        """tga2exr writes progress to the log file."""
        infile = self.writeInfile((2, 2, 48, 12))
        outfile = self.getTempFile(
            prefix="hdrtools-tga2exr_unittest.outfile.", suffix=".exr"
        )
        logfile = self.getTempFile(
            prefix="hdrtools-tga2exr_unittest.logfile.", suffix=".txt"
        )
        exit_code = hdrtools_tga2exr.main(
            ["hdrtools-tga2exr.py", "--logfile", logfile, infile, outfile]
        )
        self.assertEqual(0, exit_code)
        with open(logfile, "r") as f:
            log = f.read()
        self.assertIn(f"Reading {infile}...", log)
        self.assertIn("width and height: 2 2", log)
        self.assertIn("bits per pixel: 48", log)
        self.assertIn("read 12 samples", log)
        self.assertIn(f"EXR file {outfile} successfully written.", log)

    def testConvert(self):
        """io convert chains read, remap and write."""
        infile = self.writeInfile((1, 2, 48, 6))
        encoder = RecordingEncoder()
        logfd = io.StringIO()
        destination_image = hdrtools_io.convert(
            infile, "out.exr", encoder=encoder, logfd=logfd
        )
        self.assertEqual((1, 2), (destination_image.width, destination_image.height))
        self.assertEqual(1, len(encoder.headers))
        self.assertEqual(
            (1.5, 2.0, 2.5, 1.0), tuple(float(v) for v in destination_image.pixel(0, 0))
        )
        self.assertEqual(
            (0.0, 0.5, 1.0, 1.0), tuple(float(v) for v in destination_image.pixel(1, 0))
        )
        self.assertIn("TGA file read successfully, converting to EXR...", logfd.getvalue())

    def testVerifyMismatch(self):
        """io verify catches an output that does not match the image."""
        infile = self.writeInfile((3, 3, 48, 27))
        outfile = self.getTempFile(
            prefix="hdrtools-tga2exr_unittest.outfile.", suffix=".exr"
        )
        logfd = io.StringIO()
        destination_image = hdrtools_io.convert(infile, outfile, logfd=logfd)
        hdrtools_io.verify_exr(outfile, destination_image, logfd=logfd)
        destination_image.pixels["g"][4] = 100.0
        with self.assertRaises(hdrtools_common.EncodeError):
            hdrtools_io.verify_exr(outfile, destination_image, logfd=logfd)


if __name__ == "__main__":
    hdrtools_unittest.main(sys.argv)
