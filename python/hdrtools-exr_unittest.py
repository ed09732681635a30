#!/usr/bin/env python3

"""hdrtools-exr_unittest.py: hdrtools-exr unittest.

# runme
# $ ./hdrtools-exr_unittest.py
"""

import importlib
import numpy as np
import os
import sys

hdrtools_common = importlib.import_module("hdrtools-common")
hdrtools_exr = importlib.import_module("hdrtools-exr")
hdrtools_rgba = importlib.import_module("hdrtools-rgba")
hdrtools_tga = importlib.import_module("hdrtools-tga")
hdrtools_unittest = importlib.import_module("hdrtools-unittest")


class FakeEncoder:
    def __init__(self):
        self.calls = []

    def write(self, outfile, header, frame_buffer):
        planes = {name: np.array(view) for name, view in frame_buffer.items()}
        self.calls.append((outfile, header, frame_buffer, planes))


class FailingEncoder:
    def __init__(self, partial=b"v/1\x01"):
        self.partial = partial

    def write(self, outfile, header, frame_buffer):
        if self.partial is not None:
            with open(outfile, "wb") as f:
                f.write(self.partial)
        raise RuntimeError("disk full")


def get_destination_image(width, height):
    samples = np.arange(width * height * 3, dtype=np.float16) / 8
    source_image = hdrtools_tga.SourceImage(width, height, 48, samples)
    return hdrtools_rgba.remap(source_image)


class EmptyImage:
    def __init__(self, width, height):
        self.width = width
        self.height = height
        self.pixels = np.zeros(max(width * height, 0), dtype=hdrtools_rgba.RGBA_DTYPE)


writeExrInvalidArgumentTestCases = [
    {
        "name": "empty-outfile",
        "outfile": "",
        "image": get_destination_image(2, 2),
    },
    {
        "name": "none-outfile",
        "outfile": None,
        "image": get_destination_image(2, 2),
    },
    {
        "name": "none-image",
        "outfile": "out.exr",
        "image": None,
    },
    {
        "name": "zero-width",
        "outfile": "out.exr",
        "image": EmptyImage(0, 3),
    },
    {
        "name": "zero-height",
        "outfile": "out.exr",
        "image": EmptyImage(3, 0),
    },
    {
        "name": "negative-height",
        "outfile": "out.exr",
        "image": EmptyImage(3, -1),
    },
]

bindingTestCases = [
    {
        "name": "1x1",
        "width": 1,
        "bindings": {"R": (0, 8, 8), "G": (2, 8, 8), "B": (4, 8, 8)},
    },
    {
        "name": "3x3",
        "width": 3,
        "bindings": {"R": (0, 8, 24), "G": (2, 8, 24), "B": (4, 8, 24)},
    },
    {
        "name": "1920",
        "width": 1920,
        "bindings": {"R": (0, 8, 15360), "G": (2, 8, 15360), "B": (4, 8, 15360)},
    },
]

roundTripTestCases = [
    {"name": "3x3-none", "width": 3, "height": 3, "compression": "none"},
    {"name": "3x3-rle", "width": 3, "height": 3, "compression": "rle"},
    {"name": "3x3-zips", "width": 3, "height": 3, "compression": "zips"},
    {"name": "3x3-zip", "width": 3, "height": 3, "compression": "zip"},
    {"name": "3x3-piz", "width": 3, "height": 3, "compression": "piz"},
    {"name": "5x2-zip", "width": 5, "height": 2, "compression": "zip"},
]


class MainTest(hdrtools_unittest.TestCase):

    def testBindingTestCases(self):
        """exr channel binding offset/stride test."""
        function_name = "testBindingTestCases"

        for test_case in self.getTestCases(function_name, bindingTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            for name, field in hdrtools_exr.CHANNEL_FIELDS.items():
                binding = hdrtools_exr.ChannelBinding.from_record_field(
                    name, field, test_case["width"]
                )
                self.assertEqual(
                    test_case["bindings"][name],
                    (binding.offset, binding.xstride, binding.ystride),
                    f"error on {test_case['name']} channel {name}",
                )
                self.assertEqual(hdrtools_exr.PixelType.HALF, binding.pixel_type)

    def testWriteExrInvalidArgumentTestCases(self):
        """exr writer argument validation test."""
        function_name = "testWriteExrInvalidArgumentTestCases"

        for test_case in self.getTestCases(
            function_name, writeExrInvalidArgumentTestCases
        ):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            encoder = FakeEncoder()
            with self.assertRaises(
                hdrtools_common.InvalidArgumentError, msg=test_case["name"]
            ):
                hdrtools_exr.write_exr(
                    test_case["outfile"], test_case["image"], encoder=encoder
                )
            self.assertEqual([], encoder.calls)

    def testWriteExrHeader(self):
        """exr header declares R, G, B as half and no alpha."""
        encoder = FakeEncoder()
        hdrtools_exr.write_exr("out.exr", get_destination_image(4, 3), encoder=encoder)
        self.assertEqual(1, len(encoder.calls))
        outfile, header, _, _ = encoder.calls[0]
        self.assertEqual("out.exr", outfile)
        self.assertEqual((4, 3), (header.width, header.height))
        self.assertEqual(["R", "G", "B"], list(header.channels.keys()))
        for pixel_type in header.channels.values():
            self.assertEqual(hdrtools_exr.PixelType.HALF, pixel_type)
        self.assertEqual(hdrtools_common.Compression.zip, header.compression)

    def testWriteExrFrameBuffer(self):
        """exr frame buffer views alias the RGBA buffer with no bleed."""
        destination_image = get_destination_image(3, 3)
        encoder = FakeEncoder()
        hdrtools_exr.write_exr("out.exr", destination_image, encoder=encoder)
        _, _, frame_buffer, planes = encoder.calls[0]
        for name, field in hdrtools_exr.CHANNEL_FIELDS.items():
            view = frame_buffer[name]
            self.assertEqual((3, 3), view.shape)
            self.assertEqual((24, 8), view.strides)
            self.assertTrue(np.shares_memory(view, destination_image.pixels))
            self.compareHalf(planes[name], destination_image.component(field), name)
        # source row 2 becomes row 0
        self.compareHalf(planes["R"][0], [18 / 8, 21 / 8, 24 / 8], "R-row0")
        self.compareHalf(planes["G"][0], [19 / 8, 22 / 8, 25 / 8], "G-row0")
        self.compareHalf(planes["B"][2], [2 / 8, 5 / 8, 8 / 8], "B-row2")

    def testBindingOutOfBounds(self):
        """exr binding past the end of the buffer is rejected."""
        frame_buffer = hdrtools_exr.FrameBuffer(
            np.zeros(6, dtype=hdrtools_rgba.RGBA_DTYPE), 3, 2
        )
        for binding in (
            hdrtools_exr.ChannelBinding("R", hdrtools_exr.PixelType.HALF, 0, 8, 33),
            hdrtools_exr.ChannelBinding("G", hdrtools_exr.PixelType.HALF, 8, 8, 24),
            hdrtools_exr.ChannelBinding("B", hdrtools_exr.PixelType.HALF, -2, 8, 24),
            hdrtools_exr.ChannelBinding("A", hdrtools_exr.PixelType.HALF, 0, 1, 24),
        ):
            with self.assertRaises(hdrtools_common.InvalidArgumentError):
                frame_buffer.insert(binding)
        # last in-bounds sample is the final two bytes
        frame_buffer.insert(
            hdrtools_exr.ChannelBinding("A", hdrtools_exr.PixelType.HALF, 6, 8, 24)
        )
        self.assertEqual((2, 3), frame_buffer["A"].shape)

    def testNonContiguousPixels(self):
        """exr frame buffer refuses pixels it cannot alias."""
        pixels = np.zeros(18, dtype=hdrtools_rgba.RGBA_DTYPE)[::2]
        with self.assertRaises(hdrtools_common.InvalidArgumentError):
            hdrtools_exr.FrameBuffer(pixels, 3, 3)

    def testShortPixelBuffer(self):
        """exr writer rejects an image whose buffer is too small."""
        image = EmptyImage(3, 3)
        image.pixels = image.pixels[:8]
        encoder = FakeEncoder()
        with self.assertRaises(hdrtools_common.InvalidArgumentError):
            hdrtools_exr.write_exr("out.exr", image, encoder=encoder)
        self.assertEqual([], encoder.calls)

    def testEncoderFailure(self):
        """exr encoder errors surface as EncodeError and drop partial files."""
        outfile = self.getTempFile(prefix="hdrtools-exr_unittest.", suffix=".exr")
        with self.assertRaises(hdrtools_common.EncodeError) as cm:
            hdrtools_exr.write_exr(
                outfile, get_destination_image(2, 2), encoder=FailingEncoder()
            )
        self.assertIsInstance(cm.exception.__cause__, RuntimeError)
        self.assertFalse(os.path.exists(outfile))

    def testEncoderFailureKeepPartial(self):
        """exr partial output is kept when asked to."""
        outfile = self.getTempFile(prefix="hdrtools-exr_unittest.", suffix=".exr")
        config_dict = hdrtools_common.Config()
        config_dict.set("remove_partial", False)
        with self.assertRaises(hdrtools_common.EncodeError):
            hdrtools_exr.write_exr(
                outfile,
                get_destination_image(2, 2),
                encoder=FailingEncoder(),
                config_dict=config_dict,
            )
        self.assertTrue(os.path.exists(outfile))

    def testEncoderFailureExistingFile(self):
        """exr writer does not remove a file it did not create."""
        outfile = self.getTempFile(prefix="hdrtools-exr_unittest.", suffix=".exr")
        with open(outfile, "wb") as f:
            f.write(b"previous")
        with self.assertRaises(hdrtools_common.EncodeError):
            hdrtools_exr.write_exr(
                outfile,
                get_destination_image(2, 2),
                encoder=FailingEncoder(partial=None),
            )
        self.assertTrue(os.path.exists(outfile))

    def testRoundTripTestCases(self):
        """exr write/read through the OpenEXR bindings."""
        function_name = "testRoundTripTestCases"

        for test_case in self.getTestCases(function_name, roundTripTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            width, height = test_case["width"], test_case["height"]
            samples = (np.arange(width * height * 3, dtype=np.float16) - 7) / 4
            source_image = hdrtools_tga.SourceImage(width, height, 48, samples)
            destination_image = hdrtools_rgba.remap(source_image)
            outfile = self.getTempFile(
                prefix="hdrtools-exr_unittest.outfile.", suffix=".exr"
            )
            config_dict = hdrtools_common.Config()
            config_dict.set("compression", test_case["compression"])
            hdrtools_exr.write_exr(outfile, destination_image, config_dict=config_dict)
            read_width, read_height, planes = hdrtools_exr.read_exr(outfile)
            self.assertEqual((width, height), (read_width, read_height))
            self.assertEqual({"R", "G", "B"}, set(planes.keys()))
            flipped = source_image.grid()[::-1]
            for index, name in enumerate(("R", "G", "B")):
                self.compareHalf(
                    planes[name],
                    flipped[:, :, index],
                    f"{test_case['name']} channel {name}",
                )

    def testReadExrMissingFile(self):
        """exr reader maps a missing file to IoError."""
        infile = self.getTempFile(prefix="hdrtools-exr_unittest.missing.", suffix=".exr")
        with self.assertRaises(hdrtools_common.IoError):
            hdrtools_exr.read_exr(infile)


if __name__ == "__main__":
    hdrtools_unittest.main(sys.argv)
