#!/usr/bin/env python3

"""hdrtools-tga.py module description.

Runs HDR TGA I/O. Only the 48 bpp (3x 16-bit half-float RGB) flavor is
supported: an 18-byte header followed by the raw samples.
"""


import importlib
import numpy as np
import struct
import sys

hdrtools_common = importlib.import_module("hdrtools-common")


# TGA header (little-endian, 18 bytes)
# id_length, colormap_type, image_type, colormap_first_entry,
# colormap_length, colormap_entry_size, x_origin, y_origin, width,
# height, bit_depth, descriptor
TGA_HEADER_FORMAT = "<BBBHHBHHHHBB"
TGA_HEADER_SIZE = struct.calcsize(TGA_HEADER_FORMAT)

HDR_BIT_DEPTH = 48
NUM_CHANNELS = 3
# uncompressed true-color
TGA_IMAGE_TYPE_TRUECOLOR = 2
SAMPLE_DTYPE = np.dtype("<f2")


class TGAHeader:
    def __init__(
        self,
        width,
        height,
        bit_depth,
        id_length=0,
        colormap_type=0,
        image_type=TGA_IMAGE_TYPE_TRUECOLOR,
        colormap_first_entry=0,
        colormap_length=0,
        colormap_entry_size=0,
        x_origin=0,
        y_origin=0,
        descriptor=0,
    ):
        self.id_length = id_length
        self.colormap_type = colormap_type
        self.image_type = image_type
        self.colormap_first_entry = colormap_first_entry
        self.colormap_length = colormap_length
        self.colormap_entry_size = colormap_entry_size
        self.x_origin = x_origin
        self.y_origin = y_origin
        self.width = width
        self.height = height
        self.bit_depth = bit_depth
        self.descriptor = descriptor

    def __str__(self):
        return (
            f"id_length: {self.id_length} colormap_type: {self.colormap_type} "
            f"image_type: {self.image_type} x_origin: {self.x_origin} "
            f"y_origin: {self.y_origin} width: {self.width} height: {self.height} "
            f"bit_depth: {self.bit_depth} descriptor: {self.descriptor}"
        )

    @classmethod
    def parse(cls, data):
        if len(data) < TGA_HEADER_SIZE:
            raise hdrtools_common.IoError(
                f"truncated TGA header: {len(data)} bytes (need {TGA_HEADER_SIZE})"
            )
        (
            id_length,
            colormap_type,
            image_type,
            colormap_first_entry,
            colormap_length,
            colormap_entry_size,
            x_origin,
            y_origin,
            width,
            height,
            bit_depth,
            descriptor,
        ) = struct.unpack(TGA_HEADER_FORMAT, data[:TGA_HEADER_SIZE])
        return cls(
            width,
            height,
            bit_depth,
            id_length=id_length,
            colormap_type=colormap_type,
            image_type=image_type,
            colormap_first_entry=colormap_first_entry,
            colormap_length=colormap_length,
            colormap_entry_size=colormap_entry_size,
            x_origin=x_origin,
            y_origin=y_origin,
            descriptor=descriptor,
        )

    def tobytes(self):
        return struct.pack(
            TGA_HEADER_FORMAT,
            self.id_length,
            self.colormap_type,
            self.image_type,
            self.colormap_first_entry,
            self.colormap_length,
            self.colormap_entry_size,
            self.x_origin,
            self.y_origin,
            self.width,
            self.height,
            self.bit_depth,
            self.descriptor,
        )


class SourceImage:
    def __init__(self, width, height, bit_depth, samples, samples_read=None, header=None):
        self.width = width
        self.height = height
        self.bit_depth = bit_depth
        self.samples = samples
        self.samples_read = samples_read if samples_read is not None else len(samples)
        self.header = header

    def __str__(self):
        return (
            f"width: {self.width} height: {self.height} bit_depth: {self.bit_depth} "
            f"samples_read: {self.samples_read}/{self.num_samples}"
        )

    @property
    def num_samples(self):
        return self.width * self.height * NUM_CHANNELS

    # returns a read-only (height, width, 3) view over the samples
    def grid(self):
        grid = self.samples.reshape(self.height, self.width, NUM_CHANNELS)
        grid.flags.writeable = False
        return grid


class TGAFileReader:
    def __init__(self, infile, logfd=sys.stdout, debug=0):
        self.infile = infile
        self.logfd = logfd
        self.debug = debug
        self.header = None
        hdrtools_common.log(f"Reading {infile}...", logfd, debug)
        try:
            self.fin = open(self.infile, "rb")
        except OSError as ex:
            raise hdrtools_common.IoError(
                f"unable to read from file {infile}: {ex.strerror}"
            ) from ex

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self):
        if not self.fin.closed:
            self.fin.close()

    def read_header(self):
        self.header = TGAHeader.parse(self.fin.read(TGA_HEADER_SIZE))
        hdrtools_common.log(
            f"width and height: {self.header.width} {self.header.height}",
            self.logfd,
            self.debug,
        )
        hdrtools_common.log(
            f"bits per pixel: {self.header.bit_depth}", self.logfd, self.debug
        )
        if self.debug > 0:
            print(f"debug: tga header {self.header}", file=self.logfd)
        if self.header.bit_depth != HDR_BIT_DEPTH:
            raise hdrtools_common.UnsupportedFormatError(
                f"{self.infile} is not a valid HDR TGA file "
                f"(bits per pixel: {self.header.bit_depth}, need {HDR_BIT_DEPTH})"
            )
        return self.header

    def read_samples(self, short_read=hdrtools_common.ShortRead.error):
        num_samples = self.header.width * self.header.height * NUM_CHANNELS
        buf = self.fin.read(num_samples * SAMPLE_DTYPE.itemsize)
        # a trailing odd byte is half a sample: drop it
        samples_read = len(buf) // SAMPLE_DTYPE.itemsize
        hdrtools_common.log(f"read {samples_read} samples", self.logfd, self.debug)
        if samples_read < num_samples:
            if short_read == hdrtools_common.ShortRead.error:
                raise hdrtools_common.IoError(
                    f"truncated pixel data in {self.infile}: "
                    f"read {samples_read} samples (need {num_samples})"
                )
            print(
                f"warn: truncated pixel data in {self.infile}: zero-filling "
                f"{num_samples - samples_read} samples",
                file=self.logfd,
            )
        samples = np.zeros(num_samples, dtype=SAMPLE_DTYPE)
        if samples_read > 0:
            samples[:samples_read] = np.frombuffer(
                buf, dtype=SAMPLE_DTYPE, count=samples_read
            )
        return samples, samples_read

    def read_image(self, short_read=hdrtools_common.ShortRead.error):
        header = self.read_header()
        samples, samples_read = self.read_samples(short_read)
        return SourceImage(
            header.width,
            header.height,
            header.bit_depth,
            samples,
            samples_read=samples_read,
            header=header,
        )


def read_tga(infile, config_dict=None, logfd=sys.stdout, debug=0):
    config_dict = hdrtools_common.get_config(config_dict)
    short_read = hdrtools_common.ShortRead.parse(config_dict.get("short_read"))
    with TGAFileReader(infile, logfd=logfd, debug=debug) as tga_file_reader:
        return tga_file_reader.read_image(short_read)


class TGAFileWriter:
    def __init__(self, outfile, width, height, bit_depth=HDR_BIT_DEPTH, debug=0):
        self.outfile = outfile
        self.header = TGAHeader(width, height, bit_depth)
        self.debug = debug
        self.fout = open(outfile, "wb")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self):
        if not self.fout.closed:
            self.fout.close()

    def write_header(self):
        self.fout.write(self.header.tobytes())

    # writes the samples in storage order (R, G, B per pixel)
    # @ref samples: array-like, converted to little-endian float16
    def write_samples(self, samples):
        self.fout.write(np.asarray(samples, dtype=SAMPLE_DTYPE).tobytes())


def write_tga(outfile, samples, width, height, bit_depth=HDR_BIT_DEPTH, debug=0):
    with TGAFileWriter(outfile, width, height, bit_depth, debug) as tga_file_writer:
        tga_file_writer.write_header()
        tga_file_writer.write_samples(samples)
