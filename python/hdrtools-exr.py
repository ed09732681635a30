#!/usr/bin/env python3

"""hdrtools-exr.py module description.

Runs OpenEXR I/O. Writing binds the R, G, B components of an interleaved
RGBA half-float buffer to named EXR channels through strided views (no
per-channel copies on our side), then hands header and frame buffer to an
encoder object. The default encoder uses the OpenEXR python bindings.
"""


import enum
import importlib
import Imath
import numpy as np
import OpenEXR
import os
import sys

hdrtools_common = importlib.import_module("hdrtools-common")
hdrtools_rgba = importlib.import_module("hdrtools-rgba")


class PixelType(enum.Enum):
    UINT = 0
    HALF = 1
    FLOAT = 2

    def get_dtype(self):
        if self == self.UINT:
            return np.dtype("<u4")
        elif self == self.HALF:
            return np.dtype("<f2")
        elif self == self.FLOAT:
            return np.dtype("<f4")


# EXR channel name -> RGBA record field
CHANNEL_FIELDS = {
    "R": "r",
    "G": "g",
    "B": "b",
}

IMATH_PIXEL_TYPES = {
    PixelType.UINT: Imath.PixelType.UINT,
    PixelType.HALF: Imath.PixelType.HALF,
    PixelType.FLOAT: Imath.PixelType.FLOAT,
}

IMATH_COMPRESSIONS = {
    hdrtools_common.Compression.none: Imath.Compression.NO_COMPRESSION,
    hdrtools_common.Compression.rle: Imath.Compression.RLE_COMPRESSION,
    hdrtools_common.Compression.zips: Imath.Compression.ZIPS_COMPRESSION,
    hdrtools_common.Compression.zip: Imath.Compression.ZIP_COMPRESSION,
    hdrtools_common.Compression.piz: Imath.Compression.PIZ_COMPRESSION,
}


class ExrHeader:
    def __init__(self, width, height, compression=hdrtools_common.Compression.zip):
        self.width = width
        self.height = height
        self.compression = compression
        self.channels = {}

    def __str__(self):
        channels = " ".join(f"{k}:{v.name}" for (k, v) in self.channels.items())
        return (
            f"width: {self.width} height: {self.height} "
            f"compression: {self.compression.name} channels: {channels}"
        )

    def insert(self, name, pixel_type):
        self.channels[name] = pixel_type


class ChannelBinding:
    """One named channel read out of an interleaved pixel buffer.

    The channel sample for pixel (row, col) lives at byte
    `offset + row * ystride + col * xstride` of the buffer.
    """

    def __init__(self, name, pixel_type, offset, xstride, ystride):
        self.name = name
        self.pixel_type = pixel_type
        self.offset = offset
        self.xstride = xstride
        self.ystride = ystride

    def __str__(self):
        return (
            f"name: {self.name} type: {self.pixel_type.name} offset: {self.offset} "
            f"xstride: {self.xstride} ystride: {self.ystride}"
        )

    @classmethod
    def from_record_field(cls, name, field, width, record_dtype=hdrtools_rgba.RGBA_DTYPE):
        field_dtype, offset = record_dtype.fields[field][:2]
        assert field_dtype == PixelType.HALF.get_dtype(), f"error: {field=} is not half"
        return cls(
            name,
            PixelType.HALF,
            offset,
            record_dtype.itemsize,
            record_dtype.itemsize * width,
        )

    # returns a zero-copy (height, width) view over buffer
    # @ref buffer: 1-D np.uint8 array
    def view(self, buffer, width, height):
        if width <= 0 or height <= 0:
            raise hdrtools_common.InvalidArgumentError(
                f"invalid dimensions for channel {self.name}: {width}x{height}"
            )
        dtype = self.pixel_type.get_dtype()
        if self.offset < 0 or self.xstride < dtype.itemsize or self.ystride < 0:
            raise hdrtools_common.InvalidArgumentError(
                f"invalid binding for channel {self}"
            )
        # last byte addressed by the binding must be inside the buffer
        end = (
            self.offset
            + (height - 1) * self.ystride
            + (width - 1) * self.xstride
            + dtype.itemsize
        )
        if end > buffer.nbytes:
            raise hdrtools_common.InvalidArgumentError(
                f"channel {self.name} addresses {end} bytes in a "
                f"{buffer.nbytes}-byte buffer"
            )
        return np.ndarray(
            shape=(height, width),
            dtype=dtype,
            buffer=buffer,
            offset=self.offset,
            strides=(self.ystride, self.xstride),
        )


class FrameBuffer:
    def __init__(self, pixels, width, height):
        # byte view over the pixel records: bindings never copy
        if not pixels.flags.c_contiguous:
            raise hdrtools_common.InvalidArgumentError(
                "frame buffer pixels must be a contiguous array"
            )
        self.buffer = pixels.view(np.uint8)
        self.width = width
        self.height = height
        self.bindings = {}
        self.views = {}

    def insert(self, binding):
        self.views[binding.name] = binding.view(self.buffer, self.width, self.height)
        self.bindings[binding.name] = binding

    def __getitem__(self, name):
        return self.views[name]

    def items(self):
        return self.views.items()


class OpenEXREncoder:
    # writes the header and then all header.height rows in one call
    def write(self, outfile, header, frame_buffer):
        exr_header = OpenEXR.Header(header.width, header.height)
        exr_header["channels"] = {
            name: Imath.Channel(Imath.PixelType(IMATH_PIXEL_TYPES[pixel_type]))
            for name, pixel_type in header.channels.items()
        }
        exr_header["compression"] = Imath.Compression(
            IMATH_COMPRESSIONS[header.compression]
        )
        exr_file = OpenEXR.OutputFile(outfile, exr_header)
        try:
            # tobytes() walks the strided views in row-major order
            exr_file.writePixels(
                {name: view.tobytes() for name, view in frame_buffer.items()}
            )
        finally:
            exr_file.close()


def write_exr(
    outfile, image, encoder=None, config_dict=None, logfd=sys.stdout, debug=0
):
    if not outfile:
        raise hdrtools_common.InvalidArgumentError(
            "Cannot write EXR file: invalid filename"
        )
    if image is None:
        raise hdrtools_common.InvalidArgumentError(
            "Cannot write EXR file: invalid image data"
        )
    if image.width <= 0 or image.height <= 0:
        raise hdrtools_common.InvalidArgumentError(
            f"Cannot write EXR file: invalid dimensions {image.width}x{image.height}"
        )
    config_dict = hdrtools_common.get_config(config_dict)
    if encoder is None:
        encoder = OpenEXREncoder()

    # prepare header
    header = ExrHeader(
        image.width,
        image.height,
        hdrtools_common.Compression.parse(config_dict.get("compression")),
    )
    for name in CHANNEL_FIELDS:
        header.insert(name, PixelType.HALF)

    # insert frame buffer
    frame_buffer = FrameBuffer(image.pixels, image.width, image.height)
    for name, field in CHANNEL_FIELDS.items():
        frame_buffer.insert(
            ChannelBinding.from_record_field(name, field, image.width)
        )
    if debug > 0:
        print(f"debug: exr header {header}", file=logfd)
        for binding in frame_buffer.bindings.values():
            print(f"debug: exr binding {binding}", file=logfd)

    existed = os.path.exists(outfile)
    try:
        encoder.write(outfile, header, frame_buffer)
    except Exception as ex:
        remove_partial_output(outfile, existed, config_dict)
        raise hdrtools_common.EncodeError(
            f"Failed to write EXR file {outfile}: {ex}"
        ) from ex
    return header


# removes an output file left behind by a failed write, only if the
# write created it
def remove_partial_output(outfile, existed, config_dict):
    if (
        config_dict.get("remove_partial")
        and not existed
        and os.path.exists(outfile)
    ):
        os.remove(outfile)


def read_exr(infile, pixel_type=PixelType.HALF):
    if not os.path.isfile(infile):
        raise hdrtools_common.IoError(f"unable to read EXR file {infile}")
    try:
        exr_file = OpenEXR.InputFile(infile)
    except Exception as ex:
        raise hdrtools_common.IoError(f"unable to read EXR file {infile}: {ex}") from ex
    try:
        header = exr_file.header()
        data_window = header["dataWindow"]
        width = data_window.max.x - data_window.min.x + 1
        height = data_window.max.y - data_window.min.y + 1
        imath_pixel_type = Imath.PixelType(IMATH_PIXEL_TYPES[pixel_type])
        planes = {}
        for name in header["channels"]:
            buf = exr_file.channel(name, imath_pixel_type)
            planes[name] = np.frombuffer(buf, dtype=pixel_type.get_dtype()).reshape(
                height, width
            )
    except Exception as ex:
        raise hdrtools_common.IoError(f"unable to decode EXR file {infile}: {ex}") from ex
    finally:
        exr_file.close()
    return width, height, planes
