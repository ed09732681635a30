#!/usr/bin/env python3

"""hdrtools-rgba.py module description.

Runs the RGBA remap: TGA grid (bottom-up rows, packed RGB) into the
interleaved RGBA layout the EXR writer binds its channels to.
"""


import numpy as np


# rgba is packed, R/G/B/A half-float components (8 bytes per pixel)
RGBA_DTYPE = np.dtype(
    [("r", "<f2"), ("g", "<f2"), ("b", "<f2"), ("a", "<f2")]
)
OPAQUE_ALPHA = 1.0


class DestinationImage:
    def __init__(self, width, height, pixels):
        self.width = width
        self.height = height
        self.pixels = pixels

    def __str__(self):
        return f"width: {self.width} height: {self.height} pixels: {len(self.pixels)}"

    def pixel(self, row, col):
        record = self.pixels[row * self.width + col]
        return (record["r"], record["g"], record["b"], record["a"])

    # returns a (height, width) view of one RGBA component
    def component(self, name):
        return self.pixels[name].reshape(self.height, self.width)


def remap(source_image):
    width, height = source_image.width, source_image.height
    grid = source_image.grid()
    pixels = np.empty(width * height, dtype=RGBA_DTYPE)
    # reshape is a view: writes land in pixels
    rgba = pixels.reshape(height, width)
    # TGA stores the bottom row first: flip the rows
    flipped = grid[::-1]
    rgba["r"] = flipped[:, :, 0]
    rgba["g"] = flipped[:, :, 1]
    rgba["b"] = flipped[:, :, 2]
    rgba["a"] = OPAQUE_ALPHA
    return DestinationImage(width, height, pixels)
