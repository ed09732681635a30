#!/usr/bin/env python3

"""hdrtools-io.py module description.

Generic I/O functions: the TGA -> EXR conversion pipeline.
"""


import importlib
import numpy as np
import os
import sys

hdrtools_common = importlib.import_module("hdrtools-common")
hdrtools_exr = importlib.import_module("hdrtools-exr")
hdrtools_rgba = importlib.import_module("hdrtools-rgba")
hdrtools_tga = importlib.import_module("hdrtools-tga")


def convert(
    infile, outfile, encoder=None, config_dict=None, logfd=sys.stdout, debug=0
):
    config_dict = hdrtools_common.get_config(config_dict)
    # 1. read the TGA
    source_image = hdrtools_tga.read_tga(
        infile, config_dict=config_dict, logfd=logfd, debug=debug
    )
    # 2. flip and interleave into RGBA
    destination_image = hdrtools_rgba.remap(source_image)
    del source_image
    hdrtools_common.log(
        "TGA file read successfully, converting to EXR...", logfd, debug
    )
    # 3. write the EXR
    existed = bool(outfile) and os.path.exists(outfile)
    hdrtools_exr.write_exr(
        outfile,
        destination_image,
        encoder=encoder,
        config_dict=config_dict,
        logfd=logfd,
        debug=debug,
    )
    if config_dict.get("verify"):
        try:
            verify_exr(outfile, destination_image, logfd, debug)
        except hdrtools_common.ConversionError as ex:
            # a file that does not read back is a write failure
            hdrtools_exr.remove_partial_output(outfile, existed, config_dict)
            raise hdrtools_common.EncodeError(
                f"Failed to verify EXR file {outfile}: {ex}"
            ) from ex
    hdrtools_common.log(f"EXR file {outfile} successfully written.", logfd, debug)
    return destination_image


# checks the EXR file holds exactly the R, G, B components of the image
def verify_exr(outfile, destination_image, logfd=sys.stdout, debug=0):
    width, height, planes = hdrtools_exr.read_exr(outfile)
    if (width, height) != (destination_image.width, destination_image.height):
        raise hdrtools_common.EncodeError(
            f"verify: {outfile} is {width}x{height} "
            f"(expected {destination_image.width}x{destination_image.height})"
        )
    if set(planes.keys()) != set(hdrtools_exr.CHANNEL_FIELDS.keys()):
        raise hdrtools_common.EncodeError(
            f"verify: {outfile} has channels {sorted(planes.keys())}"
        )
    for name, field in hdrtools_exr.CHANNEL_FIELDS.items():
        expected = destination_image.component(field)
        # compare bit patterns: NaN != NaN as floats
        if not np.array_equal(planes[name].view("<u2"), expected.view("<u2")):
            raise hdrtools_common.EncodeError(
                f"verify: channel {name} of {outfile} does not match"
            )
    if debug > 0:
        print(f"debug: verified {outfile}", file=logfd)
