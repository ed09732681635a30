#!/usr/bin/env python3

"""hdrtools-common.py module description.


Module that contains common code.
"""


import enum
import sys


__version__ = "0.1"


class ConversionError(Exception):
    """Conversion issue."""

    stage = "convert"
    exit_code = 1


class IoError(ConversionError):
    """Input stream cannot be opened or read."""

    stage = "read"
    exit_code = 3


class UnsupportedFormatError(ConversionError):
    """Input stream is not a 48-bpp HDR TGA."""

    stage = "read"
    exit_code = 4


class InvalidArgumentError(ConversionError):
    """Bad output path, image, or dimensions."""

    stage = "write"
    exit_code = 5


class EncodeError(ConversionError):
    """Destination serialization failure."""

    stage = "write"
    exit_code = 6


class ShortRead(enum.Enum):
    error = 0
    zero_fill = 1

    @classmethod
    def get_choices(cls):
        return list(c.name.replace("_", "-") for c in cls)

    @classmethod
    def get_default(cls):
        return cls.error.name.replace("_", "-")

    @classmethod
    def parse(cls, val):
        if val is None:
            return cls.error
        if isinstance(val, cls):
            return val
        # map value (int)/name (str) to object
        for data in cls:
            if (type(val) is int and val == data.value) or (
                type(val) is str and val.lower().replace("-", "_") == data.name
            ):
                return data
        raise ValueError(f"invalid short-read policy: {val}")


class Compression(enum.Enum):
    none = 0
    rle = 1
    zips = 2
    zip = 3
    piz = 4

    @classmethod
    def get_choices(cls):
        return list(c.name for c in cls)

    @classmethod
    def parse(cls, val):
        if val is None:
            return cls.zip
        if isinstance(val, cls):
            return val
        for data in cls:
            if type(val) is str and val.lower() == data.name:
                return data
        raise ValueError(f"invalid compression: {val}")


def log(message, logfd=sys.stdout, debug=0, level=0):
    # progress messages print at level 0, details at level 1 and above
    if debug >= level:
        print(message, file=logfd)


class Config:
    DEFAULT_VALUES = {
        "short_read": ShortRead.get_default(),
        "compression": Compression.zip.name,
        "remove_partial": True,
        "verify": False,
    }

    def __init__(self):
        self.config_dict = {}

    def __str__(self):
        return "\n".join(f"{k}: {v}" for (k, v) in self.config_dict.items())

    @classmethod
    def Create(cls, options):
        config_dict = cls()
        for key, val in vars(options).items():
            if key in cls.DEFAULT_VALUES.keys():
                config_dict.set(key, val)
        return config_dict

    @classmethod
    def set_parser_options(cls, parser):
        parser.add_argument(
            "--short-read",
            action="store",
            type=str,
            dest="short_read",
            default=cls.DEFAULT_VALUES["short_read"],
            choices=ShortRead.get_choices(),
            metavar="[%s]" % (" | ".join(ShortRead.get_choices())),
            help="Policy for a truncated pixel payload (default: %s)"
            % cls.DEFAULT_VALUES["short_read"],
        )
        parser.add_argument(
            "--compression",
            action="store",
            type=str,
            dest="compression",
            default=cls.DEFAULT_VALUES["compression"],
            choices=Compression.get_choices(),
            metavar="[%s]" % (" | ".join(Compression.get_choices())),
            help="EXR compression (default: %s)" % cls.DEFAULT_VALUES["compression"],
        )
        parser.add_argument(
            "--remove-partial",
            dest="remove_partial",
            action="store_true",
            default=cls.DEFAULT_VALUES["remove_partial"],
            help="Remove a partially-written output file on failure%s"
            % (" [default]" if cls.DEFAULT_VALUES["remove_partial"] else ""),
        )
        parser.add_argument(
            "--no-remove-partial",
            dest="remove_partial",
            action="store_false",
            help="Keep a partially-written output file on failure%s"
            % (" [default]" if not cls.DEFAULT_VALUES["remove_partial"] else ""),
        )
        parser.add_argument(
            "--verify",
            dest="verify",
            action="store_true",
            default=cls.DEFAULT_VALUES["verify"],
            help="Read back the output file and compare it%s"
            % (" [default]" if cls.DEFAULT_VALUES["verify"] else ""),
        )
        parser.add_argument(
            "--no-verify",
            dest="verify",
            action="store_false",
            help="Do not read back the output file%s"
            % (" [default]" if not cls.DEFAULT_VALUES["verify"] else ""),
        )

    def get(self, key):
        return self.config_dict.get(key, self.DEFAULT_VALUES[key])

    def set(self, key, val):
        self.config_dict[key] = val


def get_config(config_dict):
    # core functions accept None for "all defaults"
    return config_dict if config_dict is not None else Config()
