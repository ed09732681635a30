#!/usr/bin/env python3

"""hdrtools-tga2exr.py: HDR TGA to OpenEXR converter.

Converts a 48 bpp (3x half-float) TGA file into an OpenEXR file with
three HALF channels (R, G, B).
"""


import argparse
import importlib
import sys

hdrtools_common = importlib.import_module("hdrtools-common")
hdrtools_io = importlib.import_module("hdrtools-io")

__version__ = hdrtools_common.__version__


default_values = {
    "debug": 0,
    "logfile": None,
    "infile": None,
    "outfile": None,
}


def get_options(argv):
    """Generic option parser.

    Args:
        argv: list containing arguments

    Returns:
        Namespace - An argparse.ArgumentParser-generated option object
    """
    # init parser
    # usage = 'usage: %prog [options] arg1 arg2'
    # parser = argparse.OptionParser(usage=usage)
    # parser.print_help() to get argparse.usage (large help)
    # parser.print_usage() to get argparse.usage (just usage line)
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=__version__,
        help="Print version",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="count",
        dest="debug",
        default=default_values["debug"],
        help="Increase verbosity (use multiple times for more)",
    )
    parser.add_argument(
        "--quiet",
        action="store_const",
        dest="debug",
        const=-1,
        help="Zero verbosity",
    )
    parser.add_argument(
        "--logfile",
        action="store",
        dest="logfile",
        type=str,
        default=default_values["logfile"],
        metavar="log-file",
        help="log file",
    )
    hdrtools_common.Config.set_parser_options(parser)
    parser.add_argument(
        "infile",
        type=str,
        default=default_values["infile"],
        metavar="input-file",
        help="input file (HDR TGA)",
    )
    parser.add_argument(
        "outfile",
        type=str,
        default=default_values["outfile"],
        metavar="output-file",
        help="output file (EXR)",
    )
    # do the parsing
    options = parser.parse_args(argv[1:])
    return options


def main(argv, encoder=None):
    # parse options
    options = get_options(argv)
    # get logfile descriptor
    if options.logfile is None:
        logfd = sys.stdout
    else:
        try:
            logfd = open(options.logfile, "w")
        except OSError as ex:
            print(f"error: logfile: {ex}", file=sys.stderr)
            return hdrtools_common.ConversionError.exit_code
    # create configuration
    config_dict = hdrtools_common.Config.Create(options)
    # print results
    if options.debug > 0:
        print(f"debug: {options}", file=logfd)

    try:
        hdrtools_io.convert(
            options.infile,
            options.outfile,
            encoder=encoder,
            config_dict=config_dict,
            logfd=logfd,
            debug=options.debug,
        )
    except hdrtools_common.ConversionError as ex:
        print(f"error: {ex.stage}: {ex}", file=sys.stderr)
        return ex.exit_code
    finally:
        if logfd is not sys.stdout:
            logfd.close()
    return 0


if __name__ == "__main__":
    # at least the CLI program name: (CLI) execution
    sys.exit(main(sys.argv))
