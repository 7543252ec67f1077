"""Command line interface for converting basis normal maps to and from QLog normal maps."""

import argparse
import math
import time

from .core import (
    ConversionConfig,
    ImageIOError,
    convert_buffer,
    log_error,
    log_info,
    log_warning,
    read_float_image,
    set_log_level,
    write_float_image,
)

DESCRIPTION = "Convert from a Basis Vector Normal to a Quaternion Logarithm Normal"

BIAS_HELP = (
    "Set bias for bit precision on angle from normal, positive values bias precision towards the normal, "
    "negative values bias away (default = 0, which is linear precision). For positive bias values, the "
    "formula to remove the bias is to unpack the texture from 0 to 1 so it covers -1 to 1, then "
    "(Pi/4) * Abs(value)^(bias+1) * Sign(value). At a bias of 0, the default, this can be simplified to "
    "unpacking 0 to 1 so it goes from -Pi/4 to Pi/4."
)


def _finite_float(x: str) -> float:
    try:
        v = float(x)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid float value: '{x}'") from None
    if not math.isfinite(v):
        raise argparse.ArgumentTypeError("-bias must be a finite number")
    return v


def _nonneg_int(x: str) -> int:
    try:
        v = int(x)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{x}'") from None
    if v < 0:
        raise argparse.ArgumentTypeError("-threads must be >= 0")
    return v


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qlog-normals",
        description=DESCRIPTION,
        usage="%(prog)s [options] inputfile outputfile",
    )
    parser.add_argument("inputfile", help="Normal map to read")
    parser.add_argument("outputfile", help="Where to write the converted normal map")
    parser.add_argument(
        "-i",
        dest="inverse",
        action="store_true",
        help="Convert from a Quaternion Logarithm Normal to a Basis Vector Normal",
    )
    parser.add_argument(
        "-deriveZ",
        dest="derive_z",
        action="store_true",
        help="Calculate the Z channel of the basis normal from the XY values "
        "(Only applies to conversion from Basis Vector Normal to Quaternion Logarithm Normal)",
    )
    parser.add_argument("-bias", dest="bias", type=_finite_float, default=0.0, metavar="FLOAT", help=BIAS_HELP)
    parser.add_argument(
        "-threads",
        "--threads",
        dest="threads",
        type=_nonneg_int,
        default=0,
        metavar="N",
        help="Number of worker threads (default = 0, which uses all available cores)",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Print debug output")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only print warnings and errors")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def convert_file(in_filename: str, out_filename: str, config: ConversionConfig) -> bool:
    """Reads, converts and writes one image. Returns False if reading or writing failed."""
    try:
        image = read_float_image(in_filename)
    except ImageIOError as e:
        log_error("qlog-normals", f'ERROR reading "{in_filename}" : {e}')
        return False

    start = time.perf_counter()
    try:
        convert_buffer(image, config)
    except ValueError as e:
        log_error("qlog-normals", f'Cannot convert "{in_filename}" : {e}')
        return False
    log_info("qlog-normals", f"{config.transform.name}: {in_filename} ({time.perf_counter() - start:.3f}s)")

    try:
        write_float_image(image, out_filename)
    except ImageIOError as e:
        log_error("qlog-normals", f'ERROR writing "{out_filename}" : {e}')
        return False

    log_info("qlog-normals", f"Wrote {out_filename}")
    return True


def main(argv: list[str] | None = None) -> int:
    """Entry point for the qlog-normals command."""
    args = parse_args(argv)

    if args.verbose:
        set_log_level("Debug")
    elif args.quiet:
        set_log_level("Warning")

    if args.derive_z and args.inverse:
        log_warning(
            "qlog-normals",
            "deriveZ has no effect when converting from Quaternion Logarithm Maps to Basis Vector Maps",
        )

    config = ConversionConfig(
        inverse=args.inverse,
        derive_z=args.derive_z,
        bias=args.bias,
        threads=args.threads,
    )

    ok = convert_file(args.inputfile, args.outputfile, config)
    return 0 if ok else 1
