"""
fpident-capture: capture one scan and save it as an image file.

Usage:
    fpident-capture OUTPUT [--config PATH] [--image PATH]
"""

import argparse
import logging
from typing import List, Optional

from ..errors import CaptureError
from ..utils.io import save_image
from .common import (
    CONFIG_ERRORS,
    add_common_arguments,
    build_sensor,
    init_logging,
    load_cli_config,
    report_error
)

logger = logging.getLogger(__name__)

PROG = "fpident-capture"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Capture one fingerprint scan and save it as an image"
    )
    parser.add_argument(
        "output",
        type=str,
        help="Output image path (format from the extension, e.g. .png)"
    )
    add_common_arguments(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_cli_config(args)
    except CONFIG_ERRORS as e:
        report_error(e, PROG)
        return 1

    init_logging(config)

    try:
        scan = build_sensor(config).capture()
        save_image(scan.to_image(), args.output)
    except (CaptureError, ValueError) as e:
        report_error(e, PROG)
        return 1

    logger.info(f"Saved {scan.width}x{scan.height} scan to {args.output}")
    print(args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
