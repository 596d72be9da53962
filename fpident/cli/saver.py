"""
fpident-saver: enroll a user from one or more scans.

Usage:
    fpident-saver USER_ID [--count N] [--finger NAME] [--config PATH]
                  [--image PATH] [--db PATH]
"""

import argparse
from typing import List, Optional

from ..errors import FingerprintError
from ..pipelines.enrollment import EnrollmentPipeline
from ..template.template import Finger
from .common import (
    CONFIG_ERRORS,
    add_common_arguments,
    build_codec,
    build_sensor,
    build_store,
    init_logging,
    load_cli_config,
    report_error
)

PROG = "fpident-saver"


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def finger_type(value: str) -> Finger:
    try:
        return Finger.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Enroll a user's fingerprint into the template store"
    )
    parser.add_argument(
        "user_id",
        type=str,
        help="Identifier of the user to enroll"
    )
    parser.add_argument(
        "--count",
        type=positive_int,
        default=1,
        help="Number of scans to enroll"
    )
    parser.add_argument(
        "--finger",
        type=finger_type,
        default=None,
        help="Scanned finger, e.g. right-index or 7"
    )
    add_common_arguments(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.user_id.strip():
        parser.error("user_id must not be empty")

    try:
        config = load_cli_config(args)
    except CONFIG_ERRORS as e:
        report_error(e, PROG)
        return 1

    init_logging(config)

    store = build_store(config)
    pipeline = EnrollmentPipeline(
        sensor=build_sensor(config),
        codec=build_codec(config),
        store=store
    )

    try:
        store.create_schema()
        records = pipeline.enroll_many(args.user_id, args.count, args.finger)
    except FingerprintError as e:
        report_error(e, PROG)
        return 1

    print(f"Enrolled {args.user_id}: {len(records)} template(s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
