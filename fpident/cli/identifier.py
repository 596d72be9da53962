"""
fpident-identifier: identify the person at the sensor.

Prints the matched user id, ``no match`` or ``ambiguous``. Both of the
latter are successful runs (exit code 0).

Usage:
    fpident-identifier [--config PATH] [--image PATH] [--db PATH]
"""

import argparse
from typing import List, Optional

from ..errors import FingerprintError
from ..matching.decision import Decision, MatchResult
from ..pipelines.identification import IdentificationPipeline
from .common import (
    CONFIG_ERRORS,
    add_common_arguments,
    build_codec,
    build_engine,
    build_policy,
    build_sensor,
    build_store,
    init_logging,
    load_cli_config,
    report_error
)

PROG = "fpident-identifier"


def format_result(result: MatchResult) -> str:
    if result.decision is Decision.MATCH:
        return str(result.user_id)
    if result.decision is Decision.AMBIGUOUS:
        return "ambiguous"
    return "no match"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Identify a fingerprint against all enrolled templates"
    )
    add_common_arguments(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_cli_config(args)
        policy = build_policy(config)
        engine = build_engine(config)
    except CONFIG_ERRORS as e:
        report_error(e, PROG)
        return 1

    init_logging(config)

    store = build_store(config)
    pipeline = IdentificationPipeline(
        sensor=build_sensor(config),
        codec=build_codec(config),
        store=store,
        engine=engine,
        policy=policy
    )

    try:
        result = pipeline.identify()
    except FingerprintError as e:
        report_error(e, PROG)
        return 1

    print(format_result(result))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
