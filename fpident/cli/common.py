"""
Shared setup for the command line tools.

Every command accepts ``--config``, ``--image`` and ``--db`` and builds its
components from the resulting configuration.
"""

import argparse
import sys
from typing import Optional

import yaml

from ..data.capture import ImageFileSensor, Sensor
from ..errors import CaptureError, PipelineError
from ..matching.decision import DecisionPolicy
from ..matching.engine import MatchEngine
from ..storage.sqlite_store import SQLiteTemplateStore
from ..template.codec import TemplateCodec
from ..utils.config import Config, load_config
from ..utils.logger import setup_logger

# Errors that mean the configuration itself is unusable
CONFIG_ERRORS = (FileNotFoundError, ValueError, TypeError, yaml.YAMLError)


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML configuration file (built-in defaults if omitted)"
    )
    parser.add_argument(
        "--image",
        type=str,
        default=None,
        help="Scan image file or directory, overrides capture.source"
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path, overrides storage.db_path"
    )
    parser.add_argument(
        "--log_level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level, overrides logging.level"
    )


def load_cli_config(args: argparse.Namespace) -> Config:
    """
    Load the configuration and apply command line overrides.

    Raises:
        FileNotFoundError: The configuration file does not exist
        ValueError: The configuration is invalid
    """
    config = load_config(args.config)

    if args.image is not None:
        config.capture.source = args.image
    if args.db is not None:
        config.storage.db_path = args.db
    if args.log_level is not None:
        config.logging.level = args.log_level

    return config


def init_logging(config: Config) -> None:
    setup_logger("fpident", config.logging.level, config.logging.log_dir)


def build_sensor(config: Config) -> Sensor:
    return ImageFileSensor(config.capture.source)


def build_codec(config: Config) -> TemplateCodec:
    return TemplateCodec(config.codec)


def build_store(config: Config) -> SQLiteTemplateStore:
    return SQLiteTemplateStore(config.storage.db_path, timeout=config.storage.timeout)


def build_engine(config: Config) -> MatchEngine:
    return MatchEngine.from_config(config.matching)


def build_policy(config: Config) -> DecisionPolicy:
    return DecisionPolicy.from_config(config.decision)


def report_error(error: Exception, prog: Optional[str] = None) -> None:
    """Print a failure to stderr, with the sensor prompt when there is one."""
    prefix = f"{prog}: " if prog else ""
    print(f"{prefix}error: {error}", file=sys.stderr)

    cause = error.cause if isinstance(error, PipelineError) else error
    if isinstance(cause, CaptureError) and str(cause) != cause.reason.prompt:
        print(cause.reason.prompt, file=sys.stderr)
