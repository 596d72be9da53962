"""
Logging utilities for the fingerprint identification system.

Library modules log through ``logging.getLogger(__name__)``; entry points
call ``setup_logger`` once to attach console and optional file output.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(
    name: str = "fpident",
    level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure and return a logger.

    Existing handlers on the logger are replaced, so calling this twice
    does not duplicate output.

    Args:
        name: Logger name (the package name configures every module logger)
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for a timestamped log file, None to disable
        console_output: Whether to output to stderr

    Returns:
        Configured logging.Logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers = []  # Clear existing handlers

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if console_output:
        # stdout is reserved for command output
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        file_handler = logging.FileHandler(log_dir / f"{name}_{timestamp}.log")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
