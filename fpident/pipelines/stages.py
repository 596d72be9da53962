"""
Pipeline stages and the stage runner shared by both pipelines.
"""

import logging
from enum import Enum
from typing import Callable, TypeVar

from ..errors import FingerprintError, PipelineError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Stage(Enum):
    """Stages a pipeline invocation moves through."""
    CAPTURING = "capturing"
    ENCODING = "encoding"
    LOADING = "loading"
    MATCHING = "matching"
    DECIDING = "deciding"
    PERSISTING = "persisting"


def run_stage(stage: Stage, func: Callable[..., T], *args, **kwargs) -> T:
    """
    Run one pipeline stage.

    A package error raised by the stage aborts the invocation: it is
    logged once here and re-raised as ``PipelineError(stage, cause)``
    chained to the original.

    Args:
        stage: Stage being run
        func: Stage body
        *args, **kwargs: Arguments for func

    Returns:
        Whatever func returns

    Raises:
        PipelineError: If func raised a FingerprintError
    """
    logger.debug(f"Stage {stage.value}")
    try:
        return func(*args, **kwargs)
    except PipelineError:
        raise
    except FingerprintError as e:
        error = PipelineError(stage, e)
        if error.retryable:
            logger.warning(str(error))
        else:
            logger.error(str(error))
        raise error from e
