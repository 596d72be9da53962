"""
Utility modules for the fingerprint identification system.
"""

from .config import (
    Config,
    CodecConfig,
    MatchingConfig,
    DecisionConfig,
    StorageConfig,
    CaptureConfig,
    LoggingConfig,
    load_config,
    load_yaml,
    config_from_dict,
    validate_config,
    DEFAULT_CONFIG
)
from .logger import (
    setup_logger
)
from .io import (
    load_image,
    save_image,
    discover_images,
    SUPPORTED_EXTENSIONS
)

__all__ = [
    # Config
    'Config',
    'CodecConfig',
    'MatchingConfig',
    'DecisionConfig',
    'StorageConfig',
    'CaptureConfig',
    'LoggingConfig',
    'load_config',
    'load_yaml',
    'config_from_dict',
    'validate_config',
    'DEFAULT_CONFIG',
    # Logger
    'setup_logger',
    # IO
    'load_image',
    'save_image',
    'discover_images',
    'SUPPORTED_EXTENSIONS',
]
