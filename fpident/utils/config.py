"""
Configuration management for the fingerprint identification system.

This module provides utilities for loading, validating, and accessing
configuration parameters from YAML files.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union
import yaml


@dataclass
class CodecConfig:
    """Configuration for scan preprocessing and minutiae extraction."""
    target_size: Optional[tuple] = None
    equalize: bool = True
    remove_gradient: bool = True
    segment: bool = True
    block_size: int = 16
    binarization_method: str = 'adaptive'
    border_margin: int = 16
    spurious_distance: int = 6
    max_minutiae: int = 80
    min_minutiae: int = 8
    min_contrast: float = 0.05


@dataclass
class MatchingConfig:
    """Configuration for the minutiae matcher and the 1:N scan."""
    distance_threshold: float = 15.0
    angle_threshold: float = 0.26
    min_matched_minutiae: int = 6
    alignment_method: str = 'exhaustive'
    ransac_iterations: int = 500
    random_state: int = 42
    num_workers: int = 1


@dataclass
class DecisionConfig:
    """Configuration for the identification decision policy."""
    match_threshold: float = 0.4
    ambiguity_margin: float = 0.05
    distinct_users: bool = False


@dataclass
class StorageConfig:
    """Configuration for the template store."""
    db_path: str = "data/fingers.sqlite"
    timeout: float = 5.0


@dataclass
class CaptureConfig:
    """Configuration for the capture source."""
    source: str = "data/scans"


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    log_dir: Optional[str] = None


@dataclass
class Config:
    """
    Main configuration container for the identification system.

    Attributes:
        codec: Template extraction settings
        matching: Similarity scoring settings
        decision: Match / ambiguity thresholds
        storage: Template store settings
        capture: Sensor settings
        logging: Logging configuration
    """
    codec: CodecConfig = field(default_factory=CodecConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    decision: DecisionConfig = field(default_factory=DecisionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the configuration file does not exist
        yaml.YAMLError: If the YAML file is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    The override dictionary values take precedence over base values.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _build_section(section_cls, values: Dict[str, Any]):
    known = set(section_cls.__dataclass_fields__)
    unknown = set(values) - known
    if unknown:
        raise ValueError(
            f"Unknown {section_cls.__name__} keys: {sorted(unknown)}"
        )
    return section_cls(**values)


def config_from_dict(config_dict: Dict[str, Any]) -> Config:
    """
    Build a validated Config from a plain dictionary.

    Args:
        config_dict: Dictionary with optional section sub-dictionaries

    Returns:
        Config object

    Raises:
        ValueError: On unknown sections/keys or out-of-range values
    """
    config_dict = dict(config_dict)

    codec_dict = dict(config_dict.pop('codec', None) or {})
    if codec_dict.get('target_size') is not None:
        codec_dict['target_size'] = tuple(codec_dict['target_size'])

    config = Config(
        codec=_build_section(CodecConfig, codec_dict),
        matching=_build_section(MatchingConfig, config_dict.pop('matching', None) or {}),
        decision=_build_section(DecisionConfig, config_dict.pop('decision', None) or {}),
        storage=_build_section(StorageConfig, config_dict.pop('storage', None) or {}),
        capture=_build_section(CaptureConfig, config_dict.pop('capture', None) or {}),
        logging=_build_section(LoggingConfig, config_dict.pop('logging', None) or {}),
    )

    if config_dict:
        raise ValueError(f"Unknown configuration sections: {sorted(config_dict)}")

    validate_config(config)
    return config


def validate_config(config: Config) -> None:
    """
    Check value ranges that the pipelines rely on.

    Raises:
        ValueError: If any value is out of range
    """
    decision = config.decision
    if not 0.0 <= decision.match_threshold <= 1.0:
        raise ValueError(
            f"decision.match_threshold must be in [0, 1], got {decision.match_threshold}"
        )
    if decision.ambiguity_margin < 0.0:
        raise ValueError(
            f"decision.ambiguity_margin must be >= 0, got {decision.ambiguity_margin}"
        )

    matching = config.matching
    if matching.alignment_method not in ('exhaustive', 'ransac'):
        raise ValueError(f"Unknown alignment method: {matching.alignment_method}")
    if matching.num_workers < 1:
        raise ValueError(f"matching.num_workers must be >= 1, got {matching.num_workers}")
    if matching.distance_threshold <= 0 or matching.angle_threshold <= 0:
        raise ValueError("matching distance/angle thresholds must be positive")

    codec = config.codec
    if codec.binarization_method not in ('adaptive', 'otsu', 'global'):
        raise ValueError(f"Unknown binarization method: {codec.binarization_method}")
    if codec.block_size < 1:
        raise ValueError(f"codec.block_size must be >= 1, got {codec.block_size}")
    if codec.min_minutiae < 1:
        raise ValueError(f"codec.min_minutiae must be >= 1, got {codec.min_minutiae}")
    if codec.max_minutiae < codec.min_minutiae:
        raise ValueError("codec.max_minutiae must be >= codec.min_minutiae")


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    base_config_path: Optional[Union[str, Path]] = None
) -> Config:
    """
    Load configuration from YAML files.

    Optionally merges with a base configuration file. Without any path
    the built-in defaults are returned.

    Args:
        config_path: Path to the main configuration file
        base_config_path: Optional path to base configuration to merge with

    Returns:
        Config object with loaded settings
    """
    config_dict: Dict[str, Any] = {}

    if base_config_path is not None:
        config_dict = load_yaml(base_config_path)

    if config_path is not None:
        config_dict = merge_configs(config_dict, load_yaml(config_path))

    return config_from_dict(config_dict)


# Default configuration instance
DEFAULT_CONFIG = Config()
