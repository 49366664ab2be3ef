"""
Configuration loader for the Squaring module.

Loads and validates configuration from config.yaml file.
"""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from src.squaring.types import (
    HomographyConfig,
    OutputConfig,
    OutputFormat,
    SolverMethod,
    SquaringConfig,
)

logger = logging.getLogger(__name__)

# Default configuration path (relative to this file)
DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> SquaringConfig:
    """
    Load squaring configuration from YAML file.

    Args:
        config_path: Path to the configuration YAML file.

    Returns:
        Validated SquaringConfig object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config is invalid or missing required fields.

    Example:
        >>> config = load_config()
        >>> config.homography.method
        <SolverMethod.CLOSED_FORM: 'closed_form'>
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading squaring config from {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    try:
        config = _parse_config(raw_config)
        _validate_config(config)
        logger.info("Successfully loaded squaring configuration")
        return config
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration file: {e}") from e


def _parse_config(raw: Dict[str, Any]) -> SquaringConfig:
    """Parse raw dictionary into structured config objects."""
    return SquaringConfig(
        homography=HomographyConfig(
            method=SolverMethod(str(raw["homography"]["method"])),
            epsilon=float(raw["homography"]["epsilon"]),
        ),
        output=OutputConfig(
            format=OutputFormat(str(raw["output"]["format"]).lower()),
            png_compression=int(raw["output"]["png_compression"]),
            jpeg_quality=int(raw["output"]["jpeg_quality"]),
        ),
    )


def _validate_config(config: SquaringConfig) -> None:
    """
    Validate configuration values for logical consistency.

    Raises:
        ValueError: If any configuration value is invalid.
    """
    if not 0 < config.homography.epsilon < 1:
        raise ValueError(
            f"epsilon must be in (0, 1), got {config.homography.epsilon}"
        )

    if not 0 <= config.output.png_compression <= 9:
        raise ValueError(
            f"png_compression must be between 0 and 9, got {config.output.png_compression}"
        )

    if not 1 <= config.output.jpeg_quality <= 100:
        raise ValueError(
            f"jpeg_quality must be between 1 and 100, got {config.output.jpeg_quality}"
        )

    logger.debug("Configuration validation passed")
