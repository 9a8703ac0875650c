"""Configuration loading with YAML parsing and validation."""

import logging
from pathlib import Path
from typing import Any

import pydantic_yaml

from .schema import PipelineConfig

logger = logging.getLogger(__name__)


def load_config(config_path: Path | str) -> PipelineConfig:
    """
    Load and validate pipeline configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated PipelineConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    yaml_content = config_path.read_text()
    config = pydantic_yaml.parse_yaml_raw_as(PipelineConfig, yaml_content)

    logger.debug(f"Loaded config from {config_path}")
    return config


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> PipelineConfig:
    """
    Load config from YAML and apply dictionary overrides.

    CLI flags such as --overlap-length land here as "standard.overlap_length".

    Args:
        config_path: Path to YAML configuration file
        overrides: Values to override; dotted keys address nested sections.
            None values are ignored so unset CLI options keep the file value.

    Returns:
        Validated PipelineConfig with overrides applied

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If final config is invalid
    """
    config = load_config(config_path)
    config_dict = config.model_dump()

    for key, value in overrides.items():
        if value is None:
            continue
        parts = key.split(".")
        target = config_dict
        for part in parts[:-1]:
            target = target[part]
        target[parts[-1]] = value

    return PipelineConfig.model_validate(config_dict)
