"""
Load and save the uArm client configuration (JSON).
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .models import AppConfig


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "uarm_config.json"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


def _format_validation_error(error: ValidationError) -> str:
    lines = []
    for item in error.errors():
        location = " -> ".join(str(x) for x in item["loc"]) or "(root)"
        lines.append(f"  - {location}: {item['msg']}")
    return "Configuration validation failed:\n" + "\n".join(lines)


def load_config(path: Optional[str] = None, create_missing: bool = True) -> AppConfig:
    """
    Load configuration from a JSON file.

    Args:
        path: Config file path. Defaults to uarm_config.json in the current directory.
        create_missing: Write a default file when none exists.

    Returns:
        Validated AppConfig instance.

    Raises:
        ConfigurationError: If the file is unreadable or invalid.
    """
    config_path = Path(path or DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        logger.info(f"Config file not found: {config_path}. Using defaults.")
        config = AppConfig()
        if create_missing:
            try:
                save_config(config, str(config_path))
            except ConfigurationError as e:
                logger.warning(f"Failed to create default config file: {e}")
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
    except IOError as e:
        raise ConfigurationError(f"Failed to read {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a JSON object")

    # Keys starting with "_" are comments
    data = {k: v for k, v in data.items() if not k.startswith("_")}

    try:
        config = AppConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e)) from e

    logger.info(f"Configuration loaded from {config_path}")
    return config


def save_config(config: AppConfig, path: Optional[str] = None) -> None:
    """
    Save configuration to a JSON file.

    Raises:
        ConfigurationError: If the file cannot be written.
    """
    config_path = Path(path or DEFAULT_CONFIG_PATH)

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config.model_dump(), f, indent=2)
    except IOError as e:
        raise ConfigurationError(f"Failed to write {config_path}: {e}") from e

    logger.info(f"Configuration saved to {config_path}")
