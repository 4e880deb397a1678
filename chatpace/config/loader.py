"""Configuration loading utilities."""

import json
import re
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from chatpace.config.schema import DeliveryConfig


def load_config(config_path: Path | str | None = None) -> DeliveryConfig:
    """
    Load delivery configuration from a JSON file or create default.

    Args:
        config_path: Optional path to config file. Missing files give defaults.

    Returns:
        Loaded configuration object.
    """
    if config_path is None:
        return DeliveryConfig()

    path = Path(config_path)
    if not path.exists():
        logger.warning(f"Config file {path} not found, using default configuration")
        return DeliveryConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return DeliveryConfig.model_validate(convert_keys(data))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        logger.warning("Using default configuration.")
        return DeliveryConfig()


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
