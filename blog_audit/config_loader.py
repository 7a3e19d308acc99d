"""Load database connection settings from the application's YAML config."""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from blog_audit.models.config import ConnectionConfig

log = logging.getLogger(__name__)

CONFIG_FILENAME = "db-config.yaml"


class ConfigError(ValueError):
    """Raised when the config file exists but cannot be used."""


class ConfigNotFoundError(FileNotFoundError):
    """Raised when the config file does not exist."""


def load_connection_config(config_path: Path) -> ConnectionConfig:
    """Load and validate a connection config file.

    Args:
        config_path: Path to the YAML file (usually ``db-config.yaml``)

    Returns:
        Validated connection config

    Raises:
        ConfigNotFoundError: If the file does not exist
        ConfigError: If the file is not valid YAML or misses required keys

    """
    if not config_path.is_file():
        raise ConfigNotFoundError(f"Config file not found: {config_path}")

    log.info("Loading connection config from %s", config_path)
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {config_path}")

    try:
        return ConnectionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}") from e
