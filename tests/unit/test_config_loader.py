"""Tests for the connection config loader."""

from pathlib import Path

import pytest

from blog_audit.config_loader import (
    ConfigError,
    ConfigNotFoundError,
    load_connection_config,
)


def test_loads_valid_config(tmp_path: Path) -> None:
    """Loads and validates a complete config."""
    config_path = tmp_path / "db-config.yaml"
    config_path.write_text(
        """
dsn: mysql+pymysql://localhost:3306/blog
user: blog
password: s3cret
options:
  connect_timeout: 5
  charset: utf8mb4
"""
    )

    config = load_connection_config(config_path)

    assert config.dsn == "mysql+pymysql://localhost:3306/blog"
    assert config.user == "blog"
    assert config.password is not None
    assert config.password.get_secret_value() == "s3cret"
    assert config.options == {"connect_timeout": 5, "charset": "utf8mb4"}


def test_loads_minimal_config(tmp_path: Path) -> None:
    """Only the DSN is required."""
    config_path = tmp_path / "db-config.yaml"
    config_path.write_text("dsn: sqlite:///blog.db\n")

    config = load_connection_config(config_path)

    assert config.user is None
    assert config.password is None
    assert config.options == {}


def test_raises_for_missing_file(tmp_path: Path) -> None:
    """Raises ConfigNotFoundError, a FileNotFoundError."""
    with pytest.raises(ConfigNotFoundError, match="Config file not found"):
        load_connection_config(tmp_path / "db-config.yaml")

    assert issubclass(ConfigNotFoundError, FileNotFoundError)


def test_raises_for_invalid_yaml(tmp_path: Path) -> None:
    """Raises ConfigError for malformed YAML."""
    config_path = tmp_path / "db-config.yaml"
    config_path.write_text("invalid: yaml: content: [")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_connection_config(config_path)


def test_raises_for_non_mapping(tmp_path: Path) -> None:
    """Raises ConfigError when the document is not a mapping."""
    config_path = tmp_path / "db-config.yaml"
    config_path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigError, match="Expected a mapping"):
        load_connection_config(config_path)


def test_raises_for_missing_dsn(tmp_path: Path) -> None:
    """Raises ConfigError when required keys are missing."""
    config_path = tmp_path / "db-config.yaml"
    config_path.write_text("user: blog\n")

    with pytest.raises(ConfigError, match="Invalid config"):
        load_connection_config(config_path)


def test_raises_for_unknown_key(tmp_path: Path) -> None:
    """Rejects a misspelled key instead of ignoring it."""
    config_path = tmp_path / "db-config.yaml"
    config_path.write_text("dsn: sqlite:///blog.db\npasswd: s3cret\n")

    with pytest.raises(ConfigError, match="passwd"):
        load_connection_config(config_path)
