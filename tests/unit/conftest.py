"""Fixtures for unit tests."""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from sqlalchemy import Connection, text

from blog_audit.database import connect
from blog_audit.models.config import ConnectionConfig
from blog_audit.testing.blog_app import create_articles_table


@pytest.fixture
def sqlite_config(tmp_path: Path) -> ConnectionConfig:
    """Config for an SQLite database file with an empty articles table."""
    config = ConnectionConfig(dsn=f"sqlite:///{tmp_path / 'blog.db'}")
    with connect(config) as connection:
        create_articles_table(connection)
    return config


@pytest.fixture
def connection(sqlite_config: ConnectionConfig) -> Generator[Connection]:
    """Open connection to the SQLite database."""
    with connect(sqlite_config) as conn:
        yield conn


@pytest.fixture
def stored_ids(sqlite_config: ConnectionConfig) -> Callable[[], list[int]]:
    """Return a function listing the article ids stored in the database."""

    def _ids() -> list[int]:
        with connect(sqlite_config) as conn:
            query = text("SELECT id FROM articles ORDER BY id")
            return list(conn.execute(query).scalars())

    return _ids
