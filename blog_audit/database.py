"""SQLAlchemy engine construction from a connection config."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Connection, Engine, create_engine
from sqlalchemy.pool import NullPool

from blog_audit.models.config import ConnectionConfig


def create_engine_from_config(config: ConnectionConfig) -> Engine:
    """Create an engine that opens a fresh DBAPI connection on every connect."""
    return create_engine(
        config.url(),
        connect_args=dict(config.options),
        poolclass=NullPool,
    )


@contextmanager
def connect(config: ConnectionConfig) -> Iterator[Connection]:
    """Open a connection and dispose of the engine once it is closed."""
    engine = create_engine_from_config(config)
    try:
        with engine.connect() as connection:
            yield connection
    finally:
        engine.dispose()
