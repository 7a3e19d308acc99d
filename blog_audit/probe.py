"""Connectivity and latency checks against the application database."""

import logging
import time
from collections.abc import Callable
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from blog_audit.config_loader import (
    ConfigError,
    ConfigNotFoundError,
    load_connection_config,
)
from blog_audit.database import connect
from blog_audit.models.config import ConnectionConfig
from blog_audit.models.result import TestOutcome

log = logging.getLogger(__name__)

DEFAULT_LATENCY_THRESHOLD_MS = 100.0
PROBE_QUERY = "SELECT 1"


def probe(
    config: ConnectionConfig,
    *,
    with_query: bool,
    threshold_ms: float = DEFAULT_LATENCY_THRESHOLD_MS,
    clock: Callable[[], float] = time.perf_counter,
) -> TestOutcome:
    """Connect to the database and optionally time a round-trip query.

    Latency is measured from just before connecting to just after the query
    completes. A slow query is only observed after the fact.

    Args:
        config: Connection settings
        with_query: Run ``SELECT 1`` and compare the elapsed time to the limit
        threshold_ms: Latency limit in milliseconds
        clock: Monotonic clock returning seconds

    Returns:
        Pass, or Fail with a "Connection failed" or "Too slow" reason

    """
    started = clock()
    try:
        with connect(config) as connection:
            if with_query:
                connection.execute(text(PROBE_QUERY)).scalar()
            finished = clock()
    except (SQLAlchemyError, ImportError) as e:
        log.info("Database connection failed: %s", e)
        return TestOutcome.failed(f"Connection failed: {e}")

    if not with_query:
        return TestOutcome.passed()

    elapsed_ms = (finished - started) * 1000
    log.info("Database round trip took %.2fms", elapsed_ms)
    if elapsed_ms > threshold_ms:
        return TestOutcome.failed(
            f"Too slow: {elapsed_ms:.2f}ms (Limit: {threshold_ms:g}ms)"
        )
    return TestOutcome.passed()


def probe_config_file(
    config_path: Path,
    *,
    with_query: bool,
    threshold_ms: float = DEFAULT_LATENCY_THRESHOLD_MS,
) -> TestOutcome:
    """Load the config file and probe the database it points at.

    A missing or unusable config file is reported as a failure, not an error.
    """
    try:
        config = load_connection_config(config_path)
    except ConfigNotFoundError:
        return TestOutcome.failed(f"Config not found: {config_path}")
    except ConfigError as e:
        return TestOutcome.failed(f"Invalid config: {e}")

    return probe(config, with_query=with_query, threshold_ms=threshold_ms)
