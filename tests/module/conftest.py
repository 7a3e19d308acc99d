"""Fixtures for module tests against MySQL in a testcontainer."""

from collections.abc import Generator

import docker
import pytest
from docker.errors import DockerException
from testcontainers.core import testcontainers_config
from testcontainers.mysql import MySqlContainer

from blog_audit.database import connect
from blog_audit.models.config import ConnectionConfig
from blog_audit.testing.blog_app import create_articles_table


@pytest.fixture(scope="session", autouse=True)
def _disable_ryuk() -> None:
    """Disable the extra cleanup instance, we use contexts to clean containers."""
    testcontainers_config.ryuk_disabled = True


@pytest.fixture(scope="session")
def _docker_available() -> None:
    """Skip module tests when no Docker daemon is reachable."""
    try:
        docker.from_env().ping()
    except DockerException as e:
        pytest.skip(f"Docker is not available: {e}")


@pytest.fixture(scope="session")
def mysql_server(_docker_available: None) -> Generator[MySqlContainer]:
    """Start a MySQL server for the session."""
    with MySqlContainer("mysql:8.0") as mysql:
        yield mysql


@pytest.fixture(scope="session")
def mysql_config(mysql_server: MySqlContainer) -> ConnectionConfig:
    """Connection config for the MySQL container, with the articles table."""
    host = mysql_server.get_container_host_ip()
    port = mysql_server.get_exposed_port(3306)
    config = ConnectionConfig(
        dsn=f"mysql+pymysql://{host}:{port}/{mysql_server.dbname}",
        user=mysql_server.username,
        password=mysql_server.password,
        options={"charset": "utf8mb4", "connect_timeout": 10},
    )
    with connect(config) as connection:
        create_articles_table(connection)
    return config
