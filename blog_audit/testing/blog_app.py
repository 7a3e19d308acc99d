"""Minimal blog data layer used as a stand-in application in tests."""

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import Connection, text

ARTICLES_DDL = """
CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title VARCHAR(255) NOT NULL,
    author VARCHAR(255) NOT NULL,
    content TEXT NOT NULL,
    date DATETIME NOT NULL
)
"""

MYSQL_ARTICLES_DDL = """
CREATE TABLE IF NOT EXISTS articles (
    id INT AUTO_INCREMENT PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    author VARCHAR(255) NOT NULL,
    content TEXT NOT NULL,
    date DATETIME NOT NULL
) CHARACTER SET utf8mb4
"""


def create_articles_table(connection: Connection) -> None:
    """Create the articles table for the connection's dialect."""
    ddl = MYSQL_ARTICLES_DDL if connection.dialect.name == "mysql" else ARTICLES_DDL
    connection.execute(text(ddl))
    connection.commit()


def get_articles(connection: Connection) -> Sequence[Mapping[str, Any]]:
    """Return all articles, newest first."""
    result = connection.execute(
        text("SELECT id, title, author, content, date FROM articles ORDER BY id DESC")
    )
    return [dict(row) for row in result.mappings()]
