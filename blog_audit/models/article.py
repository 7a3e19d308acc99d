"""Models for articles handled by the application under test."""

from dataclasses import dataclass
from datetime import datetime

REQUIRED_FIELDS = ("id", "title", "author", "content", "date")


@dataclass(frozen=True, kw_only=True)
class FixtureRow:
    """An article row inserted by the harness and removed after the run."""

    id: int
    title: str
    author: str
    content: str
    date: datetime
