"""Live-database checks for the application's ``get_articles`` function.

The checks insert fixture articles, read them back through ``get_articles``
and compare. Every inserted id is tracked and deleted in one batch when the
sequence ends, whether it passed, failed or raised.
"""

import logging
import time
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import (
    Connection,
    DateTime,
    Integer,
    String,
    Text,
    bindparam,
    column,
    table,
    text,
)

from blog_audit.models.article import REQUIRED_FIELDS, FixtureRow
from blog_audit.models.result import TestOutcome
from blog_audit.runner import Runner, TestAction
from blog_audit.sut import GetArticles

log = logging.getLogger(__name__)

FIXTURE_AUTHOR = "Unit Tester"
FIXTURE_CONTENT = "This is unit test content."
SPECIAL_TITLE = "Test <script> ' \" & chars"
ORDER_PAUSE_SECONDS = 0.1

_ARTICLES = table(
    "articles",
    column("id", Integer()),
    column("title", String()),
    column("author", String()),
    column("content", Text()),
    column("date", DateTime()),
)
_DELETE = text("DELETE FROM articles WHERE id IN :ids").bindparams(
    bindparam("ids", expanding=True)
)


class FixtureTracker:
    """Inserts fixture articles and remembers their ids until deleted."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self._ids: list[int] = []

    @property
    def ids(self) -> Sequence[int]:
        """Ids inserted and not yet deleted."""
        return tuple(self._ids)

    def insert(self, *, title: str, author: str, content: str) -> FixtureRow:
        """Insert and commit one article.

        The new id is read with ``INSERT ... RETURNING`` where the dialect
        supports it. Otherwise the driver's ``lastrowid`` is used, and a
        missing or zero id is an error rather than a fixture that cleanup
        could never find.
        """
        date = datetime.now().replace(microsecond=0)
        statement = _ARTICLES.insert().values(
            title=title, author=author, content=content, date=date
        )
        returning = self.connection.dialect.insert_returning
        if returning:
            statement = statement.returning(_ARTICLES.c.id)

        result = self.connection.execute(statement)
        row_id = result.scalar_one() if returning else result.lastrowid
        self.connection.commit()

        if not row_id:
            raise RuntimeError(f"Database did not report an id for {title!r}")
        row = FixtureRow(
            id=int(row_id),
            title=title,
            author=author,
            content=content,
            date=date,
        )
        self._ids.append(row.id)
        log.info("Inserted fixture article %d", row.id)
        return row

    def delete(self, *ids: int) -> int:
        """Delete articles by id in one statement; unknown ids are ignored."""
        if not ids:
            return 0
        result = self.connection.execute(_DELETE, {"ids": list(ids)})
        self.connection.commit()
        self._ids = [row_id for row_id in self._ids if row_id not in ids]
        log.info("Deleted %d fixture article(s)", result.rowcount)
        return result.rowcount

    def delete_all(self) -> int:
        """Delete every tracked fixture."""
        return self.delete(*self._ids)


def _position(articles: Sequence[Mapping[str, Any]], row_id: int) -> int | None:
    for index, article in enumerate(articles):
        if int(article["id"]) == row_id:
            return index
    return None


def _shape_failure(articles: Sequence[Any]) -> TestOutcome | None:
    for article in articles:
        if not isinstance(article, Mapping):
            return TestOutcome.failed(
                f"Article is a {type(article).__name__}, expected a mapping"
            )
        if missing := [key for key in REQUIRED_FIELDS if key not in article]:
            keys = ", ".join(missing)
            return TestOutcome.failed(
                f"Article {article.get('id')!r} is missing keys: {keys}"
            )
    return None


T = TypeVar("T")


def _require(value: T | None, what: str) -> T:
    if value is None:
        raise RuntimeError(f"No {what}: the step that provides it has not run")
    return value


def _matches(field: str, expected: Any, actual: Any) -> TestOutcome:
    if actual == expected:
        return TestOutcome.passed()
    return TestOutcome.failed(f"Expected {field} {expected!r}, got {actual!r}")


class ArticleSequence:
    """Fail-fast sequence of checks against ``get_articles``.

    Steps share state (the fixtures inserted so far), so the first step that
    does not pass stops the sequence.
    """

    def __init__(
        self,
        connection: Connection,
        get_articles: GetArticles,
        *,
        order_pause: float = ORDER_PAUSE_SECONDS,
    ) -> None:
        self.connection = connection
        self.get_articles = get_articles
        self.order_pause = order_pause
        self.fixtures = FixtureTracker(connection)
        self._inserted: FixtureRow | None = None
        self._found: Mapping[str, Any] | None = None
        self._ordered: tuple[FixtureRow, FixtureRow] | None = None
        self._positions: dict[int, int] = {}

    def steps(self) -> Sequence[tuple[str, TestAction]]:
        """Named steps, in execution order."""
        return (
            ("get_articles() returns a list", self._returns_list),
            ("Articles have id, title, author, content, date", self._existing_shape),
            ("Test article is inserted", self._insert_article),
            ("Inserted article is returned by get_articles()", self._find_inserted),
            ("Stored title matches", self._title_matches),
            ("Stored author matches", self._author_matches),
            ("Stored content matches", self._content_matches),
            ("Stored date is present", self._date_present),
            ("Test article is deleted", self._delete_inserted),
            ("Ordering test articles are returned", self._insert_ordered),
            ("Newest article is listed first", self._newest_first),
            ("Special characters are stored verbatim", self._special_characters),
        )

    def run(self, runner: Runner) -> TestOutcome:
        """Run each step as its own reported test."""
        return self._run_steps(runner.run)

    def execute(self) -> TestOutcome:
        """Run all steps silently and return a single outcome."""
        return self._run_steps(_invoke)

    def cleanup(self) -> None:
        """Delete every fixture still in the database."""
        if self.connection.in_transaction():
            self.connection.rollback()
        if self.fixtures.ids:
            self.fixtures.delete_all()

    def _run_steps(
        self, invoke: Callable[[str, TestAction], TestOutcome]
    ) -> TestOutcome:
        try:
            for name, step in self.steps():
                outcome = invoke(name, step)
                if not outcome.ok:
                    log.info("Stopping article checks after failed step %r", name)
                    return outcome
            return TestOutcome.passed()
        finally:
            self.cleanup()

    def _fetch(self) -> Sequence[Mapping[str, Any]]:
        return self.get_articles(self.connection)

    def _insert(self, title: str) -> FixtureRow:
        return self.fixtures.insert(
            title=title, author=FIXTURE_AUTHOR, content=FIXTURE_CONTENT
        )

    def _returns_list(self) -> TestOutcome:
        articles = self._fetch()
        if isinstance(articles, Sequence) and not isinstance(articles, str | bytes):
            return TestOutcome.passed()
        return TestOutcome.failed(
            f"get_articles() returned {type(articles).__name__}, expected a list"
        )

    def _existing_shape(self) -> TestOutcome:
        return _shape_failure(self._fetch()) or TestOutcome.passed()

    def _insert_article(self) -> TestOutcome:
        self._inserted = self._insert(f"Unit Test Title {uuid.uuid4().hex}")
        return TestOutcome.passed()

    def _find_inserted(self) -> TestOutcome:
        inserted = _require(self._inserted, "inserted article")
        articles = self._fetch()
        if failure := _shape_failure(articles):
            return failure
        self._found = next(
            (a for a in articles if a["title"] == inserted.title), None
        )
        if self._found is None:
            return TestOutcome.failed(
                f"No article titled {inserted.title!r} was returned"
            )
        return TestOutcome.passed()

    def _field_matches(self, field: str) -> TestOutcome:
        inserted = _require(self._inserted, "inserted article")
        found = _require(self._found, "returned article")
        return _matches(field, getattr(inserted, field), found[field])

    def _title_matches(self) -> TestOutcome:
        return self._field_matches("title")

    def _author_matches(self) -> TestOutcome:
        return self._field_matches("author")

    def _content_matches(self) -> TestOutcome:
        return self._field_matches("content")

    def _date_present(self) -> TestOutcome:
        found = _require(self._found, "returned article")
        if found.get("date") is None:
            return TestOutcome.failed("Article has no date")
        return TestOutcome.passed()

    def _delete_inserted(self) -> TestOutcome:
        inserted = _require(self._inserted, "inserted article")
        self.fixtures.delete(inserted.id)
        if _position(self._fetch(), inserted.id) is not None:
            return TestOutcome.failed(
                f"Article {inserted.id} is still returned after deletion"
            )
        return TestOutcome.passed()

    def _insert_ordered(self) -> TestOutcome:
        run_id = uuid.uuid4().hex
        older = self._insert(f"Test Order 1 {run_id}")
        time.sleep(self.order_pause)
        newer = self._insert(f"Test Order 2 {run_id}")
        self._ordered = (older, newer)

        articles = self._fetch()
        older_pos = _position(articles, older.id)
        newer_pos = _position(articles, newer.id)
        if older_pos is None or newer_pos is None:
            return TestOutcome.failed(
                f"Articles {older.id} and {newer.id} were not both returned"
            )
        self._positions = {older.id: older_pos, newer.id: newer_pos}
        return TestOutcome.passed()

    def _newest_first(self) -> TestOutcome:
        ordered = _require(self._ordered, "ordering articles")
        older, newer = sorted(ordered, key=lambda row: row.id)
        older_pos, newer_pos = self._positions[older.id], self._positions[newer.id]
        if newer_pos < older_pos:
            return TestOutcome.passed()
        return TestOutcome.failed(
            f"Article {newer.id} is at index {newer_pos}, "
            f"not before article {older.id} at index {older_pos}"
        )

    def _special_characters(self) -> TestOutcome:
        special = self._insert(SPECIAL_TITLE)
        articles = self._fetch()
        if (index := _position(articles, special.id)) is None:
            return TestOutcome.failed(f"Article {special.id} was not returned")
        return _matches("title", SPECIAL_TITLE, articles[index]["title"])


def _invoke(name: str, action: TestAction) -> TestOutcome:
    outcome = action()
    if outcome.ok:
        return outcome
    return replace(outcome, message=f"{name}: {outcome.message}")
