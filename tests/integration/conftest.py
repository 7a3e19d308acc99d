"""Fixtures for integration tests: an application directory on disk."""

from collections.abc import Callable
from pathlib import Path

import pytest
from sqlalchemy import text

from blog_audit.database import connect
from blog_audit.models.config import ConnectionConfig
from blog_audit.testing.blog_app import create_articles_table

CLEAN_INDEX = """<?php
require_once __DIR__ . '/db-config.php';
require_once __DIR__ . '/validation.php';

function getArticles(PDO $pdo): array
{
    $stmt = $pdo->query('SELECT id, title, author, content, date FROM articles ORDER BY id DESC');
    return $stmt->fetchAll(PDO::FETCH_ASSOC);
}

$articles = getArticles($pdo);
?>
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <title>Blog</title>
</head>
<body>
<?php foreach ($articles as $article): ?>
    <article>
        <h2><?= htmlspecialchars($article['title']) ?> <small><?= htmlspecialchars($article['date']) ?></small></h2>
        <p><?= nl2br(htmlspecialchars($article['content'])) ?></p>
        <cite><?= htmlspecialchars($article['author']) ?></cite>
    </article>
<?php endforeach; ?>
</body>
</html>
"""

CLEAN_VALIDATION = """<?php
$errors = [];

if ($_SERVER["REQUEST_METHOD"] === "POST") {
    if (!isset($_POST["title"]) || empty($_POST["title"])) {
        $errors[] = "Title is required";
    } elseif (!isset($_POST["author"]) || empty($_POST["author"])) {
        $errors[] = "Author is required";
    } elseif (!isset($_POST["content"]) || empty($_POST["content"])) {
        $errors[] = "Content is required";
    }
}
"""

SUT_MODULE = """print("<html><body>rendered page</body></html>")

from blog_audit.testing.blog_app import get_articles  # noqa: E402,F401
"""


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """Create a clean application directory backed by an SQLite database."""
    app = tmp_path / "app"
    app.mkdir()
    (app / "index.php").write_text(CLEAN_INDEX)
    (app / "validation.php").write_text(CLEAN_VALIDATION)
    (app / "index.py").write_text(SUT_MODULE)

    database = tmp_path / "blog.db"
    (app / "db-config.yaml").write_text(f"dsn: sqlite:///{database}\n")
    with connect(ConnectionConfig(dsn=f"sqlite:///{database}")) as connection:
        create_articles_table(connection)
        connection.execute(
            text(
                "INSERT INTO articles (title, author, content, date) "
                "VALUES ('Hello', 'Ann', 'First post', '2024-01-01 10:00:00')"
            )
        )
        connection.commit()

    return app


@pytest.fixture
def stored_titles(app_dir: Path) -> Callable[[], list[str]]:
    """Return a function listing the titles stored in the app database."""
    dsn = f"sqlite:///{app_dir.parent / 'blog.db'}"

    def _titles() -> list[str]:
        with connect(ConnectionConfig(dsn=dsn)) as connection:
            query = text("SELECT title FROM articles ORDER BY id")
            return list(connection.execute(query).scalars())

    return _titles
