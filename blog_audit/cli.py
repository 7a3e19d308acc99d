"""CLI entry points for the quality and unit check scripts."""

import argparse
import contextlib
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from sqlalchemy import Connection
from sqlalchemy.exc import SQLAlchemyError

from blog_audit.checker import ArtifactSource
from blog_audit.config_loader import (
    CONFIG_FILENAME,
    ConfigError,
    ConfigNotFoundError,
    load_connection_config,
)
from blog_audit.database import connect
from blog_audit.models.config import ConnectionConfig
from blog_audit.models.result import TestOutcome
from blog_audit.probe import DEFAULT_LATENCY_THRESHOLD_MS, probe_config_file
from blog_audit.rules import Rule, load_rules
from blog_audit.runner import Runner, format_output
from blog_audit.sequence import ORDER_PAUSE_SECONDS, ArticleSequence
from blog_audit.sut import GetArticles, load_system_under_test

DEFAULT_SUT = "index.py"


def run_quality(
    app_dir: Path,
    config_path: Path,
    *,
    rules: Sequence[Rule],
    threshold_ms: float = DEFAULT_LATENCY_THRESHOLD_MS,
    console: Console | None = None,
) -> Runner:
    """Probe the database and run the pattern rules over the app sources."""
    runner = Runner(console)
    runner.banner("Starting Quality Code Tests")

    runner.run(
        "Database Connection",
        lambda: probe_config_file(config_path, with_query=False),
    )
    runner.run(
        "Database Latency",
        lambda: probe_config_file(
            config_path, with_query=True, threshold_ms=threshold_ms
        ),
    )

    artifacts = ArtifactSource.from_app_dir(app_dir)
    for rule in rules:
        runner.run(
            f"{artifacts.filename(rule.applies_to)} {rule.title}",
            lambda rule=rule: rule.check(artifacts.get(rule.applies_to)),
        )

    runner.finish()
    return runner


def run_unit(
    config_path: Path,
    sut: str | Path,
    *,
    order_pause: float = ORDER_PAUSE_SECONDS,
    console: Console | None = None,
) -> Runner:
    """Load the application and run the article checks against the database."""
    runner = Runner(console)
    runner.banner("Starting Unit Tests")

    get_articles: GetArticles | None = None
    config: ConnectionConfig | None = None
    connection: Connection | None = None

    def load_application() -> TestOutcome:
        nonlocal get_articles
        get_articles = load_system_under_test(sut)
        return TestOutcome.passed()

    def load_config() -> TestOutcome:
        nonlocal config
        try:
            config = load_connection_config(config_path)
        except (ConfigNotFoundError, ConfigError) as e:
            return TestOutcome.failed(str(e))
        return TestOutcome.passed()

    with contextlib.ExitStack() as stack:

        def open_connection() -> TestOutcome:
            nonlocal connection
            if config is None:
                raise RuntimeError("Connection config was not loaded")
            try:
                connection = stack.enter_context(connect(config))
            except (SQLAlchemyError, ImportError) as e:
                return TestOutcome.failed(f"Connection failed: {e}")
            return TestOutcome.passed()

        if (
            runner.run("Application is loaded", load_application).ok
            and runner.run("Connection config is loaded", load_config).ok
            and runner.run("Database connection is established", open_connection).ok
        ):
            if connection is None or get_articles is None:
                raise RuntimeError("Application or connection was not set up")
            ArticleSequence(connection, get_articles, order_pause=order_pause).run(
                runner
            )

    runner.finish()
    return runner


def print_rules(rules: Sequence[Rule], console: Console) -> None:
    """List the registered rules."""
    for rule in rules:
        console.print(
            f"{rule.id:<22} {rule.severity:<8} {rule.applies_to:<12} {rule.title}",
            markup=False,
            highlight=False,
        )


def write_report(runner: Runner, report_path: Path) -> None:
    """Write the JSON report of a run."""
    report_path.write_text(json.dumps(format_output(runner.records), indent=2))


def _parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--app-dir",
        type=Path,
        default=Path("."),
        help="Directory holding the application sources (default: .)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Connection config file (default: <app-dir>/{CONFIG_FILENAME})",
    )
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Also write the results as JSON to this file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log progress to stderr",
    )
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def quality_main(argv: Sequence[str] | None = None) -> None:
    """Entry point for the quality script."""
    parser = _parser("Check the blog sources for known defects and probe the database")
    parser.add_argument(
        "--latency-threshold-ms",
        type=float,
        default=DEFAULT_LATENCY_THRESHOLD_MS,
        help="Maximum round-trip time in milliseconds (default: %(default)g)",
    )
    parser.add_argument(
        "--list-rules",
        action="store_true",
        help="List the available rules and exit",
    )
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    rules = load_rules()
    if args.list_rules:
        print_rules(rules, Console())
        sys.exit(0)

    runner = run_quality(
        args.app_dir,
        args.config or args.app_dir / CONFIG_FILENAME,
        rules=rules,
        threshold_ms=args.latency_threshold_ms,
    )
    if args.report:
        write_report(runner, args.report)
    sys.exit(runner.summary.exit_code)


def unit_main(argv: Sequence[str] | None = None) -> None:
    """Entry point for the unit script."""
    parser = _parser("Check get_articles() against the live database")
    parser.add_argument(
        "--sut",
        default=None,
        help=(
            "Application module, a .py path or dotted name "
            f"(default: <app-dir>/{DEFAULT_SUT})"
        ),
    )
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    runner = run_unit(
        args.config or args.app_dir / CONFIG_FILENAME,
        args.sut or args.app_dir / DEFAULT_SUT,
    )
    if args.report:
        write_report(runner, args.report)
    sys.exit(runner.summary.exit_code)


if __name__ == "__main__":  # pragma: no cover
    quality_main()
