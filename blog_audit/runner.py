"""Sequential test runner that reports each check as it completes."""

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from rich.console import Console

from blog_audit.models.result import RunSummary, TestOutcome, TestRecord

log = logging.getLogger(__name__)

STATUS_LABELS = {
    "pass": ("PASS", "green"),
    "fail": ("FAIL", "red"),
    "error": ("ERROR", "red"),
}

TestAction = Callable[[], TestOutcome]


class Runner:
    """Runs named checks one at a time and tallies their outcomes.

    A check that raises is reported as an error; the exception never reaches
    the caller, so one broken check cannot abort the run.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)
        self.summary = RunSummary()
        self.records: list[TestRecord] = []

    def run(self, name: str, action: TestAction) -> TestOutcome:
        """Run one check, print its status and record the outcome."""
        self._print(f"TEST: {name} ... ", end="")

        started = time.perf_counter()
        try:
            outcome = action()
        except Exception as e:
            log.error("Check %r raised: %s", name, e, exc_info=e)
            outcome = TestOutcome.errored(str(e) or type(e).__name__)
        duration = time.perf_counter() - started

        label, style = STATUS_LABELS[outcome.status]
        self._print(label, style=style)
        if outcome.message and not outcome.ok:
            self._print(f"  -> {outcome.message}")

        self.summary.record(outcome)
        self.records.append(TestRecord(name=name, outcome=outcome, duration=duration))
        return outcome

    def banner(self, title: str) -> None:
        """Print a run header."""
        self._print(title)
        self._print("=" * len(title))

    def finish(self) -> RunSummary:
        """Print the totals line and return the summary."""
        self._print("=" * 27)
        self._print(
            f"Tests Completed: {self.summary.pass_count} Passed, "
            f"{self.summary.fail_count} Failed."
        )
        return self.summary

    def _print(self, text: str, **kwargs: Any) -> None:
        """Print literal text: no markup, emoji codes or wrapping."""
        self.console.print(text, markup=False, emoji=False, soft_wrap=True, **kwargs)


def format_output(records: Sequence[TestRecord]) -> dict[str, Any]:
    """Format recorded outcomes for JSON output."""
    results = [
        {
            "name": record.name,
            "status": record.outcome.status,
            "duration": record.duration,
            "message": record.outcome.message,
        }
        for record in records
    ]

    return {
        "total": len(results),
        "passed": sum(1 for r in results if r["status"] == "pass"),
        "failed": sum(1 for r in results if r["status"] == "fail"),
        "errors": sum(1 for r in results if r["status"] == "error"),
        "results": results,
    }
