"""Models for check outcomes and run accounting."""

from dataclasses import dataclass
from typing import Literal, Self

Status = Literal["pass", "fail", "error"]


@dataclass(frozen=True, kw_only=True)
class TestOutcome:
    """Outcome of a single check.

    ``fail`` means an assertion or rule evaluated false; ``error`` means the
    check itself blew up. Both carry a one-line message for the report.
    """

    __test__ = False

    status: Status
    message: str | None = None

    @classmethod
    def passed(cls) -> Self:
        """Build a passing outcome."""
        return cls(status="pass")

    @classmethod
    def failed(cls, reason: str) -> Self:
        """Build a failing outcome with the reason shown to the user."""
        return cls(status="fail", message=reason)

    @classmethod
    def errored(cls, message: str) -> Self:
        """Build an outcome for an unexpected fault."""
        return cls(status="error", message=message)

    @property
    def ok(self) -> bool:
        """Whether the check passed."""
        return self.status == "pass"


@dataclass(frozen=True, kw_only=True)
class TestRecord:
    """A named outcome as recorded by the runner."""

    __test__ = False

    name: str
    outcome: TestOutcome
    duration: float


@dataclass(kw_only=True)
class RunSummary:
    """Pass/fail tallies for one run."""

    pass_count: int = 0
    fail_count: int = 0

    def record(self, outcome: TestOutcome) -> None:
        """Count an outcome; errors count as failures."""
        if outcome.ok:
            self.pass_count += 1
        else:
            self.fail_count += 1

    @property
    def total(self) -> int:
        """Number of outcomes recorded."""
        return self.pass_count + self.fail_count

    @property
    def exit_code(self) -> int:
        """Process exit status for this run."""
        return 1 if self.fail_count > 0 else 0
