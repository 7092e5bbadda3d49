"""
Data models for parsed Business Central test runs.
"""

from dataclasses import dataclass
from enum import Enum


class TestStatus(Enum):
    """Outcome of a single test function."""
    __test__ = False

    PASSED = "Passed"
    FAILED = "Failed"
    SKIPPED = "Skipped"


@dataclass(frozen=True)
class TestOutcome:
    """Represents one executed test function."""
    __test__ = False

    codeunit_name: str
    codeunit_id: int
    function_name: str
    status: TestStatus
    duration_seconds: float = 0.0
    error_text: str = ""

    @property
    def full_name(self) -> str:
        if self.codeunit_name:
            return f"{self.codeunit_name}::{self.function_name}"
        return self.function_name

    def to_dict(self) -> dict:
        return {
            "codeunit_name": self.codeunit_name,
            "codeunit_id": self.codeunit_id,
            "function_name": self.function_name,
            "status": self.status.value,
            "duration_seconds": self.duration_seconds,
            "error_text": self.error_text,
        }


@dataclass(frozen=True)
class TestRunReport:
    """Structured result of one test-engine run.

    Counts are always derived from ``outcomes``; ``duration_seconds`` is the
    wall-clock time measured by whoever ran the engine.
    """
    __test__ = False

    outcomes: tuple[TestOutcome, ...] = ()
    duration_seconds: float = 0.0

    @property
    def total_count(self) -> int:
        return len(self.outcomes)

    @property
    def passed_count(self) -> int:
        return self._count(TestStatus.PASSED)

    @property
    def failed_count(self) -> int:
        return self._count(TestStatus.FAILED)

    @property
    def skipped_count(self) -> int:
        return self._count(TestStatus.SKIPPED)

    @property
    def succeeded(self) -> bool:
        return self.failed_count == 0

    @property
    def failed_outcomes(self) -> list[TestOutcome]:
        return [o for o in self.outcomes if o.status == TestStatus.FAILED]

    @property
    def codeunits(self) -> dict[tuple[int, str], list[TestOutcome]]:
        """Outcomes grouped by (codeunit id, codeunit name), in first-seen order."""
        groups: dict[tuple[int, str], list[TestOutcome]] = {}
        for outcome in self.outcomes:
            key = (outcome.codeunit_id, outcome.codeunit_name)
            groups.setdefault(key, []).append(outcome)
        return groups

    def _count(self, status: TestStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def to_dict(self) -> dict:
        return {
            "total": self.total_count,
            "passed": self.passed_count,
            "failed": self.failed_count,
            "skipped": self.skipped_count,
            "duration_seconds": self.duration_seconds,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


@dataclass(frozen=True)
class StatusCounts:
    """Counts-only result of the fallback pass. Carries no test identity."""
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_seconds": self.duration_seconds,
        }
