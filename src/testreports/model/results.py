"""Test result model.

Canonical, immutable structures for test suites and cases. Everything the
renderers show about test execution is derived from these types.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal


class Outcome(str, Enum):
    """Outcome of a single test case."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERRORED = "errored"

    def __str__(self) -> str:
        return self.value


FailureType = Literal["assertion", "exception"]


# =============================================================================
# Failure Detail
# =============================================================================


@dataclass(frozen=True, slots=True)
class StackFrame:
    """One frame of a failure stack trace."""

    location: str  # declaring location, e.g. com.acme.Service.call
    line: int | None = None
    file: str | None = None

    def __str__(self) -> str:
        if self.file and self.line is not None:
            return f"{self.location}({self.file}:{self.line})"
        if self.file:
            return f"{self.location}({self.file})"
        return self.location


@dataclass(frozen=True, slots=True)
class FailureDetail:
    """Why a test case did not pass."""

    message: str
    type: FailureType = "exception"
    frames: tuple[StackFrame, ...] = ()
    expected: str | None = None
    actual: str | None = None

    @property
    def line(self) -> int | None:
        """Line of the first frame carrying one."""
        for frame in self.frames:
            if frame.line is not None:
                return frame.line
        return None


# =============================================================================
# Test Cases and Suites
# =============================================================================


@dataclass(frozen=True, slots=True)
class TestCase:
    """A single executed test case."""

    __test__ = False  # not a pytest test class

    suite: str
    name: str
    outcome: Outcome
    duration_ms: int = 0
    index: int | None = None  # parameterization index
    display_name: str | None = None
    class_name: str | None = None
    source_file: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    failure: FailureDetail | None = None

    @property
    def identity(self) -> tuple[str, str, int | None]:
        return (self.suite, self.name, self.index)

    @property
    def title(self) -> str:
        """Name shown in documents."""
        if self.display_name:
            return self.display_name
        if self.index is not None:
            return f"{self.name}[{self.index}]"
        return self.name

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.PASSED


@dataclass(frozen=True, slots=True)
class OutcomeCounts:
    """Totals per outcome."""

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    errored: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped + self.errored

    def __add__(self, other: OutcomeCounts) -> OutcomeCounts:
        return OutcomeCounts(
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            skipped=self.skipped + other.skipped,
            errored=self.errored + other.errored,
        )

    @classmethod
    def of(cls, outcomes: Iterable[Outcome]) -> OutcomeCounts:
        counts = {o: 0 for o in Outcome}
        for outcome in outcomes:
            counts[outcome] += 1
        return cls(
            passed=counts[Outcome.PASSED],
            failed=counts[Outcome.FAILED],
            skipped=counts[Outcome.SKIPPED],
            errored=counts[Outcome.ERRORED],
        )

    @classmethod
    def sum(cls, counts: Iterable[OutcomeCounts]) -> OutcomeCounts:
        result = cls()
        for c in counts:
            result = result + c
        return result


def derive_outcome(counts: OutcomeCounts) -> Outcome:
    """Failed if anything failed or errored, skipped if everything skipped, else passed.

    An empty collection counts as skipped.
    """
    if counts.failed or counts.errored:
        return Outcome.FAILED
    if counts.skipped == counts.total:
        return Outcome.SKIPPED
    return Outcome.PASSED


@dataclass(frozen=True, slots=True)
class TestSuite:
    """An ordered group of test cases."""

    __test__ = False  # not a pytest test class

    name: str
    cases: tuple[TestCase, ...] = ()
    stdout: str | None = None
    stderr: str | None = None
    counts: OutcomeCounts = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "counts", OutcomeCounts.of(c.outcome for c in self.cases))

    @property
    def duration_ms(self) -> int:
        return sum(c.duration_ms for c in self.cases)

    @property
    def outcome(self) -> Outcome:
        return derive_outcome(self.counts)
