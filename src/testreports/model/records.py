"""Raw input records.

These are the already-parsed shapes handed over by the external JUnit-XML and
JaCoCo readers. They are plain data; the builder validates them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from testreports.model.results import FailureType, Outcome, StackFrame


@dataclass(frozen=True, slots=True)
class RawTestSuite:
    """Declares a suite, which may end up with no cases."""

    name: str
    stdout: str | None = None
    stderr: str | None = None


@dataclass(frozen=True, slots=True)
class RawFailure:
    """Failure detail as reported by the test runner.

    ``frames`` takes precedence; otherwise ``stack_trace`` text is parsed.
    """

    message: str = ""
    type: FailureType = "exception"
    stack_trace: str | None = None
    frames: tuple[tuple[str, int | None], ...] = ()
    expected: str | None = None
    actual: str | None = None


@dataclass(frozen=True, slots=True)
class RawTestCase:
    """One test case result."""

    suite: str
    name: str
    outcome: Outcome | str
    duration_ms: int = 0
    index: int | None = None
    display_name: str | None = None
    class_name: str | None = None
    source_file: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    failure: RawFailure | None = None


@dataclass(frozen=True, slots=True)
class RawMethod:
    """Declared line range of a method of a fully-qualified class."""

    class_name: str
    name: str
    first_line: int
    last_line: int
    source_file: str | None = None


@dataclass(frozen=True, slots=True)
class RawLineCounter:
    """Per-line counters of a fully-qualified class."""

    class_name: str
    line: int
    instructions_covered: int = 0
    instructions_total: int = 0
    branches_covered: int = 0
    branches_total: int = 0


RawTestRecord = RawTestSuite | RawTestCase
RawCoverageRecord = RawMethod | RawLineCounter


# Matches "at com.acme.Service.call(Service.java:42)" and friends
_FRAME_RE = re.compile(
    r"^\s*at\s+(?P<location>[\w$.<>/]+)"
    r"(?:\((?P<file>[^:()]+)(?::(?P<line>\d+))?\))?\s*$"
)


def normalize_location(location: str) -> str:
    """Declaring location in dotted form: module prefix dropped, ``$`` as ``.``."""
    # Module prefixes such as "java.base/" are not part of the location
    if "/" in location:
        location = location.rsplit("/", 1)[1]
    return location.replace("$", ".")


def parse_stack_trace(text: str | None) -> tuple[StackFrame, ...]:
    """Extract frames from a JVM-style stack trace; other lines are ignored."""
    if not text:
        return ()
    frames: list[StackFrame] = []
    for raw in text.splitlines():
        m = _FRAME_RE.match(raw)
        if not m:
            continue
        location = normalize_location(m.group("location"))
        line = int(m.group("line")) if m.group("line") else None
        file = m.group("file")
        if file in ("Native Method", "Unknown Source"):
            file = None
        frames.append(StackFrame(location=location, line=line, file=file))
    return tuple(frames)
