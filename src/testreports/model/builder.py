"""Model Builder: raw records -> immutable suites and coverage tree.

The coverage tree is assembled bottom-up:

    line counter -> method (enclosing declared range)
                 -> class (declaring type)
                 -> package (namespace prefix of the class name)
                 -> bundle (run root)

Children are sorted so the resulting tree does not depend on record order.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from testreports.core.errors import MalformedInputError
from testreports.model.coverage import Counter, CounterKind, CoverageLevel, CoverageUnit
from testreports.model.records import (
    RawCoverageRecord,
    RawFailure,
    RawLineCounter,
    RawMethod,
    RawTestCase,
    RawTestRecord,
    RawTestSuite,
    normalize_location,
    parse_stack_trace,
)
from testreports.model.results import FailureDetail, Outcome, StackFrame, TestCase, TestSuite

log = structlog.get_logger(__name__)

DEFAULT_PACKAGE = ""


def build(
    raw_tests: Iterable[RawTestRecord],
    raw_coverage: Iterable[RawCoverageRecord] = (),
    *,
    run_id: str = "",
) -> tuple[tuple[TestSuite, ...], CoverageUnit | None]:
    """Build the suites and coverage root of one run.

    Returns:
        (suites in first-seen order, bundle root or None without coverage records)

    Raises:
        MalformedInputError: A record violates a model invariant.
    """
    suites = build_suites(raw_tests)
    coverage = build_coverage(raw_coverage, name=run_id)
    log.debug(
        "run_built",
        run_id=run_id,
        suites=len(suites),
        cases=sum(len(s.cases) for s in suites),
        classes=(
            0
            if coverage is None
            else sum(1 for u in coverage.walk() if u.level is CoverageLevel.CLASS)
        ),
    )
    return suites, coverage


# =============================================================================
# Test Results
# =============================================================================


def build_suites(raw_tests: Iterable[RawTestRecord]) -> tuple[TestSuite, ...]:
    """Group case records by suite, preserving first-seen order.

    A repeated case identity (a retry) replaces the earlier record in place.
    """
    declared: dict[str, RawTestSuite] = {}
    cases: dict[str, dict[tuple[str, int | None], TestCase]] = {}

    for record in raw_tests:
        if isinstance(record, RawTestSuite):
            if not record.name:
                raise MalformedInputError.invalid_record("suite", "empty suite name")
            declared.setdefault(record.name, record)
            cases.setdefault(record.name, {})
        elif isinstance(record, RawTestCase):
            case = _build_case(record)
            cases.setdefault(case.suite, {})[(case.name, case.index)] = case
        else:
            raise MalformedInputError.invalid_record(
                type(record).__name__, "not a test suite or test case record"
            )

    suites = []
    for name, by_identity in cases.items():
        decl = declared.get(name)
        suites.append(
            TestSuite(
                name=name,
                cases=tuple(by_identity.values()),
                stdout=decl.stdout if decl else None,
                stderr=decl.stderr if decl else None,
            )
        )
    return tuple(suites)


def _build_case(record: RawTestCase) -> TestCase:
    if not record.suite or not record.name:
        raise MalformedInputError.invalid_record("test case", "suite and name are required")
    try:
        outcome = Outcome(record.outcome)
    except ValueError:
        raise MalformedInputError.invalid_record(
            "test case", f"unknown outcome {record.outcome!r} for {record.suite}.{record.name}"
        ) from None
    if record.duration_ms < 0:
        raise MalformedInputError.invalid_record(
            "test case", f"negative duration for {record.suite}.{record.name}"
        )
    return TestCase(
        suite=record.suite,
        name=record.name,
        outcome=outcome,
        duration_ms=record.duration_ms,
        index=record.index,
        display_name=record.display_name,
        class_name=record.class_name,
        source_file=record.source_file,
        stdout=record.stdout,
        stderr=record.stderr,
        failure=_build_failure(record.failure) if record.failure else None,
    )


def _build_failure(raw: RawFailure) -> FailureDetail:
    if raw.frames:
        frames = tuple(
            StackFrame(location=normalize_location(loc), line=line) for loc, line in raw.frames
        )
    else:
        frames = parse_stack_trace(raw.stack_trace)
    return FailureDetail(
        message=raw.message,
        type=raw.type,
        frames=frames,
        expected=raw.expected,
        actual=raw.actual,
    )


# =============================================================================
# Coverage
# =============================================================================


def package_of(class_name: str) -> str:
    """Namespace prefix of a fully-qualified class name."""
    head, _, _ = class_name.rpartition(".")
    return head or DEFAULT_PACKAGE


def _line_unit(record: RawLineCounter) -> CoverageUnit:
    subject = f"{record.class_name}:{record.line}"
    for kind, covered, total in (
        ("instruction", record.instructions_covered, record.instructions_total),
        ("branch", record.branches_covered, record.branches_total),
    ):
        if covered < 0 or total < 0 or covered > total:
            raise MalformedInputError.invalid_counter(subject, kind, covered, total)

    has_code = record.instructions_total > 0
    return CoverageUnit(
        name=str(record.line),
        level=CoverageLevel.LINE,
        counters={
            CounterKind.INSTRUCTION: Counter(
                record.instructions_covered, record.instructions_total
            ),
            CounterKind.BRANCH: Counter(record.branches_covered, record.branches_total),
            CounterKind.LINE: Counter(
                1 if record.instructions_covered > 0 else 0, 1 if has_code else 0
            ),
        },
        line=record.line,
    )


def _enclosing(methods: list[RawMethod], line: int) -> RawMethod | None:
    """Innermost declared method whose range holds ``line``."""
    candidates = [m for m in methods if m.first_line <= line <= m.last_line]
    if not candidates:
        return None
    return min(candidates, key=lambda m: (m.last_line - m.first_line, -m.first_line, m.name))


def _derived(children: tuple[CoverageUnit, ...], kind: CounterKind) -> Counter:
    """Total 1, covered 1 when anything below is covered."""
    covered = any(c.counter(kind).covered > 0 for c in children)
    return Counter(1 if covered else 0, 1)


def build_coverage(
    raw_coverage: Iterable[RawCoverageRecord], *, name: str = ""
) -> CoverageUnit | None:
    """Build the bundle root of a run, or None when there are no records."""
    methods: dict[str, list[RawMethod]] = {}
    lines: dict[str, dict[int, RawLineCounter]] = {}
    seen_any = False

    for record in raw_coverage:
        seen_any = True
        if isinstance(record, RawMethod):
            if record.first_line > record.last_line or record.first_line < 0:
                raise MalformedInputError.invalid_record(
                    "method",
                    f"{record.class_name}.{record.name} has range "
                    f"{record.first_line}-{record.last_line}",
                )
            methods.setdefault(record.class_name, []).append(record)
        elif isinstance(record, RawLineCounter):
            per_class = lines.setdefault(record.class_name, {})
            if record.line in per_class:
                raise MalformedInputError.invalid_record(
                    "line counter", f"duplicate line {record.line} of {record.class_name}"
                )
            per_class[record.line] = record
        else:
            raise MalformedInputError.invalid_record(
                type(record).__name__, "not a method or line counter record"
            )

    if not seen_any:
        return None

    for class_name, per_class in lines.items():
        if class_name not in methods:
            raise MalformedInputError.unknown_class(class_name, min(per_class))

    packages: dict[str, list[CoverageUnit]] = {}
    for class_name, declared in methods.items():
        by_method: dict[RawMethod, list[CoverageUnit]] = {m: [] for m in declared}
        for number, record in lines.get(class_name, {}).items():
            owner = _enclosing(declared, number)
            if owner is None:
                raise MalformedInputError.unknown_method(class_name, number)
            by_method[owner].append(_line_unit(record))

        method_units = []
        for method, line_units in by_method.items():
            kids = tuple(sorted(line_units, key=lambda u: u.line or 0))
            method_units.append(
                CoverageUnit(
                    name=method.name,
                    level=CoverageLevel.METHOD,
                    counters={CounterKind.METHOD: _derived(kids, CounterKind.INSTRUCTION)},
                    line=method.first_line,
                    source_file=method.source_file,
                ).with_children(kids)
            )
        method_units.sort(key=lambda u: (u.line or 0, u.name))
        method_kids = tuple(method_units)

        source_file = next((m.source_file for m in declared if m.source_file), None)
        class_unit = CoverageUnit(
            name=class_name,
            level=CoverageLevel.CLASS,
            counters={CounterKind.CLASS: _derived(method_kids, CounterKind.METHOD)},
            source_file=source_file,
        ).with_children(method_kids)
        packages.setdefault(package_of(class_name), []).append(class_unit)

    package_units = [
        CoverageUnit(name=pkg, level=CoverageLevel.PACKAGE).with_children(
            sorted(classes, key=lambda u: u.name)
        )
        for pkg, classes in packages.items()
    ]
    package_units.sort(key=lambda u: u.name)
    return CoverageUnit(name=name, level=CoverageLevel.BUNDLE).with_children(package_units)
