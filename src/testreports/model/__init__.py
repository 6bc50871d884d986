"""Report model: raw input records, immutable results/coverage types, builder."""

from testreports.model.builder import build, build_coverage, build_suites
from testreports.model.coverage import (
    Counter,
    CounterKind,
    CoverageLevel,
    CoverageUnit,
    check_invariants,
)
from testreports.model.records import (
    RawFailure,
    RawLineCounter,
    RawMethod,
    RawTestCase,
    RawTestSuite,
)
from testreports.model.report import ReportModel, RunReport
from testreports.model.results import (
    FailureDetail,
    Outcome,
    OutcomeCounts,
    StackFrame,
    TestCase,
    TestSuite,
)

__all__ = [
    # Builder
    "build",
    "build_coverage",
    "build_suites",
    # Coverage
    "Counter",
    "CounterKind",
    "CoverageLevel",
    "CoverageUnit",
    "check_invariants",
    # Raw records
    "RawFailure",
    "RawLineCounter",
    "RawMethod",
    "RawTestCase",
    "RawTestSuite",
    # Report
    "ReportModel",
    "RunReport",
    # Results
    "FailureDetail",
    "Outcome",
    "OutcomeCounts",
    "StackFrame",
    "TestCase",
    "TestSuite",
]
