"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides the sample run used across the test tree:

ServiceTest: 3 passed, 1 failed (assertion with a JVM stack trace), 1 skipped
EmptyTest: declared with no cases

Coverage:
    com.acme.Service        call (10-14): lines 10, 11, 12   helper (20-22): line 21
    com.acme.util.Strings   trim (5-8): line 6
"""

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local testreports package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of testreports modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("testreports"):
        del sys.modules[module_name]

from testreports.model.builder import build  # noqa: E402
from testreports.model.records import (  # noqa: E402
    RawCoverageRecord,
    RawFailure,
    RawLineCounter,
    RawMethod,
    RawTestCase,
    RawTestRecord,
    RawTestSuite,
)
from testreports.model.report import ReportModel, RunReport  # noqa: E402

STACK_TRACE = (
    "org.opentest4j.AssertionFailedError: expected: <1> but was: <2>\n"
    "\tat org.junit.Assert.fail(Assert.java:89)\n"
    "\tat com.acme.internal.Util.run(Util.java:12)\n"
    "\tat com.acme.Service.call(Service.java:42)\n"
)


@pytest.fixture
def sample_tests() -> list[RawTestRecord]:
    suite = "com.acme.ServiceTest"
    return [
        RawTestCase(suite, "testCall", "passed", 120, stdout="call ok"),
        RawTestCase(suite, "testHelper", "passed", 30),
        RawTestCase(suite, "testRetry", "passed", 50),
        RawTestCase(
            suite,
            "testFailure",
            "failed",
            200,
            source_file="com/acme/ServiceTest.java",
            stdout="boom out",
            stderr="boom err",
            failure=RawFailure(
                message="expected: <1> but was: <2>",
                type="assertion",
                stack_trace=STACK_TRACE,
                expected="1",
                actual="2",
            ),
        ),
        RawTestCase(suite, "testSkipped", "skipped", 0),
        RawTestSuite("com.acme.EmptyTest"),
    ]


@pytest.fixture
def sample_coverage() -> list[RawCoverageRecord]:
    return [
        RawMethod("com.acme.Service", "call", 10, 14, "com/acme/Service.java"),
        RawMethod("com.acme.Service", "helper", 20, 22, "com/acme/Service.java"),
        RawMethod("com.acme.util.Strings", "trim", 5, 8, "com/acme/util/Strings.java"),
        RawLineCounter("com.acme.Service", 10, 3, 3),
        RawLineCounter("com.acme.Service", 11, 2, 4, 1, 2),
        RawLineCounter("com.acme.Service", 12, 0, 2),
        RawLineCounter("com.acme.Service", 21, 0, 5),
        RawLineCounter("com.acme.util.Strings", 6, 4, 4),
    ]


@pytest.fixture
def make_run(
    sample_tests: list[RawTestRecord], sample_coverage: list[RawCoverageRecord]
) -> Callable[..., RunReport]:
    """Factory: RunReport built from the sample records (or the given ones)."""

    def _make(
        run_id: str = "app",
        tests: list[RawTestRecord] | None = None,
        coverage: list[RawCoverageRecord] | None = None,
    ) -> RunReport:
        suites, root = build(
            sample_tests if tests is None else tests,
            sample_coverage if coverage is None else coverage,
            run_id=run_id,
        )
        return RunReport(run_id=run_id, suites=suites, coverage=root)

    return _make


@pytest.fixture
def sample_model(make_run: Callable[..., RunReport]) -> ReportModel:
    return ReportModel((make_run("app"),))


@pytest.fixture
def single_class() -> Callable[..., list[RawCoverageRecord]]:
    """Factory: one class with one method and one line of instruction counters."""

    def _make(
        covered: int,
        total: int,
        class_name: str = "pkg.Foo",
        line: int = 1,
    ) -> list[RawCoverageRecord]:
        return [
            RawMethod(class_name, "run", 1, 10),
            RawLineCounter(class_name, line, covered, total),
        ]

    return _make
