"""Filter Engine: read-only projection of a ReportModel.

Views wrap the model objects instead of copying them. Hidden cases and
excluded stack frames are skipped during iteration and never materialized.
Totals are always computed over the unfiltered model; filters only affect
what detail sections show.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from testreports.aggregation.merge import combine_coverage
from testreports.config.models import FilterSpec, LinksConfig
from testreports.core.links import compile_link_template
from testreports.filtering.patterns import PatternSet
from testreports.model.coverage import CoverageUnit
from testreports.model.report import ReportModel, RunReport
from testreports.model.results import (
    FailureDetail,
    Outcome,
    OutcomeCounts,
    StackFrame,
    TestCase,
    TestSuite,
    derive_outcome,
)


@dataclass(frozen=True, slots=True)
class _Rules:
    """Compiled form of a FilterSpec plus link settings, shared by all views."""

    outcomes: frozenset[Outcome]
    stack: PatternSet
    coverage: PatternSet
    links: LinksConfig | None = None

    @classmethod
    def compile(cls, spec: FilterSpec, links: LinksConfig | None) -> _Rules:
        if links is not None:
            # Fail fast on a broken template rather than per case
            compile_link_template(links.url_template)
        return cls(
            outcomes=spec.outcomes,
            stack=PatternSet.of(
                spec.stack_includes, spec.stack_excludes, case_sensitive=spec.case_sensitive
            ),
            coverage=PatternSet.of(
                spec.coverage_includes,
                spec.coverage_excludes,
                case_sensitive=spec.case_sensitive,
            ),
            links=links,
        )

    def link(self, source_file: str | None) -> str | None:
        links = self.links
        if links is None or not (links.repository and links.commit and source_file):
            return None
        return compile_link_template(links.url_template)(
            links.repository, links.commit, source_file
        )


# =============================================================================
# Test Result Views
# =============================================================================


@dataclass(frozen=True, slots=True)
class CaseView:
    """A visible test case with stack frames filtered on access."""

    case: TestCase
    _rules: _Rules = field(repr=False)

    @property
    def name(self) -> str:
        return self.case.name

    @property
    def title(self) -> str:
        return self.case.title

    @property
    def outcome(self) -> Outcome:
        return self.case.outcome

    @property
    def passed(self) -> bool:
        return self.case.passed

    @property
    def duration_ms(self) -> int:
        return self.case.duration_ms

    @property
    def stdout(self) -> str | None:
        return self.case.stdout

    @property
    def stderr(self) -> str | None:
        return self.case.stderr

    @property
    def failure(self) -> FailureDetail | None:
        return self.case.failure

    @property
    def link(self) -> str | None:
        return self._rules.link(self.case.source_file)

    def iter_frames(self) -> Iterator[StackFrame]:
        """Frames passing the stack filter, in original order."""
        failure = self.case.failure
        if failure is None:
            return
        stack = self._rules.stack
        for frame in failure.frames:
            if stack.empty or stack.allows(frame.location):
                yield frame

    @property
    def frames(self) -> tuple[StackFrame, ...]:
        return tuple(self.iter_frames())


@dataclass(frozen=True, slots=True)
class SuiteView:
    """A test suite; counts are unfiltered, ``cases`` honor the outcome filter."""

    suite: TestSuite
    _rules: _Rules = field(repr=False)

    @property
    def name(self) -> str:
        return self.suite.name

    @property
    def counts(self) -> OutcomeCounts:
        return self.suite.counts

    @property
    def outcome(self) -> Outcome:
        return self.suite.outcome

    @property
    def duration_ms(self) -> int:
        return self.suite.duration_ms

    @property
    def stdout(self) -> str | None:
        return self.suite.stdout

    @property
    def stderr(self) -> str | None:
        return self.suite.stderr

    @property
    def visible(self) -> bool:
        """Shown when any case passes the outcome filter.

        A suite without cases is matched on its derived outcome instead.
        """
        if not self.suite.cases:
            return self.suite.outcome in self._rules.outcomes
        return any(case.outcome in self._rules.outcomes for case in self.suite.cases)

    def iter_cases(self) -> Iterator[CaseView]:
        for case in self.suite.cases:
            if case.outcome in self._rules.outcomes:
                yield CaseView(case, self._rules)

    @property
    def cases(self) -> tuple[CaseView, ...]:
        return tuple(self.iter_cases())


# =============================================================================
# Run Views
# =============================================================================


@dataclass(frozen=True, slots=True)
class RunView:
    """One run (or the combined runs) as seen by a renderer."""

    run_id: str
    all_suites: tuple[TestSuite, ...]
    coverage: CoverageUnit | None
    _rules: _Rules = field(repr=False)
    aggregated: bool = False
    source_runs: tuple[str, ...] = ()

    @property
    def counts(self) -> OutcomeCounts:
        """Outcome totals over every suite, regardless of filters."""
        return OutcomeCounts.sum(s.counts for s in self.all_suites)

    @property
    def duration_ms(self) -> int:
        return sum(s.duration_ms for s in self.all_suites)

    @property
    def outcome(self) -> Outcome:
        return derive_outcome(self.counts)

    def iter_suites(self) -> Iterator[SuiteView]:
        for suite in self.all_suites:
            view = SuiteView(suite, self._rules)
            if view.visible:
                yield view

    @property
    def suites(self) -> tuple[SuiteView, ...]:
        return tuple(self.iter_suites())

    def class_visible(self, class_name: str) -> bool:
        coverage = self._rules.coverage
        return coverage.empty or coverage.allows(class_name)

    def iter_packages(self) -> Iterator[tuple[CoverageUnit, tuple[CoverageUnit, ...]]]:
        """(package, visible classes) for packages with at least one visible class."""
        if self.coverage is None:
            return
        for package in self.coverage.children:
            classes = tuple(c for c in package.children if self.class_visible(c.name))
            if classes:
                yield package, classes

    def link(self, source_file: str | None) -> str | None:
        return self._rules.link(source_file)


class FilteredView:
    """Read-only projection of a ReportModel under a FilterSpec."""

    def __init__(
        self,
        model: ReportModel,
        spec: FilterSpec,
        rules: _Rules,
        aggregate_name: str = "all",
    ) -> None:
        self._model = model
        self._spec = spec
        self._rules = rules
        self.aggregate_name = aggregate_name

    @property
    def model(self) -> ReportModel:
        return self._model

    @property
    def spec(self) -> FilterSpec:
        return self._spec

    @property
    def run_ids(self) -> tuple[str, ...]:
        return self._model.run_ids

    @property
    def counts(self) -> OutcomeCounts:
        return OutcomeCounts.sum(r.counts for r in self._model)

    def _view(self, run: RunReport) -> RunView:
        return RunView(
            run_id=run.run_id,
            all_suites=run.suites,
            coverage=run.coverage,
            _rules=self._rules,
            source_runs=(run.run_id,),
        )

    @property
    def runs(self) -> tuple[RunView, ...]:
        return tuple(self._view(r) for r in self._model)

    def run(self, run_id: str) -> RunView | None:
        run = self._model.get(run_id)
        return None if run is None else self._view(run)

    def aggregate(self, name: str | None = None) -> RunView:
        """Combined view over all runs: suites in run order, rolled-up coverage.

        Raises:
            ConflictError: Coverage of the runs cannot be combined.
        """
        name = name or self.aggregate_name
        return RunView(
            run_id=name,
            all_suites=tuple(s for r in self._model for s in r.suites),
            coverage=combine_coverage(self._model, name),
            _rules=self._rules,
            aggregated=True,
            source_runs=self._model.run_ids,
        )


def apply(
    model: ReportModel,
    spec: FilterSpec | None = None,
    *,
    links: LinksConfig | None = None,
    aggregate_name: str = "all",
) -> FilteredView:
    """Project ``model`` through ``spec``. The model itself is never modified.

    Raises:
        ConfigError: The link template is invalid.
    """
    spec = spec or FilterSpec()
    return FilteredView(model, spec, _Rules.compile(spec, links), aggregate_name)
