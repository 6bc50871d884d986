"""Detailed document renderer.

One section per visible suite, a row per visible case when ``per_test_case``,
failure blocks with stack frames in filtered order, and a coverage table per
package/class honoring the coverage filter.

Captured output is shown only for cases that did not pass, unless
``always_include_output`` is set, and only for the streams enabled by
``include_stdout`` / ``include_stderr``.
"""

from __future__ import annotations

from typing import Any

from testreports.config.models import RenderSpec
from testreports.core.formatting import (
    abbreviate_package,
    escape_cell,
    format_percent,
    strip_prefix,
)
from testreports.filtering.view import CaseView, FilteredView, RunView, SuiteView
from testreports.model.coverage import Counter, CounterKind, CoverageUnit
from testreports.model.results import Outcome, OutcomeCounts
from testreports.rendering.badges import STATUS_ICONS, coverage_badge, status_badge
from testreports.rendering.base import Artifact, artifact_path, finish_text, render_targets
from testreports.templates.engine import TemplateEngine

TABLE_KINDS = (CounterKind.INSTRUCTION, CounterKind.BRANCH, CounterKind.LINE, CounterKind.METHOD)


def _text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip("\n")
    return stripped or None


def _streams(
    spec: RenderSpec, passed: bool, stdout: str | None, stderr: str | None
) -> tuple[str | None, str | None]:
    if passed and not spec.always_include_output:
        return None, None
    return (
        _text(stdout) if spec.include_stdout else None,
        _text(stderr) if spec.include_stderr else None,
    )


def _counts(counts: OutcomeCounts) -> dict[str, int]:
    return {
        "tests": counts.total,
        "passed": counts.passed,
        "failed": counts.failed,
        "errored": counts.errored,
        "skipped": counts.skipped,
    }


def _case(case: CaseView, spec: RenderSpec) -> dict[str, Any]:
    stdout, stderr = _streams(spec, case.passed, case.stdout, case.stderr)
    title = escape_cell(case.title)
    link = case.link
    failure = case.failure
    return {
        "title": case.title,
        "label": f"[{title}]({link})" if link else title,
        "outcome": case.outcome.value,
        "icon": STATUS_ICONS[case.outcome],
        "duration_ms": case.duration_ms,
        "stdout": stdout,
        "stderr": stderr,
        "failure": (
            None
            if failure is None
            else {
                "type": failure.type,
                "message": (failure.message or "").rstrip() or "(no message)",
                "expected": failure.expected,
                "actual": failure.actual,
                "frames": [str(f) for f in case.iter_frames()],
            }
        ),
    }


def _suite(suite: SuiteView, spec: RenderSpec) -> dict[str, Any]:
    cases = [_case(c, spec) for c in suite.iter_cases()] if spec.per_test_case else []
    stdout, stderr = _streams(spec, suite.outcome is Outcome.PASSED, suite.stdout, suite.stderr)
    return {
        "name": suite.name,
        "outcome": suite.outcome.value,
        "icon": STATUS_ICONS[suite.outcome],
        "counts": _counts(suite.counts),
        "duration_ms": suite.duration_ms,
        "cases": cases,
        "details": [c for c in cases if c["failure"] or c["stdout"] or c["stderr"]],
        "stdout": stdout,
        "stderr": stderr,
    }


def _ratio(counter: Counter, spec: RenderSpec) -> str:
    if counter.total == 0:
        return "-"
    pct = format_percent(counter.percent(spec.precision))
    return f"{pct} ({counter.covered}/{counter.total})"


def _ratios(unit: CoverageUnit, spec: RenderSpec) -> dict[str, str]:
    return {kind.value: _ratio(unit.counter(kind), spec) for kind in TABLE_KINDS}


def _coverage(run: RunView, spec: RenderSpec) -> dict[str, Any] | None:
    if run.coverage is None:
        return None
    packages = []
    for package, classes in run.iter_packages():
        rows = []
        for cls in classes:
            label = escape_cell(strip_prefix(cls.name, package.name))
            link = run.link(cls.source_file)
            rows.append({"label": f"[{label}]({link})" if link else label, **_ratios(cls, spec)})
        name = package.name or "(default)"
        packages.append(
            {
                "name": package.name,
                "label": abbreviate_package(name) if spec.abbreviate_packages else name,
                "classes": rows,
            }
        )
    headline = run.coverage.counter(CounterKind(spec.coverage_counter))
    return {
        "badge": coverage_badge(headline, spec),
        "packages": packages,
        "total": _ratios(run.coverage, spec),
    }


def build_scope(run: RunView, spec: RenderSpec) -> dict[str, Any]:
    """Template scope of one detailed document."""
    coverage = _coverage(run, spec)
    badges = [status_badge(run.outcome, spec.badge_style)]
    if coverage is not None:
        badges.append(coverage["badge"])
    return {
        "title": f"Test Report: {run.run_id}",
        "run": run.run_id,
        "aggregated": run.aggregated,
        "badges": " ".join(badges),
        "counts": _counts(run.counts),
        "duration_ms": run.duration_ms,
        "per_test_case": spec.per_test_case,
        "suites": [_suite(s, spec) for s in run.iter_suites()],
        "coverage": coverage,
    }


class DetailedRenderer:
    """Renders the per-suite review document."""

    template = "detailed"

    @property
    def name(self) -> str:
        return "detailed"

    @property
    def extension(self) -> str:
        return "md"

    def render(self, view: FilteredView, spec: RenderSpec) -> list[Artifact]:
        engine = TemplateEngine.for_spec(spec.templates, spec.template_dir)
        base = spec.output_name or self.name
        return [
            Artifact(
                path=artifact_path(base, self.extension, suffix),
                content=finish_text(engine.resolve(self.template, build_scope(run, spec))),
            )
            for run, suffix in render_targets(view, spec)
        ]
