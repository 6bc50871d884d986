"""Structured-data renderer: one self-describing JSON document per run or combined.

Schema (``format_version`` 1), keys emitted in this order:

    format_version, name, aggregated, runs, outcome, duration_ms, totals,
    suites[name, outcome, duration_ms, totals, cases[...]],
    coverage{name, level, line, source_file, counters{kind: {covered, total,
    percent}}, children[...]}

Counts are integers, durations integer milliseconds and coverage ratios
fixed-point decimal strings with two places, rounded half-up. Field names
and order are a stability contract; changing them requires bumping
FORMAT_VERSION.
"""

from __future__ import annotations

import json
from typing import Any

from testreports.config.models import RenderSpec
from testreports.filtering.view import CaseView, FilteredView, RunView, SuiteView
from testreports.model.coverage import CoverageUnit
from testreports.model.results import OutcomeCounts
from testreports.rendering.base import Artifact, artifact_path, render_targets

FORMAT_VERSION = 1
RATIO_PLACES = 2


def _totals(counts: OutcomeCounts) -> dict[str, int]:
    return {
        "tests": counts.total,
        "passed": counts.passed,
        "failed": counts.failed,
        "errored": counts.errored,
        "skipped": counts.skipped,
    }


def _case(case: CaseView, spec: RenderSpec) -> dict[str, Any]:
    record: dict[str, Any] = {
        "name": case.name,
        "index": case.case.index,
        "display_name": case.case.display_name,
        "outcome": case.outcome.value,
        "duration_ms": case.duration_ms,
        "class_name": case.case.class_name,
        "source_file": case.case.source_file,
        "link": case.link,
    }
    show_output = spec.always_include_output or not case.passed
    record["stdout"] = case.stdout if spec.include_stdout and show_output else None
    record["stderr"] = case.stderr if spec.include_stderr and show_output else None

    failure = case.failure
    record["failure"] = (
        None
        if failure is None
        else {
            "type": failure.type,
            "message": failure.message,
            "expected": failure.expected,
            "actual": failure.actual,
            "frames": [
                {"location": f.location, "line": f.line, "file": f.file}
                for f in case.iter_frames()
            ],
        }
    )
    return record


def _suite(suite: SuiteView, spec: RenderSpec) -> dict[str, Any]:
    record: dict[str, Any] = {
        "name": suite.name,
        "outcome": suite.outcome.value,
        "duration_ms": suite.duration_ms,
        "totals": _totals(suite.counts),
    }
    if spec.per_test_case:
        record["cases"] = [_case(c, spec) for c in suite.iter_cases()]
    return record


def _node(unit: CoverageUnit, children: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "name": unit.name,
        "level": unit.level.value,
        "line": unit.line,
        "source_file": unit.source_file,
        "counters": {
            kind.value: {
                "covered": counter.covered,
                "total": counter.total,
                "percent": format(counter.percent(RATIO_PLACES), "f"),
            }
            for kind, counter in unit.counters.items()
        },
        "children": children,
    }


def _subtree(unit: CoverageUnit) -> dict[str, Any]:
    return _node(unit, [_subtree(c) for c in unit.children])


def _coverage(run: RunView) -> dict[str, Any] | None:
    if run.coverage is None:
        return None
    packages = [
        _node(package, [_subtree(cls) for cls in classes])
        for package, classes in run.iter_packages()
    ]
    return _node(run.coverage, packages)


def build_document(run: RunView, spec: RenderSpec) -> dict[str, Any]:
    """The JSON-ready record tree of one run view."""
    return {
        "format_version": FORMAT_VERSION,
        "name": run.run_id,
        "aggregated": run.aggregated,
        "runs": list(run.source_runs),
        "outcome": run.outcome.value,
        "duration_ms": run.duration_ms,
        "totals": _totals(run.counts),
        "suites": [_suite(s, spec) for s in run.iter_suites()],
        "coverage": _coverage(run),
    }


def dumps(document: dict[str, Any]) -> bytes:
    return (json.dumps(document, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


class StructuredRenderer:
    """Renders JSON documents for tooling."""

    @property
    def name(self) -> str:
        return "json"

    @property
    def extension(self) -> str:
        return "json"

    def render(self, view: FilteredView, spec: RenderSpec) -> list[Artifact]:
        base = spec.output_name or "report"
        return [
            Artifact(
                path=artifact_path(base, self.extension, suffix),
                content=dumps(build_document(run, spec)),
            )
            for run, suffix in render_targets(view, spec)
        ]
