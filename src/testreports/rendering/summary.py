"""Summary document renderer.

One Markdown table with the fixed column order:

    Run | Tests | Passed | Failed | Errored | Skipped | Duration | Status | Coverage

Per-run mode writes one document per run holding that run's row. Aggregated
mode writes a single document with one row per run plus a final Total row.
Counts always come from the unfiltered model.
"""

from __future__ import annotations

from typing import Any

from testreports.config.models import RenderSpec
from testreports.filtering.view import FilteredView, RunView
from testreports.model.coverage import CounterKind
from testreports.rendering.badges import coverage_badge, status_badge
from testreports.rendering.base import Artifact, artifact_path, finish_text
from testreports.templates.engine import TemplateEngine

TOTAL_LABEL = "**Total**"


def summary_row(run: RunView, spec: RenderSpec, label: str | None = None) -> dict[str, Any]:
    """Template scope of one table row."""
    counts = run.counts
    counter = (
        None if run.coverage is None else run.coverage.counter(CounterKind(spec.coverage_counter))
    )
    return {
        "run": label or run.run_id,
        "tests": counts.total,
        "passed": counts.passed,
        "failed": counts.failed,
        "errored": counts.errored,
        "skipped": counts.skipped,
        "duration_ms": run.duration_ms,
        "status": status_badge(run.outcome, spec.badge_style),
        "coverage": coverage_badge(counter, spec),
    }


class SummaryRenderer:
    """Renders the per-run summary table."""

    template = "summary"

    @property
    def name(self) -> str:
        return "summary"

    @property
    def extension(self) -> str:
        return "md"

    def render(self, view: FilteredView, spec: RenderSpec) -> list[Artifact]:
        engine = TemplateEngine.for_spec(spec.templates, spec.template_dir)
        base = spec.output_name or self.name

        if spec.aggregate:
            rows = [summary_row(run, spec) for run in view.runs]
            rows.append(summary_row(view.aggregate(), spec, label=TOTAL_LABEL))
            text = engine.resolve(
                self.template, {"title": "Test Summary", "aggregated": True, "rows": rows}
            )
            return [Artifact(path=artifact_path(base, self.extension), content=finish_text(text))]

        artifacts = []
        for run in view.runs:
            text = engine.resolve(
                self.template,
                {
                    "title": f"Test Summary: {run.run_id}",
                    "aggregated": False,
                    "rows": [summary_row(run, spec)],
                },
            )
            artifacts.append(
                Artifact(
                    path=artifact_path(base, self.extension, run.run_id),
                    content=finish_text(text),
                )
            )
        return artifacts
