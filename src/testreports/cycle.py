"""One aggregation-then-render cycle per build invocation.

Lifecycle:

1. ``ReportCycle(config, expected_runs)`` creates the AggregationContext.
2. Producers call ``add_run`` (from any thread) as their runs complete.
   A run whose records are malformed is recorded as failed; other runs
   are unaffected.
3. ``render()`` waits at the barrier for every expected run, applies the
   filters, runs the enabled renderers in parallel and writes each
   renderer's artifacts only if that renderer fully succeeded.
4. ``abort()`` at any point before writing discards the partial model;
   nothing is written afterwards.

Failures are collected per run and per renderer and surfaced together in
the CycleResult instead of stopping at the first one.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal
from uuid import uuid4

import structlog

from testreports.aggregation.context import AggregationContext
from testreports.artifacts.writer import ArtifactWriter
from testreports.config.models import RenderSpec, ReportsConfig
from testreports.core.errors import (
    CycleError,
    InternalError,
    MalformedInputError,
    ReportsError,
    WriteError,
)
from testreports.core.logging import clear_cycle_id, set_cycle_id
from testreports.filtering.view import FilteredView, apply
from testreports.model.builder import build
from testreports.model.records import RawCoverageRecord, RawTestRecord
from testreports.rendering import RENDERER_REGISTRY
from testreports.rendering.base import Artifact, Renderer

log = structlog.get_logger(__name__)

Stage = Literal["build", "barrier", "render", "write"]


@dataclass(frozen=True, slots=True)
class CycleFailure:
    """One failure of a cycle with enough context to act on it."""

    stage: Stage
    error: ReportsError
    renderer: str | None = None
    run_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "renderer": self.renderer,
            "run_id": self.run_id,
            **self.error.to_dict(),
        }


@dataclass
class CycleResult:
    """Everything a cycle produced."""

    artifacts: list[Path] = field(default_factory=list)
    failures: list[CycleFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # disabled renderers

    @property
    def ok(self) -> bool:
        return not self.failures

    def failed_renderers(self) -> list[str]:
        return sorted({f.renderer for f in self.failures if f.renderer})


class ReportCycle:
    """Explicitly constructed state and entry point of one report cycle.

    Args:
        config: Filters, renderer specs, output root and links.
        expected_runs: Runs the render barrier waits for; their order is the
            order runs appear in artifacts.
        writer: Artifact destination; defaults to ``config.output.root``.
        renderers: Renderer implementations to consider, in output order.
    """

    def __init__(
        self,
        config: ReportsConfig | None = None,
        expected_runs: Iterable[str] = (),
        *,
        writer: ArtifactWriter | None = None,
        renderers: Sequence[Renderer] = RENDERER_REGISTRY,
    ) -> None:
        self._config = config or ReportsConfig()
        self._context = AggregationContext(expected_runs)
        self._writer = writer or ArtifactWriter(self._config.output.root)
        self._renderers = tuple(renderers)
        self._cycle_id = uuid4().hex[:12]

    @property
    def cycle_id(self) -> str:
        return self._cycle_id

    @property
    def context(self) -> AggregationContext:
        return self._context

    @property
    def config(self) -> ReportsConfig:
        return self._config

    def add_run(
        self,
        run_id: str,
        raw_tests: Iterable[RawTestRecord],
        raw_coverage: Iterable[RawCoverageRecord] = (),
    ) -> bool:
        """Build and upsert one run. Returns False if its records were malformed.

        Raises:
            CycleError: The cycle was aborted.
        """
        try:
            suites, coverage = build(raw_tests, raw_coverage, run_id=run_id)
        except MalformedInputError as e:
            self._context.mark_failed(run_id, e)
            return False
        self._context.upsert(run_id, suites, coverage)
        return True

    def abort(self, reason: str = "build aborted") -> None:
        """Discard partial models; a later render() writes nothing."""
        self._context.abort(reason)

    def _build_failures(self) -> list[CycleFailure]:
        return [
            CycleFailure(stage="build", error=error, run_id=run_id)
            for run_id, error in self._context.failures.items()
        ]

    def render(self, timeout: float | None = None) -> CycleResult:
        """Wait at the barrier, render every enabled renderer and write the results."""
        set_cycle_id(self._cycle_id)
        try:
            return self._render(timeout)
        finally:
            clear_cycle_id()

    def _render(self, timeout: float | None) -> CycleResult:
        result = CycleResult(failures=self._build_failures())
        try:
            model = self._context.wait_complete(
                timeout if timeout is not None else self._config.output.render_timeout_sec
            )
        except CycleError as e:
            result.failures.append(CycleFailure(stage="barrier", error=e))
            log.warning("cycle_finished", ok=False, reason=e.message)
            return result

        try:
            view = apply(
                model,
                self._config.filters,
                links=self._config.links,
                aggregate_name=self._config.output.aggregate_name,
            )
        except ReportsError as e:
            result.failures.append(CycleFailure(stage="render", error=e))
            log.error("cycle_finished", ok=False, reason=e.message)
            return result

        jobs: list[tuple[Renderer, RenderSpec]] = []
        for renderer in self._renderers:
            spec = self._config.renderers.spec_for(renderer.name)
            if spec is None or not spec.enabled:
                result.skipped.append(renderer.name)
                continue
            jobs.append((renderer, spec))

        outcomes: list[list[Artifact] | ReportsError] = []
        if jobs:
            workers = min(self._config.output.max_workers, len(jobs))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="render") as pool:
                futures = [
                    pool.submit(contextvars.copy_context().run, _render_one, r, view, s)
                    for r, s in jobs
                ]
                outcomes = [f.result() for f in futures]

        for (renderer, spec), outcome in zip(jobs, outcomes, strict=True):
            run_id = view.aggregate_name if spec.aggregate else None
            if isinstance(outcome, ReportsError):
                result.failures.append(
                    CycleFailure(
                        stage="render", error=outcome, renderer=renderer.name, run_id=run_id
                    )
                )
                continue
            if self._context.aborted:
                result.failures.append(
                    CycleFailure(
                        stage="write",
                        error=CycleError.aborted("aborted before artifacts were written"),
                        renderer=renderer.name,
                    )
                )
                continue
            duplicates = _duplicate_paths(outcome)
            if duplicates:
                result.failures.extend(
                    CycleFailure(
                        stage="write",
                        error=WriteError.duplicate_path(path, renderer.name),
                        renderer=renderer.name,
                        run_id=run_id,
                    )
                    for path in duplicates
                )
                continue
            written = self._writer.write(outcome)
            result.artifacts.extend(written.paths)
            result.failures.extend(
                CycleFailure(stage="write", error=e, renderer=renderer.name, run_id=run_id)
                for e in written.errors
            )

        log.info(
            "cycle_finished",
            ok=result.ok,
            runs=len(model),
            artifacts=len(result.artifacts),
            failures=len(result.failures),
            skipped=result.skipped,
        )
        return result


def _duplicate_paths(artifacts: list[Artifact]) -> list[str]:
    """Paths claimed by more than one artifact, in first-seen order."""
    seen: set[str] = set()
    duplicates: dict[str, None] = {}
    for artifact in artifacts:
        if artifact.path in seen:
            duplicates[artifact.path] = None
        seen.add(artifact.path)
    return list(duplicates)


def _render_one(
    renderer: Renderer, view: FilteredView, spec: RenderSpec
) -> list[Artifact] | ReportsError:
    """Run one renderer; its failure is returned so siblings are unaffected."""
    try:
        return renderer.render(view, spec)
    except ReportsError as e:
        log.error("renderer_failed", renderer=renderer.name, error=e.error_name, reason=e.message)
        return e
    except Exception as e:
        log.exception("renderer_failed", renderer=renderer.name)
        return InternalError.unexpected(
            f"renderer '{renderer.name}' raised {type(e).__name__}: {e}",
            renderer=renderer.name,
        )
