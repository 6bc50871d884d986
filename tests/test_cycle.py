"""End-to-end tests for one aggregation-then-render cycle."""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from testreports import ReportCycle, load_config
from testreports.config.models import (
    OutputConfig,
    RenderersConfig,
    RenderSpec,
    ReportsConfig,
)
from testreports.core.errors import CycleError, ErrorCode, InternalError
from testreports.core.logging import get_cycle_id
from testreports.filtering.view import FilteredView
from testreports.model.records import (
    RawCoverageRecord,
    RawLineCounter,
    RawMethod,
    RawTestCase,
    RawTestRecord,
)
from testreports.rendering import RENDERER_REGISTRY
from testreports.rendering.base import Artifact


def _config(tmp_path: Path, **renderers: RenderSpec) -> ReportsConfig:
    return ReportsConfig(
        output=OutputConfig(root=str(tmp_path / "reports"), render_timeout_sec=5),
        renderers=RenderersConfig(**renderers),
    )


def _files(tmp_path: Path) -> list[str]:
    root = tmp_path / "reports"
    if not root.exists():
        return []
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


class TestCycle:
    def test_default_renderers(
        self,
        tmp_path: Path,
        sample_tests: list[RawTestRecord],
        sample_coverage: list[RawCoverageRecord],
    ) -> None:
        # Given
        cycle = ReportCycle(_config(tmp_path), ["core", "web"])

        # When
        assert cycle.add_run("web", sample_tests, sample_coverage)
        assert cycle.add_run("core", sample_tests, sample_coverage)
        result = cycle.render()

        # Then
        assert result.ok, [f.to_dict() for f in result.failures]
        assert _files(tmp_path) == [
            "detailed-core.md",
            "detailed-web.md",
            "report-core.json",
            "report-web.json",
            "summary.md",
        ]
        summary = (tmp_path / "reports" / "summary.md").read_text()
        rows = [line.split(" | ")[0] for line in summary.splitlines() if line.startswith("| ")]
        # declared order, not completion order
        assert rows == ["| Run", "| core", "| web", "| **Total**"]

    def test_disabled_renderer_writes_nothing(
        self, tmp_path: Path, sample_tests: list[RawTestRecord]
    ) -> None:
        """Disabling json produces zero json files; the others still render."""
        config = _config(tmp_path, json=RenderSpec(enabled=False))
        cycle = ReportCycle(config, ["app"])
        cycle.add_run("app", sample_tests)

        result = cycle.render()

        assert result.ok
        assert result.skipped == ["json"]
        files = _files(tmp_path)
        assert not [f for f in files if f.endswith(".json")]
        assert files == ["detailed-app.md", "summary.md"]

    def test_rerender_is_byte_identical(
        self,
        tmp_path: Path,
        sample_tests: list[RawTestRecord],
        sample_coverage: list[RawCoverageRecord],
    ) -> None:
        def run_cycle() -> dict[str, bytes]:
            cycle = ReportCycle(_config(tmp_path), ["a", "b"])
            cycle.add_run("b", sample_tests, sample_coverage)
            cycle.add_run("a", sample_tests, sample_coverage)
            result = cycle.render()
            assert result.ok
            root = tmp_path / "reports"
            return {name: (root / name).read_bytes() for name in _files(tmp_path)}

        assert run_cycle() == run_cycle()

    def test_parallel_producers(
        self,
        tmp_path: Path,
        sample_tests: list[RawTestRecord],
        sample_coverage: list[RawCoverageRecord],
    ) -> None:
        run_ids = [f"m{i}" for i in range(6)]
        cycle = ReportCycle(_config(tmp_path), run_ids)

        threads = [
            threading.Thread(target=cycle.add_run, args=(r, sample_tests, sample_coverage))
            for r in reversed(run_ids)
        ]
        for t in threads:
            t.start()
        result = cycle.render()
        for t in threads:
            t.join()

        assert result.ok
        summary = (tmp_path / "reports" / "summary.md").read_text()
        assert summary.index("| m0 |") < summary.index("| m5 |")

    def test_cycle_id_scoped_to_render(self, tmp_path: Path) -> None:
        cycle = ReportCycle(_config(tmp_path))
        cycle.render()
        assert len(cycle.cycle_id) == 12
        assert get_cycle_id() is None


class TestFailureIsolation:
    def test_malformed_run_does_not_block_others(
        self, tmp_path: Path, sample_tests: list[RawTestRecord]
    ) -> None:
        cycle = ReportCycle(_config(tmp_path), ["good", "bad"])
        cycle.add_run("good", sample_tests)

        accepted = cycle.add_run("bad", [RawTestCase("S", "t", "passed", duration_ms=-5)])
        result = cycle.render()

        assert accepted is False
        assert [(f.stage, f.run_id) for f in result.failures] == [("build", "bad")]
        assert result.failures[0].error.code is ErrorCode.INPUT_INVALID_RECORD
        assert "report-good.json" in _files(tmp_path)
        assert "report-bad.json" not in _files(tmp_path)

    def test_conflict_fails_aggregated_renderers_only(
        self, tmp_path: Path, sample_tests: list[RawTestRecord]
    ) -> None:
        def coverage(total: int) -> list[RawCoverageRecord]:
            return [RawMethod("pkg.Foo", "run", 1, 10), RawLineCounter("pkg.Foo", 1, 6, total)]

        cycle = ReportCycle(_config(tmp_path), ["a", "b"])
        cycle.add_run("a", sample_tests, coverage(10))
        cycle.add_run("b", sample_tests, coverage(12))

        result = cycle.render()

        assert result.failed_renderers() == ["summary"]
        [failure] = result.failures
        assert failure.stage == "render"
        assert failure.run_id == "all"
        assert failure.error.code is ErrorCode.AGGREGATION_CONFLICT
        assert failure.to_dict()["renderer"] == "summary"
        # per-run renderers still wrote their artifacts
        assert _files(tmp_path) == [
            "detailed-a.md",
            "detailed-b.md",
            "report-a.json",
            "report-b.json",
        ]

    def test_template_error_fails_only_that_renderer(
        self, tmp_path: Path, sample_tests: list[RawTestRecord]
    ) -> None:
        (tmp_path / "reports").mkdir()
        (tmp_path / "reports" / "detailed-app.md").write_text("previous\n")
        config = _config(
            tmp_path,
            detailed=RenderSpec(templates={"detailed": "{{ nonexistent }}"}),
        )
        cycle = ReportCycle(config, ["app"])
        cycle.add_run("app", sample_tests)

        result = cycle.render()

        assert result.failed_renderers() == ["detailed"]
        assert result.failures[0].error.code is ErrorCode.TEMPLATE_UNDEFINED
        assert result.failures[0].error.details["key"] == "nonexistent"
        # prior artifact untouched, siblings written
        assert (tmp_path / "reports" / "detailed-app.md").read_text() == "previous\n"
        assert "report-app.json" in _files(tmp_path)
        assert "summary.md" in _files(tmp_path)

    def test_unexpected_renderer_exception_is_isolated(
        self, tmp_path: Path, sample_tests: list[RawTestRecord]
    ) -> None:
        class Exploding:
            name = "json"
            extension = "json"

            def render(self, view: FilteredView, spec: RenderSpec) -> list[Artifact]:
                raise RuntimeError("kaboom")

        renderers = [Exploding(), *RENDERER_REGISTRY[1:]]
        cycle = ReportCycle(_config(tmp_path), ["app"], renderers=renderers)
        cycle.add_run("app", sample_tests)

        result = cycle.render()

        [failure] = result.failures
        assert isinstance(failure.error, InternalError)
        assert "kaboom" in failure.error.message
        assert _files(tmp_path) == ["detailed-app.md", "summary.md"]


class TestArtifactNames:
    def test_similar_run_ids_get_separate_files(self, tmp_path: Path) -> None:
        """Run ids differing only in unsafe characters must not overwrite each other."""
        config = _config(
            tmp_path,
            summary=RenderSpec(enabled=False),
            detailed=RenderSpec(enabled=False),
        )
        cycle = ReportCycle(config, ["app/core", "app_core"])
        cycle.add_run("app/core", [RawTestCase("S", "ok", "passed", 5)])
        cycle.add_run("app_core", [RawTestCase("S", "bad", "failed", 5)])

        result = cycle.render()

        assert result.ok
        assert _files(tmp_path) == ["report-app%2Fcore.json", "report-app_core.json"]
        root = tmp_path / "reports"
        slash = json.loads((root / "report-app%2Fcore.json").read_text())
        underscore = json.loads((root / "report-app_core.json").read_text())
        assert (slash["name"], slash["outcome"]) == ("app/core", "passed")
        assert (underscore["name"], underscore["outcome"]) == ("app_core", "failed")

    def test_duplicate_paths_fail_the_renderer(
        self, tmp_path: Path, sample_tests: list[RawTestRecord]
    ) -> None:
        class Colliding:
            name = "json"
            extension = "json"

            def render(self, view: FilteredView, spec: RenderSpec) -> list[Artifact]:
                return [Artifact("report.json", b"{}\n"), Artifact("report.json", b"[]\n")]

        renderers = [Colliding(), *RENDERER_REGISTRY[1:]]
        cycle = ReportCycle(_config(tmp_path), ["app"], renderers=renderers)
        cycle.add_run("app", sample_tests)

        result = cycle.render()

        [failure] = result.failures
        assert failure.stage == "write"
        assert failure.renderer == "json"
        assert failure.error.code is ErrorCode.WRITE_DUPLICATE_PATH
        assert failure.error.details["path"] == "report.json"
        # nothing from the colliding renderer reaches disk; siblings still write
        assert _files(tmp_path) == ["detailed-app.md", "summary.md"]


class TestBarrierAndAbort:
    def test_missing_run_times_out(self, tmp_path: Path, sample_tests: list[RawTestRecord]) -> None:
        cycle = ReportCycle(_config(tmp_path), ["a", "b"])
        cycle.add_run("a", sample_tests)

        result = cycle.render(timeout=0.01)

        [failure] = result.failures
        assert failure.stage == "barrier"
        assert failure.error.code is ErrorCode.CYCLE_INCOMPLETE
        assert _files(tmp_path) == []

    def test_abort_before_barrier_writes_nothing(
        self, tmp_path: Path, sample_tests: list[RawTestRecord]
    ) -> None:
        cycle = ReportCycle(_config(tmp_path), ["a", "b"])
        cycle.add_run("a", sample_tests)

        cycle.abort("compilation failed")
        result = cycle.render()

        assert not result.ok
        assert result.failures[0].error.code is ErrorCode.CYCLE_ABORTED
        assert _files(tmp_path) == []

    def test_abort_during_render_writes_nothing(
        self, tmp_path: Path, sample_tests: list[RawTestRecord]
    ) -> None:
        class AbortingRenderer:
            name = "json"
            extension = "json"

            def render(self, view: FilteredView, spec: RenderSpec) -> list[Artifact]:
                cycle.abort("cancelled")
                return [Artifact("late.json", b"{}\n")]

        cycle = ReportCycle(_config(tmp_path), ["app"], renderers=[AbortingRenderer()])
        cycle.add_run("app", sample_tests)

        result = cycle.render()

        assert [f.stage for f in result.failures] == ["write"]
        assert _files(tmp_path) == []

    def test_add_run_after_abort_raises(
        self, tmp_path: Path, sample_tests: list[RawTestRecord]
    ) -> None:
        cycle = ReportCycle(_config(tmp_path), ["a"])
        cycle.abort()

        with pytest.raises(CycleError):
            cycle.add_run("a", sample_tests)


class TestConfigIntegration:
    def test_yaml_configured_cycle(self, tmp_path: Path, sample_tests: list[RawTestRecord]) -> None:
        config_file = tmp_path / "reports.yaml"
        config_file.write_text(
            f"output:\n  root: {tmp_path / 'reports'}\n"
            "renderers:\n"
            "  json:\n    enabled: false\n"
            "  detailed:\n    enabled: false\n"
            "  summary:\n    aggregate: false\n    output_name: overview\n"
        )
        cycle = ReportCycle(load_config(config_file), ["app"])
        cycle.add_run("app", sample_tests)

        result = cycle.render()

        assert result.ok
        assert result.skipped == ["json", "detailed"]
        assert _files(tmp_path) == ["overview-app.md"]
