"""Shared state of one aggregation-then-render cycle.

The context is created at the start of a report cycle and passed explicitly
to every producer. Upserts are serialized under a single lock; readers wait
at the barrier until every expected run has completed or failed.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

import structlog

from testreports.aggregation.merge import merge
from testreports.core.errors import CycleError, ReportsError
from testreports.model.coverage import CoverageUnit
from testreports.model.report import ReportModel
from testreports.model.results import TestSuite

log = structlog.get_logger(__name__)


class AggregationContext:
    """Lock-guarded ReportModel with a completion barrier.

    Args:
        expected_runs: Runs the barrier waits for. Their declared order is
            the order runs appear in rendered artifacts, whatever order
            workers finish in. Runs not declared here follow in
            first-insertion order.
    """

    def __init__(self, expected_runs: Iterable[str] = ()) -> None:
        self._expected: tuple[str, ...] = tuple(dict.fromkeys(expected_runs))
        self._cond = threading.Condition(threading.Lock())
        self._model = ReportModel()
        self._completed: set[str] = set()
        self._failed: dict[str, ReportsError] = {}
        self._abort_reason: str | None = None

    @property
    def expected_runs(self) -> tuple[str, ...]:
        return self._expected

    @property
    def aborted(self) -> bool:
        with self._cond:
            return self._abort_reason is not None

    @property
    def model(self) -> ReportModel:
        """Snapshot of the current model in artifact order."""
        with self._cond:
            return self._model.reordered(self._expected)

    @property
    def failures(self) -> dict[str, ReportsError]:
        with self._cond:
            return dict(self._failed)

    @property
    def pending(self) -> tuple[str, ...]:
        with self._cond:
            return self._pending()

    def _pending(self) -> tuple[str, ...]:
        return tuple(
            r for r in self._expected if r not in self._completed and r not in self._failed
        )

    def upsert(
        self,
        run_id: str,
        suites: Iterable[TestSuite],
        coverage: CoverageUnit | None,
    ) -> None:
        """Add or replace a run.

        Raises:
            CycleError: The cycle was aborted.
        """
        suites = tuple(suites)
        with self._cond:
            if self._abort_reason is not None:
                raise CycleError.aborted(self._abort_reason)
            replaced = run_id in self._model
            self._model = merge(self._model, run_id, suites, coverage)
            self._completed.add(run_id)
            self._failed.pop(run_id, None)
            self._cond.notify_all()
        log.info("run_upserted", run_id=run_id, replaced=replaced, suites=len(suites))

    def mark_failed(self, run_id: str, error: ReportsError) -> None:
        """Record a run whose model could not be built; it no longer blocks the barrier."""
        with self._cond:
            if run_id not in self._completed:
                self._failed[run_id] = error
            self._cond.notify_all()
        log.warning("run_rejected", run_id=run_id, error=error.error_name, reason=error.message)

    def wait_complete(self, timeout: float | None = None) -> ReportModel:
        """Block until every expected run completed or failed.

        Returns:
            The model snapshot in artifact order.

        Raises:
            CycleError: Aborted, or runs still pending after ``timeout``.
        """
        with self._cond:
            self._cond.wait_for(
                lambda: self._abort_reason is not None or not self._pending(),
                timeout=timeout,
            )
            if self._abort_reason is not None:
                raise CycleError.aborted(self._abort_reason)
            missing = self._pending()
            if missing:
                raise CycleError.incomplete(list(missing))
            return self._model.reordered(self._expected)

    def abort(self, reason: str = "build aborted") -> None:
        """Discard partial models and release anyone waiting at the barrier."""
        with self._cond:
            if self._abort_reason is not None:
                return
            self._abort_reason = reason
            self._model = ReportModel()
            self._cond.notify_all()
        log.warning("cycle_aborted", reason=reason)
