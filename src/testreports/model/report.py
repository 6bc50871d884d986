"""Root aggregate of a report cycle."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from testreports.model.coverage import CoverageUnit
from testreports.model.results import OutcomeCounts, TestSuite


@dataclass(frozen=True, slots=True)
class RunReport:
    """Everything one test/coverage run produced."""

    run_id: str
    suites: tuple[TestSuite, ...] = ()
    coverage: CoverageUnit | None = None

    @property
    def counts(self) -> OutcomeCounts:
        return OutcomeCounts.sum(s.counts for s in self.suites)

    @property
    def duration_ms(self) -> int:
        return sum(s.duration_ms for s in self.suites)


class ReportModel:
    """Immutable ordered mapping of run id -> RunReport.

    Iteration follows first-insertion order; replacing a run keeps its
    position. Equality compares content only, so two models holding the
    same runs are equal whatever order they were assembled in.
    """

    __slots__ = ("_runs",)

    def __init__(self, runs: tuple[RunReport, ...] = ()) -> None:
        seen: set[str] = set()
        for run in runs:
            if run.run_id in seen:
                raise ValueError(f"Duplicate run id: {run.run_id}")
            seen.add(run.run_id)
        self._runs = runs

    @property
    def runs(self) -> tuple[RunReport, ...]:
        return self._runs

    @property
    def run_ids(self) -> tuple[str, ...]:
        return tuple(r.run_id for r in self._runs)

    def get(self, run_id: str) -> RunReport | None:
        for run in self._runs:
            if run.run_id == run_id:
                return run
        return None

    def upsert(self, run: RunReport) -> ReportModel:
        """Return a new model with ``run`` added, or replacing the same id in place."""
        if run.run_id in self:
            return ReportModel(tuple(run if r.run_id == run.run_id else r for r in self._runs))
        return ReportModel((*self._runs, run))

    def reordered(self, order: tuple[str, ...]) -> ReportModel:
        """Return a model with runs listed in ``order`` first, the rest after."""
        rank = {run_id: i for i, run_id in enumerate(order)}
        ranked = sorted(
            enumerate(self._runs),
            key=lambda item: (rank.get(item[1].run_id, len(rank)), item[0]),
        )
        return ReportModel(tuple(run for _, run in ranked))

    def __contains__(self, run_id: object) -> bool:
        return any(r.run_id == run_id for r in self._runs)

    def __iter__(self) -> Iterator[RunReport]:
        return iter(self._runs)

    def __len__(self) -> int:
        return len(self._runs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReportModel):
            return NotImplemented
        return {r.run_id: r for r in self._runs} == {r.run_id: r for r in other._runs}

    def __hash__(self) -> int:
        return hash(frozenset(self.run_ids))

    def __repr__(self) -> str:
        return f"ReportModel(runs={list(self.run_ids)!r})"
