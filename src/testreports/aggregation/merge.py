"""Run upsert and cross-run coverage rollup.

Upsert replaces a run wholesale: re-aggregating the same run id never
duplicates it.

The rollup combines every run's coverage into one synthetic bundle:

- packages: union of all runs' packages, merged class-by-class
- classes and methods: totals must agree across runs; instruction and
  branch covered counts are summed and capped at total (multi-module code
  covering shared classes)
- lines: union, a line is covered if it is covered in any run
  (covered = max across runs)
- line, method and class counts above the line level: union as well,
  recomputed from the merged children so a line covered by two runs is
  counted once
- packages and the bundle: recomputed as sums of their merged children

Capped sum, max and sum are commutative and associative, so the combined
tree does not depend on run order.
"""

from __future__ import annotations

from collections.abc import Iterable

from testreports.core.errors import ConflictError
from testreports.model.coverage import (
    COUNTER_ORDER,
    Counter,
    CounterKind,
    CoverageLevel,
    CoverageUnit,
    sum_counters,
)
from testreports.model.report import ReportModel, RunReport
from testreports.model.results import TestSuite

# Counts of distinct lines, methods and classes: covered-ness is a union
ENTITY_KINDS = frozenset({CounterKind.LINE, CounterKind.METHOD, CounterKind.CLASS})


def merge(
    model: ReportModel,
    run_id: str,
    suites: Iterable[TestSuite],
    coverage: CoverageUnit | None,
) -> ReportModel:
    """Upsert a run into ``model``, returning the new model."""
    return model.upsert(RunReport(run_id=run_id, suites=tuple(suites), coverage=coverage))


def combine_coverage(runs: Iterable[RunReport], name: str = "all") -> CoverageUnit | None:
    """Roll up coverage across runs into one bundle, or None if no run has coverage.

    Raises:
        ConflictError: A class reports different totals in two runs.
    """
    classes: dict[str, tuple[CoverageUnit, tuple[str, ...]]] = {}
    packages: dict[str, set[str]] = {}
    seen = False

    for run in runs:
        if run.coverage is None:
            continue
        seen = True
        for package in run.coverage.children:
            members = packages.setdefault(package.name, set())
            for cls in package.children:
                members.add(cls.name)
                if cls.name in classes:
                    prior, run_ids = classes[cls.name]
                    merged = merge_units(prior, cls, cls.name, (*run_ids, run.run_id))
                    classes[cls.name] = (merged, (*run_ids, run.run_id))
                else:
                    classes[cls.name] = (cls, (run.run_id,))

    if not seen:
        return None

    package_units = [
        CoverageUnit(name=pkg, level=CoverageLevel.PACKAGE).with_children(
            classes[c][0] for c in sorted(members)
        )
        for pkg, members in sorted(packages.items())
    ]
    return CoverageUnit(name=name, level=CoverageLevel.BUNDLE).with_children(package_units)


def merge_units(
    a: CoverageUnit,
    b: CoverageUnit,
    subject: str,
    run_ids: tuple[str, ...] = (),
) -> CoverageUnit:
    """Merge the same class-subtree node reported by two runs.

    Raises:
        ConflictError: Totals differ for any counter kind at any depth.
    """
    counters: dict[CounterKind, Counter] = {}
    for kind in COUNTER_ORDER:
        if kind not in a.counters and kind not in b.counters:
            continue
        left, right = a.counter(kind), b.counter(kind)
        if left.total != right.total:
            raise ConflictError.totals_differ(
                subject, str(kind), (left.total, right.total), run_ids
            )
        if a.level is CoverageLevel.LINE or kind in ENTITY_KINDS:
            covered = max(left.covered, right.covered)
        else:
            covered = min(left.covered + right.covered, left.total)
        counters[kind] = Counter(covered, left.total)

    left_kids = {_child_key(c): c for c in a.children}
    right_kids = {_child_key(c): c for c in b.children}
    children = []
    for key in sorted(left_kids.keys() | right_kids.keys()):
        lc, rc = left_kids.get(key), right_kids.get(key)
        if lc is not None and rc is not None:
            children.append(merge_units(lc, rc, _child_subject(subject, lc), run_ids))
        elif lc is not None:
            _require_empty(lc, _child_subject(subject, lc), False, run_ids)
            children.append(lc)
        elif rc is not None:
            _require_empty(rc, _child_subject(subject, rc), True, run_ids)
            children.append(rc)

    # Entity counts carried by children follow the merged children
    for kind, summed in sum_counters(children).items():
        if kind in ENTITY_KINDS:
            counters[kind] = summed

    return CoverageUnit(
        name=a.name,
        level=a.level,
        counters=counters,
        children=tuple(children),
        line=a.line,
        source_file=_source_file(a, b),
    )


def _source_file(a: CoverageUnit, b: CoverageUnit) -> str | None:
    """Smallest reported source file, so the choice does not depend on run order."""
    files = [f for f in (a.source_file, b.source_file) if f]
    return min(files) if files else None


def _child_key(unit: CoverageUnit) -> tuple[int, str]:
    return (unit.line or 0, unit.name)


def _child_subject(parent: str, child: CoverageUnit) -> str:
    if child.level is CoverageLevel.LINE:
        return f"{parent}:{child.name}"
    return f"{parent}.{child.name}"


def _require_empty(
    unit: CoverageUnit, subject: str, missing_left: bool, run_ids: tuple[str, ...]
) -> None:
    """A node present in only one run counts as total 0 in the other."""
    for kind, counter in unit.counters.items():
        if counter.total:
            totals = (0, counter.total) if missing_left else (counter.total, 0)
            raise ConflictError.totals_differ(subject, str(kind), totals, run_ids)
