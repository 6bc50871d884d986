"""Hierarchical coverage data model.

A run's coverage is a tree of CoverageUnits:

    bundle -> package -> class -> method -> line

Each unit carries a (covered, total) Counter per CounterKind. For every kind
its children carry, a unit's total equals the sum of its children's totals.
Kinds introduced at a level (METHOD at method level, CLASS at class level)
count that unit itself: total 1, covered 1 when anything below is covered.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from testreports.core.errors import MalformedInputError
from testreports.core.formatting import percent


class CounterKind(str, Enum):
    """Category of a coverage measurement."""

    INSTRUCTION = "instruction"
    BRANCH = "branch"
    LINE = "line"
    METHOD = "method"
    CLASS = "class"

    def __str__(self) -> str:
        return self.value


class CoverageLevel(str, Enum):
    """Granularity of a CoverageUnit."""

    LINE = "line"
    METHOD = "method"
    CLASS = "class"
    PACKAGE = "package"
    BUNDLE = "bundle"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Counter:
    """A (covered, total) pair. Invariant: 0 <= covered <= total."""

    covered: int = 0
    total: int = 0

    def __post_init__(self) -> None:
        if self.covered < 0 or self.total < 0 or self.covered > self.total:
            raise MalformedInputError.invalid_counter(
                "counter", "coverage", self.covered, self.total
            )

    @property
    def missed(self) -> int:
        return self.total - self.covered

    def percent(self, precision: int = 0) -> Decimal:
        """Covered/total rounded half-up; an empty counter is 100%."""
        return percent(self.covered, self.total, precision)

    def __add__(self, other: Counter) -> Counter:
        return Counter(self.covered + other.covered, self.total + other.total)


EMPTY = Counter()

COUNTER_ORDER: tuple[CounterKind, ...] = tuple(CounterKind)

# Kinds a level counts for itself rather than summing from children
OWN_KINDS: dict[CoverageLevel, frozenset[CounterKind]] = {
    CoverageLevel.METHOD: frozenset({CounterKind.METHOD}),
    CoverageLevel.CLASS: frozenset({CounterKind.CLASS}),
}


def sum_counters(units: Iterable[CoverageUnit]) -> dict[CounterKind, Counter]:
    """Sum counters per kind across ``units``, in canonical kind order."""
    sums: dict[CounterKind, Counter] = {}
    for unit in units:
        for kind, counter in unit.counters.items():
            sums[kind] = sums.get(kind, EMPTY) + counter
    return {kind: sums[kind] for kind in COUNTER_ORDER if kind in sums}


@dataclass(frozen=True, slots=True)
class CoverageUnit:
    """A counted entity at one granularity of the coverage tree."""

    name: str
    level: CoverageLevel
    counters: Mapping[CounterKind, Counter] = field(default_factory=dict)
    children: tuple[CoverageUnit, ...] = ()
    line: int | None = None  # first line for methods, number for lines
    source_file: str | None = None

    def __post_init__(self) -> None:
        ordered = {k: self.counters[k] for k in COUNTER_ORDER if k in self.counters}
        object.__setattr__(self, "counters", MappingProxyType(ordered))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CoverageUnit):
            return NotImplemented
        return (
            self.name == other.name
            and self.level == other.level
            and dict(self.counters) == dict(other.counters)
            and self.children == other.children
            and self.line == other.line
            and self.source_file == other.source_file
        )

    def __hash__(self) -> int:
        return hash((self.name, self.level, self.line, len(self.children)))

    def counter(self, kind: CounterKind) -> Counter:
        return self.counters.get(kind, EMPTY)

    def child(self, name: str) -> CoverageUnit | None:
        for c in self.children:
            if c.name == name:
                return c
        return None

    def walk(self) -> Iterator[CoverageUnit]:
        """Depth-first iteration including self."""
        yield self
        for c in self.children:
            yield from c.walk()

    def with_children(self, children: Iterable[CoverageUnit]) -> CoverageUnit:
        """New unit whose summed counters are recomputed from ``children``.

        Kinds this unit introduces itself (not carried by any child) keep
        their current value.
        """
        kids = tuple(children)
        own = OWN_KINDS.get(self.level, frozenset())
        counters = {k: c for k, c in self.counters.items() if k in own}
        counters.update(sum_counters(kids))
        return CoverageUnit(
            name=self.name,
            level=self.level,
            counters=counters,
            children=kids,
            line=self.line,
            source_file=self.source_file,
        )


def check_invariants(unit: CoverageUnit) -> None:
    """Raise MalformedInputError if a parent total differs from its children's sum."""
    for node in unit.walk():
        if not node.children:
            continue
        summed = sum_counters(node.children)
        for kind, child_sum in summed.items():
            if node.counter(kind).total != child_sum.total:
                raise MalformedInputError.invalid_counter(
                    node.name, str(kind), node.counter(kind).covered, node.counter(kind).total
                )
