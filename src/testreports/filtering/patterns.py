"""Ant-style include/exclude pattern sets over dotted names.

Pattern syntax:
    ?    exactly one character
    *    any run of characters within one segment
    **   any run of characters across segments; a trailing ``.**`` also
         matches the prefix itself (``com.acme.**`` matches ``com.acme``)

Rules:
    - a value matching any exclude is rejected
    - otherwise it is accepted if no includes are configured or any include matches
    - patterns are evaluated in configuration order; the first match wins
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import lru_cache


def ant_to_regex(pattern: str) -> str:
    """Translate one ant-style pattern to an anchored regular expression."""
    parts: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        if pattern.startswith(".**", i) and i + 3 == n:
            parts.append(r"(?:\..*)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif ch == "*":
            parts.append(r"[^.]*")
            i += 1
        elif ch == "?":
            parts.append(".")
            i += 1
        else:
            parts.append(re.escape(ch))
            i += 1
    return "^" + "".join(parts) + "$"


@lru_cache(maxsize=512)
def _compile(pattern: str, case_sensitive: bool) -> re.Pattern[str]:
    return re.compile(ant_to_regex(pattern), 0 if case_sensitive else re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class PatternSet:
    """Ordered include/exclude patterns with a compiled predicate."""

    includes: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()
    case_sensitive: bool = False
    _include_rx: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)
    _exclude_rx: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # dict.fromkeys drops duplicates but keeps configuration order
        includes = tuple(dict.fromkeys(p for p in self.includes if p))
        excludes = tuple(dict.fromkeys(p for p in self.excludes if p))
        object.__setattr__(self, "includes", includes)
        object.__setattr__(self, "excludes", excludes)
        object.__setattr__(
            self, "_include_rx", tuple(_compile(p, self.case_sensitive) for p in includes)
        )
        object.__setattr__(
            self, "_exclude_rx", tuple(_compile(p, self.case_sensitive) for p in excludes)
        )

    @classmethod
    def of(
        cls,
        includes: Iterable[str] = (),
        excludes: Iterable[str] = (),
        *,
        case_sensitive: bool = False,
    ) -> PatternSet:
        return cls(tuple(includes), tuple(excludes), case_sensitive)

    @property
    def empty(self) -> bool:
        return not self.includes and not self.excludes

    def allows(self, value: str) -> bool:
        """Whether ``value`` passes this set."""
        if any(rx.match(value) for rx in self._exclude_rx):
            return False
        return not self._include_rx or any(rx.match(value) for rx in self._include_rx)

    def first_match(self, value: str) -> tuple[str, bool] | None:
        """First matching pattern and whether it is an include, or None.

        Excludes are consulted before includes.
        """
        for pattern, rx in zip(self.excludes, self._exclude_rx, strict=True):
            if rx.match(value):
                return pattern, False
        for pattern, rx in zip(self.includes, self._include_rx, strict=True):
            if rx.match(value):
                return pattern, True
        return None
