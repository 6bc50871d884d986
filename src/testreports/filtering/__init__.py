"""Filter Engine: pattern sets and read-only filtered views."""

from testreports.filtering.patterns import PatternSet, ant_to_regex
from testreports.filtering.view import CaseView, FilteredView, RunView, SuiteView, apply

__all__ = [
    "CaseView",
    "FilteredView",
    "PatternSet",
    "RunView",
    "SuiteView",
    "ant_to_regex",
    "apply",
]
