"""Aggregation: run upsert, cross-run coverage rollup, cycle context."""

from testreports.aggregation.context import AggregationContext
from testreports.aggregation.merge import combine_coverage, merge, merge_units

__all__ = [
    "AggregationContext",
    "combine_coverage",
    "merge",
    "merge_units",
]
