"""shields.io badges for coverage percentages and test outcomes.

Coverage color thresholds are configuration-supplied (``RenderSpec``).
The default set:

    >= 90%  green
    >= 75%  yellow
    else    red

Thresholds are compared against the displayed (rounded) percentage, sorted
descending; the first one at or below the percentage wins, and a percentage
below every threshold is red.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from urllib.parse import quote

from testreports.config.models import BadgeThreshold, RenderSpec
from testreports.core.formatting import format_percent
from testreports.model.coverage import Counter
from testreports.model.results import Outcome

SHIELDS_URL = "https://img.shields.io/badge/"

BELOW_THRESHOLD_COLOR = "red"

STATUS_COLORS: dict[Outcome, str] = {
    Outcome.PASSED: "green",
    Outcome.FAILED: "red",
    Outcome.ERRORED: "red",
    Outcome.SKIPPED: "lightgrey",
}


# HTML entities render in any Markdown flavor without emoji support
STATUS_ICONS: dict[Outcome, str] = {
    Outcome.PASSED: "&#9989;",
    Outcome.FAILED: "&#10060;",
    Outcome.ERRORED: "&#9888;",
    Outcome.SKIPPED: "&#9898;",
}


def threshold_color(percentage: Decimal, thresholds: Sequence[BadgeThreshold]) -> str:
    """Color of the first threshold (descending) whose minimum is <= ``percentage``, else red."""
    ordered = sorted(thresholds, key=lambda t: t.minimum, reverse=True)
    for threshold in ordered:
        if percentage >= Decimal(str(threshold.minimum)):
            return threshold.color
    return BELOW_THRESHOLD_COLOR


def _label(text: str) -> str:
    # shields.io treats '-' and '_' as separators and needs '%' escaped
    return quote(text.replace("-", "--").replace("_", "__"), safe="")


def badge(text: str, color: str, style: str) -> str:
    """Markdown image for a single-segment badge, or plain ``text`` for style 'none'."""
    if style == "none":
        return text
    return f"![{text}]({SHIELDS_URL}{_label(text)}-{quote(color, safe='')}?style={style})"


def coverage_badge(counter: Counter | None, spec: RenderSpec) -> str:
    """Coverage percentage badge; 'n/a' when there is no coverage."""
    if counter is None:
        return "n/a"
    pct = counter.percent(spec.precision)
    return badge(format_percent(pct), threshold_color(pct, spec.badge_thresholds), spec.badge_style)


def status_badge(outcome: Outcome, style: str) -> str:
    """Pass/fail badge of a suite, run or case."""
    return badge(outcome.value, STATUS_COLORS[outcome], style)
