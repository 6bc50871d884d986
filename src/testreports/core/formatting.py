"""Text formatting utilities shared by the renderers.

Design principles:
- Output depends only on the inputs (no locale, no float rounding drift)
- Names compressed for narrow Markdown tables
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

_DURATION_UNITS: tuple[tuple[int, str], ...] = (
    (3_600_000, "h"),
    (60_000, "m"),
    (1_000, "s"),
    (1, "ms"),
)


def format_duration(millis: int) -> str:
    """Format a millisecond duration in its nearest unit.

    Examples:
        250 -> 250ms
        1500 -> 1.5s
        90000 -> 1.5m
        3600000 -> 1h
    """
    if millis <= 0:
        return "0ms"

    for size, suffix in _DURATION_UNITS:
        if millis >= size:
            value = (Decimal(millis) / Decimal(size)).quantize(
                Decimal("0.001"), rounding=ROUND_HALF_UP
            )
            text = format(value.normalize(), "f")
            return f"{text}{suffix}"
    return f"{millis}ms"


def percent(covered: int, total: int, precision: int = 0) -> Decimal:
    """Covered/total as a percentage rounded half-up to ``precision`` places.

    A zero total counts as fully covered.
    """
    quantum = Decimal(1).scaleb(-precision)
    if total <= 0:
        return Decimal(100).quantize(quantum)
    exact = Decimal(covered) * Decimal(100) / Decimal(total)
    return exact.quantize(quantum, rounding=ROUND_HALF_UP)


def format_percent(value: Decimal) -> str:
    """Render a quantized percentage with a trailing '%'."""
    return f"{format(value, 'f')}%"


def abbreviate_package(name: str) -> str:
    """Compress all but the last segment of a dotted name to its first letter.

    Examples:
        com.acme.service -> c.a.service
        service -> service
    """
    parts = [p for p in name.split(".") if p]
    if len(parts) <= 1:
        return name
    return ".".join([p[0] for p in parts[:-1]] + [parts[-1]])


def strip_prefix(name: str, prefix: str) -> str:
    """Drop a dotted ``prefix`` from ``name`` when it is a proper prefix."""
    if prefix and name.startswith(prefix + "."):
        return name[len(prefix) + 1 :]
    return name


def escape_cell(value: object) -> str:
    """Escape a value for a single Markdown table cell."""
    text = "" if value is None else str(value)
    return text.replace("\\", "\\\\").replace("|", "\\|").replace("\r", "").replace("\n", "<br>")
