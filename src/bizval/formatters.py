"""Presentation helpers for monetary amounts, ratios and multiples."""

from __future__ import annotations

from decimal import Decimal

Number = Decimal | float | int

_SCALES: tuple[tuple[int, str], ...] = (
    (1_000_000_000, "B"),
    (1_000_000, "M"),
    (1_000, "K"),
)

PERCENTAGE_MARKERS = ("Rate", "Margin", "ROA", "Cash Flow")
CURRENCY_MARKERS = ("Cost", "Value")


def format_currency(value: Number | None) -> str:
    """Scale to billions/millions/thousands with one decimal, e.g. ``$4.8M``."""
    if value is None:
        return "N/A"
    amount = float(value)
    sign = "-" if amount < 0 else ""
    magnitude = abs(amount)
    for threshold, suffix in _SCALES:
        if magnitude >= threshold:
            return f"{sign}${magnitude / threshold:.1f}{suffix}"
    return f"{sign}${magnitude:.2f}"


def format_percentage(value: Number | None) -> str:
    if value is None:
        return "N/A"
    return f"{float(value) * 100:.1f}%"


def format_multiple(value: Number | None) -> str:
    if value is None:
        return "N/A"
    return f"{float(value):.1f}x"


def metric_display_kind(name: str) -> str:
    """Classify a metric by name as ``percentage``, ``currency`` or ``number``."""
    if any(marker in name for marker in PERCENTAGE_MARKERS):
        return "percentage"
    if any(marker in name for marker in CURRENCY_MARKERS):
        return "currency"
    return "number"


def format_metric_value(name: str, value: Number | None) -> str:
    kind = metric_display_kind(name)
    if kind == "percentage":
        return format_percentage(value)
    if kind == "currency":
        return format_currency(value)
    if value is None:
        return "N/A"
    return f"{float(value):g}"
