"""Input parsing and validation helpers."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from bizval.exceptions import ValidationError

NUMERIC_TYPES: tuple[type, ...] = (int, float, str, Decimal)

_ZERO = Decimal("0")
_ONE = Decimal("1")


def _type_names(expected_type: type | tuple[type, ...]) -> str:
    if isinstance(expected_type, tuple):
        return ", ".join(t.__name__ for t in expected_type)
    return expected_type.__name__


def require_field(payload: dict[str, Any], key: str, expected_type: type | tuple[type, ...]) -> Any:
    value = payload.get(key)
    if value is None:
        raise ValidationError(f"Missing required field: '{key}'.")
    # bool is an int subclass; True/False is never a valid amount or rate.
    if isinstance(value, bool) and bool not in (
        expected_type if isinstance(expected_type, tuple) else (expected_type,)
    ):
        raise ValidationError(f"Field '{key}' must be numeric, received bool.")
    if not isinstance(value, expected_type):
        raise ValidationError(
            f"Field '{key}' must be of type {_type_names(expected_type)}, "
            f"received {type(value).__name__}."
        )
    return value


def parse_date(value: str) -> date:
    if not isinstance(value, str):
        raise ValidationError(f"Date must be string in YYYY-MM-DD format, received {value!r}.")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid date '{value}'. Expected format: YYYY-MM-DD.") from exc


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(value, str):
        raise ValidationError(f"Timestamp must be an ISO-8601 string, received {value!r}.")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"Invalid timestamp '{value}'. Expected ISO-8601.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_decimal(value: Any, field_name: str, *, allow_negative: bool = False) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"Field '{field_name}' must be numeric, received bool.")
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValidationError(f"Field '{field_name}' must be numeric.") from exc
    if not parsed.is_finite():
        raise ValidationError(f"Field '{field_name}' must be a finite number.")
    if not allow_negative and parsed < _ZERO:
        raise ValidationError(f"Field '{field_name}' must be non-negative.")
    return parsed


def parse_ratio(value: Any, field_name: str) -> Decimal:
    """Parse a value that must lie in the closed interval [0, 1]."""
    parsed = parse_decimal(value, field_name)
    if parsed > _ONE:
        raise ValidationError(f"Field '{field_name}' must be between 0 and 1.")
    return parsed


def optional_decimal(
    payload: dict[str, Any], key: str, *, allow_negative: bool = False
) -> Decimal | None:
    value = payload.get(key)
    if value is None:
        return None
    return parse_decimal(value, key, allow_negative=allow_negative)


def parse_rate_range(values: Any, field_name: str) -> tuple[Decimal, ...]:
    """Parse a non-empty, ascending list of rates (negative rates allowed)."""
    if not isinstance(values, Sequence) or isinstance(values, str) or not values:
        raise ValidationError(f"Field '{field_name}' must be a non-empty list of rates.")
    rates = tuple(
        parse_decimal(v, f"{field_name}[{i}]", allow_negative=True) for i, v in enumerate(values)
    )
    require_ascending(rates, field_name)
    return rates


def require_ascending(rates: Sequence[Decimal], field_name: str) -> None:
    if not rates:
        raise ValidationError(f"Field '{field_name}' must not be empty.")
    for previous, current in zip(rates, rates[1:]):
        if current < previous:
            raise ValidationError(f"Field '{field_name}' must be sorted ascending.")


def check_ratio(value: Decimal, field_name: str) -> Decimal:
    """Bounds check for already-typed ratios on directly constructed records."""
    if value < _ZERO or value > _ONE:
        raise ValidationError(f"Field '{field_name}' must be between 0 and 1, got {value}.")
    return value
