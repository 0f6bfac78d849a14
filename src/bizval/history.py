"""Append-only log of reconciled valuations, per entity.

Keeps an in-memory trail of past reconciled figures so the presentation layer
can show how the valuation moved between runs. Appends are serialized behind
one lock; readers take an immutable snapshot under the same lock so a read
never observes a half-finished append.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from bizval.exceptions import DivisionByZero, InsufficientData, ValidationError
from bizval.models import ValuationHistory

logger = logging.getLogger("bizval.history")

SIGNIFICANT_CHANGE_THRESHOLD = Decimal("0.05")

_ZERO = Decimal("0")


class TrendLabel(str, Enum):
    SIGNIFICANT_IMPROVEMENT = "significant_improvement"
    SLIGHT_IMPROVEMENT = "slight_improvement"
    STABLE = "stable"
    SLIGHT_DECLINE = "slight_decline"
    SIGNIFICANT_DECLINE = "significant_decline"


def classify_change(change: Decimal) -> TrendLabel:
    if change == _ZERO:
        return TrendLabel.STABLE
    significant = abs(change) > SIGNIFICANT_CHANGE_THRESHOLD
    if change > _ZERO:
        return (
            TrendLabel.SIGNIFICANT_IMPROVEMENT if significant else TrendLabel.SLIGHT_IMPROVEMENT
        )
    return TrendLabel.SIGNIFICANT_DECLINE if significant else TrendLabel.SLIGHT_DECLINE


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class HistoryTracker:
    """Thread-safe registry of per-entity valuation logs."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        # Chronological (oldest first); reads reverse it.
        self._logs: dict[str, tuple[ValuationHistory, ...]] = {}

    # ── public API ──

    def record(
        self,
        entity_id: str,
        value: Decimal,
        method: str,
        analyst: str,
        notes: str | None = None,
        recorded_at: datetime | None = None,
    ) -> ValuationHistory:
        """Append a reconciled valuation and return the stored entry."""
        if value < _ZERO:
            raise ValidationError("Recorded valuation must be non-negative.")
        if recorded_at is not None and recorded_at.tzinfo is None:
            raise ValidationError("Recorded timestamps must be timezone-aware.")
        with self._lock:
            log = self._logs.get(entity_id, ())
            timestamp = recorded_at or self._clock()
            if log and timestamp < log[-1].recorded_at:
                raise ValidationError(
                    f"Entry at {timestamp.isoformat()} predates the latest recorded valuation "
                    f"for entity '{entity_id}'."
                )
            entry = ValuationHistory(
                entry_id=str(uuid4()),
                recorded_at=timestamp,
                value=value,
                method=method,
                analyst=analyst,
                notes=notes,
            )
            self._logs[entity_id] = (*log, entry)
        logger.info(
            "valuation_recorded entity=%s value=%s method=%s analyst=%s",
            entity_id,
            value,
            method,
            analyst,
        )
        return entry

    def load(self, entity_id: str, entries: Iterable[ValuationHistory]) -> None:
        """Seed an empty log from collaborator-supplied history in any order."""
        ordered = tuple(sorted(entries, key=lambda e: e.recorded_at))
        with self._lock:
            if self._logs.get(entity_id):
                raise ValidationError(f"History for entity '{entity_id}' is already populated.")
            self._logs[entity_id] = ordered
        logger.info("history_loaded entity=%s entries=%d", entity_id, len(ordered))

    def entries(self, entity_id: str) -> list[ValuationHistory]:
        """All entries for the entity, most recent first."""
        return list(reversed(self._snapshot(entity_id)))

    def latest(self, entity_id: str) -> ValuationHistory | None:
        log = self._snapshot(entity_id)
        return log[-1] if log else None

    def percent_change(self, entity_id: str) -> Decimal:
        latest, previous = self._last_two(entity_id)
        if previous.value == _ZERO:
            raise DivisionByZero(
                f"Previous valuation for entity '{entity_id}' is zero; percent change is undefined."
            )
        return (latest.value - previous.value) / previous.value

    def trend(self, entity_id: str) -> TrendLabel:
        return classify_change(self.percent_change(entity_id))

    # ── private ──

    def _snapshot(self, entity_id: str) -> tuple[ValuationHistory, ...]:
        with self._lock:
            return self._logs.get(entity_id, ())

    def _last_two(self, entity_id: str) -> tuple[ValuationHistory, ValuationHistory]:
        log = self._snapshot(entity_id)
        if len(log) < 2:
            raise InsufficientData(
                f"Entity '{entity_id}' has {len(log)} recorded valuation(s); a trend needs 2."
            )
        return log[-1], log[-2]
