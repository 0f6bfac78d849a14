"""Confidence- and applicability-weighted reconciliation of valuation methods."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Any

from bizval.exceptions import NoApplicableMethods
from bizval.models import MonetaryAmount, ValuationMethod

logger = logging.getLogger("bizval.aggregation")

HIGH_CONFIDENCE_THRESHOLD = Decimal("0.7")

# Wide enough that products of typical amounts and ratios stay exact.
AGGREGATION_PRECISION = 80

_ZERO = Decimal("0")


@dataclass(frozen=True)
class ReconciledValuation:
    value: Decimal
    method_count: int
    average_confidence: Decimal
    total_weight: Decimal
    method_weights: tuple[tuple[str, Decimal], ...]
    primary_method_id: str

    @property
    def confidence_level(self) -> str:
        return "high" if self.average_confidence >= HIGH_CONFIDENCE_THRESHOLD else "moderate"

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": MonetaryAmount(self.value.quantize(Decimal("0.01"))).to_dict(),
            "method_count": self.method_count,
            "average_confidence": float(self.average_confidence),
            "confidence_level": self.confidence_level,
            "total_weight": float(self.total_weight),
            "method_weights": {
                method_id: float(weight) for method_id, weight in self.method_weights
            },
            "primary_method_id": self.primary_method_id,
        }


class WeightedAggregator:
    """Reconciles method results into a single convex, weighted figure.

    Each method contributes ``result * confidence * applicability``; dividing
    by the summed weights keeps the output inside the range of the inputs.
    Low-trust or poorly suited methods are down-weighted, never dropped.
    """

    def aggregate(self, methods: Iterable[ValuationMethod]) -> ReconciledValuation:
        methods = tuple(methods)
        if not methods:
            raise NoApplicableMethods("No valuation methods were supplied.")

        with localcontext() as ctx:
            ctx.prec = AGGREGATION_PRECISION
            weights = tuple((m.method_id, m.weight) for m in methods)
            total_weight = sum((w for _, w in weights), _ZERO)
            if total_weight <= _ZERO:
                raise NoApplicableMethods(
                    "Every valuation method has zero confidence x applicability weight."
                )
            weighted_sum = sum((m.result * w for m, (_, w) in zip(methods, weights)), _ZERO)
            quotient = weighted_sum / total_weight
        average_confidence = sum((m.confidence for m in methods), _ZERO) / len(methods)

        # Back to the caller's precision, then pinned inside the range of the results.
        lowest = min(m.result for m in methods)
        highest = max(m.result for m in methods)
        value = min(max(+quotient, lowest), highest)
        # max() keeps the first method on ties, so input order breaks them.
        primary = max(methods, key=lambda m: m.confidence)

        logger.debug(
            "aggregate methods=%d total_weight=%s value=%s", len(methods), total_weight, value
        )
        return ReconciledValuation(
            value=value,
            method_count=len(methods),
            average_confidence=average_confidence,
            total_weight=total_weight,
            method_weights=weights,
            primary_method_id=primary.method_id,
        )


def aggregate(methods: Iterable[ValuationMethod]) -> ReconciledValuation:
    return WeightedAggregator().aggregate(methods)
