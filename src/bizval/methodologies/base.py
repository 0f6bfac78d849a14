"""Methodology abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal

from bizval.models import (
    DEFAULT_ASSUMED_EBITDA_MARGIN,
    DEFAULT_PEER_STATISTIC,
    BusinessEntity,
    ComparableCompany,
    DCFAssumptions,
    ValuationMethod,
)


@dataclass(frozen=True)
class MethodologyContext:
    """Inputs shared by every methodology in one valuation run."""

    as_of_date: date
    comparables: tuple[ComparableCompany, ...] = ()
    assumptions: DCFAssumptions | None = None
    assumed_ebitda_margin: Decimal = DEFAULT_ASSUMED_EBITDA_MARGIN
    statistic: str = DEFAULT_PEER_STATISTIC

    @property
    def calculated_at(self) -> datetime:
        # Pinned to the as-of date so repeated runs stay byte-identical.
        return datetime.combine(self.as_of_date, time(0, 0), tzinfo=timezone.utc)


class ValuationMethodology(ABC):
    """Base class for methodologies that produce a ``ValuationMethod`` record.

    Subclasses MUST set ``name``, ``description``, ``default_confidence`` and
    ``default_applicability`` as class attributes and implement ``estimate``.
    """

    name: str
    description: str
    default_confidence: Decimal
    default_applicability: Decimal

    @property
    def method_id(self) -> str:
        return self.name.lower().replace(" ", "_")

    def can_valuate(self, context: MethodologyContext) -> bool:
        """Whether the context carries the inputs this methodology needs."""
        return True

    @abstractmethod
    def estimate(self, entity: BusinessEntity, context: MethodologyContext) -> Decimal:
        """Return the methodology's monetary estimate for the entity."""

    def valuate(self, entity: BusinessEntity, context: MethodologyContext) -> ValuationMethod:
        return ValuationMethod(
            method_id=self.method_id,
            name=self.name,
            description=self.description,
            result=self.estimate(entity, context).quantize(Decimal("0.01")),
            confidence=self.default_confidence,
            applicability=self.default_applicability,
            last_calculated=context.calculated_at,
        )
