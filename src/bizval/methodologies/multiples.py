"""Peer-multiple valuation methods."""

from __future__ import annotations

from decimal import Decimal

from bizval.comparables import PeerAverages
from bizval.exceptions import InvalidEntityFinancials
from bizval.models import BusinessEntity

from .base import MethodologyContext, ValuationMethodology


class _PeerMultipleMethodology(ValuationMethodology):
    def can_valuate(self, context: MethodologyContext) -> bool:
        return bool(context.comparables)


def _peer_averages(entity: BusinessEntity, context: MethodologyContext) -> PeerAverages:
    if not context.comparables:
        raise InvalidEntityFinancials(
            f"No comparable companies supplied for entity '{entity.entity_id}'."
        )
    if entity.revenue <= Decimal("0"):
        raise InvalidEntityFinancials(
            f"Entity '{entity.entity_id}' has non-positive revenue; multiples are undefined."
        )
    return PeerAverages.from_peers(context.comparables, context.statistic)


class RevenueMultipleMethodology(_PeerMultipleMethodology):
    name = "Revenue Multiple"
    description = "Trailing revenue times the peer-average revenue multiple"
    default_confidence = Decimal("0.65")
    default_applicability = Decimal("0.7")

    def estimate(self, entity: BusinessEntity, context: MethodologyContext) -> Decimal:
        averages = _peer_averages(entity, context)
        return entity.revenue * averages.revenue_multiple


class EbitdaMultipleMethodology(_PeerMultipleMethodology):
    name = "EBITDA Multiple"
    description = "Estimated EBITDA times the peer-average EBITDA multiple"
    default_confidence = Decimal("0.7")
    default_applicability = Decimal("0.8")

    def estimate(self, entity: BusinessEntity, context: MethodologyContext) -> Decimal:
        averages = _peer_averages(entity, context)
        return entity.revenue * context.assumed_ebitda_margin * averages.ebitda_multiple
