"""Peer-multiple cross-check of the reconciled valuation."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from statistics import mean, median
from typing import Any

from bizval.exceptions import InvalidEntityFinancials, ValidationError
from bizval.models import (
    DEFAULT_ASSUMED_EBITDA_MARGIN,
    DEFAULT_PEER_STATISTIC,
    BusinessEntity,
    ComparableCompany,
)

_ZERO = Decimal("0")
_ONE = Decimal("1")


def _as_float(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


def peer_statistic(values: Sequence[Decimal], statistic: str = DEFAULT_PEER_STATISTIC) -> Decimal:
    if not values:
        raise ValidationError("Cannot summarize an empty peer set.")
    if statistic == "mean":
        return Decimal(mean(values))
    if statistic == "median":
        return Decimal(median(values))
    raise ValidationError(f"Unsupported statistic '{statistic}'.")


@dataclass(frozen=True)
class PeerAverages:
    revenue_multiple: Decimal
    ebitda_multiple: Decimal
    pe_ratio: Decimal | None
    ev_to_ebitda: Decimal | None
    peer_count: int

    @staticmethod
    def from_peers(
        comparables: Sequence[ComparableCompany], statistic: str = DEFAULT_PEER_STATISTIC
    ) -> PeerAverages:
        pe_ratios = [c.pe_ratio for c in comparables if c.pe_ratio is not None]
        ev_multiples = [c.ev_to_ebitda for c in comparables if c.ev_to_ebitda is not None]
        return PeerAverages(
            revenue_multiple=peer_statistic([c.revenue_multiple for c in comparables], statistic),
            ebitda_multiple=peer_statistic([c.ebitda_multiple for c in comparables], statistic),
            pe_ratio=peer_statistic(pe_ratios, statistic) if pe_ratios else None,
            ev_to_ebitda=peer_statistic(ev_multiples, statistic) if ev_multiples else None,
            peer_count=len(comparables),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "revenue_multiple": float(self.revenue_multiple),
            "ebitda_multiple": float(self.ebitda_multiple),
            "pe_ratio": _as_float(self.pe_ratio),
            "ev_to_ebitda": _as_float(self.ev_to_ebitda),
            "peer_count": self.peer_count,
        }


@dataclass(frozen=True)
class ComparableAnalysis:
    """Entity multiples implied by the reconciled value, set against its peers.

    When no peers were supplied ``applicable`` is False and every
    peer-derived field is None.
    """

    applicable: bool
    statistic: str
    assumed_ebitda_margin: Decimal
    implied_revenue_multiple: Decimal
    implied_ebitda_multiple: Decimal
    implied_pe_ratio: Decimal | None
    peer_averages: PeerAverages | None = None
    revenue_premium_pct: Decimal | None = None
    ebitda_premium_pct: Decimal | None = None
    revenue_implied_value: Decimal | None = None
    ebitda_implied_value: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "applicable": self.applicable,
            "statistic": self.statistic,
            "assumed_ebitda_margin": float(self.assumed_ebitda_margin),
            "implied_revenue_multiple": float(self.implied_revenue_multiple),
            "implied_ebitda_multiple": float(self.implied_ebitda_multiple),
            "implied_pe_ratio": _as_float(self.implied_pe_ratio),
            "peer_averages": self.peer_averages.to_dict() if self.peer_averages else None,
            "revenue_premium_pct": _as_float(self.revenue_premium_pct),
            "ebitda_premium_pct": _as_float(self.ebitda_premium_pct),
            "revenue_implied_value": _as_float(self.revenue_implied_value),
            "ebitda_implied_value": _as_float(self.ebitda_implied_value),
        }


class ComparableAnalyzer:
    def __init__(
        self,
        assumed_ebitda_margin: Decimal = DEFAULT_ASSUMED_EBITDA_MARGIN,
        statistic: str = DEFAULT_PEER_STATISTIC,
    ) -> None:
        if assumed_ebitda_margin <= _ZERO:
            raise InvalidEntityFinancials("Assumed EBITDA margin must be positive.")
        if statistic not in {"mean", "median"}:
            raise ValidationError("Field 'statistic' must be either 'median' or 'mean'.")
        self.assumed_ebitda_margin = assumed_ebitda_margin
        self.statistic = statistic

    def analyze(
        self,
        entity: BusinessEntity,
        reconciled_value: Decimal,
        comparables: Iterable[ComparableCompany],
    ) -> ComparableAnalysis:
        if entity.revenue <= _ZERO:
            raise InvalidEntityFinancials(
                f"Entity '{entity.entity_id}' has non-positive revenue; multiples are undefined."
            )
        if reconciled_value < _ZERO:
            raise ValidationError("Reconciled valuation must be non-negative.")

        estimated_ebitda = entity.revenue * self.assumed_ebitda_margin
        implied_revenue_multiple = reconciled_value / entity.revenue
        implied_ebitda_multiple = reconciled_value / estimated_ebitda
        net_income = entity.revenue * entity.profit_margin
        implied_pe = reconciled_value / net_income if net_income > _ZERO else None

        peers = tuple(comparables)
        if not peers:
            return ComparableAnalysis(
                applicable=False,
                statistic=self.statistic,
                assumed_ebitda_margin=self.assumed_ebitda_margin,
                implied_revenue_multiple=implied_revenue_multiple,
                implied_ebitda_multiple=implied_ebitda_multiple,
                implied_pe_ratio=implied_pe,
            )

        averages = PeerAverages.from_peers(peers, self.statistic)
        return ComparableAnalysis(
            applicable=True,
            statistic=self.statistic,
            assumed_ebitda_margin=self.assumed_ebitda_margin,
            implied_revenue_multiple=implied_revenue_multiple,
            implied_ebitda_multiple=implied_ebitda_multiple,
            implied_pe_ratio=implied_pe,
            peer_averages=averages,
            revenue_premium_pct=_premium(implied_revenue_multiple, averages.revenue_multiple),
            ebitda_premium_pct=_premium(implied_ebitda_multiple, averages.ebitda_multiple),
            revenue_implied_value=entity.revenue * averages.revenue_multiple,
            ebitda_implied_value=estimated_ebitda * averages.ebitda_multiple,
        )


def _premium(implied: Decimal, peer_average: Decimal) -> Decimal | None:
    # A zero peer multiple has no meaningful premium; report it as not applicable.
    if peer_average == _ZERO:
        return None
    return implied / peer_average - _ONE


def compare_to_comparables(
    entity: BusinessEntity,
    reconciled_value: Decimal,
    comparables: Iterable[ComparableCompany],
    assumed_ebitda_margin: Decimal = DEFAULT_ASSUMED_EBITDA_MARGIN,
    statistic: str = DEFAULT_PEER_STATISTIC,
) -> ComparableAnalysis:
    analyzer = ComparableAnalyzer(assumed_ebitda_margin=assumed_ebitda_margin, statistic=statistic)
    return analyzer.analyze(entity, reconciled_value, comparables)
