"""Discounted-cash-flow projection with a perpetuity-growth terminal value.

Revenue compounds from the entity's trailing figure with a growth rate that
decays linearly each year but never drops below the terminal growth rate
inside the explicit horizon. Cash flows are discounted at the WACC and a
Gordon-growth terminal value is added at the end of the horizon.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from bizval.exceptions import InvalidDiscountAssumptions, InvalidEntityFinancials, ValidationError
from bizval.models import BusinessEntity, DCFAssumptions, FinancialProjection, MonetaryAmount
from bizval.validation import check_ratio

logger = logging.getLogger("bizval.dcf")

_ZERO = Decimal("0")
_ONE = Decimal("1")


@dataclass(frozen=True)
class DCFResult:
    projections: tuple[FinancialProjection, ...]
    sum_of_present_values: Decimal
    terminal_value: Decimal
    discounted_terminal_value: Decimal
    enterprise_value: Decimal
    equity_value: Decimal
    assumptions: DCFAssumptions

    def to_dict(self) -> dict[str, Any]:
        cents = Decimal("0.01")
        return {
            "projections": [p.to_dict() for p in self.projections],
            "sum_of_present_values": float(self.sum_of_present_values),
            "terminal_value": float(self.terminal_value),
            "discounted_terminal_value": float(self.discounted_terminal_value),
            "enterprise_value": MonetaryAmount(self.enterprise_value.quantize(cents)).to_dict(),
            "equity_value": MonetaryAmount(self.equity_value.quantize(cents)).to_dict(),
            "assumptions": self.assumptions.to_dict(),
        }


def validate_assumptions(assumptions: DCFAssumptions) -> None:
    if assumptions.discount_rate <= _ZERO:
        raise InvalidDiscountAssumptions(
            f"Discount rate must be positive, got {assumptions.discount_rate}."
        )
    if assumptions.discount_rate <= assumptions.terminal_growth:
        raise InvalidDiscountAssumptions(
            f"Discount rate {assumptions.discount_rate} must exceed terminal growth "
            f"{assumptions.terminal_growth}; the perpetuity value is undefined otherwise."
        )
    if assumptions.growth_decay < _ZERO:
        raise ValidationError("Field 'growth_decay' must be non-negative.")
    if assumptions.horizon_years < 1:
        raise ValidationError("Field 'horizon_years' must be at least 1.")
    check_ratio(assumptions.ebitda_margin, "ebitda_margin")
    check_ratio(assumptions.terminal_value_weight, "terminal_value_weight")
    if assumptions.cash_flow_margin is not None:
        check_ratio(assumptions.cash_flow_margin, "cash_flow_margin")


def growth_for_year(assumptions: DCFAssumptions, year_index: int) -> Decimal:
    """Growth applied in forecast year ``year_index`` (1-based), floored at terminal growth."""
    decayed = assumptions.starting_growth - (year_index - 1) * assumptions.growth_decay
    return max(decayed, assumptions.terminal_growth)


class DCFProjector:
    def project(
        self,
        entity: BusinessEntity,
        assumptions: DCFAssumptions,
        as_of: date | None = None,
    ) -> DCFResult:
        validate_assumptions(assumptions)
        if entity.revenue <= _ZERO:
            raise InvalidEntityFinancials(
                f"Entity '{entity.entity_id}' has non-positive revenue; nothing to project."
            )
        cash_flow_margin = (
            assumptions.cash_flow_margin
            if assumptions.cash_flow_margin is not None
            else entity.profit_margin
        )
        if cash_flow_margin <= _ZERO:
            raise InvalidEntityFinancials(
                f"Entity '{entity.entity_id}' projects no positive cash flow to discount."
            )

        base_year = assumptions.base_year
        if base_year is None:
            base_year = (as_of or date.today()).year

        wacc = assumptions.discount_rate
        projections: list[FinancialProjection] = []
        revenue = entity.revenue
        for n in range(1, assumptions.horizon_years + 1):
            growth = growth_for_year(assumptions, n)
            revenue = revenue * (_ONE + growth)
            ebitda = revenue * assumptions.ebitda_margin
            net_income = revenue * entity.profit_margin
            cash_flow = revenue * cash_flow_margin
            discount_factor = _ONE / (_ONE + wacc) ** n
            projections.append(
                FinancialProjection(
                    year=base_year + n,
                    revenue=revenue,
                    expenses=revenue - ebitda,
                    ebitda=ebitda,
                    net_income=net_income,
                    cash_flow=cash_flow,
                    growth_rate=growth,
                    discount_factor=discount_factor,
                    present_value=cash_flow * discount_factor,
                )
            )

        final = projections[-1]
        g = assumptions.terminal_growth
        terminal_value = final.cash_flow * (_ONE + g) / (wacc - g)
        discounted_terminal = (
            terminal_value * final.discount_factor * assumptions.terminal_value_weight
        )
        sum_pv = sum((p.present_value for p in projections), _ZERO)
        enterprise_value = sum_pv + discounted_terminal
        equity_value = enterprise_value - assumptions.net_debt

        logger.debug(
            "dcf entity=%s wacc=%s terminal_growth=%s enterprise_value=%s",
            entity.entity_id,
            wacc,
            g,
            enterprise_value,
        )
        return DCFResult(
            projections=tuple(projections),
            sum_of_present_values=sum_pv,
            terminal_value=terminal_value,
            discounted_terminal_value=discounted_terminal,
            enterprise_value=enterprise_value,
            equity_value=equity_value,
            assumptions=assumptions,
        )


def project_dcf(
    entity: BusinessEntity, assumptions: DCFAssumptions, as_of: date | None = None
) -> DCFResult:
    return DCFProjector().project(entity, assumptions, as_of=as_of)
