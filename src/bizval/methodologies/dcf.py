"""Discounted-cash-flow valuation method."""

from __future__ import annotations

from decimal import Decimal

from bizval.dcf import project_dcf
from bizval.exceptions import ValidationError
from bizval.models import BusinessEntity

from .base import MethodologyContext, ValuationMethodology


class DiscountedCashFlowMethodology(ValuationMethodology):
    name = "Discounted Cash Flow"
    description = (
        "Present value of projected free cash flows plus a perpetuity-growth terminal value"
    )
    default_confidence = Decimal("0.85")
    default_applicability = Decimal("0.9")

    def can_valuate(self, context: MethodologyContext) -> bool:
        return context.assumptions is not None

    def estimate(self, entity: BusinessEntity, context: MethodologyContext) -> Decimal:
        if context.assumptions is None:
            raise ValidationError("The DCF methodology requires DCF assumptions.")
        return project_dcf(entity, context.assumptions, as_of=context.as_of_date).equity_value
