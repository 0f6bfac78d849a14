"""Methodologies that derive valuation-method records from entity financials."""

from bizval.methodologies.base import MethodologyContext, ValuationMethodology
from bizval.methodologies.dcf import DiscountedCashFlowMethodology
from bizval.methodologies.multiples import EbitdaMultipleMethodology, RevenueMultipleMethodology

DEFAULT_METHODOLOGIES: tuple[ValuationMethodology, ...] = (
    DiscountedCashFlowMethodology(),
    RevenueMultipleMethodology(),
    EbitdaMultipleMethodology(),
)

__all__ = [
    "DEFAULT_METHODOLOGIES",
    "DiscountedCashFlowMethodology",
    "EbitdaMultipleMethodology",
    "MethodologyContext",
    "RevenueMultipleMethodology",
    "ValuationMethodology",
]
