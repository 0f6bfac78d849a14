"""Domain-specific exceptions for valuation workflows."""


class ValuationError(Exception):
    """Base class for every typed failure the engine reports."""


class ValidationError(ValuationError, ValueError):
    """Raised when valuation input data is incomplete or invalid."""


class DegenerateMetric(ValuationError):
    """Raised when a metric ratio would divide by a zero benchmark or observation."""


class NoApplicableMethods(ValuationError):
    """Raised when no valuation method carries any confidence-weighted influence."""


class InvalidEntityFinancials(ValuationError):
    """Raised when entity financials cannot anchor a multiple or a projection."""


class InvalidDiscountAssumptions(ValuationError):
    """Raised when the discount rate does not exceed the terminal growth rate."""


class DivisionByZero(ValuationError, ZeroDivisionError):
    """Raised when a percent change is taken against a zero baseline."""


class InsufficientData(ValuationError):
    """Raised when a trend needs more history entries than are recorded."""
