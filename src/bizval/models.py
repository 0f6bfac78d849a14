"""Typed value records exchanged with the engine's collaborators."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from bizval.exceptions import InvalidEntityFinancials, ValidationError
from bizval.validation import (
    NUMERIC_TYPES,
    check_ratio,
    optional_decimal,
    parse_date,
    parse_datetime,
    parse_decimal,
    parse_rate_range,
    parse_ratio,
    require_field,
)

DEFAULT_HORIZON_YEARS = 5
DEFAULT_TERMINAL_VALUE_WEIGHT = Decimal("1")
DEFAULT_ASSUMED_EBITDA_MARGIN = Decimal("0.22")
DEFAULT_PEER_STATISTIC = "mean"

_ONE = Decimal("1")


def _identifier(payload: dict[str, Any], key: str) -> str:
    return str(require_field(payload, key, (str, int)))


def _optional_float(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


def _records(payload: dict[str, Any], key: str, *, required: bool = False) -> list[dict[str, Any]]:
    raw = require_field(payload, key, list) if required else payload.get(key) or []
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise ValidationError(f"Field '{key}' must be a list of objects.")
    return raw


@dataclass(frozen=True)
class MonetaryAmount:
    amount: Decimal
    currency: str = "USD"

    def to_dict(self) -> dict[str, Any]:
        return {"amount": float(self.amount), "currency": self.currency}


@dataclass(frozen=True)
class BusinessEntity:
    """Snapshot of the business being valued for a single valuation run."""

    entity_id: str
    name: str
    industry: str
    founded: date
    employees: int
    revenue: Decimal
    profit_margin: Decimal
    growth_rate: Decimal
    location: str = ""

    def __post_init__(self) -> None:
        check_ratio(self.profit_margin, "profit_margin")

    @property
    def previous_year_revenue(self) -> Decimal:
        """Trailing revenue backed out by one year of growth."""
        if self.growth_rate <= -_ONE:
            raise InvalidEntityFinancials("Growth rate of -100% or worse has no prior-year revenue.")
        return self.revenue / (_ONE + self.growth_rate)

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> BusinessEntity:
        employees = require_field(payload, "employees", int)
        if employees < 0:
            raise ValidationError("Field 'employees' must be non-negative.")
        return BusinessEntity(
            entity_id=_identifier(payload, "entity_id"),
            name=require_field(payload, "name", str),
            industry=require_field(payload, "industry", str),
            founded=parse_date(require_field(payload, "founded", str)),
            employees=employees,
            revenue=parse_decimal(require_field(payload, "revenue", NUMERIC_TYPES), "revenue"),
            profit_margin=parse_ratio(
                require_field(payload, "profit_margin", NUMERIC_TYPES), "profit_margin"
            ),
            # Growth may exceed 100% and may be negative for a shrinking business.
            growth_rate=parse_decimal(
                require_field(payload, "growth_rate", NUMERIC_TYPES),
                "growth_rate",
                allow_negative=True,
            ),
            location=payload.get("location", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "name": self.name,
            "industry": self.industry,
            "founded": self.founded.isoformat(),
            "employees": self.employees,
            "revenue": float(self.revenue),
            "profit_margin": float(self.profit_margin),
            "growth_rate": float(self.growth_rate),
            "location": self.location,
        }


class MetricPolarity(str, Enum):
    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"


@dataclass(frozen=True)
class ValuationMetric:
    name: str
    value: Decimal
    benchmark: Decimal
    weight: Decimal = Decimal("0")
    trend: str = "stable"
    description: str = ""
    polarity: MetricPolarity | None = None

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> ValuationMetric:
        trend = payload.get("trend", "stable")
        if trend not in {"up", "down", "stable"}:
            raise ValidationError("Field 'trend' must be one of 'up', 'down', 'stable'.")
        polarity_raw = payload.get("polarity")
        try:
            polarity = MetricPolarity(polarity_raw) if polarity_raw is not None else None
        except ValueError as exc:
            raise ValidationError(f"Unknown metric polarity '{polarity_raw}'.") from exc
        return ValuationMetric(
            name=require_field(payload, "name", str),
            value=parse_decimal(
                require_field(payload, "value", NUMERIC_TYPES), "value", allow_negative=True
            ),
            benchmark=parse_decimal(
                require_field(payload, "benchmark", NUMERIC_TYPES), "benchmark", allow_negative=True
            ),
            weight=parse_ratio(payload.get("weight", 0), "weight"),
            trend=trend,
            description=payload.get("description", "") or "",
            polarity=polarity,
        )


@dataclass(frozen=True)
class ValuationMethod:
    """One independent estimate of the entity's value and how far to trust it."""

    method_id: str
    name: str
    result: Decimal
    confidence: Decimal
    applicability: Decimal
    description: str = ""
    last_calculated: datetime | None = None

    def __post_init__(self) -> None:
        check_ratio(self.confidence, "confidence")
        check_ratio(self.applicability, "applicability")

    @property
    def weight(self) -> Decimal:
        return self.confidence * self.applicability

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> ValuationMethod:
        last_raw = payload.get("last_calculated")
        return ValuationMethod(
            method_id=_identifier(payload, "method_id"),
            name=require_field(payload, "name", str),
            result=parse_decimal(require_field(payload, "result", NUMERIC_TYPES), "result"),
            confidence=parse_ratio(
                require_field(payload, "confidence", NUMERIC_TYPES), "confidence"
            ),
            applicability=parse_ratio(
                require_field(payload, "applicability", NUMERIC_TYPES), "applicability"
            ),
            description=payload.get("description", "") or "",
            last_calculated=parse_datetime(last_raw) if last_raw is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "method_id": self.method_id,
            "name": self.name,
            "description": self.description,
            "result": float(self.result),
            "confidence": float(self.confidence),
            "applicability": float(self.applicability),
            "weight": float(self.weight),
            "last_calculated": (
                self.last_calculated.isoformat() if self.last_calculated else None
            ),
        }


@dataclass(frozen=True)
class MethodWeightEdit:
    """Pending change to one method's confidence and/or applicability."""

    method_id: str
    confidence: Decimal | None = None
    applicability: Decimal | None = None

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> MethodWeightEdit:
        confidence = payload.get("confidence")
        applicability = payload.get("applicability")
        if confidence is None and applicability is None:
            raise ValidationError("A weight edit must change confidence or applicability.")
        return MethodWeightEdit(
            method_id=_identifier(payload, "method_id"),
            confidence=parse_ratio(confidence, "confidence") if confidence is not None else None,
            applicability=(
                parse_ratio(applicability, "applicability") if applicability is not None else None
            ),
        )


@dataclass(frozen=True)
class ComparableCompany:
    company_id: str
    name: str
    revenue: Decimal
    revenue_multiple: Decimal
    ebitda_multiple: Decimal
    net_income: Decimal
    pe_ratio: Decimal | None = None
    ev_to_ebitda: Decimal | None = None
    market_cap: Decimal | None = None
    industry: str = ""

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> ComparableCompany:
        return ComparableCompany(
            company_id=_identifier(payload, "company_id"),
            name=require_field(payload, "name", str),
            revenue=parse_decimal(require_field(payload, "revenue", NUMERIC_TYPES), "revenue"),
            revenue_multiple=parse_decimal(
                require_field(payload, "revenue_multiple", NUMERIC_TYPES), "revenue_multiple"
            ),
            ebitda_multiple=parse_decimal(
                require_field(payload, "ebitda_multiple", NUMERIC_TYPES), "ebitda_multiple"
            ),
            net_income=parse_decimal(
                require_field(payload, "net_income", NUMERIC_TYPES),
                "net_income",
                allow_negative=True,
            ),
            pe_ratio=optional_decimal(payload, "pe_ratio"),
            ev_to_ebitda=optional_decimal(payload, "ev_to_ebitda"),
            market_cap=optional_decimal(payload, "market_cap"),
            industry=payload.get("industry", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "company_id": self.company_id,
            "name": self.name,
            "revenue": float(self.revenue),
            "revenue_multiple": float(self.revenue_multiple),
            "ebitda_multiple": float(self.ebitda_multiple),
            "net_income": float(self.net_income),
            "pe_ratio": _optional_float(self.pe_ratio),
            "ev_to_ebitda": _optional_float(self.ev_to_ebitda),
        }


@dataclass(frozen=True)
class FinancialProjection:
    year: int
    revenue: Decimal
    expenses: Decimal
    ebitda: Decimal
    net_income: Decimal
    cash_flow: Decimal
    growth_rate: Decimal
    discount_factor: Decimal
    present_value: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "revenue": float(self.revenue),
            "expenses": float(self.expenses),
            "ebitda": float(self.ebitda),
            "net_income": float(self.net_income),
            "cash_flow": float(self.cash_flow),
            "growth_rate": float(self.growth_rate),
            "discount_factor": float(self.discount_factor),
            "present_value": float(self.present_value),
        }


@dataclass(frozen=True)
class ValuationHistory:
    entry_id: str
    recorded_at: datetime
    value: Decimal
    method: str
    analyst: str
    notes: str | None = None

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> ValuationHistory:
        return ValuationHistory(
            entry_id=_identifier(payload, "entry_id"),
            recorded_at=parse_datetime(require_field(payload, "recorded_at", str)),
            value=parse_decimal(require_field(payload, "value", NUMERIC_TYPES), "value"),
            method=require_field(payload, "method", str),
            analyst=require_field(payload, "analyst", str),
            notes=payload.get("notes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "recorded_at": self.recorded_at.isoformat(),
            "value": float(self.value),
            "method": self.method,
            "analyst": self.analyst,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class DCFAssumptions:
    """Inputs to the discounted-cash-flow projection.

    ``terminal_value_weight`` scales the discounted perpetuity value; values
    below 1 haircut the terminal contribution. ``cash_flow_margin``, when set,
    reconciles free cash flow to revenue directly instead of taking cash flow
    as net income.
    """

    starting_growth: Decimal
    growth_decay: Decimal
    discount_rate: Decimal
    terminal_growth: Decimal
    ebitda_margin: Decimal
    horizon_years: int = DEFAULT_HORIZON_YEARS
    terminal_value_weight: Decimal = DEFAULT_TERMINAL_VALUE_WEIGHT
    net_debt: Decimal = Decimal("0")
    cash_flow_margin: Decimal | None = None
    base_year: int | None = None

    def with_rates(self, discount_rate: Decimal, terminal_growth: Decimal) -> DCFAssumptions:
        return replace(self, discount_rate=discount_rate, terminal_growth=terminal_growth)

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> DCFAssumptions:
        horizon = payload.get("horizon_years", DEFAULT_HORIZON_YEARS)
        if isinstance(horizon, bool) or not isinstance(horizon, int) or horizon < 1:
            raise ValidationError("Field 'horizon_years' must be a positive integer.")
        base_year = payload.get("base_year")
        if base_year is not None and (isinstance(base_year, bool) or not isinstance(base_year, int)):
            raise ValidationError("Field 'base_year' must be an integer year.")
        cash_flow_margin = payload.get("cash_flow_margin")
        return DCFAssumptions(
            starting_growth=parse_decimal(
                require_field(payload, "starting_growth", NUMERIC_TYPES),
                "starting_growth",
                allow_negative=True,
            ),
            growth_decay=parse_decimal(
                require_field(payload, "growth_decay", NUMERIC_TYPES), "growth_decay"
            ),
            discount_rate=parse_decimal(
                require_field(payload, "discount_rate", NUMERIC_TYPES),
                "discount_rate",
                allow_negative=True,
            ),
            terminal_growth=parse_decimal(
                require_field(payload, "terminal_growth", NUMERIC_TYPES),
                "terminal_growth",
                allow_negative=True,
            ),
            ebitda_margin=parse_ratio(
                require_field(payload, "ebitda_margin", NUMERIC_TYPES), "ebitda_margin"
            ),
            horizon_years=horizon,
            terminal_value_weight=parse_ratio(
                payload.get("terminal_value_weight", DEFAULT_TERMINAL_VALUE_WEIGHT),
                "terminal_value_weight",
            ),
            net_debt=parse_decimal(payload.get("net_debt", 0), "net_debt", allow_negative=True),
            cash_flow_margin=(
                parse_ratio(cash_flow_margin, "cash_flow_margin")
                if cash_flow_margin is not None
                else None
            ),
            base_year=base_year,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "starting_growth": float(self.starting_growth),
            "growth_decay": float(self.growth_decay),
            "discount_rate": float(self.discount_rate),
            "terminal_growth": float(self.terminal_growth),
            "ebitda_margin": float(self.ebitda_margin),
            "horizon_years": self.horizon_years,
            "terminal_value_weight": float(self.terminal_value_weight),
            "net_debt": float(self.net_debt),
            "cash_flow_margin": _optional_float(self.cash_flow_margin),
            "base_year": self.base_year,
        }


@dataclass(frozen=True)
class ValuationRequest:
    entity: BusinessEntity
    methods: tuple[ValuationMethod, ...]
    as_of_date: date
    comparables: tuple[ComparableCompany, ...] = ()
    metrics: tuple[ValuationMetric, ...] = ()
    assumptions: DCFAssumptions | None = None
    discount_rates: tuple[Decimal, ...] = ()
    terminal_growth_rates: tuple[Decimal, ...] = ()
    analyst: str = "system"
    record_history: bool = False
    assumed_ebitda_margin: Decimal = DEFAULT_ASSUMED_EBITDA_MARGIN
    statistic: str = DEFAULT_PEER_STATISTIC

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> ValuationRequest:
        entity = BusinessEntity.from_dict(require_field(payload, "entity", dict))
        methods = tuple(
            ValuationMethod.from_dict(m) for m in _records(payload, "methods")
        )
        as_of_date = parse_date(require_field(payload, "as_of_date", str))
        comparables = tuple(
            ComparableCompany.from_dict(c) for c in _records(payload, "comparables")
        )
        metrics = tuple(ValuationMetric.from_dict(m) for m in _records(payload, "metrics"))
        assumptions_raw = payload.get("assumptions")
        assumptions = (
            DCFAssumptions.from_dict(assumptions_raw) if assumptions_raw is not None else None
        )
        sensitivity = payload.get("sensitivity") or {}
        if not isinstance(sensitivity, dict):
            raise ValidationError("Field 'sensitivity' must be an object.")
        discount_rates: tuple[Decimal, ...] = ()
        terminal_growth_rates: tuple[Decimal, ...] = ()
        if sensitivity:
            if assumptions is None:
                raise ValidationError("Sensitivity analysis requires DCF 'assumptions'.")
            discount_rates = parse_rate_range(
                require_field(sensitivity, "discount_rates", list), "discount_rates"
            )
            terminal_growth_rates = parse_rate_range(
                require_field(sensitivity, "terminal_growth_rates", list),
                "terminal_growth_rates",
            )
        record_history = payload.get("record_history", False)
        if not isinstance(record_history, bool):
            raise ValidationError("Field 'record_history' must be a boolean.")
        statistic = payload.get("statistic", DEFAULT_PEER_STATISTIC)
        if statistic not in {"mean", "median"}:
            raise ValidationError("Field 'statistic' must be either 'median' or 'mean'.")
        return ValuationRequest(
            entity=entity,
            methods=methods,
            as_of_date=as_of_date,
            comparables=comparables,
            metrics=metrics,
            assumptions=assumptions,
            discount_rates=discount_rates,
            terminal_growth_rates=terminal_growth_rates,
            analyst=payload.get("analyst", "system") or "system",
            record_history=record_history,
            assumed_ebitda_margin=parse_ratio(
                payload.get("assumed_ebitda_margin", DEFAULT_ASSUMED_EBITDA_MARGIN),
                "assumed_ebitda_margin",
            ),
            statistic=statistic,
        )
