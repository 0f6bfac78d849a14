"""Valuation engine orchestration."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

from bizval import __version__
from bizval.aggregation import ReconciledValuation, WeightedAggregator
from bizval.catalog import ValuationMethodCatalog
from bizval.comparables import ComparableAnalysis, ComparableAnalyzer
from bizval.dcf import DCFProjector, DCFResult
from bizval.exceptions import DivisionByZero, InsufficientData
from bizval.history import HistoryTracker, TrendLabel
from bizval.methodologies import DEFAULT_METHODOLOGIES, MethodologyContext, ValuationMethodology
from bizval.metrics import MetricEvaluation, MetricEvaluator
from bizval.models import (
    DEFAULT_ASSUMED_EBITDA_MARGIN,
    DEFAULT_PEER_STATISTIC,
    BusinessEntity,
    ComparableCompany,
    DCFAssumptions,
    ValuationHistory,
    ValuationMethod,
    ValuationRequest,
)
from bizval.sensitivity import SensitivityAnalyzer, SensitivityGrid

logger = logging.getLogger("bizval.engine")

RECONCILED_METHOD_LABEL = "Weighted Average"


@dataclass
class ValuationReport:
    entity: BusinessEntity
    as_of_date: date
    methods: tuple[ValuationMethod, ...]
    reconciled: ReconciledValuation
    comparables: ComparableAnalysis | None = None
    dcf: DCFResult | None = None
    sensitivity: SensitivityGrid | None = None
    metric_evaluations: list[MetricEvaluation] = field(default_factory=list)
    metric_score: Decimal | None = None
    recorded_entry: ValuationHistory | None = None
    trend: str | None = None
    request_id: str = field(default_factory=lambda: str(uuid4()))
    generated_at_utc: str = field(
        default_factory=lambda: datetime.now(timezone.utc).replace(microsecond=0).isoformat()
    )
    engine_version: str = field(default_factory=lambda: __version__)

    def to_dict(self) -> dict[str, Any]:
        valuation_result: dict[str, Any] = {
            "entity": self.entity.to_dict(),
            "as_of_date": self.as_of_date.isoformat(),
            "methods": [m.to_dict() for m in self.methods],
            "reconciled_valuation": self.reconciled.to_dict(),
            "comparables": self.comparables.to_dict() if self.comparables else None,
            "dcf": self.dcf.to_dict() if self.dcf else None,
            "sensitivity": self.sensitivity.to_dict() if self.sensitivity else None,
            "metrics": [e.to_dict() for e in self.metric_evaluations],
            "metric_score": float(self.metric_score) if self.metric_score is not None else None,
            "trend": self.trend,
        }
        return {
            "valuation_result": valuation_result,
            "audit_metadata": {
                "request_id": self.request_id,
                "generated_at_utc": self.generated_at_utc,
                "engine_version": self.engine_version,
                "recorded_entry": (
                    self.recorded_entry.to_dict() if self.recorded_entry else None
                ),
            },
        }


class ValuationEngine:
    def __init__(
        self,
        history: HistoryTracker | None = None,
        methodologies: Sequence[ValuationMethodology] = DEFAULT_METHODOLOGIES,
    ) -> None:
        self.history = history if history is not None else HistoryTracker()
        self._methodologies = tuple(methodologies)
        self._aggregator = WeightedAggregator()
        self._projector = DCFProjector()
        self._sensitivity = SensitivityAnalyzer(self._projector)
        self._metrics = MetricEvaluator()

    # ── library operations ──

    def aggregate(self, methods: Iterable[ValuationMethod]) -> ReconciledValuation:
        return self._aggregator.aggregate(methods)

    def compare_to_comparables(
        self,
        entity: BusinessEntity,
        reconciled_value: Decimal,
        comparables: Iterable[ComparableCompany],
        assumed_ebitda_margin: Decimal = DEFAULT_ASSUMED_EBITDA_MARGIN,
        statistic: str = DEFAULT_PEER_STATISTIC,
    ) -> ComparableAnalysis:
        analyzer = ComparableAnalyzer(assumed_ebitda_margin, statistic)
        return analyzer.analyze(entity, reconciled_value, comparables)

    def project_dcf(
        self, entity: BusinessEntity, assumptions: DCFAssumptions, as_of: date | None = None
    ) -> DCFResult:
        return self._projector.project(entity, assumptions, as_of=as_of)

    def sensitivity_grid(
        self,
        entity: BusinessEntity,
        assumptions: DCFAssumptions,
        discount_rates: Sequence[Decimal],
        terminal_growth_rates: Sequence[Decimal],
        as_of: date | None = None,
    ) -> SensitivityGrid:
        return self._sensitivity.grid(
            entity, assumptions, discount_rates, terminal_growth_rates, as_of=as_of
        )

    def record_valuation(
        self,
        entity_id: str,
        value: Decimal,
        method: str,
        analyst: str,
        notes: str | None = None,
    ) -> ValuationHistory:
        return self.history.record(entity_id, value, method, analyst, notes=notes)

    def trend(self, entity_id: str) -> TrendLabel:
        return self.history.trend(entity_id)

    def derive_methods(
        self, entity: BusinessEntity, context: MethodologyContext
    ) -> ValuationMethodCatalog:
        """Run every registered methodology whose inputs are present in the context."""
        catalog = ValuationMethodCatalog(entity_id=entity.entity_id)
        for methodology in self._methodologies:
            if not methodology.can_valuate(context):
                continue
            catalog = catalog.add(methodology.valuate(entity, context))
        return catalog

    # ── full report ──

    def analyze(self, request: ValuationRequest) -> ValuationReport:
        entity = request.entity
        if request.methods:
            catalog = ValuationMethodCatalog.of(entity.entity_id, request.methods)
        else:
            context = MethodologyContext(
                as_of_date=request.as_of_date,
                comparables=request.comparables,
                assumptions=request.assumptions,
                assumed_ebitda_margin=request.assumed_ebitda_margin,
                statistic=request.statistic,
            )
            catalog = self.derive_methods(entity, context)
        reconciled = catalog.reconcile()

        comparables = None
        if request.comparables or entity.revenue > Decimal("0"):
            comparables = self.compare_to_comparables(
                entity,
                reconciled.value,
                request.comparables,
                assumed_ebitda_margin=request.assumed_ebitda_margin,
                statistic=request.statistic,
            )

        dcf = sensitivity = None
        if request.assumptions is not None:
            dcf = self.project_dcf(entity, request.assumptions, as_of=request.as_of_date)
            if request.discount_rates and request.terminal_growth_rates:
                sensitivity = self.sensitivity_grid(
                    entity,
                    request.assumptions,
                    request.discount_rates,
                    request.terminal_growth_rates,
                    as_of=request.as_of_date,
                )

        evaluations = self._metrics.evaluate_all(request.metrics)
        metric_score = None
        if any(m.weight > Decimal("0") for m in request.metrics):
            metric_score = self._metrics.score(request.metrics)

        recorded = None
        if request.record_history:
            recorded = self.history.record(
                entity.entity_id,
                reconciled.value.quantize(Decimal("0.01")),
                RECONCILED_METHOD_LABEL,
                request.analyst,
            )

        logger.info(
            "analysis_ok entity=%s methods=%d reconciled=%s recorded=%s",
            entity.entity_id,
            reconciled.method_count,
            reconciled.value.quantize(Decimal("0.01")),
            recorded is not None,
        )
        return ValuationReport(
            entity=entity,
            as_of_date=request.as_of_date,
            methods=catalog.methods,
            reconciled=reconciled,
            comparables=comparables,
            dcf=dcf,
            sensitivity=sensitivity,
            metric_evaluations=evaluations,
            metric_score=metric_score,
            recorded_entry=recorded,
            trend=self._trend_label(entity.entity_id),
        )

    def analyze_from_dict(self, payload: dict[str, Any]) -> ValuationReport:
        request = ValuationRequest.from_dict(payload)
        return self.analyze(request)

    def _trend_label(self, entity_id: str) -> str:
        try:
            return self.trend(entity_id).value
        except InsufficientData:
            return "insufficient_data"
        except DivisionByZero:
            return "undefined"
