"""Benchmark comparison for informational valuation metrics.

Metrics never feed the monetary aggregation. They tell the reader whether the
business beats its industry benchmark on each driver, and by how much, so the
reconciled figure can be read against its fundamentals.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from bizval.exceptions import DegenerateMetric
from bizval.formatters import format_metric_value, metric_display_kind
from bizval.models import MetricPolarity, ValuationMetric

# Name fragments for metrics that improve as they fall.
LOWER_IS_BETTER_MARKERS = ("cost", "churn")
PROGRESS_HEADROOM = Decimal("1.5")

_ZERO = Decimal("0")
_ONE = Decimal("1")


def polarity_for(metric: ValuationMetric) -> MetricPolarity:
    if metric.polarity is not None:
        return metric.polarity
    lowered = metric.name.lower()
    if any(marker in lowered for marker in LOWER_IS_BETTER_MARKERS):
        return MetricPolarity.LOWER_IS_BETTER
    return MetricPolarity.HIGHER_IS_BETTER


@dataclass(frozen=True)
class MetricEvaluation:
    name: str
    favorable: bool
    progress: Decimal
    polarity: MetricPolarity
    value: Decimal
    benchmark: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "favorable": self.favorable,
            "progress": float(self.progress),
            "polarity": self.polarity.value,
            "display_kind": metric_display_kind(self.name),
            "value": format_metric_value(self.name, self.value),
            "benchmark": format_metric_value(self.name, self.benchmark),
        }


class MetricEvaluator:
    """Scores a metric against its benchmark, honoring inverted polarity."""

    def evaluate(self, metric: ValuationMetric) -> MetricEvaluation:
        if metric.benchmark == _ZERO:
            raise DegenerateMetric(f"Metric '{metric.name}' has a zero benchmark.")
        if metric.value == _ZERO:
            raise DegenerateMetric(f"Metric '{metric.name}' has a zero observed value.")

        polarity = polarity_for(metric)
        if polarity is MetricPolarity.LOWER_IS_BETTER:
            favorable = metric.value < metric.benchmark
        else:
            favorable = metric.value > metric.benchmark

        if favorable:
            ratio = metric.value / (metric.benchmark * PROGRESS_HEADROOM)
        else:
            ratio = metric.benchmark / (metric.value * PROGRESS_HEADROOM)
        progress = min(max(ratio, _ZERO), _ONE)

        return MetricEvaluation(
            name=metric.name,
            favorable=favorable,
            progress=progress,
            polarity=polarity,
            value=metric.value,
            benchmark=metric.benchmark,
        )

    def evaluate_all(self, metrics: Iterable[ValuationMetric]) -> list[MetricEvaluation]:
        return [self.evaluate(metric) for metric in metrics]

    def score(self, metrics: Iterable[ValuationMetric]) -> Decimal:
        """Weighted share of metrics that beat their benchmark, in [0, 1]."""
        metrics = list(metrics)
        total_weight = sum((m.weight for m in metrics), _ZERO)
        if total_weight == _ZERO:
            raise DegenerateMetric("Metric weights sum to zero; no score can be formed.")
        favorable_weight = sum(
            (m.weight for m in metrics if self.evaluate(m).favorable), _ZERO
        )
        return favorable_weight / total_weight


def evaluate_metric(metric: ValuationMetric) -> MetricEvaluation:
    return MetricEvaluator().evaluate(metric)


def score_metrics(metrics: Iterable[ValuationMetric]) -> Decimal:
    return MetricEvaluator().score(metrics)
