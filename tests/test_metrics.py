"""Tests for benchmark evaluation of valuation metrics."""

from __future__ import annotations

import unittest
from decimal import Decimal

from bizval.exceptions import DegenerateMetric
from bizval.metrics import MetricEvaluator, evaluate_metric, polarity_for, score_metrics
from bizval.models import MetricPolarity, ValuationMetric


def _metric(name: str, value: str, benchmark: str, weight: str = "0", **kwargs: object) -> ValuationMetric:
    return ValuationMetric(
        name=name,
        value=Decimal(value),
        benchmark=Decimal(benchmark),
        weight=Decimal(weight),
        **kwargs,  # type: ignore[arg-type]
    )


class PolarityTests(unittest.TestCase):
    def test_default_is_higher_is_better(self) -> None:
        self.assertIs(
            polarity_for(_metric("EBITDA Margin", "0.22", "0.18")),
            MetricPolarity.HIGHER_IS_BETTER,
        )

    def test_cost_and_churn_are_inverted(self) -> None:
        for name in ("Customer Acquisition Cost (CAC)", "Churn Rate", "monthly CHURN"):
            with self.subTest(name=name):
                self.assertIs(
                    polarity_for(_metric(name, "1", "2")), MetricPolarity.LOWER_IS_BETTER
                )

    def test_explicit_polarity_wins(self) -> None:
        metric = _metric(
            "Days Sales Outstanding", "30", "45", polarity=MetricPolarity.LOWER_IS_BETTER
        )
        self.assertTrue(evaluate_metric(metric).favorable)


class EvaluateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.evaluator = MetricEvaluator()

    # ── Favorable / unfavorable ──

    def test_higher_is_better_above_benchmark(self) -> None:
        result = self.evaluator.evaluate(_metric("Revenue Growth Rate", "0.32", "0.25"))
        self.assertTrue(result.favorable)
        self.assertEqual(result.progress, Decimal("0.32") / Decimal("0.375"))

    def test_higher_is_better_below_benchmark(self) -> None:
        result = self.evaluator.evaluate(_metric("Net Promoter Score (NPS)", "50", "55"))
        self.assertFalse(result.favorable)
        self.assertEqual(result.progress, Decimal("55") / Decimal("75"))

    def test_lower_is_better_below_benchmark(self) -> None:
        result = self.evaluator.evaluate(_metric("Customer Acquisition Cost (CAC)", "85", "95"))
        self.assertTrue(result.favorable)
        self.assertIs(result.polarity, MetricPolarity.LOWER_IS_BETTER)

    def test_lower_is_better_above_benchmark(self) -> None:
        result = self.evaluator.evaluate(_metric("Churn Rate", "0.12", "0.10"))
        self.assertFalse(result.favorable)

    def test_equality_is_not_favorable(self) -> None:
        for name in ("EBITDA Margin", "Churn Rate"):
            with self.subTest(name=name):
                self.assertFalse(self.evaluator.evaluate(_metric(name, "0.1", "0.1")).favorable)

    # ── Progress clamp ──

    def test_progress_clamped_to_one(self) -> None:
        result = self.evaluator.evaluate(_metric("Revenue Growth Rate", "0.90", "0.25"))
        self.assertEqual(result.progress, Decimal("1"))

    def test_progress_never_negative(self) -> None:
        result = self.evaluator.evaluate(_metric("Revenue Growth Rate", "-0.10", "0.25"))
        self.assertFalse(result.favorable)
        self.assertEqual(result.progress, Decimal("0"))

    # ── Degenerate inputs ──

    def test_zero_benchmark(self) -> None:
        with self.assertRaises(DegenerateMetric):
            self.evaluator.evaluate(_metric("EBITDA Margin", "0.2", "0"))

    def test_zero_observed_value(self) -> None:
        with self.assertRaises(DegenerateMetric):
            self.evaluator.evaluate(_metric("EBITDA Margin", "0", "0.2"))

    def test_serialized_values_are_formatted(self) -> None:
        d = self.evaluator.evaluate(_metric("Churn Rate", "0.08", "0.10")).to_dict()
        self.assertEqual(d["value"], "8.0%")
        self.assertEqual(d["benchmark"], "10.0%")
        self.assertEqual(d["display_kind"], "percentage")
        self.assertEqual(d["polarity"], "lower_is_better")


class ScoreTests(unittest.TestCase):
    def test_weighted_share_of_favorable(self) -> None:
        metrics = [
            _metric("Revenue Growth Rate", "0.32", "0.25", weight="0.6"),
            _metric("Churn Rate", "0.12", "0.10", weight="0.4"),
        ]
        self.assertEqual(score_metrics(metrics), Decimal("0.6"))

    def test_all_favorable_scores_one(self) -> None:
        metrics = [
            _metric("EBITDA Margin", "0.22", "0.18", weight="0.5"),
            _metric("Customer Acquisition Cost (CAC)", "85", "95", weight="0.5"),
        ]
        self.assertEqual(score_metrics(metrics), Decimal("1"))

    def test_zero_total_weight(self) -> None:
        with self.assertRaises(DegenerateMetric):
            score_metrics([_metric("EBITDA Margin", "0.22", "0.18")])


if __name__ == "__main__":
    unittest.main()
