"""Tests for confidence-weighted reconciliation of valuation methods."""

from __future__ import annotations

import unittest
from decimal import Decimal

from bizval.aggregation import WeightedAggregator, aggregate
from bizval.exceptions import NoApplicableMethods, ValidationError
from bizval.models import ValuationMethod


def _method(method_id: str, result: str, confidence: str, applicability: str) -> ValuationMethod:
    return ValuationMethod(
        method_id=method_id,
        name=method_id.upper(),
        result=Decimal(result),
        confidence=Decimal(confidence),
        applicability=Decimal(applicability),
    )


DEMO_METHODS = (
    _method("dcf", "18500000", "0.85", "0.9"),
    _method("comps", "21750000", "0.75", "0.85"),
    _method("revenue_multiple", "23750000", "0.65", "0.7"),
    _method("ebitda_multiple", "19800000", "0.7", "0.8"),
    _method("book_value", "12450000", "0.4", "0.5"),
)


class AggregateTests(unittest.TestCase):
    # ── Worked examples ──

    def test_two_method_example(self) -> None:
        result = aggregate(DEMO_METHODS[:2])
        self.assertEqual(result.total_weight, Decimal("1.4025"))
        self.assertEqual(result.value, Decimal("28018125") / Decimal("1.4025"))
        self.assertAlmostEqual(float(result.value), 19_977_272.73, places=2)
        self.assertEqual(result.method_count, 2)
        self.assertEqual(result.average_confidence, Decimal("0.8"))

    def test_demo_portfolio(self) -> None:
        result = aggregate(DEMO_METHODS)
        weighted = sum(m.result * m.weight for m in DEMO_METHODS)
        total = sum(m.weight for m in DEMO_METHODS)
        self.assertEqual(result.value, weighted / total)
        self.assertEqual(result.average_confidence, Decimal("0.67"))
        self.assertEqual(result.confidence_level, "moderate")
        self.assertEqual(result.primary_method_id, "dcf")

    def test_single_method_returns_its_result(self) -> None:
        result = aggregate([_method("only", "5000000", "0.3", "0.2")])
        self.assertEqual(result.value, Decimal("5000000"))

    # ── Invariants ──

    def test_value_within_range_of_results(self) -> None:
        for size in range(1, len(DEMO_METHODS) + 1):
            with self.subTest(size=size):
                methods = DEMO_METHODS[:size]
                value = aggregate(methods).value
                self.assertGreaterEqual(value, min(m.result for m in methods))
                self.assertLessEqual(value, max(m.result for m in methods))

    def test_identical_results_reconcile_exactly(self) -> None:
        shared = "96935024.37911585"
        methods = [
            _method("dcf", shared, "0.134364244112", "0.8474337369372327"),
            _method("comps", shared, "0.763774618976614", "0.2550690257394217"),
            _method("revenue_multiple", shared, "0.4954350870919", "0.4494910647887381"),
            _method("ebitda_multiple", shared, "0.651592972722763", "0.7887233511355132"),
        ]
        self.assertEqual(aggregate(methods).value, Decimal(shared))

    def test_value_stays_in_range_with_long_ratios(self) -> None:
        methods = [
            _method("dcf", "96935024.37911585", "0.134364244112", "0.8474337369372327"),
            _method("comps", "96935024.37911586", "0.763774618976614", "0.2550690257394217"),
        ]
        value = aggregate(methods).value
        self.assertGreaterEqual(value, Decimal("96935024.37911585"))
        self.assertLessEqual(value, Decimal("96935024.37911586"))

    def test_zero_weight_method_has_no_influence(self) -> None:
        with_zero = (*DEMO_METHODS[:2], _method("ignored", "99000000", "0", "1"))
        self.assertEqual(aggregate(with_zero).value, aggregate(DEMO_METHODS[:2]).value)

    def test_idempotent(self) -> None:
        aggregator = WeightedAggregator()
        self.assertEqual(aggregator.aggregate(DEMO_METHODS), aggregator.aggregate(DEMO_METHODS))

    def test_confidence_level_threshold(self) -> None:
        high = aggregate([_method("a", "100", "0.7", "1")])
        self.assertEqual(high.confidence_level, "high")
        moderate = aggregate([_method("a", "100", "0.69", "1")])
        self.assertEqual(moderate.confidence_level, "moderate")

    def test_primary_ties_keep_input_order(self) -> None:
        result = aggregate([_method("first", "1", "0.8", "0.1"), _method("second", "2", "0.8", "1")])
        self.assertEqual(result.primary_method_id, "first")

    # ── Errors ──

    def test_empty_set(self) -> None:
        with self.assertRaises(NoApplicableMethods):
            aggregate([])

    def test_all_zero_weight(self) -> None:
        with self.assertRaises(NoApplicableMethods):
            aggregate([_method("a", "100", "0", "1"), _method("b", "200", "0.5", "0")])

    def test_out_of_range_confidence_rejected_at_construction(self) -> None:
        with self.assertRaises(ValidationError):
            _method("a", "100", "1.5", "1")

    # ── Serialization ──

    def test_to_dict(self) -> None:
        d = aggregate(DEMO_METHODS[:2]).to_dict()
        self.assertEqual(d["value"], {"amount": 19977272.73, "currency": "USD"})
        self.assertEqual(d["method_weights"], {"dcf": 0.765, "comps": 0.6375})
        self.assertEqual(d["confidence_level"], "high")


if __name__ == "__main__":
    unittest.main()
