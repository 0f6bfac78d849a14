"""Serialization contract tests: to_dict() schema must stay stable."""

from __future__ import annotations

import json
import unittest
from datetime import date
from decimal import Decimal

from bizval import __version__
from bizval.aggregation import aggregate
from bizval.engine import ValuationReport
from bizval.models import BusinessEntity, ValuationMethod

REQUIRED_TOP_KEYS = {"valuation_result", "audit_metadata"}

REQUIRED_VR_KEYS = {
    "entity",
    "as_of_date",
    "methods",
    "reconciled_valuation",
    "comparables",
    "dcf",
    "sensitivity",
    "metrics",
    "metric_score",
    "trend",
}

REQUIRED_AUDIT_KEYS = {"request_id", "generated_at_utc", "engine_version", "recorded_entry"}
REQUIRED_RECONCILED_KEYS = {
    "value",
    "method_count",
    "average_confidence",
    "confidence_level",
    "total_weight",
    "method_weights",
    "primary_method_id",
}

ENTITY = BusinessEntity(
    entity_id="1",
    name="TestCo",
    industry="E-commerce",
    founded=date(2020, 3, 15),
    employees=10,
    revenue=Decimal("1000000"),
    profit_margin=Decimal("0.2"),
    growth_rate=Decimal("0.1"),
)


class ValuationReportSerializationTests(unittest.TestCase):
    """Verify the output contract that downstream consumers depend on."""

    def _make_report(self) -> ValuationReport:
        methods = (
            ValuationMethod(
                method_id="dcf",
                name="DCF",
                result=Decimal("100.005"),
                confidence=Decimal("0.8"),
                applicability=Decimal("1"),
            ),
        )
        return ValuationReport(
            entity=ENTITY,
            as_of_date=date(2026, 2, 18),
            methods=methods,
            reconciled=aggregate(methods),
        )

    def test_top_level_keys(self) -> None:
        self.assertEqual(set(self._make_report().to_dict().keys()), REQUIRED_TOP_KEYS)

    def test_valuation_result_keys(self) -> None:
        d = self._make_report().to_dict()
        self.assertEqual(set(d["valuation_result"].keys()), REQUIRED_VR_KEYS)

    def test_audit_metadata_keys(self) -> None:
        d = self._make_report().to_dict()
        self.assertEqual(set(d["audit_metadata"].keys()), REQUIRED_AUDIT_KEYS)
        self.assertEqual(d["audit_metadata"]["engine_version"], __version__)

    def test_reconciled_keys(self) -> None:
        d = self._make_report().to_dict()
        self.assertEqual(
            set(d["valuation_result"]["reconciled_valuation"].keys()), REQUIRED_RECONCILED_KEYS
        )

    def test_reconciled_value_quantized_to_cents(self) -> None:
        d = self._make_report().to_dict()
        self.assertEqual(
            d["valuation_result"]["reconciled_valuation"]["value"],
            {"amount": 100.0, "currency": "USD"},
        )

    def test_method_serialization(self) -> None:
        method = self._make_report().to_dict()["valuation_result"]["methods"][0]
        self.assertEqual(method["weight"], 0.8)
        self.assertIsNone(method["last_calculated"])

    def test_dates_are_iso_strings(self) -> None:
        vr = self._make_report().to_dict()["valuation_result"]
        self.assertEqual(vr["as_of_date"], "2026-02-18")
        self.assertEqual(vr["entity"]["founded"], "2020-03-15")

    def test_json_serializable(self) -> None:
        json.dumps(self._make_report().to_dict())


if __name__ == "__main__":
    unittest.main()
