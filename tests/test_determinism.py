"""Determinism and raw-request replay tests.

Acceptance criteria
-------------------
* Repeated identical requests produce byte-identical ``valuation_result``.
* ``audit_metadata`` (request_id, generated_at_utc) is allowed to differ.
* The example request file can be replayed and yields stable output.
"""

from __future__ import annotations

import json
import unittest
from pathlib import Path

from bizval.engine import ValuationEngine
from bizval.history import HistoryTracker

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


def _load(filename: str) -> dict:
    return json.loads((EXAMPLES_DIR / filename).read_text(encoding="utf-8"))


class DeterminismTests(unittest.TestCase):
    """Identical inputs must always produce byte-identical valuation_result."""

    def setUp(self) -> None:
        self.engine = ValuationEngine(history=HistoryTracker())

    def _runs(self, payload: dict, n: int = 5) -> list[str]:
        return [
            json.dumps(
                self.engine.analyze_from_dict(payload).to_dict()["valuation_result"],
                sort_keys=True,
            )
            for _ in range(n)
        ]

    def test_supplied_methods_determinism(self) -> None:
        runs = self._runs(_load("valuation_request.json"))
        self.assertTrue(
            all(r == runs[0] for r in runs),
            "valuation_result must be byte-identical across repeated runs",
        )

    def test_derived_methods_determinism(self) -> None:
        payload = _load("valuation_request.json")
        del payload["methods"]
        runs = self._runs(payload)
        self.assertTrue(all(r == runs[0] for r in runs))

    def test_metadata_varies(self) -> None:
        """audit_metadata request_id should differ between runs."""
        payload = _load("valuation_request.json")
        ids = {
            self.engine.analyze_from_dict(payload).to_dict()["audit_metadata"]["request_id"]
            for _ in range(3)
        }
        self.assertEqual(len(ids), 3, "Each run should produce a unique request_id")

    def test_separate_engines_agree(self) -> None:
        payload = _load("valuation_request.json")
        other = ValuationEngine(history=HistoryTracker())
        a = self.engine.analyze_from_dict(payload).to_dict()["valuation_result"]
        b = other.analyze_from_dict(payload).to_dict()["valuation_result"]
        self.assertEqual(json.dumps(a, sort_keys=True), json.dumps(b, sort_keys=True))


class RawRequestReplayTests(unittest.TestCase):
    """Load the example JSON file and verify the replayed envelope."""

    def test_example_envelope_structure(self) -> None:
        out = ValuationEngine(history=HistoryTracker()).analyze_from_dict(
            _load("valuation_request.json")
        ).to_dict()
        vr = out["valuation_result"]
        meta = out["audit_metadata"]

        self.assertIn("reconciled_valuation", vr)
        self.assertIn("comparables", vr)
        self.assertIn("dcf", vr)
        self.assertEqual(len(vr["sensitivity"]["cells"]), 4)

        self.assertIn("request_id", meta)
        self.assertIn("generated_at_utc", meta)
        self.assertIn("engine_version", meta)


if __name__ == "__main__":
    unittest.main()
