"""CLI entry point for valuation reports."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from bizval.engine import ValuationEngine
from bizval.exceptions import ValidationError, ValuationError
from bizval.formatters import format_currency, format_multiple, format_percentage


def _load_payload(request_file: Path) -> dict[str, Any]:
    try:
        payload = json.loads(request_file.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValidationError(f"Request file not found: {request_file}") from exc
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Request file is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request file must contain a JSON object.")
    return payload


def _revenue_line(entity: Any) -> str:
    line = f"Revenue: {format_currency(entity.revenue)}"
    if entity.growth_rate > -1:
        line += (
            f", {format_percentage(entity.growth_rate)} growth from "
            f"{format_currency(entity.previous_year_revenue)}"
        )
    return line


def _summary_lines(report: Any) -> list[str]:
    reconciled = report.reconciled
    lines = [
        f"{report.entity.name} ({report.entity.industry}) as of {report.as_of_date.isoformat()}",
        _revenue_line(report.entity),
        f"Fair value: {format_currency(reconciled.value)} "
        f"({reconciled.confidence_level} confidence, "
        f"{format_percentage(reconciled.average_confidence)} average)",
    ]
    for method in report.methods:
        lines.append(
            f"  {method.name}: {format_currency(method.result)} "
            f"weight {format_percentage(method.weight)}"
        )
    if report.comparables is not None and report.comparables.applicable:
        comparables = report.comparables
        peers = comparables.peer_averages
        lines.append(
            f"Revenue multiple: {format_multiple(comparables.implied_revenue_multiple)} "
            f"vs peers {format_multiple(peers.revenue_multiple if peers else None)} "
            f"({format_percentage(comparables.revenue_premium_pct)})"
        )
        lines.append(
            f"EBITDA multiple: {format_multiple(comparables.implied_ebitda_multiple)} "
            f"vs peers {format_multiple(peers.ebitda_multiple if peers else None)} "
            f"({format_percentage(comparables.ebitda_premium_pct)})"
        )
    if report.dcf is not None:
        lines.append(f"DCF equity value: {format_currency(report.dcf.equity_value)}")
    return lines


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="bizval CLI - reconciles valuation methods into a fair-value report."
    )
    parser.add_argument(
        "--request-file",
        required=True,
        help="Path to JSON request payload.",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty-print JSON output.",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print a human-readable summary instead of JSON.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging verbosity (default: WARNING).",
    )
    return parser


def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    request_file = Path(args.request_file)
    engine = ValuationEngine()

    try:
        payload = _load_payload(request_file)
        report = engine.analyze_from_dict(payload)
        if args.summary:
            print("\n".join(_summary_lines(report)))
        elif args.pretty:
            print(json.dumps(report.to_dict(), indent=2))
        else:
            print(json.dumps(report.to_dict()))
        return 0
    except ValuationError as exc:
        print(json.dumps({"error": str(exc), "error_type": type(exc).__name__}))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
