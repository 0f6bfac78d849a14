"""FastAPI server -- JSON API over the valuation engine.

Routes
------
GET  /health                       -> liveness probe
POST /aggregate                    -> reconcile a method set
POST /comparables                  -> peer-multiple premium/discount
POST /dcf                          -> DCF schedule, enterprise and equity value
POST /sensitivity                  -> WACC x terminal-growth equity grid
POST /value                        -> full report (optionally records history)
POST /history/{entity_id}          -> append a reconciled valuation
GET  /history/{entity_id}          -> entries, most recent first
GET  /history/{entity_id}/trend    -> trend label and percent change
"""

from __future__ import annotations

import argparse
import json
import logging
import time
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bizval import __version__
from bizval.engine import ValuationEngine
from bizval.exceptions import InsufficientData, ValidationError, ValuationError
from bizval.models import BusinessEntity, ComparableCompany, DCFAssumptions, ValuationMethod
from bizval.validation import (
    NUMERIC_TYPES,
    parse_date,
    parse_decimal,
    parse_rate_range,
    require_field,
)

logger = logging.getLogger("bizval.server")

engine = ValuationEngine()

app = FastAPI(
    title="bizval",
    description="Confidence-weighted business valuation with DCF and sensitivity analysis.",
    version=__version__,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _read_json(request: Request) -> dict[str, Any]:
    """Read and parse the JSON body, raising ValidationError on failure."""
    body = await request.body()
    try:
        result = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid JSON: {exc}") from exc
    if not isinstance(result, dict):
        raise ValidationError("Request body must be a JSON object.")
    return result


def _error(exc: Exception, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"error": str(exc), "error_type": type(exc).__name__}, status_code=status_code
    )


async def _respond(
    request: Request | None,
    operation: str,
    handler: Callable[[dict[str, Any]], dict[str, Any]],
) -> JSONResponse:
    """Run ``handler`` on the parsed body and map engine failures to responses."""
    start = time.monotonic()
    try:
        payload = await _read_json(request) if request is not None else {}
        result = handler(payload)
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info("%s_ok elapsed_ms=%.1f", operation, elapsed_ms)
        return JSONResponse(result, status_code=200)
    except InsufficientData as exc:
        logger.info("%s_insufficient_data error=%s", operation, exc)
        return _error(exc, 409)
    except ValuationError as exc:
        logger.warning("validation_error operation=%s error=%s", operation, exc)
        return _error(exc, 400)
    except Exception as exc:  # pragma: no cover
        logger.exception("unhandled_error operation=%s error=%s", operation, exc)
        return _error(exc, 500)


def _methods(payload: dict[str, Any]) -> list[ValuationMethod]:
    raw = require_field(payload, "methods", list)
    if not all(isinstance(m, dict) for m in raw):
        raise ValidationError("Field 'methods' must be a list of objects.")
    return [ValuationMethod.from_dict(m) for m in raw]


def _comparables(payload: dict[str, Any]) -> list[ComparableCompany]:
    raw = payload.get("comparables") or []
    if not isinstance(raw, list) or not all(isinstance(c, dict) for c in raw):
        raise ValidationError("Field 'comparables' must be a list of objects.")
    return [ComparableCompany.from_dict(c) for c in raw]


def _entity_and_assumptions(payload: dict[str, Any]) -> tuple[BusinessEntity, DCFAssumptions]:
    entity = BusinessEntity.from_dict(require_field(payload, "entity", dict))
    assumptions = DCFAssumptions.from_dict(require_field(payload, "assumptions", dict))
    return entity, assumptions


def _as_of(payload: dict[str, Any]) -> Any:
    raw = payload.get("as_of_date")
    return parse_date(raw) if raw is not None else None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/aggregate")
async def post_aggregate(request: Request) -> JSONResponse:
    return await _respond(
        request, "aggregate", lambda payload: engine.aggregate(_methods(payload)).to_dict()
    )


@app.post("/comparables")
async def post_comparables(request: Request) -> JSONResponse:
    def handler(payload: dict[str, Any]) -> dict[str, Any]:
        entity = BusinessEntity.from_dict(require_field(payload, "entity", dict))
        value = parse_decimal(
            require_field(payload, "reconciled_value", NUMERIC_TYPES), "reconciled_value"
        )
        kwargs: dict[str, Any] = {}
        if "assumed_ebitda_margin" in payload:
            kwargs["assumed_ebitda_margin"] = parse_decimal(
                payload["assumed_ebitda_margin"], "assumed_ebitda_margin"
            )
        if "statistic" in payload:
            kwargs["statistic"] = require_field(payload, "statistic", str)
        analysis = engine.compare_to_comparables(entity, value, _comparables(payload), **kwargs)
        return analysis.to_dict()

    return await _respond(request, "comparables", handler)


@app.post("/dcf")
async def post_dcf(request: Request) -> JSONResponse:
    def handler(payload: dict[str, Any]) -> dict[str, Any]:
        entity, assumptions = _entity_and_assumptions(payload)
        return engine.project_dcf(entity, assumptions, as_of=_as_of(payload)).to_dict()

    return await _respond(request, "dcf", handler)


@app.post("/sensitivity")
async def post_sensitivity(request: Request) -> JSONResponse:
    def handler(payload: dict[str, Any]) -> dict[str, Any]:
        entity, assumptions = _entity_and_assumptions(payload)
        grid = engine.sensitivity_grid(
            entity,
            assumptions,
            parse_rate_range(require_field(payload, "discount_rates", list), "discount_rates"),
            parse_rate_range(
                require_field(payload, "terminal_growth_rates", list), "terminal_growth_rates"
            ),
            as_of=_as_of(payload),
        )
        return grid.to_dict()

    return await _respond(request, "sensitivity", handler)


@app.post("/value")
async def post_value(request: Request) -> JSONResponse:
    """Run the full valuation report and return the auditable envelope."""
    return await _respond(
        request, "valuation", lambda payload: engine.analyze_from_dict(payload).to_dict()
    )


@app.post("/history/{entity_id}")
async def post_history(entity_id: str, request: Request) -> JSONResponse:
    def handler(payload: dict[str, Any]) -> dict[str, Any]:
        entry = engine.record_valuation(
            entity_id,
            parse_decimal(require_field(payload, "value", NUMERIC_TYPES), "value"),
            require_field(payload, "method", str),
            require_field(payload, "analyst", str),
            notes=payload.get("notes"),
        )
        return entry.to_dict()

    return await _respond(request, "history_record", handler)


@app.get("/history/{entity_id}")
def get_history(entity_id: str) -> Any:
    """Recorded valuations for an entity, most recent first."""
    return [entry.to_dict() for entry in engine.history.entries(entity_id)]


@app.get("/history/{entity_id}/trend")
async def get_trend(entity_id: str) -> JSONResponse:
    def handler(_: dict[str, Any]) -> dict[str, Any]:
        return {
            "entity_id": entity_id,
            "trend": engine.trend(entity_id).value,
            "percent_change": float(engine.history.percent_change(entity_id)),
        }

    return await _respond(None, "trend", handler)


# ---------------------------------------------------------------------------
# CLI entry-point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the bizval FastAPI service.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", default=8080, type=int)
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging verbosity (default: INFO).",
    )
    return parser


def main() -> int:
    import uvicorn

    args = build_parser().parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("starting FastAPI server on http://%s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
