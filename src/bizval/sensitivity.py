"""Equity value sensitivity to the discount rate and terminal growth rate."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from bizval.dcf import DCFProjector
from bizval.exceptions import ValidationError
from bizval.models import BusinessEntity, DCFAssumptions
from bizval.validation import require_ascending

logger = logging.getLogger("bizval.sensitivity")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class SensitivityGrid:
    """Row ``i`` holds ``discount_rates[i]``; column ``j`` holds ``terminal_growth_rates[j]``.

    A cell is None where the discount rate is not positive or does not exceed
    the terminal growth rate, since the perpetuity formula has no finite value
    there.
    """

    discount_rates: tuple[Decimal, ...]
    terminal_growth_rates: tuple[Decimal, ...]
    cells: tuple[tuple[Decimal | None, ...], ...]
    base_discount_rate: Decimal
    base_terminal_growth: Decimal

    def value_at(self, discount_rate: Decimal, terminal_growth: Decimal) -> Decimal | None:
        try:
            i = self.discount_rates.index(discount_rate)
            j = self.terminal_growth_rates.index(terminal_growth)
        except ValueError as exc:
            raise ValidationError(
                f"No grid cell for discount rate {discount_rate} and terminal growth "
                f"{terminal_growth}."
            ) from exc
        return self.cells[i][j]

    def to_dict(self) -> dict[str, Any]:
        return {
            "discount_rates": [float(r) for r in self.discount_rates],
            "terminal_growth_rates": [float(g) for g in self.terminal_growth_rates],
            "cells": [
                [None if cell is None else float(cell) for cell in row] for row in self.cells
            ],
            "base_case": {
                "discount_rate": float(self.base_discount_rate),
                "terminal_growth": float(self.base_terminal_growth),
            },
        }


class SensitivityAnalyzer:
    def __init__(self, projector: DCFProjector | None = None) -> None:
        self._projector = projector or DCFProjector()

    def grid(
        self,
        entity: BusinessEntity,
        assumptions: DCFAssumptions,
        discount_rates: Sequence[Decimal],
        terminal_growth_rates: Sequence[Decimal],
        as_of: date | None = None,
    ) -> SensitivityGrid:
        discount_rates = tuple(discount_rates)
        terminal_growth_rates = tuple(terminal_growth_rates)
        require_ascending(discount_rates, "discount_rates")
        require_ascending(terminal_growth_rates, "terminal_growth_rates")

        cells = []
        for wacc in discount_rates:
            row: list[Decimal | None] = []
            for growth in terminal_growth_rates:
                if wacc <= _ZERO or wacc <= growth:
                    row.append(None)
                    continue
                result = self._projector.project(
                    entity, assumptions.with_rates(wacc, growth), as_of=as_of
                )
                row.append(result.equity_value)
            cells.append(tuple(row))

        logger.debug(
            "sensitivity entity=%s rows=%d cols=%d",
            entity.entity_id,
            len(discount_rates),
            len(terminal_growth_rates),
        )
        return SensitivityGrid(
            discount_rates=discount_rates,
            terminal_growth_rates=terminal_growth_rates,
            cells=tuple(cells),
            base_discount_rate=assumptions.discount_rate,
            base_terminal_growth=assumptions.terminal_growth,
        )


def centered_rates(base: Decimal, step: Decimal, count: int) -> tuple[Decimal, ...]:
    """Ascending range of ``count`` rates spaced by ``step`` around ``base``.

    ``centered_rates(Decimal("0.15"), Decimal("0.01"), 7)`` gives 12%..18%.
    """
    if count < 1 or count % 2 == 0:
        raise ValidationError("Rate count must be a positive odd number.")
    if step <= Decimal("0"):
        raise ValidationError("Rate step must be positive.")
    half = count // 2
    return tuple(base + step * offset for offset in range(-half, half + 1))


def sensitivity_grid(
    entity: BusinessEntity,
    assumptions: DCFAssumptions,
    discount_rates: Sequence[Decimal],
    terminal_growth_rates: Sequence[Decimal],
    as_of: date | None = None,
) -> SensitivityGrid:
    return SensitivityAnalyzer().grid(
        entity, assumptions, discount_rates, terminal_growth_rates, as_of=as_of
    )
