"""Tests for derived figures on the core data models."""

from __future__ import annotations

import dataclasses
import unittest
from datetime import date
from decimal import Decimal

from bizval.exceptions import InvalidEntityFinancials
from bizval.formatters import format_currency
from bizval.models import BusinessEntity

ENTITY = BusinessEntity(
    entity_id="1",
    name="Digital Merch Pros",
    industry="E-commerce",
    founded=date(2017, 6, 1),
    employees=32,
    revenue=Decimal("4750000"),
    profit_margin=Decimal("0.18"),
    growth_rate=Decimal("0.32"),
)


class PreviousYearRevenueTests(unittest.TestCase):
    def test_backs_out_one_year_of_growth(self) -> None:
        self.assertEqual(ENTITY.previous_year_revenue, Decimal("4750000") / Decimal("1.32"))
        self.assertEqual(format_currency(ENTITY.previous_year_revenue), "$3.6M")

    def test_zero_growth_keeps_revenue(self) -> None:
        entity = dataclasses.replace(ENTITY, growth_rate=Decimal("0"))
        self.assertEqual(entity.previous_year_revenue, Decimal("4750000"))

    def test_shrinking_business_had_more_revenue(self) -> None:
        entity = dataclasses.replace(ENTITY, growth_rate=Decimal("-0.5"))
        self.assertEqual(entity.previous_year_revenue, Decimal("9500000"))

    def test_total_collapse_has_no_prior_revenue(self) -> None:
        for growth in ("-1", "-1.5"):
            entity = dataclasses.replace(ENTITY, growth_rate=Decimal(growth))
            with self.subTest(growth=growth), self.assertRaises(InvalidEntityFinancials):
                entity.previous_year_revenue


if __name__ == "__main__":
    unittest.main()
