"""Minimum Alternate Tax and the turnover-based minimum tax floor.

MAT is triggered by sustained losses, the floor by taxpayer size. Each reads
its own rate table and returns its own outcome; the aggregator applies MAT
first and the floor second.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping

from tax_engine.core.brackets import ZERO, round_cents
from tax_engine.core.errors import RateKindMismatch
from tax_engine.core.models import RateKind, RateTable, TaxpayerCategory
from tax_engine.rates.registry import RateRegistry

D = Decimal

MAT_LOSS_YEAR_TRIGGER = 2


@dataclass(frozen=True)
class MatOutcome:
    final_liability: D
    mat_applied: bool
    mat_amount: D | None = None


@dataclass(frozen=True)
class FloorOutcome:
    final_liability: D
    floor_applied: bool
    floor_amount: D | None = None


def count_consecutive_loss_years(history: Mapping[int, D], assessment_year: int) -> int:
    """Count loss years immediately preceding ``assessment_year``.

    Walks back from the prior year and stops at the first profitable (or
    break-even) year, or at the first year with no record.
    """
    count = 0
    year = assessment_year - 1
    while year in history and history[year] < ZERO:
        count += 1
        year -= 1
    return count


class MinimumAlternateTaxEvaluator:
    def __init__(self, registry: RateRegistry) -> None:
        self.registry = registry

    def evaluate(
        self,
        revenue: D,
        base_tax: D,
        consecutive_loss_years: int,
        *,
        category: TaxpayerCategory | None,
        as_of: date,
    ) -> MatOutcome:
        if consecutive_loss_years < MAT_LOSS_YEAR_TRIGGER:
            return MatOutcome(final_liability=base_tax, mat_applied=False)
        entry = self.registry.resolve(RateTable.MAT_RATE, category, as_of)
        if entry.kind is not RateKind.FLAT:
            raise RateKindMismatch(entry.table, (RateKind.FLAT,), entry.kind)
        mat_amount = round_cents(max(ZERO, revenue) * entry.rate)
        return MatOutcome(
            final_liability=max(base_tax, mat_amount),
            mat_applied=True,
            mat_amount=mat_amount,
        )


class MinimumTaxFloor:
    def __init__(self, registry: RateRegistry) -> None:
        self.registry = registry

    def apply(
        self,
        liability: D,
        revenue: D,
        *,
        category: TaxpayerCategory | None,
        as_of: date,
    ) -> FloorOutcome:
        entry = self.registry.find(RateTable.MINIMUM_TAX_RATE, category, as_of)
        if entry is None:
            return FloorOutcome(final_liability=liability, floor_applied=False)
        if entry.kind is not RateKind.FLAT:
            raise RateKindMismatch(entry.table, (RateKind.FLAT,), entry.kind)
        floor_amount = round_cents(max(ZERO, revenue) * entry.rate)
        return FloorOutcome(
            final_liability=max(liability, floor_amount),
            floor_applied=floor_amount > liability,
            floor_amount=floor_amount,
        )


__all__ = [
    "FloorOutcome",
    "MAT_LOSS_YEAR_TRIGGER",
    "MatOutcome",
    "MinimumAlternateTaxEvaluator",
    "MinimumTaxFloor",
    "count_consecutive_loss_years",
]
