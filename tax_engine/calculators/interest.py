from __future__ import annotations

from datetime import date
from decimal import Decimal

from tax_engine.core.brackets import ZERO, round_cents
from tax_engine.core.errors import RateKindMismatch
from tax_engine.core.models import RateKind, RateTable, TaxpayerCategory
from tax_engine.core.periods import days_between, elapsed_months
from tax_engine.rates.registry import RateRegistry

D = Decimal

DAYS_PER_YEAR = D("365")


def accrue(principal: D, annual_rate: D, days_overdue: int) -> D:
    """Simple daily interest: principal * (annual_rate / 365) * days, rounded once."""
    if principal <= ZERO or days_overdue <= 0:
        return D("0.00")
    return round_cents(principal * annual_rate * D(days_overdue) / DAYS_PER_YEAR)


def accrue_monthly(principal: D, monthly_rate: D, months_overdue: int) -> D:
    if principal <= ZERO or months_overdue <= 0:
        return D("0.00")
    return round_cents(principal * monthly_rate * D(months_overdue))


class InterestAccrualCalculator:
    def __init__(self, registry: RateRegistry) -> None:
        self.registry = registry

    def compute(
        self,
        principal: D,
        start: date,
        end: date,
        *,
        category: TaxpayerCategory | None,
        as_of: date,
    ) -> D:
        if principal <= ZERO or end <= start:
            return D("0.00")
        entry = self.registry.resolve(RateTable.INTEREST_RATE, category, as_of)
        if entry.kind is RateKind.DAILY_RATE:
            return accrue(principal, entry.rate, days_between(start, end))
        if entry.kind is RateKind.MONTHLY_RATE:
            return accrue_monthly(principal, entry.rate, elapsed_months(start, end))
        raise RateKindMismatch(entry.table, (RateKind.DAILY_RATE, RateKind.MONTHLY_RATE), entry.kind)


__all__ = ["DAYS_PER_YEAR", "InterestAccrualCalculator", "accrue", "accrue_monthly"]
