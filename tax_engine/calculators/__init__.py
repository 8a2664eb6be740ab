from tax_engine.calculators.interest import InterestAccrualCalculator, accrue, accrue_monthly
from tax_engine.calculators.minimum_tax import (
    MinimumAlternateTaxEvaluator,
    MinimumTaxFloor,
    count_consecutive_loss_years,
)
from tax_engine.calculators.penalty import PenaltyEngine, days_overdue, regime_for
from tax_engine.calculators.tax import BaseTax, TaxCalculator

__all__ = [
    "BaseTax",
    "InterestAccrualCalculator",
    "MinimumAlternateTaxEvaluator",
    "MinimumTaxFloor",
    "PenaltyEngine",
    "TaxCalculator",
    "accrue",
    "accrue_monthly",
    "count_consecutive_loss_years",
    "days_overdue",
    "regime_for",
]
