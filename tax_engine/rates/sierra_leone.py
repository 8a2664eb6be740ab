from __future__ import annotations

from datetime import date
from decimal import Decimal

from tax_engine.core.brackets import TaxBracket
from tax_engine.core.models import (
    AmountKind,
    PenaltyKind,
    PenaltyRule,
    RateKind,
    RateTable,
    RateTableEntry,
    TaxpayerCategory,
    TaxType,
)
from tax_engine.rates.registry import RateRegistry

D = Decimal

SNAPSHOT_VERSION = "SL-FA2020"
EFFECTIVE_FROM = date(2020, 1, 1)

# Finance Act 2020 personal income tax schedule (annual, SLE).
INCOME_TAX_BRACKETS = (
    TaxBracket(D("0"),       D("600000"),  D("0")),
    TaxBracket(D("600000"),  D("1200000"), D("0.15")),
    TaxBracket(D("1200000"), D("1800000"), D("0.20")),
    TaxBracket(D("1800000"), D("2400000"), D("0.25")),
    TaxBracket(D("2400000"), None,         D("0.30")),
)

CORPORATE_RATE = D("0.25")
GST_RATE = D("0.15")
MAT_RATE = D("0.02")
MINIMUM_TAX_RATE = D("0.005")  # of turnover, large taxpayers
ANNUAL_INTEREST_RATE = D("0.15")

WHT_RATES = {
    RateTable.WHT_DIVIDENDS: D("0.15"),
    RateTable.WHT_PROFESSIONAL_FEES: D("0.15"),
    RateTable.WHT_MANAGEMENT_FEES: D("0.15"),
    RateTable.WHT_RENT: D("0.10"),
    RateTable.WHT_COMMISSION: D("0.05"),
}


# Specific excise rates per unit, keyed by product code.
EXCISE_SPECIFIC_RATES = {
    "TOB001": D("150"),   # cigarettes, per pack of 20
    "TOB002": D("200"),   # cigars, per unit
    "ALC001": D("500"),   # beer, per litre
    "ALC002": D("800"),   # wine, per litre
    "ALC003": D("2000"),  # spirits, per litre
    "FUEL001": D("3500"),  # petrol, per litre
    "FUEL002": D("3000"),  # diesel, per litre
}

FINANCE_ACT = "Sierra Leone Finance Act 2020"


def _section(number: int) -> str:
    return f"{FINANCE_ACT}, Section {number}"


def _flat(table: RateTable, rate: D, category: TaxpayerCategory | None = None) -> RateTableEntry:
    return RateTableEntry(
        table=table,
        category=category,
        effective_from=EFFECTIVE_FROM,
        kind=RateKind.FLAT,
        rate=rate,
    )


def _excise(product: str, amount: D) -> RateTableEntry:
    return RateTableEntry(
        table=RateTable.EXCISE_DUTY,
        product=product,
        effective_from=EFFECTIVE_FROM,
        kind=RateKind.FIXED_AMOUNT,
        amount=amount,
    )


def rate_entries() -> list[RateTableEntry]:
    entries = [
        RateTableEntry(
            table=RateTable.INCOME_TAX_BRACKETS,
            effective_from=EFFECTIVE_FROM,
            kind=RateKind.BRACKET,
            brackets=INCOME_TAX_BRACKETS,
            label="Personal income tax schedule",
        ),
        _flat(RateTable.CORPORATE_TAX_RATE, CORPORATE_RATE),
        _flat(RateTable.GST_RATE, GST_RATE),
        _flat(RateTable.MAT_RATE, MAT_RATE),
        _flat(RateTable.MINIMUM_TAX_RATE, MINIMUM_TAX_RATE, TaxpayerCategory.LARGE),
        RateTableEntry(
            table=RateTable.INTEREST_RATE,
            effective_from=EFFECTIVE_FROM,
            kind=RateKind.DAILY_RATE,
            rate=ANNUAL_INTEREST_RATE,
            label="Interest on unpaid tax, annual rate accrued daily",
        ),
    ]
    entries.extend(_flat(table, rate) for table, rate in WHT_RATES.items())
    entries.extend(_excise(product, amount) for product, amount in EXCISE_SPECIFIC_RATES.items())
    return entries


def _rule(tax_type: TaxType, kind: PenaltyKind, amount_kind: AmountKind, value: str, **extra) -> PenaltyRule:
    extra.setdefault("legal_reference", FINANCE_ACT)
    return PenaltyRule(
        tax_type=tax_type,
        kind=kind,
        amount_kind=amount_kind,
        value=D(value),
        effective_from=EFFECTIVE_FROM,
        **extra,
    )


def penalty_rules() -> list[PenaltyRule]:
    rules: list[PenaltyRule] = []
    for tax_type in (TaxType.INDIVIDUAL_INCOME_TAX, TaxType.CORPORATE_INCOME_TAX):
        rules += [
            _rule(
                tax_type, PenaltyKind.LATE_FILING, AmountKind.PERCENT_OF_LIABILITY, "0.05",
                min_cap=D("500"), max_cap=D("50000"), label="Income tax late filing",
                legal_reference=_section(112),
            ),
            _rule(
                tax_type, PenaltyKind.LATE_FILING, AmountKind.PERCENT_OF_LIABILITY, "0.10",
                category=TaxpayerCategory.LARGE, min_cap=D("2000"), max_cap=D("100000"),
                label="Income tax late filing, large taxpayers", legal_reference=f"{_section(112)}(2)",
            ),
            _rule(
                tax_type, PenaltyKind.NON_FILING, AmountKind.PERCENT_OF_LIABILITY, "0.20",
                min_days_late=30, min_cap=D("2000"), max_cap=D("100000"),
                label="Income tax non-filing", legal_reference=_section(118),
            ),
            _rule(
                tax_type, PenaltyKind.LATE_PAYMENT, AmountKind.MONTHLY_RATE, "0.02",
                min_cap=D("100"), label="Income tax late payment", legal_reference=_section(115),
            ),
            _rule(
                tax_type, PenaltyKind.UNDER_DECLARATION, AmountKind.PERCENT_OF_LIABILITY, "0.25",
                min_cap=D("1000"), threshold_amount=D("5000"), label="Income tax under-declaration",
                legal_reference=_section(120),
            ),
        ]
    rules += [
        _rule(
            TaxType.GST, PenaltyKind.LATE_FILING, AmountKind.PERCENT_OF_LIABILITY, "0.10",
            min_cap=D("200"), max_cap=D("25000"), label="GST late filing", legal_reference=_section(142),
        ),
        _rule(
            TaxType.GST, PenaltyKind.NON_FILING, AmountKind.FIXED_AMOUNT, "5000",
            min_days_late=30, label="GST non-filing", legal_reference=_section(148),
        ),
        _rule(
            TaxType.GST, PenaltyKind.LATE_PAYMENT, AmountKind.MONTHLY_RATE, "0.03",
            min_cap=D("50"), label="GST late payment", legal_reference=_section(145),
        ),
        _rule(
            TaxType.GST, PenaltyKind.UNDER_DECLARATION, AmountKind.PERCENT_OF_LIABILITY, "0.25",
            min_cap=D("500"), threshold_amount=D("1000"), label="GST under-declaration",
        ),
        _rule(
            TaxType.EXCISE_DUTY, PenaltyKind.LATE_FILING, AmountKind.PERCENT_OF_LIABILITY, "0.15",
            min_cap=D("1000"), max_cap=D("75000"), label="Excise late filing", legal_reference=_section(182),
        ),
        _rule(
            TaxType.EXCISE_DUTY, PenaltyKind.NON_FILING, AmountKind.FIXED_AMOUNT, "5000",
            min_days_late=30, label="Excise non-filing",
        ),
        _rule(
            TaxType.EXCISE_DUTY, PenaltyKind.LATE_PAYMENT, AmountKind.MONTHLY_RATE, "0.04",
            min_cap=D("300"), label="Excise late payment", legal_reference=_section(185),
        ),
        _rule(
            TaxType.EXCISE_DUTY, PenaltyKind.UNDER_DECLARATION, AmountKind.PERCENT_OF_LIABILITY, "0.25",
            min_cap=D("500"), threshold_amount=D("1000"), label="Excise under-declaration",
        ),
    ]
    for tax_type in (TaxType.PAYE, TaxType.WITHHOLDING_TAX):
        paye = tax_type is TaxType.PAYE
        rules += [
            _rule(
                tax_type, PenaltyKind.LATE_FILING, AmountKind.FIXED_AMOUNT, "1000",
                label="Late remittance return", legal_reference=_section(162) if paye else FINANCE_ACT,
            ),
            _rule(
                tax_type, PenaltyKind.NON_FILING, AmountKind.PERCENT_OF_LIABILITY, "0.50",
                min_days_late=30, min_cap=D("5000"), label="Non-remittance",
                legal_reference=_section(168) if paye else FINANCE_ACT,
            ),
            _rule(
                tax_type, PenaltyKind.LATE_PAYMENT, AmountKind.MONTHLY_RATE, "0.05",
                min_cap=D("200"), label="Late remittance payment",
                legal_reference=_section(165) if paye else FINANCE_ACT,
            ),
            _rule(
                tax_type, PenaltyKind.UNDER_DECLARATION, AmountKind.PERCENT_OF_LIABILITY, "0.25",
                min_cap=D("500"), label="Under-remittance",
            ),
        ]
    return rules


def default_registry() -> RateRegistry:
    return RateRegistry(rate_entries(), penalty_rules(), version=SNAPSHOT_VERSION)


__all__ = [
    "EXCISE_SPECIFIC_RATES",
    "SNAPSHOT_VERSION",
    "default_registry",
    "penalty_rules",
    "rate_entries",
]
