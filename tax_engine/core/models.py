from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .brackets import TaxBracket, check_schedule
from .errors import AssessmentError, ErrorInfo, get_error_details

D = Decimal


class TaxType(str, Enum):
    INDIVIDUAL_INCOME_TAX = "individual_income_tax"
    PAYE = "paye"
    CORPORATE_INCOME_TAX = "corporate_income_tax"
    GST = "gst"
    WITHHOLDING_TAX = "withholding_tax"
    EXCISE_DUTY = "excise_duty"

    @property
    def is_annual_income_tax(self) -> bool:
        return self in (TaxType.INDIVIDUAL_INCOME_TAX, TaxType.CORPORATE_INCOME_TAX)


class TaxpayerCategory(str, Enum):
    LARGE = "large"
    MEDIUM = "medium"
    SMALL = "small"
    MICRO = "micro"


class WithholdingPaymentType(str, Enum):
    DIVIDENDS = "dividends"
    PROFESSIONAL_FEES = "professional_fees"
    RENT = "rent"
    COMMISSION = "commission"
    MANAGEMENT_FEES = "management_fees"


class RateTable(str, Enum):
    INCOME_TAX_BRACKETS = "income_tax_brackets"
    CORPORATE_TAX_RATE = "corporate_tax_rate"
    GST_RATE = "gst_rate"
    WHT_DIVIDENDS = "wht_dividends"
    WHT_PROFESSIONAL_FEES = "wht_professional_fees"
    WHT_RENT = "wht_rent"
    WHT_COMMISSION = "wht_commission"
    WHT_MANAGEMENT_FEES = "wht_management_fees"
    MAT_RATE = "mat_rate"
    MINIMUM_TAX_RATE = "minimum_tax_rate"
    INTEREST_RATE = "interest_rate"
    EXCISE_DUTY = "excise_duty"

    @classmethod
    def for_withholding(cls, payment_type: WithholdingPaymentType) -> "RateTable":
        return cls(f"wht_{payment_type.value}")


class RateKind(str, Enum):
    BRACKET = "bracket"
    FLAT = "flat"
    FIXED_AMOUNT = "fixed_amount"
    DAILY_RATE = "daily_rate"
    MONTHLY_RATE = "monthly_rate"


class PenaltyKind(str, Enum):
    LATE_FILING = "late_filing"
    NON_FILING = "non_filing"
    LATE_PAYMENT = "late_payment"
    UNDER_DECLARATION = "under_declaration"


class AmountKind(str, Enum):
    FIXED_AMOUNT = "fixed_amount"
    PERCENT_OF_LIABILITY = "percent_of_liability"
    DAILY_RATE = "daily_rate"
    MONTHLY_RATE = "monthly_rate"


class PenaltyCap(str, Enum):
    MINIMUM = "minimum"
    MAXIMUM = "maximum"


class AssessmentStage(str, Enum):
    VALIDATION = "validation"
    BASE_TAX = "base_tax"
    MINIMUM_ALTERNATE_TAX = "minimum_alternate_tax"
    MINIMUM_TAX_FLOOR = "minimum_tax_floor"
    PENALTY = "penalty"
    INTEREST = "interest"


def _active(effective_from: date, effective_to: date | None, as_of: date) -> bool:
    if as_of < effective_from:
        return False
    return effective_to is None or as_of <= effective_to


class RateTableEntry(BaseModel):
    table: RateTable
    category: TaxpayerCategory | None = None
    effective_from: date
    effective_to: date | None = None
    kind: RateKind
    rate: D | None = None
    amount: D | None = None
    brackets: tuple[TaxBracket, ...] = ()
    product: str | None = None
    label: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_values(self) -> "RateTableEntry":
        if (self.table is RateTable.EXCISE_DUTY) != (self.product is not None):
            raise ValueError("excise duty rows need a product code; other tables take none")
        if self.kind is RateKind.BRACKET:
            if self.rate is not None or self.amount is not None:
                raise ValueError("bracket entries carry brackets only")
            check_schedule(self.brackets)
        elif self.kind is RateKind.FIXED_AMOUNT:
            if self.amount is None or self.amount < 0:
                raise ValueError("fixed amount entries need a non-negative amount")
        else:
            if self.rate is None or self.rate < 0:
                raise ValueError(f"{self.kind.value} entries need a non-negative rate")
        if self.kind is not RateKind.BRACKET and self.brackets:
            raise ValueError("only bracket entries may carry brackets")
        return self

    def active_on(self, as_of: date) -> bool:
        return _active(self.effective_from, self.effective_to, as_of)


class PenaltyRule(BaseModel):
    tax_type: TaxType
    category: TaxpayerCategory | None = None
    kind: PenaltyKind
    min_days_late: int = 0
    max_days_late: int | None = None
    amount_kind: AmountKind
    value: D
    min_cap: D | None = None
    max_cap: D | None = None
    priority: int = 0
    threshold_amount: D | None = None
    effective_from: date
    effective_to: date | None = None
    label: str | None = None
    legal_reference: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PenaltyRule":
        if self.min_days_late < 0:
            raise ValueError("min_days_late must be zero or positive")
        if self.max_days_late is not None and self.max_days_late < self.min_days_late:
            raise ValueError("max_days_late must not be below min_days_late")
        if self.value < 0:
            raise ValueError("penalty value must be zero or positive")
        if self.min_cap is not None and self.max_cap is not None and self.min_cap > self.max_cap:
            raise ValueError("min_cap must not exceed max_cap")
        return self

    def active_on(self, as_of: date) -> bool:
        return _active(self.effective_from, self.effective_to, as_of)

    def covers(self, days_late: int) -> bool:
        if days_late < self.min_days_late:
            return False
        return self.max_days_late is None or days_late <= self.max_days_late


class ExciseItem(BaseModel):
    """One excisable product line: quantity for specific rates, value for ad valorem."""

    product_code: str
    quantity: D = D("0")
    value: D = D("0")

    model_config = ConfigDict(frozen=True)


class TaxAssessmentRequest(BaseModel):
    client_id: str
    tax_type: TaxType
    taxpayer_category: TaxpayerCategory | None = None
    taxable_base: D | None = None
    output_gst: D | None = None
    input_gst: D | None = None
    import_value: D | None = None
    excise_items: tuple[ExciseItem, ...] = ()
    payment_type: WithholdingPaymentType | None = None
    revenue: D = D("0")
    period_start: date
    period_end: date
    due_date: date
    filed_date: date | None = None
    assessment_date: date
    amount_paid_to_date: D = D("0")
    consecutive_loss_years: int = 0
    declared_tax: D | None = None

    model_config = ConfigDict(frozen=True)


class LineItem(BaseModel):
    code: str
    label: str
    amount: D
    legal_reference: str | None = None
    steps: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


class TaxAssessmentResult(BaseModel):
    client_id: str
    tax_type: TaxType
    registry_version: str
    base_tax: D
    mat_applied: bool = False
    mat_amount: D | None = None
    minimum_floor_applied: bool = False
    minimum_floor_amount: D | None = None
    final_base_liability: D
    penalty_kind: PenaltyKind | None = None
    penalty_amount: D = D("0.00")
    late_payment_penalty: D = D("0.00")
    under_declaration_penalty: D = D("0.00")
    interest_amount: D = D("0.00")
    amount_paid_to_date: D = D("0.00")
    total_due: D
    breakdown: tuple[LineItem, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    ok: ClassVar[bool] = True

    @property
    def total_penalties(self) -> D:
        return self.penalty_amount + self.late_payment_penalty + self.under_declaration_penalty

    def fingerprint(self) -> str:
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class AssessmentFailure:
    client_id: str
    stage: AssessmentStage
    error: AssessmentError

    ok: ClassVar[bool] = False

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def details(self) -> ErrorInfo:
        return get_error_details(self.code)

    @property
    def public_summary(self) -> str:
        return self.details.summary

    def as_dict(self) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "stage": self.stage.value,
            "code": self.code,
            "summary": self.public_summary,
        }


AssessmentOutcome = TaxAssessmentResult | AssessmentFailure
