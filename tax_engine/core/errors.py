from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Sequence


class AssessmentError(Exception):
    """Base class for every failure an assessment stage can report."""

    code = "ASSESSMENT_ERROR"

    def detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class NoApplicableRateRule(AssessmentError, LookupError):
    code = "NO_APPLICABLE_RATE_RULE"

    def __init__(self, table: Any, category: Any, as_of: date, product: str | None = None) -> None:
        self.table = table
        self.category = category
        self.as_of = as_of
        self.product = product
        category_label = getattr(category, "value", category) or "general"
        table_label = getattr(table, "value", table)
        if product is not None:
            table_label = f"{table_label}[{product}]"
        super().__init__(
            f"No rate rule for {table_label} ({category_label}) active on {as_of.isoformat()}"
        )


class AmbiguousRuleMatch(AssessmentError):
    code = "AMBIGUOUS_RULE_MATCH"

    def __init__(self, candidates: Sequence[Any]) -> None:
        self.candidates = tuple(candidates)
        labels = ", ".join(getattr(c, "label", None) or repr(c) for c in self.candidates)
        super().__init__(f"{len(self.candidates)} equally specific rules match: {labels}")


class NegativeOrInvalidAmount(AssessmentError, ValueError):
    code = "NEGATIVE_OR_INVALID_AMOUNT"

    def __init__(self, field: str, value: Any = None, reason: str | None = None) -> None:
        self.field = field
        self.value = value
        super().__init__(reason or f"{field} must be a non-negative amount, got {value}")


class UnknownTaxType(AssessmentError, ValueError):
    code = "UNKNOWN_TAX_TYPE"

    def __init__(self, tax_type: Any) -> None:
        self.tax_type = tax_type
        super().__init__(f"Unknown tax type {tax_type!r}")


class InvalidEffectiveDateRange(AssessmentError, ValueError):
    code = "INVALID_EFFECTIVE_DATE_RANGE"


class RateKindMismatch(AssessmentError):
    code = "RATE_KIND_MISMATCH"

    def __init__(self, table: Any, expected: Sequence[Any], actual: Any) -> None:
        self.table = table
        self.expected = tuple(expected)
        self.actual = actual
        wanted = "/".join(getattr(kind, "value", str(kind)) for kind in self.expected)
        super().__init__(
            f"Rate table {getattr(table, 'value', table)} is configured as "
            f"{getattr(actual, 'value', actual)}, expected {wanted}"
        )


@dataclass(frozen=True)
class ErrorInfo:
    """End-user description of an assessment failure code."""

    code: str
    category: str
    summary: str
    remediation: str


_CATALOGUE: Dict[str, ErrorInfo] = {
    NoApplicableRateRule.code: ErrorInfo(
        code=NoApplicableRateRule.code,
        category="Configuration",
        summary="No tax rate is configured for this obligation and period.",
        remediation="Publish the missing rate or penalty table in the rate snapshot and rerun the assessment.",
    ),
    AmbiguousRuleMatch.code: ErrorInfo(
        code=AmbiguousRuleMatch.code,
        category="Configuration",
        summary="More than one penalty rule applies with the same priority.",
        remediation="Give the overlapping penalty rules distinct priorities or narrow their day windows.",
    ),
    NegativeOrInvalidAmount.code: ErrorInfo(
        code=NegativeOrInvalidAmount.code,
        category="Input",
        summary="An amount on the filing is missing, negative, or not valid for this tax type.",
        remediation="Correct the filing amounts and resubmit the assessment.",
    ),
    UnknownTaxType.code: ErrorInfo(
        code=UnknownTaxType.code,
        category="Input",
        summary="The tax type of this obligation is not supported.",
        remediation="Check the obligation's tax type against the supported list.",
    ),
    InvalidEffectiveDateRange.code: ErrorInfo(
        code=InvalidEffectiveDateRange.code,
        category="Configuration",
        summary="A date range on the filing or in the rate configuration is invalid.",
        remediation="Make sure every range ends on or after it starts and that rate rows do not overlap.",
    ),
    RateKindMismatch.code: ErrorInfo(
        code=RateKindMismatch.code,
        category="Configuration",
        summary="A rate table is configured with the wrong kind of value.",
        remediation="Fix the rate table kind in the rate snapshot.",
    ),
}

_UNKNOWN = ErrorInfo(
    code="unknown",
    category="Unknown",
    summary="The assessment could not be completed.",
    remediation="Contact support with the client reference and assessment date.",
)


def get_error_details(code: str | None) -> ErrorInfo:
    normalized = (code or "").strip().upper()
    return _CATALOGUE.get(normalized, _UNKNOWN)


__all__ = [
    "AmbiguousRuleMatch",
    "AssessmentError",
    "ErrorInfo",
    "InvalidEffectiveDateRange",
    "NegativeOrInvalidAmount",
    "NoApplicableRateRule",
    "RateKindMismatch",
    "UnknownTaxType",
    "get_error_details",
]
