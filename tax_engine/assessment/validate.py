from __future__ import annotations

from tax_engine.core.errors import InvalidEffectiveDateRange, NegativeOrInvalidAmount, UnknownTaxType
from tax_engine.core.models import TaxAssessmentRequest, TaxType

_NON_NEGATIVE_FIELDS = (
    "revenue",
    "amount_paid_to_date",
    "output_gst",
    "input_gst",
    "import_value",
    "declared_tax",
)


def check_request(request: TaxAssessmentRequest) -> None:
    """Raise the first input problem found on ``request``.

    Corporate taxable profit may be negative (a loss year); every other
    amount must be zero or positive.
    """
    # model_construct and model_copy skip enum coercion.
    if not isinstance(request.tax_type, TaxType):
        raise UnknownTaxType(request.tax_type)
    if request.period_end < request.period_start:
        raise InvalidEffectiveDateRange(
            f"filing period ends {request.period_end.isoformat()} before it starts "
            f"{request.period_start.isoformat()}"
        )
    for name in _NON_NEGATIVE_FIELDS:
        value = getattr(request, name)
        if value is not None and (not value.is_finite() or value < 0):
            raise NegativeOrInvalidAmount(name, value)
    base = request.taxable_base
    if base is not None:
        if not base.is_finite():
            raise NegativeOrInvalidAmount("taxable_base", base)
        if base < 0 and request.tax_type is not TaxType.CORPORATE_INCOME_TAX:
            raise NegativeOrInvalidAmount("taxable_base", base)
    for item in request.excise_items:
        for name in ("quantity", "value"):
            value = getattr(item, name)
            if not value.is_finite() or value < 0:
                raise NegativeOrInvalidAmount(f"excise_items[{item.product_code}].{name}", value)
    if request.consecutive_loss_years < 0:
        raise NegativeOrInvalidAmount("consecutive_loss_years", request.consecutive_loss_years)


__all__ = ["check_request"]
