from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from tax_engine.core.brackets import ZERO, calculate_progressive_tax, round_cents
from tax_engine.core.errors import NegativeOrInvalidAmount, RateKindMismatch, UnknownTaxType
from tax_engine.core.models import (
    ExciseItem,
    LineItem,
    RateKind,
    RateTable,
    RateTableEntry,
    TaxAssessmentRequest,
    TaxpayerCategory,
    TaxType,
    WithholdingPaymentType,
)
from tax_engine.rates.registry import RateRegistry

D = Decimal


@dataclass(frozen=True)
class BaseTax:
    """Base liability plus the component lines it was summed from."""

    amount: D
    components: tuple[LineItem, ...] = ()


def _require_kind(entry: RateTableEntry, *kinds: RateKind) -> RateTableEntry:
    if entry.kind not in kinds:
        raise RateKindMismatch(entry.table, kinds, entry.kind)
    return entry


def _require_amount(name: str, value: D | None) -> D:
    if value is None:
        raise NegativeOrInvalidAmount(name, value, reason=f"{name} is required for this tax type")
    return value


class TaxCalculator:
    """Base liability per tax type, read from an explicit registry snapshot.

    ``NoApplicableRateRule`` from the registry is not caught here.
    """

    def __init__(self, registry: RateRegistry) -> None:
        self.registry = registry

    def progressive(self, taxable_amount: D, category: TaxpayerCategory | None, as_of: date) -> D:
        entry = _require_kind(
            self.registry.resolve(RateTable.INCOME_TAX_BRACKETS, category, as_of), RateKind.BRACKET
        )
        return calculate_progressive_tax(entry.brackets, taxable_amount)

    def corporate(self, taxable_profit: D, category: TaxpayerCategory | None, as_of: date) -> D:
        entry = _require_kind(
            self.registry.resolve(RateTable.CORPORATE_TAX_RATE, category, as_of), RateKind.FLAT
        )
        # A loss year carries no corporate tax; MAT handles the floor.
        return round_cents(max(ZERO, taxable_profit) * entry.rate)

    def gst(self, output_gst: D, input_gst: D) -> D:
        return round_cents(max(ZERO, output_gst - input_gst))

    def _gst_rate(self, category: TaxpayerCategory | None, as_of: date) -> D:
        return _require_kind(self.registry.resolve(RateTable.GST_RATE, category, as_of), RateKind.FLAT).rate

    def gst_on_supplies(
        self,
        taxable_supplies: D,
        category: TaxpayerCategory | None,
        as_of: date,
        *,
        is_export: bool = False,
    ) -> D:
        if is_export:
            return D("0.00")
        return round_cents(taxable_supplies * self._gst_rate(category, as_of))

    def gst_reverse_charge(self, import_value: D, category: TaxpayerCategory | None, as_of: date) -> D:
        """GST self-assessed on imported services; not offset by the input credit floor."""
        return round_cents(import_value * self._gst_rate(category, as_of))

    def withholding(
        self,
        gross_amount: D,
        payment_type: WithholdingPaymentType,
        category: TaxpayerCategory | None,
        as_of: date,
    ) -> D:
        table = RateTable.for_withholding(payment_type)
        entry = _require_kind(self.registry.resolve(table, category, as_of), RateKind.FLAT)
        return round_cents(gross_amount * entry.rate)

    def excise_item(self, item: ExciseItem, category: TaxpayerCategory | None, as_of: date) -> LineItem:
        entry = self.registry.resolve(RateTable.EXCISE_DUTY, category, as_of, product=item.product_code)
        if entry.kind is RateKind.FIXED_AMOUNT:
            amount = round_cents(item.quantity * entry.amount)
            step = f"Specific duty: {item.quantity} x {entry.amount} = {amount}"
        elif entry.kind is RateKind.FLAT:
            amount = round_cents(item.value * entry.rate)
            step = f"Ad valorem duty: {item.value} x {entry.rate} = {amount}"
        else:
            raise RateKindMismatch(entry.table, (RateKind.FIXED_AMOUNT, RateKind.FLAT), entry.kind)
        return LineItem(
            code=f"excise_{item.product_code.lower()}",
            label=entry.label or f"Excise duty on {item.product_code}",
            amount=amount,
            steps=(step,),
        )

    def excise(self, items: tuple[ExciseItem, ...], category: TaxpayerCategory | None, as_of: date) -> BaseTax:
        if not items:
            raise NegativeOrInvalidAmount(
                "excise_items", None, reason="excise duty needs at least one product line"
            )
        lines = tuple(self.excise_item(item, category, as_of) for item in items)
        return BaseTax(amount=sum((line.amount for line in lines), D("0.00")), components=lines)

    def _gst_return(self, request: TaxAssessmentRequest, category: TaxpayerCategory | None, as_of: date) -> BaseTax:
        net = self.gst(
            _require_amount("output_gst", request.output_gst),
            _require_amount("input_gst", request.input_gst),
        )
        lines = [LineItem(code="gst_net", label="Output GST less input credit", amount=net)]
        if request.import_value:
            reverse = self.gst_reverse_charge(request.import_value, category, as_of)
            lines.append(LineItem(code="gst_reverse_charge", label="Reverse charge on imports", amount=reverse))
        return BaseTax(amount=sum((line.amount for line in lines), D("0.00")), components=tuple(lines))

    def assess_base(self, request: TaxAssessmentRequest) -> BaseTax:
        tax_type = request.tax_type
        category = request.taxpayer_category
        as_of = request.period_end
        if tax_type in (TaxType.INDIVIDUAL_INCOME_TAX, TaxType.PAYE):
            return BaseTax(self.progressive(_require_amount("taxable_base", request.taxable_base), category, as_of))
        if tax_type is TaxType.CORPORATE_INCOME_TAX:
            return BaseTax(self.corporate(_require_amount("taxable_base", request.taxable_base), category, as_of))
        if tax_type is TaxType.GST:
            return self._gst_return(request, category, as_of)
        if tax_type is TaxType.WITHHOLDING_TAX:
            if request.payment_type is None:
                raise NegativeOrInvalidAmount(
                    "payment_type", None, reason="withholding tax needs a payment type"
                )
            return BaseTax(
                self.withholding(
                    _require_amount("taxable_base", request.taxable_base),
                    request.payment_type,
                    category,
                    as_of,
                )
            )
        if tax_type is TaxType.EXCISE_DUTY:
            return self.excise(request.excise_items, category, as_of)
        raise UnknownTaxType(tax_type)

    def compute(self, request: TaxAssessmentRequest) -> D:
        return self.assess_base(request).amount


__all__ = ["BaseTax", "TaxCalculator"]
