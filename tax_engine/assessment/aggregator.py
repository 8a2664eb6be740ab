from __future__ import annotations

import logging
from decimal import Decimal

from tax_engine.assessment.validate import check_request
from tax_engine.calculators.interest import InterestAccrualCalculator
from tax_engine.calculators.minimum_tax import (
    FloorOutcome,
    MatOutcome,
    MinimumAlternateTaxEvaluator,
    MinimumTaxFloor,
)
from tax_engine.calculators.penalty import PenaltyEngine, PenaltyOutcome
from tax_engine.calculators.tax import BaseTax, TaxCalculator
from tax_engine.core.brackets import ZERO, round_cents
from tax_engine.core.errors import AssessmentError
from tax_engine.core.models import (
    AssessmentFailure,
    AssessmentOutcome,
    AssessmentStage,
    LineItem,
    PenaltyKind,
    TaxAssessmentRequest,
    TaxAssessmentResult,
)
from tax_engine.rates.registry import RateRegistry

D = Decimal

logger = logging.getLogger("tax_engine").getChild("assessment")

_PENALTY_LABELS = {
    PenaltyKind.LATE_FILING: "Late filing penalty",
    PenaltyKind.NON_FILING: "Non-filing penalty",
    PenaltyKind.LATE_PAYMENT: "Late payment penalty",
    PenaltyKind.UNDER_DECLARATION: "Under-declaration penalty",
}


def _penalty_line(outcome: PenaltyOutcome) -> LineItem:
    return LineItem(
        code=f"{outcome.kind.value}_penalty",
        label=outcome.rule.label or _PENALTY_LABELS[outcome.kind],
        amount=outcome.amount,
        legal_reference=outcome.legal_reference,
        steps=outcome.steps,
    )


def _amount(outcome: PenaltyOutcome | None) -> D:
    return outcome.amount if outcome is not None else D("0.00")


class LiabilityAggregator:
    """Runs every calculator for one obligation and assembles the result.

    Calculators raise ``AssessmentError`` subclasses; this is the one place
    they are caught and turned into an ``AssessmentFailure`` naming the
    stage that failed. Later stages do not run after a failure.
    """

    def __init__(self, registry: RateRegistry, *, apply_minimum_floor: bool = True) -> None:
        self.registry = registry
        self.apply_minimum_floor = apply_minimum_floor
        self.tax = TaxCalculator(registry)
        self.mat = MinimumAlternateTaxEvaluator(registry)
        self.floor = MinimumTaxFloor(registry)
        self.penalties = PenaltyEngine(registry)
        self.interest = InterestAccrualCalculator(registry)

    def assess(self, request: TaxAssessmentRequest) -> AssessmentOutcome:
        stage = AssessmentStage.VALIDATION
        try:
            check_request(request)
            category = request.taxpayer_category

            stage = AssessmentStage.BASE_TAX
            base = self.tax.assess_base(request)
            base_tax = base.amount

            stage = AssessmentStage.MINIMUM_ALTERNATE_TAX
            mat = MatOutcome(final_liability=base_tax, mat_applied=False)
            if request.tax_type.is_annual_income_tax:
                mat = self.mat.evaluate(
                    request.revenue,
                    base_tax,
                    request.consecutive_loss_years,
                    category=category,
                    as_of=request.period_end,
                )

            stage = AssessmentStage.MINIMUM_TAX_FLOOR
            floor = FloorOutcome(final_liability=mat.final_liability, floor_applied=False)
            if self.apply_minimum_floor and request.tax_type.is_annual_income_tax:
                floor = self.floor.apply(
                    mat.final_liability, request.revenue, category=category, as_of=request.period_end
                )
            final_liability = floor.final_liability
            paid = round_cents(request.amount_paid_to_date)
            outstanding = max(ZERO, final_liability - paid)

            stage = AssessmentStage.PENALTY
            filing = self.penalties.filing_penalty(
                request.tax_type,
                category,
                due_date=request.due_date,
                filed_date=request.filed_date,
                assessment_date=request.assessment_date,
                liability=outstanding,
            )
            late_payment = self.penalties.late_payment_penalty(
                request.tax_type,
                category,
                due_date=request.due_date,
                assessment_date=request.assessment_date,
                outstanding=outstanding,
            )
            under_declaration = self.penalties.under_declaration_penalty(
                request.tax_type,
                category,
                due_date=request.due_date,
                assessed_liability=final_liability,
                declared_tax=request.declared_tax,
            )

            stage = AssessmentStage.INTEREST
            interest = self.interest.compute(
                final_liability + _amount(filing) - paid,
                request.due_date,
                request.assessment_date,
                category=category,
                as_of=request.due_date,
            )
        except AssessmentError as exc:
            logger.warning(
                "Assessment failed client=%s tax_type=%s stage=%s code=%s: %s",
                request.client_id,
                getattr(request.tax_type, "value", request.tax_type),
                stage.value,
                exc.code,
                exc,
            )
            return AssessmentFailure(client_id=request.client_id, stage=stage, error=exc)

        return self._build_result(
            request, base, mat, floor, paid, filing, late_payment, under_declaration, interest
        )

    def _build_result(
        self,
        request: TaxAssessmentRequest,
        base: BaseTax,
        mat: MatOutcome,
        floor: FloorOutcome,
        paid: D,
        filing: PenaltyOutcome | None,
        late_payment: PenaltyOutcome | None,
        under_declaration: PenaltyOutcome | None,
        interest: D,
    ) -> TaxAssessmentResult:
        base_tax = base.amount
        final_liability = floor.final_liability
        lines = [LineItem(code="base_tax", label="Base tax", amount=base_tax), *base.components]
        if mat.mat_applied and mat.mat_amount is not None:
            lines.append(LineItem(code="minimum_alternate_tax", label="Minimum alternate tax", amount=mat.mat_amount))
        if floor.floor_amount is not None:
            lines.append(LineItem(code="minimum_tax_floor", label="Minimum tax floor", amount=floor.floor_amount))
        lines.append(LineItem(code="final_base_liability", label="Final base liability", amount=final_liability))
        for outcome in (filing, late_payment, under_declaration):
            if outcome is not None:
                lines.append(_penalty_line(outcome))
        if interest > ZERO:
            lines.append(LineItem(code="interest", label="Interest on unpaid balance", amount=interest))
        if paid > ZERO:
            lines.append(LineItem(code="amount_paid", label="Payments to date", amount=-paid))

        gross = final_liability + _amount(filing) + _amount(late_payment) + _amount(under_declaration) + interest
        total_due = round_cents(max(ZERO, gross - paid))
        lines.append(LineItem(code="total_due", label="Total due", amount=total_due))

        return TaxAssessmentResult(
            client_id=request.client_id,
            tax_type=request.tax_type,
            registry_version=self.registry.version,
            base_tax=base_tax,
            mat_applied=mat.mat_applied,
            mat_amount=mat.mat_amount,
            minimum_floor_applied=floor.floor_applied,
            minimum_floor_amount=floor.floor_amount,
            final_base_liability=final_liability,
            penalty_kind=filing.kind if filing is not None else None,
            penalty_amount=_amount(filing),
            late_payment_penalty=_amount(late_payment),
            under_declaration_penalty=_amount(under_declaration),
            interest_amount=interest,
            amount_paid_to_date=paid,
            total_due=total_due,
            breakdown=tuple(lines),
        )


def assess(
    request: TaxAssessmentRequest, registry: RateRegistry, *, apply_minimum_floor: bool = True
) -> AssessmentOutcome:
    return LiabilityAggregator(registry, apply_minimum_floor=apply_minimum_floor).assess(request)


def penalty_newly_assessed(
    previous: TaxAssessmentResult | None, current: TaxAssessmentResult
) -> bool:
    """True when ``current`` is the first assessment carrying a filing penalty."""
    if current.penalty_amount <= ZERO:
        return False
    return previous is None or previous.penalty_amount <= ZERO


__all__ = ["LiabilityAggregator", "assess", "penalty_newly_assessed"]
