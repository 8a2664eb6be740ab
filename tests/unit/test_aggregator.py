from datetime import date
from decimal import Decimal

import pytest

from tax_engine.assessment.aggregator import LiabilityAggregator, assess, penalty_newly_assessed
from tax_engine.core.models import (
    AssessmentFailure,
    AssessmentStage,
    PenaltyKind,
    RateTable,
    TaxAssessmentResult,
    TaxpayerCategory,
    TaxType,
)
from tax_engine.rates.registry import RateRegistry
from tax_engine.rates.sierra_leone import penalty_rules, rate_entries
from tests.fixtures.engine_inputs import make_request, penalty_rule

D = Decimal
LATE = date(2025, 4, 10)


def _codes(result: TaxAssessmentResult) -> list[str]:
    return [line.code for line in result.breakdown]


def test_on_time_filing_owes_base_tax_only(registry):
    result = assess(make_request(), registry)
    assert isinstance(result, TaxAssessmentResult)
    assert result.ok is True
    assert result.base_tax == D("45000.00")
    assert result.final_base_liability == D("45000.00")
    assert result.penalty_kind is None
    assert result.total_penalties == D("0.00")
    assert result.interest_amount == D("0.00")
    assert result.total_due == D("45000.00")
    assert result.registry_version == "SL-FA2020"
    assert _codes(result) == ["base_tax", "final_base_liability", "total_due"]


def test_late_filing_adds_penalties_and_interest(registry):
    request = make_request(taxable_base=D("1000000"), filed_date=LATE, assessment_date=LATE)
    result = assess(request, registry)

    assert result.base_tax == D("60000.00")
    assert result.penalty_kind is PenaltyKind.LATE_FILING
    assert result.penalty_amount == D("3000.00")
    assert result.late_payment_penalty == D("1200.00")
    # (60,000 + 3,000) * 0.15 * 10 / 365
    assert result.interest_amount == D("258.90")
    assert result.total_due == D("64458.90")
    assert _codes(result) == [
        "base_tax",
        "final_base_liability",
        "late_filing_penalty",
        "late_payment_penalty",
        "interest",
        "total_due",
    ]


def test_payments_reduce_penalty_base_and_total(registry):
    request = make_request(
        taxable_base=D("1000000"),
        filed_date=LATE,
        assessment_date=LATE,
        amount_paid_to_date=D("60000"),
    )
    result = assess(request, registry)

    # Filing penalty on a settled balance falls back to the minimum.
    assert result.penalty_amount == D("500.00")
    assert result.late_payment_penalty == D("0.00")
    assert result.interest_amount == D("2.05")
    assert result.total_due == D("502.05")
    paid_line = next(line for line in result.breakdown if line.code == "amount_paid")
    assert paid_line.amount == D("-60000.00")


def test_overpayment_never_goes_negative(registry):
    result = assess(make_request(amount_paid_to_date=D("90000")), registry)
    assert result.total_due == D("0.00")


def test_corporate_loss_years_apply_mat(registry):
    request = make_request(
        TaxType.CORPORATE_INCOME_TAX,
        taxable_base=D("-500000"),
        revenue=D("10000000"),
        consecutive_loss_years=2,
    )
    result = assess(request, registry)
    assert result.base_tax == D("0.00")
    assert result.mat_applied is True
    assert result.mat_amount == D("200000.00")
    assert result.minimum_floor_amount is None
    assert result.final_base_liability == D("200000.00")
    assert result.total_due == D("200000.00")
    assert "minimum_alternate_tax" in _codes(result)


def test_floor_applies_to_large_taxpayers(registry):
    request = make_request(
        TaxType.CORPORATE_INCOME_TAX,
        taxpayer_category=TaxpayerCategory.LARGE,
        taxable_base=D("100000"),
        revenue=D("10000000"),
    )
    with_floor = assess(request, registry)
    without_floor = assess(request, registry, apply_minimum_floor=False)

    assert with_floor.minimum_floor_applied is True
    assert with_floor.final_base_liability == D("50000.00")
    assert without_floor.minimum_floor_applied is False
    assert without_floor.final_base_liability == D("25000.00")


def test_mat_and_floor_take_the_larger(registry):
    request = make_request(
        TaxType.CORPORATE_INCOME_TAX,
        taxpayer_category=TaxpayerCategory.LARGE,
        taxable_base=D("-1"),
        revenue=D("10000000"),
        consecutive_loss_years=3,
    )
    result = assess(request, registry)
    assert result.mat_amount == D("200000.00")
    assert result.minimum_floor_amount == D("50000.00")
    assert result.minimum_floor_applied is False
    assert result.final_base_liability == D("200000.00")


@pytest.mark.parametrize(
    "tax_type", [TaxType.PAYE, TaxType.GST, TaxType.WITHHOLDING_TAX, TaxType.EXCISE_DUTY]
)
def test_mat_is_not_applied_outside_income_tax(registry, tax_type):
    request = make_request(
        tax_type,
        taxpayer_category=TaxpayerCategory.LARGE,
        revenue=D("10000000"),
        consecutive_loss_years=4,
    )
    result = assess(request, registry)
    assert result.mat_applied is False
    assert result.minimum_floor_amount is None
    assert result.final_base_liability == result.base_tax


def test_under_declared_gst(registry):
    result = assess(make_request(TaxType.GST, declared_tax=D("90000")), registry)
    assert result.under_declaration_penalty == D("2500.00")
    assert result.total_due == D("102500.00")


def test_validation_failure_stops_before_base_tax(registry):
    outcome = assess(make_request(revenue=D("-1")), registry)
    assert isinstance(outcome, AssessmentFailure)
    assert outcome.ok is False
    assert outcome.stage is AssessmentStage.VALIDATION
    assert outcome.code == "NEGATIVE_OR_INVALID_AMOUNT"


def test_inverted_filing_period_is_rejected(registry):
    outcome = assess(make_request(period_start=date(2025, 1, 1)), registry)
    assert outcome.stage is AssessmentStage.VALIDATION
    assert outcome.code == "INVALID_EFFECTIVE_DATE_RANGE"


def test_negative_income_is_rejected_but_corporate_loss_is_not(registry):
    assert assess(make_request(taxable_base=D("-10")), registry).stage is AssessmentStage.VALIDATION
    corporate = assess(make_request(TaxType.CORPORATE_INCOME_TAX, taxable_base=D("-10")), registry)
    assert corporate.ok is True


def _registry_without(table: RateTable) -> RateRegistry:
    return RateRegistry([e for e in rate_entries() if e.table is not table], penalty_rules())


@pytest.mark.parametrize(
    "request_kwargs,missing,stage",
    [
        ({}, RateTable.INCOME_TAX_BRACKETS, AssessmentStage.BASE_TAX),
        (
            {"tax_type": TaxType.CORPORATE_INCOME_TAX, "consecutive_loss_years": 2},
            RateTable.MAT_RATE,
            AssessmentStage.MINIMUM_ALTERNATE_TAX,
        ),
        ({"filed_date": LATE, "assessment_date": LATE}, RateTable.INTEREST_RATE, AssessmentStage.INTEREST),
    ],
)
def test_missing_rate_reports_failing_stage(request_kwargs, missing, stage):
    outcome = assess(make_request(**request_kwargs), _registry_without(missing))
    assert isinstance(outcome, AssessmentFailure)
    assert outcome.stage is stage
    assert outcome.code == "NO_APPLICABLE_RATE_RULE"


def test_ambiguous_penalty_rules_fail_the_penalty_stage():
    rules = [*penalty_rules(), penalty_rule(value="0.07", label="duplicate income late filing")]
    outcome = assess(
        make_request(filed_date=LATE, assessment_date=LATE), RateRegistry(rate_entries(), rules)
    )
    assert outcome.stage is AssessmentStage.PENALTY
    assert outcome.code == "AMBIGUOUS_RULE_MATCH"
    assert "duplicate" not in outcome.public_summary
    assert outcome.as_dict()["stage"] == "penalty"


def test_reassessment_is_deterministic(registry):
    request = make_request(taxable_base=D("1000000"), filed_date=LATE, assessment_date=LATE)
    aggregator = LiabilityAggregator(registry)
    first, second = aggregator.assess(request), aggregator.assess(request)
    assert first == second
    assert first.fingerprint() == second.fingerprint()
    assert first.fingerprint() != aggregator.assess(make_request()).fingerprint()


def test_penalty_newly_assessed(registry):
    on_time = assess(make_request(), registry)
    late = assess(make_request(filed_date=LATE, assessment_date=LATE), registry)
    assert penalty_newly_assessed(None, late) is True
    assert penalty_newly_assessed(on_time, late) is True
    assert penalty_newly_assessed(late, late) is False
    assert penalty_newly_assessed(None, on_time) is False


def test_penalty_rules_for_other_categories_fail_the_penalty_stage():
    rules = [r for r in penalty_rules() if r.kind is not PenaltyKind.LATE_FILING]
    rules.append(penalty_rule(category=TaxpayerCategory.LARGE, label="large only"))
    request = make_request(taxpayer_category=TaxpayerCategory.SMALL, filed_date=LATE, assessment_date=LATE)
    outcome = assess(request, RateRegistry(rate_entries(), rules))
    assert isinstance(outcome, AssessmentFailure)
    assert outcome.stage is AssessmentStage.PENALTY
    assert outcome.code == "NO_APPLICABLE_RATE_RULE"


def test_unknown_tax_type_fails_validation(registry):
    request = make_request().model_copy(update={"tax_type": "stamp_duty"})
    outcome = assess(request, registry)
    assert isinstance(outcome, AssessmentFailure)
    assert outcome.stage is AssessmentStage.VALIDATION
    assert outcome.code == "UNKNOWN_TAX_TYPE"


def test_penalty_lines_carry_reference_and_steps(registry):
    request = make_request(taxable_base=D("1000000"), filed_date=LATE, assessment_date=LATE)
    lines = {line.code: line for line in assess(request, registry).breakdown}
    filing = lines["late_filing_penalty"]
    assert filing.legal_reference == "Sierra Leone Finance Act 2020, Section 112"
    assert "Days overdue: 10" in filing.steps
    assert lines["late_payment_penalty"].legal_reference == "Sierra Leone Finance Act 2020, Section 115"
    assert lines["base_tax"].steps == ()


def test_gst_imports_add_reverse_charge_lines(registry):
    result = assess(make_request(TaxType.GST, import_value=D("1000000")), registry)
    assert result.base_tax == D("250000.00")
    assert result.total_due == D("250000.00")
    assert _codes(result) == ["base_tax", "gst_net", "gst_reverse_charge", "final_base_liability", "total_due"]


def test_excise_duty_end_to_end(registry):
    request = make_request(
        TaxType.EXCISE_DUTY,
        taxpayer_category=TaxpayerCategory.LARGE,
        revenue=D("10000000"),
        consecutive_loss_years=3,
        filed_date=LATE,
        assessment_date=LATE,
    )
    result = assess(request, registry)
    assert result.base_tax == D("50000.00")
    assert result.mat_applied is False
    assert result.minimum_floor_amount is None
    assert result.penalty_amount == D("7500.00")
    assert result.late_payment_penalty == D("2000.00")
    assert "excise_alc001" in _codes(result)


def test_negative_excise_quantity_fails_validation(registry):
    request = make_request(
        TaxType.EXCISE_DUTY, excise_items=({"product_code": "ALC001", "quantity": D("-1")},)
    )
    outcome = assess(request, registry)
    assert outcome.stage is AssessmentStage.VALIDATION
    assert outcome.code == "NEGATIVE_OR_INVALID_AMOUNT"


def test_unknown_excise_product_fails_base_tax(registry):
    request = make_request(
        TaxType.EXCISE_DUTY, excise_items=({"product_code": "XYZ999", "quantity": D("1")},)
    )
    outcome = assess(request, registry)
    assert outcome.stage is AssessmentStage.BASE_TAX
    assert outcome.code == "NO_APPLICABLE_RATE_RULE"


def test_unlabelled_penalty_rule_uses_default_line_label():
    rules = [r for r in penalty_rules() if r.kind is not PenaltyKind.LATE_FILING]
    rules.append(penalty_rule())
    result = assess(make_request(filed_date=LATE, assessment_date=LATE), RateRegistry(rate_entries(), rules))
    line = next(line for line in result.breakdown if line.code == "late_filing_penalty")
    assert line.label == "Late filing penalty"
