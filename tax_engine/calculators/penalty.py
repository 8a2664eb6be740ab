from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from tax_engine.core.brackets import ZERO, round_cents
from tax_engine.core.errors import AmbiguousRuleMatch, NoApplicableRateRule
from tax_engine.core.models import AmountKind, PenaltyCap, PenaltyKind, PenaltyRule, TaxpayerCategory, TaxType
from tax_engine.core.periods import days_between, elapsed_months
from tax_engine.rates.registry import RateRegistry

D = Decimal

# Last day overdue that still counts as late filing; from day 31 the
# obligation is treated as not filed.
NON_FILING_AFTER_DAYS = 30


@dataclass(frozen=True)
class PenaltyOutcome:
    kind: PenaltyKind
    amount: D
    days_late: int
    rule: PenaltyRule
    base: D = ZERO
    periods: int | None = None
    cap_applied: PenaltyCap | None = None
    steps: tuple[str, ...] = ()

    @property
    def legal_reference(self) -> str | None:
        return self.rule.legal_reference


def days_overdue(due_date: date, filed_date: date | None, assessment_date: date) -> int:
    return days_between(due_date, filed_date or assessment_date)


def regime_for(days_late: int) -> PenaltyKind | None:
    if days_late <= 0:
        return None
    if days_late <= NON_FILING_AFTER_DAYS:
        return PenaltyKind.LATE_FILING
    return PenaltyKind.NON_FILING


def _clamp(value: D, rule: PenaltyRule, steps: list[str]) -> tuple[D, PenaltyCap | None]:
    cap = None
    if rule.min_cap is not None and value < rule.min_cap:
        value, cap = rule.min_cap, PenaltyCap.MINIMUM
        steps.append(f"Applied minimum penalty: {round_cents(value)}")
    if rule.max_cap is not None and value > rule.max_cap:
        value, cap = rule.max_cap, PenaltyCap.MAXIMUM
        steps.append(f"Applied maximum penalty cap: {round_cents(value)}")
    return value, cap


class PenaltyEngine:
    def __init__(self, registry: RateRegistry) -> None:
        self.registry = registry

    def select_rule(
        self,
        tax_type: TaxType,
        category: TaxpayerCategory | None,
        kind: PenaltyKind,
        days_late: int,
        as_of: date,
    ) -> PenaltyRule | None:
        """Pick the most specific, highest-priority rule covering ``days_late``.

        Raises ``NoApplicableRateRule`` when no rule for the kind applies to
        the taxpayer's category (or to all categories) on ``as_of``. Rules for
        other categories do not count. Returns ``None`` when applicable rules
        exist but none covers the day count (a grace period).
        """
        rules = [
            r for r in self.registry.penalty_rules(tax_type, kind, as_of) if r.category in (category, None)
        ]
        if not rules:
            raise NoApplicableRateRule(f"{tax_type.value}:{kind.value}", category, as_of)
        covering = [r for r in rules if r.covers(days_late)]
        exact = [r for r in covering if category is not None and r.category == category]
        tier = exact or [r for r in covering if r.category is None]
        if not tier:
            return None
        top = max(r.priority for r in tier)
        winners = [r for r in tier if r.priority == top]
        if len(winners) > 1:
            raise AmbiguousRuleMatch(winners)
        return winners[0]

    def calculate(self, rule: PenaltyRule, base: D, due_date: date, days_late: int) -> PenaltyOutcome:
        """Apply ``rule`` and record each step of the calculation."""
        amount_kind = rule.amount_kind
        base = max(ZERO, base)
        periods = None
        steps = [f"Rule: {rule.label or rule.kind.value}", f"Days overdue: {days_late}"]
        if amount_kind is AmountKind.FIXED_AMOUNT:
            amount = rule.value
            steps.append(f"Fixed penalty: {round_cents(amount)}")
        elif amount_kind is AmountKind.PERCENT_OF_LIABILITY:
            amount = base * rule.value
            steps.append(f"Penalty: {base} x {rule.value} = {round_cents(amount)}")
        elif amount_kind is AmountKind.DAILY_RATE:
            periods = max(0, days_late - rule.min_days_late)
            amount = base * rule.value * D(periods)
            steps.append(f"Days counted: {periods}")
            steps.append(f"Penalty: {base} x {rule.value} x {periods} days = {round_cents(amount)}")
        elif amount_kind is AmountKind.MONTHLY_RATE:
            threshold = due_date + timedelta(days=rule.min_days_late)
            periods = elapsed_months(threshold, due_date + timedelta(days=days_late))
            amount = base * rule.value * D(periods)
            steps.append(f"Months counted: {periods}")
            steps.append(f"Penalty: {base} x {rule.value} x {periods} months = {round_cents(amount)}")
        else:
            raise ValueError(f"Unhandled penalty amount kind {amount_kind!r}")
        amount, cap = _clamp(amount, rule, steps)
        return PenaltyOutcome(
            kind=rule.kind,
            amount=round_cents(amount),
            days_late=days_late,
            rule=rule,
            base=base,
            periods=periods,
            cap_applied=cap,
            steps=tuple(steps),
        )

    def amount_for(self, rule: PenaltyRule, base: D, due_date: date, days_late: int) -> D:
        return self.calculate(rule, base, due_date, days_late).amount

    def _outcome(
        self,
        tax_type: TaxType,
        category: TaxpayerCategory | None,
        kind: PenaltyKind,
        base: D,
        due_date: date,
        days_late: int,
    ) -> PenaltyOutcome | None:
        rule = self.select_rule(tax_type, category, kind, days_late, due_date)
        if rule is None:
            return None
        return self.calculate(rule, base, due_date, days_late)

    def filing_penalty(
        self,
        tax_type: TaxType,
        category: TaxpayerCategory | None,
        *,
        due_date: date,
        filed_date: date | None,
        assessment_date: date,
        liability: D,
    ) -> PenaltyOutcome | None:
        days_late = days_overdue(due_date, filed_date, assessment_date)
        kind = regime_for(days_late)
        if kind is None:
            return None
        return self._outcome(tax_type, category, kind, liability, due_date, days_late)

    def late_payment_penalty(
        self,
        tax_type: TaxType,
        category: TaxpayerCategory | None,
        *,
        due_date: date,
        assessment_date: date,
        outstanding: D,
    ) -> PenaltyOutcome | None:
        days_late = days_between(due_date, assessment_date)
        if outstanding <= ZERO or days_late == 0:
            return None
        return self._outcome(tax_type, category, PenaltyKind.LATE_PAYMENT, outstanding, due_date, days_late)

    def under_declaration_penalty(
        self,
        tax_type: TaxType,
        category: TaxpayerCategory | None,
        *,
        due_date: date,
        assessed_liability: D,
        declared_tax: D | None,
    ) -> PenaltyOutcome | None:
        if declared_tax is None:
            return None
        shortfall = assessed_liability - declared_tax
        if shortfall <= ZERO:
            return None
        outcome = self._outcome(tax_type, category, PenaltyKind.UNDER_DECLARATION, shortfall, due_date, 0)
        if outcome is None:
            return None
        threshold = outcome.rule.threshold_amount
        if threshold is not None and shortfall <= threshold:
            return None
        return outcome


__all__ = [
    "NON_FILING_AFTER_DAYS",
    "PenaltyEngine",
    "PenaltyOutcome",
    "days_overdue",
    "regime_for",
]
