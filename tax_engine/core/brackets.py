from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

D = Decimal

CENT = D("0.01")
ZERO = D("0")


@dataclass(frozen=True)
class TaxBracket:
    lower: D
    upper: D | None
    rate: D


def round_cents(value: D) -> D:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def check_schedule(brackets: Sequence[TaxBracket]) -> None:
    """Raise ``ValueError`` unless the schedule is contiguous from zero.

    Rates are not required to increase; any non-negative schedule is accepted.
    """
    if not brackets:
        raise ValueError("bracket schedule must not be empty")
    expected_lower = ZERO
    for index, bracket in enumerate(brackets):
        if bracket.lower != expected_lower:
            raise ValueError(
                f"bracket {index} starts at {bracket.lower}, expected {expected_lower}"
            )
        if bracket.rate < ZERO:
            raise ValueError(f"bracket {index} has a negative rate")
        if bracket.upper is None:
            if index != len(brackets) - 1:
                raise ValueError("only the top bracket may be unbounded")
            return
        if bracket.upper <= bracket.lower:
            raise ValueError(f"bracket {index} upper bound must exceed its lower bound")
        expected_lower = bracket.upper


def calculate_progressive_tax(brackets: Iterable[TaxBracket], taxable_amount: D) -> D:
    ti = max(ZERO, taxable_amount)
    tax = ZERO
    for bracket in brackets:
        if bracket.upper is not None and ti > bracket.upper:
            tax += (bracket.upper - bracket.lower) * bracket.rate
            continue
        if ti > bracket.lower:
            tax += (ti - bracket.lower) * bracket.rate
        break
    return round_cents(tax)


__all__ = [
    "CENT",
    "ZERO",
    "TaxBracket",
    "calculate_progressive_tax",
    "check_schedule",
    "round_cents",
]
