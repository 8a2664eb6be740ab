from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable, Sequence

from tax_engine.core.errors import InvalidEffectiveDateRange, NoApplicableRateRule
from tax_engine.core.models import (
    PenaltyKind,
    PenaltyRule,
    RateTable,
    RateTableEntry,
    TaxpayerCategory,
    TaxType,
)

_EntryKey = tuple[RateTable, TaxpayerCategory | None, str | None]
_RuleKey = tuple[TaxType, PenaltyKind]


def _describe_range(effective_from: date, effective_to: date | None) -> str:
    end = effective_to.isoformat() if effective_to else "open"
    return f"{effective_from.isoformat()}..{end}"


def _check_range(label: str, effective_from: date, effective_to: date | None) -> None:
    if effective_to is not None and effective_to < effective_from:
        raise InvalidEffectiveDateRange(
            f"{label} ends before it starts ({_describe_range(effective_from, effective_to)})"
        )


def _overlaps(a_from: date, a_to: date | None, b_from: date, b_to: date | None) -> bool:
    if a_to is not None and a_to < b_from:
        return False
    if b_to is not None and b_to < a_from:
        return False
    return True


class RateRegistry:
    """Immutable, effective-dated view of every rate and penalty table.

    One instance is built per batch window and handed to the calculators
    explicitly. Nothing mutates it after construction, so concurrent
    assessments can share it.
    """

    def __init__(
        self,
        entries: Iterable[RateTableEntry],
        penalty_rules: Iterable[PenaltyRule] = (),
        *,
        version: str = "unversioned",
    ) -> None:
        self._version = version
        grouped: dict[_EntryKey, list[RateTableEntry]] = defaultdict(list)
        for entry in entries:
            _check_range(f"rate table {entry.table.value}", entry.effective_from, entry.effective_to)
            grouped[(entry.table, entry.category, entry.product)].append(entry)
        for key, group in grouped.items():
            group.sort(key=lambda e: e.effective_from)
            self._reject_overlaps(key, group)
        self._entries: dict[_EntryKey, tuple[RateTableEntry, ...]] = {
            key: tuple(group) for key, group in grouped.items()
        }

        rules: dict[_RuleKey, list[PenaltyRule]] = defaultdict(list)
        for rule in penalty_rules:
            _check_range(f"penalty rule {rule.label or rule.kind.value}", rule.effective_from, rule.effective_to)
            rules[(rule.tax_type, rule.kind)].append(rule)
        self._penalty_rules: dict[_RuleKey, tuple[PenaltyRule, ...]] = {
            key: tuple(group) for key, group in rules.items()
        }

    @staticmethod
    def _reject_overlaps(key: _EntryKey, group: Sequence[RateTableEntry]) -> None:
        for previous, current in zip(group, group[1:]):
            if _overlaps(previous.effective_from, previous.effective_to, current.effective_from, current.effective_to):
                table, category, product = key
                name = f"{table.value}[{product}]" if product else table.value
                raise InvalidEffectiveDateRange(
                    f"rate table {name} ({category.value if category else 'general'}) has overlapping "
                    f"entries {_describe_range(previous.effective_from, previous.effective_to)} and "
                    f"{_describe_range(current.effective_from, current.effective_to)}"
                )

    @property
    def version(self) -> str:
        return self._version

    def _active_entry(
        self, table: RateTable, category: TaxpayerCategory | None, product: str | None, as_of: date
    ) -> RateTableEntry | None:
        for entry in self._entries.get((table, category, product), ()):
            if entry.active_on(as_of):
                return entry
        return None

    def find(
        self,
        table: RateTable,
        category: TaxpayerCategory | None,
        as_of: date,
        *,
        product: str | None = None,
    ) -> RateTableEntry | None:
        if category is not None:
            entry = self._active_entry(table, category, product, as_of)
            if entry is not None:
                return entry
        return self._active_entry(table, None, product, as_of)

    def resolve(
        self,
        table: RateTable,
        category: TaxpayerCategory | None,
        as_of: date,
        *,
        product: str | None = None,
    ) -> RateTableEntry:
        entry = self.find(table, category, as_of, product=product)
        if entry is None:
            raise NoApplicableRateRule(table, category, as_of, product)
        return entry

    def penalty_rules(self, tax_type: TaxType, kind: PenaltyKind, as_of: date) -> tuple[PenaltyRule, ...]:
        return tuple(
            rule for rule in self._penalty_rules.get((tax_type, kind), ()) if rule.active_on(as_of)
        )

    def entries(self) -> tuple[RateTableEntry, ...]:
        return tuple(entry for group in self._entries.values() for entry in group)

    def all_penalty_rules(self) -> tuple[PenaltyRule, ...]:
        return tuple(rule for group in self._penalty_rules.values() for rule in group)

    def __repr__(self) -> str:
        return (
            f"RateRegistry(version={self._version!r}, tables={len(self._entries)}, "
            f"penalty_rules={sum(len(g) for g in self._penalty_rules.values())})"
        )


__all__ = ["RateRegistry"]
