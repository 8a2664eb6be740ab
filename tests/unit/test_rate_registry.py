from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from tax_engine.core.errors import InvalidEffectiveDateRange, NoApplicableRateRule
from tax_engine.core.models import (
    PenaltyKind,
    RateKind,
    RateTable,
    RateTableEntry,
    TaxpayerCategory,
    TaxType,
)
from tax_engine.rates.registry import RateRegistry
from tax_engine.rates.sierra_leone import SNAPSHOT_VERSION
from tests.fixtures.engine_inputs import flat_entry, penalty_rule

D = Decimal


def test_exact_category_wins_over_general():
    registry = RateRegistry(
        [
            flat_entry(RateTable.CORPORATE_TAX_RATE, "0.25"),
            flat_entry(RateTable.CORPORATE_TAX_RATE, "0.30", category=TaxpayerCategory.LARGE),
        ]
    )
    as_of = date(2024, 12, 31)
    assert registry.resolve(RateTable.CORPORATE_TAX_RATE, TaxpayerCategory.LARGE, as_of).rate == D("0.30")
    assert registry.resolve(RateTable.CORPORATE_TAX_RATE, TaxpayerCategory.SMALL, as_of).rate == D("0.25")
    assert registry.resolve(RateTable.CORPORATE_TAX_RATE, None, as_of).rate == D("0.25")


def test_missing_table_raises_no_applicable_rule():
    registry = RateRegistry([flat_entry(RateTable.GST_RATE, "0.15")])
    with pytest.raises(NoApplicableRateRule) as excinfo:
        registry.resolve(RateTable.MAT_RATE, TaxpayerCategory.LARGE, date(2024, 12, 31))
    assert excinfo.value.table is RateTable.MAT_RATE
    assert registry.find(RateTable.MAT_RATE, None, date(2024, 12, 31)) is None


def test_no_rule_before_effective_from():
    registry = RateRegistry([flat_entry(RateTable.GST_RATE, "0.15")])
    with pytest.raises(NoApplicableRateRule):
        registry.resolve(RateTable.GST_RATE, None, date(2019, 12, 31))


def test_effective_range_boundaries_are_inclusive():
    registry = RateRegistry(
        [
            flat_entry(RateTable.GST_RATE, "0.15", effective_to=date(2022, 12, 31)),
            RateTableEntry(
                table=RateTable.GST_RATE,
                effective_from=date(2023, 1, 1),
                kind=RateKind.FLAT,
                rate=D("0.18"),
            ),
        ]
    )
    assert registry.resolve(RateTable.GST_RATE, None, date(2022, 12, 31)).rate == D("0.15")
    assert registry.resolve(RateTable.GST_RATE, None, date(2023, 1, 1)).rate == D("0.18")


def test_overlapping_entries_rejected():
    with pytest.raises(InvalidEffectiveDateRange, match="overlapping"):
        RateRegistry(
            [
                flat_entry(RateTable.GST_RATE, "0.15", effective_to=date(2023, 1, 1)),
                RateTableEntry(
                    table=RateTable.GST_RATE,
                    effective_from=date(2023, 1, 1),
                    kind=RateKind.FLAT,
                    rate=D("0.18"),
                ),
            ]
        )


def test_same_range_different_category_is_not_an_overlap():
    registry = RateRegistry(
        [
            flat_entry(RateTable.MINIMUM_TAX_RATE, "0.005", category=TaxpayerCategory.LARGE),
            flat_entry(RateTable.MINIMUM_TAX_RATE, "0.0025", category=TaxpayerCategory.MEDIUM),
        ]
    )
    assert len(registry.entries()) == 2


def test_range_ending_before_start_rejected():
    with pytest.raises(InvalidEffectiveDateRange, match="ends before it starts"):
        RateRegistry([flat_entry(RateTable.GST_RATE, "0.15", effective_to=date(2019, 1, 1))])


def test_penalty_rules_filtered_by_date():
    expired = penalty_rule(effective_to=date(2021, 12, 31), label="old")
    registry = RateRegistry([], [expired])
    assert registry.penalty_rules(TaxType.INDIVIDUAL_INCOME_TAX, PenaltyKind.LATE_FILING, date(2021, 6, 1))
    assert registry.penalty_rules(TaxType.INDIVIDUAL_INCOME_TAX, PenaltyKind.LATE_FILING, date(2022, 1, 1)) == ()
    assert registry.penalty_rules(TaxType.GST, PenaltyKind.LATE_FILING, date(2021, 6, 1)) == ()


def test_entry_requires_value_matching_kind():
    with pytest.raises(ValidationError):
        RateTableEntry(table=RateTable.GST_RATE, effective_from=date(2020, 1, 1), kind=RateKind.FLAT)
    with pytest.raises(ValidationError):
        RateTableEntry(
            table=RateTable.INCOME_TAX_BRACKETS,
            effective_from=date(2020, 1, 1),
            kind=RateKind.BRACKET,
        )


def test_default_registry_is_versioned(registry):
    assert registry.version == SNAPSHOT_VERSION
    assert "SL-FA2020" in repr(registry)
    as_of = date(2024, 12, 31)
    assert registry.resolve(RateTable.WHT_COMMISSION, None, as_of).rate == D("0.05")
    assert registry.find(RateTable.MINIMUM_TAX_RATE, None, as_of) is None
    assert registry.find(RateTable.MINIMUM_TAX_RATE, TaxpayerCategory.LARGE, as_of).rate == D("0.005")


def test_excise_rows_are_keyed_by_product():
    registry = RateRegistry(
        [
            flat_entry(RateTable.EXCISE_DUTY, "0.30", product="COSM001"),
            flat_entry(RateTable.EXCISE_DUTY, "0.10", product="COSM002"),
        ]
    )
    as_of = date(2024, 12, 31)
    assert registry.resolve(RateTable.EXCISE_DUTY, None, as_of, product="COSM002").rate == D("0.10")
    assert registry.find(RateTable.EXCISE_DUTY, None, as_of, product="COSM003") is None


def test_excise_overlap_names_the_product():
    with pytest.raises(InvalidEffectiveDateRange, match=r"excise_duty\[COSM001\]"):
        RateRegistry(
            [
                flat_entry(RateTable.EXCISE_DUTY, "0.30", product="COSM001"),
                flat_entry(RateTable.EXCISE_DUTY, "0.25", product="COSM001"),
            ]
        )


def test_product_code_only_on_excise_rows():
    with pytest.raises(ValidationError):
        flat_entry(RateTable.EXCISE_DUTY, "0.30")
    with pytest.raises(ValidationError):
        flat_entry(RateTable.GST_RATE, "0.15", product="COSM001")


def test_default_excise_rates(registry):
    entry = registry.resolve(RateTable.EXCISE_DUTY, None, date(2024, 12, 31), product="FUEL001")
    assert entry.kind is RateKind.FIXED_AMOUNT
    assert entry.amount == D("3500")
