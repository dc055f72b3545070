"""Tests for the per-section calculators."""

from decimal import Decimal

import pytest

from priznanie.declaration.models import (
    ChildBonus,
    ChildEntry,
    DividendEntry,
    Dividends,
    Employment,
    Mortgage,
    MutualFundEntry,
    MutualFunds,
    ParentAllocation,
    PensionSavings,
    Spouse,
    StockEntry,
    StockSales,
    TwoPercent,
)
from priznanie.engine.sections import (
    allocation_amount,
    allowances_section,
    child_bonus_section,
    disposal_totals,
    dividends_section,
    employment_section,
    mortgage_cap,
    mortgage_section,
    mutual_funds_section,
    parent_allocation_amount,
    progressive_tax,
    spouse_allowance,
    stock_sales_section,
    taxpayer_allowance,
)
from priznanie.tax.year_config import TAX_YEAR_2025

D = Decimal
CONFIG = TAX_YEAR_2025


# =============================================================================
# Employment
# =============================================================================


class TestEmploymentSection:
    def test_tax_base_is_gross_minus_insurance(self) -> None:
        rows = employment_section(
            Employment(gross_income="15000", insurance="1500", prepayments="2000"), CONFIG
        )
        assert rows.r38 == D("13500.00")
        assert rows.r131 == D("2000.00")
        assert rows.r75 == D("0")

    def test_insurance_above_gross_floors_at_zero(self) -> None:
        rows = employment_section(Employment(gross_income="1000", insurance="1500"), CONFIG)
        assert rows.r38 == D("0")

    def test_pension_savings_capped(self) -> None:
        employment = Employment(
            gross_income="15000",
            pension_savings=PensionSavings(enabled=True, contributions="240"),
        )
        assert employment_section(employment, CONFIG).r75 == D("180.00")

    def test_pension_savings_below_cap(self) -> None:
        employment = Employment(
            gross_income="15000",
            pension_savings=PensionSavings(enabled=True, contributions="120.50"),
        )
        assert employment_section(employment, CONFIG).r75 == D("120.50")

    def test_pension_savings_ignored_when_not_enabled(self) -> None:
        employment = Employment(
            gross_income="15000",
            pension_savings=PensionSavings(enabled=False, contributions="240"),
        )
        assert employment_section(employment, CONFIG).r75 == D("0")

    def test_disabled_section_is_zero(self) -> None:
        employment = Employment(
            enabled=False,
            gross_income="15000",
            prepayments="2000",
            pension_savings=PensionSavings(enabled=True, contributions="240"),
        )
        rows = employment_section(employment, CONFIG)
        assert (rows.r38, rows.r75, rows.r131) == (D("0"), D("0"), D("0"))


# =============================================================================
# Dividends
# =============================================================================


def _dividends(*pairs: tuple[str, str], enabled: bool = True) -> Dividends:
    return Dividends(
        enabled=enabled,
        entries=tuple(
            DividendEntry(amount_eur=amount, withheld_tax_eur=withheld)
            for amount, withheld in pairs
        ),
    )


class TestDividendsSection:
    def test_credit_capped_by_slovak_tax(self) -> None:
        rows = dividends_section(_dividends(("200", "30"), ("100", "0")), CONFIG)
        assert rows.total_eur == D("300.00")
        assert rows.pr1 == rows.pr6 == rows.pr7 == rows.pr13 == D("300.00")
        assert rows.pr9 == D("21.00")
        assert rows.pr14 == D("30.00")
        assert rows.pr15 == D("100.00")
        assert rows.pr16 == D("21.00")
        assert rows.pr17 == D("21.00")
        assert rows.pr18 == rows.pr28 == D("0.00")

    def test_partial_credit(self) -> None:
        rows = dividends_section(_dividends(("200", "10"), ("100", "0")), CONFIG)
        assert rows.pr17 == D("10.00")
        assert rows.pr28 == D("11.00")

    def test_no_entries(self) -> None:
        rows = dividends_section(_dividends(), CONFIG)
        assert rows.pr15 == D("0")
        assert rows.pr28 == D("0")

    def test_disabled_section_is_zero(self) -> None:
        rows = dividends_section(_dividends(("200", "10"), enabled=False), CONFIG)
        assert rows.total_eur == D("0")
        assert rows.pr28 == D("0")


# =============================================================================
# Disposals
# =============================================================================


class TestDisposals:
    """A loss on one entry never offsets a gain on another."""

    def test_fold_keeps_losses_separate(self) -> None:
        totals = disposal_totals(
            [
                MutualFundEntry(purchase_amount="1000", sale_amount="800"),
                MutualFundEntry(purchase_amount="500", sale_amount="900"),
            ]
        )
        assert totals.income == D("1700")
        assert totals.expense == D("1500")
        assert totals.recognized_expense == D("1300")
        assert totals.gain == D("400")

    def test_mutual_funds_no_netting(self) -> None:
        funds = MutualFunds(
            enabled=True,
            entries=(
                MutualFundEntry(purchase_amount="1000", sale_amount="800"),
                MutualFundEntry(purchase_amount="500", sale_amount="900"),
            ),
        )
        rows = mutual_funds_section(funds, CONFIG)
        assert rows.r66 == D("1700.00")
        assert rows.r67 == D("1300.00")
        assert rows.r68 == D("400.00")
        assert rows.r66 - rows.r67 == rows.r68
        assert rows.total_expense == D("1500.00")
        assert rows.r106 == rows.r115 == D("76.00")

    def test_stock_sales_no_netting(self) -> None:
        stocks = StockSales(
            enabled=True,
            entries=(
                StockEntry(purchase_amount="1000", sale_amount="800"),
                StockEntry(purchase_amount="500", sale_amount="900"),
            ),
        )
        rows = stock_sales_section(stocks, CONFIG)
        assert rows.r71 == D("400.00")
        assert rows.exemption == D("400.00")
        assert rows.taxable == D("0.00")

    def test_stock_exemption_applied_once(self) -> None:
        stocks = StockSales(
            enabled=True,
            entries=(
                StockEntry(purchase_amount="1000", sale_amount="1700"),
                StockEntry(purchase_amount="1000", sale_amount="1500"),
            ),
        )
        rows = stock_sales_section(stocks, CONFIG)
        assert rows.r71 == D("1200.00")
        assert rows.exemption == D("500")
        assert rows.taxable == D("700.00")

    def test_disabled_sections_are_zero(self) -> None:
        entry = (MutualFundEntry(purchase_amount="1", sale_amount="900"),)
        assert mutual_funds_section(MutualFunds(entries=entry), CONFIG).r68 == D("0")
        stock = (StockEntry(purchase_amount="1", sale_amount="900"),)
        assert stock_sales_section(StockSales(entries=stock), CONFIG).r71 == D("0")


# =============================================================================
# Mortgage
# =============================================================================


def _mortgage(interest: str, contract_date: str, enabled: bool = True) -> Mortgage:
    return Mortgage(
        enabled=enabled,
        interest_paid=interest,
        months="12",
        contract_date=contract_date,
    )


class TestMortgage:
    """Contracts signed on or before 31.12.2023 keep the old cap."""

    def test_cutover_day_uses_old_cap(self) -> None:
        assert mortgage_section(_mortgage("2000", "2023-12-31"), CONFIG) == D("400.00")

    def test_day_after_cutover_uses_new_cap(self) -> None:
        assert mortgage_section(_mortgage("2000", "2024-01-01"), CONFIG) == D("1000.00")

    def test_caps_are_distinct(self) -> None:
        assert mortgage_cap("2023-12-31", CONFIG) != mortgage_cap("2024-01-01", CONFIG)

    def test_form_date_layout(self) -> None:
        assert mortgage_section(_mortgage("2000", "31.12.2023"), CONFIG) == D("400.00")

    def test_new_cap_binds(self) -> None:
        assert mortgage_section(_mortgage("3000", "2024-06-01"), CONFIG) == D("1200.00")

    def test_blank_date_uses_new_cap(self) -> None:
        assert mortgage_section(_mortgage("2000", ""), CONFIG) == D("1000.00")

    def test_months_do_not_prorate(self) -> None:
        mortgage = _mortgage("600", "2024-01-01").model_copy(update={"months": "3"})
        assert mortgage_section(mortgage, CONFIG) == D("300.00")

    def test_disabled(self) -> None:
        assert mortgage_section(_mortgage("2000", "2024-01-01", enabled=False), CONFIG) == D("0")


# =============================================================================
# Non-taxable amounts
# =============================================================================


class TestTaxpayerAllowance:
    @pytest.mark.parametrize(
        ("base", "expected"),
        [
            (D("0"), D("0")),
            (D("13500"), D("5753.79")),
            (D("25426.272"), D("5753.79")),
            (D("30000"), D("4610.358")),
            (D("50000"), D("0")),
        ],
    )
    def test_phase_out(self, base: Decimal, expected: Decimal) -> None:
        assert taxpayer_allowance(base, CONFIG) == expected


class TestSpouseAllowance:
    def test_full_year_no_income(self) -> None:
        spouse = Spouse(enabled=True, months="12", own_income="0")
        assert spouse_allowance(D("13500"), spouse, CONFIG) == D("5260.608")

    def test_prorated_by_months(self) -> None:
        spouse = Spouse(enabled=True, months="6", own_income="")
        assert spouse_allowance(D("13500"), spouse, CONFIG) == D("2630.304")

    def test_own_income_reduces_to_zero(self) -> None:
        spouse = Spouse(enabled=True, months="12", own_income="6000")
        assert spouse_allowance(D("13500"), spouse, CONFIG) == D("0")

    def test_above_bracket_threshold(self) -> None:
        spouse = Spouse(enabled=True, months="12")
        assert spouse_allowance(D("50000"), spouse, CONFIG) == D("4870.966")

    def test_zero_months(self) -> None:
        assert spouse_allowance(D("13500"), Spouse(enabled=True, months="0"), CONFIG) == D("0")

    def test_disabled(self) -> None:
        assert spouse_allowance(D("13500"), Spouse(months="12"), CONFIG) == D("0")


class TestAllowancesSection:
    def test_reduces_base(self) -> None:
        rows = allowances_section(D("13500.00"), Spouse(), D("180.00"), CONFIG)
        assert rows.r72 == D("13500.00")
        assert rows.r73 == D("5753.79")
        assert rows.r74 == D("0.00")
        assert rows.r75 == D("180.00")
        assert rows.r77 == D("5933.79")
        assert rows.r78 == D("7566.21")

    def test_total_allowance_capped_by_base(self) -> None:
        rows = allowances_section(D("1000.00"), Spouse(), D("0"), CONFIG)
        assert rows.r77 == D("1000.00")
        assert rows.r78 == D("0.00")

    def test_spouse_row_rounded(self) -> None:
        spouse = Spouse(enabled=True, months="12")
        assert allowances_section(D("13500"), spouse, D("0"), CONFIG).r74 == D("5260.61")


# =============================================================================
# Tax and bonuses
# =============================================================================


class TestProgressiveTax:
    @pytest.mark.parametrize(
        ("base", "expected"),
        [
            (D("0"), D("0")),
            (D("10000"), D("1900.00")),
            (D("7746.21"), D("1471.78")),
            (D("48441.432"), D("9203.87")),
            (D("60000"), D("12093.51")),
        ],
    )
    def test_brackets(self, base: Decimal, expected: Decimal) -> None:
        assert progressive_tax(base, CONFIG) == expected


def _children(*entries: ChildEntry, paid: str = "") -> ChildBonus:
    return ChildBonus(enabled=True, children=entries, paid_by_employer=paid)


class TestChildBonusSection:
    def test_under_fifteen_whole_year(self) -> None:
        bonus = _children(ChildEntry(birth_number="150510/0003"))
        assert child_bonus_section(bonus, D("13500"), CONFIG) == D("1200.00")

    def test_rate_drops_at_fifteen(self) -> None:
        bonus = _children(ChildEntry(birth_number="100701/0004"))
        assert child_bonus_section(bonus, D("13500"), CONFIG) == D("900.00")

    def test_fifteen_to_eighteen(self) -> None:
        bonus = _children(ChildEntry(birth_number="090315/0006"))
        assert child_bonus_section(bonus, D("13500"), CONFIG) == D("600.00")

    def test_only_claimed_months(self) -> None:
        months = [True, True, True] + [False] * 9
        bonus = _children(ChildEntry(birth_number="150510/0003", months=months))
        assert child_bonus_section(bonus, D("13500"), CONFIG) == D("300.00")

    def test_phase_out_above_monthly_threshold(self) -> None:
        # monthly base 2500, reduction (2500 - 2145) / 10 = 35.50
        bonus = _children(ChildEntry(birth_number="150510/0003"))
        assert child_bonus_section(bonus, D("30000"), CONFIG) == D("774.00")

    def test_unreadable_birth_number_skipped(self) -> None:
        bonus = _children(ChildEntry(birth_number="??"), ChildEntry(birth_number="150510/0003"))
        assert child_bonus_section(bonus, D("13500"), CONFIG) == D("1200.00")

    def test_disabled(self) -> None:
        bonus = ChildBonus(children=(ChildEntry(birth_number="150510/0003"),))
        assert child_bonus_section(bonus, D("13500"), CONFIG) == D("0")


# =============================================================================
# Allocations
# =============================================================================


class TestAllocations:
    def test_two_percent(self) -> None:
        two_percent = TwoPercent(enabled=True, ico="12345678")
        assert allocation_amount(D("1471.78"), two_percent, CONFIG) == D("29.44")

    def test_volunteer_three_percent(self) -> None:
        two_percent = TwoPercent(enabled=True, splnam3per=True)
        assert allocation_amount(D("1471.78"), two_percent, CONFIG) == D("44.15")

    def test_below_minimum_is_zero(self) -> None:
        two_percent = TwoPercent(enabled=True)
        assert allocation_amount(D("100"), two_percent, CONFIG) == D("0")

    def test_disabled(self) -> None:
        assert allocation_amount(D("1471.78"), TwoPercent(), CONFIG) == D("0")

    def test_parent_allocation(self) -> None:
        parents = ParentAllocation(choice="both")
        assert parent_allocation_amount(D("1471.78"), parents, CONFIG) == D("29.44")
        assert parents.parent_count == 2

    def test_no_parent(self) -> None:
        assert parent_allocation_amount(D("1471.78"), ParentAllocation(), CONFIG) == D("0")
