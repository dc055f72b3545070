"""Section calculators for the DPFO typ B return.

One pure function per income or relief section. Each takes its section of
the declaration plus whatever cross-section values it depends on as
explicit parameters, and returns a frozen record of Decimal rows that are
already rounded to cents. A disabled section returns its zero record.

Row numbers follow the official form (DPFO typ B, 2025).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from priznanie.declaration.birth_number import (
    monthly_child_bonus_rates,
    parse_birth_number,
)
from priznanie.declaration.models import (
    ChildBonus,
    Dividends,
    Employment,
    Mortgage,
    MutualFunds,
    ParentAllocation,
    Spouse,
    StockSales,
    TwoPercent,
    parse_form_date,
)
from priznanie.tax.money import (
    HUNDRED,
    ZERO,
    add,
    cap,
    floor_zero,
    parse_amount,
    parse_months,
    percent_of,
    round_money,
    subtract_floor,
)
from priznanie.tax.year_config import TaxYearConfig


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class EmploymentRows:
    """Oddiel V rows.

    Attributes:
        r38: Tax base from employment, r.36 - r.37 clamped at zero.
        r75: DDS contributions allowance, capped.
        r131: Tax advances withheld by the employer.
    """

    r38: Decimal = ZERO
    r75: Decimal = ZERO
    r131: Decimal = ZERO


@dataclass(frozen=True)
class DividendRows:
    """Príloha č.2 rows for foreign dividends taxed at 7% (§51e).

    Attributes:
        total_eur: Sum of entry EUR amounts.
        total_withheld_eur: Sum of entry EUR withheld tax.
        pr9: Tax before the foreign credit.
        pr17: Credit for foreign tax, capped by the Slovak tax.
        pr28: Dividend tax carried to r.116.
    """

    total_eur: Decimal = ZERO
    total_withheld_eur: Decimal = ZERO
    pr1: Decimal = ZERO
    pr6: Decimal = ZERO
    pr7: Decimal = ZERO
    pr9: Decimal = ZERO
    pr13: Decimal = ZERO
    pr14: Decimal = ZERO
    pr15: Decimal = ZERO
    pr16: Decimal = ZERO
    pr17: Decimal = ZERO
    pr18: Decimal = ZERO
    pr28: Decimal = ZERO


@dataclass(frozen=True)
class DisposalTotals:
    """Fold over disposal entries.

    Attributes:
        income: Sum of sale amounts.
        expense: Sum of purchase amounts as entered.
        recognized_expense: Sum of purchase amounts capped at each sale, so
            that ``income - recognized_expense == gain``.
        gain: Sum of per-entry gains, each floored at zero.
    """

    income: Decimal = ZERO
    expense: Decimal = ZERO
    recognized_expense: Decimal = ZERO
    gain: Decimal = ZERO


@dataclass(frozen=True)
class FundRows:
    """Oddiel VII rows for mutual fund sales (§7, 19% flat)."""

    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    r66: Decimal = ZERO
    r67: Decimal = ZERO
    r68: Decimal = ZERO
    r106: Decimal = ZERO
    r115: Decimal = ZERO


@dataclass(frozen=True)
class StockRows:
    """Oddiel VIII rows for short-term stock sales (§8).

    Attributes:
        exemption: Part of r.71 exempt under §9 (applied once per return).
        taxable: r.71 minus the exemption, added to the §4 tax base.
    """

    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    r69: Decimal = ZERO
    r70: Decimal = ZERO
    r71: Decimal = ZERO
    exemption: Decimal = ZERO
    taxable: Decimal = ZERO


@dataclass(frozen=True)
class AllowanceRows:
    """Non-taxable parts of the tax base, r.72 to r.78."""

    r72: Decimal = ZERO
    r73: Decimal = ZERO
    r74: Decimal = ZERO
    r75: Decimal = ZERO
    r77: Decimal = ZERO
    r78: Decimal = ZERO


class _Disposal(Protocol):
    purchase_amount: str
    sale_amount: str


# =============================================================================
# Employment
# =============================================================================


def employment_section(employment: Employment, config: TaxYearConfig) -> EmploymentRows:
    """Compute the employment tax base and pass prepayments through."""
    if not employment.enabled:
        return EmploymentRows()

    gross = parse_amount(employment.gross_income)
    insurance = parse_amount(employment.insurance)

    r75 = ZERO
    if employment.pension_savings.enabled:
        contributions = parse_amount(employment.pension_savings.contributions)
        r75 = round_money(cap(contributions, config.pension_savings_cap))

    return EmploymentRows(
        r38=round_money(subtract_floor(gross, insurance)),
        r75=r75,
        r131=round_money(parse_amount(employment.prepayments)),
    )


# =============================================================================
# Dividends
# =============================================================================


def dividends_section(dividends: Dividends, config: TaxYearConfig) -> DividendRows:
    """Sum pre-converted dividend entries and apply the foreign tax credit.

    The credit is capped on the aggregate: pr17 = min(pr16, pr14).
    """
    if not dividends.enabled:
        return DividendRows()

    total = round_money(add(*(parse_amount(e.amount_eur) for e in dividends.entries)))
    withheld = round_money(
        add(*(parse_amount(e.withheld_tax_eur) for e in dividends.entries))
    )

    pr7 = total
    pr9 = round_money(percent_of(pr7, config.dividend_rate))
    pr13 = pr7
    pr15 = round_money(pr13 / pr7 * HUNDRED) if pr7 > ZERO else ZERO
    pr16 = round_money(pr9 * pr15 / HUNDRED)
    pr17 = min(pr16, withheld)
    pr18 = subtract_floor(pr9, pr17)

    return DividendRows(
        total_eur=total,
        total_withheld_eur=withheld,
        pr1=total,
        pr6=total,
        pr7=pr7,
        pr9=pr9,
        pr13=pr13,
        pr14=withheld,
        pr15=pr15,
        pr16=pr16,
        pr17=pr17,
        pr18=pr18,
        pr28=pr18,
    )


# =============================================================================
# Disposals
# =============================================================================


def disposal_totals(entries: Iterable[_Disposal]) -> DisposalTotals:
    """Fold disposal entries; a loss on one entry never offsets another."""
    totals = DisposalTotals()
    for entry in entries:
        sale = parse_amount(entry.sale_amount)
        purchase = parse_amount(entry.purchase_amount)
        totals = DisposalTotals(
            income=totals.income + sale,
            expense=totals.expense + purchase,
            recognized_expense=totals.recognized_expense + min(purchase, sale),
            gain=totals.gain + subtract_floor(sale, purchase),
        )
    return totals


def mutual_funds_section(funds: MutualFunds, config: TaxYearConfig) -> FundRows:
    if not funds.enabled:
        return FundRows()

    totals = disposal_totals(funds.entries)
    r68 = round_money(totals.gain)
    r106 = round_money(percent_of(r68, config.capital_rate))
    return FundRows(
        total_income=round_money(totals.income),
        total_expense=round_money(totals.expense),
        r66=round_money(totals.income),
        r67=round_money(totals.recognized_expense),
        r68=r68,
        r106=r106,
        r115=r106,
    )


def stock_sales_section(stocks: StockSales, config: TaxYearConfig) -> StockRows:
    if not stocks.enabled:
        return StockRows()

    totals = disposal_totals(stocks.entries)
    r71 = round_money(totals.gain)
    exemption = cap(r71, config.stock_exemption)
    return StockRows(
        total_income=round_money(totals.income),
        total_expense=round_money(totals.expense),
        r69=round_money(totals.income),
        r70=round_money(totals.recognized_expense),
        r71=r71,
        exemption=exemption,
        taxable=subtract_floor(r71, exemption),
    )


# =============================================================================
# Mortgage
# =============================================================================


def mortgage_cap(contract_date: str, config: TaxYearConfig) -> Decimal:
    """Select the §33a ceiling by contract date.

    Contracts signed on or before the cutover use the old cap. A missing or
    unreadable date falls back to the new cap.
    """
    signed = parse_form_date(contract_date)
    if signed is not None and signed <= config.mortgage_cap_cutover:
        return config.mortgage_cap_old
    return config.mortgage_cap_new


def mortgage_section(mortgage: Mortgage, config: TaxYearConfig) -> Decimal:
    """Return r.123, 50% of the interest paid up to the applicable cap.

    The months serviced do not pro-rate the bonus, and a missing four-year
    attestation does not suppress it.
    """
    if not mortgage.enabled:
        return ZERO
    interest = parse_amount(mortgage.interest_paid)
    bonus = percent_of(interest, config.mortgage_rate)
    return round_money(cap(bonus, mortgage_cap(mortgage.contract_date, config)))


# =============================================================================
# Non-taxable amounts
# =============================================================================


def taxpayer_allowance(tax_base: Decimal, config: TaxYearConfig) -> Decimal:
    """NCZD on the taxpayer (§11 ods.2)."""
    if tax_base <= ZERO:
        return ZERO
    if tax_base <= config.nczd_threshold:
        return config.nczd_base
    return floor_zero(config.nczd_high - tax_base / 4)


def spouse_allowance(tax_base: Decimal, spouse: Spouse, config: TaxYearConfig) -> Decimal:
    """NCZD on the spouse (§11 ods.3), pro-rated by qualifying months."""
    if not spouse.enabled:
        return ZERO
    months = parse_months(spouse.months)
    if months == 0:
        return ZERO

    own_income = parse_amount(spouse.own_income)
    if tax_base <= config.bracket_threshold:
        allowance = config.spouse_nczd_base - own_income
    else:
        allowance = config.spouse_nczd_high - tax_base / 4 - own_income
    return floor_zero(allowance) * months / 12


def allowances_section(
    r38: Decimal,
    spouse: Spouse,
    r75: Decimal,
    config: TaxYearConfig,
) -> AllowanceRows:
    """Reduce the employment base by the non-taxable amounts (r.72 to r.78)."""
    r72 = r38
    r73 = round_money(taxpayer_allowance(r72, config))
    r74 = round_money(spouse_allowance(r72, spouse, config))
    r77 = min(add(r73, r74, r75), r72)
    return AllowanceRows(
        r72=r72,
        r73=r73,
        r74=r74,
        r75=r75,
        r77=r77,
        r78=subtract_floor(r38, r77),
    )


# =============================================================================
# Tax and bonuses
# =============================================================================


def progressive_tax(tax_base: Decimal, config: TaxYearConfig) -> Decimal:
    """19% up to the bracket threshold, 25% on the remainder (§15)."""
    if tax_base <= ZERO:
        return ZERO
    if tax_base <= config.bracket_threshold:
        return round_money(percent_of(tax_base, config.rate_lower))
    lower = percent_of(config.bracket_threshold, config.rate_lower)
    upper = percent_of(tax_base - config.bracket_threshold, config.rate_upper)
    return round_money(lower + upper)


def child_bonus_section(
    child_bonus: ChildBonus,
    r38: Decimal,
    config: TaxYearConfig,
) -> Decimal:
    """Return r.117, the full child bonus for the claimant (§33).

    Each claimed month pays the age-based rate, reduced by a tenth of the
    amount by which the monthly employment base exceeds the threshold.
    Children whose birth number cannot be read are skipped.
    """
    if not child_bonus.enabled:
        return ZERO

    monthly_base = r38 / 12
    reduction = ZERO
    if monthly_base > config.child_bonus_phase_out_threshold:
        reduction = (
            monthly_base - config.child_bonus_phase_out_threshold
        ) / config.child_bonus_phase_out_divisor

    total = ZERO
    for child in child_bonus.children:
        birth = parse_birth_number(child.birth_number, config.tax_year)
        if birth is None:
            continue
        rates = monthly_child_bonus_rates(birth, config)
        for claimed, rate in zip(child.months, rates):
            if claimed:
                total += subtract_floor(rate, reduction)
    return round_money(total)


# =============================================================================
# Allocations
# =============================================================================


def allocation_amount(
    liability: Decimal,
    two_percent: TwoPercent,
    config: TaxYearConfig,
) -> Decimal:
    """§50 allocation before the liability clamp; zero below the minimum."""
    if not two_percent.enabled:
        return ZERO
    rate = config.allocation_rate_volunteer if two_percent.splnam3per else config.allocation_rate
    amount = percent_of(liability, rate)
    return round_money(amount) if amount >= config.allocation_minimum else ZERO


def parent_allocation_amount(
    liability: Decimal,
    parent_allocation: ParentAllocation,
    config: TaxYearConfig,
) -> Decimal:
    """§50aa allocation for one parent; zero below the minimum."""
    if parent_allocation.parent_count == 0:
        return ZERO
    amount = percent_of(liability, config.parent_allocation_rate)
    return round_money(amount) if amount >= config.parent_allocation_minimum else ZERO
