"""Tax year-specific constants and thresholds.

This module centralizes the statutory values of the Slovak personal income
tax (zákon č. 595/2003 Z.z.) so that no calculator hardcodes them.

Most allowances are multiples of the subsistence minimum (životné minimum,
ŽM) valid on 1 January of the tax year.

Example:
    >>> from priznanie.tax.year_config import get_tax_year_config
    >>> config = get_tax_year_config(2025)
    >>> print(f"Bracket threshold: {config.bracket_threshold}")
    Bracket threshold: 48441.432
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


def _multiple_of(subsistence_minimum: Decimal, factor: str) -> Decimal:
    # Unrounded; rows derived from these are rounded where they are produced.
    return subsistence_minimum * Decimal(factor)


@dataclass(frozen=True)
class TaxYearConfig:
    """Tax year-specific constants and thresholds.

    All monetary values are Decimal. The dataclass is frozen so a config
    can be shared between concurrent computations.

    Attributes:
        tax_year: The tax year these values apply to.
        subsistence_minimum: Monthly subsistence minimum (ŽM).
        nczd_base: Taxpayer non-taxable amount, 21 x ŽM (§11 ods.2).
        nczd_threshold: Tax base above which the taxpayer allowance phases out.
        nczd_high: Phase-out constant; allowance = nczd_high - base / 4.
        spouse_nczd_base: Spouse allowance below the bracket threshold (§11 ods.3).
        spouse_nczd_high: Spouse allowance constant above the bracket threshold.
        bracket_threshold: Boundary between the 19% and 25% rates (176.8 x ŽM).
        mortgage_cap_cutover: Last contract date that uses the old mortgage cap.
    """

    tax_year: int
    subsistence_minimum: Decimal

    # Non-taxable amounts (nezdaniteľná časť základu dane)
    nczd_base: Decimal
    nczd_threshold: Decimal
    nczd_high: Decimal
    spouse_nczd_base: Decimal
    spouse_nczd_high: Decimal
    pension_savings_cap: Decimal = Decimal("180")

    # Rates
    bracket_threshold: Decimal = Decimal("0")
    rate_lower: Decimal = Decimal("0.19")
    rate_upper: Decimal = Decimal("0.25")
    capital_rate: Decimal = Decimal("0.19")
    dividend_rate: Decimal = Decimal("0.07")
    stock_exemption: Decimal = Decimal("500")

    # Mortgage interest bonus (§33a)
    mortgage_rate: Decimal = Decimal("0.5")
    mortgage_cap_old: Decimal = Decimal("400")
    mortgage_cap_new: Decimal = Decimal("1200")
    mortgage_cap_cutover: date = date(2023, 12, 31)

    # Child bonus (§33)
    child_bonus_under_15: Decimal = Decimal("100")
    child_bonus_15_to_18: Decimal = Decimal("50")
    child_bonus_phase_out_threshold: Decimal = Decimal("2145")
    child_bonus_phase_out_divisor: Decimal = Decimal("10")

    # Allocations (§50, §50aa)
    allocation_rate: Decimal = Decimal("0.02")
    allocation_rate_volunteer: Decimal = Decimal("0.03")
    allocation_minimum: Decimal = Decimal("3")
    parent_allocation_rate: Decimal = Decimal("0.02")
    parent_allocation_minimum: Decimal = Decimal("3")

    # Tax to pay up to this amount is not collected (§38 ods.2)
    small_payment_threshold: Decimal = Decimal("5")

    # ECB annual average exchange rates, units of currency per 1 EUR
    usd_rate: Decimal = Decimal("1.13")
    czk_rate: Decimal = Decimal("25.21")


def _build_config(tax_year: int, subsistence_minimum: str, **overrides: object) -> TaxYearConfig:
    zm = Decimal(subsistence_minimum)
    return TaxYearConfig(
        tax_year=tax_year,
        subsistence_minimum=zm,
        nczd_base=_multiple_of(zm, "21"),
        nczd_threshold=_multiple_of(zm, "92.8"),
        nczd_high=_multiple_of(zm, "44.2"),
        spouse_nczd_base=_multiple_of(zm, "19.2"),
        spouse_nczd_high=_multiple_of(zm, "63.4"),
        bracket_threshold=_multiple_of(zm, "176.8"),
        **overrides,
    )


TAX_YEAR_2025 = _build_config(2025, "273.99")

TAX_YEAR_CONFIGS: dict[int, TaxYearConfig] = {
    2025: TAX_YEAR_2025,
}


def get_tax_year_config(year: int) -> TaxYearConfig:
    """Get tax year configuration for the specified year.

    Args:
        year: The tax year to get configuration for.

    Returns:
        TaxYearConfig for the specified year.

    Raises:
        ValueError: If the tax year is not supported.
    """
    if year not in TAX_YEAR_CONFIGS:
        supported = ", ".join(str(y) for y in sorted(TAX_YEAR_CONFIGS.keys()))
        raise ValueError(
            f"Tax year {year} not supported. Supported years: {supported}"
        )
    return TAX_YEAR_CONFIGS[year]
