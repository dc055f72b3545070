"""Tax computation for the DPFO typ B return.

``compute_tax`` is a total, pure function of the declaration: the same
declaration always yields the same result, malformed amounts read as zero,
and nothing is read from or written to the outside world.

Flow: employment (Oddiel V) -> capital income (Oddiel VII, VIII) ->
dividends (Príloha č.2) -> non-taxable amounts and tax (Oddiel IX) ->
bonuses -> advances -> settlement -> allocations (Oddiel XII).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from priznanie.core.logging import get_logger
from priznanie.declaration.models import Declaration, coerce_declaration
from priznanie.engine.result import TaxCalculationResult
from priznanie.engine.sections import (
    allocation_amount,
    allowances_section,
    child_bonus_section,
    dividends_section,
    employment_section,
    mortgage_section,
    mutual_funds_section,
    parent_allocation_amount,
    progressive_tax,
    stock_sales_section,
)
from priznanie.tax.money import (
    ZERO,
    add,
    cap,
    format_money,
    parse_amount,
    round_money,
    subtract_floor,
)
from priznanie.tax.year_config import TAX_YEAR_2025, TaxYearConfig

logger = get_logger(__name__)


@dataclass(frozen=True)
class BonusRows:
    """Rows r.117 to r.127: child bonus and mortgage interest bonus."""

    r117: Decimal
    r118: Decimal
    r119: Decimal
    r120: Decimal
    r121: Decimal
    r122: Decimal
    r123: Decimal
    r124: Decimal
    r126: Decimal
    r127: Decimal


@dataclass(frozen=True)
class Settlement:
    """Final balance against the advances withheld.

    Attributes:
        balance: Liability after bonuses minus advances; negative is a refund.
        r135: Tax to pay (amounts up to the small-payment threshold are waived).
        r136: Overpayment to refund.
    """

    balance: Decimal
    r135: Decimal
    r136: Decimal


def bonuses(
    r116: Decimal,
    child_bonus: Decimal,
    paid_by_employer: Decimal,
    mortgage_bonus: Decimal,
) -> BonusRows:
    r118 = subtract_floor(r116, child_bonus)
    r120 = subtract_floor(child_bonus, paid_by_employer)
    return BonusRows(
        r117=child_bonus,
        r118=r118,
        r119=paid_by_employer,
        r120=r120,
        r121=min(r120, r118),
        r122=ZERO,
        r123=mortgage_bonus,
        r124=subtract_floor(r118, mortgage_bonus),
        r126=mortgage_bonus,
        r127=subtract_floor(mortgage_bonus, r118),
    )


def settle(rows: BonusRows, r131: Decimal, config: TaxYearConfig) -> Settlement:
    balance = rows.r118 - rows.r123 + rows.r127 - r131
    r135 = balance if balance > ZERO else ZERO
    if ZERO < r135 <= config.small_payment_threshold:
        r135 = ZERO
    r136 = -balance if balance < ZERO else ZERO
    return Settlement(balance=balance, r135=r135, r136=r136)


def compute_tax(
    declaration: Declaration | Mapping[str, Any],
    config: TaxYearConfig = TAX_YEAR_2025,
) -> TaxCalculationResult:
    """Compute every derived row of the return.

    Args:
        declaration: The declaration, or a mapping in its JSON shape.
        config: Statutory values of the tax year.

    Returns:
        TaxCalculationResult with all rows as two-decimal text.

    Raises:
        DeclarationShapeError: If a mapping does not have the Declaration shape.
    """
    declaration = coerce_declaration(declaration)

    employment = employment_section(declaration.employment, config)
    funds = mutual_funds_section(declaration.mutual_funds, config)
    stocks = stock_sales_section(declaration.stock_sales, config)
    dividends = dividends_section(declaration.dividends, config)
    allowances = allowances_section(
        employment.r38, declaration.spouse, employment.r75, config
    )

    r80 = add(allowances.r78, stocks.taxable)
    r81 = progressive_tax(r80, config)
    r90 = r81
    r116 = add(r90, funds.r115, dividends.pr28)

    paid_by_employer = ZERO
    if declaration.child_bonus.enabled:
        paid_by_employer = round_money(parse_amount(declaration.child_bonus.paid_by_employer))
    bonus_rows = bonuses(
        r116=r116,
        child_bonus=child_bonus_section(declaration.child_bonus, employment.r38, config),
        paid_by_employer=paid_by_employer,
        mortgage_bonus=mortgage_section(declaration.mortgage, config),
    )
    settlement = settle(bonus_rows, employment.r131, config)

    liability = bonus_rows.r124
    r152 = cap(allocation_amount(liability, declaration.two_percent, config), liability)
    per_parent = cap(
        parent_allocation_amount(liability, declaration.parent_allocation, config),
        liability,
    )
    parent_total = cap(per_parent * declaration.parent_allocation.parent_count, liability)

    logger.debug(
        "tax_computed",
        r80=str(r80),
        r116=str(r116),
        r124=str(liability),
        balance=str(settlement.balance),
    )

    return TaxCalculationResult(
        r38=format_money(employment.r38),
        total_fund_income=format_money(funds.total_income),
        total_fund_expense=format_money(funds.total_expense),
        r66=format_money(funds.r66),
        r67=format_money(funds.r67),
        r68=format_money(funds.r68),
        total_stock_income=format_money(stocks.total_income),
        total_stock_expense=format_money(stocks.total_expense),
        r69=format_money(stocks.r69),
        r70=format_money(stocks.r70),
        r71=format_money(stocks.r71),
        stock_exemption=format_money(stocks.exemption),
        stock_taxable=format_money(stocks.taxable),
        total_dividends_eur=format_money(dividends.total_eur),
        total_withheld_tax_eur=format_money(dividends.total_withheld_eur),
        pril2_pr1=format_money(dividends.pr1),
        pril2_pr6=format_money(dividends.pr6),
        pril2_pr7=format_money(dividends.pr7),
        pril2_pr8=str(int(config.dividend_rate * 100)) if declaration.dividends.enabled else "",
        pril2_pr9=format_money(dividends.pr9),
        pril2_pr13=format_money(dividends.pr13),
        pril2_pr14=format_money(dividends.pr14),
        pril2_pr15=format_money(dividends.pr15),
        pril2_pr16=format_money(dividends.pr16),
        pril2_pr17=format_money(dividends.pr17),
        pril2_pr18=format_money(dividends.pr18),
        pril2_pr28=format_money(dividends.pr28),
        r72=format_money(allowances.r72),
        r73=format_money(allowances.r73),
        r74=format_money(allowances.r74),
        r75=format_money(allowances.r75),
        r77=format_money(allowances.r77),
        r78=format_money(allowances.r78),
        r80=format_money(r80),
        r81=format_money(r81),
        r90=format_money(r90),
        r106=format_money(funds.r106),
        r115=format_money(funds.r115),
        r116=format_money(r116),
        r117=format_money(bonus_rows.r117),
        r118=format_money(bonus_rows.r118),
        r119=format_money(bonus_rows.r119),
        r120=format_money(bonus_rows.r120),
        r121=format_money(bonus_rows.r121),
        r122=format_money(bonus_rows.r122),
        r123=format_money(bonus_rows.r123),
        r124=format_money(bonus_rows.r124),
        r126=format_money(bonus_rows.r126),
        r127=format_money(bonus_rows.r127),
        r131=format_money(employment.r131),
        r135=format_money(settlement.r135),
        r136=format_money(settlement.r136),
        final_tax_to_pay=format_money(settlement.r135),
        final_tax_refund=format_money(settlement.r136),
        is_refund=settlement.balance < ZERO,
        r152=format_money(r152),
        parent_alloc_per_parent=format_money(per_parent),
        parent_alloc_total=format_money(parent_total),
    )
