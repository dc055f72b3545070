"""Result record of a tax computation.

One field per form row ("row code"), each a two-decimal amount as text.
The set of rows is closed: adding a row means adding a field here.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from priznanie.tax.money import to_decimal

ZERO_TEXT = "0.00"


class TaxCalculationResult(BaseModel):
    """Every derived figure of the DPFO typ B return.

    All amounts are non-negative and rounded to cents. Rows of a disabled
    section stay at "0.00". ``pril2_pr8`` is the dividend rate as printed
    on the form ("7"), empty when dividends are not declared.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    # Oddiel V: employment
    r38: str = ZERO_TEXT

    # Oddiel VII: mutual funds (Tabuľka 2)
    total_fund_income: str = ZERO_TEXT
    total_fund_expense: str = ZERO_TEXT
    r66: str = ZERO_TEXT
    r67: str = ZERO_TEXT
    r68: str = ZERO_TEXT

    # Oddiel VIII: stock sales (Tabuľka 3)
    total_stock_income: str = ZERO_TEXT
    total_stock_expense: str = ZERO_TEXT
    r69: str = ZERO_TEXT
    r70: str = ZERO_TEXT
    r71: str = ZERO_TEXT
    stock_exemption: str = ZERO_TEXT
    stock_taxable: str = ZERO_TEXT

    # Príloha č.2: dividends
    total_dividends_eur: str = ZERO_TEXT
    total_withheld_tax_eur: str = ZERO_TEXT
    pril2_pr1: str = ZERO_TEXT
    pril2_pr6: str = ZERO_TEXT
    pril2_pr7: str = ZERO_TEXT
    pril2_pr8: str = ""
    pril2_pr9: str = ZERO_TEXT
    pril2_pr13: str = ZERO_TEXT
    pril2_pr14: str = ZERO_TEXT
    pril2_pr15: str = ZERO_TEXT
    pril2_pr16: str = ZERO_TEXT
    pril2_pr17: str = ZERO_TEXT
    pril2_pr18: str = ZERO_TEXT
    pril2_pr28: str = ZERO_TEXT

    # Oddiel IX: non-taxable amounts and tax
    r72: str = ZERO_TEXT
    r73: str = ZERO_TEXT
    r74: str = ZERO_TEXT
    r75: str = ZERO_TEXT
    r77: str = ZERO_TEXT
    r78: str = ZERO_TEXT
    r80: str = ZERO_TEXT
    r81: str = ZERO_TEXT
    r90: str = ZERO_TEXT
    r106: str = ZERO_TEXT
    r115: str = ZERO_TEXT
    r116: str = ZERO_TEXT

    # Bonuses
    r117: str = ZERO_TEXT
    r118: str = ZERO_TEXT
    r119: str = ZERO_TEXT
    r120: str = ZERO_TEXT
    r121: str = ZERO_TEXT
    r122: str = ZERO_TEXT
    r123: str = ZERO_TEXT
    r124: str = ZERO_TEXT
    r126: str = ZERO_TEXT
    r127: str = ZERO_TEXT

    # Settlement
    r131: str = ZERO_TEXT
    r135: str = ZERO_TEXT
    r136: str = ZERO_TEXT
    final_tax_to_pay: str = ZERO_TEXT
    final_tax_refund: str = ZERO_TEXT
    is_refund: bool = False

    # Allocations
    r152: str = ZERO_TEXT
    parent_alloc_per_parent: str = ZERO_TEXT
    parent_alloc_total: str = ZERO_TEXT

    def amount(self, row: str) -> Decimal:
        """Return a row as Decimal."""
        if row not in ROW_CODES:
            raise KeyError(f"Unknown row code: {row}")
        return to_decimal(getattr(self, row))

    def as_decimals(self) -> dict[str, Decimal]:
        return {row: self.amount(row) for row in ROW_CODES}


ROW_CODES: tuple[str, ...] = tuple(
    name
    for name, info in TaxCalculationResult.model_fields.items()
    if info.annotation in (str, "str") and name != "pril2_pr8"
)
