"""Currency conversion for dividend entries.

Conversion happens once, when an entry is created or imported. The engine
never converts; it sums the stored EUR fields.
"""

from __future__ import annotations

import uuid

from priznanie.declaration.models import Currency, DividendEntry
from priznanie.tax.money import ZERO, AmountInput, format_money, to_decimal


def rate_for(currency: Currency, usd_rate: AmountInput, czk_rate: AmountInput) -> AmountInput:
    if currency == "EUR":
        return "1"
    return czk_rate if currency == "CZK" else usd_rate


def dividend_to_eur(
    amount_original: AmountInput,
    currency: Currency,
    usd_rate: AmountInput,
    czk_rate: AmountInput,
) -> str:
    """Convert an amount to EUR text; rates are units of currency per 1 EUR.

    A blank, zero or negative rate is treated as 1.
    """
    amount = to_decimal(amount_original)
    if amount == ZERO:
        return "0.00"
    rate = to_decimal(rate_for(currency, usd_rate, czk_rate))
    if rate <= ZERO:
        rate = to_decimal("1")
    return format_money(amount / rate)


def build_dividend_entry(
    *,
    ticker: str,
    country: str,
    country_name: str,
    currency: Currency,
    amount_original: AmountInput,
    withheld_tax_original: AmountInput,
    usd_rate: AmountInput,
    czk_rate: AmountInput,
    entry_id: str | None = None,
) -> DividendEntry:
    """Create a dividend entry with its EUR fields converted."""
    return DividendEntry(
        id=entry_id or uuid.uuid4().hex,
        ticker=ticker,
        country=country,
        country_name=country_name,
        currency=currency,
        amount_original=format_money(to_decimal(amount_original)),
        amount_eur=dividend_to_eur(amount_original, currency, usd_rate, czk_rate),
        withheld_tax_original=format_money(to_decimal(withheld_tax_original)),
        withheld_tax_eur=dividend_to_eur(withheld_tax_original, currency, usd_rate, czk_rate),
    )
