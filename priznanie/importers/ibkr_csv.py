"""Interactive Brokers dividend report importer.

Reads the ``DividendDetail`` section of an IBKR activity statement CSV.
Only ``Summary`` rows are used; ``RevenueComponent`` and ``Total`` rows
repeat the same money and are skipped.

Column layout of a summary row:

    0 DividendDetail, 1 Data, 2 Summary, 3 Currency, 4 Symbol, 5 Conid,
    6 Country, ..., 12 Gross, 13 GrossInBase, 14 GrossInUSD,
    15 Withhold, 16 WithholdInBase, 17 WithholdInUSD

The account base currency is expected to be EUR, so the ``InBase``
columns are the EUR amounts.
"""

from __future__ import annotations

import csv
import uuid
from dataclasses import dataclass
from decimal import Decimal
from io import StringIO

from priznanie.core.logging import get_logger
from priznanie.declaration.countries import alpha2_to_numeric, find_country
from priznanie.declaration.models import Currency, DividendEntry
from priznanie.tax.money import ZERO, format_money, to_decimal

logger = get_logger(__name__)

PREFIX = "DividendDetail,Data,Summary,"
MIN_COLUMNS = 18
MAX_CSV_LENGTH = 600 * 1024


@dataclass
class _Position:
    currency: str
    country_alpha2: str
    gross: Decimal = ZERO
    gross_base: Decimal = ZERO
    withhold: Decimal = ZERO
    withhold_base: Decimal = ZERO


def _number(text: str) -> Decimal:
    return to_decimal(text.replace(",", ""))


def _currency(text: str) -> Currency:
    upper = text.strip().upper()
    if upper in ("EUR", "CZK"):
        return upper  # type: ignore[return-value]
    return "USD"


def parse_ibkr_dividend_csv(text: str) -> list[DividendEntry]:
    """Parse an IBKR dividend CSV into one entry per (symbol, country, currency).

    Withholding is reported as a negative number and is stored as its
    absolute value.

    Args:
        text: Full CSV export.

    Returns:
        Dividend entries in first-seen order; empty when the input is
        larger than 600 KiB or holds no summary rows.
    """
    if len(text) > MAX_CSV_LENGTH:
        logger.warning("ibkr_csv_too_large", length=len(text), limit=MAX_CSV_LENGTH)
        return []

    positions: dict[tuple[str, str, str], _Position] = {}
    lines = [line for line in text.splitlines() if line.startswith(PREFIX)]
    for parts in csv.reader(StringIO("\n".join(lines))):
        if len(parts) < MIN_COLUMNS:
            continue
        symbol = parts[4].strip()
        if not symbol:
            continue
        currency = parts[3].strip() or "USD"
        country_alpha2 = parts[6].strip() or "US"

        position = positions.setdefault(
            (symbol, country_alpha2, currency),
            _Position(currency=currency, country_alpha2=country_alpha2),
        )
        position.gross += _number(parts[12])
        position.gross_base += _number(parts[13])
        position.withhold += _number(parts[15])
        position.withhold_base += _number(parts[16])

    entries = []
    for (symbol, _, _), position in positions.items():
        numeric = alpha2_to_numeric(position.country_alpha2)
        country = find_country(numeric)
        entries.append(
            DividendEntry(
                id=uuid.uuid4().hex,
                ticker=symbol,
                country=numeric,
                country_name=country.name if country else position.country_alpha2,
                currency=_currency(position.currency),
                amount_original=format_money(abs(position.gross)),
                amount_eur=format_money(abs(position.gross_base)),
                withheld_tax_original=format_money(abs(position.withhold)),
                withheld_tax_eur=format_money(abs(position.withhold_base)),
            )
        )

    logger.info("ibkr_csv_parsed", entry_count=len(entries))
    return entries
