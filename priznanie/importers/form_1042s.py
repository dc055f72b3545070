"""IRS Form 1042-S importer.

A 1042-S reports US-source income paid to a foreign person. Only income
code 06 (dividends) is relevant here; the form becomes a single US
dividend entry:

    box 1   income code (06 = dividends)
    box 2   gross income, USD
    box 10  total withholding credit, USD

Some brokers (Schwab) print the recipient copy as a bare data block after
the "Copy B" caption instead of labelled boxes: gross income first, then
the income code, with box 10 as whole dollars and cents on the sixth and
seventh lines.
"""

from __future__ import annotations

import re
from decimal import Decimal
from io import BytesIO

import pdfplumber

from priznanie.core.logging import get_logger
from priznanie.declaration.countries import country_name
from priznanie.declaration.currency import build_dividend_entry
from priznanie.declaration.models import DividendEntry
from priznanie.errors import DocumentImportError
from priznanie.tax.money import ZERO, cap, percent_of, to_decimal
from priznanie.tax.year_config import TAX_YEAR_2025, TaxYearConfig

logger = get_logger(__name__)

MAX_1042S_TEXT_LENGTH = 600 * 1024
US_COUNTRY_CODE = "840"

# Slovakia-US treaty rate; tax withheld above it is not creditable.
US_TREATY_RATE = Decimal("0.15")

_DIVIDEND_CODE_RE = re.compile(r"\b06\b")
_GROSS_RES = (
    re.compile(r"2\s+Gross\s+income\s*\n\s*(\d+\.?\d*)", re.IGNORECASE),
    re.compile(r"Gross\s+income\s*\n\s*(\d+\.?\d*)", re.IGNORECASE),
)
_WITHHOLDING_RES = (
    re.compile(r"10\s+Total\s+withholding\s+credit.*?\n\s*(\d+\.?\d*)", re.IGNORECASE | re.DOTALL),
    re.compile(r"Total\s+withholding\s+credit.*?\n\s*(\d+\.?\d*)", re.IGNORECASE | re.DOTALL),
)
_COPY_B_RE = re.compile(r"Copy\s+B\b", re.IGNORECASE)
_NUMBER_LINE_RE = re.compile(r"\d+(\.\d+)?")


def _first_match(patterns: tuple[re.Pattern[str], ...], text: str) -> Decimal | None:
    for pattern in patterns:
        if match := pattern.search(text):
            return to_decimal(match.group(1))
    return None


def _data_block(text: str) -> list[str]:
    """First run of bare numeric lines after the "Copy B" caption."""
    caption = _COPY_B_RE.search(text)
    if caption is None:
        return []
    values: list[str] = []
    for line in text[caption.end():].splitlines():
        line = line.strip()
        if _NUMBER_LINE_RE.fullmatch(line):
            values.append(line)
        elif values:
            break
    return values


def _extract_amounts(text: str) -> tuple[Decimal, Decimal]:
    gross = _first_match(_GROSS_RES, text)
    withheld = _first_match(_WITHHOLDING_RES, text)
    if gross is None:
        block = _data_block(text)
        if block:
            gross = to_decimal(block[0])
        if len(block) >= 7:
            withheld = to_decimal(f"{block[5]}.{block[6]}")
    return gross or ZERO, withheld or ZERO


def parse_1042s_text(
    text: str, config: TaxYearConfig = TAX_YEAR_2025
) -> DividendEntry | None:
    """Parse the text of a 1042-S into one US dividend entry.

    Withholding is capped at the treaty rate of the gross income. EUR
    amounts are converted at the year's USD rate.

    Args:
        text: Text extracted from the form.
        config: Tax year whose exchange rates are used.

    Returns:
        The entry, or None when the form is not for dividends, has no
        positive gross income, or the text is larger than 600 KiB.
    """
    if len(text) > MAX_1042S_TEXT_LENGTH:
        logger.warning("form_1042s_too_large", length=len(text), limit=MAX_1042S_TEXT_LENGTH)
        return None
    text = text.replace("\r\n", "\n")
    if not _DIVIDEND_CODE_RE.search(text):
        return None
    gross, withheld = _extract_amounts(text)
    if gross <= ZERO:
        return None
    withheld = cap(withheld, percent_of(gross, US_TREATY_RATE))
    return build_dividend_entry(
        ticker="US",
        country=US_COUNTRY_CODE,
        country_name=country_name(US_COUNTRY_CODE),
        currency="USD",
        amount_original=gross,
        withheld_tax_original=withheld,
        usd_rate=config.usd_rate,
        czk_rate=config.czk_rate,
    )


def extract_pdf_text(data: bytes) -> str:
    """Concatenate the text layer of every page of a PDF.

    Raises:
        DocumentImportError: The bytes are not a readable PDF.
    """
    try:
        with pdfplumber.open(BytesIO(data)) as pdf:
            return "\n".join(page.extract_text() or "" for page in pdf.pages)
    except Exception as exc:
        raise DocumentImportError(f"PDF cannot be read: {exc}") from exc


def parse_1042s_pdf(data: bytes, config: TaxYearConfig = TAX_YEAR_2025) -> DividendEntry | None:
    """Parse a 1042-S PDF; see :func:`parse_1042s_text`."""
    return parse_1042s_text(extract_pdf_text(data), config)
