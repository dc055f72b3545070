"""Slovak birth number (rodné číslo) parsing and validation.

Format: ``YYMMDD/XXXX`` (10 digits) or ``YYMMDD/XXX`` (9 digits, born
before 1954). Women have 50 added to the month; numbers issued after 2004
may add a further 20 (months 21-32 and 71-82).

The century is resolved against the tax year rather than the wall clock,
so parsing is deterministic for a given filing period.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from priznanie.tax.year_config import TaxYearConfig

_SEPARATORS = re.compile(r"[\s/]")


@dataclass(frozen=True, slots=True)
class BirthNumberCheck:
    """Result of birth number validation; ``error`` is a Slovak message."""

    valid: bool
    error: str | None = None


def _clean(text: str) -> str:
    return _SEPARATORS.sub("", text or "")


def _month_from_code(code: int) -> int | None:
    for offset in (0, 20, 50, 70):
        if 1 <= code - offset <= 12:
            return code - offset
    return None


def _full_year(yy: int, tax_year: int, digits: int) -> int:
    if digits == 9:
        return 1900 + yy
    return 2000 + yy if yy <= tax_year % 100 else 1900 + yy


def parse_birth_number(text: str, tax_year: int) -> date | None:
    """Return the birth date encoded in a birth number, or None if unusable.

    Only the date part is read; the checksum is not verified here.
    """
    digits = _clean(text)
    if len(digits) < 6 or not digits[:6].isdigit():
        return None
    yy, code, day = int(digits[:2]), int(digits[2:4]), int(digits[4:6])
    month = _month_from_code(code)
    if month is None:
        return None
    length = 9 if len(digits) == 9 else 10
    try:
        return date(_full_year(yy, tax_year, length), month, day)
    except ValueError:
        return None


def validate_birth_number(text: str, tax_year: int) -> BirthNumberCheck:
    """Validate the structure, date and checksum of a birth number."""
    if not text or not text.strip():
        return BirthNumberCheck(False, "Rodné číslo je povinné")

    digits = _clean(text)
    if not re.fullmatch(r"\d{9,10}", digits):
        return BirthNumberCheck(False, "Rodné číslo musí mať 9 alebo 10 číslic")

    yy, code, day = int(digits[:2]), int(digits[2:4]), int(digits[4:6])
    month = _month_from_code(code)
    if month is None:
        return BirthNumberCheck(False, "Neplatný mesiac v rodnom čísle")
    if not 1 <= day <= 31:
        return BirthNumberCheck(False, "Neplatný deň v rodnom čísle")

    year = _full_year(yy, tax_year, len(digits))
    if len(digits) == 9 and year >= 1954:
        return BirthNumberCheck(False, "Rodné číslo pred rokom 1954 musí mať 9 číslic")

    try:
        date(year, month, day)
    except ValueError:
        return BirthNumberCheck(False, f"Mesiac {month} nemá {day} dní")

    if len(digits) == 10:
        first_nine = int(digits[:9])
        last_digit = int(digits[9])
        divisible = int(digits) % 11 == 0
        # 1954-1985: remainder 10 was encoded as check digit 0
        legacy = 1954 <= year <= 1985 and first_nine % 11 == 10 and last_digit == 0
        if not divisible and not legacy:
            return BirthNumberCheck(False, "Rodné číslo nie je deliteľné 11")

    return BirthNumberCheck(True)


def age_in_month(birth: date, year: int, month: int) -> int:
    """Age in whole years during ``month`` of ``year`` (never negative)."""
    age = year - birth.year
    if birth.month > month:
        age -= 1
    return max(age, 0)


def monthly_child_bonus_rates(birth: date, config: TaxYearConfig) -> list[Decimal]:
    """Bonus rate for each month of the tax year: under 15, 15 to 17, then none."""
    rates: list[Decimal] = []
    for month in range(1, 13):
        age = age_in_month(birth, config.tax_year, month)
        if age < 15:
            rates.append(config.child_bonus_under_15)
        elif age < 18:
            rates.append(config.child_bonus_15_to_18)
        else:
            rates.append(Decimal("0"))
    return rates
