"""Decimal arithmetic for tax amounts.

Form fields arrive as decimal-as-text and are edited incrementally, so
parsing is total: blank, malformed and non-finite text reads as zero.
Every calculator routes its arithmetic through these helpers; binary
floating point is never used for money.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWO_PLACES = Decimal("0.01")

AmountInput = str | int | float | Decimal | None


def to_decimal(value: AmountInput) -> Decimal:
    """Parse a decimal-as-text value, returning zero when it is unusable.

    Decimal commas ("1234,50") are accepted because Slovak users type them.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        parsed = value
    else:
        text = str(value).strip().replace("\u00a0", "").replace(" ", "")
        if not text:
            return ZERO
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            parsed = Decimal(text)
        except (InvalidOperation, ValueError, TypeError):
            return ZERO
    if not parsed.is_finite():
        return ZERO
    return parsed


def parse_amount(value: AmountInput) -> Decimal:
    """Parse a monetary amount; negative input is out of range and reads as zero."""
    return floor_zero(to_decimal(value))


def parse_months(value: AmountInput) -> int:
    """Parse a month count, clamped to 0..12."""
    months = to_decimal(value)
    if months <= ZERO:
        return 0
    return min(int(months), 12)


def floor_zero(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


def add(*values: Decimal) -> Decimal:
    return sum(values, ZERO)


def subtract_floor(minuend: Decimal, subtrahend: Decimal) -> Decimal:
    """Return ``minuend - subtrahend`` clamped at zero."""
    return floor_zero(minuend - subtrahend)


def percent_of(value: Decimal, rate: Decimal) -> Decimal:
    """Multiply by a fractional rate (``Decimal("0.19")`` for 19%)."""
    return value * rate


def cap(value: Decimal, ceiling: Decimal) -> Decimal:
    return min(value, ceiling)


def round_money(value: Decimal) -> Decimal:
    """Round to cents using round-half-up."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """Render an amount as fixed two-decimal text ("1234.50")."""
    return f"{round_money(value):.2f}"
