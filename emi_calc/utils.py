"""Utility functions for the EMI calculator.

This module provides helpers for parsing user input into Python data types and
for handling dates, including adding months and normalizing year-month strings
to ``datetime.date`` instances. It uses Python's ``datetime`` module to
calculate month offsets.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation
import calendar

# Shorthand multipliers accepted by ``parse_amount``. "l" is a lakh (100,000)
# and "cr" a crore (10,000,000).
AMOUNT_SUFFIXES = {
    "cr": Decimal("10000000"),
    "k": Decimal("1000"),
    "m": Decimal("1000000"),
    "l": Decimal("100000"),
}


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Returns
    -------
    date
        A date object representing the first day of the specified month.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.strip().split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        return date(year, month, 1)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_label(dt: date) -> str:
    """Return a long month label such as ``"January 2025"``."""
    return f"{calendar.month_name[dt.month]} {dt.year}"


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.strip().replace(",", "")
        result = Decimal(cleaned)
    except (AttributeError, InvalidOperation) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a money amount with an optional shorthand suffix.

    Accepts plain numbers ("2500000", "25,00,000") and shorthand with
    ``k``/``m``/``l``/``cr`` suffixes (e.g. "25l" meaning 2,500,000).
    """
    cleaned = value.strip().lower()
    factor = Decimal("1")
    for suffix, multiplier in AMOUNT_SUFFIXES.items():
        if cleaned.endswith(suffix):
            factor = multiplier
            cleaned = cleaned[: -len(suffix)]
            break
    try:
        return decimal_from_str(cleaned) * factor
    except (ValueError, DecimalException) as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def parse_optional_amount(value: str | None) -> Decimal | None:
    """Like ``parse_amount`` but maps blank input to ``None``."""
    if value is None or not value.strip():
        return None
    return parse_amount(value)


def parse_optional_decimal(value: str | None) -> Decimal | None:
    """Like ``decimal_from_str`` but maps blank input to ``None``."""
    if value is None or not value.strip():
        return None
    return decimal_from_str(value)


def years_to_months(years: Decimal) -> int:
    """Convert a tenure in years to whole months, rounding half up."""
    try:
        return int((years * 12).to_integral_value(rounding=ROUND_HALF_UP))
    except DecimalException as exc:
        raise ValueError(f"Invalid tenure: {years} years") from exc
