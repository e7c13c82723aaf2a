"""
Field coercion helpers shared by every statement parser.

Turns loosely formatted date and amount tokens into canonical values.
"""

import math
import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from ledgerimport.parsers.bank.models import TransactionType

# Shapes are tried in this order; the first one that matches wins, so
# 01/02/2024 is always read as January 2nd. Shapes anchor at the start of
# the token and ignore anything after it, such as a time of day.
DATE_PATTERNS = [
    (re.compile(r'(\d{4})-(\d{1,2})-(\d{1,2})'), ("year", "month", "day")),
    (re.compile(r'(\d{1,2})/(\d{1,2})/(\d{4})'), ("month", "day", "year")),
    (re.compile(r'(\d{1,2})/(\d{1,2})/(\d{2})'), ("month", "day", "year")),
    (re.compile(r'(\d{1,2})-(\d{1,2})-(\d{4})'), ("month", "day", "year")),
    (re.compile(r'(\d{1,2})-(\d{1,2})-(\d{2})'), ("month", "day", "year")),
]

# Two-digit years below this pivot belong to the 2000s
TWO_DIGIT_YEAR_PIVOT = 50

# Day zero of spreadsheet date serials
EXCEL_EPOCH = date(1899, 12, 30)

_AMOUNT_NOISE = re.compile(r'[$,₹€£¥\s]')

# A number optionally followed by a letter marker such as "Cr" or "Dr."
_AMOUNT_TOKEN = re.compile(r'(?P<number>[-+]?\d*\.?\d+(?:[eE][-+]?\d+)?)[A-Za-z]*\.?')


def parse_date(value) -> Optional[str]:
    """
    Parse a date token into an ISO ``YYYY-MM-DD`` string.

    Args:
        value: str, date or datetime

    Returns:
        ISO date string, or None when the token matches no known shape or
        names an impossible day (e.g. month 13).
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None

    token = value.strip()
    if not token:
        return None

    for pattern, order in DATE_PATTERNS:
        match = pattern.match(token)
        if not match:
            continue

        parts = dict(zip(order, (int(g) for g in match.groups())))
        year = parts["year"]
        if year < 100:
            year += 2000 if year < TWO_DIGIT_YEAR_PIVOT else 1900

        try:
            return date(year, parts["month"], parts["day"]).isoformat()
        except ValueError:
            return None

    return None


def parse_signed_amount(value) -> Decimal:
    """
    Parse an amount token keeping its sign.

    Currency glyphs, thousands separators and whitespace are stripped and
    ``(12.50)`` is read as negative. A trailing letter marker is ignored, so
    ``1,234.50 Cr`` is 1234.50. Anything non-numeric parses as zero.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")

    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return Decimal("0")
        return Decimal(str(value))

    cleaned = _AMOUNT_NOISE.sub('', str(value))
    negative = False
    if cleaned.startswith('(') and ')' in cleaned:
        negative = True
        cleaned = cleaned[1:cleaned.index(')')]

    match = _AMOUNT_TOKEN.fullmatch(cleaned)
    if not match:
        return Decimal("0")

    try:
        amount = Decimal(match.group("number"))
    except InvalidOperation:
        return Decimal("0")

    if not amount.is_finite():
        return Decimal("0")

    return -amount if negative else amount


def parse_amount(value) -> Decimal:
    """Parse an amount token into a non-negative magnitude."""
    return abs(parse_signed_amount(value))


def determine_type(debit: Decimal, credit: Decimal) -> TransactionType:
    """Credit wins over debit; a row with neither defaults to expense."""
    if credit > 0:
        return TransactionType.INCOME
    if debit > 0:
        return TransactionType.EXPENSE
    return TransactionType.EXPENSE


def excel_serial_to_date(serial) -> Optional[str]:
    """Convert a spreadsheet day-count serial into an ISO date string."""
    try:
        days = float(serial)
    except (TypeError, ValueError):
        return None

    if not math.isfinite(days):
        return None

    try:
        return (EXCEL_EPOCH + timedelta(days=int(days))).isoformat()
    except OverflowError:
        return None


def clean_cell(value) -> str:
    """Cell value as stripped text; blanks become ''."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()
