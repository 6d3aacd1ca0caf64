# finance_tracker/utils.py
from __future__ import annotations

import re
from calendar import monthrange
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Tuple

from finance_tracker.errors import ParseError

# Strip any character that's not a digit, minus or dot
_CLEAN_AMOUNT = re.compile(r"[^\d\-.]")
_DAY_FIRST = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")
_CENTS = Decimal("0.01")

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# (threshold, label) pairs for chart axis ticks, largest first
_COMPACT_STEPS = (
    (500000, ">5L"),
    (450000, ">4.5L"),
    (400000, ">4L"),
    (350000, ">3.5L"),
    (300000, "3L"),
    (250000, "2.5L"),
    (200000, "2.0L"),
    (150000, "1.5L"),
    (100000, "1L"),
    (50000, "50K"),
    (25000, "25K"),
    (10000, "10K"),
    (5000, "5K"),
    (3000, "3K"),
    (1000, "1K"),
)


def parse_amount(value) -> Decimal:
    """Convert a number or a currency string into a ``Decimal``.

    Strings are cleaned of currency glyphs and separators before parsing.
    Anything that does not leave a finite number behind raises
    :class:`ParseError` instead of silently becoming zero.
    """
    if value is None or isinstance(value, bool):
        raise ParseError("amount", value, "missing value")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = _CLEAN_AMOUNT.sub("", value)
        if not any(ch.isdigit() for ch in cleaned):
            raise ParseError("amount", value, "no digits found")
        try:
            amount = Decimal(cleaned)
        except InvalidOperation as exc:
            raise ParseError("amount", value) from exc
    else:
        raise ParseError("amount", value, f"unsupported type {type(value).__name__}")

    if not amount.is_finite():
        raise ParseError("amount", value, "not a finite number")
    return amount


def parse_date(value) -> date:
    """Resolve a calendar date from a date, datetime or string value.

    Strings may be ISO formatted (with or without a time part) or
    ``DD/MM/YYYY``. Time-of-day is discarded.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ParseError("date", value, "unsupported type")

    text = value.strip()
    try:
        if _DAY_FIRST.match(text):
            return datetime.strptime(text, "%d/%m/%Y").date()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text).date()
    except ValueError as exc:
        raise ParseError("date", value) from exc


def _group_digits(whole: str, grouping: str) -> str:
    if grouping == "western":
        return f"{int(whole):,}"
    if len(whole) <= 3:
        return whole
    head, tail = whole[:-3], whole[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_currency(amount, symbol: str = "₹", grouping: str = "indian") -> str:
    """Render ``abs(amount)`` with two decimals, digit grouping and a glyph.

    ``grouping`` is ``"indian"`` (``12,34,567.89``) or ``"western"``
    (``1,234,567.89``). The sign is never part of the result.
    """
    if grouping not in ("indian", "western"):
        raise ValueError(f"Unsupported grouping '{grouping}'.")
    value = abs(parse_amount(amount)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    whole, frac = f"{value:.2f}".split(".")
    return f"{symbol}{_group_digits(whole, grouping)}.{frac}"


def format_date(value: date, pattern: str = "dd/MM/yyyy") -> str:
    """Format a date with the ``dd``, ``MM``, ``yyyy`` and ``yy`` tokens."""
    year = f"{value.year:04d}"
    return (
        pattern.replace("dd", f"{value.day:02d}")
        .replace("MM", f"{value.month:02d}")
        .replace("yyyy", year)
        .replace("yy", year[-2:])
    )


def format_month_year(value: date) -> str:
    """Return a short month label such as ``Oct-26``."""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]}-{value.year % 100:02d}"


def format_month_label(value: date) -> str:
    """Return a long month label such as ``Oct 2026``."""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.year}"


def compact_amount(value) -> str:
    """Short label for a chart axis tick (``1K``, ``2.5L``, ...)."""
    amount = parse_amount(value)
    for threshold, label in _COMPACT_STEPS:
        if amount >= threshold:
            return label
    return str(value)


def add_months(original_date: date, months: int) -> date:
    month_index = original_date.month - 1 + months
    year = original_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(original_date.day, monthrange(year, month)[1])
    return date(year, month, day)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month."""
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])
