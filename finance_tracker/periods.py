# finance_tracker/periods.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from finance_tracker.utils import (
    add_months,
    format_date,
    format_month_year,
    month_bounds,
    parse_date,
)

TRAILING_MONTHS = 3
PERIOD_COUNT = 2 + TRAILING_MONTHS


@dataclass(frozen=True)
class Period:
    """A labelled reporting window.

    ``day`` is set for single-day windows; otherwise the period covers the
    whole ``(year, month)``.
    """

    label: str
    year: int
    month: int
    day: Optional[int] = None

    def matches(self, value) -> bool:
        if isinstance(value, datetime):
            value = value.date()
        elif not isinstance(value, date):
            value = parse_date(value)
        if value.year != self.year or value.month != self.month:
            return False
        return self.day is None or value.day == self.day

    __call__ = matches

    @property
    def start(self) -> date:
        return date(self.year, self.month, self.day or 1)

    @property
    def end(self) -> date:
        if self.day is not None:
            return self.start
        return month_bounds(self.year, self.month)[1]


def day_period(value: date, label: str | None = None) -> Period:
    return Period(
        label=label or format_date(value),
        year=value.year,
        month=value.month,
        day=value.day,
    )


def month_period(year: int, month: int, label: str | None = None) -> Period:
    return Period(
        label=label or format_month_year(date(year, month, 1)),
        year=year,
        month=month,
    )


def previous_month(reference_date: date, months: int = 1) -> Period:
    first = add_months(date(reference_date.year, reference_date.month, 1), -months)
    return month_period(first.year, first.month)


def generate_periods(reference_date) -> List[Period]:
    """Return the five comparison windows anchored on ``reference_date``.

    Order: today, the current month, then the three preceding months (most
    recent first). "Today" is contained in "Current Month", so a transaction
    dated on the reference day is counted by both.
    """
    today = parse_date(reference_date)
    periods = [
        day_period(today, label=f"Today ({format_date(today)})"),
        month_period(
            today.year,
            today.month,
            label=f"Current Month ({format_month_year(today)})",
        ),
    ]
    periods.extend(previous_month(today, i) for i in range(1, TRAILING_MONTHS + 1))
    return periods
