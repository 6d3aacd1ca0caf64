# finance_tracker/trends.py
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence

from finance_tracker.aggregation import ZERO, Aggregation, as_ingested
from finance_tracker.core.models import SkippedRecord
from finance_tracker.core.registry import (
    BUDGET_FILTER,
    EXPENSE_FILTER,
    INVESTMENT,
    is_income,
)
from finance_tracker.errors import DivisionUndefined
from finance_tracker.periods import Period, month_period
from finance_tracker.utils import (
    add_months,
    compact_amount,
    format_month_label,
    parse_amount,
    parse_date,
)

NO_CHANGE = "0%"
NOT_APPLICABLE = "N/A"
DEFAULT_MIN_LABEL_SHARE = Decimal("5")

_HUNDRED = Decimal("100")
_CENTS = Decimal("0.01")


def _round(value: Decimal) -> float:
    return float(value.quantize(_CENTS, rounding=ROUND_HALF_UP))


def ratio(numerator, denominator) -> Decimal:
    """``numerator / denominator`` or :class:`DivisionUndefined` on zero."""
    denominator = parse_amount(denominator)
    if denominator == 0:
        raise DivisionUndefined(f"Cannot divide {numerator} by zero")
    return parse_amount(numerator) / denominator


def change_ratio(current, previous) -> Decimal:
    """Percentage change from ``previous`` to ``current`` as a number."""
    current = parse_amount(current)
    return ratio(current - parse_amount(previous), previous) * _HUNDRED


def percent_change(current, previous) -> str:
    """Render the change from ``previous`` to ``current``.

    ``"0%"`` when both are zero, ``"N/A"`` when only ``previous`` is zero,
    otherwise a signed two-decimal percentage such as ``"+12.50%"``.
    """
    try:
        change = change_ratio(current, previous)
    except DivisionUndefined:
        return NO_CHANGE if parse_amount(current) == 0 else NOT_APPLICABLE
    rounded = change.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = abs(rounded)
    sign = "+" if rounded >= 0 else ""
    return f"{sign}{rounded:.2f}%"


def change_tone(change: str, higher_is_better: bool = False) -> str:
    """Classify a rendered change as ``good``, ``bad`` or ``neutral``.

    For spending an increase is bad; pass ``higher_is_better=True`` for
    income and balance rows, where the polarity flips.
    """
    if change in (NO_CHANGE, NOT_APPLICABLE) or change.lstrip("+-") == "0.00%":
        return "neutral"
    increased = change.startswith("+")
    return "good" if increased == higher_is_better else "bad"


@dataclass(frozen=True)
class ChangeCell:
    text: str
    tone: str

    def to_dict(self) -> dict:
        return {"text": self.text, "tone": self.tone}


def format_change(current, previous, higher_is_better: bool = False) -> ChangeCell:
    text = percent_change(current, previous)
    return ChangeCell(text=text, tone=change_tone(text, higher_is_better))


def period_changes(amounts: Sequence[Decimal], higher_is_better: bool = False) -> List[ChangeCell]:
    """Month-over-month changes for a five-slot period series.

    Slot 0 ("Today") is never compared; slot ``i`` is compared with ``i + 1``
    for the current month and the trailing months.
    """
    return [
        format_change(amounts[i], amounts[i + 1], higher_is_better)
        for i in range(1, len(amounts) - 1)
    ]


@dataclass
class ChartSeries:
    """Chart points plus the records that could not be read."""

    points: list = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)

    def __iter__(self):
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, idx):
        return self.points[idx]

    def to_dict(self) -> dict:
        return {
            "points": [p.to_dict() for p in self.points],
            "skipped": len(self.skipped),
        }


@dataclass(frozen=True)
class DistributionSlice:
    name: str
    value: Decimal
    percentage: Decimal
    show_label: bool

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": float(self.value),
            "percentage": _round(self.percentage),
            "show_label": self.show_label,
        }


def category_distribution(
    transactions,
    exclude_income: bool = True,
    window: Optional[Period] = None,
    min_label_share=DEFAULT_MIN_LABEL_SHARE,
) -> ChartSeries:
    """Pie-chart slices: one per category with its share of the total.

    Categories with a zero total are left out. Slices under
    ``min_label_share`` percent keep ``show_label=False`` but stay in the
    series for the legend.
    """
    ingested = as_ingested(transactions)
    totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in ingested.transactions:
        if window is not None and not window.matches(tx.date):
            continue
        if exclude_income and is_income(tx.category):
            continue
        totals[tx.category] += abs(tx.amount)

    grand_total = sum(totals.values(), ZERO)
    min_share = parse_amount(min_label_share)
    slices = []
    for name, value in totals.items():
        if value == 0:
            continue
        percentage = value / grand_total * _HUNDRED
        slices.append(
            DistributionSlice(
                name=name,
                value=value,
                percentage=percentage,
                show_label=percentage >= min_share,
            )
        )
    slices.sort(key=lambda s: (-s.value, s.name))
    return ChartSeries(points=slices, skipped=list(ingested.skipped))


@dataclass(frozen=True)
class DailyPoint:
    date: date
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "amount": float(self.amount),
            "tick": compact_amount(self.amount),
        }


def daily_trend(transactions, spend_filter=EXPENSE_FILTER, window: Optional[Period] = None) -> ChartSeries:
    """Sparse per-day spend totals, oldest day first.

    Only days that have transactions appear; gaps are not filled with zeros.
    """
    ingested = as_ingested(transactions)
    totals: Dict[date, Decimal] = defaultdict(lambda: ZERO)
    for tx in ingested.transactions:
        if window is not None and not window.matches(tx.date):
            continue
        if not spend_filter.includes(tx.category):
            continue
        totals[tx.date] += abs(tx.amount)
    points = [DailyPoint(date=d, amount=totals[d]) for d in sorted(totals)]
    return ChartSeries(points=points, skipped=list(ingested.skipped))


@dataclass(frozen=True)
class TrendRow:
    category: str
    description: str
    total: Decimal
    values: Dict[str, Decimal]

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "description": self.description,
            "total": float(self.total),
            "values": {label: float(v) for label, v in self.values.items()},
        }


def monthly_trend_by_description(aggregation: Aggregation) -> List[TrendRow]:
    """Grouped-bar rows per non-income ``(category, description)``.

    Each row carries one value per period label and is ordered by its total
    across all periods, largest first.
    """
    rows = []
    labels = aggregation.labels
    for category in aggregation.categories():
        if is_income(category):
            continue
        for description in aggregation.descriptions(category):
            amounts = aggregation.amounts(category, description)
            rows.append(
                TrendRow(
                    category=category,
                    description=description,
                    total=sum(amounts, ZERO),
                    values=dict(zip(labels, amounts)),
                )
            )
    rows.sort(key=lambda r: (-r.total, r.category, r.description))
    return rows


def savings_rate(income, balance) -> Optional[Decimal]:
    """``balance / income`` in percent, ``None`` when there is no income."""
    try:
        return ratio(balance, income) * _HUNDRED
    except DivisionUndefined:
        return None


@dataclass
class MonthStats:
    month: str
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    investments: Decimal = ZERO

    @property
    def savings(self) -> Decimal:
        return self.income - self.expenses

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "income": float(self.income),
            "expenses": float(self.expenses),
            "investments": float(self.investments),
            "savings": float(self.savings),
        }


@dataclass
class MonthlyStats:
    months: List[MonthStats]
    skipped: List[SkippedRecord] = field(default_factory=list)

    def _average(self, attr: str) -> Decimal:
        if not self.months:
            return ZERO
        return sum((getattr(m, attr) for m in self.months), ZERO) / len(self.months)

    @property
    def average_income(self) -> Decimal:
        return self._average("income")

    @property
    def average_expenses(self) -> Decimal:
        return self._average("expenses")

    @property
    def average_savings(self) -> Decimal:
        return self._average("savings")

    @property
    def average_investments(self) -> Decimal:
        return self._average("investments")

    @property
    def savings_rate(self) -> Optional[Decimal]:
        return savings_rate(self.average_income, self.average_savings)

    @property
    def investment_rate(self) -> Optional[Decimal]:
        return savings_rate(self.average_income, self.average_investments)

    def to_dict(self) -> dict:
        def _opt(value):
            return None if value is None else _round(value)

        return {
            "months": [m.to_dict() for m in self.months],
            "average_income": _round(self.average_income),
            "average_expenses": _round(self.average_expenses),
            "savings_rate": _opt(self.savings_rate),
            "investment_rate": _opt(self.investment_rate),
            "skipped": len(self.skipped),
        }


def _recent_months(reference_date, months: int) -> List[Period]:
    anchor = parse_date(reference_date).replace(day=1)
    periods = []
    for offset in range(months):
        first = add_months(anchor, -offset)
        periods.append(month_period(first.year, first.month, label=format_month_label(first)))
    return periods


def monthly_stats(transactions, reference_date, months: int = 6) -> MonthlyStats:
    """Income, spend, investments and savings for the last ``months`` months.

    Newest month first. Investments are reported apart from expenses.
    """
    ingested = as_ingested(transactions)
    periods = _recent_months(reference_date, months)
    stats = [MonthStats(month=p.label) for p in periods]
    investment_key = INVESTMENT.casefold()
    for tx in ingested.transactions:
        for period, entry in zip(periods, stats):
            if not period.matches(tx.date):
                continue
            if is_income(tx.category):
                entry.income += tx.amount
            elif tx.category.casefold() == investment_key:
                entry.investments += tx.amount
            else:
                entry.expenses += tx.amount
            break
    return MonthlyStats(months=stats, skipped=list(ingested.skipped))


@dataclass(frozen=True)
class AverageSpend:
    month: str
    average: Decimal
    transactions: int

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "average": _round(self.average),
            "transactions": self.transactions,
        }


def average_spend(transactions, reference_date, months: int = 3, spend_filter=BUDGET_FILTER) -> List[AverageSpend]:
    """Mean transaction size per month for the last ``months`` months.

    Oldest month first. A month with no qualifying transactions averages 0.
    """
    ingested = as_ingested(transactions)
    results = []
    for period in reversed(_recent_months(reference_date, months)):
        amounts = [
            abs(tx.amount)
            for tx in ingested.transactions
            if period.matches(tx.date) and spend_filter.includes(tx.category)
        ]
        try:
            average = ratio(sum(amounts, ZERO), len(amounts))
        except DivisionUndefined:
            average = ZERO
        results.append(AverageSpend(month=period.label, average=average, transactions=len(amounts)))
    return results
