# finance_tracker/aggregation.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Sequence, Tuple

from finance_tracker.core.models import IngestResult, SkippedRecord, Transaction, ingest
from finance_tracker.core.registry import category_sort_key, is_income
from finance_tracker.periods import Period, previous_month
from finance_tracker.utils import parse_date

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
DEFAULT_GROUP_BY = ("category", "description")
_SUPPORTED_GROUPINGS = (("category",), ("category", "description"))


def zeros(count: int) -> List[Decimal]:
    return [ZERO] * count


def add_series(left: Sequence[Decimal], right: Sequence[Decimal]) -> List[Decimal]:
    return [a + b for a, b in zip(left, right)]


@dataclass
class Aggregation:
    """Amounts bucketed per ``(category, description)`` and per period.

    Every amount list has one slot per period, in period order.
    """

    periods: List[Period]
    group_by: Tuple[str, ...] = DEFAULT_GROUP_BY
    groups: Dict[str, Dict[str, List[Decimal]]] = field(default_factory=dict)
    total_income: List[Decimal] = field(default_factory=list)
    total_expense: List[Decimal] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)

    @property
    def balance(self) -> List[Decimal]:
        return [inc - exp for inc, exp in zip(self.total_income, self.total_expense)]

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def labels(self) -> List[str]:
        return [p.label for p in self.periods]

    def categories(self) -> List[str]:
        """Category names in presentation order: Income first, then A-Z."""
        return sorted(self.groups, key=category_sort_key)

    def descriptions(self, category: str) -> List[str]:
        return sorted(self.groups.get(category, {}))

    def amounts(self, category: str, description: str = "") -> List[Decimal]:
        return list(self.groups.get(category, {}).get(description, zeros(len(self.periods))))

    def category_total(self, category: str) -> List[Decimal]:
        totals = zeros(len(self.periods))
        for amounts in self.groups.get(category, {}).values():
            totals = add_series(totals, amounts)
        return totals

    def category_totals(self) -> Dict[str, List[Decimal]]:
        return {category: self.category_total(category) for category in self.categories()}


def _validate_group_by(group_by) -> Tuple[str, ...]:
    key = tuple(group_by)
    if key not in _SUPPORTED_GROUPINGS:
        raise ValueError(
            f"Unsupported group_by {list(key)}; expected one of "
            f"{[list(g) for g in _SUPPORTED_GROUPINGS]}"
        )
    return key


def as_ingested(transactions) -> IngestResult:
    if isinstance(transactions, IngestResult):
        return transactions
    return ingest(transactions)


def aggregate(transactions, periods: Sequence[Period], group_by=DEFAULT_GROUP_BY) -> Aggregation:
    """Bucket transaction amounts into ``periods``.

    A transaction is added to every period it belongs to, so one dated on
    the reference day lands in both "Today" and "Current Month". Records
    whose amount or date cannot be parsed are skipped and kept on the
    result's ``skipped`` list.

    Rows are keyed by the category string exactly as recorded, so
    "Groceries" and "groceries" are two rows. Income detection and spend
    filters ignore case, and so do budget rollups, which merge the two.
    """
    group_by = _validate_group_by(group_by)
    periods = list(periods)
    ingested = as_ingested(transactions)
    result = Aggregation(
        periods=periods,
        group_by=group_by,
        total_income=zeros(len(periods)),
        total_expense=zeros(len(periods)),
        skipped=list(ingested.skipped),
    )

    for tx in ingested.transactions:
        matched = [idx for idx, period in enumerate(periods) if period.matches(tx.date)]
        if not matched:
            continue
        description = tx.description if "description" in group_by else ""
        bucket = result.groups.setdefault(tx.category, {}).setdefault(
            description, zeros(len(periods))
        )
        totals = result.total_income if is_income(tx.category) else result.total_expense
        for idx in matched:
            bucket[idx] += tx.amount
            totals[idx] += tx.amount

    if result.skipped:
        logger.warning(
            "Aggregation skipped %d unparsable transaction(s)", result.skipped_count
        )
    return result


def opening_balance(transactions, reference_date) -> Decimal:
    """Net balance carried over from the calendar month before ``reference_date``.

    Prior month's income minus everything else spent in that month.
    """
    prior = previous_month(parse_date(reference_date))
    result = aggregate(transactions, [prior], group_by=("category",))
    return result.balance[0]


def spend_total(transactions: Sequence[Transaction], spend_filter, period: Period | None = None) -> Decimal:
    """Sum of amounts the filter keeps, optionally limited to one period."""
    total = ZERO
    for tx in transactions:
        if period is not None and not period.matches(tx.date):
            continue
        if spend_filter.includes(tx.category):
            total += tx.amount
    return total
