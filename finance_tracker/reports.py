# finance_tracker/reports.py
"""Report operations consumed by the presentation layer.

Every function takes the full transaction collection (``Transaction``
objects or plain mappings), converts it once, and returns plain data with a
``to_dict()`` that is JSON friendly. Nothing here reads or writes the store.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

from finance_tracker.aggregation import (
    ZERO,
    Aggregation,
    aggregate,
    as_ingested,
    opening_balance,
    spend_total,
)
from finance_tracker.budgets import BudgetReport, budget_status
from finance_tracker.core.models import IngestResult
from finance_tracker.core.registry import (
    BILLS_AND_EMI,
    BUDGET_FILTER,
    EXPENSE_FILTER,
    HOUSEHOLD_FILTER,
    INVESTMENT,
    SpendFilter,
    is_income,
)
from finance_tracker.periods import generate_periods, month_period
from finance_tracker.trends import (
    DEFAULT_MIN_LABEL_SHARE,
    AverageSpend,
    ChangeCell,
    ChartSeries,
    MonthlyStats,
    TrendRow,
    average_spend,
    category_distribution,
    daily_trend,
    monthly_stats,
    monthly_trend_by_description,
    period_changes,
    savings_rate,
)
from finance_tracker.utils import parse_date


def _floats(values) -> List[float]:
    return [float(v) for v in values]


@dataclass
class SummaryRow:
    label: str
    amounts: List[Decimal]
    changes: List[ChangeCell]

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "amounts": _floats(self.amounts),
            "changes": [c.to_dict() for c in self.changes],
        }


@dataclass
class CategorySection:
    category: str
    amounts: List[Decimal]
    changes: List[ChangeCell]
    descriptions: List[SummaryRow] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "amounts": _floats(self.amounts),
            "changes": [c.to_dict() for c in self.changes],
            "descriptions": [d.to_dict() for d in self.descriptions],
        }


@dataclass
class PeriodSummary:
    periods: List[str]
    rows_by_category: List[CategorySection]
    total_income: List[Decimal]
    total_expense: List[Decimal]
    balance: List[Decimal]
    changes: Dict[str, List[ChangeCell]]
    skipped: int = 0

    def category_totals(self) -> Dict[str, List[Decimal]]:
        return {section.category: section.amounts for section in self.rows_by_category}

    def table(self) -> List[SummaryRow]:
        """Flat table rows: each category followed by its descriptions, then
        the total expenditure and balance rows."""
        rows = []
        for section in self.rows_by_category:
            rows.append(SummaryRow(section.category, section.amounts, section.changes))
            rows.extend(section.descriptions)
        rows.append(SummaryRow("Total Expenditure", self.total_expense, self.changes["total_expense"]))
        rows.append(SummaryRow("Balance", self.balance, self.changes["balance"]))
        return rows

    def to_dict(self) -> dict:
        return {
            "periods": list(self.periods),
            "rows_by_category": [s.to_dict() for s in self.rows_by_category],
            "total_income": _floats(self.total_income),
            "total_expense": _floats(self.total_expense),
            "balance": _floats(self.balance),
            "changes": {k: [c.to_dict() for c in v] for k, v in self.changes.items()},
            "skipped": self.skipped,
        }


def summarize(aggregation: Aggregation) -> PeriodSummary:
    """Turn an aggregation into ordered category sections with changes."""
    sections = []
    for category in aggregation.categories():
        higher_is_better = is_income(category)
        totals = aggregation.category_total(category)
        section = CategorySection(
            category=category,
            amounts=totals,
            changes=period_changes(totals, higher_is_better),
        )
        for description in aggregation.descriptions(category):
            amounts = aggregation.amounts(category, description)
            section.descriptions.append(
                SummaryRow(description, amounts, period_changes(amounts, higher_is_better))
            )
        sections.append(section)

    balance = aggregation.balance
    return PeriodSummary(
        periods=aggregation.labels,
        rows_by_category=sections,
        total_income=list(aggregation.total_income),
        total_expense=list(aggregation.total_expense),
        balance=balance,
        changes={
            "total_income": period_changes(aggregation.total_income, higher_is_better=True),
            "total_expense": period_changes(aggregation.total_expense),
            "balance": period_changes(balance, higher_is_better=True),
        },
        skipped=aggregation.skipped_count,
    )


def compute_period_summary(transactions, reference_date) -> PeriodSummary:
    periods = generate_periods(reference_date)
    return summarize(aggregate(transactions, periods))


def compute_opening_balance(transactions, reference_date) -> Decimal:
    return opening_balance(transactions, reference_date)


def compute_category_distribution(
    transactions,
    exclude_income: bool = True,
    window=None,
    min_label_share=DEFAULT_MIN_LABEL_SHARE,
) -> ChartSeries:
    return category_distribution(
        transactions,
        exclude_income=exclude_income,
        window=window,
        min_label_share=min_label_share,
    )


def compute_daily_trend(transactions, window=None, spend_filter: SpendFilter = EXPENSE_FILTER) -> ChartSeries:
    return daily_trend(transactions, spend_filter=spend_filter, window=window)


def compute_monthly_trend(transactions, reference_date) -> List[TrendRow]:
    return monthly_trend_by_description(aggregate(transactions, generate_periods(reference_date)))


def compute_monthly_stats(transactions, reference_date, months: int = 6) -> MonthlyStats:
    return monthly_stats(transactions, reference_date, months=months)


def compute_average_spend(
    transactions, reference_date, months: int = 3, spend_filter: SpendFilter = BUDGET_FILTER
) -> List[AverageSpend]:
    return average_spend(transactions, reference_date, months=months, spend_filter=spend_filter)


def _this_month(ingested: IngestResult, reference_date) -> IngestResult:
    ref = parse_date(reference_date)
    month = month_period(ref.year, ref.month)
    return IngestResult(
        transactions=[tx for tx in ingested.transactions if month.matches(tx.date)],
        skipped=list(ingested.skipped),
    )


def compute_budget_status(
    budgets,
    transactions,
    reference_date,
    categories=None,
    exclusion_set=BUDGET_FILTER,
    thresholds: Optional[Mapping[str, Decimal]] = None,
) -> BudgetReport:
    return budget_status(
        budgets,
        _this_month(as_ingested(transactions), reference_date),
        exclusion_set=exclusion_set,
        categories=categories,
        thresholds=thresholds,
    )


@dataclass
class KeyFigures:
    opening_balance: Decimal
    month_income: Decimal
    investments: Decimal
    emi_payments: Decimal
    household_expenses: Decimal
    total_income: Decimal
    total_expense: Decimal
    skipped: int = 0

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense

    @property
    def savings_rate(self) -> Optional[Decimal]:
        return savings_rate(self.total_income, self.balance)

    def to_dict(self) -> dict:
        rate = self.savings_rate
        return {
            "opening_balance": float(self.opening_balance),
            "month_income": float(self.month_income),
            "investments": float(self.investments),
            "emi_payments": float(self.emi_payments),
            "household_expenses": float(self.household_expenses),
            "total_income": float(self.total_income),
            "total_expense": float(self.total_expense),
            "balance": float(self.balance),
            "savings_rate": None if rate is None else round(float(rate), 1),
            "skipped": self.skipped,
        }


def compute_key_figures(
    transactions,
    reference_date,
    household_filter: SpendFilter = HOUSEHOLD_FILTER,
    emi_category: str = BILLS_AND_EMI,
    emi_keyword: str = "Loan",
) -> KeyFigures:
    """Dashboard cards for the month containing ``reference_date``.

    Loan EMI payments are the bill/EMI category entries whose description
    mentions ``emi_keyword``.
    """
    ingested = as_ingested(transactions)
    ref = parse_date(reference_date)
    month = month_period(ref.year, ref.month)
    in_month = [tx for tx in ingested.transactions if month.matches(tx.date)]

    emi_key = emi_category.casefold()
    emi_payments = sum(
        (
            tx.amount
            for tx in in_month
            if tx.category.casefold() == emi_key and emi_keyword in tx.description
        ),
        ZERO,
    )
    return KeyFigures(
        opening_balance=opening_balance(ingested, ref),
        month_income=sum((tx.amount for tx in in_month if is_income(tx.category)), ZERO),
        investments=sum(
            (tx.amount for tx in in_month if tx.category.casefold() == INVESTMENT.casefold()),
            ZERO,
        ),
        emi_payments=emi_payments,
        household_expenses=spend_total(in_month, household_filter),
        total_income=sum(
            (tx.amount for tx in ingested.transactions if is_income(tx.category)), ZERO
        ),
        total_expense=spend_total(ingested.transactions, EXPENSE_FILTER),
        skipped=ingested.skipped_count,
    )
