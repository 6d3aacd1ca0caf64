import json
from decimal import Decimal

import pytest

from finance_tracker.core.models import Budget
from finance_tracker.errors import ReportInputError
from finance_tracker.periods import month_period
from finance_tracker.reports import (
    compute_budget_status,
    compute_daily_trend,
    compute_key_figures,
    compute_period_summary,
)

from tests.helpers import REF, tx


def test_period_summary_table_layout():
    summary = compute_period_summary(
        [
            tx(REF, "Income", "Salary", 1000),
            tx(REF, "Groceries", "Milk", 200),
            tx(REF, "Groceries", "Vegetables", 50),
        ],
        REF,
    )
    labels = [row.label for row in summary.table()]
    assert labels == [
        "Income",
        "Salary",
        "Groceries",
        "Milk",
        "Vegetables",
        "Total Expenditure",
        "Balance",
    ]
    assert summary.balance[0] == 750
    assert summary.periods[0] == "Today (19/10/2026)"
    assert summary.category_totals()["Groceries"][1] == 250


def test_period_summary_is_idempotent(sample_transactions):
    first = compute_period_summary(sample_transactions, REF)
    second = compute_period_summary(sample_transactions, REF)
    assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())


def test_income_growth_is_good_and_spend_growth_is_bad(sample_transactions):
    summary = compute_period_summary(sample_transactions, REF)
    income = summary.rows_by_category[0]
    assert income.category == "Income"
    # 1000 this month against 900 in September
    assert income.changes[0].text == "+11.11%"
    assert income.changes[0].tone == "good"
    assert summary.changes["total_expense"][0].tone == "bad"
    assert len(summary.changes["balance"]) == 3


def test_period_summary_reports_skipped_records():
    summary = compute_period_summary([tx(REF, "Groceries", "Milk", "abc")], REF)
    assert summary.skipped == 1
    assert summary.total_expense == [0] * 5


def test_period_summary_rejects_non_collection():
    with pytest.raises(ReportInputError):
        compute_period_summary(None, REF)


def test_budget_status_only_counts_reference_month():
    budget = Budget(category_id="1", limit=Decimal("1000"), id="b1", category_name="Groceries")
    report = compute_budget_status(
        [budget],
        [tx(REF, "Groceries", "Milk", 100), tx("2026-09-30", "Groceries", "Milk", 800)],
        REF,
    )
    assert report.rows[0].spent == 100


def test_daily_trend_with_window(sample_transactions):
    series = compute_daily_trend(sample_transactions, window=month_period(2026, 9))
    assert [float(p.amount) for p in series] == [100.0]


def test_key_figures():
    records = [
        tx("2026-09-01", "Income", "Salary", 1000),
        tx("2026-09-02", "Groceries", "Milk", 400),
        tx("2026-10-01", "Income", "Salary", 2000),
        tx("2026-10-02", "Groceries", "Milk", 300),
        tx("2026-10-03", "Recharge/Bill/EMI Payment", "Loan Payment", 500),
        tx("2026-10-04", "Recharge/Bill/EMI Payment", "Electricity", 100),
        tx("2026-10-05", "Investment", "Stocks", 250),
    ]
    figures = compute_key_figures(records, REF)
    assert figures.opening_balance == 600
    assert figures.month_income == 2000
    assert figures.investments == 250
    assert figures.emi_payments == 500
    assert figures.household_expenses == 300
    assert figures.total_income == 3000
    assert figures.total_expense == 1550
    assert figures.balance == 1450
    assert figures.to_dict()["savings_rate"] == 48.3
