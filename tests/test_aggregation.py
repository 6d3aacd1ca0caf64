from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.aggregation import aggregate, opening_balance, spend_total
from finance_tracker.core.models import ingest
from finance_tracker.core.registry import EXPENSE_FILTER, HOUSEHOLD_FILTER, is_income
from finance_tracker.periods import generate_periods

from tests.helpers import REF, tx


def _aggregate(records, reference=REF, **kwargs):
    return aggregate(records, generate_periods(reference), **kwargs)


def test_basic_split_on_reference_day():
    result = _aggregate(
        [
            tx(REF, "Income", "Salary", 1000),
            tx(REF, "Groceries", "Milk", 200),
            tx(REF, "Groceries", "Vegetables", 50),
        ]
    )
    for idx in (0, 1):
        assert result.total_income[idx] == Decimal("1000")
        assert result.category_total("Groceries")[idx] == Decimal("250")
        assert result.total_expense[idx] == Decimal("250")
        assert result.balance[idx] == Decimal("750")
    assert result.total_expense[2:] == [0, 0, 0]


def test_expense_total_equals_sum_of_non_income_categories(sample_transactions):
    result = _aggregate(sample_transactions)
    for idx in range(len(result.periods)):
        expected = sum(
            result.category_total(c)[idx] for c in result.categories() if not is_income(c)
        )
        assert result.total_expense[idx] == expected
        assert result.balance[idx] == result.total_income[idx] - result.total_expense[idx]


def test_category_total_equals_sum_of_descriptions(sample_transactions):
    result = _aggregate(sample_transactions)
    groceries = result.category_total("Groceries")
    milk = result.amounts("Groceries", "Milk")
    veg = result.amounts("Groceries", "Vegetables")
    assert groceries == [m + v for m, v in zip(milk, veg)]


def test_reference_day_transaction_moves_today_and_month_together():
    base = [tx("2026-10-03", "Groceries", "Milk", 10)]
    before = _aggregate(base)
    after = _aggregate(base + [tx(REF, "Groceries", "Milk", 5)])
    assert after.total_expense[0] - before.total_expense[0] == 5
    assert after.total_expense[1] - before.total_expense[1] == 5
    assert after.total_expense[2:] == before.total_expense[2:]


def test_previous_month_transactions_only_hit_their_month():
    result = _aggregate([tx("2026-09-30", "Groceries", "Milk", 70)])
    assert result.total_expense == [0, 0, 70, 0, 0]


def test_transactions_outside_every_window_are_ignored(sample_transactions):
    result = _aggregate(sample_transactions)
    assert all(amount < 999 for amount in result.amounts("Groceries", "Milk"))


def test_empty_input_gives_zero_series():
    result = _aggregate([])
    assert result.total_income == [0] * 5
    assert result.total_expense == [0] * 5
    assert result.balance == [0] * 5
    assert result.categories() == []


def test_unknown_category_is_aggregated_as_expense():
    result = _aggregate([tx(REF, "Pets", "Vet", 30)])
    assert result.categories() == ["Pets"]
    assert result.total_expense[1] == 30


def test_negative_income_is_still_income():
    result = _aggregate([tx(REF, "income", "Refund", -500)])
    assert result.total_income[0] == 500
    assert result.total_expense[0] == 0


def test_category_ordering_puts_income_first():
    result = _aggregate(
        [
            tx(REF, "Zoo", "Tickets", 1),
            tx(REF, "groceries", "Tea", 1),
            tx(REF, "Income", "Salary", 1),
            tx(REF, "Food", "Lunch", 1),
        ]
    )
    assert result.categories() == ["Income", "Food", "groceries", "Zoo"]


def test_group_by_category_only():
    result = _aggregate(
        [tx(REF, "Groceries", "Milk", 1), tx(REF, "Groceries", "Tea", 2)],
        group_by=("category",),
    )
    assert result.descriptions("Groceries") == [""]
    assert result.amounts("Groceries")[0] == 3


def test_unsupported_group_by_raises():
    with pytest.raises(ValueError):
        _aggregate([], group_by=("description",))


def test_unparsable_amount_is_skipped_not_fatal():
    result = _aggregate([tx(REF, "Groceries", "Milk", "abc"), tx(REF, "Groceries", "Tea", 5)])
    assert result.skipped_count == 1
    assert result.total_expense[0] == 5


def test_aggregation_is_idempotent(sample_transactions):
    first = _aggregate(sample_transactions)
    second = _aggregate(sample_transactions)
    assert first.groups == second.groups
    assert first.balance == second.balance


def test_opening_balance_uses_previous_month():
    records = [
        tx("2026-09-01", "Income", "Salary", 1000),
        tx("2026-09-02", "Groceries", "Milk", 300),
        tx("2026-09-03", "Investment", "Stocks", 200),
        tx("2026-10-01", "Groceries", "Milk", 5000),
    ]
    assert opening_balance(records, REF) == Decimal("500")
    assert opening_balance([], date(2026, 1, 5)) == 0


def test_spend_total_applies_filter():
    ingested = ingest(
        [
            tx(REF, "Groceries", "Milk", 10),
            tx(REF, "Investment", "Stocks", 100),
            tx(REF, "Income", "Salary", 1000),
        ]
    )
    assert spend_total(ingested.transactions, EXPENSE_FILTER) == 110
    assert spend_total(ingested.transactions, HOUSEHOLD_FILTER) == 10
