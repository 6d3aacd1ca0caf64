import pytest

from tests.helpers import tx


@pytest.fixture
def sample_transactions():
    return [
        tx("2026-10-19", "Income", "Salary", 1000),
        tx("2026-10-19", "Groceries", "Milk", 200),
        tx("2026-10-19", "Groceries", "Vegetables", 50),
        tx("2026-10-02", "Transportation", "Taxi", 120),
        tx("2026-10-05", "Investment", "Stocks", 300),
        tx("2026-09-10", "Income", "Salary", 900),
        tx("2026-09-11", "Groceries", "Milk", 100),
        tx("2026-08-01", "Groceries", "Milk", 80),
        tx("2026-07-15", "Healthcare", "Medicine", 40),
        tx("2026-05-15", "Groceries", "Milk", 999),
    ]
