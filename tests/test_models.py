import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from finance_tracker.core import models
from finance_tracker.core.models import Transaction, ingest
from finance_tracker.errors import ReportInputError


def _record(**overrides):
    record = {
        "id": 1,
        "date": "2026-10-19",
        "category": "Groceries",
        "description": "Milk",
        "amount": "₹66",
    }
    record.update(overrides)
    return record


def test_ingest_converts_once():
    result = ingest([_record(createdAt="2026-10-19T08:00:00Z", comment="1L")])
    assert result.skipped_count == 0
    tx = result.transactions[0]
    assert tx.amount == Decimal("66")
    assert tx.date == date(2026, 10, 19)
    assert tx.id == "1"
    assert tx.comment == "1L"
    assert tx.created_at.year == 2026


def test_ingest_skips_bad_records_without_raising():
    result = ingest(
        [
            _record(),
            _record(amount="abc"),
            _record(date="someday"),
            _record(category="  "),
            "not a record",
        ]
    )
    assert len(result.transactions) == 1
    assert result.skipped_count == 4
    assert [s.error.field for s in result.skipped] == ["amount", "date", "category", "record"]
    assert result.skipped[0].to_dict()["field"] == "amount"


def test_ingest_normalises_negative_amounts(caplog):
    with caplog.at_level(logging.WARNING):
        result = ingest([_record(amount=-66)])
    assert result.transactions[0].amount == Decimal("66")
    assert "Normalised 1 negative amount" in caplog.text


def test_ingest_accepts_transaction_objects():
    tx = Transaction(
        date=datetime(2026, 10, 19, 12, 0),
        category="Income",
        description="Salary",
        amount=1000,
    )
    result = ingest([tx])
    assert result.transactions[0].date == date(2026, 10, 19)
    assert result.transactions[0].amount == Decimal("1000")


@pytest.mark.parametrize("bad", [None, "text", {"a": 1}, 42])
def test_ingest_rejects_non_collections(bad):
    with pytest.raises(ReportInputError):
        ingest(bad)


def test_ingest_parses_each_amount_once(monkeypatch):
    calls = []
    real_parse = models.parse_amount

    def counting_parse(value):
        calls.append(value)
        return real_parse(value)

    monkeypatch.setattr(models, "parse_amount", counting_parse)
    result = ingest([_record(amount=-5), _record(amount="10")])
    assert [t.amount for t in result.transactions] == [Decimal("5"), Decimal("10")]
    assert calls == [-5, "10"]
