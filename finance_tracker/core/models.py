# finance_tracker/core/models.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from finance_tracker.errors import ParseError, ReportInputError
from finance_tracker.utils import parse_amount, parse_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transaction:
    date: date
    category: str
    description: str
    amount: Decimal
    id: Optional[str] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "category": self.category,
            "description": self.description,
            "amount": float(self.amount),
            "comment": self.comment,
        }


@dataclass(frozen=True)
class Category:
    name: str
    descriptions: Tuple[str, ...] = ()
    id: Optional[str] = None


@dataclass(frozen=True)
class Budget:
    category_id: Optional[str]
    limit: Decimal
    id: Optional[str] = None
    # Filled in by the store's join; None when the category was deleted
    category_name: Optional[str] = None


@dataclass(frozen=True)
class SkippedRecord:
    record: Any
    error: ParseError

    def to_dict(self) -> dict:
        return {"field": self.error.field, "value": str(self.error.value), "error": str(self.error)}


@dataclass
class IngestResult:
    transactions: List[Transaction] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


def _record_value(record: Mapping, *keys, default=None):
    for key in keys:
        if key in record:
            return record[key]
    return default


def _clean_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _convert(record) -> Tuple[Transaction, bool]:
    """Build a :class:`Transaction` from a record, converting every field once.

    Returns the transaction and whether its amount was negative; the stored
    amount is always the magnitude. Raises :class:`ParseError` when the
    amount, date or category is unusable.
    """
    if isinstance(record, Transaction):
        amount = parse_amount(record.amount)
        tx = replace(record, date=parse_date(record.date), amount=abs(amount))
        return tx, amount < 0
    if not isinstance(record, Mapping):
        raise ParseError("record", record, "expected a mapping")

    category = _clean_text(record.get("category"))
    if not category:
        raise ParseError("category", record.get("category"), "category is required")

    amount = parse_amount(record.get("amount"))
    created_raw = _record_value(record, "createdAt", "created_at")
    created_at = None
    if isinstance(created_raw, datetime):
        created_at = created_raw
    elif isinstance(created_raw, str) and created_raw:
        try:
            created_at = datetime.fromisoformat(created_raw.replace("Z", "+00:00"))
        except ValueError:
            created_at = None

    comment = record.get("comment")
    tx_id = record.get("id")
    tx = Transaction(
        date=parse_date(record.get("date")),
        category=category,
        description=_clean_text(record.get("description")),
        amount=abs(amount),
        id=str(tx_id) if tx_id is not None else None,
        comment=str(comment) if comment else None,
        created_at=created_at,
    )
    return tx, amount < 0


def ingest(records) -> IngestResult:
    """Convert raw records into transactions, isolating per-record failures.

    ``records`` may mix :class:`Transaction` objects and mappings. A record
    that fails to parse is kept in ``skipped`` and never aborts the batch; an
    input that is not a collection at all raises :class:`ReportInputError`.
    """
    if (
        records is None
        or isinstance(records, (str, bytes, Mapping))
        or not isinstance(records, Iterable)
    ):
        raise ReportInputError(
            f"Expected a collection of transactions, got {type(records).__name__}"
        )

    result = IngestResult()
    negatives = 0
    for record in records:
        try:
            tx, negative = _convert(record)
        except ParseError as exc:
            logger.warning("Skipping transaction record: %s", exc)
            result.skipped.append(SkippedRecord(record=record, error=exc))
            continue
        if negative:
            negatives += 1
        result.transactions.append(tx)

    if negatives:
        logger.warning(
            "Normalised %d negative amount(s) to their magnitude; "
            "direction is taken from the category",
            negatives,
        )
    return result
