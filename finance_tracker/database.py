# finance_tracker/database.py
"""SQLite store for transactions, categories and budgets.

This is the external CRUD layer the reports read from. Reads return plain
records; conversion into domain objects happens in the reporting code.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from finance_tracker.core.models import Budget, Category
from finance_tracker.core.registry import DEFAULT_CATEGORIES
from finance_tracker.errors import DuplicateBudgetError
from finance_tracker.utils import month_bounds, parse_amount, parse_date

logger = logging.getLogger(__name__)

_TRANSACTION_FIELDS = ("date", "category", "description", "amount", "comment")


def _init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE COLLATE NOCASE,
            descriptions TEXT NOT NULL DEFAULT '[]'
        );
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY,
            date TEXT NOT NULL,
            category TEXT NOT NULL,
            description TEXT NOT NULL,
            amount TEXT NOT NULL,
            comment TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date);
        CREATE TABLE IF NOT EXISTS budgets (
            id INTEGER PRIMARY KEY,
            category_id INTEGER NOT NULL,
            limit_amount TEXT NOT NULL
        );
        """
    )
    conn.commit()


def _connect(db_path) -> sqlite3.Connection:
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    _init_db(conn)
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_id(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid identifier: {value!r}") from exc


def _transaction_row(row) -> Dict[str, object]:
    return {
        "id": str(row[0]),
        "date": row[1],
        "category": row[2],
        "description": row[3],
        "amount": row[4],
        "comment": row[5],
        "createdAt": row[6],
    }


def _clean_fields(fields: Mapping) -> Dict[str, object]:
    """Validate transaction fields before they reach the table."""
    cleaned: Dict[str, object] = {}
    for key, value in fields.items():
        if key not in _TRANSACTION_FIELDS:
            raise ValueError(f"Unknown transaction field '{key}'")
        if key == "date":
            cleaned[key] = parse_date(value).isoformat()
        elif key == "amount":
            cleaned[key] = str(parse_amount(value))
        elif key == "comment":
            cleaned[key] = str(value) if value else None
        else:
            text = str(value).strip() if value is not None else ""
            if key == "category" and not text:
                raise ValueError("category is required")
            cleaned[key] = text
    return cleaned


def add_transaction(
    db_path,
    date,
    category: str,
    description: str,
    amount,
    comment: str | None = None,
) -> str:
    """Insert one transaction and return its identifier.

    Raises :class:`ParseError` when the date or amount is not usable.
    """
    fields = _clean_fields(
        {
            "date": date,
            "category": category,
            "description": description,
            "amount": amount,
            "comment": comment,
        }
    )
    stamp = _now()
    conn = _connect(db_path)
    try:
        cur = conn.execute(
            """
            INSERT INTO transactions
            (date, category, description, amount, comment, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                fields["date"],
                fields["category"],
                fields["description"],
                fields["amount"],
                fields["comment"],
                stamp,
                stamp,
            ),
        )
        conn.commit()
        logger.debug("Stored transaction %s", cur.lastrowid)
        return str(cur.lastrowid)
    finally:
        conn.close()


def add_transactions(db_path, records: Iterable[Mapping]) -> List[str]:
    """Insert many records in one transaction; any bad record aborts the batch."""
    stamp = _now()
    rows = []
    for record in records:
        fields = _clean_fields({k: record.get(k) for k in _TRANSACTION_FIELDS})
        rows.append(
            (
                fields["date"],
                fields["category"],
                fields["description"],
                fields["amount"],
                fields["comment"],
                stamp,
                stamp,
            )
        )
    if not rows:
        return []

    conn = _connect(db_path)
    try:
        ids = []
        for row in rows:
            cur = conn.execute(
                """
                INSERT INTO transactions
                (date, category, description, amount, comment, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                row,
            )
            ids.append(str(cur.lastrowid))
        conn.commit()
        logger.info("Stored %d transaction(s) in %s", len(ids), db_path)
        return ids
    finally:
        conn.close()


def update_transaction(db_path, tx_id, **fields) -> bool:
    """Update the given fields of a transaction. Returns False if it is missing."""
    cleaned = _clean_fields(fields)
    if not cleaned:
        return False
    assignments = ", ".join(f"{key} = ?" for key in cleaned)
    conn = _connect(db_path)
    try:
        cur = conn.execute(
            f"UPDATE transactions SET {assignments}, updated_at = ? WHERE id = ?",
            list(cleaned.values()) + [_now(), _as_id(tx_id)],
        )
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def delete_transaction(db_path, tx_id) -> bool:
    conn = _connect(db_path)
    try:
        cur = conn.execute("DELETE FROM transactions WHERE id = ?", (_as_id(tx_id),))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def list_transactions(
    db_path,
    month: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    category: str | None = None,
) -> List[Dict[str, object]]:
    """Return transaction records, newest first.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    month:
        Optional ``YYYY-MM``; narrows the range to that calendar month.
    start_date, end_date:
        Optional inclusive date bounds.
    category:
        Optional exact category name.
    """
    conditions: List[str] = []
    params: List[object] = []
    if month:
        year, month_num = map(int, month.split("-"))
        first, last = month_bounds(year, month_num)
        conditions.append("date BETWEEN ? AND ?")
        params.extend([first.isoformat(), last.isoformat()])
    if start_date:
        conditions.append("date >= ?")
        params.append(start_date.isoformat())
    if end_date:
        conditions.append("date <= ?")
        params.append(end_date.isoformat())
    if category:
        conditions.append("category = ?")
        params.append(category)

    query = (
        "SELECT id, date, category, description, amount, comment, created_at "
        "FROM transactions"
    )
    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    query += " ORDER BY date DESC, id DESC"

    conn = _connect(db_path)
    try:
        return [_transaction_row(r) for r in conn.execute(query, params).fetchall()]
    finally:
        conn.close()


def _category_row(row) -> Category:
    return Category(id=str(row[0]), name=row[1], descriptions=tuple(json.loads(row[2])))


def list_categories(db_path) -> List[Category]:
    conn = _connect(db_path)
    try:
        rows = conn.execute(
            "SELECT id, name, descriptions FROM categories ORDER BY name"
        ).fetchall()
        return [_category_row(r) for r in rows]
    finally:
        conn.close()


def add_category(db_path, name: str, descriptions: Iterable[str] = ()) -> Category:
    name = name.strip()
    if not name:
        raise ValueError("Category name is required")
    conn = _connect(db_path)
    try:
        try:
            cur = conn.execute(
                "INSERT INTO categories (name, descriptions) VALUES (?, ?)",
                (name, json.dumps(list(descriptions))),
            )
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"Category '{name}' already exists") from exc
        conn.commit()
        row = conn.execute(
            "SELECT id, name, descriptions FROM categories WHERE id = ?",
            (cur.lastrowid,),
        ).fetchone()
        return _category_row(row)
    finally:
        conn.close()


def add_description(db_path, category_id, description: str) -> Category:
    """Register one more description under a category (no duplicates)."""
    description = description.strip()
    if not description:
        raise ValueError("Description is required")
    conn = _connect(db_path)
    try:
        row = conn.execute(
            "SELECT id, name, descriptions FROM categories WHERE id = ?",
            (_as_id(category_id),),
        ).fetchone()
        if row is None:
            raise KeyError(f"Category {category_id} not found")
        descriptions = json.loads(row[2])
        if description not in descriptions:
            descriptions.append(description)
            conn.execute(
                "UPDATE categories SET descriptions = ? WHERE id = ?",
                (json.dumps(descriptions), row[0]),
            )
            conn.commit()
        return Category(id=str(row[0]), name=row[1], descriptions=tuple(descriptions))
    finally:
        conn.close()


def delete_category(db_path, category_id) -> bool:
    """Delete a category. Budgets pointing at it are kept and become orphans."""
    conn = _connect(db_path)
    try:
        cur = conn.execute("DELETE FROM categories WHERE id = ?", (_as_id(category_id),))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def seed_categories(db_path, categories: Optional[Mapping[str, Iterable[str]]] = None) -> List[str]:
    """Create any missing categories from ``categories``; return the new names."""
    taxonomy = DEFAULT_CATEGORIES if categories is None else categories
    conn = _connect(db_path)
    try:
        existing = {row[0].casefold() for row in conn.execute("SELECT name FROM categories")}
        created = []
        for name, descriptions in taxonomy.items():
            if name.casefold() in existing:
                logger.debug("Category %s already exists", name)
                continue
            conn.execute(
                "INSERT INTO categories (name, descriptions) VALUES (?, ?)",
                (name, json.dumps(list(descriptions or []))),
            )
            created.append(name)
            existing.add(name.casefold())
            logger.info("Created category: %s", name)
        conn.commit()
        return created
    finally:
        conn.close()


def _budget_row(row) -> Budget:
    return Budget(
        id=str(row[0]),
        category_id=str(row[1]),
        limit=parse_amount(row[2]),
        category_name=row[3],
    )


def list_budgets(db_path) -> List[Budget]:
    """Budgets joined with their category; ``category_name`` is None for orphans."""
    conn = _connect(db_path)
    try:
        rows = conn.execute(
            """
            SELECT b.id, b.category_id, b.limit_amount, c.name
            FROM budgets b
            LEFT JOIN categories c ON c.id = b.category_id
            ORDER BY b.id
            """
        ).fetchall()
        return [_budget_row(r) for r in rows]
    finally:
        conn.close()


def add_budget(db_path, category_id, limit) -> Budget:
    """Create a budget for a category.

    Raises :class:`DuplicateBudgetError` when the category already has one,
    before anything is written.
    """
    amount = parse_amount(limit)
    if amount <= 0:
        raise ValueError(f"Budget limit must be positive, got {amount}")
    cat_id = _as_id(category_id)
    conn = _connect(db_path)
    try:
        category = conn.execute(
            "SELECT name FROM categories WHERE id = ?", (cat_id,)
        ).fetchone()
        if category is None:
            raise KeyError(f"Category {category_id} not found")
        existing = conn.execute(
            "SELECT id FROM budgets WHERE category_id = ?", (cat_id,)
        ).fetchone()
        if existing is not None:
            raise DuplicateBudgetError(str(category_id), existing_id=str(existing[0]))
        cur = conn.execute(
            "INSERT INTO budgets (category_id, limit_amount) VALUES (?, ?)",
            (cat_id, str(amount)),
        )
        conn.commit()
        logger.info("Added budget of %s for %s", amount, category[0])
        return Budget(
            id=str(cur.lastrowid),
            category_id=str(cat_id),
            limit=amount,
            category_name=category[0],
        )
    finally:
        conn.close()


def update_budget(db_path, budget_id, limit) -> bool:
    amount = parse_amount(limit)
    if amount <= 0:
        raise ValueError(f"Budget limit must be positive, got {amount}")
    conn = _connect(db_path)
    try:
        cur = conn.execute(
            "UPDATE budgets SET limit_amount = ? WHERE id = ?",
            (str(amount), _as_id(budget_id)),
        )
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def delete_budget(db_path, budget_id) -> bool:
    conn = _connect(db_path)
    try:
        cur = conn.execute("DELETE FROM budgets WHERE id = ?", (_as_id(budget_id),))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()
