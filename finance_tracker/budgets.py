# finance_tracker/budgets.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple

from finance_tracker.aggregation import ZERO, as_ingested
from finance_tracker.core.models import Budget, Category, SkippedRecord
from finance_tracker.core.registry import BUDGET_FILTER, as_spend_filter, category_sort_key
from finance_tracker.errors import DivisionUndefined, OrphanBudgetError
from finance_tracker.trends import ratio
from finance_tracker.utils import parse_amount

logger = logging.getLogger(__name__)

OK = "ok"
WARNING = "warning"
CRITICAL = "critical"
UNDEFINED = "undefined"
ORPHAN = "orphan"

DEFAULT_THRESHOLDS: Dict[str, Decimal] = {OK: Decimal("50"), WARNING: Decimal("75")}

_HUNDRED = Decimal("100")


def alert_tier(percent, thresholds: Mapping[str, Decimal] | None = None) -> str:
    """Map a utilization percentage onto an alert tier.

    Boundaries belong to the safer tier: exactly 50% is ``ok`` and exactly
    75% is ``warning`` with the default thresholds.
    """
    limits = dict(DEFAULT_THRESHOLDS)
    if thresholds:
        limits.update({k: parse_amount(v) for k, v in thresholds.items()})
    percent = parse_amount(percent)
    if percent <= limits[OK]:
        return OK
    if percent <= limits[WARNING]:
        return WARNING
    return CRITICAL


def _fold(name: str) -> str:
    return name.strip().casefold()


@dataclass
class BudgetRow:
    category: Optional[str]
    category_id: Optional[str]
    limit: Decimal
    spent: Decimal
    # Unclamped spent / limit, for alerting
    ratio: Optional[Decimal]
    # Clamped to [0, 100], for display
    utilization: Optional[Decimal]
    tier: str
    budget_ids: Tuple[Optional[str], ...] = ()
    error: Optional[OrphanBudgetError] = None

    @property
    def orphan(self) -> bool:
        return self.error is not None

    @property
    def duplicates(self) -> int:
        return max(len(self.budget_ids) - 1, 0)

    @property
    def over_limit(self) -> bool:
        return self.ratio is not None and self.ratio > 1

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "category_id": self.category_id,
            "limit": float(self.limit),
            "spent": float(self.spent),
            "ratio": None if self.ratio is None else float(self.ratio),
            "utilization": None if self.utilization is None else round(float(self.utilization), 2),
            "tier": self.tier,
            "orphan": self.orphan,
            "duplicates": self.duplicates,
            "error": str(self.error) if self.error else None,
        }


@dataclass(frozen=True)
class UnbudgetedCategory:
    category: str
    spent: Decimal

    def to_dict(self) -> dict:
        return {"category": self.category, "spent": float(self.spent)}


@dataclass
class BudgetReport:
    rows: List[BudgetRow] = field(default_factory=list)
    unbudgeted: List[UnbudgetedCategory] = field(default_factory=list)
    total_spent: Decimal = ZERO
    skipped: List[SkippedRecord] = field(default_factory=list)

    @property
    def total_limit(self) -> Decimal:
        return sum((r.limit for r in self.rows if not r.orphan), ZERO)

    @property
    def orphans(self) -> List[BudgetRow]:
        return [r for r in self.rows if r.orphan]

    def to_dict(self) -> dict:
        return {
            "rows": [r.to_dict() for r in self.rows],
            "unbudgeted": [u.to_dict() for u in self.unbudgeted],
            "total_limit": float(self.total_limit),
            "total_spent": float(self.total_spent),
            "skipped": len(self.skipped),
        }


def _resolve_name(budget: Budget, names_by_id: Dict[str, str], known: Optional[set]) -> Optional[str]:
    name = budget.category_name
    if name is None and budget.category_id is not None:
        name = names_by_id.get(str(budget.category_id))
    if name is None:
        return None
    if known is not None and _fold(name) not in known:
        return None
    return name


def _row_for(name, category_id, limit, spent, budget_ids, thresholds) -> BudgetRow:
    try:
        if limit < 0:
            raise DivisionUndefined(f"Negative budget limit {limit}")
        used = ratio(spent, limit)
    except DivisionUndefined:
        logger.warning("Budget for %s has no usable limit (%s)", name, limit)
        return BudgetRow(
            category=name,
            category_id=category_id,
            limit=limit,
            spent=spent,
            ratio=None,
            utilization=None,
            tier=UNDEFINED,
            budget_ids=budget_ids,
        )
    utilization = min(max(used, ZERO), Decimal("1")) * _HUNDRED
    return BudgetRow(
        category=name,
        category_id=category_id,
        limit=limit,
        spent=spent,
        ratio=used,
        utilization=utilization,
        tier=alert_tier(used * _HUNDRED, thresholds),
        budget_ids=budget_ids,
    )


def budget_status(
    budgets,
    transactions_this_month,
    exclusion_set=BUDGET_FILTER,
    categories=None,
    thresholds: Mapping[str, Decimal] | None = None,
) -> BudgetReport:
    """Compare this month's spend per category with its budget.

    ``transactions_this_month`` must already be limited to one month.
    Budgets whose category is gone come back as flagged orphan rows.
    Several budgets for the same category are merged by summing their limits.
    Category names are matched ignoring case, unlike the period summary rows
    which keep each spelling apart.
    When ``categories`` is given, every category without a budget is listed
    in ``unbudgeted``; otherwise only categories with spend are.
    """
    spend_filter = as_spend_filter(exclusion_set, name="budget")
    ingested = as_ingested(transactions_this_month)

    spending: Dict[str, Decimal] = {}
    display: Dict[str, str] = {}
    for tx in ingested.transactions:
        if spend_filter.excludes(tx.category):
            continue
        key = _fold(tx.category)
        spending[key] = spending.get(key, ZERO) + abs(tx.amount)
        display.setdefault(key, tx.category)

    names_by_id: Dict[str, str] = {}
    known: Optional[set] = None
    if categories is not None:
        known = set()
        for cat in categories:
            if isinstance(cat, Category):
                known.add(_fold(cat.name))
                display.setdefault(_fold(cat.name), cat.name)
                if cat.id is not None:
                    names_by_id[str(cat.id)] = cat.name
            else:
                known.add(_fold(str(cat)))
                display.setdefault(_fold(str(cat)), str(cat))

    grouped: Dict[str, dict] = {}
    order: List[Tuple[str, object]] = []
    for budget in budgets:
        name = _resolve_name(budget, names_by_id, known)
        if name is None:
            error = OrphanBudgetError(budget.id, budget.category_id)
            logger.warning("%s", error)
            order.append(
                (
                    "orphan",
                    BudgetRow(
                        category=budget.category_name,
                        category_id=budget.category_id,
                        limit=parse_amount(budget.limit),
                        spent=ZERO,
                        ratio=None,
                        utilization=None,
                        tier=ORPHAN,
                        budget_ids=(budget.id,),
                        error=error,
                    ),
                )
            )
            continue
        key = _fold(name)
        if key not in grouped:
            grouped[key] = {
                "name": name,
                "category_id": budget.category_id,
                "limit": ZERO,
                "ids": [],
            }
            order.append(("budget", key))
        else:
            logger.warning("Category %s has more than one budget; limits are summed", name)
        grouped[key]["limit"] += parse_amount(budget.limit)
        grouped[key]["ids"].append(budget.id)

    report = BudgetReport(skipped=list(ingested.skipped))
    for kind, item in order:
        if kind == "orphan":
            report.rows.append(item)
            continue
        entry = grouped[item]
        spent = ZERO if spend_filter.excludes(entry["name"]) else spending.get(item, ZERO)
        report.rows.append(
            _row_for(
                entry["name"],
                entry["category_id"],
                entry["limit"],
                spent,
                tuple(entry["ids"]),
                thresholds,
            )
        )

    candidates = set(spending)
    if known is not None:
        candidates |= {k for k in known if not spend_filter.excludes(k)}
    unbudgeted = [
        UnbudgetedCategory(category=display[key], spent=spending.get(key, ZERO))
        for key in candidates
        if key not in grouped
    ]
    unbudgeted.sort(key=lambda u: category_sort_key(u.category))
    report.unbudgeted = unbudgeted
    report.total_spent = sum(spending.values(), ZERO)
    return report
