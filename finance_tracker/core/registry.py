# finance_tracker/core/registry.py
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple

from finance_tracker.core.models import Category

INCOME = "Income"
INVESTMENT = "Investment"
BILLS_AND_EMI = "Recharge/Bill/EMI Payment"

DEFAULT_CATEGORIES: Dict[str, List[str]] = {
    "Groceries": [
        "Eggs", "Chicken", "Meat", "Dry Fruits", "Khari", "Cold Drinks",
        "Wheat (Gehu)", "Fish", "Vegetables", "Fruits", "Oil", "Rice",
        "Aata (Flour)", "Dal (Lentils)", "Masala (Spices)", "Milk", "Soap",
        "Snacks", "Sugar", "Salt", "Tea", "Coffee", "Other",
    ],
    "Transportation": [
        "Taxi", "Train Fare", "Fuel (Petrol/Diesel)", "Car Maintenance",
        "Bike Maintenance", "Airfare", "Car Rental", "Other",
    ],
    BILLS_AND_EMI: [
        "Electricity", "Wifi-Internet", "Mobile Recharge", "Gas Bill",
        "Loan Payment", "Subscription - Netflix", "Subscription - YouTube",
        "Subscription - LinkedIn", "Subscription - Hotstar",
        "Subscription - AppleTV", "Subscription - Other",
    ],
    "Healthcare": [
        "Medicine", "Doctor Visit", "Hospital Bill", "Therapy",
        "Vitamins/Supplements", "Medical Equipment", "Lab Tests",
        "Prescription Drugs", "Vision Care (e.g., Glasses)", "Other",
    ],
    "Insurance": [
        "Health Insurance", "Car Insurance", "Home Insurance",
        "Life Insurance", "Other",
    ],
    "Cloths": ["Shirts", "Pants", "Dresses", "Other"],
    "Education - Books": [
        "Books", "E-Books", "Journals", "Magazines", "Study Guides",
        "Stationery", "Other",
    ],
    INVESTMENT: [
        "Mutual Fund", "Stocks", "Bond Purchase", "Real Estate",
        "Cryptocurrency", "PPF", "NPS", "Fixed Deposit", "Gold/Silver",
        "Business", "Other",
    ],
    INCOME: [
        "Saving A/c.", "Salary", "Bonus", "Commission", "Dividend",
        "Interest", "Gift", "Refund", "Other",
    ],
    "Other Expenses": [
        "Repair - Electronics", "Plumber", "Hobbies", "Travel", "Taxes",
        "Miscellaneous", "Other",
    ],
}


def _fold(name) -> str:
    return str(name).strip().casefold()


def is_income(category_name) -> bool:
    return _fold(category_name) == _fold(INCOME)


@dataclass(frozen=True)
class SpendFilter:
    """A named set of categories left out of a spending rollup.

    Matching is case-insensitive. Filters are immutable; ``extend`` and ``|``
    return new filters so the shared defaults are never mutated.
    """

    name: str
    excluded: FrozenSet[str]

    @classmethod
    def of(cls, name: str, categories: Iterable[str]) -> "SpendFilter":
        return cls(name=name, excluded=frozenset(_fold(c) for c in categories))

    def excludes(self, category_name) -> bool:
        return _fold(category_name) in self.excluded

    def includes(self, category_name) -> bool:
        return not self.excludes(category_name)

    __call__ = includes

    def extend(self, *categories: str, name: str | None = None) -> "SpendFilter":
        return SpendFilter(
            name=name or self.name,
            excluded=self.excluded | frozenset(_fold(c) for c in categories),
        )

    def __or__(self, other: "SpendFilter") -> "SpendFilter":
        return SpendFilter(
            name=f"{self.name}+{other.name}",
            excluded=self.excluded | other.excluded,
        )


# Totals of money going out: everything except income
EXPENSE_FILTER = SpendFilter.of("expense", [INCOME])
# Day-to-day household spend: no investments, bills or loan EMIs
HOUSEHOLD_FILTER = EXPENSE_FILTER.extend(INVESTMENT, BILLS_AND_EMI, name="household")
BUDGET_FILTER = EXPENSE_FILTER.extend(INVESTMENT, name="budget")


def as_spend_filter(exclusion_set, name: str = "custom") -> SpendFilter:
    if isinstance(exclusion_set, SpendFilter):
        return exclusion_set
    if exclusion_set is None:
        return SpendFilter(name=name, excluded=frozenset())
    if isinstance(exclusion_set, str):
        return SpendFilter.of(name, [exclusion_set])
    return SpendFilter.of(name, exclusion_set)


def is_excluded_from_spend(category_name, exclusion_set) -> bool:
    """True when ``category_name`` belongs to the given exclusion set."""
    return as_spend_filter(exclusion_set).excludes(category_name)


def filters_from_config(config: Mapping) -> Dict[str, SpendFilter]:
    """Build the named spend filters from the ``filters`` config section."""
    section = config.get("filters") or {}
    defaults = {
        "expense": EXPENSE_FILTER,
        "household": HOUSEHOLD_FILTER,
        "budget": BUDGET_FILTER,
    }
    filters = {}
    for name, default in defaults.items():
        names = section.get(name)
        filters[name] = default if names is None else as_spend_filter(names, name=name)
    return filters


class CategoryRegistry:
    """Read-only lookup of categories and their registered descriptions."""

    def __init__(self, categories=None):
        if categories is None:
            categories = DEFAULT_CATEGORIES
        entries: List[Tuple[str, Tuple[str, ...]]] = []
        if isinstance(categories, Mapping):
            for name, descriptions in categories.items():
                entries.append((str(name), tuple(descriptions or ())))
        else:
            for cat in categories:
                entries.append((cat.name, tuple(cat.descriptions)))

        self._by_key: Dict[str, Category] = {}
        for name, descriptions in entries:
            key = _fold(name)
            if key in self._by_key:
                raise ValueError(f"Duplicate category name '{name}'")
            self._by_key[key] = Category(name=name, descriptions=descriptions)

    def __contains__(self, category_name) -> bool:
        return _fold(category_name) in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)

    def names(self) -> List[str]:
        return sorted((c.name for c in self._by_key.values()), key=category_sort_key)

    def get(self, category_name) -> Category | None:
        return self._by_key.get(_fold(category_name))

    def descriptions_for(self, category_name) -> Tuple[str, ...]:
        category = self.get(category_name)
        return category.descriptions if category else ()

    def is_registered(self, category_name, description) -> bool:
        return description in self.descriptions_for(category_name)


def category_sort_key(category_name) -> Tuple[int, str, str]:
    """Income first, then alphabetical."""
    return (0 if is_income(category_name) else 1, str(category_name).casefold(), str(category_name))
