# finance_tracker/config.py
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Dict

import yaml

from finance_tracker.core.registry import (
    BILLS_AND_EMI,
    DEFAULT_CATEGORIES,
    INCOME,
    INVESTMENT,
)
from finance_tracker.errors import ConfigError

DEFAULT_CONFIG: Dict[str, object] = {
    "db_path": "finance.db",
    "currency": {
        "symbol": "₹",
        "grouping": "indian",
    },
    "filters": {
        "expense": [INCOME],
        "household": [INCOME, INVESTMENT, BILLS_AND_EMI],
        "budget": [INCOME, INVESTMENT],
    },
    "budget_tiers": {
        "ok": 50,
        "warning": 75,
    },
    "charts": {
        "min_label_share": 5,
    },
    "emi_category": BILLS_AND_EMI,
    "emi_keyword": "Loan",
    "default_budget_limit": 5000,
    "categories": DEFAULT_CATEGORIES,
}

CONFIG_ENV = "FINANCE_TRACKER_CONFIG"


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path=None) -> Dict[str, object]:
    """Load a YAML config file on top of :data:`DEFAULT_CONFIG`.

    ``path`` falls back to ``$FINANCE_TRACKER_CONFIG``; a missing file yields
    the defaults.
    """
    target = path or os.environ.get(CONFIG_ENV)
    if not target or not Path(target).exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with Path(target).open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {target}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config {target} must be a mapping, got {type(data).__name__}")

    data = {key: value for key, value in data.items() if value is not None}
    for section in ("currency", "filters", "budget_tiers", "charts", "categories"):
        if section in data and not isinstance(data[section], dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")
    for name, names in (data.get("filters") or {}).items():
        if names is not None and not isinstance(names, (list, str)):
            raise ConfigError(f"Filter '{name}' must be a list of category names")

    merged = _merge_defaults(data, DEFAULT_CONFIG)
    # A configured taxonomy replaces the default one instead of extending it
    if "categories" in data:
        merged["categories"] = data["categories"]
    return merged


def save_config(config: Dict[str, object], path) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False, allow_unicode=True)
