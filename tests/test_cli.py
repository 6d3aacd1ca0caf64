import json
import sqlite3

import pytest
from click.testing import CliRunner

from finance_tracker.cli import main as cli
from finance_tracker.config import CONFIG_ENV
from finance_tracker.database import add_budget, add_category, delete_category


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    return str(tmp_path / "finance.db")


def invoke(db_path, *args):
    runner = CliRunner()
    return runner.invoke(cli, ["--db", db_path, *args])


def add_tx(db_path, when, category, description, amount):
    res = invoke(
        db_path,
        "add",
        "--date", when,
        "--category", category,
        "--description", description,
        "--amount", amount,
    )
    assert res.exit_code == 0, res.output
    return res


def test_init_and_summary(db_path):
    res = invoke(db_path, "init-categories")
    assert res.exit_code == 0, res.output
    assert "10 new categories." in res.output
    assert "0 new categories." in invoke(db_path, "init-categories").output

    add_tx(db_path, "2026-10-19", "Income", "Salary", "1000")
    add_tx(db_path, "2026-10-19", "Groceries", "Milk", "200")
    add_tx(db_path, "2026-10-19", "Groceries", "Vegetables", "50")

    res = invoke(db_path, "summary", "--date", "2026-10-19")
    assert res.exit_code == 0, res.output
    payload = json.loads(res.output)
    assert payload["periods"][0] == "Today (19/10/2026)"
    assert payload["balance"][:2] == [750.0, 750.0]
    assert payload["total_expense"][2:] == [0.0, 0.0, 0.0]

    res = invoke(db_path, "summary", "--date", "2026-10-19", "--format", "text")
    assert res.exit_code == 0, res.output
    assert "Total Expenditure" in res.output
    assert "₹750.00" in res.output


def test_add_rejects_bad_amount(db_path):
    res = invoke(db_path, "add", "--category", "Groceries", "--amount", "abc")
    assert res.exit_code != 0
    assert "Could not parse amount" in res.output


def test_add_warns_on_unknown_category(db_path):
    res = add_tx(db_path, "2026-10-19", "Pets", "Vet", "10")
    assert "not a known category" in res.output


def test_import_and_charts(db_path, tmp_path):
    csv_path = tmp_path / "export.csv"
    csv_path.write_text(
        "Date,Category,Description,Amount\n"
        "2026-10-01,Groceries,Milk,300\n"
        "2026-10-05,Transportation,Taxi,100\n"
        "2026-10-05,Income,Salary,5000\n"
        "2026-09-15,Income,Salary,800\n"
        "2026-09-16,Groceries,Milk,200\n"
        "2026-10-06,Groceries,Milk,oops\n",
        encoding="utf-8",
    )
    res = invoke(db_path, "import", str(csv_path))
    assert res.exit_code == 0, res.output
    assert "Imported 5 transaction(s), skipped 1." in res.output

    res = invoke(db_path, "distribution", "--month", "2026-10")
    payload = json.loads(res.output)
    assert [p["name"] for p in payload["points"]] == ["Groceries", "Transportation"]
    assert payload["points"][0]["percentage"] == 75.0

    res = invoke(db_path, "daily", "--month", "2026-10")
    assert [p["date"] for p in json.loads(res.output)["points"]] == ["2026-10-01", "2026-10-05"]

    res = invoke(db_path, "opening-balance", "--date", "2026-10-19")
    assert json.loads(res.output)["opening_balance"] == 600.0

    res = invoke(db_path, "stats", "--date", "2026-10-19", "--months", "2")
    payload = json.loads(res.output)
    assert [m["month"] for m in payload["months"]] == ["Oct 2026", "Sep 2026"]
    assert len(payload["average_spend"]) == 3

    res = invoke(db_path, "trend", "--date", "2026-10-19")
    assert json.loads(res.output)[0]["description"] == "Milk"

    res = invoke(db_path, "figures", "--date", "2026-10-19")
    assert json.loads(res.output)["household_expenses"] == 400.0


def test_bad_month_option(db_path):
    res = invoke(db_path, "daily", "--month", "October")
    assert res.exit_code == 2


def test_budget_commands(db_path):
    invoke(db_path, "init-categories")
    add_tx(db_path, "2026-10-02", "Groceries", "Milk", "751")

    res = invoke(db_path, "budget", "add", "Groceries", "--limit", "1000")
    assert res.exit_code == 0, res.output
    assert "₹1,000.00" in res.output

    res = invoke(db_path, "budget", "add", "Groceries", "--limit", "500")
    assert res.exit_code == 1
    assert "already has a budget" in res.output

    res = invoke(db_path, "budgets", "--date", "2026-10-19")
    payload = json.loads(res.output)
    row = payload["rows"][0]
    assert row["category"] == "Groceries"
    assert row["tier"] == "critical"
    assert row["utilization"] == 75.1

    res = invoke(db_path, "budget", "set", "1", "1001")
    assert res.exit_code == 0, res.output
    res = invoke(db_path, "budgets", "--date", "2026-10-19")
    assert json.loads(res.output)["rows"][0]["tier"] == "warning"

    assert invoke(db_path, "budget", "remove", "1").exit_code == 0
    assert invoke(db_path, "budget", "remove", "1").exit_code == 1


def test_budgets_report_orphans(db_path):
    pets = add_category(db_path, "Pets")
    add_budget(db_path, pets.id, 300)
    delete_category(db_path, pets.id)

    res = invoke(db_path, "budgets", "--date", "2026-10-19")
    assert res.exit_code == 0, res.output
    row = json.loads(res.output)["rows"][0]
    assert row["orphan"] is True
    assert row["tier"] == "orphan"


def test_invalid_config_is_reported(db_path, tmp_path):
    cfg = tmp_path / "config.yaml"
    cfg.write_text("- not a mapping\n", encoding="utf-8")
    res = CliRunner().invoke(cli, ["--config", str(cfg), "--db", db_path, "summary"])
    assert res.exit_code == 1
    assert "must be a mapping" in res.output


def test_add_reports_case_clashing_categories(db_path):
    # Stores created before names were case-insensitive may hold both spellings
    conn = sqlite3.connect(db_path)
    conn.executescript(
        """
        CREATE TABLE categories (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            descriptions TEXT NOT NULL DEFAULT '[]'
        );
        INSERT INTO categories (name) VALUES ('Pets'), ('pets');
        """
    )
    conn.close()

    res = invoke(db_path, "add", "--category", "Pets", "--description", "Vet", "--amount", "5")
    assert res.exit_code == 1
    assert "Duplicate category name" in res.output
    assert not isinstance(res.exception, ValueError)
