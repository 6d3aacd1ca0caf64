# finance_tracker/cli.py
import json
import logging
import os
from datetime import date

import click

from finance_tracker.config import load_config
from finance_tracker.core.models import ingest
from finance_tracker.core.registry import CategoryRegistry, filters_from_config
from finance_tracker.database import (
    add_budget,
    add_transaction,
    add_transactions,
    delete_budget,
    list_budgets,
    list_categories,
    list_transactions,
    seed_categories,
    update_budget,
)
from finance_tracker.errors import FinanceTrackerError
from finance_tracker.loaders import get_loader
from finance_tracker.periods import month_period
from finance_tracker.reports import (
    compute_average_spend,
    compute_budget_status,
    compute_category_distribution,
    compute_daily_trend,
    compute_key_figures,
    compute_monthly_stats,
    compute_monthly_trend,
    compute_opening_balance,
    compute_period_summary,
)
from finance_tracker.utils import format_currency, parse_date


def _echo_json(payload):
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _reference_date(ctx, param, value):
    if value is None:
        return date.today()
    try:
        return parse_date(value)
    except FinanceTrackerError as exc:
        raise click.BadParameter(str(exc)) from exc


def _month_window(ctx, param, value):
    if value is None:
        return None
    try:
        year, month = map(int, value.split('-'))
        return month_period(year, month)
    except ValueError as exc:
        raise click.BadParameter(f"expected YYYY-MM, got '{value}'") from exc


date_option = click.option(
    '--date', 'reference_date',
    default=None,
    callback=_reference_date,
    help='Reference date (YYYY-MM-DD or DD/MM/YYYY); defaults to today.'
)
month_option = click.option(
    '--month', 'window',
    default=None,
    callback=_month_window,
    help='Limit to one calendar month (YYYY-MM).'
)


class _Context:
    def __init__(self, config, db_path):
        self.config = config
        self.db_path = db_path
        self.filters = filters_from_config(config)

    def transactions(self):
        return list_transactions(self.db_path)

    def money(self, amount):
        currency = self.config['currency']
        return format_currency(amount, currency['symbol'], currency['grouping'])


@click.group()
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (defaults to $FINANCE_TRACKER_CONFIG)'
)
@click.option(
    '--db', 'db_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='SQLite database file (overrides db_path from config)'
)
@click.pass_context
def main(ctx, config_path, db_path):
    """
    Track income and expenses by category and produce period summaries,
    chart data and budget reports as JSON.
    """
    logging.basicConfig(level=os.getenv("FINANCE_TRACKER_LOG_LEVEL", "WARNING").upper())
    try:
        cfg = load_config(config_path)
    except FinanceTrackerError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj = _Context(cfg, db_path or cfg['db_path'])


@main.command('init-categories')
@click.pass_obj
def init_categories(obj):
    """Create the configured categories that do not exist yet."""
    created = seed_categories(obj.db_path, obj.config['categories'])
    for name in created:
        click.echo(f"Created category: {name}")
    click.echo(f"{len(created)} new categor{'y' if len(created) == 1 else 'ies'}.")


@main.command('add')
@click.option('--date', 'tx_date', default=None, callback=_reference_date, help='Transaction date')
@click.option('--category', required=True, help='Category name')
@click.option('--description', default='', help='Registered description')
@click.option('--amount', required=True, help='Amount; currency symbols and separators are ignored')
@click.option('--comment', default=None, help='Optional note')
@click.pass_obj
def add(obj, tx_date, category, description, amount, comment):
    """Record one transaction."""
    try:
        registry = CategoryRegistry(list_categories(obj.db_path))
    except ValueError as exc:
        raise click.ClickException(f"Category table needs cleanup: {exc}") from exc
    if category not in registry:
        click.echo(f"⚠️  '{category}' is not a known category.", err=True)
    elif description and not registry.is_registered(category, description):
        click.echo(f"⚠️  '{description}' is not registered under {category}.", err=True)
    try:
        tx_id = add_transaction(obj.db_path, tx_date, category, description, amount, comment)
    except (FinanceTrackerError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Stored transaction {tx_id}.")


@main.command('import')
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def import_file(obj, file_path):
    """Import transactions from a CSV, XLSX or YAML file."""
    try:
        loader = get_loader(file_path)
        records = list(loader.load(file_path))
    except (RuntimeError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    result = ingest(records)
    for skipped in result.skipped:
        click.echo(f"⚠️  Skipping record: {skipped.error}", err=True)
    ids = add_transactions(
        obj.db_path,
        [
            {
                'date': tx.date,
                'category': tx.category,
                'description': tx.description,
                'amount': tx.amount,
                'comment': tx.comment,
            }
            for tx in result.transactions
        ],
    )
    click.echo(f"Imported {len(ids)} transaction(s), skipped {result.skipped_count}.")


@main.command('summary')
@date_option
@click.option(
    '--format', 'output_format',
    default='json',
    type=click.Choice(['json', 'text']),
    help='json (default) or a plain text table'
)
@click.pass_obj
def summary(obj, reference_date, output_format):
    """Five-period summary: today, this month and the three months before."""
    report = compute_period_summary(obj.transactions(), reference_date)
    if output_format == 'json':
        _echo_json(report.to_dict())
        return

    click.echo(" | ".join(["Category / Description"] + report.periods))
    for row in report.table():
        cells = [obj.money(a) if a >= 0 else f"-{obj.money(a)}" for a in row.amounts]
        changes = " ".join(c.text for c in row.changes)
        click.echo(" | ".join([row.label] + cells) + f"  [{changes}]")
    if report.skipped:
        click.echo(f"{report.skipped} record(s) could not be read and were left out.", err=True)


@main.command('opening-balance')
@date_option
@click.pass_obj
def opening_balance_cmd(obj, reference_date):
    """Balance carried over from the previous month."""
    value = compute_opening_balance(obj.transactions(), reference_date)
    _echo_json({'date': reference_date.isoformat(), 'opening_balance': float(value)})


@main.command('distribution')
@month_option
@click.option('--include-income', is_flag=True, default=False, help='Keep Income in the chart')
@click.pass_obj
def distribution(obj, window, include_income):
    """Spend per category with its share of the total."""
    series = compute_category_distribution(
        obj.transactions(),
        exclude_income=not include_income,
        window=window,
        min_label_share=obj.config['charts']['min_label_share'],
    )
    _echo_json(series.to_dict())


@main.command('daily')
@month_option
@click.pass_obj
def daily(obj, window):
    """Spend per day, only for days with transactions."""
    series = compute_daily_trend(obj.transactions(), window=window, spend_filter=obj.filters['expense'])
    _echo_json(series.to_dict())


@main.command('trend')
@date_option
@click.pass_obj
def trend(obj, reference_date):
    """Per-description spend across the five periods, largest first."""
    rows = compute_monthly_trend(obj.transactions(), reference_date)
    _echo_json([r.to_dict() for r in rows])


@main.command('stats')
@date_option
@click.option('--months', default=6, show_default=True, type=click.IntRange(min=1), help='Months to include')
@click.pass_obj
def stats(obj, reference_date, months):
    """Monthly income, spend, investments and savings."""
    transactions = obj.transactions()
    payload = compute_monthly_stats(transactions, reference_date, months=months).to_dict()
    payload['average_spend'] = [
        a.to_dict()
        for a in compute_average_spend(
            transactions, reference_date, spend_filter=obj.filters['budget']
        )
    ]
    _echo_json(payload)


@main.command('figures')
@date_option
@click.pass_obj
def figures(obj, reference_date):
    """Dashboard key figures for the current month."""
    result = compute_key_figures(
        obj.transactions(),
        reference_date,
        household_filter=obj.filters['household'],
        emi_category=obj.config['emi_category'],
        emi_keyword=obj.config['emi_keyword'],
    )
    _echo_json(result.to_dict())


@main.command('budgets')
@date_option
@click.pass_obj
def budgets(obj, reference_date):
    """Budget utilization for the month of the reference date."""
    report = compute_budget_status(
        list_budgets(obj.db_path),
        obj.transactions(),
        reference_date,
        categories=list_categories(obj.db_path),
        exclusion_set=obj.filters['budget'],
        thresholds=obj.config['budget_tiers'],
    )
    _echo_json(report.to_dict())


@main.group('budget')
def budget():
    """Create, change or remove budgets."""


@budget.command('add')
@click.argument('category')
@click.option('--limit', default=None, help='Monthly limit (defaults to default_budget_limit)')
@click.pass_obj
def budget_add(obj, category, limit):
    match = next((c for c in list_categories(obj.db_path) if c.name == category), None)
    if match is None:
        raise click.ClickException(f"Unknown category '{category}'")
    try:
        created = add_budget(obj.db_path, match.id, limit or obj.config['default_budget_limit'])
    except (FinanceTrackerError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Budget {created.id}: {created.category_name} {obj.money(created.limit)}")


@budget.command('set')
@click.argument('budget_id')
@click.argument('limit')
@click.pass_obj
def budget_set(obj, budget_id, limit):
    try:
        updated = update_budget(obj.db_path, budget_id, limit)
    except (FinanceTrackerError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    if not updated:
        raise click.ClickException(f"Budget {budget_id} not found")
    click.echo(f"Budget {budget_id} updated.")


@budget.command('remove')
@click.argument('budget_id')
@click.pass_obj
def budget_remove(obj, budget_id):
    try:
        removed = delete_budget(obj.db_path, budget_id)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    if not removed:
        raise click.ClickException(f"Budget {budget_id} not found")
    click.echo(f"Budget {budget_id} removed.")


if __name__ == '__main__':
    main()
