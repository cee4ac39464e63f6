"""Click CLI entry point for the expense command.

Handles argument parsing, config loading, and error display. All business
logic is delegated to ``store``, ``importer``, ``export``, ``analytics``
and ``report`` modules.
"""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path

import click

from expense_ledger import __version__
from expense_ledger.models import AppConfig, Budget, Expense, Frequency, generate_id

logger = logging.getLogger(__name__)


def _validate_month(month: str) -> str:
    """Validate that *month* matches ``YYYY-MM`` and represents a real month.

    Returns the validated month string, or raises ``click.BadParameter``.
    """
    if not re.fullmatch(r"\d{4}-\d{2}", month):
        raise click.BadParameter(
            f"Invalid month format: {month!r}. Expected YYYY-MM (e.g. 2026-01)."
        )
    _, mon = month.split("-")
    mon_int = int(mon)
    if mon_int < 1 or mon_int > 12:
        raise click.BadParameter(
            f"Invalid month: {month!r}. Month must be between 01 and 12."
        )
    return month


def _month_option(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if value is None:
        return None
    return _validate_month(value)


def _positive_amount(ctx: click.Context, param: click.Parameter, value: str) -> Decimal:
    from expense_ledger.validation import CENTS, MAX_AMOUNT_DIGITS

    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise click.BadParameter(f"{value!r} is not a number.")
    if not amount.is_finite() or amount <= 0:
        raise click.BadParameter("Amount must be a positive number.")
    if amount.adjusted() >= MAX_AMOUNT_DIGITS:
        raise click.BadParameter("Amount is too large.")

    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise click.BadParameter("Amount must be a positive number.")
    return amount


def _configure_logging(verbose: bool, debug: bool) -> None:
    """Set up logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _open_store(root: Path):
    """Load config.toml and the ledger it points to, or exit with an error."""
    from expense_ledger.config import load_config
    from expense_ledger.store import ExpenseStore, JsonFileStorage

    try:
        config = load_config(root)
    except FileNotFoundError as exc:
        click.echo(
            f"Error: {exc}. Run 'expense init' to create the project structure.",
            err=True,
        )
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error loading configuration: {exc}", err=True)
        sys.exit(1)

    try:
        store = ExpenseStore(JsonFileStorage(root / config.state_file))
    except ValueError as exc:
        click.echo(f"Error: {exc}. Fix or move the file before continuing.", err=True)
        sys.exit(1)
    return config, store


def _resolve_category(store, name: str):
    from expense_ledger.validation import find_category

    matches = find_category(name, store.categories)
    if len(matches) == 1:
        return matches[0]
    if matches:
        click.echo(f"Error: category name {name!r} is ambiguous.", err=True)
    else:
        valid = ", ".join(c.name for c in store.categories)
        click.echo(f"Error: unknown category {name!r}. Valid categories are: {valid}", err=True)
    sys.exit(1)


def _default_output(config: AppConfig, root: Path, stem: str, fmt: str) -> Path:
    return root / config.export_dir / f"{stem}.{fmt}"


@click.group()
@click.version_option(version=__version__, prog_name="expense-ledger")
@click.option("--verbose", is_flag=True, default=False, help="Detailed progress output.")
@click.option("--debug", is_flag=True, default=False, help="Developer-level diagnostics.")
def cli(verbose: bool, debug: bool) -> None:
    """Personal expense ledger with CSV/XLSX import, export and analytics."""
    _configure_logging(verbose, debug)


@cli.command()
@click.option(
    "--dir", "target_dir", default=".", type=click.Path(), help="Directory to initialize."
)
@click.option(
    "--format",
    "export_format",
    type=click.Choice(["csv", "xlsx"]),
    default="csv",
    help="Default export format written to config.toml.",
)
def init(target_dir: str, export_format: str) -> None:
    """Initialize a new ledger directory with a default config.toml."""
    from expense_ledger.config import initialize

    target = Path(target_dir).resolve()

    try:
        initialize(target, AppConfig(export_format=export_format))
    except Exception as exc:
        click.echo(f"Error initializing project: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Initialized expense ledger in {target}")


@cli.command()
@click.option("--amount", required=True, callback=_positive_amount, help="Positive amount.")
@click.option("--category", required=True, help="Category name (case-insensitive).")
@click.option("--description", default="", help="Free-text description.")
@click.option(
    "--date",
    "when",
    type=click.DateTime(formats=["%m/%d/%Y", "%Y-%m-%d"]),
    default=None,
    help="Expense date, MM/DD/YYYY or YYYY-MM-DD. Defaults to today.",
)
@click.option("--tag", "tags", multiple=True, help="Tag label; repeat for several.")
@click.option("--note", default="", help="Free-text note.")
@click.option(
    "--recurring",
    type=click.Choice([f.value for f in Frequency]),
    default=None,
    help="Create a 12-occurrence series with this frequency.",
)
def add(
    amount: Decimal,
    category: str,
    description: str,
    when,
    tags: tuple[str, ...],
    note: str,
    recurring: str | None,
) -> None:
    """Record a new expense."""
    root = Path.cwd()
    _, store = _open_store(root)
    resolved = _resolve_category(store, category)

    expense = Expense(
        id=generate_id(),
        description=description.strip(),
        amount=amount,
        category=resolved.id,
        date=when.date() if when else date.today(),
        tags=list(dict.fromkeys(t.strip() for t in tags if t.strip())),
        is_recurring=recurring is not None,
        recurring_frequency=Frequency(recurring) if recurring else None,
        note=note,
    )
    store.add_expense(expense)

    if recurring:
        click.echo(f"Added recurring expense {expense.id} ({recurring}, 12 occurrences)")
    else:
        click.echo(f"Added expense {expense.id}")


@cli.command(name="import")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option(
    "--partial/--no-partial",
    default=None,
    help="Commit valid rows even if other rows fail. Overrides config.toml.",
)
def import_(file: str, partial: bool | None) -> None:
    """Import expenses from a CSV or XLSX file."""
    from expense_ledger.importer import import_file_async
    from expense_ledger.report import print_import_result

    root = Path.cwd()
    config, store = _open_store(root)
    allow_partial = config.allow_partial if partial is None else partial

    def finished() -> None:
        logger.debug("Finished reading %s", file)

    result = asyncio.run(
        import_file_async(
            root / file,
            store.categories,
            on_complete=finished,
            allow_partial=allow_partial,
        )
    )

    if result.committable:
        store.add_expenses([item.to_expense() for item in result.expenses])

    print_import_result(result)
    if not result.committable:
        sys.exit(1)


@cli.command()
@click.option("--format", "fmt", type=click.Choice(["csv", "xlsx"]), default=None)
@click.option("--output", type=click.Path(dir_okay=False), default=None, help="Output file.")
def export(fmt: str | None, output: str | None) -> None:
    """Export all expenses to a CSV or XLSX file."""
    from expense_ledger.export import write_export

    root = Path.cwd()
    config, store = _open_store(root)

    if not store.expenses:
        click.echo("Error: No expenses to export", err=True)
        sys.exit(1)

    if output:
        path = root / output
    else:
        stem = f"expenses-{date.today().isoformat()}"
        path = _default_output(config, root, stem, fmt or config.export_format)

    try:
        count = write_export(path, store.expenses, store.categories)
    except Exception as exc:
        click.echo(f"Error writing export: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Exported {count} expenses to {path}")
    skipped = len(store.expenses) - count
    if skipped:
        click.echo(
            f"Warning: {skipped} expenses with a deleted category were not exported.",
            err=True,
        )


@cli.command()
@click.option("--format", "fmt", type=click.Choice(["csv", "xlsx"]), default=None)
@click.option("--output", type=click.Path(dir_okay=False), default=None, help="Output file.")
def template(fmt: str | None, output: str | None) -> None:
    """Write an import template listing the current categories."""
    from expense_ledger.export import write_template

    root = Path.cwd()
    config, store = _open_store(root)
    if output:
        path = root / output
    else:
        path = _default_output(config, root, "expense-template", fmt or config.export_format)

    try:
        written = write_template(path, store.categories)
    except Exception as exc:
        click.echo(f"Error generating template: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Wrote template to {written}")


@cli.command(name="list")
@click.option("--month", callback=_month_option, default=None, help="Month in YYYY-MM format.")
def list_(month: str | None) -> None:
    """List expenses, flagging possible duplicates with '*'."""
    from expense_ledger.analytics import duplicate_ids, filter_by_month

    _, store = _open_store(Path.cwd())
    names = {c.id: c.name for c in store.categories}
    visible = sorted(filter_by_month(store.expenses, month), key=lambda e: e.date)
    flagged = duplicate_ids(visible)

    for e in visible:
        marker = "*" if e.id in flagged else " "
        click.echo(
            f"{marker} {e.id}  {e.date.isoformat()}  {e.description:<30} "
            f"{names.get(e.category, ''):<15} {e.amount:>10.2f}"
        )
    click.echo(f"{len(visible)} expenses")


@cli.command()
@click.argument("ids", nargs=-1, required=True)
def delete(ids: tuple[str, ...]) -> None:
    """Delete one or more expenses by id."""
    _, store = _open_store(Path.cwd())
    known = {e.id for e in store.expenses}
    missing = [i for i in ids if i not in known]
    if missing:
        click.echo(f"Error: unknown expense id(s): {', '.join(missing)}", err=True)
        sys.exit(1)

    if len(ids) == 1:
        store.delete_expense(ids[0])
    else:
        store.bulk_delete_expenses(ids)
    click.echo(f"Deleted {len(ids)} expenses")


@cli.command()
@click.option("--month", callback=_month_option, default=None, help="Month in YYYY-MM format.")
def summary(month: str | None) -> None:
    """Print totals, budget status, rankings and duplicates."""
    from expense_ledger.report import print_summary

    _, store = _open_store(Path.cwd())
    print_summary(store.expenses, store.categories, store.budgets, month)


@cli.command()
@click.option("--month", callback=_month_option, default=None, help="Month in YYYY-MM format.")
def duplicates(month: str | None) -> None:
    """Show groups of expenses sharing description, amount, category and date."""
    from expense_ledger.analytics import duplicate_groups

    _, store = _open_store(Path.cwd())
    groups = duplicate_groups(store.expenses, month)
    if not groups:
        click.echo("No duplicates found.")
        return

    for group in groups:
        first = group[0]
        click.echo(
            f"{first.date.isoformat()}  {first.description}  {first.amount:.2f}  "
            f"({len(group)} records: {', '.join(e.id for e in group)})"
        )


@cli.group()
def budget() -> None:
    """Set and show monthly budgets."""


@budget.command(name="set")
@click.argument("month", callback=_month_option)
@click.argument("amount", callback=_positive_amount)
def budget_set(month: str, amount: Decimal) -> None:
    """Set MONTH's budget to AMOUNT, replacing any existing one."""
    _, store = _open_store(Path.cwd())
    store.set_budget(Budget(month=month, amount=amount))
    click.echo(f"Budget for {month} set to {amount:.2f}")


@budget.command(name="show")
@click.option("--month", callback=_month_option, default=None, help="Defaults to this month.")
def budget_show(month: str | None) -> None:
    """Show spending against the budget for a month."""
    from expense_ledger.analytics import budget_status

    _, store = _open_store(Path.cwd())
    month = month or date.today().strftime("%Y-%m")
    status = budget_status(store.expenses, store.budgets, month)
    click.echo(f"Month:     {month}")
    click.echo(f"Budget:    {status.budget:.2f}")
    click.echo(f"Spent:     {status.spent:.2f}")
    click.echo(f"Remaining: {status.remaining:.2f}")
    click.echo(f"Used:      {status.percent_used:.1f}%")


@cli.group()
def categories() -> None:
    """List, add and delete categories."""


@categories.command(name="list")
def categories_list() -> None:
    """List categories."""
    _, store = _open_store(Path.cwd())
    for c in store.categories:
        click.echo(f"{c.id:<12}  {c.name:<20} {c.color}")


@categories.command(name="add")
@click.argument("name")
@click.option("--color", default="#9E9E9E", help="Display color as hex.")
@click.option("--icon", default="", help="Icon name.")
def categories_add(name: str, color: str, icon: str) -> None:
    """Add a category called NAME."""
    from expense_ledger.validation import find_category

    _, store = _open_store(Path.cwd())
    name = name.strip()
    if not name:
        click.echo("Error: category name must not be empty", err=True)
        sys.exit(1)
    if find_category(name, store.categories):
        click.echo(f"Error: category {name!r} already exists", err=True)
        sys.exit(1)

    category = store.add_category(name, color=color, icon=icon)
    click.echo(f"Added category {category.name} ({category.id})")


@categories.command(name="delete")
@click.argument("name")
def categories_delete(name: str) -> None:
    """Delete the category called NAME. Its expenses are kept."""
    _, store = _open_store(Path.cwd())
    category = _resolve_category(store, name)
    in_use = sum(1 for e in store.expenses if e.category == category.id)
    store.delete_category(category.id)
    click.echo(f"Deleted category {category.name}")
    if in_use:
        click.echo(
            f"Warning: {in_use} expenses still refer to it and will be left out of exports.",
            err=True,
        )
