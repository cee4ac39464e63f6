"""Export of expenses and import templates to CSV and spreadsheet files.

- :func:`export_csv` / :func:`export_xlsx` render the expense collection
  with the fixed seven-column schema.
- :func:`template_csv` / :func:`template_xlsx` render an import template:
  header, an instruction row and two sample rows.
- :func:`write_export` / :func:`write_template` pick the format from the
  target file suffix and write to disk.

Expenses whose category no longer exists are left out of every export and
reported in the log.  Text output is tab-delimited with a ``.csv``
extension so that spreadsheet applications open it directly.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from expense_ledger.models import Category, Expense

logger = logging.getLogger(__name__)

# Fixed output column order.
EXPORT_COLUMNS = ["Date", "Description", "Amount", "Category", "Tags", "Note", "Recurring"]
EXPORT_WIDTHS = [12, 30, 10, 15, 20, 30, 15]

TEMPLATE_COLUMNS = ["date", "description", "amount", "category"]
TEMPLATE_WIDTHS = [12, 30, 10, 15]

DATE_FORMAT = "%m/%d/%Y"
AMOUNT_NUMBER_FORMAT = "#,##0.00"
HEADER_FILL = "CCCCCC"

FORMATS = {".csv": "csv", ".xlsx": "xlsx"}

_CENTS = Decimal("0.01")


# ---------------------------------------------------------------------------
# Row formatting
# ---------------------------------------------------------------------------


def format_amount(amount: Decimal) -> str:
    """Render an amount with exactly two decimal places.

    Precision grows with the amount, so very large values render instead
    of raising :class:`decimal.InvalidOperation`.
    """
    amount = Decimal(amount)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


def format_recurring(expense: Expense) -> str:
    """Render the Recurring column: ``"Yes (monthly)"`` or ``"No"``."""
    if expense.is_recurring and expense.recurring_frequency is not None:
        return f"Yes ({expense.recurring_frequency.value})"
    if expense.is_recurring:
        return "Yes"
    return "No"


def expense_row(expense: Expense, category: Category) -> list[str]:
    """Format one expense as a row of the export schema.

    Args:
        expense: The expense to render.
        category: The expense's resolved category.

    Returns:
        Seven strings in :data:`EXPORT_COLUMNS` order.
    """
    return [
        expense.date.strftime(DATE_FORMAT),
        expense.description,
        format_amount(expense.amount),
        category.name,
        ", ".join(expense.tags),
        expense.note,
        format_recurring(expense),
    ]


def exportable(
    expenses: Sequence[Expense],
    categories: Sequence[Category],
) -> list[tuple[Expense, Category]]:
    """Pair each exportable expense with its resolved category.

    An expense is exportable when it has a date, a positive amount and a
    category id that still resolves.  Excluded expenses are counted in a
    warning.
    """
    by_id = {c.id: c for c in categories}
    pairs: list[tuple[Expense, Category]] = []
    dropped = 0

    for expense in expenses:
        category = by_id.get(expense.category)
        if expense.date is None or not expense.amount or category is None:
            dropped += 1
            continue
        pairs.append((expense, category))

    if dropped:
        logger.warning(
            "Excluded %d expenses with a missing date, amount or category from export",
            dropped,
        )
    return pairs


# ---------------------------------------------------------------------------
# Expense export
# ---------------------------------------------------------------------------


def export_csv(expenses: Sequence[Expense], categories: Sequence[Category]) -> bytes:
    """Render expenses as tab-delimited UTF-8 text."""
    return _csv_payload(exportable(expenses, categories))


def export_xlsx(expenses: Sequence[Expense], categories: Sequence[Category]) -> bytes:
    """Render expenses as an .xlsx workbook with a single ``Expenses`` sheet.

    The header row is bold on a grey fill, columns have fixed widths and
    amounts are stored as numbers formatted with two decimals.
    """
    return _xlsx_payload(exportable(expenses, categories))


def _csv_payload(pairs: Sequence[tuple[Expense, Category]]) -> bytes:
    return _delimited([EXPORT_COLUMNS, *(expense_row(e, c) for e, c in pairs)])


def _xlsx_payload(pairs: Sequence[tuple[Expense, Category]]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Expenses"
    sheet.append(EXPORT_COLUMNS)

    for expense, category in pairs:
        row = expense_row(expense, category)
        row[2] = Decimal(row[2])
        sheet.append(row)
        sheet.cell(row=sheet.max_row, column=3).number_format = AMOUNT_NUMBER_FORMAT

    _style_header(sheet, len(EXPORT_COLUMNS))
    _set_widths(sheet, EXPORT_WIDTHS)
    return _workbook_bytes(workbook)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def template_rows(categories: Sequence[Category], today: date | None = None) -> list[list[str]]:
    """Build the instruction and sample rows shared by both template formats.

    The instruction row begins with ``#`` and contains ``Format:`` so the
    importer skips it.  The two sample rows use the first two categories,
    or an empty name when fewer exist.
    """
    today = today or date.today()
    shown = today.strftime(DATE_FORMAT)
    names = [c.name for c in categories]

    def name_at(index: int) -> str:
        return names[index] if index < len(names) else ""

    return [
        [
            f"# Format: MM/DD/YYYY (e.g., {shown})",
            "Text",
            "Number",
            f"One of: {', '.join(names)}",
        ],
        [shown, "Sample Expense", "50.00", name_at(0)],
        [shown, "Lunch", "15.50", name_at(1)],
    ]


def template_csv(categories: Sequence[Category], today: date | None = None) -> bytes:
    """Render the import template as tab-delimited UTF-8 text."""
    return _delimited([TEMPLATE_COLUMNS, *template_rows(categories, today)])


def template_xlsx(categories: Sequence[Category], today: date | None = None) -> bytes:
    """Render the import template as an .xlsx workbook with a ``Template`` sheet."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Template"
    sheet.append([name.capitalize() for name in TEMPLATE_COLUMNS])

    instruction, *samples = template_rows(categories, today)
    sheet.append(instruction)
    for sample in samples:
        sample[2] = Decimal(sample[2])
        sheet.append(sample)

    _style_header(sheet, len(TEMPLATE_COLUMNS))
    _set_widths(sheet, TEMPLATE_WIDTHS)
    return _workbook_bytes(workbook)


# ---------------------------------------------------------------------------
# File output
# ---------------------------------------------------------------------------


def format_for(path: str | Path) -> str:
    """Return ``"csv"`` or ``"xlsx"`` for *path*.

    Raises:
        ValueError: If the suffix is not ``.csv`` or ``.xlsx``.
    """
    suffix = Path(path).suffix.lower()
    if suffix not in FORMATS:
        raise ValueError(f"Unsupported export format {suffix!r}; use .csv or .xlsx")
    return FORMATS[suffix]


def write_export(
    path: str | Path,
    expenses: Sequence[Expense],
    categories: Sequence[Category],
) -> int:
    """Write the expense export to *path*, choosing the format by suffix.

    Creates the parent directory if needed and overwrites existing files.

    Returns:
        The number of expense rows written. Expenses left out by
        :func:`exportable` are not counted.
    """
    path = Path(path)
    fmt = format_for(path)
    pairs = exportable(expenses, categories)
    if fmt == "xlsx":
        payload = _xlsx_payload(pairs)
    else:
        payload = _csv_payload(pairs)
    _write(path, payload)
    return len(pairs)


def write_template(
    path: str | Path,
    categories: Sequence[Category],
    today: date | None = None,
) -> Path:
    """Write an import template to *path*, choosing the format by suffix."""
    path = Path(path)
    if format_for(path) == "xlsx":
        payload = template_xlsx(categories, today)
    else:
        payload = template_csv(categories, today)
    return _write(path, payload)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _delimited(rows: list[list[str]]) -> bytes:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, delimiter="\t", lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def _style_header(sheet, columns: int) -> None:
    bold = Font(bold=True)
    fill = PatternFill(start_color=HEADER_FILL, end_color=HEADER_FILL, fill_type="solid")
    for column in range(1, columns + 1):
        cell = sheet.cell(row=1, column=column)
        cell.font = bold
        cell.fill = fill


def _set_widths(sheet, widths: list[int]) -> None:
    for index, width in enumerate(widths, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width


def _workbook_bytes(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _write(path: Path, payload: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    logger.info("Wrote %d bytes to %s", len(payload), path)
    return path
