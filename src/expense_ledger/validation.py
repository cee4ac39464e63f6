"""Row validation for imported expense data.

:func:`validate_row` checks one :class:`~expense_ledger.models.RawRow`
against the date, amount and category rules and returns a
:class:`~expense_ledger.models.ValidationResult`. It is a pure function:
the same row, row number and categories always produce an equal result.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from expense_ledger.models import (
    Category,
    ImportedExpense,
    RawRow,
    RowError,
    RowErrorCode,
    ValidationResult,
)

DATE_PATTERN = re.compile(r"^(0?[1-9]|1[0-2])/(0?[1-9]|[12][0-9]|3[01])/(\d{4})$")

CENTS = Decimal("0.01")

# Amounts of 10**15 or more are rejected.
MAX_AMOUNT_DIGITS = 15


def validate_row(
    row: RawRow,
    row_number: int,
    categories: Sequence[Category],
) -> ValidationResult:
    """Validate and normalize a single imported row.

    A row missing its date, amount or category fails immediately with
    ``MissingFields``. Otherwise the date, amount and category checks all
    run and every failure is collected.

    Args:
        row: The raw row as read from the file.
        row_number: 1-based display row number (header counted).
        categories: Known categories to match the category name against.

    Returns:
        A valid result carrying an
        :class:`~expense_ledger.models.ImportedExpense`, or an invalid
        result carrying one or more :class:`~expense_ledger.models.RowError`.
    """
    if _is_blank(row.date) or _is_blank(row.amount) or _is_blank(row.category):
        return ValidationResult(
            row_number=row_number,
            errors=[
                RowError(
                    RowErrorCode.MISSING_FIELDS,
                    row_number,
                    f"Row {row_number}: Missing required fields",
                )
            ],
        )

    errors: list[RowError] = []

    parsed_date, date_error = _check_date(row.date, row_number)
    if date_error is not None:
        errors.append(date_error)

    amount, amount_error = _check_amount(row.amount, row_number)
    if amount_error is not None:
        errors.append(amount_error)

    category_id, category_error = _check_category(row.category, row_number, categories)
    if category_error is not None:
        errors.append(category_error)

    if errors:
        return ValidationResult(row_number=row_number, errors=errors)

    return ValidationResult(
        row_number=row_number,
        expense=ImportedExpense(
            date=parsed_date,
            description=_text(row.description),
            amount=amount,
            category=category_id,
        ),
    )


def find_category(name: str, categories: Sequence[Category]) -> list[Category]:
    """Return every category whose name equals *name* case-insensitively."""
    wanted = name.strip().casefold()
    return [c for c in categories if c.name.strip().casefold() == wanted]


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def _check_date(value: object, row_number: int) -> tuple[date | None, RowError | None]:
    # Spreadsheet cells formatted as dates arrive as native values.
    if isinstance(value, datetime):
        return value.date(), None
    if isinstance(value, date):
        return value, None

    text = _text(value)
    match = DATE_PATTERN.match(text)
    if match is None:
        return None, RowError(
            RowErrorCode.BAD_DATE_FORMAT,
            row_number,
            f"Row {row_number}: Invalid date format. Use MM/DD/YYYY",
        )

    month, day, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day), None
    except ValueError:
        return None, RowError(
            RowErrorCode.INVALID_DATE,
            row_number,
            f"Row {row_number}: Invalid date {text!r}. Not a real calendar date",
        )


def _check_amount(value: object, row_number: int) -> tuple[Decimal | None, RowError | None]:
    error = RowError(
        RowErrorCode.INVALID_AMOUNT,
        row_number,
        f"Row {row_number}: Invalid amount. Must be a positive number",
    )

    if isinstance(value, bool):
        return None, error

    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float)):
            amount = Decimal(str(value))
        else:
            amount = Decimal(_text(value))
    except InvalidOperation:
        return None, error

    if not amount.is_finite() or amount <= 0 or amount.adjusted() >= MAX_AMOUNT_DIGITS:
        return None, error

    # Stored at cent precision so an exported amount re-imports unchanged.
    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if amount <= 0:
        return None, error
    return amount, None


def _check_category(
    value: object,
    row_number: int,
    categories: Sequence[Category],
) -> tuple[str | None, RowError | None]:
    name = _text(value)
    matches = find_category(name, categories)

    if len(matches) == 1:
        return matches[0].id, None

    if len(matches) > 1:
        return None, RowError(
            RowErrorCode.AMBIGUOUS_CATEGORY,
            row_number,
            f'Row {row_number}: Ambiguous category "{name}". '
            f"{len(matches)} categories share this name",
        )

    valid = ", ".join(c.name for c in categories)
    return None, RowError(
        RowErrorCode.UNKNOWN_CATEGORY,
        row_number,
        f'Row {row_number}: Invalid category "{name}". Valid categories are: {valid}',
    )


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _is_blank(value: object) -> bool:
    return _text(value) == ""
