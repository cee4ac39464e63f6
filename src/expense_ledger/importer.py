"""Tabular import of expenses from CSV or spreadsheet files.

An import runs in three steps:

1. **Read** -- pick a reader by file suffix and turn the file into
   :class:`~expense_ledger.models.RawRow` objects.  Any failure here
   (unsupported suffix, unreadable file, undecodable content) ends the
   import with a single ``read_failed`` outcome.
2. **Filter** -- drop blank rows, comment rows (a field starting with
   ``#``) and template instruction rows (a field containing ``Format:``).
3. **Validate** -- run :func:`~expense_ledger.validation.validate_row` on
   every remaining row and collect all errors.

The import never raises on bad input; every attempt terminates in an
:class:`~expense_ledger.models.ImportResult`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from expense_ledger.models import (
    Category,
    FileErrorCode,
    FileReadError,
    ImportedExpense,
    ImportResult,
    ImportStatus,
    RawRow,
    RowError,
)
from expense_ledger.readers import READERS, get_reader
from expense_ledger.validation import validate_row

logger = logging.getLogger(__name__)

# Data rows start on display row 2: the header is row 1.
HEADER_OFFSET = 2


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def import_file(
    file_path: str | Path | None,
    categories: Sequence[Category],
    allow_partial: bool = False,
) -> ImportResult:
    """Read and validate an import file.

    Args:
        file_path: Path to a ``.csv`` (comma or tab delimited) or ``.xlsx``
            file.  ``None`` or an empty string means no file was chosen.
        categories: Known categories; row category names are matched
            against these.
        allow_partial: If True, a file with both valid and invalid rows
            yields a ``partial`` outcome whose valid rows may be committed.

    Returns:
        The :class:`ImportResult` for this attempt.
    """
    if file_path is None or str(file_path).strip() == "":
        return _read_failure(FileErrorCode.NO_FILE_SELECTED, "No file selected")

    path = Path(file_path)

    try:
        reader = get_reader(path.suffix)
    except KeyError:
        supported = ", ".join(sorted(READERS))
        return _read_failure(
            FileErrorCode.FILE_TYPE_REJECTED,
            f"{path.name}: unsupported file type {path.suffix or '(none)'!r}. "
            f"Supported types: {supported}",
        )

    try:
        rows = reader(path)
    except FileReadError as exc:
        return _read_failure(exc.code, exc.message)
    except Exception as exc:
        logger.debug("Unexpected reader failure for %s", path, exc_info=True)
        return _read_failure(
            FileErrorCode.DECODE_FAILURE, f"{path.name}: failed to parse file: {exc}"
        )

    return process_rows(rows, categories, allow_partial=allow_partial)


async def import_file_async(
    file_path: str | Path | None,
    categories: Sequence[Category],
    *,
    on_complete: Callable[[], None] | None = None,
    allow_partial: bool = False,
) -> ImportResult:
    """Asynchronous variant of :func:`import_file`.

    File reading and validation run in a worker thread so the event loop
    stays responsive.  *on_complete* is called exactly once after the
    import finishes, whatever the outcome -- including when the import
    itself raises.  There is no cancellation: once started, the read runs
    to completion.

    Returns:
        The :class:`ImportResult` for this attempt.
    """
    try:
        return await asyncio.to_thread(
            import_file, file_path, categories, allow_partial
        )
    finally:
        if on_complete is not None:
            on_complete()


def process_rows(
    rows: Sequence[RawRow],
    categories: Sequence[Category],
    allow_partial: bool = False,
) -> ImportResult:
    """Filter and validate raw rows and decide the import outcome.

    Row numbers in error messages are the row's position in *rows* plus
    two, counted before filtering, so they match the line the user sees in
    the file.

    Outcome policy:

    - Any row error: ``validation_failed`` listing every error (or
      ``partial`` when *allow_partial* is set and some rows passed).
    - No errors, at least one valid row: ``success``.
    - No errors, no rows left after filtering: ``no_valid_expenses``.
    """
    expenses: list[ImportedExpense] = []
    errors: list[RowError] = []
    skipped = 0

    for index, row in enumerate(rows):
        row_number = index + HEADER_OFFSET

        if should_skip(row):
            skipped += 1
            logger.debug("Skipping row %d (blank, comment or instruction row)", row_number)
            continue

        result = validate_row(row, row_number, categories)
        if result.is_valid:
            expenses.append(result.expense)
        else:
            errors.extend(result.errors)

    if errors:
        failed_rows = len({e.row_number for e in errors})
        if allow_partial and expenses:
            status = ImportStatus.PARTIAL
            message = (
                f"Imported {len(expenses)} expenses; "
                f"{failed_rows} rows had errors:\n"
                + "\n".join(e.message for e in errors)
            )
        else:
            status = ImportStatus.VALIDATION_FAILED
            message = "\n".join(e.message for e in errors)
        logger.info(
            "Import finished with %d valid rows and %d failed rows", len(expenses), failed_rows
        )
        return ImportResult(
            status=status,
            expenses=expenses,
            errors=errors,
            message=message,
            skipped=skipped,
        )

    if not expenses:
        logger.info("Import found no valid expenses (%d rows skipped)", skipped)
        return ImportResult(
            status=ImportStatus.NO_VALID_EXPENSES,
            message="No valid expenses found in file",
            skipped=skipped,
        )

    logger.info("Import succeeded with %d expenses", len(expenses))
    return ImportResult(
        status=ImportStatus.SUCCESS,
        expenses=expenses,
        message=f"Successfully imported {len(expenses)} expenses",
        skipped=skipped,
    )


def should_skip(row: RawRow) -> bool:
    """Return True for rows that are not data: blank, comment or instruction.

    Only the four canonical fields are inspected.
    """
    texts = ["" if value is None else str(value).strip() for value in row.values()]

    if all(text == "" for text in texts):
        return True
    return any(text.startswith("#") or "Format:" in text for text in texts)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_failure(code: FileErrorCode, message: str) -> ImportResult:
    logger.warning("Import failed: %s", message)
    return ImportResult(
        status=ImportStatus.READ_FAILED,
        message=message,
        file_error=code,
    )
