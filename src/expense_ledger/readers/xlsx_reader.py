"""Spreadsheet (.xlsx) reader for expense imports.

Only the first worksheet is read.  Its first row holds the headers; the same
four logical columns as the text format apply.  Amount cells may hold native
numbers and date cells native dates -- both are passed through untouched and
accepted by the validator.
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from expense_ledger.models import FileErrorCode, FileReadError, RawRow
from expense_ledger.readers.columns import build_row, map_header

logger = logging.getLogger(__name__)


def read(file_path: Path) -> list[RawRow]:
    """Read the first worksheet of an .xlsx workbook into raw rows.

    Args:
        file_path: Path to the workbook.

    Returns:
        One :class:`RawRow` per worksheet row after the header, blank rows
        included, so that list position maps to the spreadsheet row number.

    Raises:
        FileReadError: If the file cannot be opened or is not a readable
            workbook.
    """
    source = str(file_path)

    try:
        raw = Path(file_path).read_bytes()
    except FileNotFoundError:
        raise FileReadError(FileErrorCode.FILE_READ_FAILURE, f"{source}: file not found")
    except OSError as exc:
        raise FileReadError(FileErrorCode.FILE_READ_FAILURE, f"{source}: {exc}")

    try:
        workbook = load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, ValueError, OSError) as exc:
        raise FileReadError(
            FileErrorCode.DECODE_FAILURE, f"{source}: not a readable spreadsheet ({exc})"
        )

    try:
        sheet = workbook.worksheets[0]
        rows = list(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    logger.debug("%s: read %d worksheet rows from %r", source, len(rows), sheet.title)

    if not rows:
        return []

    mapping = map_header(rows[0])
    return [build_row(cells, mapping) for cells in rows[1:]]
