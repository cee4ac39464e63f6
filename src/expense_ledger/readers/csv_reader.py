"""Delimited-text reader for expense imports.

Accepted format:
    date, description, amount, category   (header names case-insensitive)

The delimiter is auto-detected between comma and tab.  Templates and exports
produced by this package are tab-delimited with a ``.csv`` extension so that
spreadsheet applications open them directly.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path

from expense_ledger.models import FileErrorCode, FileReadError, RawRow
from expense_ledger.readers.columns import build_row, map_header

logger = logging.getLogger(__name__)

DELIMITERS = ",\t"


def read(file_path: Path) -> list[RawRow]:
    """Read a comma- or tab-delimited file into raw rows.

    Args:
        file_path: Path to the text file.

    Returns:
        One :class:`RawRow` per line after the header, in file order.
        Completely empty lines are dropped; the importer numbers rows by
        their position in this list.  A line holding only delimiters
        (``,,,``) is not empty: it is kept, consumes a row number, and is
        later skipped by the importer as a blank row.

    Raises:
        FileReadError: If the file cannot be opened, is not valid UTF-8, or
            is not parseable as delimited text.
    """
    source = str(file_path)

    try:
        raw = Path(file_path).read_bytes()
    except FileNotFoundError:
        raise FileReadError(FileErrorCode.FILE_READ_FAILURE, f"{source}: file not found")
    except OSError as exc:
        raise FileReadError(FileErrorCode.FILE_READ_FAILURE, f"{source}: {exc}")

    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise FileReadError(
            FileErrorCode.DECODE_FAILURE, f"{source}: not valid UTF-8 text ({exc.reason})"
        )

    return parse_text(text, source=source)


def parse_text(text: str, source: str = "<text>") -> list[RawRow]:
    """Parse already-decoded delimited text into raw rows."""
    if not text.strip():
        return []

    delimiter = detect_delimiter(text)
    logger.debug("%s: using delimiter %r", source, delimiter)

    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        lines = [line for line in reader if line]
    except csv.Error as exc:
        raise FileReadError(FileErrorCode.DECODE_FAILURE, f"{source}: {exc}")

    if not lines:
        return []

    mapping = map_header(lines[0])
    return [build_row(cells, mapping) for cells in lines[1:]]


def detect_delimiter(text: str) -> str:
    """Choose between comma and tab for *text*.

    The header line decides when it contains either candidate.  Otherwise
    :class:`csv.Sniffer` is asked, restricted to the two candidates, with
    comma as the last resort.
    """
    header = text.splitlines()[0] if text else ""
    tabs, commas = header.count("\t"), header.count(",")
    if tabs or commas:
        return "\t" if tabs >= commas else ","

    try:
        return csv.Sniffer().sniff(text[:4096], delimiters=DELIMITERS).delimiter
    except csv.Error:
        return ","
