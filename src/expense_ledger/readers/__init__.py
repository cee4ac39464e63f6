"""Reader registry for tabular import files.

Each reader is a module exposing a ``read(file_path)`` function that returns
a list of :class:`~expense_ledger.models.RawRow` (one per data row, header
excluded, in file order) or raises
:class:`~expense_ledger.models.FileReadError`.  The ``READERS`` dict maps
lower-case file suffixes to read functions, and ``get_reader()`` provides a
lookup with a clear error on unknown suffixes.
"""

from __future__ import annotations

from collections.abc import Callable

from expense_ledger.readers import csv_reader, xlsx_reader

READERS: dict[str, Callable] = {
    ".csv": csv_reader.read,
    ".tsv": csv_reader.read,
    ".txt": csv_reader.read,
    ".xlsx": xlsx_reader.read,
    ".xlsm": xlsx_reader.read,
}


def get_reader(suffix: str) -> Callable:
    """Look up a reader by file suffix.

    Args:
        suffix: File suffix including the dot, e.g. ".csv".  Matched
            case-insensitively.

    Returns:
        The read function registered for the suffix.

    Raises:
        KeyError: If no reader is registered for the suffix.
    """
    return READERS[suffix.lower()]
