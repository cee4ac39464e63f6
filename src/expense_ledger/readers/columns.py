"""Header mapping shared by all readers.

Headers are lower-cased and trimmed and matched by name against the four
canonical fields.  Unrecognized headers are ignored.  When no header is
recognized at all, the first four columns are taken positionally.
"""

from __future__ import annotations

from collections.abc import Sequence

from expense_ledger.models import RawRow

CANONICAL_FIELDS = ("date", "description", "amount", "category")


def map_header(header: Sequence[object]) -> dict[str, int]:
    """Map canonical field names to 0-based column indexes.

    Fields absent from the header are absent from the returned dict.
    """
    normalized = [str(cell).strip().lower() if cell is not None else "" for cell in header]

    mapping: dict[str, int] = {}
    for index, name in enumerate(normalized):
        if name in CANONICAL_FIELDS and name not in mapping:
            mapping[name] = index

    if not mapping:
        return {name: index for index, name in enumerate(CANONICAL_FIELDS)}
    return mapping


def build_row(cells: Sequence[object], mapping: dict[str, int]) -> RawRow:
    """Pick the canonical fields out of one row of cells."""

    def cell(name: str) -> object:
        index = mapping.get(name)
        if index is None or index >= len(cells):
            return ""
        value = cells[index]
        return "" if value is None else value

    return RawRow(
        date=cell("date"),
        description=cell("description"),
        amount=cell("amount"),
        category=cell("category"),
    )
