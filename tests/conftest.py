"""Shared pytest fixtures for Expense Ledger tests.

Provides reusable fixtures for:
- categories: The default category seed set.
- food_and_shopping: A two-category list used by validation scenarios.
- sample_expenses: Realistic Expense objects spanning two months, with a
  duplicate pair and a repeated description.
- tmp_project_dir: A temporary ledger directory with config.toml and an
  empty exports directory.
- write_xlsx: Helper that writes rows into a temporary .xlsx workbook.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from openpyxl import Workbook

from expense_ledger.config import initialize
from expense_ledger.models import Category, Expense, default_categories

# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@pytest.fixture
def categories() -> list[Category]:
    """The default category seed set (Shopping, Housing, Transport, Food ...)."""
    return default_categories()


@pytest.fixture
def food_and_shopping() -> list[Category]:
    """Exactly two categories: Food and Shopping."""
    return [
        Category(id="food", name="Food", color="#96CEB4"),
        Category(id="shop", name="Shopping", color="#FF6B6B"),
    ]


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------


def make_expense(
    expense_id: str = "exp000000001",
    description: str = "Coffee",
    amount: str = "4.50",
    category: str = "4",
    when: date = date(2024, 1, 15),
    tags: list[str] | None = None,
    note: str = "",
    is_recurring: bool = False,
    recurring_frequency=None,
) -> Expense:
    """Build an Expense with sensible defaults."""
    return Expense(
        id=expense_id,
        description=description,
        amount=Decimal(amount),
        category=category,
        date=when,
        tags=tags or [],
        is_recurring=is_recurring,
        recurring_frequency=recurring_frequency,
        note=note,
    )


@pytest.fixture
def sample_expenses() -> list[Expense]:
    """Ten expenses across January and February 2024.

    - "Coffee" (Food) appears four times; two of them on 2024-01-15 for
      4.50 are exact duplicates (one with different casing).
    - "Rent" (Housing) is the most expensive item each month.
    - One expense refers to a deleted category id ("gone").
    """
    return [
        make_expense("e01", "Coffee", "4.50", "4", date(2024, 1, 15)),
        make_expense("e02", "coffee", "4.50", "4", date(2024, 1, 15)),
        make_expense("e03", "Coffee", "5.00", "4", date(2024, 1, 20)),
        make_expense("e04", "Rent", "1200.00", "2", date(2024, 1, 1)),
        make_expense("e05", "Groceries", "85.20", "4", date(2024, 1, 8), tags=["weekly"]),
        make_expense("e06", "Bus pass", "60.00", "3", date(2024, 1, 3)),
        make_expense("e07", "Headphones", "129.99", "1", date(2024, 1, 28)),
        make_expense("e08", "Old gym", "30.00", "gone", date(2024, 1, 10)),
        make_expense("e09", "Rent", "1200.00", "2", date(2024, 2, 1)),
        make_expense("e10", "Coffee", "4.50", "4", date(2024, 2, 2)),
    ]


# ---------------------------------------------------------------------------
# Files and directories
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """A temporary ledger directory initialized with the default config."""
    project = tmp_path / "ledger"
    initialize(project)
    return project


@pytest.fixture
def write_xlsx(tmp_path: Path):
    """Return a helper that writes rows to ``tmp_path/<name>`` as a workbook."""

    def _write(rows: list[list[object]], name: str = "import.xlsx") -> Path:
        workbook = Workbook()
        sheet = workbook.active
        for row in rows:
            sheet.append(row)
        path = tmp_path / name
        workbook.save(path)
        return path

    return _write
