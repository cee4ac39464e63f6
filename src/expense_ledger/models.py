"""Core data models for Expense Ledger.

This module defines all dataclasses, enums and utility functions used
throughout the package. It has zero internal imports -- everything depends
on it, but it depends on nothing within the package.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum


def generate_id() -> str:
    """Generate a new random identifier for an expense or category.

    Returns:
        A 12-character lowercase hex string.
    """
    return uuid.uuid4().hex[:12]


class Frequency(str, Enum):
    """How often a recurring expense repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RowErrorCode(str, Enum):
    """Row-level validation failures. Each one rejects only its row."""

    MISSING_FIELDS = "MissingFields"
    BAD_DATE_FORMAT = "BadDateFormat"
    INVALID_DATE = "InvalidDate"
    INVALID_AMOUNT = "InvalidAmount"
    UNKNOWN_CATEGORY = "UnknownCategory"
    AMBIGUOUS_CATEGORY = "AmbiguousCategory"


class FileErrorCode(str, Enum):
    """File-level failures. Each one aborts the whole import."""

    NO_FILE_SELECTED = "NoFileSelected"
    FILE_TYPE_REJECTED = "FileTypeRejected"
    FILE_READ_FAILURE = "FileReadFailure"
    DECODE_FAILURE = "DecodeFailure"


class ImportStatus(str, Enum):
    """Terminal outcome of one import attempt."""

    SUCCESS = "success"
    PARTIAL = "partial"
    VALIDATION_FAILED = "validation_failed"
    NO_VALID_EXPENSES = "no_valid_expenses"
    READ_FAILED = "read_failed"


class FileReadError(Exception):
    """Raised by readers when a file cannot be opened or decoded.

    The importer catches this at the file-reading boundary and turns it
    into an :class:`ImportResult` with status ``read_failed``.
    """

    def __init__(self, code: FileErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class Category:
    """An expense category.

    Attributes:
        id: Unique identifier referenced by :attr:`Expense.category`.
        name: Display name. Import matching compares names
            case-insensitively after trimming.
        color: Display color as a hex string, e.g. ``"#FF6B6B"``.
        icon: Optional icon reference for front ends.
    """

    id: str
    name: str
    color: str = "#9E9E9E"
    icon: str = ""


@dataclass
class Expense:
    """A single recorded expense.

    Attributes:
        id: Unique 12-char hex identifier generated at creation.
        description: Free text, possibly empty.
        amount: Positive decimal amount. No currency is attached.
        category: Identifier of the :class:`Category` this expense belongs
            to. Not guaranteed to resolve after a category is deleted.
        date: Calendar date of the expense.
        tags: Free-text labels. Order carries no meaning.
        is_recurring: True if this expense was entered as recurring.
        recurring_frequency: Step between occurrences, set only when
            ``is_recurring`` is True.
        note: Optional free-text note.
    """

    id: str
    description: str
    amount: Decimal
    category: str
    date: date
    tags: list[str] = field(default_factory=list)
    is_recurring: bool = False
    recurring_frequency: Frequency | None = None
    note: str = ""

    @property
    def month(self) -> str:
        """The ``YYYY-MM`` month this expense falls in."""
        return self.date.strftime("%Y-%m")


@dataclass
class Budget:
    """Monthly spending target. At most one per ``YYYY-MM`` month."""

    month: str
    amount: Decimal


@dataclass
class RawRow:
    """One untyped record read from an import file, before validation.

    Values are strings for CSV input. Spreadsheet readers may pass native
    cell values through (numbers for amounts, dates for date cells).
    """

    date: object = ""
    description: object = ""
    amount: object = ""
    category: object = ""

    def values(self) -> tuple[object, object, object, object]:
        return (self.date, self.description, self.amount, self.category)


@dataclass
class ImportedExpense:
    """A validated, normalized row ready to become an :class:`Expense`."""

    date: date
    description: str
    amount: Decimal
    category: str

    def to_expense(self) -> Expense:
        """Create a new :class:`Expense` with a fresh identifier."""
        return Expense(
            id=generate_id(),
            description=self.description,
            amount=self.amount,
            category=self.category,
            date=self.date,
        )


@dataclass
class RowError:
    """A single validation failure tied to a 1-based display row number."""

    code: RowErrorCode
    row_number: int
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationResult:
    """Outcome of validating one :class:`RawRow`.

    Exactly one of ``expense`` (valid) or a non-empty ``errors`` list
    (invalid) is populated.
    """

    row_number: int
    expense: ImportedExpense | None = None
    errors: list[RowError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.expense is not None and not self.errors


@dataclass
class ImportResult:
    """Reported outcome of one import attempt.

    Attributes:
        status: Terminal outcome, see :class:`ImportStatus`.
        expenses: Validated records. For ``validation_failed`` these are
            the rows that passed, carried for reporting only.
        errors: Every row-level error, in row order.
        message: Human-readable summary suitable for display.
        file_error: Set when ``status`` is ``read_failed``.
        skipped: Number of rows filtered out before validation (blank,
            comment and instruction rows).
    """

    status: ImportStatus
    expenses: list[ImportedExpense] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    message: str = ""
    file_error: FileErrorCode | None = None
    skipped: int = 0

    @property
    def committable(self) -> bool:
        """True if the validated records should be added to the ledger."""
        return self.status in (ImportStatus.SUCCESS, ImportStatus.PARTIAL)


@dataclass
class AppConfig:
    """Top-level application configuration loaded from config.toml.

    Attributes:
        state_file: JSON file holding the persisted ledger state.
            Default: "expenses.json".
        export_dir: Directory for exported files and templates.
            Default: "exports".
        allow_partial: If True, an import with some invalid rows still
            commits the valid ones. Default: False.
        export_format: Default file format for ``export`` and ``template``,
            "csv" or "xlsx".
    """

    state_file: str = "expenses.json"
    export_dir: str = "exports"
    allow_partial: bool = False
    export_format: str = "csv"


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="1", name="Shopping", color="#FF6B6B", icon="ShoppingCart"),
    Category(id="2", name="Housing", color="#4ECDC4", icon="Home"),
    Category(id="3", name="Transport", color="#45B7D1", icon="Car"),
    Category(id="4", name="Food", color="#96CEB4", icon="Utensils"),
    Category(id="5", name="Travel", color="#FFEEAD", icon="Plane"),
    Category(id="6", name="Healthcare", color="#D4A5A5", icon="Heart"),
    Category(id="7", name="Internet", color="#9B97B2", icon="Wifi"),
    Category(id="8", name="Phone", color="#A8E6CF", icon="Smartphone"),
)


def default_categories() -> list[Category]:
    """Return a fresh copy of the default category seed set."""
    return [
        Category(id=c.id, name=c.name, color=c.color, icon=c.icon)
        for c in DEFAULT_CATEGORIES
    ]
