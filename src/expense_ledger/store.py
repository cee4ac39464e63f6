"""Ledger state, state transitions and persistence.

The ledger is a plain :class:`LedgerState` value.  Every mutation is a pure
function taking a state and returning a new one, so the transition logic
can be tested without touching storage.  :class:`ExpenseStore` holds the
current state and an injected :class:`StoragePort`: it loads once on
creation and saves after every mutation.

Persisted format (a single JSON object under a fixed namespace key)::

    {
        "expense-tracker-storage": {
            "expenses": [...],
            "categories": [...],
            "budgets": [...],
            "theme": "light"
        }
    }

There is no schema versioning.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Protocol

from expense_ledger.models import (
    Budget,
    Category,
    Expense,
    Frequency,
    default_categories,
    generate_id,
)
from expense_ledger.recurring import expand_recurring

logger = logging.getLogger(__name__)

STORAGE_KEY = "expense-tracker-storage"


@dataclass
class LedgerState:
    """Everything the application persists.

    Attributes:
        expenses: All expenses, in insertion order.
        categories: Known categories, seeded with the defaults.
        budgets: Monthly budgets, at most one per month.
        theme: Display theme flag, "light" or "dark".
    """

    expenses: list[Expense] = field(default_factory=list)
    categories: list[Category] = field(default_factory=default_categories)
    budgets: list[Budget] = field(default_factory=list)
    theme: str = "light"


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def add_expense(state: LedgerState, expense: Expense) -> LedgerState:
    """Append *expense*, plus its generated series if it is recurring."""
    return replace(state, expenses=[*state.expenses, expense, *expand_recurring(expense)])


def add_expenses(state: LedgerState, expenses: Iterable[Expense]) -> LedgerState:
    """Append several expenses at once, expanding any recurring ones."""
    added: list[Expense] = []
    for expense in expenses:
        added.append(expense)
        added.extend(expand_recurring(expense))
    return replace(state, expenses=[*state.expenses, *added])


def update_expense(state: LedgerState, expense: Expense) -> LedgerState:
    """Replace the expense with the same id.  Unknown ids change nothing."""
    return replace(
        state,
        expenses=[expense if e.id == expense.id else e for e in state.expenses],
    )


def delete_expense(state: LedgerState, expense_id: str) -> LedgerState:
    return replace(state, expenses=[e for e in state.expenses if e.id != expense_id])


def bulk_delete_expenses(state: LedgerState, expense_ids: Iterable[str]) -> LedgerState:
    doomed = set(expense_ids)
    return replace(state, expenses=[e for e in state.expenses if e.id not in doomed])


def bulk_update_expenses(state: LedgerState, expenses: Iterable[Expense]) -> LedgerState:
    """Replace every expense whose id appears in *expenses*."""
    updates = {e.id: e for e in expenses}
    return replace(state, expenses=[updates.get(e.id, e) for e in state.expenses])


def add_category(
    state: LedgerState,
    name: str,
    color: str = "#9E9E9E",
    icon: str = "",
) -> LedgerState:
    """Add a category with a freshly generated id."""
    category = Category(id=generate_id(), name=name, color=color, icon=icon)
    return replace(state, categories=[*state.categories, category])


def delete_category(state: LedgerState, category_id: str) -> LedgerState:
    """Remove a category.  Expenses referring to it are left as they are."""
    return replace(state, categories=[c for c in state.categories if c.id != category_id])


def set_budget(state: LedgerState, budget: Budget) -> LedgerState:
    """Set the budget for ``budget.month``, replacing any existing one."""
    return replace(
        state,
        budgets=[*(b for b in state.budgets if b.month != budget.month), budget],
    )


def toggle_theme(state: LedgerState) -> LedgerState:
    return replace(state, theme="dark" if state.theme == "light" else "light")


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def state_to_dict(state: LedgerState) -> dict:
    """Convert a state to JSON-compatible primitives."""
    return {
        "expenses": [
            {
                "id": e.id,
                "description": e.description,
                "amount": str(e.amount),
                "category": e.category,
                "date": e.date.isoformat(),
                "tags": list(e.tags),
                "isRecurring": e.is_recurring,
                "recurringFrequency": (
                    e.recurring_frequency.value if e.recurring_frequency else None
                ),
                "note": e.note,
            }
            for e in state.expenses
        ],
        "categories": [
            {"id": c.id, "name": c.name, "color": c.color, "icon": c.icon}
            for c in state.categories
        ],
        "budgets": [{"month": b.month, "amount": str(b.amount)} for b in state.budgets],
        "theme": state.theme,
    }


def state_from_dict(data: dict) -> LedgerState:
    """Rebuild a state from :func:`state_to_dict` output."""
    expenses = [
        Expense(
            id=item["id"],
            description=item.get("description", ""),
            amount=Decimal(str(item["amount"])),
            category=item.get("category", ""),
            date=date.fromisoformat(item["date"]),
            tags=list(item.get("tags", [])),
            is_recurring=bool(item.get("isRecurring", False)),
            recurring_frequency=(
                Frequency(item["recurringFrequency"])
                if item.get("recurringFrequency")
                else None
            ),
            note=item.get("note") or "",
        )
        for item in data.get("expenses", [])
    ]

    if "categories" in data:
        categories = [
            Category(
                id=item["id"],
                name=item["name"],
                color=item.get("color", "#9E9E9E"),
                icon=item.get("icon", ""),
            )
            for item in data["categories"]
        ]
    else:
        categories = default_categories()

    budgets = [
        Budget(month=item["month"], amount=Decimal(str(item["amount"])))
        for item in data.get("budgets", [])
    ]

    return LedgerState(
        expenses=expenses,
        categories=categories,
        budgets=budgets,
        theme=data.get("theme", "light"),
    )


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class StoragePort(Protocol):
    """Where the ledger state is loaded from and saved to."""

    def load(self) -> LedgerState | None:
        """Return the saved state, or None if nothing has been saved."""
        ...

    def save(self, state: LedgerState) -> None:
        """Persist *state*, replacing whatever was saved before."""
        ...


class MemoryStorage:
    """In-process storage that keeps the last saved state."""

    def __init__(self, state: LedgerState | None = None) -> None:
        self.state = state
        self.saves = 0

    def load(self) -> LedgerState | None:
        return self.state

    def save(self, state: LedgerState) -> None:
        self.state = state
        self.saves += 1


class JsonFileStorage:
    """Stores the ledger as one JSON document under :data:`STORAGE_KEY`."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> LedgerState | None:
        """Return the saved state, or None if the file does not exist yet.

        Raises:
            ValueError: If the file exists but cannot be read or parsed.
                The file is left untouched so no ledger data is lost.
        """
        if not self.path.is_file():
            return None

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return state_from_dict(raw.get(STORAGE_KEY, {}))
        except (
            OSError,
            KeyError,
            TypeError,
            ValueError,
            AttributeError,
            ArithmeticError,
        ) as exc:
            logger.error("Could not read ledger state %s: %s", self.path, exc)
            raise ValueError(f"Could not read ledger state {self.path}: {exc}") from exc

    def save(self, state: LedgerState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {STORAGE_KEY: state_to_dict(state)}
        self.path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.debug("Saved ledger state: %s", self.path)


class ExpenseStore:
    """Current ledger state bound to a storage port.

    Each mutating method applies one transition to the whole state and then
    saves it.  Reads go through the :attr:`state` attribute.
    """

    def __init__(self, storage: StoragePort) -> None:
        self.storage = storage
        self.state = storage.load() or LedgerState()

    @property
    def expenses(self) -> list[Expense]:
        return self.state.expenses

    @property
    def categories(self) -> list[Category]:
        return self.state.categories

    @property
    def budgets(self) -> list[Budget]:
        return self.state.budgets

    def get_expense(self, expense_id: str) -> Expense | None:
        for expense in self.state.expenses:
            if expense.id == expense_id:
                return expense
        return None

    def add_expense(self, expense: Expense) -> None:
        self._apply(add_expense(self.state, expense))

    def add_expenses(self, expenses: Sequence[Expense]) -> None:
        self._apply(add_expenses(self.state, expenses))

    def update_expense(self, expense: Expense) -> None:
        self._apply(update_expense(self.state, expense))

    def delete_expense(self, expense_id: str) -> None:
        self._apply(delete_expense(self.state, expense_id))

    def bulk_delete_expenses(self, expense_ids: Iterable[str]) -> None:
        self._apply(bulk_delete_expenses(self.state, expense_ids))

    def bulk_update_expenses(self, expenses: Iterable[Expense]) -> None:
        self._apply(bulk_update_expenses(self.state, expenses))

    def add_category(self, name: str, color: str = "#9E9E9E", icon: str = "") -> Category:
        self._apply(add_category(self.state, name, color, icon))
        return self.state.categories[-1]

    def delete_category(self, category_id: str) -> None:
        self._apply(delete_category(self.state, category_id))

    def set_budget(self, budget: Budget) -> None:
        self._apply(set_budget(self.state, budget))

    def toggle_theme(self) -> None:
        self._apply(toggle_theme(self.state))

    def _apply(self, state: LedgerState) -> None:
        self.state = state
        self.storage.save(state)
