"""Derived analytics over the expense collection.

Every function is pure and recomputed from the expenses it is given; no
result is cached between calls.  Most take an optional *month*
(``"YYYY-MM"``) that restricts the computation to expenses dated in that
month.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from expense_ledger.models import Budget, Category, Expense

TOP_N = 5


@dataclass
class FrequentItem:
    """A group of expenses sharing a description (case-insensitive) and category."""

    description: str
    category: str
    count: int
    total_amount: Decimal

    @property
    def average(self) -> Decimal:
        return self.total_amount / self.count


@dataclass
class BudgetStatus:
    """Spending against the budget of one month."""

    month: str
    budget: Decimal
    spent: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.budget - self.spent

    @property
    def percent_used(self) -> float:
        if not self.budget:
            return 0.0
        return float(self.spent / self.budget * 100)

    @property
    def over_budget(self) -> bool:
        return self.spent > self.budget


def filter_by_month(expenses: Sequence[Expense], month: str | None = None) -> list[Expense]:
    """Return the expenses dated in *month*, or all of them if *month* is None."""
    if not month:
        return list(expenses)
    return [e for e in expenses if e.date.isoformat().startswith(month)]


def total_for_period(expenses: Sequence[Expense], month: str | None = None) -> Decimal:
    """Sum of amounts over the (optionally month-filtered) expenses."""
    return sum((e.amount for e in filter_by_month(expenses, month)), Decimal("0"))


def totals_by_category(
    expenses: Sequence[Expense],
    categories: Sequence[Category],
    month: str | None = None,
) -> dict[str, Decimal]:
    """Map category display name to the summed amount of its expenses.

    Categories without matching expenses are omitted, as are expenses whose
    category no longer exists.  Keys appear in first-encounter order.
    """
    names = {c.id: c.name for c in categories}
    totals: dict[str, Decimal] = {}
    for expense in filter_by_month(expenses, month):
        name = names.get(expense.category)
        if name is None:
            continue
        totals[name] = totals.get(name, Decimal("0")) + expense.amount
    return totals


def most_frequent_items(
    expenses: Sequence[Expense],
    month: str | None = None,
    limit: int = TOP_N,
) -> list[FrequentItem]:
    """Rank (description, category) groups by how often they occur.

    Descriptions are grouped case-insensitively; each group keeps the
    description as first seen.  Ties keep encounter order.
    """
    groups: dict[tuple[str, str], FrequentItem] = {}
    for expense in filter_by_month(expenses, month):
        key = (expense.description.lower(), expense.category)
        item = groups.get(key)
        if item is None:
            item = FrequentItem(
                description=expense.description,
                category=expense.category,
                count=0,
                total_amount=Decimal("0"),
            )
            groups[key] = item
        item.count += 1
        item.total_amount += expense.amount

    ranked = sorted(groups.values(), key=lambda item: item.count, reverse=True)
    return ranked[:limit]


def most_expensive_items(
    expenses: Sequence[Expense],
    month: str | None = None,
    limit: int = TOP_N,
) -> list[Expense]:
    """The individual expenses with the largest amounts, no grouping."""
    ranked = sorted(filter_by_month(expenses, month), key=lambda e: e.amount, reverse=True)
    return ranked[:limit]


def duplicate_key(expense: Expense) -> tuple[str, Decimal, str, str]:
    """The fields two expenses must share to count as duplicates."""
    return (
        expense.description.lower(),
        expense.amount,
        expense.category,
        expense.date.isoformat(),
    )


def duplicate_groups(
    expenses: Sequence[Expense],
    month: str | None = None,
) -> list[list[Expense]]:
    """Group expenses that share description, amount, category and date.

    Only groups of two or more are returned, in first-encounter order.
    """
    groups: defaultdict[tuple, list[Expense]] = defaultdict(list)
    for expense in filter_by_month(expenses, month):
        groups[duplicate_key(expense)].append(expense)
    return [group for group in groups.values() if len(group) > 1]


def duplicate_ids(expenses: Sequence[Expense], month: str | None = None) -> set[str]:
    """Ids of every expense that belongs to a duplicate group."""
    return {e.id for group in duplicate_groups(expenses, month) for e in group}


def is_duplicate(expense: Expense, expenses: Sequence[Expense]) -> bool:
    """True if at least one other record in *expenses* shares *expense*'s key.

    *expense* itself is expected to be part of *expenses*, as when checking
    the rows of a visible list.
    """
    key = duplicate_key(expense)
    return sum(1 for e in expenses if duplicate_key(e) == key) > 1


def budget_for(budgets: Sequence[Budget], month: str) -> Budget | None:
    """Return the budget set for *month*, if any."""
    for budget in budgets:
        if budget.month == month:
            return budget
    return None


def budget_status(
    expenses: Sequence[Expense],
    budgets: Sequence[Budget],
    month: str,
) -> BudgetStatus:
    """Compare *month*'s spending to its budget (zero if none is set)."""
    budget = budget_for(budgets, month)
    return BudgetStatus(
        month=month,
        budget=budget.amount if budget is not None else Decimal("0"),
        spent=total_for_period(expenses, month),
    )
