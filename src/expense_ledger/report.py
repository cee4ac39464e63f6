"""Human-readable summaries printed by the CLI.

:func:`print_summary` prints the analytics for one month (or all time):
total spent, budget status, spending by category, most frequent and most
expensive items, and the number of duplicate groups.
"""

from __future__ import annotations

from collections.abc import Sequence

from expense_ledger import analytics
from expense_ledger.models import Budget, Category, Expense, ImportResult


def print_summary(
    expenses: Sequence[Expense],
    categories: Sequence[Category],
    budgets: Sequence[Budget],
    month: str | None = None,
) -> None:
    """Print the analytics summary for *month* (all expenses if None)."""
    names = {c.id: c.name for c in categories}
    visible = analytics.filter_by_month(expenses, month)
    total = analytics.total_for_period(visible)

    print()
    print(f"== Expense Summary: {month or 'all time'} ==")
    print(f"Total:    ${total:,.2f} across {len(visible)} expenses")

    if month:
        status = analytics.budget_status(expenses, budgets, month)
        if status.budget:
            print(
                f"Budget:   ${status.budget:,.2f} "
                f"(remaining ${status.remaining:,.2f}, {status.percent_used:.1f}% used)"
            )
            if status.over_budget:
                print("          Over budget!")
        else:
            print("Budget:   (not set)")

    by_category = analytics.totals_by_category(visible, categories)
    if by_category:
        print()
        print("Spending by category:")
        for name, amount in sorted(by_category.items(), key=lambda pair: pair[1], reverse=True):
            print(f"  {name + ':':<25} ${amount:,.2f}")

    frequent = analytics.most_frequent_items(visible)
    if frequent:
        print()
        print("Most frequent items:")
        for i, item in enumerate(frequent, start=1):
            category = names.get(item.category, "(deleted)")
            print(
                f"  {i:>2}. {item.description:<30} {category:<15} "
                f"({item.count}x, ${item.total_amount:,.2f}, avg ${item.average:,.2f})"
            )

    expensive = analytics.most_expensive_items(visible)
    if expensive:
        print()
        print("Most expensive items:")
        for i, expense in enumerate(expensive, start=1):
            category = names.get(expense.category, "(deleted)")
            print(
                f"  {i:>2}. {expense.description:<30} {category:<15} "
                f"${expense.amount:,.2f} on {expense.date.isoformat()}"
            )

    groups = analytics.duplicate_groups(visible)
    if groups:
        print()
        print(f"Possible duplicates: {len(groups)} groups "
              f"({sum(len(g) for g in groups)} expenses)")

    print()


def print_import_result(result: ImportResult) -> None:
    """Print the outcome of an import, one error per line."""
    print()
    print(f"== Import: {result.status.value} ==")
    print(result.message)
    if result.skipped:
        print(f"Skipped rows: {result.skipped}")
    print()
