"""Recurring expense expansion.

A recurring expense is stored as a fixed series of concrete expenses created
at entry time: the original plus eleven copies, each dated one step after
the previous one.  The series is not linked afterwards -- editing or deleting
one instance leaves the others untouched.

Month and year steps follow :mod:`dateutil.relativedelta` semantics: when
the target month is shorter, the day is clamped to its last day.  Because
each step starts from the previous instance, a clamped day carries forward
(Jan 31 -> Feb 29 -> Mar 29 -> Apr 29 ...).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from expense_ledger.models import Expense, Frequency, generate_id

logger = logging.getLogger(__name__)

SERIES_LENGTH = 12

_STEPS = {
    Frequency.DAILY: timedelta(days=1),
    Frequency.WEEKLY: timedelta(days=7),
    Frequency.MONTHLY: relativedelta(months=+1),
    Frequency.YEARLY: relativedelta(years=+1),
}


def advance_date(d: date, frequency: Frequency | str) -> date:
    """Return the date one *frequency* step after *d*.

    Raises:
        ValueError: If *frequency* is not a known frequency.
    """
    return d + _STEPS[Frequency(frequency)]


def recurring_dates(start: date, frequency: Frequency | str, count: int = SERIES_LENGTH) -> list[date]:
    """Return the ``count - 1`` dates following *start* in a series."""
    dates: list[date] = []
    current = start
    for _ in range(1, count):
        current = advance_date(current, frequency)
        dates.append(current)
    return dates


def expand_recurring(expense: Expense, count: int = SERIES_LENGTH) -> list[Expense]:
    """Generate the additional instances of a recurring expense.

    Args:
        expense: The newly entered expense.  Nothing is generated unless
            ``is_recurring`` is set and a frequency is given.
        count: Total series length including *expense* itself.

    Returns:
        ``count - 1`` copies of *expense*, each with a new id and the next
        date in the series.  Every other field is identical.

    Raises:
        ValueError: If the frequency is not a known frequency.
    """
    if not expense.is_recurring or expense.recurring_frequency is None:
        return []

    frequency = Frequency(expense.recurring_frequency)
    instances = [
        replace(expense, id=generate_id(), date=d, tags=list(expense.tags))
        for d in recurring_dates(expense.date, frequency, count)
    ]
    logger.debug(
        "Expanded recurring expense %s into %d %s instances",
        expense.id,
        len(instances),
        frequency.value,
    )
    return instances
