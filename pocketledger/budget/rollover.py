"""
Saving Buffer Rollover

Moves unused budget from closed months into the saving buffer.

The only state is on UserSettings:
- last_buffer_update: month checkpoint (day of month is irrelevant)
- saving_buffer: running total

Each closed month between the checkpoint and `now` is evaluated on its
own spend, so a user who skips the app for three months gets three
separate surpluses, not one approximation. Overspent months contribute
nothing; the buffer never goes down here.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from pocketledger.budget.calculator import expenses_in_month, limit_applicable_spend
from pocketledger.models.ledger import (
    Expense,
    MonthSurplus,
    RolloverReport,
    UserSettings,
)
from pocketledger.models.months import YearMonth


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def roll_forward(
    settings: UserSettings,
    expenses: Iterable[Expense],
    now: date,
) -> RolloverReport:
    """
    Bring the buffer up to date and describe what changed.

    - No checkpoint yet: the checkpoint becomes `now`, nothing is credited.
      Months before the first run are never rolled over.
    - Checkpoint in `now`'s month, or later: nothing to do.
    - Otherwise: every month from the checkpoint's up to (not including)
      `now`'s is evaluated and the checkpoint lands in `now`'s month.

    Mutates `settings` in place.
    """
    today = _as_date(now)
    buffer_before = settings.saving_buffer

    if settings.last_buffer_update is None:
        settings.last_buffer_update = today
        return RolloverReport(
            baseline_set=True,
            saving_buffer_before=buffer_before,
            saving_buffer_after=settings.saving_buffer,
            checkpoint=today,
        )

    expenses = list(expenses)
    target = YearMonth.from_date(today)
    checkpoint = YearMonth.from_date(settings.last_buffer_update)
    months = []

    while checkpoint < target:
        spend = limit_applicable_spend(expenses_in_month(expenses, checkpoint))
        surplus = settings.expense_limit - spend
        credited = surplus if surplus > 0 else Decimal("0")
        settings.saving_buffer += credited

        months.append(MonthSurplus(
            month=str(checkpoint),
            spend=spend,
            surplus=surplus,
            credited=credited,
        ))

        checkpoint = checkpoint.next()
        settings.last_buffer_update = checkpoint.first_day()

    return RolloverReport(
        months=months,
        saving_buffer_before=buffer_before,
        saving_buffer_after=settings.saving_buffer,
        checkpoint=settings.last_buffer_update,
    )


def advance_buffer(
    settings: UserSettings,
    expenses: Iterable[Expense],
    now: date,
) -> UserSettings:
    """Bring the saving buffer up to date; returns the same settings object."""
    roll_forward(settings, expenses, now)
    return settings
