"""
Budget Calculation

Stateless functions over a snapshot of expenses and settings.

Two spend figures matter and they differ on purpose:
- net cash flow: everything that left the user's pocket this month, less
  what participants already paid back
- limit-applicable spend: the same, but without UTR (reimbursable)
  categories, which never count against the personal limit

Recovered money is netted against the expense it belongs to, whatever
month the repayment arrived in.
"""

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from pocketledger.models.ledger import (
    BudgetSnapshot,
    CategoryType,
    CategoryTypeSpending,
    Expense,
    MonthlySpending,
    PaceStatus,
    RecurringSplit,
    SpendingVelocity,
    UserSettings,
)
from pocketledger.models.months import YearMonth


ZERO = Decimal("0")
CENT = Decimal("0.01")
RATIO_PLACES = Decimal("0.0001")


def expenses_in_month(expenses: Iterable[Expense], month: YearMonth) -> list[Expense]:
    return [e for e in expenses if month.contains(e.expense_date)]


def monthly_expenses(expenses: Iterable[Expense], reference_date: date) -> list[Expense]:
    """Expenses in the same calendar month and year as reference_date."""
    return expenses_in_month(expenses, YearMonth.from_date(reference_date))


def _net(expenses: Iterable[Expense]) -> Decimal:
    gross = ZERO
    recovered = ZERO
    for expense in expenses:
        gross += expense.amount
        recovered += expense.amount_recovered
    return gross - recovered


def net_cash_flow(monthly: Iterable[Expense]) -> Decimal:
    """Gross spend minus what participants have paid back."""
    return _net(monthly)


def limit_applicable_spend(monthly: Iterable[Expense]) -> Decimal:
    """Net cash flow of the expenses that count against the limit."""
    return _net(e for e in monthly if not e.is_utr)


def limit_left(settings: UserSettings, spend: Decimal) -> Decimal:
    """Room left under the monthly limit. Negative means over budget."""
    return settings.expense_limit - spend


def safe_limit(
    limit_left: Decimal,
    last_month_recurring_total: Decimal,
    this_month_recurring_spent: Decimal,
) -> Decimal:
    """
    Limit left, less recurring bills that came last month but not yet this
    month.

    A heuristic, not a guarantee: it assumes last month's recurring load
    repeats.
    """
    projected_recurring = last_month_recurring_total - this_month_recurring_spent
    if last_month_recurring_total > 0 and projected_recurring > 0:
        return limit_left - projected_recurring
    return limit_left


def _recurring_total(expenses: Iterable[Expense], month: YearMonth) -> Decimal:
    return sum(
        (
            e.amount for e in expenses
            if e.recurring_template is not None and month.contains(e.expense_date)
        ),
        ZERO,
    )


def last_month_recurring_total(
    expenses: Iterable[Expense],
    reference_date: date,
) -> Decimal:
    """Gross template-spawned spend in the month before reference_date."""
    return _recurring_total(expenses, YearMonth.from_date(reference_date).previous())


def this_month_recurring_spent(
    expenses: Iterable[Expense],
    reference_date: date,
) -> Decimal:
    """Gross template-spawned spend in reference_date's month."""
    return _recurring_total(expenses, YearMonth.from_date(reference_date))


def budget_snapshot(
    expenses: Iterable[Expense],
    settings: UserSettings,
    reference_date: date,
) -> BudgetSnapshot:
    """Compute every dashboard figure for reference_date's month."""
    expenses = list(expenses)
    monthly = monthly_expenses(expenses, reference_date)

    spend = limit_applicable_spend(monthly)
    left = limit_left(settings, spend)
    last_recurring = last_month_recurring_total(expenses, reference_date)
    this_recurring = this_month_recurring_spent(expenses, reference_date)

    return BudgetSnapshot(
        month=str(YearMonth.from_date(reference_date)),
        net_cash_flow=net_cash_flow(monthly),
        limit_applicable_spend=spend,
        expense_limit=settings.expense_limit,
        limit_left=left,
        safe_limit=safe_limit(left, last_recurring, this_recurring),
        last_month_recurring_total=last_recurring,
        this_month_recurring_spent=this_recurring,
        saving_buffer=settings.saving_buffer,
    )


# =============================================================================
# BREAKDOWNS
# =============================================================================

def spending_by_category_type(monthly: Iterable[Expense]) -> list[CategoryTypeSpending]:
    """
    Net spend per category type.

    Expenses without a category are treated as needs. Only types with
    at least one expense are listed, in need / want / UTR order.
    """
    grouped: dict[CategoryType, list[Expense]] = defaultdict(list)
    for expense in monthly:
        grouped[expense.category_type or CategoryType.NEED].append(expense)

    return [
        CategoryTypeSpending(category_type=kind, amount=_net(grouped[kind]))
        for kind in CategoryType
        if kind in grouped
    ]


def recurring_vs_one_time(monthly: Iterable[Expense]) -> RecurringSplit:
    """Net spend of template-spawned expenses against everything else."""
    recurring = []
    one_time = []
    for expense in monthly:
        if expense.recurring_template is not None:
            recurring.append(expense)
        else:
            one_time.append(expense)
    return RecurringSplit(recurring=_net(recurring), one_time=_net(one_time))


def spending_velocity(
    spend: Decimal,
    expense_limit: Decimal,
    reference_date: date,
    caution_ratio: Decimal = Decimal("1.25"),
) -> SpendingVelocity:
    """
    Compare the month's spending pace to an even spread of the limit.

    daily rate = spend / day of month so far
    target     = limit / days in the month
    """
    month = YearMonth.from_date(reference_date)
    day_of_month = Decimal(reference_date.day)
    daily_rate = spend / day_of_month
    target = expense_limit / Decimal(month.day_count)
    progress = spend / expense_limit if expense_limit > 0 else ZERO

    if daily_rate <= target:
        status = PaceStatus.ON_TRACK
    elif daily_rate <= target * caution_ratio:
        status = PaceStatus.CAUTION
    else:
        status = PaceStatus.OVER_PACE

    return SpendingVelocity(
        progress=progress.quantize(RATIO_PLACES, rounding=ROUND_HALF_UP),
        daily_rate=daily_rate.quantize(CENT, rounding=ROUND_HALF_UP),
        target_daily_rate=target.quantize(CENT, rounding=ROUND_HALF_UP),
        status=status,
    )


def monthly_trend(
    expenses: Iterable[Expense],
    reference_date: date,
    months: int = 6,
) -> list[MonthlySpending]:
    """
    Gross spend for the last `months` months, ending with reference_date's
    month. Oldest first; months without expenses show zero.
    """
    if months < 1:
        raise ValueError("months must be at least 1")

    current = YearMonth.from_date(reference_date)
    window = [current.shift(-offset) for offset in range(months - 1, -1, -1)]
    totals = {month: ZERO for month in window}

    for expense in expenses:
        month = YearMonth.from_date(expense.expense_date)
        if month in totals:
            totals[month] += expense.amount

    return [MonthlySpending(month=str(month), amount=totals[month]) for month in window]
