"""Monthly budget figures and saving buffer rollover."""

from pocketledger.budget.calculator import (
    budget_snapshot,
    last_month_recurring_total,
    limit_applicable_spend,
    limit_left,
    monthly_expenses,
    monthly_trend,
    net_cash_flow,
    recurring_vs_one_time,
    safe_limit,
    spending_by_category_type,
    spending_velocity,
    this_month_recurring_spent,
)
from pocketledger.budget.rollover import advance_buffer, roll_forward

__all__ = [
    "advance_buffer",
    "budget_snapshot",
    "last_month_recurring_total",
    "limit_applicable_spend",
    "limit_left",
    "monthly_expenses",
    "monthly_trend",
    "net_cash_flow",
    "recurring_vs_one_time",
    "roll_forward",
    "safe_limit",
    "spending_by_category_type",
    "spending_velocity",
    "this_month_recurring_spent",
]
