"""
Debt Aggregation

Who owes the user what, across every shared expense ever recorded.

DESIGN DECISION: Aggregation is lifetime, not monthly. A debt from last
year is still a debt. Callers must pass all expenses, not a month slice.

Participants are grouped by participant_key() - an exact, case-sensitive
name match. "Sam" and "sam" are two different people.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from pocketledger.models.ledger import (
    Expense,
    ParticipantDebt,
    ParticipantShareSummary,
    Settlement,
    SharedParticipant,
    SharedTotals,
    participant_key,
)


ZERO = Decimal("0")


def iter_outstanding_shares(
    expenses: Iterable[Expense],
) -> Iterable[tuple[Expense, SharedParticipant]]:
    """Yield (expense, participant) for every share with money still owed."""
    for expense in expenses:
        if not expense.is_shared:
            continue
        for participant in expense.shared_participants:
            if participant.amount_remaining > 0:
                yield expense, participant


def aggregate_outstanding_debts(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """
    Total currently owed per participant name.

    Names whose shares are all settled are absent rather than zero.
    The returned dict is ordered by name so repeated calls on the same
    data produce identical results.
    """
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)

    for _, participant in iter_outstanding_shares(expenses):
        totals[participant.key] += participant.amount_remaining

    return {name: totals[name] for name in sorted(totals)}


def outstanding_debts_by_name(
    expenses: Iterable[Expense],
) -> list[tuple[str, Decimal]]:
    """Aggregated debts as a display list, sorted by name."""
    return list(aggregate_outstanding_debts(expenses).items())


def participant_debts(
    participant_name: str,
    expenses: Iterable[Expense],
) -> list[ParticipantDebt]:
    """
    Every unsettled share for one participant, oldest expense first.

    The order is the one record_payment() settles in, so the first line
    is the next debt a payment will reduce.
    """
    key = participant_key(participant_name)
    matches = [
        (expense, participant)
        for expense, participant in iter_outstanding_shares(expenses)
        if participant.key == key
    ]
    matches.sort(key=lambda pair: settlement_order(pair[0]))

    return [
        ParticipantDebt(
            participant_id=participant.id,
            expense_id=expense.id,
            expense_date=expense.expense_date,
            reason=expense.reason,
            amount_owed=participant.amount_owed,
            amount_paid=participant.amount_paid,
            amount_remaining=participant.amount_remaining,
        )
        for expense, participant in matches
    ]


def total_outstanding(debts: Iterable[ParticipantDebt]) -> Decimal:
    return sum((d.amount_remaining for d in debts), ZERO)


def participant_share_summaries(
    expenses: Iterable[Expense],
    settlements: Iterable[Settlement],
) -> list[ParticipantShareSummary]:
    """
    Lifetime shared vs. paid totals per participant.

    total_shared sums every share ever assigned to the name (settled or
    not); total_paid sums the settlements received from it. A name that
    only appears in settlements is still listed.
    """
    shared: dict[str, Decimal] = defaultdict(lambda: ZERO)
    paid: dict[str, Decimal] = defaultdict(lambda: ZERO)

    for expense in expenses:
        if not expense.is_shared:
            continue
        for participant in expense.shared_participants:
            shared[participant.key] += participant.amount_owed

    for settlement in settlements:
        paid[settlement.key] += settlement.amount

    names = sorted(set(shared) | set(paid))
    return [
        ParticipantShareSummary(
            name=name,
            total_shared=shared.get(name, ZERO),
            total_paid=paid.get(name, ZERO),
        )
        for name in names
    ]


def shared_totals(summaries: Iterable[ParticipantShareSummary]) -> SharedTotals:
    totals = SharedTotals()
    for summary in summaries:
        totals.total_lent += summary.total_shared
        totals.total_recovered += summary.total_paid
    return totals


def settlement_order(expense: Expense) -> tuple:
    """
    Sort key for paying debts down.

    Oldest expense date first; same-day expenses by when they were
    entered. Python's sort is stable, so anything still tied keeps the
    caller's order.
    """
    return (expense.expense_date, expense.created_at)
