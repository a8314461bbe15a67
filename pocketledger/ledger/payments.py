"""
Payment Allocation

Applies money received from a participant to what they owe, oldest debt
first (FIFO).

GUARANTEES:
- A valid payment always produces exactly one Settlement for its full
  amount, even when nothing is owed (advance payments stay in history)
- No share is ever paid past what it owes
- The sum allocated never exceeds the payment

KNOWN LIMITATION: money left over after every debt is cleared is not
credited anywhere. It is reported on the outcome as `unallocated` and
the settlement keeps the full amount.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from pocketledger.ledger.debts import iter_outstanding_shares, settlement_order
from pocketledger.models.ledger import (
    AllocationLine,
    Expense,
    PaymentOutcome,
    PaymentRejection,
    Settlement,
    participant_key,
)


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def record_payment(
    participant_name: str,
    payment_amount: Decimal,
    expenses: Iterable[Expense],
    now: Optional[datetime] = None,
) -> PaymentOutcome:
    """
    Record a payment from a participant and spread it over their debts.

    Mutates `amount_paid` on the participant shares it settles and returns
    them in `outcome.mutations` together with the new settlement. Nothing
    is persisted here.

    A non-positive or non-finite amount is rejected as a no-op: no
    settlement, no mutation, no exception.
    """
    amount = _as_decimal(payment_amount)

    if not amount.is_finite() or amount <= 0:
        return PaymentOutcome(
            accepted=False,
            rejection=PaymentRejection.INVALID_AMOUNT,
            participant_name=participant_name,
            payment_amount=amount,
        )

    settlement = Settlement(
        amount=amount,
        settled_at=now or datetime.now(),
        participant_name=participant_name,
    )

    key = participant_key(participant_name)
    debts = [
        (expense, participant)
        for expense, participant in iter_outstanding_shares(expenses)
        if participant.key == key
    ]
    debts.sort(key=lambda pair: settlement_order(pair[0]))

    remaining_payment = amount
    mutations = []
    allocations = []

    for expense, participant in debts:
        if remaining_payment <= 0:
            break

        owed = participant.amount_remaining
        if owed <= 0:
            continue

        allocated = min(remaining_payment, owed)
        participant.amount_paid += allocated
        remaining_payment -= allocated

        mutations.append(participant)
        allocations.append(AllocationLine(
            participant_id=participant.id,
            expense_id=expense.id,
            expense_date=expense.expense_date,
            allocated=allocated,
            remaining_after=participant.amount_remaining,
        ))

    return PaymentOutcome(
        accepted=True,
        participant_name=participant_name,
        payment_amount=amount,
        settlement=settlement,
        mutations=mutations,
        allocations=allocations,
        unallocated=max(remaining_payment, Decimal("0")),
    )
