"""Shared-expense debts and payment reconciliation."""

from pocketledger.ledger.debts import (
    aggregate_outstanding_debts,
    outstanding_debts_by_name,
    participant_debts,
    participant_share_summaries,
    shared_totals,
    total_outstanding,
)
from pocketledger.ledger.payments import record_payment

__all__ = [
    "aggregate_outstanding_debts",
    "outstanding_debts_by_name",
    "participant_debts",
    "participant_share_summaries",
    "record_payment",
    "shared_totals",
    "total_outstanding",
]
