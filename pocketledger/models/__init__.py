"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the engine must conform to these schemas.
"""

from pocketledger.models.ledger import (
    DEFAULT_EXPENSE_LIMIT,
    AllocationLine,
    BudgetSnapshot,
    Category,
    CategoryType,
    CategoryTypeSpending,
    Expense,
    MonthlySpending,
    MonthSurplus,
    PaceStatus,
    ParticipantDebt,
    ParticipantShareSummary,
    PaymentOutcome,
    PaymentRejection,
    RecurringExpenseTemplate,
    RecurringSplit,
    RolloverReport,
    Settlement,
    SharedParticipant,
    SharedTotals,
    SpendingVelocity,
    UserSettings,
    participant_key,
)
from pocketledger.models.months import YearMonth
from pocketledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger records
    "DEFAULT_EXPENSE_LIMIT",
    "Category",
    "CategoryType",
    "Expense",
    "RecurringExpenseTemplate",
    "Settlement",
    "SharedParticipant",
    "UserSettings",
    "participant_key",
    # Results
    "AllocationLine",
    "BudgetSnapshot",
    "CategoryTypeSpending",
    "MonthlySpending",
    "MonthSurplus",
    "PaceStatus",
    "ParticipantDebt",
    "ParticipantShareSummary",
    "PaymentOutcome",
    "PaymentRejection",
    "RecurringSplit",
    "RolloverReport",
    "SharedTotals",
    "SpendingVelocity",
    # Calendar
    "YearMonth",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
