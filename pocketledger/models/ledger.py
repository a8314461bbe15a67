"""
Core Ledger Models for Pocket Ledger

These models define the records the reconciliation and rollover engine
works on. They are designed to:
1. Enforce type safety and money constraints at construction time
2. Keep all money in Decimal (no binary float drift)
3. Make optional relationships explicit (category, recurring template)

DESIGN DECISION: Validation runs on construction only. The engine mutates
`amount_paid`, `saving_buffer` and `last_buffer_update` in place, the same
way the surrounding persistence layer does.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


DEFAULT_EXPENSE_LIMIT = Decimal("2000")


def participant_key(name: str) -> str:
    """
    Matching key for a shared-expense participant.

    Participants are identified by their free-text name, matched verbatim
    and case-sensitively. Every name comparison goes through here so a move
    to stable identifiers only touches this function.
    """
    return name


# =============================================================================
# ENUMS
# =============================================================================

class CategoryType(str, Enum):
    """
    Budget treatment of a category.

    UTR (reimbursable / untracked) spend never counts against the
    personal expense limit.
    """
    NEED = "need"
    WANT = "want"
    UTR = "utr"

    @property
    def display_name(self) -> str:
        if self is CategoryType.UTR:
            return "UTR"
        return self.value.capitalize()


class PaymentRejection(str, Enum):
    """Why a payment was not applied."""
    INVALID_AMOUNT = "invalid_amount"


class PaceStatus(str, Enum):
    """Spending pace compared to an even spread of the limit."""
    ON_TRACK = "on_track"
    CAUTION = "caution"
    OVER_PACE = "over_pace"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Category(BaseModel):
    """A spending category. Only its type matters to the engine."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType = CategoryType.NEED


class RecurringExpenseTemplate(BaseModel):
    """
    Template for a bill that repeats every month.

    Spawning concrete expenses from it happens outside the engine.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    category: Optional[Category] = None
    reason: str = Field(..., min_length=1, max_length=200)


class SharedParticipant(BaseModel):
    """
    One person's share of a shared expense.

    Owned exclusively by its Expense. `name` is kept exactly as entered
    (no whitespace stripping) because it is the matching key.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    amount_owed: Decimal = Field(..., ge=0, decimal_places=2)
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    contact_identifier: Optional[str] = Field(
        default=None,
        description="Address-book reference, informational only"
    )

    @property
    def key(self) -> str:
        return participant_key(self.name)

    @property
    def amount_remaining(self) -> Decimal:
        return self.amount_owed - self.amount_paid

    @property
    def is_settled(self) -> bool:
        return self.amount_remaining <= 0


class Expense(BaseModel):
    """
    A single spend by the user.

    A shared expense carries the participants who owe part of it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    expense_date: date = Field(..., description="Calendar date of the spend")
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the record was entered"
    )
    category: Optional[Category] = None
    reason: Optional[str] = Field(default=None, max_length=500)
    is_recurring: bool = False
    is_shared: bool = False
    shared_participants: list[SharedParticipant] = Field(default_factory=list)
    recurring_template: Optional[RecurringExpenseTemplate] = None

    @model_validator(mode='after')
    def validate_sharing(self) -> 'Expense':
        """Only shared expenses may carry participants."""
        if not self.is_shared and self.shared_participants:
            raise ValueError("Participants are only allowed on shared expenses")
        return self

    @property
    def category_type(self) -> Optional[CategoryType]:
        return self.category.type if self.category else None

    @property
    def is_utr(self) -> bool:
        return self.category_type is CategoryType.UTR

    @property
    def amount_recovered(self) -> Decimal:
        """Total already paid back by participants."""
        return sum(
            (p.amount_paid for p in self.shared_participants),
            Decimal("0"),
        )


class Settlement(BaseModel):
    """
    A payment received from a participant.

    CRITICAL: Settlements are history. They are created once per payment
    and never modified or deleted.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(..., gt=0)
    settled_at: datetime = Field(default_factory=datetime.now)
    participant_name: str = Field(..., min_length=1, max_length=100)

    @property
    def key(self) -> str:
        return participant_key(self.participant_name)


class UserSettings(BaseModel):
    """
    Per-installation budget state.

    `last_buffer_update` is the month checkpoint of the rollover engine.
    It is None only before the first evaluation.
    """

    expense_limit: Decimal = Field(default=DEFAULT_EXPENSE_LIMIT, gt=0)
    saving_buffer: Decimal = Field(default=Decimal("0"), ge=0)
    last_buffer_update: Optional[date] = None


# =============================================================================
# PAYMENT RESULTS
# =============================================================================

class AllocationLine(BaseModel):
    """How much of a payment went to one participant share."""

    participant_id: UUID
    expense_id: UUID
    expense_date: date
    allocated: Decimal
    remaining_after: Decimal


class PaymentOutcome(BaseModel):
    """
    Result of applying a payment.

    `mutations` holds the very participant objects that were updated so the
    caller can persist them.
    """

    accepted: bool
    rejection: Optional[PaymentRejection] = None
    participant_name: str
    payment_amount: Decimal = Field(
        ...,
        allow_inf_nan=True,
        description="Amount as received; may be invalid on a rejected outcome"
    )
    settlement: Optional[Settlement] = None
    mutations: list[SharedParticipant] = Field(default_factory=list)
    allocations: list[AllocationLine] = Field(default_factory=list)
    unallocated: Decimal = Decimal("0")

    @property
    def total_allocated(self) -> Decimal:
        return sum((line.allocated for line in self.allocations), Decimal("0"))

    @property
    def has_overpayment(self) -> bool:
        return self.unallocated > 0


# =============================================================================
# DEBT VIEWS
# =============================================================================

class ParticipantDebt(BaseModel):
    """One unsettled share owed by a participant."""

    participant_id: UUID
    expense_id: UUID
    expense_date: date
    reason: Optional[str] = None
    amount_owed: Decimal
    amount_paid: Decimal
    amount_remaining: Decimal


class ParticipantShareSummary(BaseModel):
    """Lifetime shared totals for one participant name."""

    name: str
    total_shared: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")

    @property
    def net_balance(self) -> Decimal:
        return self.total_shared - self.total_paid

    @property
    def is_settled(self) -> bool:
        return self.net_balance <= 0


class SharedTotals(BaseModel):
    """Totals across every participant."""

    total_lent: Decimal = Decimal("0")
    total_recovered: Decimal = Decimal("0")

    @property
    def outstanding(self) -> Decimal:
        return self.total_lent - self.total_recovered


# =============================================================================
# BUDGET VIEWS
# =============================================================================

class BudgetSnapshot(BaseModel):
    """Everything the dashboard shows for one month."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    net_cash_flow: Decimal
    limit_applicable_spend: Decimal
    expense_limit: Decimal
    limit_left: Decimal
    safe_limit: Decimal
    last_month_recurring_total: Decimal
    this_month_recurring_spent: Decimal
    saving_buffer: Decimal

    @property
    def is_over_budget(self) -> bool:
        return self.limit_left < 0

    @property
    def projected_recurring(self) -> Decimal:
        return self.limit_left - self.safe_limit


class CategoryTypeSpending(BaseModel):
    """Net spend for one category type."""

    category_type: CategoryType
    amount: Decimal

    @property
    def display_name(self) -> str:
        return self.category_type.display_name


class RecurringSplit(BaseModel):
    """Net spend split between template-spawned and one-time expenses."""

    recurring: Decimal = Decimal("0")
    one_time: Decimal = Decimal("0")


class SpendingVelocity(BaseModel):
    """Pace of spending against the monthly limit."""

    progress: Decimal
    daily_rate: Decimal
    target_daily_rate: Decimal
    status: PaceStatus


class MonthlySpending(BaseModel):
    """Gross spend for one calendar month."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    amount: Decimal


# =============================================================================
# ROLLOVER RESULTS
# =============================================================================

class MonthSurplus(BaseModel):
    """Outcome of evaluating one closed month."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    spend: Decimal
    surplus: Decimal
    credited: Decimal


class RolloverReport(BaseModel):
    """What a single rollover evaluation did."""

    baseline_set: bool = False
    months: list[MonthSurplus] = Field(default_factory=list)
    saving_buffer_before: Decimal
    saving_buffer_after: Decimal
    checkpoint: Optional[date] = None

    @property
    def total_credited(self) -> Decimal:
        return sum((m.credited for m in self.months), Decimal("0"))

    @property
    def months_evaluated(self) -> int:
        return len(self.months)
