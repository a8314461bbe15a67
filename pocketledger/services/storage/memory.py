"""
In-Memory Storage Backend

Implements the storage interfaces with plain dictionaries. Used by tests
and by callers that keep the ledger in process.

Stored objects are returned by reference, the way an ORM identity map
hands out live entities. Callers that change records work on copies and
write them back: save_payment() puts each participant into the stored
expense holding the same participant id.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from pocketledger.models.audit import AuditEvent
from pocketledger.models.ledger import (
    Expense,
    RecurringExpenseTemplate,
    Settlement,
    SharedParticipant,
    UserSettings,
    participant_key,
)
from pocketledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStoreInterface,
    NotFoundError,
)


class InMemoryLedgerStore(LedgerStoreInterface):
    """Dictionary-backed ledger store."""

    def __init__(self):
        self._expenses: dict[UUID, Expense] = {}
        self._settlements: dict[UUID, Settlement] = {}
        self._templates: dict[UUID, RecurringExpenseTemplate] = {}
        self._settings: Optional[UserSettings] = None

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def save_expense(self, expense: Expense) -> Expense:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense {expense.id} already exists")
        self._expenses[expense.id] = expense
        return expense

    def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._expenses.get(expense_id)

    def update_expense(self, expense: Expense) -> Expense:
        if expense.id not in self._expenses:
            raise NotFoundError(f"Expense {expense.id} not found")
        self._expenses[expense.id] = expense
        return expense

    def delete_expense(self, expense_id: UUID) -> bool:
        return self._expenses.pop(expense_id, None) is not None

    def list_expenses(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        shared_only: bool = False,
        participant_name: Optional[str] = None,
    ) -> list[Expense]:
        results = []
        key = participant_key(participant_name) if participant_name is not None else None

        for expense in self._expenses.values():
            if date_from and expense.expense_date < date_from:
                continue
            if date_to and expense.expense_date > date_to:
                continue
            if shared_only and not expense.is_shared:
                continue
            if key is not None and not any(
                p.key == key for p in expense.shared_participants
            ):
                continue
            results.append(expense)

        return results

    # -------------------------------------------------------------------------
    # Settlements
    # -------------------------------------------------------------------------

    def save_settlement(self, settlement: Settlement) -> Settlement:
        if settlement.id in self._settlements:
            raise DuplicateError(f"Settlement {settlement.id} already recorded")
        self._settlements[settlement.id] = settlement
        return settlement

    def list_settlements(
        self,
        participant_name: Optional[str] = None,
    ) -> list[Settlement]:
        settlements = list(self._settlements.values())
        if participant_name is not None:
            key = participant_key(participant_name)
            settlements = [s for s in settlements if s.key == key]
        return sorted(settlements, key=lambda s: s.settled_at)

    def save_payment(
        self,
        settlement: Settlement,
        participants: list[SharedParticipant],
    ) -> None:
        # Validate the whole batch before touching anything
        if settlement.id in self._settlements:
            raise DuplicateError(f"Settlement {settlement.id} already recorded")

        owned = {
            p.id: (expense, index)
            for expense in self._expenses.values()
            for index, p in enumerate(expense.shared_participants)
        }
        missing = [p.id for p in participants if p.id not in owned]
        if missing:
            raise NotFoundError(
                f"Participants not attached to a stored expense: {missing}"
            )

        for participant in participants:
            expense, index = owned[participant.id]
            expense.shared_participants[index] = participant
        self._settlements[settlement.id] = settlement

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def get_settings(self) -> Optional[UserSettings]:
        return self._settings

    def save_settings(self, settings: UserSettings) -> UserSettings:
        self._settings = settings
        return settings

    # -------------------------------------------------------------------------
    # Recurring templates
    # -------------------------------------------------------------------------

    def save_recurring_template(
        self,
        template: RecurringExpenseTemplate,
    ) -> RecurringExpenseTemplate:
        self._templates[template.id] = template
        return template

    def list_recurring_templates(self) -> list[RecurringExpenseTemplate]:
        return sorted(self._templates.values(), key=lambda t: t.reason)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
