"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for ledger storage.
This allows us to:
1. Back the ledger with any local database later
2. Use in-memory storage for testing
3. Keep reconciliation logic decoupled from persistence

The interface is intentionally simple - we're not building a full ORM.
Just the operations the ledger flows need. All calls are synchronous:
there is a single local writer.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from pocketledger.models.ledger import (
    Expense,
    RecurringExpenseTemplate,
    Settlement,
    SharedParticipant,
    UserSettings,
)
from pocketledger.models.audit import AuditEvent


class LedgerStoreInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def save_expense(self, expense: Expense) -> Expense:
        """
        Insert a new expense together with its participants.

        Raises:
            DuplicateError: If an expense with the same ID exists
        """

    @abstractmethod
    def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """

    @abstractmethod
    def update_expense(self, expense: Expense) -> Expense:
        """
        Replace an existing expense.

        Raises:
            NotFoundError: If the expense doesn't exist
        """

    @abstractmethod
    def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense. Its participants go with it.

        Returns:
            True if something was deleted
        """

    @abstractmethod
    def list_expenses(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        shared_only: bool = False,
        participant_name: Optional[str] = None,
    ) -> list[Expense]:
        """
        List expenses with optional filters.

        Args:
            date_from: Expenses on or after this date
            date_to: Expenses on or before this date
            shared_only: Only shared expenses
            participant_name: Only expenses with a participant of this name

        Returns:
            Matching expenses in insertion order
        """

    @abstractmethod
    def save_settlement(self, settlement: Settlement) -> Settlement:
        """
        Append a settlement to history.

        Raises:
            DuplicateError: If the settlement was already recorded
        """

    @abstractmethod
    def list_settlements(
        self,
        participant_name: Optional[str] = None,
    ) -> list[Settlement]:
        """List settlements, oldest first."""

    @abstractmethod
    def save_payment(
        self,
        settlement: Settlement,
        participants: list[SharedParticipant],
    ) -> None:
        """
        Persist one payment as a single batch.

        Inserts the settlement and updates every touched participant.
        Either all of it is applied or none of it.

        Raises:
            NotFoundError: If a participant does not belong to a stored expense
            DuplicateError: If the settlement was already recorded
        """

    @abstractmethod
    def get_settings(self) -> Optional[UserSettings]:
        """
        Return the settings singleton.

        Returns:
            The settings, or None before first run
        """

    @abstractmethod
    def save_settings(self, settings: UserSettings) -> UserSettings:
        """Insert or replace the settings singleton."""

    @abstractmethod
    def save_recurring_template(
        self,
        template: RecurringExpenseTemplate,
    ) -> RecurringExpenseTemplate:
        """Insert or replace a recurring template."""

    @abstractmethod
    def list_recurring_templates(self) -> list[RecurringExpenseTemplate]:
        """List recurring templates sorted by reason."""


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one app activation).

        Returns:
            List of related events in chronological order
        """

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
