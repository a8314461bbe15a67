"""
Audit Models for Pocket Ledger

Every state change the engine makes to the ledger is logged for audit
purposes. This provides:
1. Traceability of every payment and buffer credit
2. Debugging information when balances look wrong
3. Ability to reconstruct how a balance came to be

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Payments
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_REJECTED = "payment_rejected"
    PAYMENT_UNALLOCATED = "payment_unallocated"

    # Budget state
    SETTINGS_CREATED = "settings_created"
    EXPENSE_LIMIT_UPDATED = "expense_limit_updated"
    BUFFER_BASELINE_SET = "buffer_baseline_set"
    BUFFER_ROLLED_OVER = "buffer_rolled_over"

    # Persistence
    SAVE_FAILED = "save_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'settlement', 'settings')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one app activation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


def _money(value: Decimal) -> str:
    return str(value)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.payment_recorded(settlement_id, "Sam", ...)
        event = AuditEventBuilder.buffer_rolled_over(months, credited, ...)
    """

    @staticmethod
    def payment_recorded(
        settlement_id: UUID,
        participant_name: str,
        amount: Decimal,
        allocated: Decimal,
        debts_touched: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="settlement",
            entity_id=settlement_id,
            correlation_id=correlation_id,
            description=f"Payment of {amount} recorded from {participant_name}",
            details={
                "participant_name": participant_name,
                "amount": _money(amount),
                "allocated": _money(allocated),
                "debts_touched": debts_touched,
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_rejected(
        participant_name: str,
        amount: Decimal,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="settlement",
            correlation_id=correlation_id,
            description=f"Payment from {participant_name} rejected: {reason}",
            details={
                "participant_name": participant_name,
                "amount": _money(amount),
                "reason": reason,
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_unallocated(
        settlement_id: UUID,
        participant_name: str,
        unallocated: Decimal,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_UNALLOCATED,
            severity=AuditSeverity.WARNING,
            entity_type="settlement",
            entity_id=settlement_id,
            correlation_id=correlation_id,
            description=(
                f"{unallocated} from {participant_name} exceeded outstanding debt "
                "and was not allocated"
            ),
            details={
                "participant_name": participant_name,
                "unallocated": _money(unallocated),
            },
        )

    @staticmethod
    def settings_created(
        expense_limit: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_CREATED,
            entity_type="settings",
            correlation_id=correlation_id,
            description=f"Default settings created with limit {expense_limit}",
            details={
                "expense_limit": _money(expense_limit),
            },
        )

    @staticmethod
    def expense_limit_updated(
        old_limit: Decimal,
        new_limit: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_LIMIT_UPDATED,
            entity_type="settings",
            correlation_id=correlation_id,
            description=f"Expense limit changed from {old_limit} to {new_limit}",
            details={
                "old_limit": _money(old_limit),
                "new_limit": _money(new_limit),
            },
            is_user_action=True,
        )

    @staticmethod
    def buffer_baseline_set(
        checkpoint: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUFFER_BASELINE_SET,
            entity_type="settings",
            correlation_id=correlation_id,
            description=f"Saving buffer baseline set to {checkpoint}",
            details={
                "checkpoint": checkpoint,
            },
        )

    @staticmethod
    def buffer_rolled_over(
        months: list[dict],
        credited: Decimal,
        saving_buffer: Decimal,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUFFER_ROLLED_OVER,
            entity_type="settings",
            correlation_id=correlation_id,
            description=(
                f"Rolled {len(months)} month(s) into saving buffer, "
                f"credited {credited}"
            ),
            details={
                "months": months,
                "credited": _money(credited),
                "saving_buffer": _money(saving_buffer),
            },
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Could not persist {entity_type}",
            error_message=error_message,
        )
