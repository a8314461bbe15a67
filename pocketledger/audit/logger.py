"""
Audit Logger

DESIGN DECISION: Every change the engine makes to the ledger is logged.
This provides:
1. Complete traceability of payments and buffer credits
2. Debugging capability
3. User can see history of their balances

The audit logger:
- Gracefully handles storage failures (doesn't break a flow if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocketledger.models.audit import AuditEvent, AuditEventBuilder
from pocketledger.models.ledger import RolloverReport
from pocketledger.services.storage import AuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except StorageError as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_payment_recorded(
        self,
        settlement_id: UUID,
        participant_name: str,
        amount: Decimal,
        allocated: Decimal,
        debts_touched: int,
        correlation_id: UUID,
    ) -> None:
        """Log a settlement and its allocation."""
        event = AuditEventBuilder.payment_recorded(
            settlement_id=settlement_id,
            participant_name=participant_name,
            amount=amount,
            allocated=allocated,
            debts_touched=debts_touched,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_payment_rejected(
        self,
        participant_name: str,
        amount: Decimal,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log a payment that was not applied."""
        event = AuditEventBuilder.payment_rejected(
            participant_name=participant_name,
            amount=amount,
            reason=reason,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_payment_unallocated(
        self,
        settlement_id: UUID,
        participant_name: str,
        unallocated: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log the part of a payment that matched no debt."""
        event = AuditEventBuilder.payment_unallocated(
            settlement_id=settlement_id,
            participant_name=participant_name,
            unallocated=unallocated,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_settings_created(
        self,
        expense_limit: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.settings_created(
            expense_limit=expense_limit,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_expense_limit_updated(
        self,
        old_limit: Decimal,
        new_limit: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.expense_limit_updated(
            old_limit=old_limit,
            new_limit=new_limit,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_rollover(
        self,
        report: RolloverReport,
        correlation_id: UUID,
    ) -> None:
        """
        Log the result of a buffer evaluation.

        Nothing is logged for a same-month no-op.
        """
        if report.baseline_set:
            event = AuditEventBuilder.buffer_baseline_set(
                checkpoint=report.checkpoint.isoformat(),
                correlation_id=correlation_id,
            )
        elif report.months:
            event = AuditEventBuilder.buffer_rolled_over(
                months=[m.model_dump(mode="json") for m in report.months],
                credited=report.total_credited,
                saving_buffer=report.saving_buffer_after,
                correlation_id=correlation_id,
            )
        else:
            return
        self.log(event)

    def log_save_failed(
        self,
        entity_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.save_failed(
            entity_type=entity_type,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)


def configure_log_level(level: str) -> None:
    """
    Set the minimum level of local structured logs.

    structlog's filter_by_level defers to the stdlib logger of each module,
    so setting the package logger covers every pocketledger module.
    """
    logging.getLogger("pocketledger").setLevel(level.upper())


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording a payment).
    Pass it through all subsequent operations.
    """
    return uuid4()
