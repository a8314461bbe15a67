"""
Main Orchestrator for Pocket Ledger

This module ties the pure engine functions to storage and auditing and
defines the flows the UI drives:
1. Payment (participant pays back → settle oldest debts → persist)
2. Activation (app opens → ensure settings → roll buffer forward)
3. Dashboard (read-only budget figures for the current month)

DESIGN DECISION: The engine never touches storage. Flows load a snapshot,
copy it, run the engine on the copy, then persist the result in one call
per change so the store can apply it as a single batch. A failed save
leaves the stored records as they were.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from pocketledger.audit import AuditLogger, configure_log_level, create_correlation_id
from pocketledger.budget import (
    budget_snapshot,
    limit_applicable_spend,
    monthly_expenses,
    monthly_trend,
    recurring_vs_one_time,
    roll_forward,
    spending_by_category_type,
    spending_velocity,
)
from pocketledger.config import LedgerSettings, get_settings
from pocketledger.ledger import (
    aggregate_outstanding_debts,
    participant_debts,
    participant_share_summaries,
    record_payment,
)
from pocketledger.models.ledger import (
    BudgetSnapshot,
    CategoryTypeSpending,
    MonthlySpending,
    ParticipantDebt,
    ParticipantShareSummary,
    PaymentOutcome,
    RecurringSplit,
    RolloverReport,
    SpendingVelocity,
    UserSettings,
)
from pocketledger.services.storage import (
    AuditStorageInterface,
    InMemoryLedgerStore,
    LedgerStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class PaymentFlow:
    """
    Orchestrates recording a payment from a participant.

    Flow:
    1. Validate amount → reject invalid amounts without side effects
    2. Load copies of the shared expenses involving the participant
    3. Allocate → oldest debt first, settlement for the full amount
    4. Save → settlement and touched shares in one batch
    5. Audit → payment, plus any unallocated remainder
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    def record_payment(
        self,
        participant_name: str,
        amount: Decimal,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentOutcome:
        """
        Record a payment and persist its effects.

        Returns:
            The outcome. A rejected outcome means nothing was stored.

        Raises:
            StorageError: If the store could not save the payment
        """
        correlation_id = correlation_id or create_correlation_id()

        # Allocate on copies; the store only changes through save_payment()
        expenses = [
            expense.model_copy(deep=True)
            for expense in self._store.list_expenses(
                shared_only=True,
                participant_name=participant_name,
            )
        ]
        outcome = record_payment(participant_name, amount, expenses, now=now)

        if not outcome.accepted:
            if self._audit_logger:
                self._audit_logger.log_payment_rejected(
                    participant_name=participant_name,
                    amount=outcome.payment_amount,
                    reason=outcome.rejection.value,
                    correlation_id=correlation_id,
                )
            return outcome

        try:
            self._store.save_payment(outcome.settlement, outcome.mutations)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_save_failed(
                    entity_type="settlement",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_payment_recorded(
                settlement_id=outcome.settlement.id,
                participant_name=participant_name,
                amount=outcome.payment_amount,
                allocated=outcome.total_allocated,
                debts_touched=len(outcome.mutations),
                correlation_id=correlation_id,
            )
            if outcome.has_overpayment:
                self._audit_logger.log_payment_unallocated(
                    settlement_id=outcome.settlement.id,
                    participant_name=participant_name,
                    unallocated=outcome.unallocated,
                    correlation_id=correlation_id,
                )

        return outcome

    def outstanding_debts(self) -> dict[str, Decimal]:
        """Who owes what, across all shared expenses."""
        return aggregate_outstanding_debts(self._store.list_expenses(shared_only=True))

    def debt_details(self, participant_name: str) -> list[ParticipantDebt]:
        """Unsettled shares of one participant, in settlement order."""
        expenses = self._store.list_expenses(
            shared_only=True,
            participant_name=participant_name,
        )
        return participant_debts(participant_name, expenses)

    def share_summaries(self) -> list[ParticipantShareSummary]:
        return participant_share_summaries(
            self._store.list_expenses(shared_only=True),
            self._store.list_settlements(),
        )


class BudgetFlow:
    """
    Orchestrates budget state.

    activate() is called every time the app comes to the foreground. It is
    safe to call repeatedly: within a month it changes nothing.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        config: Optional[LedgerSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._config = config or get_settings().ledger

    def ensure_settings(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> UserSettings:
        """
        Return the settings singleton, creating the default on first run.

        A fresh record has no buffer checkpoint; the first rollover sets it.
        """
        settings = self._store.get_settings()
        if settings is not None:
            return settings

        settings = UserSettings(
            expense_limit=self._config.default_expense_limit,
            saving_buffer=Decimal("0"),
            last_buffer_update=None,
        )
        self._save_settings(settings, correlation_id)

        if self._audit_logger:
            self._audit_logger.log_settings_created(
                expense_limit=settings.expense_limit,
                correlation_id=correlation_id,
            )
        return settings

    def activate(
        self,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RolloverReport:
        """
        Bring the saving buffer up to date.

        Raises:
            StorageError: If updated settings could not be saved
        """
        correlation_id = correlation_id or create_correlation_id()
        now = now or datetime.now()

        settings = self.ensure_settings(correlation_id).model_copy()
        report = roll_forward(settings, self._store.list_expenses(), now)

        if report.baseline_set or report.months:
            self._save_settings(settings, correlation_id)
            if self._audit_logger:
                self._audit_logger.log_rollover(report, correlation_id)

        return report

    def update_expense_limit(
        self,
        new_limit: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> UserSettings:
        """
        Change the monthly limit.

        Raises:
            ValueError: If the limit is not a positive, finite amount
        """
        new_limit = Decimal(str(new_limit))
        if not new_limit.is_finite() or new_limit <= 0:
            raise ValueError("Expense limit must be greater than zero")

        settings = self.ensure_settings(correlation_id).model_copy()
        old_limit = settings.expense_limit
        settings.expense_limit = new_limit
        self._save_settings(settings, correlation_id)

        if self._audit_logger:
            self._audit_logger.log_expense_limit_updated(
                old_limit=old_limit,
                new_limit=new_limit,
                correlation_id=correlation_id,
            )
        return settings

    def dashboard(self, now: Optional[datetime] = None) -> BudgetSnapshot:
        now = now or datetime.now()
        return budget_snapshot(self._store.list_expenses(), self.ensure_settings(), now)

    def category_breakdown(
        self,
        now: Optional[datetime] = None,
    ) -> list[CategoryTypeSpending]:
        now = now or datetime.now()
        return spending_by_category_type(monthly_expenses(self._store.list_expenses(), now))

    def recurring_split(self, now: Optional[datetime] = None) -> RecurringSplit:
        now = now or datetime.now()
        return recurring_vs_one_time(monthly_expenses(self._store.list_expenses(), now))

    def velocity(self, now: Optional[datetime] = None) -> SpendingVelocity:
        now = now or datetime.now()
        settings = self.ensure_settings()
        spend = limit_applicable_spend(monthly_expenses(self._store.list_expenses(), now))
        return spending_velocity(
            spend,
            settings.expense_limit,
            now,
            caution_ratio=self._config.velocity_caution_ratio,
        )

    def trend(self, now: Optional[datetime] = None) -> list[MonthlySpending]:
        now = now or datetime.now()
        return monthly_trend(
            self._store.list_expenses(),
            now,
            months=self._config.trend_months,
        )

    def _save_settings(
        self,
        settings: UserSettings,
        correlation_id: Optional[UUID],
    ) -> None:
        try:
            self._store.save_settings(settings)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_save_failed(
                    entity_type="settings",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise


def create_app_components(
    store: Optional[LedgerStoreInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    config: Optional[LedgerSettings] = None,
) -> tuple[PaymentFlow, BudgetFlow, LedgerStoreInterface]:
    """
    Factory function to create all application components.

    Args:
        store: Ledger store. Defaults to an in-memory store.
        audit_storage: Where audit events are persisted.
                       If None, events are only logged locally.
        config: Budget configuration. Defaults to environment settings.

    Returns:
        (payment_flow, budget_flow, store)
    """
    configure_log_level(get_settings().app.log_level)

    if store is None:
        logger.warning("ledger_store_not_configured", fallback="in_memory")
        store = InMemoryLedgerStore()

    audit_logger = AuditLogger(audit_storage)

    payment_flow = PaymentFlow(store=store, audit_logger=audit_logger)
    budget_flow = BudgetFlow(store=store, audit_logger=audit_logger, config=config)

    return payment_flow, budget_flow, store
