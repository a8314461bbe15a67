"""Flow tests against the in-memory store."""

import logging

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from pocketledger.audit import AuditLogger, configure_log_level, create_correlation_id
from pocketledger.config import LedgerSettings, get_settings
from pocketledger.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from pocketledger.models.ledger import (
    Expense,
    PaceStatus,
    RecurringExpenseTemplate,
    Settlement,
    SharedParticipant,
    UserSettings,
)
from pocketledger.orchestrator import BudgetFlow, PaymentFlow, create_app_components
from pocketledger.services.storage import (
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    NotFoundError,
    StorageError,
)


class FailingPaymentStore(InMemoryLedgerStore):
    def save_payment(self, settlement, participants):
        raise StorageError("disk full")


class FailingSettingsStore(InMemoryLedgerStore):
    def save_settings(self, settings):
        raise StorageError("settings locked")


class FailingAuditStorage(InMemoryAuditStorage):
    def append_event(self, event):
        raise StorageError("audit table locked")


def shared_expense(day: date, name: str, owed: str) -> Expense:
    return Expense(
        amount=Decimal("300"),
        expense_date=day,
        is_shared=True,
        shared_participants=[SharedParticipant(name=name, amount_owed=Decimal(owed))],
    )


@pytest.fixture
def store():
    return InMemoryLedgerStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def config():
    return LedgerSettings(
        default_expense_limit=Decimal("2000"),
        velocity_caution_ratio=Decimal("1.25"),
        trend_months=3,
    )


@pytest.fixture
def package_logger():
    """The pocketledger stdlib logger, restored to its level afterwards."""
    package = logging.getLogger("pocketledger")
    level = package.level
    get_settings.cache_clear()
    yield package
    package.setLevel(level)
    get_settings.cache_clear()


def event_types(audit_storage):
    return [e.event_type for e in reversed(audit_storage.get_recent_events())]


class TestPaymentFlow:
    """Tests for PaymentFlow."""

    def test_payment_is_persisted(self, store, audit_storage):
        """Test the settlement and updated shares reach the store."""
        older = store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        newer = store.save_expense(shared_expense(date(2024, 1, 20), "Sam", "100"))
        flow = PaymentFlow(store, AuditLogger(audit_storage))

        outcome = flow.record_payment("Sam", Decimal("80"), now=datetime(2024, 2, 1))

        assert outcome.accepted is True
        assert store.list_settlements("Sam") == [outcome.settlement]
        assert store.get_expense(older.id).shared_participants[0].amount_paid == Decimal("60")
        assert store.get_expense(newer.id).shared_participants[0].amount_paid == Decimal("20")
        assert flow.outstanding_debts() == {"Sam": Decimal("80")}

    def test_rejected_payment_stores_nothing(self, store, audit_storage):
        store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        flow = PaymentFlow(store, AuditLogger(audit_storage))

        outcome = flow.record_payment("Sam", Decimal("0"))

        assert outcome.accepted is False
        assert store.list_settlements() == []
        assert flow.outstanding_debts() == {"Sam": Decimal("60")}
        events = audit_storage.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.PAYMENT_REJECTED]
        assert events[0].severity == AuditSeverity.WARNING

    def test_settled_participant_leaves_debt_list(self, store):
        """Test paying the whole balance removes the name entirely."""
        store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        store.save_expense(shared_expense(date(2024, 1, 6), "Ana", "40"))
        flow = PaymentFlow(store)

        flow.record_payment("Sam", Decimal("60"))

        assert flow.outstanding_debts() == {"Ana": Decimal("40")}
        assert flow.debt_details("Sam") == []

    def test_overpayment_is_audited(self, store, audit_storage):
        store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        flow = PaymentFlow(store, AuditLogger(audit_storage))
        correlation_id = create_correlation_id()

        flow.record_payment("Sam", Decimal("100"), correlation_id=correlation_id)

        events = audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.PAYMENT_RECORDED,
            AuditEventType.PAYMENT_UNALLOCATED,
        ]
        assert events[1].details["unallocated"] == "40"

    def test_save_failure_is_raised_and_audited(self, audit_storage):
        store = FailingPaymentStore()
        store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        flow = PaymentFlow(store, AuditLogger(audit_storage))

        with pytest.raises(StorageError):
            flow.record_payment("Sam", Decimal("30"))

        assert store.list_settlements() == []
        assert flow.outstanding_debts() == {"Sam": Decimal("60")}
        events = audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.SAVE_FAILED
        assert events[0].error_message == "disk full"

    def test_stored_shares_unchanged_until_saved(self, store):
        """Test allocation works on copies and the store changes only on save."""
        stored = store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        before = stored.shared_participants[0]
        flow = PaymentFlow(store)

        outcome = flow.record_payment("Sam", Decimal("25"))

        assert outcome.mutations[0] is not before
        assert before.amount_paid == Decimal("0")
        assert store.get_expense(stored.id).shared_participants[0].amount_paid == Decimal("25")

    def test_non_finite_amount_is_rejected(self, store, audit_storage):
        store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        flow = PaymentFlow(store, AuditLogger(audit_storage))

        outcome = flow.record_payment("Sam", Decimal("NaN"))

        assert outcome.accepted is False
        assert store.list_settlements() == []
        assert flow.outstanding_debts() == {"Sam": Decimal("60")}
        assert event_types(audit_storage) == [AuditEventType.PAYMENT_REJECTED]

    def test_audit_storage_failure_does_not_break_payment(self, store):
        """Test a broken audit trail never blocks the payment itself."""
        store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        flow = PaymentFlow(store, AuditLogger(FailingAuditStorage()))

        outcome = flow.record_payment("Sam", Decimal("60"))

        assert outcome.accepted is True
        assert flow.outstanding_debts() == {}

    def test_share_summaries(self, store):
        store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        flow = PaymentFlow(store)
        flow.record_payment("Sam", Decimal("25"))

        [summary] = flow.share_summaries()
        assert summary.name == "Sam"
        assert summary.total_shared == Decimal("60")
        assert summary.total_paid == Decimal("25")


class TestBudgetFlow:
    """Tests for BudgetFlow."""

    def test_ensure_settings_creates_default_once(self, store, audit_storage, config):
        flow = BudgetFlow(store, AuditLogger(audit_storage), config=config)

        first = flow.ensure_settings()
        second = flow.ensure_settings()

        assert first is second
        assert first.expense_limit == Decimal("2000")
        assert first.saving_buffer == Decimal("0")
        assert first.last_buffer_update is None
        assert event_types(audit_storage) == [AuditEventType.SETTINGS_CREATED]

    def test_default_limit_comes_from_config(self, store):
        flow = BudgetFlow(store, config=LedgerSettings(default_expense_limit=Decimal("750")))
        assert flow.ensure_settings().expense_limit == Decimal("750")

    def test_activation_lifecycle(self, store, audit_storage, config):
        """Test baseline on first run, credit next month, no-op after."""
        flow = BudgetFlow(store, AuditLogger(audit_storage), config=config)

        first = flow.activate(now=datetime(2024, 1, 15, 8, 0))
        assert first.baseline_set is True
        assert store.get_settings().last_buffer_update == date(2024, 1, 15)

        store.save_expense(Expense(amount=Decimal("500"), expense_date=date(2024, 1, 20)))
        second = flow.activate(now=datetime(2024, 2, 3, 9, 0))
        assert second.total_credited == Decimal("1500")
        assert store.get_settings().saving_buffer == Decimal("1500")
        assert store.get_settings().last_buffer_update == date(2024, 2, 1)

        third = flow.activate(now=datetime(2024, 2, 28, 9, 0))
        assert third.months == []
        assert store.get_settings().saving_buffer == Decimal("1500")

        assert event_types(audit_storage) == [
            AuditEventType.SETTINGS_CREATED,
            AuditEventType.BUFFER_BASELINE_SET,
            AuditEventType.BUFFER_ROLLED_OVER,
        ]

    def test_failed_rollover_save_keeps_stored_settings(self, audit_storage, config):
        """Test a failed save leaves the buffer and checkpoint untouched."""
        store = FailingSettingsStore()
        InMemoryLedgerStore.save_settings(store, UserSettings(
            expense_limit=Decimal("1000"),
            last_buffer_update=date(2024, 1, 1),
        ))
        flow = BudgetFlow(store, AuditLogger(audit_storage), config=config)

        with pytest.raises(StorageError):
            flow.activate(now=datetime(2024, 3, 5))

        assert store.get_settings().saving_buffer == Decimal("0")
        assert store.get_settings().last_buffer_update == date(2024, 1, 1)
        assert event_types(audit_storage) == [AuditEventType.SAVE_FAILED]

    def test_update_expense_limit(self, store, audit_storage, config):
        flow = BudgetFlow(store, AuditLogger(audit_storage), config=config)

        settings = flow.update_expense_limit(Decimal("3000"))

        assert settings.expense_limit == Decimal("3000")
        assert store.get_settings().expense_limit == Decimal("3000")
        assert event_types(audit_storage)[-1] == AuditEventType.EXPENSE_LIMIT_UPDATED

    @pytest.mark.parametrize("limit", [Decimal("0"), Decimal("-10"), Decimal("NaN"), Decimal("Infinity")])
    def test_update_expense_limit_rejects_non_positive(self, store, config, limit):
        flow = BudgetFlow(store, config=config)
        with pytest.raises(ValueError):
            flow.update_expense_limit(limit)
        assert store.get_settings() is None

    def test_dashboard(self, store, config):
        store.save_settings(UserSettings(expense_limit=Decimal("1000")))
        store.save_expense(Expense(amount=Decimal("250"), expense_date=date(2024, 3, 4)))
        store.save_expense(Expense(amount=Decimal("99"), expense_date=date(2024, 2, 4)))
        flow = BudgetFlow(store, config=config)

        snapshot = flow.dashboard(now=datetime(2024, 3, 10))

        assert snapshot.month == "2024-03"
        assert snapshot.net_cash_flow == Decimal("250")
        assert snapshot.limit_left == Decimal("750")

    def test_breakdowns(self, store, config):
        store.save_expense(Expense(amount=Decimal("40"), expense_date=date(2024, 3, 4)))
        flow = BudgetFlow(store, config=config)
        now = datetime(2024, 3, 10)

        assert [b.amount for b in flow.category_breakdown(now)] == [Decimal("40")]
        assert flow.recurring_split(now).one_time == Decimal("40")

    def test_velocity_uses_configured_ratio(self, store):
        store.save_settings(UserSettings(expense_limit=Decimal("3000")))
        store.save_expense(Expense(amount=Decimal("1300"), expense_date=date(2024, 4, 2)))
        flow = BudgetFlow(
            store,
            config=LedgerSettings(velocity_caution_ratio=Decimal("1.5")),
        )

        assert flow.velocity(now=datetime(2024, 4, 10)).status == PaceStatus.CAUTION

    def test_trend_length_from_config(self, store, config):
        flow = BudgetFlow(store, config=config)
        trend = flow.trend(now=datetime(2024, 3, 10))
        assert [t.month for t in trend] == ["2024-01", "2024-02", "2024-03"]


class TestInMemoryLedgerStore:
    """Tests for the batch payment write."""

    def test_save_payment_rejects_unknown_participant(self, store):
        stray = SharedParticipant(name="Sam", amount_owed=Decimal("10"))
        settlement = Settlement(amount=Decimal("10"), participant_name="Sam")

        with pytest.raises(NotFoundError):
            store.save_payment(settlement, [stray])
        assert store.list_settlements() == []

    def test_save_payment_rejects_duplicate_settlement(self, store):
        settlement = Settlement(amount=Decimal("10"), participant_name="Sam")
        store.save_payment(settlement, [])

        with pytest.raises(DuplicateError):
            store.save_payment(settlement, [])

    def test_list_expenses_by_participant(self, store):
        store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))
        store.save_expense(shared_expense(date(2024, 1, 6), "Ana", "60"))
        store.save_expense(Expense(amount=Decimal("5"), expense_date=date(2024, 1, 7)))

        assert len(store.list_expenses()) == 3
        assert len(store.list_expenses(shared_only=True)) == 2
        assert len(store.list_expenses(participant_name="Sam")) == 1

    def test_missing_expense_update(self, store):
        with pytest.raises(NotFoundError):
            store.update_expense(Expense(id=uuid4(), amount=Decimal("1"), expense_date=date(2024, 1, 1)))

    def test_delete_expense(self, store):
        expense = store.save_expense(Expense(amount=Decimal("5"), expense_date=date(2024, 1, 7)))

        assert store.delete_expense(expense.id) is True
        assert store.get_expense(expense.id) is None
        assert store.delete_expense(expense.id) is False

    def test_recurring_templates_listed_by_reason(self, store):
        rent = RecurringExpenseTemplate(amount=Decimal("800"), reason="Rent")
        gym = RecurringExpenseTemplate(amount=Decimal("30"), reason="Gym")
        store.save_recurring_template(rent)
        store.save_recurring_template(gym)

        assert store.list_recurring_templates() == [gym, rent]

    def test_save_recurring_template_replaces_same_id(self, store):
        rent = RecurringExpenseTemplate(amount=Decimal("800"), reason="Rent")
        store.save_recurring_template(rent)
        store.save_recurring_template(rent.model_copy(update={"amount": Decimal("850")}))

        [stored] = store.list_recurring_templates()
        assert stored.amount == Decimal("850")


class TestInMemoryAuditStorage:
    """Tests for audit event lookup."""

    def test_events_by_entity(self, audit_storage):
        settlement_id = uuid4()
        correlation_id = uuid4()
        recorded = AuditEventBuilder.payment_recorded(
            settlement_id=settlement_id,
            participant_name="Sam",
            amount=Decimal("80"),
            allocated=Decimal("60"),
            debts_touched=1,
            correlation_id=correlation_id,
        )
        unallocated = AuditEventBuilder.payment_unallocated(
            settlement_id=settlement_id,
            participant_name="Sam",
            unallocated=Decimal("20"),
            correlation_id=correlation_id,
        )
        other = AuditEventBuilder.settings_created(expense_limit=Decimal("2000"))
        for event in (recorded, unallocated, other):
            audit_storage.append_event(event)

        assert audit_storage.get_events_by_entity("settlement", settlement_id) == [
            recorded,
            unallocated,
        ]
        assert audit_storage.get_events_by_entity("settings", settlement_id) == []

    def test_recent_events_newest_first_and_limited(self, audit_storage):
        events = [
            AuditEventBuilder.settings_created(expense_limit=Decimal(limit))
            for limit in ("1000", "2000", "3000")
        ]
        for event in events:
            audit_storage.append_event(event)

        assert audit_storage.get_recent_events(limit=2) == [events[2], events[1]]


class TestCreateAppComponents:
    """Tests for the factory."""

    def test_defaults_to_in_memory_store(self, config):
        payment_flow, budget_flow, store = create_app_components(config=config)

        assert isinstance(store, InMemoryLedgerStore)
        assert isinstance(payment_flow, PaymentFlow)
        assert budget_flow.ensure_settings() is store.get_settings()

    def test_flows_share_store_and_audit(self, store, audit_storage, config):
        payment_flow, budget_flow, returned = create_app_components(
            store=store, audit_storage=audit_storage, config=config,
        )
        store.save_expense(shared_expense(date(2024, 1, 5), "Sam", "60"))

        payment_flow.record_payment("Sam", Decimal("60"))
        budget_flow.ensure_settings()

        assert returned is store
        assert event_types(audit_storage) == [
            AuditEventType.PAYMENT_RECORDED,
            AuditEventType.SETTINGS_CREATED,
        ]

    def test_applies_configured_log_level(self, monkeypatch, package_logger, config):
        """Test LOG_LEVEL sets the level structlog filters local logs by."""
        monkeypatch.setenv("LOG_LEVEL", "error")

        create_app_components(config=config)

        assert package_logger.level == logging.ERROR
        assert not package_logger.isEnabledFor(logging.WARNING)


class TestConfigureLogLevel:
    """Tests for configure_log_level."""

    def test_module_loggers_inherit_level(self, package_logger):
        configure_log_level("debug")

        assert package_logger.level == logging.DEBUG
        assert logging.getLogger("pocketledger.orchestrator").isEnabledFor(logging.DEBUG)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
