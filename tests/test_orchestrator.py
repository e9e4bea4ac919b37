"""
Integration tests for LedgerStore with in-memory storage.

The store is the only thing the front-end talks to, so these tests
drive it the way the UI does and check balances and snapshots.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from timetracker.ledgers import NotFoundError
from timetracker.models.audit import AuditEventType
from timetracker.models.ledger import Currency, EntryKind
from timetracker.orchestrator import LedgerStore, build_snapshot_store, create_app_components
from timetracker.config.settings import StorageSettings
from timetracker.validation import parse_session_edit
from timetracker.services.storage import (
    DEBTS_KEY,
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    PersistenceGateway,
    StorageError,
)


class FlakyStore(InMemorySnapshotStore):
    """In-memory store that can be switched to fail writes."""

    def __init__(self):
        super().__init__()
        self.broken = False

    def write(self, key, payload):
        if self.broken:
            raise StorageError("backend unavailable")
        super().write(key, payload)


def reload(snapshot_store, clock, settings):
    return LedgerStore(gateway=PersistenceGateway(snapshot_store, clock=clock), clock=clock, settings=settings)


class TestSessionLifecycle:
    """Timer, manual entries, edits and deletes through the store."""

    def test_stop_posts_deduction(self, store, clock):
        store.start_timer("A", "Wellness")
        clock.advance(timedelta(hours=1))

        session = store.stop_timer()

        assert session.deduction() == Decimal("91.575")
        assert store.balance == Decimal("91.575")

    def test_edit_adjusts_balance_by_difference(self, store, clock):
        """Test that an edit moves the balance by new minus old deduction."""
        start = clock.now() - timedelta(hours=4)
        session = store.add_manual_session("A", "Wellness", start, start + timedelta(hours=2))
        assert store.balance == Decimal("183.150")

        edited = store.edit_session(session.id, end=start + timedelta(hours=3))

        assert edited.id != session.id
        assert edited.is_manual_entry is True
        assert edited.deduction() == Decimal("274.725")
        assert store.balance == Decimal("274.725")
        assert [s.id for s in store.time.sessions] == [edited.id]

    def test_edit_keeps_session_rates(self, store, clock):
        start = clock.now() - timedelta(hours=2)
        session = store.add_manual_session(
            "A", "Wellness", start, start + timedelta(hours=1),
            hourly_rate=Decimal("100"), deduction_rate=Decimal("0.1"),
        )

        edited = store.edit_session(session.id, note="moved")

        assert edited.hourly_rate == Decimal("100")
        assert edited.note == "moved"
        assert store.balance == Decimal("10")

    def test_delete_reverses_deduction(self, store, clock):
        start = clock.now() - timedelta(hours=2)
        session = store.add_manual_session("B", "Marketing", start, start + timedelta(hours=1))
        assert store.balance == Decimal("200")

        store.delete_session(session.id)

        assert store.balance == Decimal("0")
        assert store.time.sessions == []

    def test_delete_does_not_undo_automatic_payments(self, store, clock):
        """Test the reversal may take the balance below the rent reserve."""
        store.budget.czk = Decimal("24500")
        debt = store.add_debt("Bank", "Shared debt", Decimal("1000"), "Loan")
        start = clock.now() - timedelta(hours=2)
        session = store.add_manual_session("B", "Marketing", start, start + timedelta(hours=1))
        assert debt.remaining == Decimal("800")

        store.delete_session(session.id)

        assert debt.remaining == Decimal("800")
        assert store.balance == Decimal("24300")

    def test_unknown_session_raises(self, store):
        with pytest.raises(NotFoundError):
            store.edit_session(uuid4(), note="x")
        with pytest.raises(NotFoundError):
            store.delete_session(uuid4())

    def test_unknown_field_rejected(self, store, clock):
        start = clock.now() - timedelta(hours=1)
        session = store.add_manual_session("A", "Wellness", start, clock.now())
        with pytest.raises(ValueError, match="is_manual_entry"):
            store.edit_session(session.id, is_manual_entry=False)

    def test_invalid_edit_leaves_session_untouched(self, store, clock):
        start = clock.now() - timedelta(hours=1)
        session = store.add_manual_session("A", "Wellness", start, clock.now())
        balance = store.balance

        with pytest.raises(ValueError):
            store.edit_session(session.id, end=start - timedelta(minutes=1))

        assert store.time.get(session.id) == session
        assert store.balance == balance

    def test_edit_from_form_values(self, store, clock):
        """Test the edit form path: typed rate and deduction, new interval."""
        start = clock.now() - timedelta(hours=3)
        session = store.add_manual_session("A", "Wellness", start, start + timedelta(hours=1))
        changes = parse_session_edit(
            "B", "Marketing", start.date(), start.time(), (start + timedelta(hours=2)).time(),
            start.tzinfo, "200", "25%", "",
        )

        edited = store.edit_session(session.id, **changes)

        assert edited.person == "B"
        assert edited.duration() == timedelta(hours=2)
        assert edited.deduction() == Decimal("100")
        assert store.balance == Decimal("100")

    def test_edit_with_naive_time_is_a_validation_error(self, store, clock):
        start = clock.now() - timedelta(hours=1)
        session = store.add_manual_session("A", "Wellness", start, clock.now())
        balance = store.balance

        with pytest.raises(ValidationError):
            store.edit_session(session.id, start=datetime(2026, 10, 19, 9, 0))

        assert store.time.get(session.id) == session
        assert store.balance == balance

    def test_elapsed_does_not_mutate(self, store, snapshot_store, clock):
        store.start_timer("A", "Wellness")
        saved = snapshot_store.read("time_sessions")
        clock.advance(timedelta(minutes=3))

        assert store.elapsed() == timedelta(minutes=3)
        assert snapshot_store.read("time_sessions") == saved
        assert store.balance == Decimal("0")


class TestFinanceAndDebts:

    def test_czk_income_offsets_today_earnings(self, store, clock):
        start = clock.now() - timedelta(hours=1)
        store.add_manual_session("A", "Wellness", start, clock.now())

        store.add_finance_record(EntryKind.INCOME, Decimal("200"), "Client", "Earnings")

        assert store.balance == Decimal("91.575") - Decimal("200")

    def test_income_above_today_earnings_not_offset(self, store, clock):
        start = clock.now() - timedelta(hours=1)
        store.add_manual_session("A", "Wellness", start, clock.now())

        store.add_finance_record(EntryKind.INCOME, Decimal("300"), "Client", "Earnings")

        assert store.balance == Decimal("91.575")
        assert len(store.finance.records) == 1

    def test_foreign_income_not_offset(self, store, clock):
        start = clock.now() - timedelta(hours=1)
        store.add_manual_session("A", "Wellness", start, clock.now())

        store.add_finance_record(EntryKind.INCOME, Decimal("10"), "Client", "Earnings", Currency.EUR)

        assert store.balance == Decimal("91.575")
        assert store.budget.eur == Decimal("0")

    def test_expense_does_not_touch_budget(self, store):
        store.add_finance_record(EntryKind.EXPENSE, Decimal("500"), "Lunch", "Food")
        assert store.balance == Decimal("0")

    def test_manual_payment_leaves_budget_alone(self, store):
        store.budget.czk = Decimal("1000")
        debt = store.add_debt("Bank", "Shared debt", Decimal("300"), "Loan")

        payment = store.pay_debt(debt.id, Decimal("100"))

        assert payment.is_automatic is False
        assert debt.remaining == Decimal("200")
        assert store.balance == Decimal("1000")

    def test_new_debt_waits_for_next_deduction(self, store):
        """Test that adding a debt alone does not run a settlement pass."""
        store.budget.czk = Decimal("30000")
        debt = store.add_debt("Bank", "Shared debt", Decimal("300"), "Loan")
        assert debt.payments == []

    def test_delete_debt(self, store):
        debt = store.add_debt("Bank", "Shared debt", Decimal("300"), "Loan")
        store.delete_debt(debt.id)
        assert store.debts.debts == []
        with pytest.raises(NotFoundError):
            store.delete_debt(debt.id)


class TestRentActivation:

    def test_activate_on_first_creates_rent_debt(self, snapshot_store, clock, settings):
        clock.set(datetime(2026, 11, 1, 8, 0, tzinfo=timezone.utc))
        store = reload(snapshot_store, clock, settings)

        outcome = store.activate()

        assert outcome.accrued is True
        assert store.debts.debts[0].amount == Decimal("24500")
        events = [e.event_type for e in store.audit_logger.recent()]
        assert AuditEventType.RENT_DEBT_CREATED in events

        again = reload(snapshot_store, clock, settings).activate()
        assert again.accrued is False

    def test_activate_mid_month_does_nothing(self, store):
        assert store.activate().accrued is False
        assert store.finance.records == []

    def test_long_running_store_accrues_on_the_first(self, store, snapshot_store, clock):
        """Test that a store built mid-month still accrues rent on the 1st."""
        assert store.ensure_activated().accrued is False
        saved = snapshot_store.read("finance_records")
        assert store.ensure_activated() is None
        assert snapshot_store.read("finance_records") == saved

        clock.set(datetime(2026, 11, 1, 7, 30, tzinfo=timezone.utc))
        outcome = store.ensure_activated()

        assert outcome.accrued is True
        assert store.finance.records[-1].description == "Rent for November 2026"
        assert store.ensure_activated() is None
        assert len(store.finance.records) == 1


class TestPersistence:
    """Snapshot saving, reloading and failure reporting."""

    def test_reload_restores_state_and_running_timer(self, store, snapshot_store, clock, settings):
        start = clock.now() - timedelta(hours=1)
        store.add_manual_session("A", "Wellness", start, clock.now())
        store.add_debt("Bank", "Shared debt", Decimal("300"), "Loan", due_date=date(2026, 12, 1))
        running = store.start_timer("B", "Marketing")

        restored = reload(snapshot_store, clock, settings)

        assert restored.load_failures == []
        assert restored.balance == Decimal("91.575")
        assert restored.time.active.id == running.id
        assert len(restored.time.sessions) == 1
        assert restored.debts.debts[0].due_date == date(2026, 12, 1)

    def test_save_failure_is_reported_not_rolled_back(self, clock, settings):
        backend = FlakyStore()
        store = reload(backend, clock, settings)
        backend.broken = True

        debt = store.add_debt("Bank", "Shared debt", Decimal("300"), "Loan")

        assert store.has_unsaved_changes
        assert {f.key for f in store.persistence_failures} == {
            "time_sessions", "finance_records", "debts", "shared_budget",
        }
        assert store.debts.debts == [debt]
        events = [e.event_type for e in store.audit_logger.recent()]
        assert AuditEventType.PERSISTENCE_FAILED in events

        backend.broken = False
        assert store.save() == []
        assert not store.has_unsaved_changes
        assert backend.read(DEBTS_KEY) is not None

    def test_store_without_gateway_never_fails(self, clock, settings):
        store = LedgerStore(clock=clock, settings=settings)
        store.add_debt("Bank", "Shared debt", Decimal("300"), "Loan")
        assert store.save() == []

    def test_corrupt_key_surfaces_as_load_failure(self, clock, settings):
        backend = InMemorySnapshotStore({DEBTS_KEY: "oops"})

        store = reload(backend, clock, settings)

        assert [f.key for f in store.load_failures] == [DEBTS_KEY]
        assert store.debts.debts == []


class TestSummary:

    def test_totals(self, store, clock):
        start = clock.now() - timedelta(hours=3)
        store.add_manual_session("A", "Wellness", start, start + timedelta(hours=1))
        store.add_manual_session("B", "Marketing", start, start + timedelta(hours=2))
        store.add_finance_record(EntryKind.EXPENSE, Decimal("100"), "Lunch", "Food")
        store.add_finance_record(EntryKind.INCOME, Decimal("5"), "Tip", "Earnings", Currency.EUR)
        store.add_debt("Bank", "Shared debt", Decimal("300"), "Loan")
        store.add_debt("Bank", "A", Decimal("50"), "Personal", is_common_expense=False)
        store.start_timer("A", "Wellness")

        summary = store.summary()

        assert summary.session_count == 2
        assert summary.total_duration == timedelta(hours=3)
        assert summary.total_earnings == Decimal("1075")
        assert summary.earnings_by_person == {"A": Decimal("275"), "B": Decimal("800")}
        assert summary.totals_for(Currency.CZK).expenses == Decimal("100")
        assert summary.totals_for(Currency.EUR).income == Decimal("5")
        assert summary.common_debt_total == Decimal("300")
        assert summary.balance.czk == store.balance

    def test_date_range(self, store, clock):
        old = clock.now() - timedelta(days=10)
        store.add_manual_session("A", "Wellness", old, old + timedelta(hours=1))
        store.add_manual_session("A", "Wellness", clock.now(), clock.now() + timedelta(hours=1))

        summary = store.summary(date_from=clock.today())

        assert summary.session_count == 1

    def test_recent_sessions_newest_first(self, store, clock):
        old = clock.now() - timedelta(days=1)
        first = store.add_manual_session("A", "Wellness", old, old + timedelta(hours=1))
        second = store.add_manual_session("A", "Wellness", clock.now(), clock.now() + timedelta(hours=1))

        assert [s.id for s in store.recent_sessions()] == [second.id, first.id]


class TestFactory:

    def test_build_snapshot_store_backends(self, tmp_path):
        assert isinstance(build_snapshot_store(StorageSettings(backend="memory")), InMemorySnapshotStore)
        json_store = build_snapshot_store(StorageSettings(backend="json", data_dir=tmp_path))
        assert isinstance(json_store, JsonFileSnapshotStore)
        assert json_store.data_dir == tmp_path

    def test_create_app_components_without_storage(self, clock):
        store, snapshot_store = create_app_components(use_storage=False, clock=clock)
        assert snapshot_store is None
        assert store.save() == []
