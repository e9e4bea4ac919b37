"""
Main Orchestrator for Time Tracker

This module ties the ledgers, the settlement engine and the snapshot
store together behind one explicit context object, `LedgerStore`.

DESIGN DECISION: The store enforces the boundaries:
- Every mutation runs under one lock, so at most one is in flight
- Every finalized session posts its deduction and runs a settlement pass
- Every CZK income is offset against today's earnings
- Every mutation is followed by a save; save failures are reported
  on the store and never undo the mutation

The front-end holds exactly one LedgerStore and calls nothing else.
"""

import functools
import threading
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Optional, TypeVar
from uuid import UUID

import structlog

from timetracker.audit import AuditLogger
from timetracker.clock import Clock, SystemClock
from timetracker.config import get_settings
from timetracker.config.settings import LedgerSettings, StorageSettings
from timetracker.ledgers import DebtLedger, FinanceLedger, TimeLedger
from timetracker.models.audit import AuditEventBuilder
from timetracker.models.ledger import (
    Currency,
    Debt,
    EntryKind,
    FinanceRecord,
    LedgerSummary,
    Payment,
    PersistenceFailure,
    RentAccrual,
    SharedBudget,
    WorkSession,
)
from timetracker.queries import SummaryBuilder
from timetracker.services.storage import (
    GoogleSheetsSnapshotStore,
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    LoadedSnapshot,
    PersistenceGateway,
    SnapshotStore,
)
from timetracker.settlement import SettlementEngine


T = TypeVar("T")

# Fields a session edit may change
EDITABLE_SESSION_FIELDS = frozenset({
    "person",
    "activity",
    "subcategory",
    "note",
    "start",
    "end",
    "hourly_rate",
    "deduction_rate",
})

logger = structlog.get_logger("timetracker")


def mutation(method: Callable[..., T]) -> Callable[..., T]:
    """Run a store method under the store lock and save afterwards."""

    @functools.wraps(method)
    def wrapper(self: "LedgerStore", *args: Any, **kwargs: Any) -> T:
        with self._lock:
            result = method(self, *args, **kwargs)
            self._persist()
            return result

    return wrapper


class LedgerStore:
    """
    Explicit store for all ledgers and the shared budget.

    Flow for a stopped timer:
    1. TimeLedger closes the session
    2. The finalized hook posts the deduction into the shared budget
    3. The settlement engine pays eligible debts above the rent reserve
    4. The snapshot is saved; failures land in `persistence_failures`
    """

    def __init__(
        self,
        gateway: Optional[PersistenceGateway] = None,
        clock: Optional[Clock] = None,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._clock = clock or SystemClock()
        self._settings = settings or get_settings().ledger
        self._audit_logger = audit_logger or AuditLogger()
        self._gateway = gateway
        self._lock = threading.RLock()
        self._activated_on: Optional[date] = None

        snapshot = LoadedSnapshot()
        self.load_failures: list[PersistenceFailure] = []
        if gateway is not None:
            snapshot, self.load_failures = gateway.load()
            for failure in self.load_failures:
                self._audit_logger.log(AuditEventBuilder.persistence_failed(
                    failure.key, failure.operation, failure.error_message,
                ))
        self.persistence_failures: list[PersistenceFailure] = []

        self.budget: SharedBudget = snapshot.budget
        self.time = TimeLedger(
            self._clock,
            self._settings,
            sessions=snapshot.closed_sessions,
            active=snapshot.open_session,
            on_finalized=self._on_session_finalized,
        )
        self.finance = FinanceLedger(self._clock, snapshot.finance_records)
        self.debts = DebtLedger(self._clock, snapshot.debts)
        self.engine = SettlementEngine(
            budget=self.budget,
            time_ledger=self.time,
            finance_ledger=self.finance,
            debt_ledger=self.debts,
            clock=self._clock,
            settings=self._settings,
            audit_logger=self._audit_logger,
        )
        self._summary = SummaryBuilder(
            self.time, self.finance, self.debts, self.budget, self._clock,
        )

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    @property
    def balance(self) -> Decimal:
        """Shared CZK balance."""
        return self.budget.czk

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self.persistence_failures)

    # -------------------------------------------------------------------------
    # Calendar
    # -------------------------------------------------------------------------

    @mutation
    def activate(self, today: Optional[date] = None) -> RentAccrual:
        """Run the once-per-start checks (monthly rent)."""
        today = today or self._clock.today()
        self._activated_on = today
        return self.engine.accrue_monthly_rent(today)

    def ensure_activated(self) -> Optional[RentAccrual]:
        """
        Activate once per calendar day.

        Long-running front-ends call this on every page load so a
        process left running over the 1st still accrues rent. Returns
        None when today was already checked.
        """
        with self._lock:
            if self._activated_on == self._clock.today():
                return None
            return self.activate()

    # -------------------------------------------------------------------------
    # Time tracking
    # -------------------------------------------------------------------------

    @mutation
    def start_timer(
        self,
        person: str,
        activity: str,
        subcategory: Optional[str] = None,
        note: Optional[str] = None,
    ) -> WorkSession:
        session = self.time.start(person, activity, subcategory=subcategory, note=note)
        self._audit_logger.log(AuditEventBuilder.session_started(session.id, person, activity))
        return session

    @mutation
    def stop_timer(self) -> Optional[WorkSession]:
        return self.time.stop()

    @mutation
    def add_manual_session(
        self,
        person: str,
        activity: str,
        start: datetime,
        end: datetime,
        hourly_rate: Optional[Decimal] = None,
        deduction_rate: Optional[Decimal] = None,
        subcategory: Optional[str] = None,
        note: Optional[str] = None,
    ) -> WorkSession:
        return self.time.add_manual(
            person,
            activity,
            start,
            end,
            hourly_rate=hourly_rate,
            deduction_rate=deduction_rate,
            subcategory=subcategory,
            note=note,
        )

    @mutation
    def edit_session(self, session_id: UUID, **changes: Any) -> WorkSession:
        """
        Replace a session with an edited copy.

        The old deduction is taken back and the edited session is posted
        as a fresh manual entry, which runs a new settlement pass.

        Raises:
            NotFoundError: unknown session id
            ValueError: unknown field or invalid edited values
        """
        unknown = set(changes) - EDITABLE_SESSION_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit session fields: {', '.join(sorted(unknown))}")

        original = self.time.get(session_id)
        fields = original.model_dump(include=EDITABLE_SESSION_FIELDS)
        fields.update(changes)
        # Validate before touching the ledger
        WorkSession(**fields)

        self.time.remove(session_id)
        reversed_amount = self.engine.reverse_deduction(original)
        self._audit_logger.log(AuditEventBuilder.session_removed(session_id, reversed_amount, edited=True))

        return self.time.add_manual(**fields)

    @mutation
    def delete_session(self, session_id: UUID) -> WorkSession:
        """Remove a session and take back its deduction."""
        session = self.time.remove(session_id)
        reversed_amount = self.engine.reverse_deduction(session)
        self._audit_logger.log(AuditEventBuilder.session_removed(session_id, reversed_amount, edited=False))
        return session

    def elapsed(self) -> timedelta:
        """Running time of the open timer. Read-only; safe for display refreshes."""
        return self.time.elapsed()

    def _on_session_finalized(self, session: WorkSession) -> None:
        deduction = session.deduction()
        self._audit_logger.log(AuditEventBuilder.session_finalized(
            session.id, session.person, session.earnings(), deduction, session.is_manual_entry,
        ))
        self.engine.post_deduction(deduction, session_id=session.id)

    # -------------------------------------------------------------------------
    # Finance
    # -------------------------------------------------------------------------

    @mutation
    def add_finance_record(
        self,
        kind: EntryKind,
        amount: Decimal,
        description: str,
        category: str,
        currency: Currency = Currency.CZK,
    ) -> FinanceRecord:
        record = self.finance.add(kind, amount, description, category, currency)
        self._audit_logger.log(AuditEventBuilder.finance_record_added(
            record.id, kind.value, amount, currency.value, category,
        ))
        if kind == EntryKind.INCOME and currency == Currency.CZK:
            self.engine.offset_today_earnings(amount)
        return record

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    @mutation
    def add_debt(
        self,
        creditor: str,
        debtor: str,
        amount: Decimal,
        description: str,
        currency: Currency = Currency.CZK,
        due_date: Optional[date] = None,
        is_common_expense: bool = True,
    ) -> Debt:
        debt = self.debts.add(
            creditor,
            debtor,
            amount,
            description,
            currency=currency,
            due_date=due_date,
            is_common_expense=is_common_expense,
        )
        self._audit_logger.log(AuditEventBuilder.debt_added(
            debt.id, creditor, debtor, amount, currency.value, is_common_expense,
        ))
        return debt

    @mutation
    def pay_debt(self, debt_id: UUID, amount: Decimal) -> Payment:
        """Record a manual payment. Does not touch the shared budget."""
        payment = self.debts.append_payment(debt_id, amount, automatic=False)
        self._audit_logger.log(AuditEventBuilder.payment(
            debt_id, amount, self.debts.remaining(debt_id), automatic=False,
        ))
        return payment

    @mutation
    def delete_debt(self, debt_id: UUID) -> Debt:
        debt = self.debts.remove(debt_id)
        self._audit_logger.log(AuditEventBuilder.debt_deleted(debt_id, debt.remaining))
        return debt

    # -------------------------------------------------------------------------
    # Reads and persistence
    # -------------------------------------------------------------------------

    def summary(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> LedgerSummary:
        with self._lock:
            return self._summary.build(date_from=date_from, date_to=date_to)

    def recent_sessions(self, limit: int = 10) -> list[WorkSession]:
        with self._lock:
            return self._summary.recent_sessions(limit)

    def save(self) -> list[PersistenceFailure]:
        """Write the snapshot again, e.g. after the user asks to retry."""
        with self._lock:
            self._persist()
            return list(self.persistence_failures)

    def _persist(self) -> None:
        if self._gateway is None:
            self.persistence_failures = []
            return

        sessions = self.time.sessions
        if self.time.active is not None:
            sessions.append(self.time.active)

        self.persistence_failures = self._gateway.save(
            sessions, self.finance.records, self.debts.debts, self.budget,
        )
        for failure in self.persistence_failures:
            self._audit_logger.log(AuditEventBuilder.persistence_failed(
                failure.key, failure.operation, failure.error_message,
            ))


def build_snapshot_store(storage_settings: Optional[StorageSettings] = None) -> SnapshotStore:
    """Create the snapshot store selected in the settings."""
    storage_settings = storage_settings or get_settings().storage

    if storage_settings.backend == "memory":
        return InMemorySnapshotStore()
    if storage_settings.backend == "google_sheets":
        return GoogleSheetsSnapshotStore()
    return JsonFileSnapshotStore(storage_settings.data_dir)


def create_app_components(
    use_storage: bool = True,
    clock: Optional[Clock] = None,
) -> tuple[LedgerStore, Optional[SnapshotStore]]:
    """
    Factory function to create the application store.

    Loads the snapshot, then runs the monthly rent check once.

    Args:
        use_storage: Whether to persist snapshots.
                    Set to False for a throwaway in-memory session.

    Returns:
        (ledger_store, snapshot_store)
    """
    snapshot_store = None
    gateway = None

    if use_storage:
        try:
            snapshot_store = build_snapshot_store()
            gateway = PersistenceGateway(snapshot_store, clock=clock)
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            snapshot_store = None
            gateway = None

    store = LedgerStore(gateway=gateway, clock=clock)
    store.activate()

    return store, snapshot_store
