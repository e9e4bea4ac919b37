"""
Persistence Gateway

Encodes the ledgers into the four snapshot blobs and back.

IMPORTANT: The gateway never raises for storage or decoding problems.
Every failure comes back as a PersistenceFailure so the caller can warn
the user that changes are not saved. A key that is missing or cannot be
decoded loads as empty.
"""

from typing import Callable, Optional

import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from timetracker.clock import Clock, SystemClock
from timetracker.models.ledger import (
    Debt,
    FinanceRecord,
    PersistenceFailure,
    SharedBudget,
    WorkSession,
)
from timetracker.services.storage.interface import (
    DEBTS_KEY,
    FINANCE_RECORDS_KEY,
    SHARED_BUDGET_KEY,
    TIME_SESSIONS_KEY,
    SnapshotStore,
    StorageError,
)


_SESSIONS = TypeAdapter(list[WorkSession])
_RECORDS = TypeAdapter(list[FinanceRecord])
_DEBTS = TypeAdapter(list[Debt])
_BUDGET = TypeAdapter(SharedBudget)


class LoadedSnapshot(BaseModel):
    """Everything read from the store at startup."""

    sessions: list[WorkSession] = Field(
        default_factory=list,
        description="All sessions; at most one without an end time"
    )
    finance_records: list[FinanceRecord] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    budget: SharedBudget = Field(default_factory=SharedBudget)

    @property
    def closed_sessions(self) -> list[WorkSession]:
        return [s for s in self.sessions if not s.is_open]

    @property
    def open_session(self) -> Optional[WorkSession]:
        """The running timer, latest start wins if several were saved."""
        open_sessions = [s for s in self.sessions if s.is_open]
        if not open_sessions:
            return None
        return max(open_sessions, key=lambda s: s.start)

    @property
    def dropped_open_sessions(self) -> list[WorkSession]:
        """Open sessions that lose to `open_session` and are not restored."""
        latest = self.open_session
        return [s for s in self.sessions if s.is_open and s is not latest]


class PersistenceGateway:
    """Load/save a snapshot of all ledgers through a SnapshotStore."""

    def __init__(self, store: SnapshotStore, clock: Optional[Clock] = None):
        self._store = store
        self._clock = clock or SystemClock()
        self._logger = structlog.get_logger("timetracker.storage")

    @property
    def store(self) -> SnapshotStore:
        return self._store

    def load(self) -> tuple[LoadedSnapshot, list[PersistenceFailure]]:
        """
        Read all four keys.

        Returns:
            (snapshot, failures) - failed keys are empty in the snapshot
        """
        failures: list[PersistenceFailure] = []
        snapshot = LoadedSnapshot()

        def _load(key: str, adapter: TypeAdapter, assign: Callable) -> None:
            try:
                payload = self._store.read(key)
            except StorageError as e:
                failures.append(self._failure(key, "load", e))
                return
            if payload is None:
                self._logger.info("snapshot_missing", key=key)
                return
            try:
                assign(adapter.validate_json(payload))
            except ValidationError as e:
                failures.append(self._failure(key, "load", e))

        _load(TIME_SESSIONS_KEY, _SESSIONS, lambda v: setattr(snapshot, "sessions", v))
        _load(FINANCE_RECORDS_KEY, _RECORDS, lambda v: setattr(snapshot, "finance_records", v))
        _load(DEBTS_KEY, _DEBTS, lambda v: setattr(snapshot, "debts", v))
        _load(SHARED_BUDGET_KEY, _BUDGET, lambda v: setattr(snapshot, "budget", v))

        dropped = snapshot.dropped_open_sessions
        if dropped:
            self._logger.warning(
                "open_sessions_dropped",
                kept=str(snapshot.open_session.id),
                dropped=[str(s.id) for s in dropped],
            )

        return snapshot, failures

    def save(
        self,
        sessions: list[WorkSession],
        finance_records: list[FinanceRecord],
        debts: list[Debt],
        budget: SharedBudget,
    ) -> list[PersistenceFailure]:
        """
        Write all four keys. Each key is attempted even if an earlier one failed.

        Returns:
            Failures, empty when everything was written
        """
        failures: list[PersistenceFailure] = []
        blobs = (
            (TIME_SESSIONS_KEY, _SESSIONS, sessions),
            (FINANCE_RECORDS_KEY, _RECORDS, finance_records),
            (DEBTS_KEY, _DEBTS, debts),
            (SHARED_BUDGET_KEY, _BUDGET, budget),
        )
        for key, adapter, value in blobs:
            try:
                payload = adapter.dump_json(value).decode("utf-8")
                self._store.write(key, payload)
            except (StorageError, PydanticSerializationError) as e:
                failures.append(self._failure(key, "save", e))
        return failures

    def _failure(self, key: str, operation: str, error: Exception) -> PersistenceFailure:
        self._logger.warning(
            "snapshot_failed",
            key=key,
            operation=operation,
            error=str(error),
        )
        return PersistenceFailure(
            key=key,
            operation=operation,
            error_message=str(error),
            occurred_at=self._clock.now(),
        )
