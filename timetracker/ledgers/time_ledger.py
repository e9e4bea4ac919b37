"""
Time Ledger

Owns work sessions and the single open timer.

Finalized sessions (stopped timers and manual entries) are reported to
the `on_finalized` hook; the store uses it to post the session's
deduction into the shared budget.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional
from uuid import UUID

from timetracker.clock import Clock
from timetracker.config.settings import LedgerSettings
from timetracker.ledgers.errors import NotFoundError
from timetracker.models.ledger import WorkSession


FinalizedHook = Callable[[WorkSession], None]


class TimeLedger:
    """
    Work session history plus at most one open session.

    Closed sessions are immutable history; an edit is a remove followed
    by a fresh manual entry.
    """

    def __init__(
        self,
        clock: Clock,
        settings: LedgerSettings,
        sessions: Optional[Iterable[WorkSession]] = None,
        active: Optional[WorkSession] = None,
        on_finalized: Optional[FinalizedHook] = None,
    ):
        self._clock = clock
        self._settings = settings
        self._sessions: dict[UUID, WorkSession] = {s.id: s for s in sessions or ()}
        if active is not None and not active.is_open:
            raise ValueError("Active session must not have an end time")
        self._active = active
        self._on_finalized = on_finalized

    @property
    def sessions(self) -> list[WorkSession]:
        """Finalized sessions in the order they were recorded."""
        return list(self._sessions.values())

    @property
    def active(self) -> Optional[WorkSession]:
        return self._active

    @property
    def is_running(self) -> bool:
        return self._active is not None

    def set_finalized_hook(self, hook: Optional[FinalizedHook]) -> None:
        self._on_finalized = hook

    def get(self, session_id: UUID) -> WorkSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise NotFoundError(f"Session not found: {session_id}")

    def start(
        self,
        person: str,
        activity: str,
        subcategory: Optional[str] = None,
        note: Optional[str] = None,
    ) -> WorkSession:
        """Open a new session, stopping the running one first."""
        if self._active is not None:
            self.stop()

        self._active = WorkSession(
            person=person,
            activity=activity,
            subcategory=subcategory,
            note=note,
            start=self._clock.now(),
            hourly_rate=self._settings.rate_for(person),
            deduction_rate=self._settings.deduction_for(person),
        )
        return self._active

    def stop(self) -> Optional[WorkSession]:
        """Close the open session at the current instant. No-op if none is open."""
        if self._active is None:
            return None

        now = self._clock.now()
        session = self._active.model_copy(
            update={"end": max(now, self._active.start)}
        )
        self._active = None
        return self._record(session)

    def add_manual(
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
        """Record an already finished session."""
        session = WorkSession(
            person=person,
            activity=activity,
            subcategory=subcategory,
            note=note,
            start=start,
            end=end,
            hourly_rate=hourly_rate if hourly_rate is not None else self._settings.rate_for(person),
            deduction_rate=(
                deduction_rate if deduction_rate is not None
                else self._settings.deduction_for(person)
            ),
            is_manual_entry=True,
        )
        return self._record(session)

    def remove(self, session_id: UUID) -> WorkSession:
        """Drop a finalized session and return it."""
        session = self.get(session_id)
        del self._sessions[session_id]
        return session

    def elapsed(self) -> timedelta:
        """Running time of the open session, for the display tick."""
        if self._active is None:
            return timedelta(0)
        return self._active.duration(self._clock.now())

    def sessions_on(self, day: date) -> list[WorkSession]:
        """Finalized sessions that started on the given calendar day."""
        return [s for s in self._sessions.values() if s.start.date() == day]

    def earnings_on(self, day: date) -> Decimal:
        now = self._clock.now()
        return sum((s.earnings(now) for s in self.sessions_on(day)), Decimal("0"))

    def _record(self, session: WorkSession) -> WorkSession:
        self._sessions[session.id] = session
        if self._on_finalized is not None:
            self._on_finalized(session)
        return session
