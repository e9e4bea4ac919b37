"""
Audit Models for Time Tracker

Every automatic movement of money is logged so the household can see
why the shared balance changed. Audit events only go to the structured
local log; the payment list on each debt is the only durable history.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Time tracking
    SESSION_STARTED = "session_started"
    SESSION_STOPPED = "session_stopped"
    SESSION_ADDED = "session_added"
    SESSION_EDITED = "session_edited"
    SESSION_DELETED = "session_deleted"

    # Data entry
    FINANCE_RECORD_ADDED = "finance_record_added"
    DEBT_ADDED = "debt_added"
    DEBT_DELETED = "debt_deleted"
    MANUAL_PAYMENT = "manual_payment"

    # Settlement
    DEDUCTION_POSTED = "deduction_posted"
    DEDUCTION_REVERSED = "deduction_reversed"
    AUTOMATIC_PAYMENT = "automatic_payment"
    INCOME_OFFSET_APPLIED = "income_offset_applied"
    INCOME_OFFSET_SKIPPED = "income_offset_skipped"
    RENT_ACCRUED = "rent_accrued"
    RENT_DEBT_CREATED = "rent_debt_created"

    # Persistence
    PERSISTENCE_FAILED = "persistence_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (local time)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'session', 'debt', 'budget')"
    )
    entity_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered directly by the user?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


def _money(amount: Decimal) -> str:
    return f"{amount:.2f}"


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.deduction_posted(session_id, amount, balance)
        event = AuditEventBuilder.automatic_payment(debt_id, amount, remaining, balance)
    """

    @staticmethod
    def session_started(session_id: UUID, person: str, activity: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            entity_type="session",
            entity_id=session_id,
            description=f"Timer started: {person} - {activity}",
            details={"person": person, "activity": activity},
            is_user_action=True,
        )

    @staticmethod
    def session_finalized(
        session_id: UUID,
        person: str,
        earnings: Decimal,
        deduction: Decimal,
        manual: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_ADDED if manual else AuditEventType.SESSION_STOPPED,
            entity_type="session",
            entity_id=session_id,
            description=f"Session recorded for {person}: {_money(earnings)} CZK earned",
            details={
                "person": person,
                "earnings": _money(earnings),
                "deduction": _money(deduction),
                "manual": manual,
            },
            is_user_action=True,
        )

    @staticmethod
    def session_removed(
        session_id: UUID,
        deduction: Decimal,
        edited: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_EDITED if edited else AuditEventType.SESSION_DELETED,
            entity_type="session",
            entity_id=session_id,
            description="Session replaced by an edited copy" if edited else "Session deleted",
            details={"reversed_deduction": _money(deduction)},
            is_user_action=True,
        )

    @staticmethod
    def finance_record_added(
        record_id: UUID,
        kind: str,
        amount: Decimal,
        currency: str,
        category: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FINANCE_RECORD_ADDED,
            entity_type="finance_record",
            entity_id=record_id,
            description=f"{kind.capitalize()} recorded: {_money(amount)} {currency} ({category})",
            details={
                "kind": kind,
                "amount": _money(amount),
                "currency": currency,
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def debt_added(
        debt_id: UUID,
        creditor: str,
        debtor: str,
        amount: Decimal,
        currency: str,
        is_common_expense: bool,
        is_user_action: bool = True,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_ADDED,
            entity_type="debt",
            entity_id=debt_id,
            description=f"Debt recorded: {debtor} owes {creditor} {_money(amount)} {currency}",
            details={
                "creditor": creditor,
                "debtor": debtor,
                "amount": _money(amount),
                "currency": currency,
                "is_common_expense": is_common_expense,
            },
            is_user_action=is_user_action,
        )

    @staticmethod
    def debt_deleted(debt_id: UUID, remaining: Decimal) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="debt",
            entity_id=debt_id,
            description="Debt deleted",
            details={"remaining": _money(remaining)},
            is_user_action=True,
        )

    @staticmethod
    def payment(
        debt_id: UUID,
        amount: Decimal,
        remaining: Decimal,
        automatic: bool,
        balance: Optional[Decimal] = None,
    ) -> AuditEvent:
        details = {"amount": _money(amount), "remaining": _money(remaining)}
        if balance is not None:
            details["balance_czk"] = _money(balance)
        return AuditEvent(
            event_type=AuditEventType.AUTOMATIC_PAYMENT if automatic else AuditEventType.MANUAL_PAYMENT,
            entity_type="debt",
            entity_id=debt_id,
            description=(
                f"{'Automatic' if automatic else 'Manual'} payment of {_money(amount)} CZK, "
                f"{_money(remaining)} remaining"
            ),
            details=details,
            is_user_action=not automatic,
        )

    @staticmethod
    def budget_changed(
        event_type: AuditEventType,
        amount: Decimal,
        balance: Decimal,
        entity_id: Optional[UUID] = None,
        reason: Optional[str] = None,
    ) -> AuditEvent:
        """Deduction posted/reversed or income offset applied/skipped."""
        labels = {
            AuditEventType.DEDUCTION_POSTED: "Deduction added to shared budget",
            AuditEventType.DEDUCTION_REVERSED: "Deduction removed from shared budget",
            AuditEventType.INCOME_OFFSET_APPLIED: "Income offset against today's earnings",
            AuditEventType.INCOME_OFFSET_SKIPPED: "Income not offset, today's earnings too low",
        }
        details = {"amount": _money(amount), "balance_czk": _money(balance)}
        if reason:
            details["reason"] = reason
        return AuditEvent(
            event_type=event_type,
            entity_type="budget",
            entity_id=entity_id,
            description=f"{labels.get(event_type, event_type.value)}: {_money(amount)} CZK",
            details=details,
        )

    @staticmethod
    def rent_accrued(
        record_id: UUID,
        amount: Decimal,
        month: str,
        balance: Decimal,
        debt_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if debt_id is not None:
            return AuditEvent(
                event_type=AuditEventType.RENT_DEBT_CREATED,
                severity=AuditSeverity.WARNING,
                entity_type="debt",
                entity_id=debt_id,
                description=f"Shared budget cannot cover rent for {month}, debt created",
                details={
                    "record_id": str(record_id),
                    "amount": _money(amount),
                    "balance_czk": _money(balance),
                },
            )
        return AuditEvent(
            event_type=AuditEventType.RENT_ACCRUED,
            entity_type="finance_record",
            entity_id=record_id,
            description=f"Rent for {month} paid from shared budget",
            details={"amount": _money(amount), "balance_czk": _money(balance)},
        )

    @staticmethod
    def persistence_failed(key: str, operation: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            description=f"Could not {operation} snapshot '{key}'",
            error_message=error_message,
            details={"key": key, "operation": operation},
        )
