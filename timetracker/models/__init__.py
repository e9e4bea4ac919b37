"""
Data Models Package

This package contains all Pydantic models used by the ledgers, the
settlement engine and the snapshot store.
"""

from timetracker.models.ledger import (
    Currency,
    CurrencyTotals,
    Debt,
    EntryKind,
    FinanceRecord,
    LedgerSummary,
    Payment,
    PersistenceFailure,
    RentAccrual,
    SharedBudget,
    ValidationIssue,
    WorkSession,
)
from timetracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Currency",
    "CurrencyTotals",
    "Debt",
    "EntryKind",
    "FinanceRecord",
    "LedgerSummary",
    "Payment",
    "PersistenceFailure",
    "RentAccrual",
    "SharedBudget",
    "ValidationIssue",
    "WorkSession",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
