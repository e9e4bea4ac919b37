"""Ledgers package: time sessions, finance records and debts."""

from timetracker.ledgers.debt_ledger import DebtLedger
from timetracker.ledgers.errors import LedgerError, NotFoundError
from timetracker.ledgers.finance_ledger import FinanceLedger
from timetracker.ledgers.time_ledger import TimeLedger

__all__ = [
    "DebtLedger",
    "FinanceLedger",
    "LedgerError",
    "NotFoundError",
    "TimeLedger",
]
