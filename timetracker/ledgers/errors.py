"""Exceptions raised by the ledgers."""


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class NotFoundError(LedgerError):
    """A session or debt id that no longer exists."""
    pass
