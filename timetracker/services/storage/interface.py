"""
Abstract Snapshot Storage Interface

DESIGN DECISION: The ledgers are persisted as four independently keyed
snapshots. A store only moves opaque text blobs around; encoding is the
gateway's job. This allows us to:
1. Swap local JSON files for Google Sheets without touching the ledgers
2. Use in-memory storage for testing
3. Fail one key without losing the others
"""

from abc import ABC, abstractmethod
from typing import Optional


TIME_SESSIONS_KEY = "time_sessions"
FINANCE_RECORDS_KEY = "finance_records"
DEBTS_KEY = "debts"
SHARED_BUDGET_KEY = "shared_budget"

SNAPSHOT_KEYS = (
    TIME_SESSIONS_KEY,
    FINANCE_RECORDS_KEY,
    DEBTS_KEY,
    SHARED_BUDGET_KEY,
)


class SnapshotStore(ABC):
    """
    Abstract key-value store for ledger snapshots.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """
        Read the blob stored under `key`.

        Returns:
            The stored text, or None if the key was never written

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write(self, key: str, payload: str) -> None:
        """
        Replace the blob stored under `key`.

        Raises:
            StorageError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
