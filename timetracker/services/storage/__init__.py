"""
Storage Services Package

Provides the snapshot store interface, its implementations and the
gateway that encodes the ledgers. Local JSON files are the default
backend; Google Sheets is available for a shared copy.
"""

from timetracker.services.storage.interface import (
    DEBTS_KEY,
    FINANCE_RECORDS_KEY,
    SHARED_BUDGET_KEY,
    SNAPSHOT_KEYS,
    TIME_SESSIONS_KEY,
    ConnectionError,
    SnapshotStore,
    StorageError,
)
from timetracker.services.storage.memory import InMemorySnapshotStore
from timetracker.services.storage.json_file import JsonFileSnapshotStore
from timetracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsSnapshotStore,
)
from timetracker.services.storage.gateway import LoadedSnapshot, PersistenceGateway

__all__ = [
    # Interface
    "SnapshotStore",
    "SNAPSHOT_KEYS",
    "TIME_SESSIONS_KEY",
    "FINANCE_RECORDS_KEY",
    "DEBTS_KEY",
    "SHARED_BUDGET_KEY",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "InMemorySnapshotStore",
    "JsonFileSnapshotStore",
    "GoogleSheetsClient",
    "GoogleSheetsSnapshotStore",
    # Gateway
    "LoadedSnapshot",
    "PersistenceGateway",
]
