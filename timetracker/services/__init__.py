"""Services package."""

from timetracker.services.storage import (
    ConnectionError,
    GoogleSheetsSnapshotStore,
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    LoadedSnapshot,
    PersistenceGateway,
    SnapshotStore,
    StorageError,
)

__all__ = [
    "ConnectionError",
    "GoogleSheetsSnapshotStore",
    "InMemorySnapshotStore",
    "JsonFileSnapshotStore",
    "LoadedSnapshot",
    "PersistenceGateway",
    "SnapshotStore",
    "StorageError",
]
