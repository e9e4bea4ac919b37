"""In-memory snapshot store, used by tests and the `memory` backend."""

from typing import Optional

from timetracker.services.storage.interface import SnapshotStore


class InMemorySnapshotStore(SnapshotStore):
    """Keeps snapshots in a dict for the lifetime of the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._blobs: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def write(self, key: str, payload: str) -> None:
        self._blobs[key] = payload

    def keys(self) -> list[str]:
        return list(self._blobs)
