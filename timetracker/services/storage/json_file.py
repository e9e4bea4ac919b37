"""
Local JSON File Storage

One file per snapshot key inside a data directory. Writes go to a
temporary file first and are moved into place, so a crash mid-write
leaves the previous snapshot intact.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from timetracker.services.storage.interface import SnapshotStore, StorageError


class JsonFileSnapshotStore(SnapshotStore):
    """Snapshots stored as `<data_dir>/<key>.json`."""

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        return self._data_dir / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def write(self, key: str, payload: str) -> None:
        path = self._path(key)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._data_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")
