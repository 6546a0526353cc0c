"""
Local Key-Value Stores

The on-disk store keeps one UTF-8 file per key inside a data directory.
Writes go to a temporary file first and are moved into place, so a crash
mid-write leaves the previous value intact.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from finbot.services.storage.interface import KeyValueStoreInterface, PersistenceError


class FileKeyValueStore(KeyValueStoreInterface):
    """Directory-backed key-value store."""
    
    def __init__(self, data_dir: str | Path):
        self._dir = Path(data_dir)
    
    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise PersistenceError(f"Invalid storage key: {key!r}")
        return self._dir / f"{key}.json"
    
    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read {key}: {e}")
    
    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self._dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.replace(tmp_path, path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write {key}: {e}")


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dictionary-backed store for tests and throwaway sessions."""
    
    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})
    
    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)
    
    def set(self, key: str, value: str) -> None:
        self.data[key] = value
