"""
Key-value persistence backends for search history.

The history store only needs whole-blob get/set by key. A file-backed store
is provided for real use and an in-memory store for tests and ephemeral
sessions.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol


logger = logging.getLogger(__name__)


class KeyValuePersistence(Protocol):
    """Minimal persistence contract used by HistoryStore."""

    def get(self, key: str) -> Optional[bytes]:
        """Return the stored blob or None."""
        ...

    def set(self, key: str, value: bytes) -> None:
        """Replace the blob stored under key."""
        ...


class InMemoryKeyValueStore:
    """Dictionary-backed store."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = value


class FileKeyValueStore:
    """Stores each key as a file under a base directory.

    Writes go to a temporary file in the same directory that then replaces
    the target, so a reader never observes a half-written blob.

    Attributes:
        base_dir: Directory holding one file per key
    """

    _SAFE_KEY = re.compile(r'[^A-Za-z0-9_.-]')

    def __init__(self, base_dir: str = "./search_history"):
        self.base_dir = Path(base_dir)
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create history directory {self.base_dir}: {e}")

    def _path_for(self, key: str) -> Path:
        return self.base_dir / f"{self._SAFE_KEY.sub('_', key)}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
