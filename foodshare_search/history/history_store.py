"""
Recent and saved search history.

This module keeps a bounded, most-recent-first history of searches and of
searches the user explicitly saved. Reads are served from an in-memory mirror
loaded once at construction; every mutation replaces the mirror and persists
the whole collection. Persistence failures are logged and never surfaced.
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from foodshare_search.error_handling.errors import PersistenceFailed
from foodshare_search.models import SavedSearch, SearchFilters
from .storage import KeyValuePersistence


logger = logging.getLogger(__name__)


RECENT_SEARCHES_KEY = "recentSearches"
SAVED_SEARCHES_KEY = "savedSearches"


class HistoryStore:
    """Manages recent and saved searches on top of a key-value store.

    Attributes:
        max_recent: Cap on the recent search list
        max_saved: Cap on the saved search list
    """

    def __init__(
        self,
        storage: KeyValuePersistence,
        max_recent: int = 10,
        max_saved: int = 20,
        recent_key: str = RECENT_SEARCHES_KEY,
        saved_key: str = SAVED_SEARCHES_KEY
    ):
        self._storage = storage
        self.max_recent = max_recent
        self.max_saved = max_saved
        self.recent_key = recent_key
        self.saved_key = saved_key
        self._write_lock = asyncio.Lock()
        self._recent: List[str] = self._load_recent()
        self._saved: List[SavedSearch] = self._load_saved()

    # Reads

    def recent_searches(self) -> List[str]:
        return list(self._recent)

    def saved_searches(self) -> List[SavedSearch]:
        return list(self._saved)

    # Recent searches

    async def record_recent(self, query: str) -> None:
        """Move query to the front of the recent list.

        An existing entry matching case-insensitively is removed first, so
        the list never holds duplicates. Blank queries are ignored.
        """
        trimmed = query.strip()
        if not trimmed:
            return

        lowered = trimmed.lower()
        updated = [trimmed] + [q for q in self._recent if q.lower() != lowered]
        self._recent = updated[:self.max_recent]
        await self._persist(self.recent_key, self._recent_payload)

    async def clear_recent(self) -> None:
        self._recent = []
        await self._persist(self.recent_key, self._recent_payload)

    # Saved searches

    async def save_search(self, query: str, filters: SearchFilters) -> Optional[SavedSearch]:
        """Save a query with a snapshot of its filters.

        Re-saving a query (case-insensitive) replaces the older entry and
        moves it to the front.

        Args:
            query: Query text
            filters: Filters in effect; a copy is stored

        Returns:
            The new SavedSearch, or None for a blank query
        """
        trimmed = query.strip()
        if not trimmed:
            return None

        saved = SavedSearch(
            id=uuid.uuid4().hex,
            query=trimmed,
            filters=filters.copy(),
            created_at=datetime.now(),
        )

        lowered = trimmed.lower()
        updated = [saved] + [s for s in self._saved if s.query.lower() != lowered]
        self._saved = updated[:self.max_saved]
        await self._persist(self.saved_key, self._saved_payload)
        return saved

    async def delete_saved(self, saved_id: str) -> None:
        self._saved = [s for s in self._saved if s.id != saved_id]
        await self._persist(self.saved_key, self._saved_payload)

    # Persistence

    def _recent_payload(self) -> list:
        return list(self._recent)

    def _saved_payload(self) -> list:
        return [s.to_dict() for s in self._saved]

    async def _persist(self, key: str, payload: Callable[[], list]) -> None:
        """Write the current mirror for key.

        Writes are serialized and each one encodes the mirror as it is when
        the write starts, so the last write to land is always the newest.
        A cancelled caller still waits for its write to land before the next
        write may start.
        """
        async with self._write_lock:
            try:
                blob = json.dumps(payload()).encode('utf-8')
            except (TypeError, ValueError) as e:
                logger.error(str(PersistenceFailed(key, e)))
                return

            write = asyncio.ensure_future(asyncio.to_thread(self._storage.set, key, blob))
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                await asyncio.gather(write, return_exceptions=True)
                raise
            except Exception as e:
                logger.error(str(PersistenceFailed(key, e)))

    def _read_json(self, key: str) -> list:
        try:
            blob = self._storage.get(key)
            if blob is None:
                return []
            data = json.loads(blob)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON list, got {type(data).__name__}")
            return data
        except Exception as e:
            logger.error(str(PersistenceFailed(key, e)))
            return []

    def _load_recent(self) -> List[str]:
        entries = [q for q in self._read_json(self.recent_key) if isinstance(q, str)]
        return entries[:self.max_recent]

    def _load_saved(self) -> List[SavedSearch]:
        saved = []
        for entry in self._read_json(self.saved_key):
            try:
                saved.append(SavedSearch.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable saved search {entry!r}: {e}")
        return saved[:self.max_saved]
