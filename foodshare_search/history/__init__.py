"""Recent and saved search history."""

from .history_store import HistoryStore, RECENT_SEARCHES_KEY, SAVED_SEARCHES_KEY
from .storage import FileKeyValueStore, InMemoryKeyValueStore, KeyValuePersistence

__all__ = [
    'HistoryStore',
    'RECENT_SEARCHES_KEY',
    'SAVED_SEARCHES_KEY',
    'FileKeyValueStore',
    'InMemoryKeyValueStore',
    'KeyValuePersistence',
]
