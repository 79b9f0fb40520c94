"""
FoodShare search core.

Turns typed or spoken input into a ranked, paginated result set while
rate-limiting the backend and falling back to a second channel on failure.
"""

from .models import (
    ChannelKind,
    GeoPoint,
    Query,
    SavedSearch,
    SearchFilters,
    SearchMode,
    SearchOutcome,
    SearchResultItem,
    SearchStats,
    ServerSortOption,
    SortOption,
    TranscriptionEvent,
    VoiceState,
)
from .search import Debouncer, SearchExecutor, SearchOrchestrator

__version__ = "0.1.0"

__all__ = [
    "ChannelKind",
    "GeoPoint",
    "Query",
    "SavedSearch",
    "SearchFilters",
    "SearchMode",
    "SearchOutcome",
    "SearchResultItem",
    "SearchStats",
    "ServerSortOption",
    "SortOption",
    "TranscriptionEvent",
    "VoiceState",
    "Debouncer",
    "SearchExecutor",
    "SearchOrchestrator",
]
