"""
Data models for the FoodShare search core.

This module defines the core data structures used throughout the package:
search filters, the query value handed to the executor, the canonical result
item, aggregate stats and the persisted history entries.
"""

from dataclasses import dataclass, field, asdict, replace
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class SortOption(str, Enum):
    """Sort modes offered to the user, valued by their display label."""
    DISTANCE = "Distance"
    NEWEST = "Newest"
    OLDEST = "Oldest"
    EXPIRING_SOON = "Expiring Soon"
    MOST_VIEWED = "Popular"


class ServerSortOption(str, Enum):
    """Sort modes understood by the search backends."""
    DISTANCE = "distance"
    NEWEST = "newest"
    OLDEST = "oldest"
    EXPIRING_SOON = "expiring_soon"
    POPULAR = "popular"


SORT_TRANSLATION: Dict[SortOption, ServerSortOption] = {
    SortOption.DISTANCE: ServerSortOption.DISTANCE,
    SortOption.NEWEST: ServerSortOption.NEWEST,
    SortOption.OLDEST: ServerSortOption.OLDEST,
    SortOption.EXPIRING_SOON: ServerSortOption.EXPIRING_SOON,
    SortOption.MOST_VIEWED: ServerSortOption.POPULAR,
}


class SearchMode(str, Enum):
    """Ranking mode of the primary search service."""
    TEXT = "text"
    HYBRID = "hybrid"


class ChannelKind(str, Enum):
    """Which backend channel produced a search outcome."""
    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""
    latitude: float
    longitude: float


@dataclass
class SearchFilters:
    """User-adjustable filters applied to every search.

    Attributes:
        category_id: Restrict results to one category
        max_distance_km: Search radius around the user's location
        post_type: Restrict results to one post type (e.g. "food")
        show_arranged_only: Only show items already arranged for pickup
        show_available_only: Hide items that are no longer available
        sort_by: Sort mode chosen by the user
        expiring_within_hours: Only show items expiring within this window
    """
    category_id: Optional[int] = None
    max_distance_km: float = 10.0
    post_type: Optional[str] = None
    show_arranged_only: bool = False
    show_available_only: bool = True
    sort_by: SortOption = SortOption.DISTANCE
    expiring_within_hours: Optional[int] = None

    def is_default(self) -> bool:
        return self == SearchFilters()

    def active_count(self) -> int:
        """Count the filters that differ from their default value."""
        default = SearchFilters()
        return sum(
            1
            for name in (
                "category_id",
                "post_type",
                "show_arranged_only",
                "show_available_only",
                "max_distance_km",
                "expiring_within_hours",
                "sort_by",
            )
            if getattr(self, name) != getattr(default, name)
        )

    def copy(self) -> 'SearchFilters':
        return replace(self)

    def to_dict(self) -> dict:
        """Convert filters to a JSON-compatible dictionary."""
        data = asdict(self)
        data['sort_by'] = self.sort_by.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'SearchFilters':
        """Create SearchFilters from a dictionary, ignoring unknown keys.

        Args:
            data: Dictionary produced by to_dict

        Returns:
            SearchFilters instance
        """
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if 'sort_by' in known:
            known['sort_by'] = SortOption(known['sort_by'])
        return cls(**known)


@dataclass(frozen=True)
class Query:
    """One search dispatch. Built fresh for every search and never mutated.

    Attributes:
        text: Free-text search terms, None for a plain nearby search
        origin: Centre of the geographic search
        radius_km: Search radius in kilometres
        category_id: Optional category filter
        post_type: Optional post type filter
        available_only: Hide unavailable items
        arranged_only: Only arranged items
        sort: Server sort mode
        expiring_within_hours: Optional expiry window
        limit: Page size
        offset: Page offset
        mode: Ranking mode for the primary search service
    """
    text: Optional[str]
    origin: GeoPoint
    radius_km: float
    category_id: Optional[int] = None
    post_type: Optional[str] = None
    available_only: bool = True
    arranged_only: bool = False
    sort: ServerSortOption = ServerSortOption.DISTANCE
    expiring_within_hours: Optional[int] = None
    limit: int = 100
    offset: int = 0
    mode: SearchMode = SearchMode.HYBRID

    @classmethod
    def from_filters(
        cls,
        text: Optional[str],
        origin: GeoPoint,
        filters: SearchFilters,
        limit: int = 100,
        offset: int = 0
    ) -> 'Query':
        """Compose a query from the current filters.

        Translates the user-facing sort option into the server sort mode.
        """
        return cls(
            text=text or None,
            origin=origin,
            radius_km=filters.max_distance_km,
            category_id=filters.category_id,
            post_type=filters.post_type,
            available_only=filters.show_available_only,
            arranged_only=filters.show_arranged_only,
            sort=SORT_TRANSLATION[filters.sort_by],
            expiring_within_hours=filters.expiring_within_hours,
            limit=limit,
            offset=offset,
            mode=SearchMode.HYBRID if text else SearchMode.TEXT,
        )


@dataclass
class SearchResultItem:
    """Canonical result record both backend channels are mapped into."""
    id: int
    title: str
    description: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    images: List[str] = field(default_factory=list)
    distance_meters: Optional[float] = None
    post_type: str = "food"
    category_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def distance_km(self) -> Optional[float]:
        if self.distance_meters is None:
            return None
        return self.distance_meters / 1000.0


@dataclass
class SearchOutcome:
    """Normalized answer of one executed search."""
    items: List[SearchResultItem]
    total_count: int
    category_breakdown: Dict[str, int]
    has_more: bool
    source: ChannelKind


@dataclass(frozen=True)
class SearchStats:
    """Aggregate numbers describing the visible result set."""
    total_results: int = 0
    filtered_results: int = 0
    category_breakdown: Dict[str, int] = field(default_factory=dict)
    average_distance_km: Optional[float] = None

    @classmethod
    def empty(cls) -> 'SearchStats':
        return cls()

    @classmethod
    def from_results(
        cls,
        items: List[SearchResultItem],
        total_count: int,
        category_breakdown: Dict[str, int]
    ) -> 'SearchStats':
        distances = [item.distance_km for item in items if item.distance_km is not None]
        average = sum(distances) / len(distances) if distances else None
        return cls(
            total_results=total_count,
            filtered_results=len(items),
            category_breakdown=dict(category_breakdown),
            average_distance_km=average,
        )


@dataclass
class SavedSearch:
    """A query and filter snapshot the user chose to keep.

    Attributes:
        id: Opaque identifier
        query: Query text
        filters: Snapshot of the filters at save time
        created_at: When the search was saved
    """
    id: str
    query: str
    filters: SearchFilters
    created_at: datetime

    def to_dict(self) -> dict:
        """Convert saved search to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'query': self.query,
            'filters': self.filters.to_dict(),
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SavedSearch':
        """Create SavedSearch instance from dictionary.

        Args:
            data: Dictionary containing saved search data

        Returns:
            SavedSearch instance
        """
        return cls(
            id=str(data['id']),
            query=data['query'],
            filters=SearchFilters.from_dict(data.get('filters') or {}),
            created_at=datetime.fromisoformat(data['created_at']),
        )


class VoiceState(str, Enum):
    """States of the voice capture session."""
    IDLE = "idle"
    AWAITING_PERMISSION = "awaiting_permission"
    LISTENING = "listening"
    FINALIZING = "finalizing"
    FAILED = "failed"


@dataclass(frozen=True)
class TranscriptionEvent:
    """One event of the speech recognition stream."""
    partial_text: str
    is_final: bool = False
