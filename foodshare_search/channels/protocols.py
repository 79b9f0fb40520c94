"""
Collaborator contracts consumed by the search core.

The two channels are deliberately independent of each other so either can
be replaced or mocked without touching the executor.
"""

from typing import Any, AsyncIterator, List, Mapping, Optional, Protocol, Union

from foodshare_search.models import GeoPoint, SearchMode, TranscriptionEvent
from .schemas import FallbackSearchResponse, PrimarySearchResponse, RpcParams


class PrimarySearchChannel(Protocol):
    """Ranked/hybrid search service."""

    async def search(
        self,
        query: str,
        mode: SearchMode,
        lat: float,
        lng: float,
        radius_km: float,
        category_ids: Optional[List[int]],
        limit: int,
        offset: int,
    ) -> Union[PrimarySearchResponse, Mapping[str, Any]]:
        ...


class FallbackSearchChannel(Protocol):
    """Plain geographic query with server-side sorting."""

    async def search_nearby(
        self, params: RpcParams
    ) -> Union[FallbackSearchResponse, Mapping[str, Any]]:
        ...


class SpeechRecognitionService(Protocol):
    """Platform speech recognizer fed by a live audio buffer."""

    def is_available(self) -> bool:
        ...

    async def request_permission(self) -> bool:
        ...

    def start_recognition(self) -> AsyncIterator[TranscriptionEvent]:
        """Start audio capture and return the transcription event stream."""
        ...

    def stop_recognition(self) -> None:
        """Stop audio capture and release the audio resources."""
        ...


class LocationProvider(Protocol):
    """Source of the user's current position."""

    async def current_location(self) -> GeoPoint:
        ...


class StaticLocationProvider:
    """Always reports the same position."""

    def __init__(self, point: GeoPoint):
        self.point = point

    async def current_location(self) -> GeoPoint:
        return self.point
