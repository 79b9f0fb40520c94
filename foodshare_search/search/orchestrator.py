"""
Search orchestrator - owns the query, filters, results and stats, and
coordinates debouncing, execution, history and voice input.
"""

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional, Union

from foodshare_search.channels.http_clients import (
    SearchAPIClient,
    SupabaseRpcClient,
)
from foodshare_search.channels.protocols import (
    FallbackSearchChannel,
    LocationProvider,
    PrimarySearchChannel,
    SpeechRecognitionService,
)
from foodshare_search.config.search_config import SearchSettings, get_search_settings
from foodshare_search.error_handling.circuit_breaker import CircuitBreaker
from foodshare_search.error_handling.error_handler import ErrorHandler, RetryConfig
from foodshare_search.error_handling.errors import SearchCoreError, SearchFailed
from foodshare_search.history.history_store import HistoryStore
from foodshare_search.history.storage import FileKeyValueStore, KeyValuePersistence
from foodshare_search.models import (
    Query,
    SavedSearch,
    SearchFilters,
    SearchOutcome,
    SearchResultItem,
    SearchStats,
    VoiceState,
)
from foodshare_search.rate_limiting.rate_limiter import RateLimiter
from foodshare_search.voice.session import VoiceCaptureSession
from .debouncer import Debouncer
from .executor import SearchExecutor


logger = logging.getLogger(__name__)


POPULAR_SEARCHES = ["Fresh vegetables", "Bread", "Dairy", "Fruits", "Cooked meals"]


class SearchOrchestrator:
    """
    Façade over the search core.

    Dispatches are last-writer-wins by dispatch order: every dispatch cancels
    the previous in-flight search and bumps a generation counter, and a
    completed search only commits if its generation is still current.

    Attributes:
        query_text: Current text in the search field
        filters: Filters applied to the next search
        results: Visible result set
        stats: Stats of the visible result set
        total_count: Server-side total for the visible query
        has_more: Whether another page is available
        is_searching: A new search is in flight
        is_loading_more: A next-page request is in flight
        error: Last search error, cleared on the next dispatch
        suggestions: Suggestions for the current text
    """

    MAX_SUGGESTIONS = 5

    def __init__(
        self,
        executor: SearchExecutor,
        history: HistoryStore,
        location_provider: LocationProvider,
        speech_service: Optional[SpeechRecognitionService] = None,
        debounce_seconds: float = 0.3,
        voice_timeout_seconds: float = 10.0,
        page_size: int = 100,
        popular_searches: Optional[List[str]] = None
    ):
        self.executor = executor
        self.history = history
        self.location_provider = location_provider
        self.page_size = page_size
        self.popular_searches = list(popular_searches or POPULAR_SEARCHES)

        self.query_text = ""
        self.filters = SearchFilters()
        self.results: List[SearchResultItem] = []
        self.stats = SearchStats.empty()
        self.total_count = 0
        self.has_more = False
        self.is_searching = False
        self.is_loading_more = False
        self.error: Optional[SearchCoreError] = None
        self.show_error = False
        self.suggestions: List[str] = list(self.popular_searches)

        self.voice_error: Optional[str] = None

        self._generation = 0
        self._search_task: Optional[asyncio.Task] = None
        self._committed_text: Optional[str] = None
        self._owned_clients: List[Union[SearchAPIClient, SupabaseRpcClient]] = []

        self.debouncer = Debouncer(self._search_text, delay_seconds=debounce_seconds)
        self.voice: Optional[VoiceCaptureSession] = None
        if speech_service is not None:
            self.voice = VoiceCaptureSession(
                speech_service,
                on_final=self._on_voice_final,
                timeout_seconds=voice_timeout_seconds,
                on_state_change=self._on_voice_state,
            )

    @classmethod
    def from_settings(
        cls,
        primary: PrimarySearchChannel,
        fallback: FallbackSearchChannel,
        storage: KeyValuePersistence,
        location_provider: LocationProvider,
        speech_service: Optional[SpeechRecognitionService] = None,
        settings: Optional[SearchSettings] = None
    ) -> 'SearchOrchestrator':
        """Wire up a complete orchestrator from settings."""
        settings = settings or SearchSettings()
        channels = settings.channels

        executor = SearchExecutor(
            primary,
            fallback,
            rate_limiter=RateLimiter(
                max_requests=settings.rate_limiting.max_requests,
                window_seconds=settings.rate_limiting.window_seconds,
            ),
            circuit_breaker=CircuitBreaker(
                failure_threshold=channels.circuit_breaker_threshold,
                reset_seconds=channels.circuit_breaker_reset_seconds,
            ),
            error_handler=ErrorHandler(RetryConfig(
                max_retries=channels.fallback_max_retries,
                backoff_base_seconds=channels.fallback_backoff_seconds,
            )),
            channel_timeout=channels.timeout_seconds,
        )
        history = HistoryStore(
            storage,
            max_recent=settings.history.max_recent,
            max_saved=settings.history.max_saved,
        )
        return cls(
            executor,
            history,
            location_provider,
            speech_service=speech_service,
            debounce_seconds=settings.debounce.delay_ms / 1000.0,
            voice_timeout_seconds=settings.voice.timeout_seconds,
            page_size=channels.page_size,
        )

    @classmethod
    def from_env(
        cls,
        location_provider: LocationProvider,
        speech_service: Optional[SpeechRecognitionService] = None,
        settings: Optional[SearchSettings] = None
    ) -> 'SearchOrchestrator':
        """
        Build an orchestrator with the HTTP channels and file history.

        Reads the endpoints, the anon key and the history directory from
        settings (by default from the environment). The HTTP clients are
        owned by the orchestrator and closed by close().

        Raises:
            ValueError: A required endpoint or key is not configured
        """
        settings = settings or get_search_settings()
        channels = settings.channels

        missing = [
            name for name, value in (
                ("SEARCH_API_URL", channels.search_api_url),
                ("SUPABASE_URL", channels.supabase_url),
                ("SUPABASE_ANON_KEY", channels.supabase_anon_key),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Missing search configuration: {', '.join(missing)}")

        primary = SearchAPIClient(
            channels.search_api_url,
            api_key=channels.supabase_anon_key,
            timeout_seconds=channels.timeout_seconds,
        )
        fallback = SupabaseRpcClient(
            channels.supabase_url,
            anon_key=channels.supabase_anon_key,
            timeout_seconds=channels.timeout_seconds,
        )
        orchestrator = cls.from_settings(
            primary,
            fallback,
            FileKeyValueStore(settings.history.storage_dir),
            location_provider,
            speech_service=speech_service,
            settings=settings,
        )
        orchestrator._owned_clients = [primary, fallback]
        logger.info(f"Search configured against {channels.search_api_url} with RPC fallback")
        return orchestrator

    # Derived state

    @property
    def filtered_results(self) -> List[SearchResultItem]:
        """Results arrive pre-filtered and sorted by the server."""
        return self.results

    @property
    def has_results(self) -> bool:
        return bool(self.results)

    @property
    def active_filters_count(self) -> int:
        return self.filters.active_count()

    @property
    def has_active_filters(self) -> bool:
        return self.active_filters_count > 0

    @property
    def recent_searches(self) -> List[str]:
        return self.history.recent_searches()

    @property
    def saved_searches(self) -> List[SavedSearch]:
        return self.history.saved_searches()

    @property
    def voice_state(self) -> VoiceState:
        return self.voice.state if self.voice is not None else VoiceState.IDLE

    @property
    def voice_partial_text(self) -> str:
        return self.voice.partial_text if self.voice is not None else ""

    @property
    def is_voice_search_active(self) -> bool:
        return self.voice is not None and self.voice.is_active

    # Search actions

    def on_query_changed(self, text: str) -> None:
        """Record typed text and schedule a debounced search for it."""
        self.query_text = text
        self._update_suggestions(text.strip())
        self.debouncer.on_query_changed(text)

    def search_debounced(self) -> None:
        """Schedule a search for the current text after the quiet period."""
        self.debouncer.on_query_changed(self.query_text)

    async def search(self) -> None:
        """Search for the current text now, superseding anything pending."""
        await self.debouncer.search_now(self.query_text)

    async def search_nearby(self) -> None:
        """Search everything around the user with the current filters."""
        self.debouncer.cancel()
        await self._dispatch(None)

    async def load_more(self) -> None:
        """Append the next page of the visible query."""
        if not self.has_more or self.is_searching or self.is_loading_more:
            return
        await self._dispatch(self._committed_text, offset=len(self.results))

    def clear_search(self) -> None:
        self.debouncer.cancel()
        self._invalidate_in_flight()
        self.query_text = ""
        self._clear_results()
        self._update_suggestions("")

    def apply_filters(self, **changes) -> SearchFilters:
        """Replace individual filter fields, e.g. apply_filters(max_distance_km=5)."""
        self.filters = replace(self.filters, **changes)
        return self.filters

    def clear_filters(self) -> None:
        self.filters = SearchFilters()

    def dismiss_error(self) -> None:
        self.error = None
        self.show_error = False

    async def select_recent_search(self, text: str) -> None:
        self.query_text = text
        await self.search()

    async def clear_recent_searches(self) -> None:
        await self.history.clear_recent()
        self._update_suggestions(self.query_text.strip())

    # Saved searches

    async def save_current_search(self) -> Optional[SavedSearch]:
        return await self.history.save_search(self.query_text, self.filters)

    async def apply_saved_search(self, saved: SavedSearch) -> None:
        self.query_text = saved.query
        self.filters = saved.filters.copy()
        await self.search()

    async def delete_saved_search(self, saved_id: str) -> None:
        await self.history.delete_saved(saved_id)

    # Voice

    async def start_voice_search(self) -> bool:
        if self.voice is None:
            self.voice_error = "Voice search is not available"
            return False
        self.voice_error = None
        return await self.voice.start()

    async def stop_voice_search(self) -> None:
        if self.voice is not None:
            await self.voice.stop()

    def _on_voice_final(self, text: str) -> None:
        logger.info(f"Voice query finalized: {text!r}")
        self.on_query_changed(text)

    def _on_voice_state(self, state: VoiceState) -> None:
        # Voice failures never touch the main search error
        if state == VoiceState.FAILED:
            self.voice_error = self.voice.failure_reason

    async def close(self) -> None:
        """Cancel pending work, release voice resources and close owned clients."""
        self.debouncer.cancel()
        self._invalidate_in_flight()
        await self.stop_voice_search()
        self.is_searching = False
        self.is_loading_more = False

        for client in self._owned_clients:
            await client.close()
        self._owned_clients = []

    # Dispatch

    async def _search_text(self, text: str) -> None:
        trimmed = text.strip()
        if not trimmed:
            self._invalidate_in_flight()
            self._clear_results()
            self._update_suggestions("")
            return
        await self._dispatch(trimmed)

    async def _dispatch(self, text: Optional[str], offset: int = 0) -> None:
        self._invalidate_in_flight()
        generation = self._generation

        task = asyncio.create_task(self._perform(text, offset, generation))
        self._search_task = task
        try:
            await task
        except asyncio.CancelledError:
            if task is not self._search_task:
                # Superseded by a newer dispatch
                return
            raise

    def _invalidate_in_flight(self) -> None:
        if self._search_task is not None and not self._search_task.done():
            self._search_task.cancel()
        self._search_task = None
        self._generation += 1

    async def _perform(self, text: Optional[str], offset: int, generation: int) -> None:
        appending = offset > 0
        if appending:
            self.is_loading_more = True
        else:
            self.is_searching = True
        self.error = None
        self.show_error = False

        try:
            outcome = await self._execute(text, offset)
        except SearchCoreError as e:
            if generation == self._generation:
                logger.error(f"Search failed: {e}")
                self.error = e
                self.show_error = True
            return
        finally:
            if generation == self._generation:
                self.is_searching = False
                self.is_loading_more = False

        if generation != self._generation:
            logger.debug(f"Discarding stale result for {text!r}")
            return

        self._commit(text, outcome, appending)

        if text and not appending:
            await self.history.record_recent(text)
            self._update_suggestions(text)

    async def _execute(self, text: Optional[str], offset: int) -> SearchOutcome:
        try:
            origin = await self.location_provider.current_location()
        except Exception as e:
            raise SearchFailed(e) from e

        query = Query.from_filters(text, origin, self.filters, limit=self.page_size, offset=offset)
        try:
            return await self.executor.execute(query)
        except SearchCoreError:
            raise
        except Exception as e:
            raise SearchFailed(e) from e

    def _commit(self, text: Optional[str], outcome: SearchOutcome, appending: bool) -> None:
        if appending:
            self.results = self.results + outcome.items
        else:
            self.results = list(outcome.items)
            self._committed_text = text

        self.total_count = outcome.total_count
        self.has_more = outcome.has_more
        self.stats = SearchStats.from_results(self.results, outcome.total_count, outcome.category_breakdown)

        logger.info(
            f"Search completed: {text!r} returned {len(outcome.items)} of {outcome.total_count} results "
            f"via {outcome.source.value}"
        )

    def _clear_results(self) -> None:
        self.results = []
        self.stats = SearchStats.empty()
        self.total_count = 0
        self.has_more = False
        self.is_searching = False
        self.is_loading_more = False

    def _update_suggestions(self, text: str) -> None:
        """Recent searches containing the text, then popular ones, max five."""
        if not text:
            self.suggestions = list(self.popular_searches)
            return

        lowered = text.lower()
        suggestions = [
            q for q in self.history.recent_searches()
            if lowered in q.lower() and q.lower() != lowered
        ]
        suggestions += [
            q for q in self.popular_searches
            if lowered in q.lower() and q not in suggestions
        ]
        self.suggestions = suggestions[:self.MAX_SUGGESTIONS]
