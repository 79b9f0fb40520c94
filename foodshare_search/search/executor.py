"""
Search executor - runs one logical search against the primary channel and
falls back to the RPC channel when the primary fails.
"""

import asyncio
import logging
from typing import Any, Optional

from foodshare_search.channels.protocols import FallbackSearchChannel, PrimarySearchChannel
from foodshare_search.channels.schemas import (
    FallbackSearchResponse,
    PrimarySearchResponse,
    RpcParams,
)
from foodshare_search.error_handling.circuit_breaker import CircuitBreaker
from foodshare_search.error_handling.error_handler import ErrorHandler
from foodshare_search.error_handling.errors import SearchFailed
from foodshare_search.models import ChannelKind, Query, SearchOutcome
from foodshare_search.rate_limiting.rate_limiter import RateLimiter


logger = logging.getLogger(__name__)


class SearchExecutor:
    """
    Rate-limited, fallback-aware search.

    Each execute() call is admitted by the rate limiter, then tries the
    primary channel and, on any failure of it, the fallback channel. Whatever
    answered is normalized into a SearchOutcome.

    Attributes:
        primary: Ranked/hybrid search service
        fallback: Plain geographic RPC
        rate_limiter: Outbound request limiter
        circuit_breaker: Skips the primary after repeated failures
        error_handler: Retry policy for the fallback channel
        channel_timeout: Per-call timeout in seconds, None to rely on the transport
    """

    def __init__(
        self,
        primary: PrimarySearchChannel,
        fallback: FallbackSearchChannel,
        rate_limiter: Optional[RateLimiter] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        error_handler: Optional[ErrorHandler] = None,
        channel_timeout: Optional[float] = 15.0
    ):
        self.primary = primary
        self.fallback = fallback
        self.rate_limiter = rate_limiter or RateLimiter()
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.error_handler = error_handler or ErrorHandler()
        self.channel_timeout = channel_timeout

    async def execute(self, query: Query) -> SearchOutcome:
        """
        Execute one search.

        Args:
            query: The query to run

        Returns:
            SearchOutcome from whichever channel answered

        Raises:
            RateLimited: The rate limiter refused the request; no channel was contacted
            SearchFailed: Both channels failed; wraps the primary failure
        """
        await self.rate_limiter.check_rate_limit()

        logger.debug(
            f"Executing search: query={query.text!r}, sort={query.sort.value}, "
            f"radius={query.radius_km}km, offset={query.offset}"
        )

        try:
            outcome = await self._search_primary(query)
            logger.debug(f"Primary search returned {len(outcome.items)} items, total={outcome.total_count}")
            return outcome
        except Exception as primary_error:
            logger.warning(f"Primary search failed, falling back to RPC: {primary_error}")

            try:
                outcome = await self.error_handler.retry_with_backoff(self._search_fallback, query)
            except Exception as fallback_error:
                logger.error(
                    f"Fallback search failed as well: {type(fallback_error).__name__}: {fallback_error}"
                )
                raise SearchFailed(primary_error, fallback_error=fallback_error) from primary_error

            logger.debug(f"Fallback search returned {len(outcome.items)} items, total={outcome.total_count}")
            return outcome

    async def _search_primary(self, query: Query) -> SearchOutcome:
        self.circuit_breaker.check()

        try:
            raw = await self._with_timeout(
                self.primary.search(
                    query=query.text or "",
                    mode=query.mode,
                    lat=query.origin.latitude,
                    lng=query.origin.longitude,
                    radius_km=query.radius_km,
                    category_ids=[query.category_id] if query.category_id is not None else None,
                    limit=query.limit,
                    offset=query.offset,
                )
            )
            response = self._validate(PrimarySearchResponse, raw)
        except Exception:
            self.circuit_breaker.record_failure()
            raise

        self.circuit_breaker.record_success()

        items = [dto.to_result_item() for dto in response.items]
        return SearchOutcome(
            items=items,
            total_count=response.total_count if response.total_count is not None else len(items),
            category_breakdown={},
            has_more=bool(response.has_more),
            source=ChannelKind.PRIMARY,
        )

    async def _search_fallback(self, query: Query) -> SearchOutcome:
        raw = await self._with_timeout(self.fallback.search_nearby(RpcParams.from_query(query)))
        response = self._validate(FallbackSearchResponse, raw)

        return SearchOutcome(
            items=[record.to_result_item() for record in response.items],
            total_count=response.total_count,
            category_breakdown=dict(response.category_breakdown),
            has_more=response.has_more,
            source=ChannelKind.FALLBACK,
        )

    async def _with_timeout(self, awaitable) -> Any:
        if self.channel_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.channel_timeout)

    @staticmethod
    def _validate(model, raw: Any):
        if isinstance(raw, model):
            return raw
        return model.model_validate(raw)
