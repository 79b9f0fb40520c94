"""Tests for the rate-limited, fallback-aware search executor."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from foodshare_search.channels.schemas import (
    FallbackSearchResponse,
    PrimarySearchResponse,
    RpcParams,
)
from foodshare_search.error_handling.circuit_breaker import CircuitBreaker
from foodshare_search.error_handling.error_handler import ErrorHandler, RetryConfig
from foodshare_search.error_handling.errors import RateLimited, SearchFailed
from foodshare_search.models import (
    ChannelKind,
    GeoPoint,
    Query,
    SearchFilters,
    SearchMode,
    ServerSortOption,
    SortOption,
)
from foodshare_search.rate_limiting.rate_limiter import RateLimiter
from foodshare_search.search.executor import SearchExecutor


ORIGIN = GeoPoint(latitude=51.5072, longitude=-0.1276)

FALLBACK_PAYLOAD = {
    "items": [
        {
            "id": 7,
            "post_name": "Sourdough loaf",
            "post_description": "Baked this morning",
            "post_type": "food",
            "latitude": 51.51,
            "longitude": -0.13,
            "images": None,
            "category_id": 2,
            "distance_meters": 850.0,
            "created_at": "2026-10-01T09:00:00+00:00",
        }
    ],
    "total_count": 12,
    "category_breakdown": {"Bakery": 12},
    "has_more": True,
}


def make_query(text="bread", **kwargs):
    filters = SearchFilters(**kwargs)
    return Query.from_filters(text, ORIGIN, filters, limit=20)


def make_executor(primary, fallback, **kwargs):
    kwargs.setdefault("error_handler", ErrorHandler(RetryConfig(max_retries=1)))
    return SearchExecutor(primary, fallback, **kwargs)


def failing(error):
    return AsyncMock(side_effect=error)


@pytest.mark.asyncio
async def test_primary_success_is_normalized():
    primary = AsyncMock()
    primary.search = AsyncMock(return_value={
        "items": [{"id": 1, "title": None, "distanceMeters": 120.0}],
        "totalCount": None,
    })
    fallback = AsyncMock()
    executor = make_executor(primary, fallback)

    outcome = await executor.execute(make_query(category_id=4))

    assert outcome.source == ChannelKind.PRIMARY
    assert outcome.total_count == 1
    assert outcome.has_more is False
    assert outcome.category_breakdown == {}
    assert outcome.items[0].title == "Untitled"
    assert outcome.items[0].distance_meters == 120.0
    fallback.search_nearby.assert_not_called()

    kwargs = primary.search.await_args.kwargs
    assert kwargs["query"] == "bread"
    assert kwargs["mode"] == SearchMode.HYBRID
    assert kwargs["category_ids"] == [4]
    assert kwargs["lat"] == ORIGIN.latitude
    assert kwargs["limit"] == 20


@pytest.mark.asyncio
async def test_fallback_used_when_primary_fails():
    primary = AsyncMock()
    primary.search = failing(ConnectionError("edge function unreachable"))
    fallback = AsyncMock()
    fallback.search_nearby = AsyncMock(return_value=FALLBACK_PAYLOAD)
    executor = make_executor(primary, fallback)

    outcome = await executor.execute(make_query())

    assert outcome.source == ChannelKind.FALLBACK
    assert [item.id for item in outcome.items] == [7]
    assert outcome.items[0].title == "Sourdough loaf"
    assert outcome.items[0].images == []
    assert outcome.total_count == 12
    assert outcome.category_breakdown == {"Bakery": 12}
    assert outcome.has_more is True


@pytest.mark.asyncio
async def test_fallback_receives_rpc_params():
    primary = AsyncMock()
    primary.search = failing(ConnectionError("down"))
    fallback = AsyncMock()
    fallback.search_nearby = AsyncMock(return_value=FallbackSearchResponse())
    executor = make_executor(primary, fallback)

    await executor.execute(make_query(
        post_type="food",
        show_available_only=False,
        sort_by=SortOption.MOST_VIEWED,
        max_distance_km=5.0,
    ))

    params = fallback.search_nearby.await_args.args[0]
    assert isinstance(params, RpcParams)
    assert params.p_search_query == "bread"
    assert params.p_radius_km == 5.0
    assert params.p_post_type == "food"
    assert params.p_available_only is False
    assert params.p_sort_by == ServerSortOption.POPULAR.value
    assert params.p_limit == 20


@pytest.mark.asyncio
async def test_both_channels_fail_raises_primary_error():
    primary_error = ConnectionError("edge function unreachable")
    fallback_error = RuntimeError("rpc 500")
    primary = AsyncMock()
    primary.search = failing(primary_error)
    fallback = AsyncMock()
    fallback.search_nearby = failing(fallback_error)
    executor = make_executor(primary, fallback)

    with pytest.raises(SearchFailed) as exc_info:
        await executor.execute(make_query())

    assert exc_info.value.underlying is primary_error
    assert exc_info.value.fallback_error is fallback_error
    assert "edge function unreachable" in str(exc_info.value)


@pytest.mark.asyncio
async def test_rate_limited_contacts_no_channel():
    primary = AsyncMock()
    fallback = AsyncMock()
    executor = make_executor(
        primary, fallback, rate_limiter=RateLimiter(max_requests=1, window_seconds=60)
    )
    primary.search = AsyncMock(return_value=PrimarySearchResponse())

    await executor.execute(make_query())
    with pytest.raises(RateLimited):
        await executor.execute(make_query())

    assert primary.search.await_count == 1
    fallback.search_nearby.assert_not_called()


@pytest.mark.asyncio
async def test_primary_timeout_falls_back():
    async def slow_search(**kwargs):
        await asyncio.sleep(1)
        return PrimarySearchResponse()

    primary = AsyncMock()
    primary.search = slow_search
    fallback = AsyncMock()
    fallback.search_nearby = AsyncMock(return_value=FALLBACK_PAYLOAD)
    executor = make_executor(primary, fallback, channel_timeout=0.01)

    outcome = await executor.execute(make_query())

    assert outcome.source == ChannelKind.FALLBACK


@pytest.mark.asyncio
async def test_invalid_primary_payload_falls_back():
    primary = AsyncMock()
    primary.search = AsyncMock(return_value={"items": [{"title": "no id"}]})
    fallback = AsyncMock()
    fallback.search_nearby = AsyncMock(return_value=FALLBACK_PAYLOAD)
    executor = make_executor(primary, fallback)

    outcome = await executor.execute(make_query())

    assert outcome.source == ChannelKind.FALLBACK


@pytest.mark.asyncio
async def test_open_circuit_skips_primary():
    primary = AsyncMock()
    primary.search = failing(ConnectionError("down"))
    fallback = AsyncMock()
    fallback.search_nearby = AsyncMock(return_value=FALLBACK_PAYLOAD)
    executor = make_executor(
        primary, fallback, circuit_breaker=CircuitBreaker(failure_threshold=2, reset_seconds=60)
    )

    for _ in range(3):
        outcome = await executor.execute(make_query())
        assert outcome.source == ChannelKind.FALLBACK

    assert primary.search.await_count == 2


@pytest.mark.asyncio
async def test_fallback_is_retried():
    primary = AsyncMock()
    primary.search = failing(ConnectionError("down"))
    fallback = AsyncMock()
    fallback.search_nearby = AsyncMock(side_effect=[RuntimeError("blip"), FALLBACK_PAYLOAD])
    executor = make_executor(
        primary,
        fallback,
        error_handler=ErrorHandler(RetryConfig(max_retries=2, backoff_base_seconds=0)),
    )

    outcome = await executor.execute(make_query())

    assert outcome.source == ChannelKind.FALLBACK
    assert fallback.search_nearby.await_count == 2


@pytest.mark.asyncio
async def test_nearby_query_uses_text_mode():
    primary = AsyncMock()
    primary.search = AsyncMock(return_value=PrimarySearchResponse())
    executor = make_executor(primary, AsyncMock())

    await executor.execute(make_query(text=None))

    kwargs = primary.search.await_args.kwargs
    assert kwargs["query"] == ""
    assert kwargs["mode"] == SearchMode.TEXT
    assert kwargs["category_ids"] is None
