"""
HTTP transports for the two search channels.

SearchAPIClient talks to the search edge function (ranked/hybrid search) and
SupabaseRpcClient calls the search_food_items database function directly.
Both reuse one aiohttp session per client and raise on any non-2xx status.
"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp

from foodshare_search.models import SearchMode
from .schemas import FallbackSearchResponse, PrimarySearchResponse, RpcParams


logger = logging.getLogger(__name__)


class ChannelHTTPError(Exception):
    """Non-2xx response from a search backend."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body[:200]}")


class _JsonHttpClient:
    """Shared session handling for the JSON search transports."""

    def __init__(self, base_url: str, headers: Optional[Dict[str, str]] = None, timeout_seconds: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Explicitly close the session when done"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _ensure_session(self):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self.headers, timeout=self.timeout)

    async def _post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        await self._ensure_session()

        url = f"{self.base_url}{path}"
        async with self._session.post(url, json=payload) as response:
            if response.status < 200 or response.status >= 300:
                raise ChannelHTTPError(response.status, await response.text())
            return await response.json()


class SearchAPIClient(_JsonHttpClient):
    """Client for the ranked search service (primary channel)."""

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout_seconds: float = 15.0):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        super().__init__(base_url, headers=headers, timeout_seconds=timeout_seconds)

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
    ) -> PrimarySearchResponse:
        payload: Dict[str, Any] = {
            "q": query,
            "mode": mode.value,
            "lat": lat,
            "lng": lng,
            "radiusKm": radius_km,
            "limit": limit,
            "offset": offset,
        }
        if category_ids:
            payload["categoryIds"] = category_ids

        data = await self._post_json("/search", payload)
        logger.debug(f"Search API returned {len(data.get('items') or [])} items")
        return PrimarySearchResponse.model_validate(data)


class SupabaseRpcClient(_JsonHttpClient):
    """Client for the search_food_items RPC (fallback channel)."""

    RPC_PATH = "/rest/v1/rpc/search_food_items"

    def __init__(self, supabase_url: str, anon_key: str, timeout_seconds: float = 15.0):
        headers = {"apikey": anon_key, "Authorization": f"Bearer {anon_key}"}
        super().__init__(supabase_url, headers=headers, timeout_seconds=timeout_seconds)

    async def search_nearby(self, params: RpcParams) -> FallbackSearchResponse:
        data = await self._post_json(self.RPC_PATH, params.model_dump())
        logger.debug(f"RPC search returned {len(data.get('items') or [])} items")
        return FallbackSearchResponse.model_validate(data)
