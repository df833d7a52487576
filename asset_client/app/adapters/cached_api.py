"""
Cache-aware request helpers shared by every resource façade.
"""

import re
from typing import Any, Dict, Mapping, Optional, Union

from shared.logging import get_logger
from ..caching.cache_manager import CacheManager
from .transport import Transport


_MISSING = object()


class CachedAPI:
    """Reads go through the response cache; writes invalidate it."""

    def __init__(self, transport: Transport, cache: CacheManager):
        self.transport = transport
        self.cache = cache
        self.logger = get_logger("asset_client.cached_api")

    async def get(self, url: str, params: Optional[Mapping[str, Any]] = None, ttl: Optional[float] = None) -> Any:
        """Return cached data for the read, fetching and caching it on a miss."""
        cached = self.cache.get("get", url, params, _MISSING)
        if cached is not _MISSING:
            return cached

        response = await self.transport.get(url, params)
        self.cache.set("get", url, params, response.data, ttl)
        return response.data

    async def post(self, url: str, data: Any = None, *, scope: Optional[str] = None) -> Any:
        response = await self.transport.post(url, data)
        self.invalidate(scope or url)
        return response.data

    async def put(self, url: str, data: Any = None, *, scope: Optional[str] = None) -> Any:
        response = await self.transport.put(url, data)
        self.invalidate(scope or url)
        return response.data

    async def delete(self, url: str, data: Any = None, *, scope: Optional[str] = None) -> Any:
        response = await self.transport.delete(url, data)
        self.invalidate(scope or url)
        return response.data

    def invalidate(self, url: str) -> int:
        return self.cache.invalidate(url)

    def invalidate_pattern(self, pattern: Union[str, "re.Pattern[str]"]) -> int:
        return self.cache.invalidate_pattern(pattern)

    def clear_cache(self) -> None:
        self.cache.clear()

    def set_cache_ttl(self, url: str, ttl: float) -> None:
        self.cache.set_ttl(url, ttl)

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.get_stats()
