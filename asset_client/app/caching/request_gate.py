"""
Request gate middleware: serves repeated reads from the response cache.
"""

import asyncio
from typing import Any, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger
from ..adapters.transport import CallNext, RequestConfig, TransportResponse
from .cache_manager import CacheManager
from .keys import CacheKeys, derive_key

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


_MISSING = object()


class RequestGate:
    """Transport middleware in front of every cacheable GET.

    A read whose key is marked satisfied and still live in the cache is
    answered with a synthesized 200 response and never dispatched. Anything
    else is dispatched; success populates the cache and marks the key,
    failure clears the mark and re-raises the transport error untouched.

    Only sequential repeats are deduplicated: two identical reads issued
    before either completes both reach the transport. Set
    ``coalesce_in_flight`` to make late arrivals await the outstanding
    dispatch for the same key instead.
    """

    def __init__(
        self,
        cache: CacheManager,
        *,
        coalesce_in_flight: bool = False,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.cache = cache
        self.coalesce_in_flight = coalesce_in_flight
        self.metrics = metrics
        self.logger = get_logger("asset_client.request_gate")
        self._in_flight: Dict[str, "asyncio.Future[TransportResponse]"] = {}

    async def __call__(self, config: RequestConfig, call_next: CallNext) -> TransportResponse:
        if config.method.lower() != "get" or not config.cache:
            return await call_next(config)

        key = derive_key(config.method, config.url, config.params)

        if self.cache.is_satisfied(key):
            cached = self.cache.get_by_key(key, _MISSING, source="request_gate")
            if cached is not _MISSING:
                self.logger.debug("Serving read from cache", key=key)
                if self.metrics:
                    self.metrics.increment_counter(
                        "request_gate_short_circuits_total",
                        endpoint=CacheKeys.resource_scope(config.url),
                    )
                return self._synthesize(cached, config)
            self.cache.discard_satisfied(key)

        if self.coalesce_in_flight:
            return await self._join(key, config, call_next)
        return await self._dispatch(key, config, call_next)

    async def _dispatch(self, key: str, config: RequestConfig, call_next: CallNext) -> TransportResponse:
        try:
            response = await call_next(config)
        except Exception:
            self.cache.discard_satisfied(key)
            raise

        self.cache.set(config.method, config.url, config.params, response.data)
        self.cache.mark_satisfied(key)
        return response

    async def _join(self, key: str, config: RequestConfig, call_next: CallNext) -> TransportResponse:
        # Callers wait through a shield: cancelling one caller must not cancel
        # the dispatch the others joined.
        pending = self._in_flight.get(key)
        if pending is not None:
            self.logger.debug("Joining in-flight read", key=key)
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._dispatch(key, config, call_next))
        self._in_flight[key] = task

        def _release(done: "asyncio.Future[TransportResponse]") -> None:
            if self._in_flight.get(key) is done:
                del self._in_flight[key]
            # retrieve the outcome so a failure nobody awaits is not reported as lost
            if not done.cancelled():
                done.exception()

        task.add_done_callback(_release)
        return await asyncio.shield(task)

    @staticmethod
    def _synthesize(data: Any, config: RequestConfig) -> TransportResponse:
        return TransportResponse(data=data, status=200, status_text="OK", headers={}, config=config)
