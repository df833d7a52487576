"""
Asset Manager API client: wires config, cache, transport and façades.
"""

import time
from typing import Callable, Optional

from shared.config import ClientConfig, get_config
from shared.logging import configure_logging, get_logger
from shared.metrics import MetricsCollector, get_metrics_collector
from .adapters.cached_api import CachedAPI
from .adapters.resources import (
    ConsumableAPI,
    ConsumableCategoryAPI,
    ConsumableLogAPI,
    DeviceAPI,
    DeviceFieldAPI,
    RackAPI,
    RoomAPI,
    TicketAPI,
    TicketCategoryAPI,
)
from .adapters.transport import Transport
from .caching.cache_manager import CacheManager
from .caching.request_gate import RequestGate


class AssetClient:
    """One client session: a single shared cache behind every resource.

    ``user_id`` names the signed-in user; it is bound to the log context of
    every request the session makes.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[Transport] = None,
        cache: Optional[CacheManager] = None,
        metrics: Optional[MetricsCollector] = None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        user_id: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or get_config()
        self.logger = get_logger("asset_client.client")

        if metrics is None and self.config.enable_metrics:
            metrics = get_metrics_collector(self.config.service_name)
        self.metrics = metrics

        self.cache = cache or CacheManager(self.config.cache_default_ttl, clock, metrics=self.metrics)
        self.transport = transport or Transport(
            self.config.api_base_url,
            timeout=self.config.request_timeout,
            token_provider=token_provider,
            on_unauthorized=on_unauthorized,
            metrics=self.metrics,
        )
        if user_id is not None:
            self.transport.user_id = user_id
        self.request_gate = RequestGate(
            self.cache,
            coalesce_in_flight=self.config.cache_coalesce_in_flight,
            metrics=self.metrics,
        )
        self.transport.add_middleware(self.request_gate)

        self.cached = CachedAPI(self.transport, self.cache)
        self.devices = DeviceAPI(self.cached)
        self.racks = RackAPI(self.cached)
        self.rooms = RoomAPI(self.cached)
        self.device_fields = DeviceFieldAPI(self.cached)
        self.consumables = ConsumableAPI(self.cached)
        self.consumable_categories = ConsumableCategoryAPI(self.cached)
        self.consumable_logs = ConsumableLogAPI(self.cached)
        self.ticket_categories = TicketCategoryAPI(self.cached)
        self.tickets = TicketAPI(self.cached)

        self.logger.info(
            "Asset client initialized",
            base_url=self.transport.base_url,
            default_ttl=self.cache.default_ttl,
            coalesce_in_flight=self.request_gate.coalesce_in_flight,
        )

    async def aclose(self) -> None:
        """Tear down the session: drop cached state and close the transport."""
        self.cache.clear()
        await self.transport.aclose()

    async def __aenter__(self) -> "AssetClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_client(config: Optional[ClientConfig] = None, **kwargs) -> AssetClient:
    """Configure logging and build a client from configuration."""
    config = config or get_config()
    configure_logging(config.service_name, config.log_level, json_logs=config.log_json)
    return AssetClient(config, **kwargs)
