"""
Adapters package for the Asset Manager client.

Contains the HTTP transport and the resource wrappers built on it. These
adapters encapsulate:

- Base URLs and request shapes
- Error handling that maps to shared errors
- Cache population on reads and invalidation on writes

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .transport import RequestConfig, Transport, TransportResponse
from .cached_api import CachedAPI
from .resources import (
    ConsumableAPI,
    ConsumableCategoryAPI,
    ConsumableLogAPI,
    DeviceAPI,
    DeviceFieldAPI,
    RackAPI,
    ResourceAPI,
    RoomAPI,
    TicketAPI,
    TicketCategoryAPI,
)

__all__ = [
    "RequestConfig",
    "Transport",
    "TransportResponse",
    "CachedAPI",
    "ResourceAPI",
    "DeviceAPI",
    "RackAPI",
    "RoomAPI",
    "DeviceFieldAPI",
    "ConsumableAPI",
    "ConsumableCategoryAPI",
    "ConsumableLogAPI",
    "TicketCategoryAPI",
    "TicketAPI",
]
