"""
Typed resource façades over the cached API.
"""

from typing import Any, Mapping, Optional, Tuple, Union

from ..caching.keys import derive_key
from .cached_api import CachedAPI
from .transport import Transport


Upload = Union[bytes, Any, Tuple[str, Any, str]]

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ResourceAPI:
    """CRUD helpers for one REST collection.

    Reads are cached with the resource TTL unless a TTL override has been
    registered for the path. Every write invalidates ``scope`` (the
    collection path by default), dropping list and item reads together.
    """

    base_path: str = ""
    default_ttl: Optional[float] = None
    invalidation_scope: Optional[str] = None

    def __init__(self, cached: CachedAPI, ttl: Optional[float] = None):
        self.cached = cached
        self.ttl = self.default_ttl if ttl is None else ttl

    @property
    def transport(self) -> Transport:
        return self.cached.transport

    @property
    def scope(self) -> str:
        return self.invalidation_scope or self.base_path

    def _path(self, *parts: Any) -> str:
        return "/".join([self.base_path, *(str(part) for part in parts)])

    async def _read(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        ttl = None if self.cached.cache.ttl_for(derive_key("get", path, params)) is not None else self.ttl
        return await self.cached.get(path, params, ttl)

    async def list(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self._read(self.base_path, params)

    async def get(self, item_id: Any) -> Any:
        return await self._read(self._path(item_id))

    async def create(self, data: Any) -> Any:
        return await self.cached.post(self.base_path, data, scope=self.scope)

    async def update(self, item_id: Any, data: Any) -> Any:
        return await self.cached.put(self._path(item_id), data, scope=self.scope)

    async def delete(self, item_id: Any) -> Any:
        return await self.cached.delete(self._path(item_id), scope=self.scope)

    async def _export(self, path: str, params: Optional[Mapping[str, Any]] = None) -> bytes:
        """Download a binary export, never cached."""
        response = await self.transport.get(path, params, response_type="bytes", cache=False)
        return response.data

    async def _upload(self, path: str, file: Upload, filename: str = "import.xlsx") -> Any:
        """Multipart upload of a bulk import, then drop the family's reads."""
        if isinstance(file, tuple):
            part = file
        else:
            part = (filename, file, XLSX_CONTENT_TYPE)
        response = await self.transport.post(path, files={"file": part}, cache=False)
        self.cached.invalidate(self.scope)
        return response.data


class DeviceAPI(ResourceAPI):
    base_path = "/devices"
    default_ttl = 60.0

    async def batch_offline(self, data: Any) -> Any:
        return await self.cached.post(self._path("batch-offline"), data, scope=self.scope)

    async def batch_delete(self, data: Any) -> Any:
        return await self.cached.delete(self._path("batch-delete"), data, scope=self.scope)

    async def export(self, params: Optional[Mapping[str, Any]] = None) -> bytes:
        return await self._export(self._path("export"), params)

    async def import_(self, file: Upload, filename: str = "devices.xlsx") -> Any:
        return await self._upload(self._path("import"), file, filename)


class RackAPI(ResourceAPI):
    base_path = "/racks"
    default_ttl = 300.0

    async def import_(self, file: Upload, filename: str = "racks.xlsx") -> Any:
        return await self._upload(self._path("import"), file, filename)


class RoomAPI(ResourceAPI):
    base_path = "/rooms"
    default_ttl = 600.0


class DeviceFieldAPI(ResourceAPI):
    base_path = "/deviceFields"
    default_ttl = 1800.0

    async def list(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self._read(self.base_path)

    async def update_config(self, data: Any) -> Any:
        return await self.cached.post(self._path("config"), data, scope=self.scope)


class ConsumableAPI(ResourceAPI):
    base_path = "/consumables"
    default_ttl = 120.0

    async def import_(self, data: Any) -> Any:
        return await self.cached.post(self._path("import"), data, scope=self.scope)

    async def quick_in_out(self, data: Any) -> Any:
        return await self.cached.post(self._path("quick-inout"), data, scope=self.scope)

    async def get_statistics(self) -> Any:
        return await self._read(self._path("statistics", "summary"))

    async def get_low_stock(self) -> Any:
        return await self._read(self._path("low-stock"))


class ConsumableCategoryAPI(ResourceAPI):
    base_path = "/consumable-categories"
    default_ttl = 600.0

    async def get_list(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self._read(self._path("list"), params)


class ConsumableLogAPI(ResourceAPI):
    base_path = "/consumables/logs"
    default_ttl = 30.0
    # a log entry moves stock, so consumable reads go stale with it
    invalidation_scope = "/consumables"

    async def export(self, params: Optional[Mapping[str, Any]] = None) -> bytes:
        return await self._export(self._path("export"), params)

    async def import_(self, data: Any) -> Any:
        return await self.cached.post(self._path("import"), data, scope=self.scope)


class TicketCategoryAPI(ResourceAPI):
    base_path = "/ticket-categories"
    default_ttl = 600.0

    async def get_tree(self) -> Any:
        return await self._read(self._path("tree"))

    async def init(self) -> Any:
        return await self.cached.post(self._path("init"), scope=self.scope)


class TicketAPI(ResourceAPI):
    base_path = "/tickets"
    default_ttl = 30.0

    async def _transition(self, ticket_id: Any, action: str, data: Any) -> Any:
        return await self.cached.put(self._path(ticket_id, action), data, scope=self.scope)

    async def assign(self, ticket_id: Any, data: Any) -> Any:
        return await self._transition(ticket_id, "assign", data)

    async def transfer(self, ticket_id: Any, data: Any) -> Any:
        return await self._transition(ticket_id, "transfer", data)

    async def process(self, ticket_id: Any, data: Any) -> Any:
        return await self._transition(ticket_id, "process", data)

    async def close(self, ticket_id: Any, data: Any) -> Any:
        return await self._transition(ticket_id, "close", data)

    async def reopen(self, ticket_id: Any, data: Any) -> Any:
        return await self._transition(ticket_id, "reopen", data)

    async def get_operations(self, ticket_id: Any) -> Any:
        return await self._read(self._path(ticket_id, "operations"))

    async def get_statistics(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self._read(self._path("statistics"), params)
