"""
Unit tests for the cached API and the resource façades.
"""

import asyncio

import httpx
import pytest

from asset_client.app.adapters.transport import Transport
from asset_client.app.main import AssetClient
from shared.config import get_config
from shared.errors import NetworkError
from shared.test_helpers import FakeClock, RecordingBackend, test_data_factory


BASE_URL = "http://testserver/api"


def api(path: str) -> str:
    return f"/api{path}"


class TestCachedResources:
    """Reads are cached per resource, writes invalidate the family."""

    @pytest.fixture
    def clock(self):
        """Simulated clock."""
        return FakeClock()

    @pytest.fixture
    def backend(self):
        """Backend seeded with the test fixtures."""
        devices = test_data_factory.create_test_devices()
        racks = test_data_factory.create_test_racks()
        consumables = test_data_factory.create_test_consumables()
        tickets = test_data_factory.create_test_tickets()
        return RecordingBackend({
            ("GET", api("/devices")): devices,
            ("POST", api("/devices")): {"deviceId": "DEV-004"},
            ("GET", api("/devices/DEV-001")): devices[0],
            ("PUT", api("/devices/DEV-001")): devices[0],
            ("DELETE", api("/devices/DEV-003")): {"deleted": True},
            ("POST", api("/devices/batch-offline")): {"updated": 2},
            ("DELETE", api("/devices/batch-delete")): {"deleted": 2},
            ("GET", api("/devices/export")): lambda request: httpx.Response(200, content=b"PK\x03\x04xlsx"),
            ("POST", api("/devices/import")): {"imported": 3},
            ("GET", api("/racks")): racks,
            ("GET", api("/deviceFields")): [{"fieldName": "serialNumber", "visible": True}],
            ("POST", api("/deviceFields/config")): {"saved": True},
            ("GET", api("/consumables")): consumables,
            ("GET", api("/consumables/statistics/summary")): {"total": 2, "lowStock": 1},
            ("GET", api("/consumables/low-stock")): [consumables[1]],
            ("POST", api("/consumables/quick-inout")): {"ok": True},
            ("GET", api("/consumables/logs")): [],
            ("POST", api("/consumables/logs")): {"logId": 1},
            ("GET", api("/consumable-categories/list")): [{"id": 1, "name": "cable"}],
            ("GET", api("/tickets")): tickets,
            ("GET", api("/tickets/TK-1001")): tickets[0],
            ("PUT", api("/tickets/TK-1001/close")): {"status": "closed"},
            ("GET", api("/tickets/TK-1001/operations")): [{"action": "create"}],
            ("GET", api("/ticket-categories/tree")): [{"id": 1, "children": []}],
        })

    @pytest.fixture
    def client(self, backend, clock):
        """Client wired to the recording backend."""
        transport = Transport(BASE_URL, client=backend.client())
        return AssetClient(get_config(enable_metrics=False), transport=transport, clock=clock)

    @pytest.mark.asyncio
    async def test_list_is_cached(self, client, backend):
        """A repeated list is served from the cache."""
        first = await client.devices.list()
        second = await client.devices.list()

        assert first == second
        assert len(backend.calls("GET", api("/devices"))) == 1

    @pytest.mark.asyncio
    async def test_create_invalidates_list(self, client, backend):
        """A list read after a create is fetched again."""
        await client.devices.list()
        await client.devices.create({"name": "edge-router-01"})
        await client.devices.list()

        assert len(backend.calls("GET", api("/devices"))) == 2

    @pytest.mark.asyncio
    async def test_update_invalidates_list_and_item(self, client, backend):
        """Item writes drop both list and item reads."""
        await client.devices.list()
        await client.devices.get("DEV-001")

        await client.devices.update("DEV-001", {"status": "maintenance"})

        assert client.cached.get_cache_stats()["entry_count"] == 0
        await client.devices.get("DEV-001")
        assert len(backend.calls("GET", api("/devices/DEV-001"))) == 2

    @pytest.mark.asyncio
    async def test_delete_invalidates(self, client, backend):
        """Deletes invalidate the collection."""
        await client.devices.list()
        await client.devices.delete("DEV-003")
        await client.devices.list()

        assert len(backend.calls("GET", api("/devices"))) == 2

    @pytest.mark.asyncio
    async def test_writes_leave_other_resources_cached(self, client, backend):
        """Invalidation is limited to the written resource family."""
        await client.racks.list()
        await client.devices.create({"name": "edge-router-01"})
        await client.racks.list()

        assert len(backend.calls("GET", api("/racks"))) == 1

    @pytest.mark.asyncio
    async def test_concurrent_identical_reads_both_dispatch(self, client, backend):
        """Two identical reads issued before either resolves both reach the transport."""
        backend.delay = 0.01

        first, second = await asyncio.gather(client.devices.list(), client.devices.list())

        assert first == second
        assert len(backend.calls("GET", api("/devices"))) == 2

    @pytest.mark.asyncio
    async def test_resource_ttl(self, client, backend, clock):
        """Device reads live for one minute."""
        await client.devices.list()
        clock.advance(59)
        await client.devices.list()
        assert len(backend.calls("GET", api("/devices"))) == 1

        clock.advance(2)
        await client.devices.list()
        assert len(backend.calls("GET", api("/devices"))) == 2

    @pytest.mark.asyncio
    async def test_ttl_override_beats_resource_ttl(self, client, backend, clock):
        """A registered override replaces the resource default."""
        client.cached.set_cache_ttl("/racks", 5)

        await client.racks.list()
        clock.advance(6)
        await client.racks.list()

        assert len(backend.calls("GET", api("/racks"))) == 2

    @pytest.mark.asyncio
    async def test_failed_read_is_not_cached(self, client, backend):
        """Errors propagate and the next read goes back to the server."""
        with pytest.raises(NetworkError) as exc_info:
            await client.rooms.list()
        assert exc_info.value.status_code == 404

        backend.routes[("GET", api("/rooms"))] = [{"roomId": "ROOM-1"}]
        assert await client.rooms.list() == [{"roomId": "ROOM-1"}]
        assert len(backend.calls("GET", api("/rooms"))) == 2

    @pytest.mark.asyncio
    async def test_export_bypasses_cache(self, client, backend):
        """Exports always download fresh bytes."""
        first = await client.devices.export({"status": "running"})
        await client.devices.export({"status": "running"})

        assert first == b"PK\x03\x04xlsx"
        assert len(backend.calls("GET", api("/devices/export"))) == 2
        assert client.cached.get_cache_stats()["entry_count"] == 0

    @pytest.mark.asyncio
    async def test_import_uploads_and_invalidates(self, client, backend):
        """Bulk import is a multipart upload followed by invalidation."""
        await client.devices.list()

        result = await client.devices.import_(b"xlsx-bytes")

        assert result == {"imported": 3}
        request = backend.calls("POST", api("/devices/import"))[0]
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b"devices.xlsx" in request.content
        assert client.cached.get_cache_stats()["entry_count"] == 0

    @pytest.mark.asyncio
    async def test_batch_operations_invalidate(self, client, backend):
        """Batch writes invalidate device reads."""
        await client.devices.list()
        await client.devices.batch_offline({"deviceIds": ["DEV-001", "DEV-002"]})
        await client.devices.list()
        await client.devices.batch_delete({"deviceIds": ["DEV-001", "DEV-002"]})
        await client.devices.list()

        assert len(backend.calls("GET", api("/devices"))) == 3
        assert b"DEV-002" in backend.calls("DELETE", api("/devices/batch-delete"))[0].content

    @pytest.mark.asyncio
    async def test_device_fields_ignore_params(self, client, backend):
        """Field definitions are one global list."""
        await client.device_fields.list({"page": 1})
        await client.device_fields.list()

        assert len(backend.calls("GET", api("/deviceFields"))) == 1

        await client.device_fields.update_config([{"fieldName": "serialNumber", "visible": False}])
        await client.device_fields.list()
        assert len(backend.calls("GET", api("/deviceFields"))) == 2

    @pytest.mark.asyncio
    async def test_consumable_reads(self, client):
        """Consumable helpers hit their sub-resources."""
        assert await client.consumables.get_statistics() == {"total": 2, "lowStock": 1}
        low_stock = await client.consumables.get_low_stock()
        assert low_stock[0]["consumableId"] == "CON-002"
        assert await client.consumable_categories.get_list() == [{"id": 1, "name": "cable"}]

    @pytest.mark.asyncio
    async def test_log_write_invalidates_consumables(self, client, backend):
        """A stock movement drops consumable reads but not categories."""
        await client.consumables.list()
        await client.consumables.get_statistics()
        await client.consumable_logs.list()
        await client.consumable_categories.get_list()

        await client.consumable_logs.create({"consumableId": "CON-001", "type": "out", "quantity": 5})

        keys = client.cached.get_cache_stats()["keys"]
        assert keys == ["get:/consumable-categories/list:"]

    @pytest.mark.asyncio
    async def test_quick_in_out_invalidates(self, client, backend):
        """Quick stock moves invalidate consumables."""
        await client.consumables.list()
        await client.consumables.quick_in_out({"consumableId": "CON-001", "quantity": 1})
        await client.consumables.list()

        assert len(backend.calls("GET", api("/consumables"))) == 2

    @pytest.mark.asyncio
    async def test_ticket_transition_invalidates(self, client, backend):
        """Workflow transitions drop ticket reads only."""
        await client.tickets.get("TK-1001")
        await client.tickets.get_operations("TK-1001")
        await client.ticket_categories.get_tree()

        result = await client.tickets.close("TK-1001", {"solution": "PSU replaced"})

        assert result == {"status": "closed"}
        assert client.cached.get_cache_stats()["keys"] == ["get:/ticket-categories/tree:"]
        await client.tickets.get("TK-1001")
        assert len(backend.calls("GET", api("/tickets/TK-1001"))) == 2

    @pytest.mark.asyncio
    async def test_manual_pattern_invalidation(self, client):
        """Callers can drop entries by regular expression."""
        await client.devices.get("DEV-001")
        await client.devices.list()

        removed = client.cached.invalidate_pattern(r"^get:/devices/")

        assert removed == 1
        assert client.cached.get_cache_stats()["keys"] == ["get:/devices:"]

    @pytest.mark.asyncio
    async def test_clear_cache(self, client, backend):
        """Clearing forces every read back to the server."""
        await client.racks.list()
        client.cached.clear_cache()
        await client.racks.list()

        assert len(backend.calls("GET", api("/racks"))) == 2
