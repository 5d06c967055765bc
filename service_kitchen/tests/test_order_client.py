"""
Unit tests for the Order Service client.
"""

import json
import pytest
import httpx

from service_kitchen.app.adapters.order_client import OrderServiceClient
from service_kitchen.app.errors import UpstreamProtocolError, UpstreamRejected, UpstreamUnavailable
from service_kitchen.app.models import ActorContext
from shared.test_helpers import OrderDataFactory

BASE_URL = "http://order-service.test/api/orders"


def make_client(handler) -> OrderServiceClient:
    """Build a client whose transport is served by ``handler``."""
    transport = httpx.MockTransport(handler)
    return OrderServiceClient(BASE_URL, client=httpx.AsyncClient(transport=transport))


class TestFetchActive:
    """Test cases for OrderServiceClient.fetch_active."""

    @pytest.mark.asyncio
    async def test_fetch_active_success(self):
        """Test fetching the active order board."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=OrderDataFactory.create_active_orders())

        client = make_client(handler)
        orders = await client.fetch_active()

        assert [o.id for o in orders] == [101, 102]
        assert requests[0].method == "GET"
        assert str(requests[0].url) == f"{BASE_URL}/active"

    @pytest.mark.asyncio
    async def test_fetch_active_tolerates_incomplete_lines(self):
        """Test that one line without a name or quantity does not drop the board."""
        incomplete = OrderDataFactory.create_order(102, items=[{"id": 3, "itemId": 12, "itemName": None}])
        payload = [OrderDataFactory.create_order(101), incomplete]
        client = make_client(lambda request: httpx.Response(200, json=payload))

        orders = await client.fetch_active()

        assert [o.id for o in orders] == [101, 102]
        assert orders[1].items[0].item_name is None
        assert orders[1].items[0].quantity is None

    @pytest.mark.asyncio
    async def test_fetch_active_empty_list(self):
        client = make_client(lambda request: httpx.Response(200, json=[]))

        assert await client.fetch_active() == ()

    @pytest.mark.asyncio
    async def test_fetch_active_null_body(self):
        """Test that a null body is an empty set."""
        client = make_client(lambda request: httpx.Response(200, content=b"null"))

        assert await client.fetch_active() == ()

    @pytest.mark.asyncio
    async def test_fetch_active_connection_error(self):
        """Test that connection failures map to UpstreamUnavailable."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.fetch_active()

        assert exc_info.value.code == "UPSTREAM_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_fetch_active_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)

        with pytest.raises(UpstreamUnavailable):
            await client.fetch_active()

    @pytest.mark.asyncio
    async def test_fetch_active_server_error(self):
        client = make_client(lambda request: httpx.Response(503, text="down"))

        with pytest.raises(UpstreamUnavailable):
            await client.fetch_active()

    @pytest.mark.asyncio
    async def test_fetch_active_client_error(self):
        client = make_client(lambda request: httpx.Response(404, text="no route"))

        with pytest.raises(UpstreamProtocolError):
            await client.fetch_active()

    @pytest.mark.asyncio
    async def test_fetch_active_malformed_json(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

        with pytest.raises(UpstreamProtocolError) as exc_info:
            await client.fetch_active()

        assert exc_info.value.code == "UPSTREAM_PROTOCOL_ERROR"

    @pytest.mark.asyncio
    async def test_fetch_active_wrong_shape(self):
        client = make_client(lambda request: httpx.Response(200, json={"orders": []}))

        with pytest.raises(UpstreamProtocolError):
            await client.fetch_active()


class TestPatchStatus:
    """Test cases for OrderServiceClient.patch_status."""

    @pytest.mark.asyncio
    async def test_patch_status_success(self):
        """Test patching status with actor headers."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=OrderDataFactory.create_order(42, "READY"))

        client = make_client(handler)
        order = await client.patch_status(42, "READY", ActorContext(user_id="u1", table_id="5"))

        assert order.id == 42
        assert order.status == "READY"

        request = requests[0]
        assert request.method == "PATCH"
        assert str(request.url) == f"{BASE_URL}/42/status"
        assert json.loads(request.content) == {"status": "READY"}
        assert request.headers["X-User-ID"] == "u1"
        assert request.headers["X-Table-ID"] == "5"

    @pytest.mark.asyncio
    async def test_patch_status_without_actor(self):
        """Test that absent actor context sends no actor headers."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=OrderDataFactory.create_order(42, "PREPARING"))

        client = make_client(handler)
        await client.patch_status(42, "PREPARING")

        assert "X-User-ID" not in requests[0].headers
        assert "X-Table-ID" not in requests[0].headers

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 404, 409])
    async def test_patch_status_rejected(self, status_code):
        """Test that 4xx responses map to UpstreamRejected."""
        client = make_client(lambda request: httpx.Response(status_code, text="nope"))

        with pytest.raises(UpstreamRejected) as exc_info:
            await client.patch_status(42, "READY")

        assert exc_info.value.code == "UPSTREAM_REJECTED"
        assert exc_info.value.upstream_status == status_code
        assert exc_info.value.status_code == status_code

    @pytest.mark.asyncio
    async def test_patch_status_null_body(self):
        """Test that a successful call without a body is a protocol error."""
        client = make_client(lambda request: httpx.Response(200))

        with pytest.raises(UpstreamProtocolError):
            await client.patch_status(42, "READY")

    @pytest.mark.asyncio
    async def test_patch_status_server_error(self):
        client = make_client(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(UpstreamUnavailable):
            await client.patch_status(42, "READY")

    @pytest.mark.asyncio
    async def test_patch_status_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(UpstreamUnavailable):
            await client.patch_status(42, "READY")
