"""Tests for HttpTransport against httpx.MockTransport."""

import json
import sys
import os

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from nozule_admin.api.http import HttpTransport
from nozule_admin.errors import ApiError, ConflictError, NetworkError

BASE = "https://hotel.example/wp-json/nozule/v1"


def make(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTransport(base_url=BASE, nonce="abc123", client=client)


class TestRequests:
    @pytest.mark.asyncio
    async def test_get_sends_params_and_nonce(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            seen["nonce"] = request.headers.get("X-WP-Nonce")
            return httpx.Response(200, json={"data": {"items": []}})

        transport = make(handler)
        body = await transport.get("/admin/bookings", {"status": "pending", "search": None, "page": 2})
        await transport.close()

        assert body == {"data": {"items": []}}
        assert seen["nonce"] == "abc123"
        assert seen["url"].path == "/wp-json/nozule/v1/admin/bookings"
        assert seen["url"].params["status"] == "pending"
        assert seen["url"].params["page"] == "2"
        assert "search" not in seen["url"].params

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        transport = make(handler)
        await transport.post("/admin/bookings/5/cancel", {"reason": "No show"})
        assert seen == {"method": "POST", "body": {"reason": "No show"}}

    @pytest.mark.asyncio
    async def test_empty_success_body(self):
        transport = make(lambda request: httpx.Response(204))
        assert await transport.delete("/admin/channels/3") == {}

    @pytest.mark.asyncio
    async def test_invalid_json_on_success(self):
        transport = make(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(ApiError) as exc:
            await transport.get("/admin/bookings")
        assert exc.value.code == "INVALID_JSON"

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        transport = make(lambda request: httpx.Response(200, json={}))
        await transport.close()
        await transport.close()


class TestErrors:
    @pytest.mark.asyncio
    async def test_plugin_error_shape(self):
        def handler(request):
            return httpx.Response(
                400, json={"error": {"code": "INVALID_STATUS", "message": "Cannot confirm"}}
            )

        transport = make(handler)
        with pytest.raises(ApiError) as exc:
            await transport.post("/admin/bookings/1/confirm")
        assert exc.value.status == 400
        assert exc.value.code == "INVALID_STATUS"
        assert exc.value.message == "Cannot confirm"
        assert not isinstance(exc.value, ConflictError)

    @pytest.mark.asyncio
    async def test_wordpress_error_shape_conflict(self):
        def handler(request):
            return httpx.Response(
                400, json={"code": "existing_user_login", "message": "Username taken"}
            )

        transport = make(handler)
        with pytest.raises(ConflictError) as exc:
            await transport.post("/admin/employees", {"username": "amy"})
        assert exc.value.message == "Username taken"

    @pytest.mark.asyncio
    async def test_409_is_conflict(self):
        transport = make(lambda request: httpx.Response(409, json={}))
        with pytest.raises(ConflictError):
            await transport.post("/admin/channels", {})

    @pytest.mark.asyncio
    async def test_error_without_body(self):
        transport = make(lambda request: httpx.Response(500))
        with pytest.raises(ApiError) as exc:
            await transport.get("/admin/bookings")
        assert exc.value.message == ApiError.default_message
        assert exc.value.code == "UNKNOWN_ERROR"

    @pytest.mark.asyncio
    async def test_connect_error_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        transport = make(handler)
        with pytest.raises(NetworkError):
            await transport.get("/admin/bookings")

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        transport = make(handler)
        with pytest.raises(NetworkError) as exc:
            await transport.get("/admin/bookings")
        assert "too long" in exc.value.message
