"""
Tests for the payment gateway HTTP client.
"""

from datetime import UTC, datetime

import httpx
import pytest

from resumeforge.platform.billing.enums import SubscriptionStatus
from resumeforge.platform.billing.exceptions import GatewaySyncError
from resumeforge.platform.billing.subscriptions.gateway import (
    RazorpayGatewayClient,
    map_gateway_status,
)

pytestmark = pytest.mark.unit


def _client(handler) -> RazorpayGatewayClient:
    return RazorpayGatewayClient(
        base_url="https://gateway.test/v1",
        key_id="rzp_test_key",
        key_secret="secret",
        transport=httpx.MockTransport(handler),
    )


class TestStatusMapping:
    """Test gateway vocabulary to local status mapping."""

    @pytest.mark.parametrize(
        "gateway_status,expected",
        [
            ("active", SubscriptionStatus.ACTIVE),
            ("authenticated", SubscriptionStatus.ACTIVE),
            ("pending", SubscriptionStatus.GRACE_PERIOD),
            ("halted", SubscriptionStatus.GRACE_PERIOD),
            ("cancelled", SubscriptionStatus.CANCELLED),
            ("completed", SubscriptionStatus.EXPIRED),
            ("expired", SubscriptionStatus.EXPIRED),
            (" Active ", SubscriptionStatus.ACTIVE),
        ],
    )
    def test_known_statuses(self, gateway_status, expected):
        assert map_gateway_status(gateway_status) is expected

    @pytest.mark.parametrize("gateway_status", ["created", "paused", "", None])
    def test_unmapped_statuses(self, gateway_status):
        assert map_gateway_status(gateway_status) is None


class TestFetchSubscription:
    """Test fetching a subscription from the gateway API."""

    @pytest.mark.asyncio
    async def test_fetch_success(self):
        """Test a successful fetch with basic auth and end timestamp."""
        seen: dict[str, httpx.Request] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(
                200, json={"id": "sub_123", "status": "active", "current_end": 1735689600}
            )

        client = _client(handler)
        try:
            remote = await client.fetch_subscription("sub_123")
        finally:
            await client.close()

        assert remote.status == "active"
        assert remote.current_end == datetime(2025, 1, 1, tzinfo=UTC)
        assert seen["request"].url.path == "/v1/subscriptions/sub_123"
        assert seen["request"].headers["authorization"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_error_status_raises_with_description(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400, json={"error": {"description": "The id provided does not exist"}}
            )

        client = _client(handler)
        with pytest.raises(GatewaySyncError) as exc_info:
            await client.fetch_subscription("sub_missing")
        await client.close()

        assert "does not exist" in exc_info.value.message
        assert exc_info.value.context["gateway_status_code"] == 400
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_error_status_with_string_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "BAD_REQUEST"})

        client = _client(handler)
        with pytest.raises(GatewaySyncError) as exc_info:
            await client.fetch_subscription("sub_123")
        await client.close()

        assert exc_info.value.message == "Gateway returned 400: BAD_REQUEST"

    @pytest.mark.asyncio
    async def test_error_status_with_list_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json=["unexpected"])

        client = _client(handler)
        with pytest.raises(GatewaySyncError, match="Gateway returned 500"):
            await client.fetch_subscription("sub_123")
        await client.close()

    @pytest.mark.asyncio
    async def test_non_object_body_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"status": "active"}])

        client = _client(handler)
        with pytest.raises(GatewaySyncError, match="malformed response"):
            await client.fetch_subscription("sub_123")
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("current_end", ["soon", 10**20])
    async def test_invalid_current_end_raises(self, current_end):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "active", "current_end": current_end})

        client = _client(handler)
        with pytest.raises(GatewaySyncError, match="invalid current_end"):
            await client.fetch_subscription("sub_123")
        await client.close()

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client(handler)
        with pytest.raises(GatewaySyncError, match="timed out"):
            await client.fetch_subscription("sub_123")
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "sub_123"})

        client = _client(handler)
        with pytest.raises(GatewaySyncError, match="no subscription status"):
            await client.fetch_subscription("sub_123")
        await client.close()

    @pytest.mark.asyncio
    async def test_unconfigured_client_never_calls_out(self):
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"status": "active"})

        client = RazorpayGatewayClient(
            key_id="", key_secret="", transport=httpx.MockTransport(handler)
        )

        assert client.is_configured is False
        with pytest.raises(GatewaySyncError, match="not configured"):
            await client.fetch_subscription("sub_123")
        assert calls == []
