"""
Payment gateway client.

Fetches the authoritative subscription status from the Razorpay REST API and
maps it onto the local lifecycle. Failures surface as ``GatewaySyncError``;
there is no automatic retry.
"""

from datetime import UTC, datetime
from typing import Any, Protocol

import httpx
import structlog
from pydantic import BaseModel

from resumeforge.platform.billing.enums import SubscriptionStatus
from resumeforge.platform.billing.exceptions import GatewaySyncError
from resumeforge.platform.settings import settings

logger = structlog.get_logger(__name__)

# Razorpay subscription states; "created" has no local counterpart
GATEWAY_STATUS_MAP: dict[str, SubscriptionStatus] = {
    "active": SubscriptionStatus.ACTIVE,
    "authenticated": SubscriptionStatus.ACTIVE,
    "pending": SubscriptionStatus.GRACE_PERIOD,
    "halted": SubscriptionStatus.GRACE_PERIOD,
    "cancelled": SubscriptionStatus.CANCELLED,
    "completed": SubscriptionStatus.EXPIRED,
    "expired": SubscriptionStatus.EXPIRED,
}


def map_gateway_status(status: str | None) -> SubscriptionStatus | None:
    """Local status for a gateway status, or None when there is no mapping."""
    if not status:
        return None
    return GATEWAY_STATUS_MAP.get(status.strip().lower())


class GatewaySubscription(BaseModel):
    """Subset of the gateway's subscription entity used for reconciliation."""

    gateway_subscription_id: str
    status: str
    current_end: datetime | None = None


class PaymentGatewayClient(Protocol):
    """Anything that can report a gateway subscription's status."""

    async def fetch_subscription(self, gateway_subscription_id: str) -> GatewaySubscription: ...


class RazorpayGatewayClient:
    """Razorpay subscriptions API client."""

    def __init__(
        self,
        base_url: str | None = None,
        key_id: str | None = None,
        key_secret: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the gateway client.

        Args:
            base_url: API root, defaults to settings
            key_id: API key id for basic auth
            key_secret: API key secret for basic auth
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = (base_url or settings.gateway.base_url).rstrip("/")
        self.key_id = key_id if key_id is not None else settings.gateway.key_id
        self.key_secret = key_secret if key_secret is not None else settings.gateway.key_secret
        self.timeout = timeout or settings.gateway.timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                auth=httpx.BasicAuth(self.key_id, self.key_secret),
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, gateway_subscription_id: str) -> dict[str, Any]:
        if not self.is_configured:
            raise GatewaySyncError(
                "Payment gateway credentials are not configured",
                gateway_subscription_id=gateway_subscription_id,
            )

        client = await self._get_client()
        try:
            response = await client.get(path)
        except httpx.TimeoutException as e:
            logger.error("Gateway request timeout", path=path, error=str(e))
            raise GatewaySyncError(
                f"Gateway request timed out: {path}",
                gateway_subscription_id=gateway_subscription_id,
            ) from e
        except httpx.RequestError as e:
            logger.error("Gateway request error", path=path, error=str(e))
            raise GatewaySyncError(
                f"Gateway request failed: {e}", gateway_subscription_id=gateway_subscription_id
            ) from e

        if response.status_code >= 400:
            raise GatewaySyncError(
                f"Gateway returned {response.status_code}: {_error_detail(response)}",
                gateway_subscription_id=gateway_subscription_id,
                gateway_status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise GatewaySyncError(
                "Gateway returned a malformed response",
                gateway_subscription_id=gateway_subscription_id,
                gateway_status_code=response.status_code,
            ) from e
        if not isinstance(payload, dict):
            raise GatewaySyncError(
                "Gateway returned a malformed response",
                gateway_subscription_id=gateway_subscription_id,
                gateway_status_code=response.status_code,
            )
        return payload

    async def fetch_subscription(self, gateway_subscription_id: str) -> GatewaySubscription:
        """
        Fetch a subscription from the gateway.

        Raises:
            GatewaySyncError: On transport failure, error status or malformed body
        """
        payload = await self._get(
            f"/subscriptions/{gateway_subscription_id}", gateway_subscription_id
        )

        status = payload.get("status")
        if not isinstance(status, str):
            raise GatewaySyncError(
                "Gateway response has no subscription status",
                gateway_subscription_id=gateway_subscription_id,
            )

        current_end: datetime | None = None
        if payload.get("current_end"):
            try:
                current_end = datetime.fromtimestamp(payload["current_end"], UTC)
            except (TypeError, ValueError, OverflowError, OSError) as e:
                raise GatewaySyncError(
                    f"Gateway response has an invalid current_end: {payload['current_end']!r}",
                    gateway_subscription_id=gateway_subscription_id,
                ) from e

        return GatewaySubscription(
            gateway_subscription_id=gateway_subscription_id,
            status=status,
            current_end=current_end,
        )


def _error_detail(response: httpx.Response) -> str:
    """Razorpay error description, or the raw body when it has none."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("description"), str):
            return error["description"]
        if isinstance(error, str):
            return error
    return response.text
