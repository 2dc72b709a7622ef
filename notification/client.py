# ============================================================================
# NOTIFICATION HTTP CLIENT
# ============================================================================
# STATUS: Notification - httpx client for the notification backend
# PURPOSE: Create, update and cancel customer maintenance notifications
# CREATED: 29 SEP 2026
# ============================================================================
"""
Notification HTTP Client

Async httpx client for the notification backend:

    POST   {url}/notifications                     create
    PATCH  {url}/notifications/{orchestration_id}  update tenants
    DELETE {url}/notifications/{orchestration_id}  cancel

Connection failures, timeouts and 5xx answers raise TemporaryError (the
caller backs off and retries); 4xx answers raise NotificationError.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from core.config import NotificationDefaults
from core.errors import NotificationError, TemporaryError
from notification.bundle import Bundle, BundleBuilder, NotificationParams

logger = logging.getLogger(__name__)


class NotificationClient:
    """Shared async HTTP client. Closed at application shutdown."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            resp = await self._client.request(method, path, json=json_body)
        except httpx.TimeoutException as e:
            logger.warning(f"Notification backend timeout: {method} {path}: {e}")
            raise TemporaryError(f"notification backend timeout: {e}") from e
        except httpx.TransportError as e:
            logger.warning(f"Cannot reach notification backend at {self._base_url}: {e}")
            raise TemporaryError(f"notification backend unreachable: {e}") from e

        if resp.status_code >= 500:
            logger.error(f"Notification backend error {resp.status_code}: {method} {path} -> {resp.text}")
            raise TemporaryError(f"notification backend returned {resp.status_code}")
        if resp.status_code >= 400:
            logger.error(f"Notification rejected {resp.status_code}: {method} {path} -> {resp.text}")
            raise NotificationError(f"notification backend returned {resp.status_code}: {resp.text}")

    async def close(self) -> None:
        await self._client.aclose()


class HttpBundle(Bundle):

    def __init__(self, client: NotificationClient, orchestration_id: str, params: NotificationParams):
        self._client = client
        self.orchestration_id = orchestration_id
        self.params = params

    def _body(self) -> Dict[str, Any]:
        return self.params.model_dump(mode="json", by_alias=True)

    async def create_notification_event(self) -> None:
        await self._client.request("POST", "/notifications", json_body=self._body())
        logger.info(
            f"Created notification for orchestration {self.orchestration_id} "
            f"({len(self.params.tenants)} tenants)"
        )

    async def update_notification_event(self) -> None:
        await self._client.request(
            "PATCH", f"/notifications/{self.orchestration_id}", json_body=self._body()
        )

    async def cancel_notification_event(self) -> None:
        await self._client.request("DELETE", f"/notifications/{self.orchestration_id}")
        logger.info(f"Cancelled notification for orchestration {self.orchestration_id}")


class HttpBundleBuilder(BundleBuilder):

    def __init__(self, client: NotificationClient, disabled: bool = False):
        self.client = client
        self.disabled = disabled

    @classmethod
    def from_defaults(
        cls,
        defaults: NotificationDefaults,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HttpBundleBuilder":
        client = NotificationClient(defaults.url, defaults.timeout_seconds, transport=transport)
        return cls(client, disabled=defaults.disabled)

    def disabled_check(self) -> bool:
        return self.disabled

    def new_bundle(self, orchestration_id: str, params: NotificationParams) -> Bundle:
        return HttpBundle(self.client, orchestration_id, params)

    async def close(self) -> None:
        await self.client.close()


__all__ = [
    "NotificationClient",
    "HttpBundle",
    "HttpBundleBuilder",
]
