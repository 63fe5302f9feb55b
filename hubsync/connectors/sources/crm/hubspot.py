"""
HubSpot CRM Client

Thin async wrapper over the CRM v3 search, association and batch read
endpoints. Every call goes through the retry policy, which refreshes the
account's token between attempts when it is rejected or expired.
"""

from typing import Any

import httpx
import structlog

from hubsync.connectors.auth.oauth2 import HubSpotCredentials, HubSpotOAuthClient
from hubsync.connectors.errors import AuthExpiredError, TransientNetworkError, error_for_status
from hubsync.connectors.http import RetryPolicy

logger = structlog.get_logger()

HUBSPOT_BASE_URL = "https://api.hubapi.com"

SEARCH_PATH = "/crm/v3/objects/{object_type}/search"
BATCH_READ_PATH = "/crm/v3/objects/{object_type}/batch/read"
ASSOCIATIONS_BATCH_READ_PATH = "/crm/v3/associations/{from_object}/{to_object}/batch/read"


class HubSpotClient:
    """
    Client for one HubSpot account.

    Holds the account's credential context; a token refresh replaces the
    context rather than mutating anything shared with other accounts.
    """

    def __init__(
        self,
        credentials: HubSpotCredentials,
        *,
        oauth: HubSpotOAuthClient,
        http_client: httpx.AsyncClient,
        retry_policy: RetryPolicy | None = None,
        base_url: str = HUBSPOT_BASE_URL,
    ):
        self.credentials = credentials
        self._oauth = oauth
        self._http = http_client
        self._retry = retry_policy or RetryPolicy()
        self._base_url = base_url.rstrip("/")

    @property
    def hub_id(self) -> str:
        return self.credentials.hub_id

    async def refresh_credentials(self) -> HubSpotCredentials:
        """Refresh the access token and swap in the new credential context."""
        self.credentials = await self._oauth.refresh(self.credentials)
        return self.credentials

    async def _on_failure(self, error: Exception, attempt: int) -> None:
        if isinstance(error, AuthExpiredError) or self.credentials.is_expired:
            logger.info(
                "Refreshing token before retry",
                hub_id=self.hub_id,
                attempt=attempt + 1,
                reason="unauthorized" if isinstance(error, AuthExpiredError) else "expired",
            )
            await self.refresh_credentials()

    async def _send(
        self,
        method: str,
        path: str,
        operation: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Single attempt; raises a typed error for anything but 2xx."""
        headers = {"Authorization": f"Bearer {self.credentials.access_token or ''}"}
        try:
            response = await self._http.request(
                method,
                f"{self._base_url}{path}",
                json=json,
                headers=headers,
            )
        except httpx.TransportError as e:
            raise TransientNetworkError(
                f"HubSpot {operation} transport error: {e}",
                meta={"operation": operation},
            ) from e

        if response.status_code >= 400:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            raise error_for_status(response.status_code, body, operation=operation)

        if not response.content:
            return {}
        return response.json()

    async def request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a request under the retry/auth-refresh policy."""
        return await self._retry.run(
            lambda: self._send(method, path, operation, json),
            operation=operation,
            on_failure=self._on_failure,
        )

    async def search(self, object_type: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST a CRM search request for one object type."""
        return await self.request(
            "POST",
            SEARCH_PATH.format(object_type=object_type),
            operation=f"search_{object_type}",
            json=body,
        )

    async def read_associations(
        self,
        from_object: str,
        to_object: str,
        ids: list[str],
    ) -> list[dict[str, Any]]:
        """Batch read associations; returns `[{from: {id}, to: [{id}, ...]}, ...]`."""
        if not ids:
            return []
        data = await self.request(
            "POST",
            ASSOCIATIONS_BATCH_READ_PATH.format(
                from_object=from_object.upper(),
                to_object=to_object.upper(),
            ),
            operation=f"associations_{from_object.lower()}_{to_object.lower()}",
            json={"inputs": [{"id": str(id_)} for id_ in ids]},
        )
        return data.get("results") or []

    async def batch_read(
        self,
        object_type: str,
        ids: list[str],
        properties: list[str],
    ) -> list[dict[str, Any]]:
        """Batch read objects by id with the requested properties."""
        if not ids:
            return []
        data = await self.request(
            "POST",
            BATCH_READ_PATH.format(object_type=object_type),
            operation=f"batch_read_{object_type}",
            json={
                "inputs": [{"id": str(id_)} for id_ in ids],
                "properties": properties,
            },
        )
        return data.get("results") or []
