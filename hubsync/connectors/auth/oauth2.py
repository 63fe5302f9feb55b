"""
HubSpot OAuth2 token refresh

Credentials are held per account in an explicit context object. A refresh
returns a new context instead of mutating shared state.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict

from hubsync.config import Settings, get_settings
from hubsync.connectors.base.config import HubSpotAccount
from hubsync.connectors.errors import TokenRefreshError

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HubSpotCredentials(BaseModel):
    """Access/refresh token pair plus the locally tracked expiry clock."""

    model_config = ConfigDict(frozen=True)

    hub_id: str
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: datetime | None = None

    @property
    def is_expired(self) -> bool:
        """Check if the local expiry clock has passed."""
        if not self.expires_at:
            return False
        return _utcnow() > self.expires_at

    @classmethod
    def from_account(cls, account: HubSpotAccount) -> "HubSpotCredentials":
        return cls(
            hub_id=account.hub_id,
            access_token=account.access_token,
            refresh_token=account.refresh_token,
        )


class HubSpotOAuthClient:
    """
    Refreshes HubSpot access tokens.

    Example usage:
        oauth = HubSpotOAuthClient.from_settings(get_settings())
        credentials = await oauth.refresh(credentials)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = "https://api.hubapi.com/oauth/v1/token",
        http_client: httpx.AsyncClient | None = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._http_client = http_client

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "HubSpotOAuthClient":
        settings = settings or get_settings()
        return cls(
            client_id=settings.hubspot_client_id,
            client_secret=settings.hubspot_client_secret,
            token_url=settings.hubspot_token_url,
            http_client=http_client,
        )

    async def refresh(self, credentials: HubSpotCredentials) -> HubSpotCredentials:
        """
        Exchange the refresh token for a new access token.

        Args:
            credentials: Current credential context

        Returns:
            New credential context with the fresh access token and expiry
        """
        if not credentials.refresh_token:
            raise TokenRefreshError(
                "No refresh token available",
                meta={"hub_id": credentials.hub_id},
            )

        data = {
            "grant_type": "refresh_token",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "refresh_token": credentials.refresh_token,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}

        if self._http_client is not None:
            response = await self._http_client.post(self._token_url, data=data, headers=headers)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self._token_url, data=data, headers=headers)

        if response.status_code != 200:
            raise TokenRefreshError(
                f"Token refresh returned {response.status_code}",
                status_code=response.status_code,
                meta={"hub_id": credentials.hub_id},
            )

        refreshed = self._parse_token_response(credentials, response.json())
        logger.info(
            "Tokens refreshed",
            hub_id=credentials.hub_id,
            expires_at=refreshed.expires_at,
            token_changed=refreshed.access_token != credentials.access_token,
        )
        return refreshed

    def _parse_token_response(
        self,
        credentials: HubSpotCredentials,
        data: dict[str, Any],
    ) -> HubSpotCredentials:
        """Parse token response (snake_case from the API, camelCase from SDK shims)."""
        access_token = data.get("access_token") or data.get("accessToken")
        if not access_token:
            raise TokenRefreshError(
                "Token response did not include an access token",
                meta={"hub_id": credentials.hub_id},
            )

        expires_in = data.get("expires_in", data.get("expiresIn"))
        expires_at = None
        if expires_in is not None:
            expires_at = _utcnow() + timedelta(seconds=int(expires_in))

        return credentials.model_copy(
            update={
                "access_token": access_token,
                # Preserve refresh token if not returned
                "refresh_token": data.get("refresh_token")
                or data.get("refreshToken")
                or credentials.refresh_token,
                "expires_at": expires_at,
            }
        )
