"""
Unit tests for the HubSpot client's retry and token refresh behaviour.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from hubsync.connectors.auth.oauth2 import HubSpotCredentials
from hubsync.connectors.errors import (
    AuthExpiredError,
    HubSpotAPIError,
    RateLimitedError,
    RetriesExhaustedError,
    TransientNetworkError,
    error_for_status,
)
from hubsync.connectors.http import RetryPolicy
from hubsync.connectors.sources.crm.hubspot import HubSpotClient

pytestmark = pytest.mark.unit


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def credentials():
    return HubSpotCredentials(hub_id="123", access_token="old_token", refresh_token="refresh")


@pytest.fixture
def oauth():
    """OAuth client whose refresh swaps in `new_token`."""
    mock = AsyncMock()

    async def refresh(creds):
        return creds.model_copy(update={
            "access_token": "new_token",
            "expires_at": datetime.now(timezone.utc) + timedelta(minutes=30),
        })

    mock.refresh.side_effect = refresh
    return mock


def _client(handler, credentials, oauth, no_sleep) -> HubSpotClient:
    return HubSpotClient(
        credentials,
        oauth=oauth,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        retry_policy=RetryPolicy(sleep=no_sleep),
    )


# =============================================================================
# Error Mapping Tests
# =============================================================================


class TestErrorForStatus:
    """Tests for status code classification."""

    @pytest.mark.parametrize(
        ("status", "error_type"),
        [
            (401, AuthExpiredError),
            (429, RateLimitedError),
            (500, TransientNetworkError),
            (503, TransientNetworkError),
            (400, HubSpotAPIError),
        ],
    )
    def test_maps_status(self, status, error_type):
        error = error_for_status(status, {"message": "x"}, operation="search_contacts")

        assert type(error) is error_type
        assert error.status_code == status
        assert error.meta["operation"] == "search_contacts"


# =============================================================================
# Retry / Refresh Tests
# =============================================================================


class TestHubSpotClientRetry:
    """Tests for retry and auth refresh around remote calls."""

    @pytest.mark.asyncio
    async def test_unauthorized_refreshes_and_retries_with_new_token(self, credentials, oauth, no_sleep):
        seen_tokens: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            token = request.headers["Authorization"].removeprefix("Bearer ")
            seen_tokens.append(token)
            if token == "old_token":
                return httpx.Response(401, json={"message": "expired"})
            return httpx.Response(200, json={"results": [{"id": "1"}]})

        client = _client(handler, credentials, oauth, no_sleep)

        data = await client.search("contacts", {"limit": 100})

        assert data == {"results": [{"id": "1"}]}
        assert seen_tokens == ["old_token", "new_token"]
        assert client.credentials.access_token == "new_token"
        oauth.refresh.assert_awaited_once()
        # Caller's context object is not mutated.
        assert credentials.access_token == "old_token"

    @pytest.mark.asyncio
    async def test_expired_clock_refreshes_on_any_failure(self, credentials, oauth, no_sleep):
        expired = credentials.model_copy(
            update={"expires_at": datetime.now(timezone.utc) - timedelta(minutes=1)}
        )
        statuses = [500, 200]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(statuses.pop(0), json={"results": []})

        client = _client(handler, expired, oauth, no_sleep)

        await client.search("companies", {})

        oauth.refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rate_limit_backs_off_without_refresh(self, credentials, oauth, no_sleep):
        statuses = [429, 429, 200]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(statuses.pop(0), json={"results": []})

        client = _client(handler, credentials, oauth, no_sleep)

        await client.search("meetings", {})

        oauth.refresh.assert_not_awaited()
        assert [c.args[0] for c in no_sleep.await_args_list] == [5.0, 10.0]

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, credentials, oauth, no_sleep):
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["count"] += 1
            if calls["count"] == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"results": []})

        client = _client(handler, credentials, oauth, no_sleep)

        assert await client.search("contacts", {}) == {"results": []}
        assert calls["count"] == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_surface(self, credentials, oauth, no_sleep):
        client = _client(lambda request: httpx.Response(502, text="bad gateway"), credentials, oauth, no_sleep)

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await client.search("contacts", {})

        assert exc_info.value.attempts == 5
        assert isinstance(exc_info.value.last_error, TransientNetworkError)
        assert exc_info.value.last_error.meta["body"] == "bad gateway"


# =============================================================================
# Endpoint Tests
# =============================================================================


class TestHubSpotClientEndpoints:
    """Tests for request shapes."""

    @pytest.mark.asyncio
    async def test_read_associations_request(self, credentials, oauth, no_sleep):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"results": [{"from": {"id": "1"}, "to": [{"id": "9"}]}]})

        client = _client(handler, credentials, oauth, no_sleep)

        results = await client.read_associations("contacts", "companies", ["1", "2"])

        assert results == [{"from": {"id": "1"}, "to": [{"id": "9"}]}]
        assert seen[0].url.path == "/crm/v3/associations/CONTACTS/COMPANIES/batch/read"
        assert json.loads(seen[0].content) == {"inputs": [{"id": "1"}, {"id": "2"}]}

    @pytest.mark.asyncio
    async def test_batch_read_request(self, credentials, oauth, no_sleep):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"results": []})

        client = _client(handler, credentials, oauth, no_sleep)

        await client.batch_read("contacts", ["5"], ["email"])

        assert seen[0].url.path == "/crm/v3/objects/contacts/batch/read"
        assert json.loads(seen[0].content) == {"inputs": [{"id": "5"}], "properties": ["email"]}

    @pytest.mark.asyncio
    async def test_empty_id_lists_skip_the_call(self, credentials, oauth, no_sleep):
        handler = MagicMock()
        client = _client(handler, credentials, oauth, no_sleep)

        assert await client.read_associations("meetings", "contacts", []) == []
        assert await client.batch_read("contacts", [], ["email"]) == []
        handler.assert_not_called()
