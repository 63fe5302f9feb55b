"""Typed errors raised by the HubSpot client and retry middleware."""

from __future__ import annotations

from typing import Any


class HubSpotError(Exception):
    """Base error for HubSpot sync failures.

    - `code` is a stable dot-separated identifier for log filtering.
    - `status_code` is the HTTP status when one was received (0 otherwise).
    - `meta` carries safe-to-log debugging context.
    """

    default_code = "hubspot.error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int = 0,
        meta: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message
        self.status_code = int(status_code)
        self.meta = dict(meta or {})


class HubSpotAPIError(HubSpotError):
    """Non-success response that does not fit a more specific category."""

    default_code = "hubspot.api_error"


class AuthExpiredError(HubSpotAPIError):
    """401 from the API, or the local token expiry clock has passed."""

    default_code = "hubspot.auth_expired"


class RateLimitedError(HubSpotAPIError):
    """429 from the API. Handled by backoff alone."""

    default_code = "hubspot.rate_limited"


class TransientNetworkError(HubSpotError):
    """Timeouts, connection failures and 5xx responses."""

    default_code = "hubspot.transient"


class TokenRefreshError(HubSpotError):
    """The OAuth endpoint rejected a refresh request."""

    default_code = "hubspot.token_refresh_failed"


class SearchOverflowError(HubSpotError):
    """Pagination hit the offset ceiling and the window could not move forward."""

    default_code = "hubspot.search_overflow"


class RetriesExhaustedError(HubSpotError):
    """Every attempt of a remote call failed; `__cause__` is the last error."""

    default_code = "hubspot.retries_exhausted"

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}",
            status_code=getattr(last_error, "status_code", 0),
            meta={"operation": operation, "attempts": attempts},
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


def error_for_status(status_code: int, body: Any, *, operation: str) -> HubSpotError:
    """Map a failed HTTP status onto the error taxonomy."""
    meta = {"operation": operation, "body": body}
    message = f"HubSpot {operation} returned {status_code}"
    if status_code == 401:
        return AuthExpiredError(message, status_code=status_code, meta=meta)
    if status_code == 429:
        return RateLimitedError(message, status_code=status_code, meta=meta)
    if status_code >= 500:
        return TransientNetworkError(message, status_code=status_code, meta=meta)
    return HubSpotAPIError(message, status_code=status_code, meta=meta)
