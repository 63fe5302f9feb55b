"""
HTTP helpers for connectors.

Provides a retry policy with exponential backoff and a pre-retry recovery hook
(used by the HubSpot client to refresh OAuth tokens between attempts).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import structlog

from hubsync.connectors.errors import RetriesExhaustedError

logger = structlog.get_logger()

T = TypeVar("T")

FailureHook = Callable[[Exception, int], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry/backoff configuration for remote calls.

    `max_attempts` counts the first call, so the default of 5 allows 4 retries.
    The delay before retry `i` (0-based) is `base_delay * 2**i`; there is no
    delay after the final failure.
    """

    max_attempts: int = 5
    base_delay: float = 5.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def backoff(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt)

    async def run(
        self,
        fn: Callable[[], Awaitable[T]],
        *,
        operation: str = "request",
        on_failure: FailureHook | None = None,
    ) -> T:
        """
        Call `fn` until it succeeds or attempts run out.

        `on_failure(error, attempt)` runs before every retry, never after the
        last attempt. Errors it raises propagate immediately.
        """
        attempt = 0
        while True:
            try:
                return await fn()
            except Exception as e:
                if attempt + 1 >= self.max_attempts:
                    logger.error(
                        "Remote call failed, retries exhausted",
                        operation=operation,
                        attempts=self.max_attempts,
                        error=str(e),
                    )
                    raise RetriesExhaustedError(operation, self.max_attempts, e) from e

                delay = self.backoff(attempt)
                logger.warning(
                    "Retrying remote call",
                    operation=operation,
                    attempt=attempt + 1,
                    delay=delay,
                    status_code=getattr(e, "status_code", None),
                    error=str(e),
                )
                if on_failure is not None:
                    await on_failure(e, attempt)
                await self.sleep(delay)
                attempt += 1
