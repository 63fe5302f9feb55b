"""
Test Configuration and Fixtures

Provides shared fixtures for the sync engine test suite.
"""

import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import structlog

# Set test environment variables before importing settings.
os.environ.setdefault("HUBSPOT_CID", "test-client-id")
os.environ.setdefault("HUBSPOT_CS", "test-client-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

structlog.configure(
    processors=[structlog.processors.add_log_level, structlog.dev.ConsoleRenderer(colors=False)],
    wrapper_class=structlog.make_filtering_bound_logger(30),  # WARNING
)


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """
    Auto-assign tier markers.

    - tests/integration/** => integration
    - everything else      => unit
    """
    for item in items:
        path = str(getattr(item, "fspath", ""))
        if item.get_closest_marker("integration") or item.get_closest_marker("unit"):
            continue
        if "/tests/integration/" in path:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# SHARED FIXTURES
# =============================================================================


@pytest.fixture
def fake_clock():
    """Deterministic clock for tests."""
    from tests.support.clock import FakeClock

    return FakeClock.fixed()


@pytest.fixture
def no_sleep():
    """Sleep replacement for retry policies."""
    return AsyncMock(return_value=None)


@pytest.fixture
def utc():
    """Build aware UTC datetimes tersely."""

    def _utc(*args: int) -> datetime:
        return datetime(*args, tzinfo=timezone.utc)

    return _utc
