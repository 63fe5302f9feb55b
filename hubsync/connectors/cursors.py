"""Timestamp and watermark helpers.

Goal:
- Parse the timestamp shapes HubSpot returns into aware UTC datetimes.
- Prevent watermark regression (which can cause replays or skipped windows).

Timestamp shapes seen in search results:
- ISO strings: "2024-01-01T10:00:00.000Z"
- Epoch milliseconds: 1704103200000 or "1704103200000"
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def _from_epoch_millis(value: float) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a HubSpot timestamp into an aware UTC datetime, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, (int, float)):
        return _from_epoch_millis(float(value))
    if not isinstance(value, str):
        return None

    raw = value.strip()
    if not raw:
        return None
    if raw.isdigit():
        return _from_epoch_millis(float(raw))
    # Common "Z" suffix.
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    """Render a datetime the way HubSpot search filters expect it."""
    return int(value.timestamp() * 1000)


def advance_watermark(old: datetime | None, new: datetime | None) -> datetime | None:
    """
    Return the later of two watermarks.

    A missing new value never clears an existing watermark.
    """
    if new is None:
        return old
    if old is None:
        return new
    return new if new >= old else old


def merge_watermarks_monotonic(
    old: dict[str, datetime | None],
    new: dict[str, datetime | None],
) -> dict[str, datetime | None]:
    """Merge per-entity watermarks, blocking any entity from moving backwards."""
    merged: dict[str, datetime | None] = dict(old or {})
    for key, new_value in (new or {}).items():
        merged[key] = advance_watermark(merged.get(key), new_value)
    return merged
