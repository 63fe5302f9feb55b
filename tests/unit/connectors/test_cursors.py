from datetime import datetime, timedelta, timezone

import pytest

from hubsync.connectors.cursors import (
    advance_watermark,
    merge_watermarks_monotonic,
    parse_timestamp,
    to_epoch_millis,
)

pytestmark = pytest.mark.unit

JAN_1 = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_parse_iso_with_z_suffix() -> None:
    assert parse_timestamp("2024-01-01T10:00:00.000Z") == JAN_1


def test_parse_epoch_millis_string_and_int() -> None:
    millis = to_epoch_millis(JAN_1)
    assert parse_timestamp(str(millis)) == JAN_1
    assert parse_timestamp(millis) == JAN_1


def test_parse_naive_datetime_is_utc() -> None:
    assert parse_timestamp(datetime(2024, 1, 1, 10, 0)) == JAN_1


@pytest.mark.parametrize("value", [None, "", "  ", "not a date", True, {"a": 1}])
def test_parse_invalid_returns_none(value) -> None:
    assert parse_timestamp(value) is None


def test_epoch_millis() -> None:
    assert to_epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000


def test_advance_watermark_blocks_regression() -> None:
    assert advance_watermark(JAN_1, JAN_1 - timedelta(days=1)) == JAN_1


def test_advance_watermark_allows_advance() -> None:
    later = JAN_1 + timedelta(hours=1)
    assert advance_watermark(JAN_1, later) == later


def test_advance_watermark_never_clears() -> None:
    assert advance_watermark(JAN_1, None) == JAN_1
    assert advance_watermark(None, JAN_1) == JAN_1


def test_merge_watermarks_per_entity() -> None:
    old = {"contacts": JAN_1, "companies": JAN_1}
    new = {"contacts": JAN_1 - timedelta(minutes=1), "companies": JAN_1 + timedelta(minutes=1), "meetings": JAN_1}

    merged = merge_watermarks_monotonic(old, new)

    assert merged == {
        "contacts": JAN_1,
        "companies": JAN_1 + timedelta(minutes=1),
        "meetings": JAN_1,
    }
