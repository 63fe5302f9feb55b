"""
Paginated CRM search with offset-overflow recovery.

HubSpot's search endpoint refuses `after` offsets past a fixed ceiling
(9900 in practice). Instead of paging past it, the window's lower bound is
moved up to the modified date of the last record seen and paging restarts
from the first page of the narrower window.
"""

from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

import structlog

from hubsync.connectors.base.config import EntitySearchConfig, SearchWindow
from hubsync.connectors.cursors import parse_timestamp
from hubsync.connectors.errors import SearchOverflowError
from hubsync.connectors.sources.crm.hubspot import HubSpotClient

logger = structlog.get_logger()

ASCENDING = "ASCENDING"


def _next_cursor(data: dict[str, Any]) -> int | None:
    after = ((data.get("paging") or {}).get("next") or {}).get("after")
    if after in (None, ""):
        return None
    return int(after)


def record_modified_date(record: dict[str, Any], property_name: str) -> datetime | None:
    """Modified date of a search result, falling back to `updatedAt`."""
    properties = record.get("properties") or {}
    return parse_timestamp(properties.get(property_name)) or parse_timestamp(record.get("updatedAt"))


class PaginatedSearch:
    """
    Drives one entity's search over `[lower_bound, now]`.

    Pages are yielded in order and the next page is only requested once the
    consumer has finished with the current one.
    """

    def __init__(
        self,
        client: HubSpotClient,
        search_config: EntitySearchConfig,
        window: SearchWindow,
    ):
        self._client = client
        self._config = search_config
        self.window = window
        self.pages_fetched = 0
        self.window_resets = 0

    def build_request(self) -> dict[str, Any]:
        """Build the search body for the current window and cursor."""
        property_name = self._config.modified_date_property
        body: dict[str, Any] = {
            "filterGroups": self.window.to_filter_groups(property_name),
            "sorts": [{"propertyName": property_name, "direction": ASCENDING}],
            "properties": list(self._config.properties),
            "limit": self._config.page_size,
        }
        if self.window.cursor is not None:
            body["after"] = self.window.cursor
        return body

    async def pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        """Yield each non-empty page of results until the window is exhausted."""
        while True:
            data = await self._client.search(self._config.object_type, self.build_request())
            self.pages_fetched += 1

            results = data.get("results") or []
            next_cursor = _next_cursor(data)

            if results:
                yield results

            if next_cursor is None:
                return

            if next_cursor >= self._config.max_offset:
                if not results:
                    logger.warning(
                        "Offset ceiling reached on an empty page, stopping",
                        entity=self._config.entity.value,
                        cursor=next_cursor,
                    )
                    return
                self._reanchor(results[-1], next_cursor)
            else:
                self.window.cursor = next_cursor

    def _reanchor(self, last_record: dict[str, Any], next_cursor: int) -> None:
        property_name = self._config.modified_date_property
        new_lower = record_modified_date(last_record, property_name)
        current_lower = self.window.lower_bound

        if new_lower is None or (current_lower is not None and new_lower <= current_lower):
            # The watermark stays at `lower_bound` unless failed entities may advance,
            # so every later run stops here too.
            logger.error(
                "Search window stuck at offset ceiling; entity will fail every run until "
                "advance_watermark_on_failure is set or the lower bound is moved",
                entity=self._config.entity.value,
                record_id=last_record.get("id"),
                cursor=next_cursor,
                lower_bound=current_lower,
            )
            raise SearchOverflowError(
                "Search offset ceiling reached without a later modified date to resume from",
                meta={
                    "entity": self._config.entity.value,
                    "record_id": last_record.get("id"),
                    "lower_bound": current_lower.isoformat() if current_lower else None,
                },
            )

        logger.info(
            "Offset ceiling reached, re-anchoring search window",
            entity=self._config.entity.value,
            cursor=next_cursor,
            previous_lower_bound=current_lower,
            lower_bound=new_lower,
        )
        self.window.reanchor(new_lower)
        self.window_resets += 1
