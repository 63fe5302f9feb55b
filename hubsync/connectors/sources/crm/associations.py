"""
Association resolution for a page of CRM records.

Missing or partial association results are normal (a contact without a
company, a meeting without attendees) and resolve to an empty set.
"""

from collections.abc import Iterable

import structlog

from hubsync.connectors.sources.crm.hubspot import HubSpotClient

logger = structlog.get_logger()

# HubSpot caps batch read inputs at 100 ids per call.
BATCH_READ_LIMIT = 100


def _chunks(ids: list[str], size: int) -> Iterable[list[str]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


class AssociationResolver:
    """Batch-resolves associations between primary and secondary objects."""

    def __init__(self, client: HubSpotClient, batch_read_limit: int = BATCH_READ_LIMIT):
        self._client = client
        self._batch_read_limit = batch_read_limit

    async def resolve_many(
        self,
        from_object: str,
        to_object: str,
        ids: list[str],
    ) -> dict[str, list[str]]:
        """Map each primary id to all of its associated ids."""
        results = await self._client.read_associations(from_object, to_object, ids)

        associations: dict[str, list[str]] = {}
        for result in results:
            from_id = (result.get("from") or {}).get("id")
            to_ids = [str(to["id"]) for to in result.get("to") or [] if to.get("id")]
            if from_id is None or not to_ids:
                continue
            associations.setdefault(str(from_id), []).extend(to_ids)
        return associations

    async def resolve_single(
        self,
        from_object: str,
        to_object: str,
        ids: list[str],
    ) -> dict[str, str]:
        """Map each primary id to its first associated id."""
        associations = await self.resolve_many(from_object, to_object, ids)
        return {from_id: to_ids[0] for from_id, to_ids in associations.items()}

    async def resolve_attribute(
        self,
        from_object: str,
        to_object: str,
        ids: list[str],
        attribute: str,
    ) -> dict[str, list[str]]:
        """
        Map each primary id to an attribute of its associated objects.

        Associated ids are deduplicated across the page and read in batches;
        ids whose object has no value for `attribute` are dropped.
        """
        associations = await self.resolve_many(from_object, to_object, ids)

        unique_ids = list(dict.fromkeys(
            to_id for to_ids in associations.values() for to_id in to_ids
        ))
        values: dict[str, str] = {}
        for chunk in _chunks(unique_ids, self._batch_read_limit):
            records = await self._client.batch_read(to_object.lower(), chunk, [attribute])
            for record in records:
                value = (record.get("properties") or {}).get(attribute)
                if record.get("id") and value:
                    values[str(record["id"])] = value

        if len(values) < len(unique_ids):
            logger.debug(
                "Some associated records have no value",
                to_object=to_object,
                attribute=attribute,
                requested=len(unique_ids),
                resolved=len(values),
            )

        return {
            from_id: [values[to_id] for to_id in to_ids if to_id in values]
            for from_id, to_ids in associations.items()
        }
