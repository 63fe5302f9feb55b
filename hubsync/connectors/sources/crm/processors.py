"""
Entity processors.

Turn a page of raw HubSpot search results into actions: resolve the page's
associations, classify each record as created or updated relative to the
account watermark, and normalize its property bag.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import structlog

from hubsync.connectors.base.config import EntitySearchConfig, EntityType
from hubsync.connectors.base.records import Action, ActionName
from hubsync.connectors.cursors import parse_timestamp
from hubsync.connectors.normalization import normalize_properties
from hubsync.connectors.sources.crm.associations import AssociationResolver

logger = structlog.get_logger()

HS_LAST_MODIFIED_DATE = "hs_lastmodifieddate"
LAST_MODIFIED_DATE = "lastmodifieddate"
HS_CREATEDATE = "hs_createdate"
HS_MEETING_TITLE = "hs_meeting_title"
HS_MEETING_START_TIME = "hs_meeting_start_time"
EMAIL = "email"

# Company actions are stamped two seconds early. Kept for compatibility with
# existing consumers; it looks like a clock-skew/ordering workaround, so do
# not apply it to other entities without confirming intent.
COMPANY_ACTION_DATE_OFFSET = timedelta(seconds=-2)

CONTACTS_SEARCH = EntitySearchConfig(
    entity=EntityType.CONTACTS,
    object_type="contacts",
    properties=[
        "firstname", "lastname", "jobtitle", EMAIL, "hubspotscore",
        "hs_lead_status", "hs_analytics_source", "hs_latest_source",
    ],
    modified_date_property=LAST_MODIFIED_DATE,
    created_without_watermark=False,
)

COMPANIES_SEARCH = EntitySearchConfig(
    entity=EntityType.COMPANIES,
    object_type="companies",
    properties=[
        "name", "domain", "country", "industry", "description",
        "annualrevenue", "numberofemployees", "hs_lead_status",
    ],
    modified_date_property=HS_LAST_MODIFIED_DATE,
)

MEETINGS_SEARCH = EntitySearchConfig(
    entity=EntityType.MEETINGS,
    object_type="meetings",
    properties=[HS_MEETING_TITLE, HS_CREATEDATE, HS_LAST_MODIFIED_DATE, HS_MEETING_START_TIME],
    modified_date_property=HS_LAST_MODIFIED_DATE,
)


def is_created(
    created_at: datetime,
    watermark: datetime | None,
    *,
    created_without_watermark: bool = True,
) -> bool:
    """A record is new when it was created strictly after the watermark."""
    if watermark is None:
        return created_without_watermark
    return created_at > watermark


def _parse_score(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass
class PageResult:
    """Actions built from one page, plus how many records were unusable."""

    actions: list[Action] = field(default_factory=list)
    skipped: int = 0


class EntityProcessor(ABC):
    """Builds actions for one entity type."""

    search_config: EntitySearchConfig

    def __init__(
        self,
        resolver: AssociationResolver,
        search_config: EntitySearchConfig | None = None,
    ):
        self._resolver = resolver
        if search_config is not None:
            self.search_config = search_config

    @property
    def entity(self) -> EntityType:
        return self.search_config.entity

    @abstractmethod
    async def process_page(
        self,
        records: list[dict[str, Any]],
        watermark: datetime | None,
    ) -> PageResult:
        """Resolve associations for the page and build its actions."""
        pass

    def _classify(self, created_at: datetime, watermark: datetime | None) -> bool:
        return is_created(
            created_at,
            watermark,
            created_without_watermark=self.search_config.created_without_watermark,
        )

    def _skip(self, record: dict[str, Any], reason: str) -> None:
        logger.debug(
            "Skipping record",
            entity=self.entity.value,
            record_id=record.get("id"),
            reason=reason,
        )


class ContactProcessor(EntityProcessor):
    """Contacts keyed by email, with their primary company."""

    search_config = CONTACTS_SEARCH

    async def process_page(
        self,
        records: list[dict[str, Any]],
        watermark: datetime | None,
    ) -> PageResult:
        contact_ids = [str(record["id"]) for record in records if record.get("id")]
        company_by_contact = await self._resolver.resolve_single("contacts", "companies", contact_ids)

        result = PageResult()
        for contact in records:
            props = contact.get("properties") or {}
            email = props.get(EMAIL)
            created_at = parse_timestamp(contact.get("createdAt"))
            updated_at = parse_timestamp(contact.get("updatedAt")) or created_at
            if not email:
                self._skip(contact, "missing email")
                result.skipped += 1
                continue
            if created_at is None:
                self._skip(contact, "missing createdAt")
                result.skipped += 1
                continue

            created = self._classify(created_at, watermark)
            name = f"{props.get('firstname') or ''} {props.get('lastname') or ''}".strip()
            user_properties = {
                "company_id": company_by_contact.get(str(contact.get("id"))),
                "contact_name": name,
                "contact_title": props.get("jobtitle"),
                "contact_source": props.get("hs_analytics_source"),
                "contact_status": props.get("hs_lead_status"),
                "contact_score": _parse_score(props.get("hubspotscore")),
            }

            result.actions.append(Action(
                entity=EntityType.CONTACTS,
                action_name=ActionName.for_entity(EntityType.CONTACTS, created),
                action_date=created_at if created else updated_at,
                identity=email,
                properties=normalize_properties(user_properties),
            ))
        return result


class CompanyProcessor(EntityProcessor):
    """Companies; no associations needed."""

    search_config = COMPANIES_SEARCH

    async def process_page(
        self,
        records: list[dict[str, Any]],
        watermark: datetime | None,
    ) -> PageResult:
        result = PageResult()
        for company in records:
            props = company.get("properties")
            created_at = parse_timestamp(company.get("createdAt"))
            updated_at = parse_timestamp(company.get("updatedAt")) or created_at
            if not props:
                self._skip(company, "empty properties")
                result.skipped += 1
                continue
            if created_at is None:
                self._skip(company, "missing createdAt")
                result.skipped += 1
                continue

            created = self._classify(created_at, watermark)
            action_date = (created_at if created else updated_at) + COMPANY_ACTION_DATE_OFFSET
            company_properties = {
                "company_id": company.get("id"),
                "company_domain": props.get("domain"),
                "company_industry": props.get("industry"),
            }

            result.actions.append(Action(
                entity=EntityType.COMPANIES,
                action_name=ActionName.for_entity(EntityType.COMPANIES, created),
                action_date=action_date,
                properties=normalize_properties(company_properties),
            ))
        return result


class MeetingProcessor(EntityProcessor):
    """Meetings with the emails of their attendee contacts."""

    search_config = MEETINGS_SEARCH

    async def process_page(
        self,
        records: list[dict[str, Any]],
        watermark: datetime | None,
    ) -> PageResult:
        meeting_ids = [str(record["id"]) for record in records if record.get("id")]
        emails_by_meeting = await self._resolver.resolve_attribute(
            "meetings", "contacts", meeting_ids, EMAIL,
        )

        result = PageResult()
        for meeting in records:
            props = meeting.get("properties")
            if not props:
                self._skip(meeting, "empty properties")
                result.skipped += 1
                continue
            created_at = parse_timestamp(props.get(HS_CREATEDATE))
            updated_at = parse_timestamp(props.get(HS_LAST_MODIFIED_DATE)) or created_at
            if created_at is None:
                self._skip(meeting, "missing hs_createdate")
                result.skipped += 1
                continue

            created = self._classify(created_at, watermark)
            meeting_properties = {
                "meeting_id": meeting.get("id"),
                "meeting_title": props.get(HS_MEETING_TITLE),
                HS_CREATEDATE: props.get(HS_CREATEDATE),
                HS_LAST_MODIFIED_DATE: props.get(HS_LAST_MODIFIED_DATE),
                HS_MEETING_START_TIME: props.get(HS_MEETING_START_TIME),
            }

            result.actions.append(Action(
                entity=EntityType.MEETINGS,
                action_name=ActionName.for_entity(EntityType.MEETINGS, created),
                action_date=created_at if created else updated_at,
                properties=normalize_properties(meeting_properties),
                associations=emails_by_meeting.get(str(meeting.get("id")), []),
            ))
        return result


DEFAULT_PROCESSORS: tuple[type[EntityProcessor], ...] = (
    ContactProcessor,
    CompanyProcessor,
    MeetingProcessor,
)
