"""
Sync Configuration Schemas

Defines the account, domain and per-entity search structures.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hubsync.connectors.cursors import parse_timestamp, to_epoch_millis


class EntityType(str, Enum):
    """CRM object types synced into actions."""

    CONTACTS = "contacts"
    COMPANIES = "companies"
    MEETINGS = "meetings"


class HubSpotAccount(BaseModel):
    """
    One connected HubSpot portal.

    `last_pulled_dates` maps an entity name to the watermark used as the lower
    bound of the next sync window.
    """

    model_config = ConfigDict(extra="allow")

    hub_id: str
    access_token: str | None = None
    refresh_token: str | None = None
    last_pulled_dates: dict[str, datetime | None] = Field(default_factory=dict)

    @field_validator("last_pulled_dates")
    @classmethod
    def validate_last_pulled_dates(cls, value: dict[str, datetime | None]) -> dict[str, datetime | None]:
        # Naive watermarks are taken as UTC.
        return {entity: parse_timestamp(watermark) for entity, watermark in value.items()}

    def get_watermark(self, entity: EntityType) -> datetime | None:
        return self.last_pulled_dates.get(entity.value)


class Domain(BaseModel):
    """Tenant record owning the HubSpot accounts."""

    model_config = ConfigDict(extra="allow")

    api_key: str
    accounts: list[HubSpotAccount] = Field(default_factory=list)

    def get_account(self, hub_id: str) -> HubSpotAccount | None:
        """Get an account by hub id."""
        for account in self.accounts:
            if account.hub_id == hub_id:
                return account
        return None


class EntitySearchConfig(BaseModel):
    """Search configuration for one entity pipeline."""

    entity: EntityType
    object_type: str  # path segment, e.g. "contacts"
    properties: list[str] = Field(default_factory=list)
    modified_date_property: str = "hs_lastmodifieddate"
    page_size: int = 100
    max_offset: int = 9900

    # Contacts historically classify records as updated when the account has
    # never been pulled; companies and meetings classify them as created.
    created_without_watermark: bool = True


class SearchWindow(BaseModel):
    """Modified-date window plus pagination cursor for one search pass."""

    lower_bound: datetime | None = None
    upper_bound: datetime
    cursor: int | None = None

    def to_filter_groups(self, property_name: str) -> list[dict[str, Any]]:
        """Build HubSpot `filterGroups` for `lower_bound <= property <= upper_bound`."""
        filters: list[dict[str, Any]] = []
        if self.lower_bound is not None:
            filters.append({
                "propertyName": property_name,
                "operator": "GTE",
                "value": str(to_epoch_millis(self.lower_bound)),
            })
        filters.append({
            "propertyName": property_name,
            "operator": "LTE",
            "value": str(to_epoch_millis(self.upper_bound)),
        })
        return [{"filters": filters}]

    def reanchor(self, lower_bound: datetime) -> None:
        """Narrow the window to start at `lower_bound` and restart pagination."""
        self.lower_bound = lower_bound
        self.cursor = None
