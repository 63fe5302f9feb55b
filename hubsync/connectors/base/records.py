"""
Action Types

Defines the action events derived from CRM records.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hubsync.connectors.base.config import EntityType


class ActionName(str, Enum):
    """Action names understood by the analytics consumer."""

    CONTACT_CREATED = "Contact Created"
    CONTACT_UPDATED = "Contact Updated"
    COMPANY_CREATED = "Company Created"
    COMPANY_UPDATED = "Company Updated"
    MEETING_CREATED = "Meeting Created"
    MEETING_UPDATED = "Meeting Updated"

    @classmethod
    def for_entity(cls, entity: EntityType, is_created: bool) -> "ActionName":
        return _ACTION_NAMES[(entity, is_created)]


_ACTION_NAMES: dict[tuple[EntityType, bool], ActionName] = {
    (EntityType.CONTACTS, True): ActionName.CONTACT_CREATED,
    (EntityType.CONTACTS, False): ActionName.CONTACT_UPDATED,
    (EntityType.COMPANIES, True): ActionName.COMPANY_CREATED,
    (EntityType.COMPANIES, False): ActionName.COMPANY_UPDATED,
    (EntityType.MEETINGS, True): ActionName.MEETING_CREATED,
    (EntityType.MEETINGS, False): ActionName.MEETING_UPDATED,
}

# Payload key holding the property bag for each entity.
_PROPERTIES_KEY: dict[EntityType, str] = {
    EntityType.CONTACTS: "userProperties",
    EntityType.COMPANIES: "companyProperties",
    EntityType.MEETINGS: "meetingProperties",
}


class Action(BaseModel):
    """
    A normalized change event derived from one CRM record.

    Immutable once built; the sink receives each action once.
    """

    model_config = ConfigDict(frozen=True)

    entity: EntityType
    action_name: ActionName
    action_date: datetime
    identity: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    associations: list[str] | None = None
    include_in_analytics: int = 0

    @property
    def is_created(self) -> bool:
        return self.action_name.value.endswith("Created")

    def to_payload(self) -> dict[str, Any]:
        """Render the wire shape expected by the analytics consumer."""
        payload: dict[str, Any] = {
            "actionName": self.action_name.value,
            "actionDate": self.action_date.isoformat(),
            "includeInAnalytics": self.include_in_analytics,
            _PROPERTIES_KEY[self.entity]: dict(self.properties),
        }
        if self.identity is not None:
            payload["identity"] = self.identity
        if self.associations is not None:
            payload["contactEmails"] = list(self.associations)
        return payload
