"""Base sync abstractions."""

from hubsync.connectors.base.config import (
    Domain,
    EntitySearchConfig,
    EntityType,
    HubSpotAccount,
    SearchWindow,
)
from hubsync.connectors.base.records import Action, ActionName
from hubsync.connectors.base.state import AccountSyncReport, EntitySyncStatus, SyncRunReport

__all__ = [
    "Action",
    "ActionName",
    "AccountSyncReport",
    "Domain",
    "EntitySearchConfig",
    "EntitySyncStatus",
    "EntityType",
    "HubSpotAccount",
    "SearchWindow",
    "SyncRunReport",
]
