"""
CRM Sources

HubSpot search, association resolution and per-entity action processors.
"""

from hubsync.connectors.sources.crm.hubspot import HubSpotClient

__all__ = ["HubSpotClient"]
