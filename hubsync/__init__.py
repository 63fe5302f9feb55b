"""Incremental HubSpot CRM to analytics action sync."""

__version__ = "0.1.0"
