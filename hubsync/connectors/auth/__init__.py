"""
Authentication

Provides HubSpot OAuth2 token refresh and per-account credential context.
"""

from hubsync.connectors.auth.oauth2 import HubSpotCredentials, HubSpotOAuthClient

__all__ = [
    "HubSpotCredentials",
    "HubSpotOAuthClient",
]
