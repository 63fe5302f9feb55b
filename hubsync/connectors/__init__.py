"""HubSpot connector: auth, HTTP retry, search, associations and action building.

Keep imports in this module lightweight; submodules import each other through
their full paths.
"""
