"""
Property normalization helpers.

Clean HubSpot property bags before they are attached to actions.
"""

import re
from collections.abc import Mapping
from typing import Any

# Placeholder values CRM users type into fields they don't know.
DISALLOWED_VALUES = frozenset({
    "[not provided]",
    "placeholder",
    "[[unknown]]",
    "not set",
    "not provided",
    "unknown",
    "undefined",
    "n/a",
})

# Unresolved merge-field token, e.g. "{!$Record.Name}".
_UNRESOLVED_TOKEN = "!$record"

_CUSTOM_FIELD_SUFFIX = re.compile(r"__c$")
_EDGE_UNDERSCORES = re.compile(r"^_+|_+$")
_REPEATED_UNDERSCORES = re.compile(r"_+")


def is_meaningful_value(value: Any) -> bool:
    """Return False for null, empty and placeholder values."""
    if value is None or value == "":
        return False
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in DISALLOWED_VALUES or _UNRESOLVED_TOKEN in lowered:
            return False
    return True


def filter_null_values(properties: Mapping[str, Any]) -> dict[str, Any]:
    """Drop null, empty and placeholder values from a property bag."""
    return {key: value for key, value in properties.items() if is_meaningful_value(value)}


def normalize_property_name(key: str) -> str:
    """
    Normalize a property key.

    Lowercases, strips a custom-field `__c` suffix, trims edge underscores
    and collapses runs of underscores.
    """
    name = _CUSTOM_FIELD_SUFFIX.sub("", key.lower())
    name = _EDGE_UNDERSCORES.sub("", name)
    return _REPEATED_UNDERSCORES.sub("_", name)


def normalize_properties(properties: Mapping[str, Any] | None) -> dict[str, Any]:
    """Filter values and normalize keys of a property bag."""
    if not properties:
        return {}
    return {
        normalize_property_name(key): value
        for key, value in filter_null_values(properties).items()
    }
