"""Helpers for reading backoffice response payloads.

The backoffice mixes key casing between endpoints and releases ("Result" and
"result", "Data" and "data"), so fields are looked up case-insensitively.
"""

from __future__ import annotations

from typing import Any


def get_field(mapping: Any, name: str) -> Any:
    """Look up a key case-insensitively.

    Args:
        mapping: Decoded JSON object; anything else yields None.
        name: Key to look up, exact casing preferred.

    Returns:
        The value, or None if the key is absent.
    """
    if not isinstance(mapping, dict):
        return None
    if name in mapping:
        return mapping[name]
    lowered = name.lower()
    for key, value in mapping.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return None
