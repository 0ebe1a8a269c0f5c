"""Store directory client.

Resolves the list of locations to synchronize. Only active stores that carry
a POS API key become LocationConfig entries.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from possync.client.errors import ApiError, AuthError, DataError, NoLocationsError
from possync.client.retry import send_with_network_retry
from possync.core.types import LocationConfig

logger = logging.getLogger(__name__)

_EXTERNAL_ID_KEYS = ("dutchieStoreId", "externalStoreId", "retailerId")


def location_from_entry(entry: Any) -> LocationConfig | None:
    """Build a LocationConfig from a directory entry.

    Args:
        entry: Raw directory entry.

    Returns:
        The location, or None if the entry is malformed or the store is
        inactive or has no API key.
    """
    if not isinstance(entry, dict):
        return None
    if not entry.get("isActive", True):
        return None
    api_key = entry.get("apiKey")
    if not api_key or entry.get("id") in (None, ""):
        return None

    external_id = next(
        (str(entry[k]) for k in _EXTERNAL_ID_KEYS if entry.get(k)),
        None,
    )
    metadata = {
        k: v
        for k, v in entry.items()
        if k not in ("id", "name", "apiKey", "isActive", *_EXTERNAL_ID_KEYS)
    }
    return LocationConfig(
        location_id=str(entry["id"]),
        external_store_id=external_id,
        name=(entry.get("name") or str(entry["id"])).strip(),
        api_key=api_key,
        metadata=metadata,
    )


class StoreDirectoryClient:
    """HTTP client for the store directory service."""

    def __init__(self, url: str, token: str | None = None, timeout: float = 30.0) -> None:
        """Initialize the client.

        Args:
            url: Directory endpoint returning the store list.
            token: Optional bearer token.
            timeout: Request timeout in seconds.
        """
        self._url = url
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.Client(timeout=timeout, headers=headers)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> StoreDirectoryClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def fetch_entries(self) -> list[Any]:
        """Fetch raw directory entries."""
        response = send_with_network_retry(
            lambda: self._client.get(self._url), description="Store directory"
        )
        if response.status_code == 401:
            raise AuthError("Store directory rejected credentials", 401)
        if response.status_code != 200:
            raise ApiError(f"Store directory error {response.status_code}", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise DataError("Store directory returned a malformed payload", 200) from e
        if isinstance(payload, dict):
            payload = payload.get("data") or payload.get("stores") or []
        if not isinstance(payload, list):
            raise DataError("Store directory returned an unexpected payload", 200)
        return payload

    def fetch_locations(self) -> list[LocationConfig]:
        """Fetch active, credentialed locations."""
        entries = self.fetch_entries()
        locations = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning(f"Skipping malformed directory entry: {entry!r}")
                continue
            location = location_from_entry(entry)
            if location is None:
                label = entry.get("name") or entry.get("id")
                logger.debug(f"Skipping store {label}: inactive or no API key")
                continue
            locations.append(location)
        logger.info(f"Resolved {len(locations)} of {len(entries)} directory stores")
        return locations


def resolve_locations(client: StoreDirectoryClient) -> list[LocationConfig]:
    """Resolve the startup location list.

    Raises:
        NoLocationsError: If the directory is unreachable or lists no
            usable store. This is the only fatal startup condition.
    """
    try:
        locations = client.fetch_locations()
    except ApiError as e:
        raise NoLocationsError(f"Failed to fetch store configurations: {e}") from e
    if not locations:
        raise NoLocationsError("No valid location configurations found")
    return locations
