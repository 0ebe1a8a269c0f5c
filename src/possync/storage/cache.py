"""Redis cache of per-location inventory and discounts.

Keys:
- inventory:<location_id>
- discounts:<location_id>
- sync:<location_id>:timestamp
- locations:all
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import redis

logger = logging.getLogger(__name__)

LOCATIONS_KEY = "locations:all"


def inventory_key(location_id: str) -> str:
    return f"inventory:{location_id}"


def discounts_key(location_id: str) -> str:
    return f"discounts:{location_id}"


def last_sync_key(location_id: str) -> str:
    return f"sync:{location_id}:timestamp"


class RedisCache:
    """Cache sink backed by Redis."""

    def __init__(self, client: redis.Redis) -> None:
        """Initialize with a Redis client."""
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisCache:
        """Create a cache from a Redis URL."""
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()

    def _get_json(self, key: str) -> Any:
        data = self._client.get(key)
        return json.loads(data) if data else None

    def cache_inventory(self, location_id: str, items: list[dict[str, Any]]) -> int:
        """Cache the inventory of a location and stamp the sync time.

        Returns:
            Number of items cached.
        """
        pipe = self._client.pipeline()
        pipe.set(inventory_key(location_id), json.dumps(items, default=str))
        pipe.set(last_sync_key(location_id), str(int(time.time() * 1000)))
        pipe.execute()
        return len(items)

    def cache_discounts(self, location_id: str, items: list[dict[str, Any]]) -> int:
        """Cache the discounts of a location."""
        self._client.set(discounts_key(location_id), json.dumps(items, default=str))
        return len(items)

    def cache_locations(self, locations: list[dict[str, Any]]) -> int:
        """Cache the location list."""
        self._client.set(LOCATIONS_KEY, json.dumps(locations, default=str))
        return len(locations)

    def get_inventory(self, location_id: str) -> list[dict[str, Any]] | None:
        """Get cached inventory of a location."""
        return self._get_json(inventory_key(location_id))

    def get_discounts(self, location_id: str) -> list[dict[str, Any]] | None:
        """Get cached discounts of a location."""
        return self._get_json(discounts_key(location_id))

    def get_locations(self) -> list[dict[str, Any]] | None:
        """Get the cached location list."""
        return self._get_json(LOCATIONS_KEY)

    def get_last_sync(self, location_id: str) -> int | None:
        """Get the last cache refresh time of a location (ms since epoch)."""
        value = self._client.get(last_sync_key(location_id))
        return int(value) if value else None

    def clear_location(self, location_id: str) -> None:
        """Remove every cached entry of a location."""
        self._client.delete(
            inventory_key(location_id),
            discounts_key(location_id),
            last_sync_key(location_id),
        )
