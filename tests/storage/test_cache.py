"""Tests for the Redis cache sink."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

from possync.storage.cache import LOCATIONS_KEY, RedisCache


def make_cache() -> tuple[RedisCache, MagicMock]:
    client = MagicMock()
    return RedisCache(client), client


class TestRedisCache:
    """Tests for RedisCache."""

    def test_cache_inventory_uses_pipeline(self) -> None:
        """Should write inventory and the sync timestamp in one pipeline."""
        cache, client = make_cache()
        pipe = client.pipeline.return_value

        count = cache.cache_inventory("loc-1", [{"sku": "A"}, {"sku": "B"}])

        assert count == 2
        keys = [c.args[0] for c in pipe.set.call_args_list]
        assert keys == ["inventory:loc-1", "sync:loc-1:timestamp"]
        assert json.loads(pipe.set.call_args_list[0].args[1]) == [{"sku": "A"}, {"sku": "B"}]
        pipe.execute.assert_called_once()

    def test_cache_discounts(self) -> None:
        """Should store discounts as JSON."""
        cache, client = make_cache()

        assert cache.cache_discounts("loc-1", [{"id": 1}]) == 1
        client.set.assert_called_once_with("discounts:loc-1", '[{"id": 1}]')

    def test_cache_locations(self) -> None:
        """Should store the location list under the shared key."""
        cache, client = make_cache()

        cache.cache_locations([{"id": "loc-1"}])

        assert client.set.call_args.args[0] == LOCATIONS_KEY

    def test_get_inventory(self) -> None:
        """Should decode cached inventory."""
        cache, client = make_cache()
        client.get.return_value = '[{"sku": "A"}]'

        assert cache.get_inventory("loc-1") == [{"sku": "A"}]
        client.get.assert_called_once_with("inventory:loc-1")

    def test_get_missing_returns_none(self) -> None:
        """Should return None for missing keys."""
        cache, client = make_cache()
        client.get.return_value = None

        assert cache.get_discounts("loc-1") is None
        assert cache.get_last_sync("loc-1") is None

    def test_get_last_sync(self) -> None:
        """Should parse the stored millisecond timestamp."""
        cache, client = make_cache()
        client.get.return_value = "1700000000000"

        assert cache.get_last_sync("loc-1") == 1700000000000

    def test_clear_location(self) -> None:
        """Should delete every key of the location."""
        cache, client = make_cache()

        cache.clear_location("loc-1")

        client.delete.assert_called_once_with(
            "inventory:loc-1", "discounts:loc-1", "sync:loc-1:timestamp"
        )
