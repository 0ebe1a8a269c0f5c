"""Downstream storage: inventory database and cache."""

from possync.storage.cache import RedisCache
from possync.storage.database import SyncDatabase

__all__ = ["RedisCache", "SyncDatabase"]
