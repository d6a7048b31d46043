"""Key-value store implementations."""

from followdiff.config import StoreBackend, TrackerConfig
from followdiff.exceptions import ConfigError
from followdiff.storage.base import KeyValueStore
from followdiff.storage.memory_store import MemoryStore
from followdiff.storage.sqlite_store import SQLiteStore
from followdiff.storage.redis_store import RedisStore


def create_store(config: TrackerConfig) -> KeyValueStore:
    """Build the key-value store selected by config.store_backend."""
    if config.store_backend == StoreBackend.REDIS:
        if not config.redis_url:
            raise ConfigError("store_backend is redis but redis_url is empty")
        return RedisStore(config.redis_url)
    if config.store_backend == StoreBackend.MEMORY:
        return MemoryStore()
    if not config.sqlite_path:
        raise ConfigError("store_backend is sqlite but sqlite_path is empty")
    return SQLiteStore(config.sqlite_path)


__all__ = ["KeyValueStore", "MemoryStore", "SQLiteStore", "RedisStore", "create_store"]
