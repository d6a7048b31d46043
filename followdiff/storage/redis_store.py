"""Redis-backed key-value store."""

import json
from typing import Any, Optional

from followdiff.exceptions import StorageError
from followdiff.storage.base import KeyValueStore

try:
    import redis.asyncio as redis
    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False


class RedisStore(KeyValueStore):
    """
    Redis-based store, for sharing snapshots between machines.

    Requires redis package: pip install followdiff[redis]

    Example:
        store = RedisStore("redis://localhost:6379/0")
        async with store:
            await store.set("follower_snapshots", [])
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0", key_prefix: str = "followdiff:"):
        """
        Initialize Redis store.

        Args:
            redis_url: Redis connection URL
            key_prefix: Namespace prepended to every key
        """
        if not REDIS_AVAILABLE:
            raise ImportError(
                "Redis package not installed. Install with: pip install followdiff[redis]"
            )

        self.redis_url = redis_url
        self._client: Optional[redis.Redis] = None
        self._key_prefix = key_prefix

    async def _ensure_client(self) -> "redis.Redis":
        if self._client is None:
            self._client = redis.from_url(self.redis_url)
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def get(self, key: str) -> Any | None:
        client = await self._ensure_client()
        data = await client.get(self._make_key(key))
        if data is None:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt value stored under {key!r}: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        client = await self._ensure_client()
        await client.set(self._make_key(key), json.dumps(value))

    async def delete(self, key: str) -> None:
        client = await self._ensure_client()
        await client.delete(self._make_key(key))

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        """Check if Redis is reachable."""
        client = await self._ensure_client()
        return await client.ping()
