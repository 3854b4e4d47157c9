"""
Redis Storage Backend.

Shared storage backend for several ledger processes. The write lease lives in
Redis too, so processes pointed at the same instance serialize their writes.
Requires redis-py package.
"""

from __future__ import annotations

import json
import os
import uuid
from typing import Any

from cipherledger.storage.base import StorageBackend, register_storage_backend


class RedisStorage(StorageBackend):
    """
    Redis storage backend.

    Uses Redis for persistent storage. Suitable for production.
    Requires: pip install redis
    """

    # Only delete the lease if the stored token is ours
    _RELEASE_LOCK_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    # Only extend the lease if the stored token is ours
    _EXTEND_LOCK_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("pexpire", KEYS[1], ARGV[2])
    else
        return 0
    end
    """

    def __init__(
        self,
        redis_url: str | None = None,
        prefix: str = "cipherledger",
    ) -> None:
        """
        Initialize Redis storage.

        Args:
            redis_url: Redis connection URL (or from CIPHERLEDGER_REDIS_URL env)
            prefix: Key prefix for all storage keys
        """
        self._redis_url = redis_url or os.environ.get(
            "CIPHERLEDGER_REDIS_URL",
            "redis://localhost:6379/0",
        )
        self._prefix = prefix
        self._client = None

    def _get_client(self):
        """Lazy-load Redis client."""
        if self._client is None:
            try:
                import redis.asyncio as redis
            except ImportError:
                raise ImportError(
                    "redis package required for RedisStorage. Install with: pip install redis"
                ) from None
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    def _make_key(self, collection: str, key: str) -> str:
        """Create Redis key from collection and key."""
        return f"{self._prefix}:{collection}:{key}"

    def _index_key(self, collection: str) -> str:
        return f"{self._prefix}:{collection}:_index"

    def _lock_key(self, key: str) -> str:
        return f"{self._prefix}:locks:{key}"

    async def save(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> None:
        """Save data to Redis."""
        client = self._get_client()
        async with client.pipeline(transaction=True) as pipe:
            pipe.set(self._make_key(collection, key), json.dumps(data))
            pipe.sadd(self._index_key(collection), key)
            await pipe.execute()

    async def save_many(self, records: list[tuple[str, str, dict[str, Any]]]) -> None:
        """Save several records in one MULTI/EXEC transaction."""
        payloads = [(collection, key, json.dumps(data)) for collection, key, data in records]
        client = self._get_client()
        async with client.pipeline(transaction=True) as pipe:
            for collection, key, payload in payloads:
                pipe.set(self._make_key(collection, key), payload)
                pipe.sadd(self._index_key(collection), key)
            await pipe.execute()

    async def get(
        self,
        collection: str,
        key: str,
    ) -> dict[str, Any] | None:
        """Get data from Redis."""
        client = self._get_client()
        data = await client.get(self._make_key(collection, key))
        if data is None:
            return None
        return json.loads(data)

    async def delete(
        self,
        collection: str,
        key: str,
    ) -> bool:
        """Delete data from Redis."""
        client = self._get_client()
        result = await client.delete(self._make_key(collection, key))
        await client.srem(self._index_key(collection), key)
        return result > 0

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query data with optional filters."""
        client = self._get_client()
        keys = await client.smembers(self._index_key(collection))

        results = []
        for key in keys:
            data = await self.get(collection, key)
            if data is None:
                continue

            if filters:
                match = True
                for filter_key, filter_value in filters.items():
                    if data.get(filter_key) != filter_value:
                        match = False
                        break
                if not match:
                    continue

            data["_key"] = key
            results.append(data)

        results = results[offset:]
        if limit is not None:
            results = results[:limit]

        return results

    async def update(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> bool:
        """Update existing data."""
        existing = await self.get(collection, key)
        if existing is None:
            return False

        existing.update(data)
        await self.save(collection, key, existing)
        return True

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count records in collection."""
        if filters:
            results = await self.query(collection, filters)
            return len(results)

        client = self._get_client()
        return await client.scard(self._index_key(collection))

    async def clear(self, collection: str) -> int:
        """Clear all records from a collection."""
        client = self._get_client()
        keys = await client.smembers(self._index_key(collection))

        for key in keys:
            await self.delete(collection, key)

        return len(keys)

    async def acquire_lock(
        self,
        key: str,
        ttl: float = 30,
    ) -> str | None:
        """
        Acquire a distributed lock with ownership token (Redis SET NX).

        Args:
            key: Lock key (e.g. "lock:ledger:writer")
            ttl: TTL in seconds (fractions allowed)

        Returns:
            Unique ownership token if acquired, None if already held
        """
        client = self._get_client()
        token = str(uuid.uuid4())
        result = await client.set(self._lock_key(key), token, nx=True, px=max(1, int(ttl * 1000)))
        if result:
            return token
        return None

    async def extend_lock(self, key: str, token: str, ttl: float = 30) -> bool:
        """Extend a lease we still own using Lua check-and-pexpire."""
        client = self._get_client()
        result = await client.eval(
            self._EXTEND_LOCK_SCRIPT, 1, self._lock_key(key), token, max(1, int(ttl * 1000))
        )
        return int(result) > 0

    async def release_lock(
        self,
        key: str,
        token: str,
    ) -> bool:
        """Release a lock safely using Lua check-and-delete."""
        client = self._get_client()
        result = await client.eval(
            self._RELEASE_LOCK_SCRIPT, 1, self._lock_key(key), token
        )
        return int(result) > 0

    async def health_check(self) -> bool:
        """Check Redis connection."""
        try:
            client = self._get_client()
            await client.ping()
            return True
        except Exception:
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None


register_storage_backend("redis", RedisStorage)
