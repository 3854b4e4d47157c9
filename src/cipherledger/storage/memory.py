"""
In-Memory Storage Backend.

Keeps every collection in process memory. Records are deep-copied on the way
in and out, so callers never share state with the store. Data is lost when
the process ends.
"""

from __future__ import annotations

import time
import uuid
from copy import deepcopy
from typing import Any, NamedTuple

from cipherledger.storage.base import StorageBackend, register_storage_backend


class _Lease(NamedTuple):
    token: str
    expires_at: float


def _matches(data: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    return not filters or all(data.get(k) == v for k, v in filters.items())


class InMemoryStorage(StorageBackend):
    """
    Dict-backed storage for a single process.

    Leases use the monotonic clock, so wall-clock jumps do not release them.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._leases: dict[str, _Lease] = {}

    def _rows(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    async def save(self, collection: str, key: str, data: dict[str, Any]) -> None:
        self._rows(collection)[key] = deepcopy(data)

    async def save_many(self, records: list[tuple[str, str, dict[str, Any]]]) -> None:
        # Copy everything before touching the store so a bad record leaves it unchanged
        staged = [(collection, key, deepcopy(data)) for collection, key, data in records]
        for collection, key, data in staged:
            self._rows(collection)[key] = data

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        data = self._rows(collection).get(key)
        return None if data is None else deepcopy(data)

    async def delete(self, collection: str, key: str) -> bool:
        return self._rows(collection).pop(key, None) is not None

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Rows matching every filter, each tagged with its key as ``_key``."""
        results = [
            {**deepcopy(data), "_key": key}
            for key, data in self._rows(collection).items()
            if _matches(data, filters)
        ]
        end = None if limit is None else offset + limit
        return results[offset:end]

    async def update(self, collection: str, key: str, data: dict[str, Any]) -> bool:
        row = self._rows(collection).get(key)
        if row is None:
            return False
        row.update(deepcopy(data))
        return True

    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        rows = self._rows(collection).values()
        return sum(1 for data in rows if _matches(data, filters))

    async def clear(self, collection: str) -> int:
        rows = self._rows(collection)
        removed = len(rows)
        rows.clear()
        return removed

    # ── leases ───────────────────────────────────────────────────────────

    def _live_lease(self, key: str) -> _Lease | None:
        lease = self._leases.get(key)
        if lease is None or time.monotonic() >= lease.expires_at:
            return None
        return lease

    async def acquire_lock(self, key: str, ttl: float = 30) -> str | None:
        if self._live_lease(key) is not None:
            return None
        token = str(uuid.uuid4())
        self._leases[key] = _Lease(token, time.monotonic() + ttl)
        return token

    async def extend_lock(self, key: str, token: str, ttl: float = 30) -> bool:
        lease = self._live_lease(key)
        if lease is None or lease.token != token:
            return False
        self._leases[key] = _Lease(token, time.monotonic() + ttl)
        return True

    async def release_lock(self, key: str, token: str) -> bool:
        lease = self._leases.get(key)
        if lease is None or lease.token != token:
            return False
        del self._leases[key]
        return True


register_storage_backend("memory", InMemoryStorage)
