"""
Abstract Storage Backend for CipherLedger.

Provides the pluggable persistence layer behind the ledger's entry table,
entry log, participant registry and balance table.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    Provides simple CRUD operations for storing/retrieving data plus a
    token-owned lease used to serialize ledger writers.
    Implementations can use any persistence layer (memory, Redis, SQLite, etc.)
    """

    @abstractmethod
    async def save(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> None:
        """
        Save data to storage.

        Args:
            collection: Collection/table name
            key: Unique key for the record
            data: Data to store (must be JSON-serializable)
        """
        ...

    @abstractmethod
    async def save_many(self, records: list[tuple[str, str, dict[str, Any]]]) -> None:
        """
        Save several records as one unit.

        Either every record is written or none is.

        Args:
            records: (collection, key, data) triples
        """
        ...

    @abstractmethod
    async def get(
        self,
        collection: str,
        key: str,
    ) -> dict[str, Any] | None:
        """
        Get data from storage.

        Args:
            collection: Collection/table name
            key: Record key

        Returns:
            Data dict or None if not found
        """
        ...

    @abstractmethod
    async def delete(
        self,
        collection: str,
        key: str,
    ) -> bool:
        """
        Delete data from storage.

        Args:
            collection: Collection/table name
            key: Record key

        Returns:
            True if deleted, False if not found
        """
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Query data with optional filters.

        Results carry their record key under ``_key``. Ordering is not
        guaranteed; callers that need an order must sort on a stored field.

        Args:
            collection: Collection/table name
            filters: Key-value pairs to filter by (exact match)
            limit: Maximum records to return
            offset: Number of records to skip

        Returns:
            List of matching records
        """
        ...

    @abstractmethod
    async def update(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> bool:
        """
        Update existing data.

        Args:
            collection: Collection/table name
            key: Record key
            data: Fields to update (merged with existing)

        Returns:
            True if updated, False if not found
        """
        ...

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """
        Count records in collection.

        Args:
            collection: Collection/table name
            filters: Optional filters

        Returns:
            Count of matching records
        """
        ...

    @abstractmethod
    async def clear(self, collection: str) -> int:
        """
        Clear all records from a collection.

        Args:
            collection: Collection/table name

        Returns:
            Number of records deleted
        """
        ...

    @abstractmethod
    async def acquire_lock(self, key: str, ttl: float = 30) -> str | None:
        """
        Acquire a lease on ``key``.

        Args:
            key: Lock key (e.g. "lock:ledger:writer")
            ttl: Seconds before an abandoned lease expires

        Returns:
            Ownership token if acquired, None if already held
        """
        ...

    @abstractmethod
    async def extend_lock(self, key: str, token: str, ttl: float = 30) -> bool:
        """
        Push back the expiry of a lease still owned by ``token``.

        Returns:
            True if extended, False if the lease expired or changed hands
        """
        ...

    @abstractmethod
    async def release_lock(self, key: str, token: str) -> bool:
        """
        Release a lease previously acquired with ``token``.

        Returns:
            True if released, False if not held or held by another token
        """
        ...

    async def health_check(self) -> bool:
        """
        Check if storage is healthy and connected.

        Returns:
            True if healthy
        """
        return True

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None


# Storage backend registry for dependency injection
_STORAGE_BACKENDS: dict[str, type[StorageBackend]] = {}


def register_storage_backend(name: str, backend_class: type[StorageBackend]) -> None:
    """Register a storage backend by name."""
    _STORAGE_BACKENDS[name] = backend_class


def get_storage_backend(name: str) -> type[StorageBackend] | None:
    """Get a registered storage backend by name."""
    return _STORAGE_BACKENDS.get(name)


def list_storage_backends() -> list[str]:
    """List all registered storage backend names."""
    return list(_STORAGE_BACKENDS.keys())
