"""
Storage backends for CipherLedger.

Provides pluggable persistence for the entry table, entry log, participant
registry and balance table.

Configuration via environment:
    CIPHERLEDGER_STORAGE_BACKEND=memory  # or 'redis'
    CIPHERLEDGER_REDIS_URL=redis://localhost:6379/0

Example:
    >>> from cipherledger.storage import get_storage, InMemoryStorage, RedisStorage
    >>>
    >>> # Get storage from environment
    >>> storage = get_storage()
    >>>
    >>> # Or create specific backend
    >>> storage = InMemoryStorage()
    >>> storage = RedisStorage(redis_url="redis://localhost:6379")
"""

from __future__ import annotations

import os
from typing import Any

from cipherledger.core.exceptions import ConfigurationError
from cipherledger.storage.base import (
    StorageBackend,
    get_storage_backend,
    list_storage_backends,
    register_storage_backend,
)
from cipherledger.storage.memory import InMemoryStorage
from cipherledger.storage.redis import RedisStorage


def get_storage(backend_name: str | None = None, **kwargs: Any) -> StorageBackend:
    """
    Get storage backend from environment or by name.

    Args:
        backend_name: Backend name, or None to read from CIPHERLEDGER_STORAGE_BACKEND env
        **kwargs: Passed to the backend constructor (e.g. redis_url)

    Returns:
        StorageBackend instance

    Raises:
        ConfigurationError: If backend name is unknown
    """
    if backend_name is None:
        backend_name = os.environ.get("CIPHERLEDGER_STORAGE_BACKEND", "memory")

    backend_class = get_storage_backend(backend_name)

    if backend_class is None:
        available = list_storage_backends()
        raise ConfigurationError(
            f"Unknown storage backend: '{backend_name}'. Available: {', '.join(available)}"
        )

    return backend_class(**kwargs)


__all__ = [
    "StorageBackend",
    "InMemoryStorage",
    "RedisStorage",
    "get_storage",
    "get_storage_backend",
    "list_storage_backends",
    "register_storage_backend",
]
