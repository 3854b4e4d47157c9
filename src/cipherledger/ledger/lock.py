"""
Ledger write lease.

Serializes every mutating ledger operation: an in-process asyncio lock
orders coroutines of one process, and a storage-level lease orders processes
that share a backend. While an operation runs the lease is extended in the
background, so a long rescan does not outlive its ttl.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from cipherledger.core.exceptions import LedgerBusyError

if TYPE_CHECKING:
    from cipherledger.storage.base import StorageBackend

logger = logging.getLogger(__name__)

LEDGER_LOCK_KEY = "lock:ledger:writer"


class LedgerLock:
    """
    Exclusive writer lease over the ledger's collections.

    Example:
        >>> lock = LedgerLock(storage)
        >>> async with lock.hold("record_debt"):
        ...     ...
    """

    def __init__(
        self,
        storage: StorageBackend,
        ttl: float = 30,
        retry_count: int = 20,
        retry_delay: float = 0.05,
    ) -> None:
        """
        Initialize lock.

        Args:
            storage: Storage backend (Redis/Memory)
            ttl: Lease time-to-live in seconds; renewed every ttl/3 while held
            retry_count: Number of retries if the lease is held
            retry_delay: Delay between retries
        """
        self._storage = storage
        self._ttl = ttl
        self._retry_count = retry_count
        self._retry_delay = retry_delay
        self._local = asyncio.Lock()

    async def acquire(self) -> str | None:
        """
        Acquire the storage lease.

        Returns:
            lease token if successful, None if still held after all retries
        """
        for i in range(self._retry_count + 1):
            token = await self._storage.acquire_lock(LEDGER_LOCK_KEY, self._ttl)
            if token:
                logger.debug(f"Acquired ledger lease (token: {token[:8]}...)")
                return token

            if i < self._retry_count:
                logger.debug(f"Ledger lease held, retrying in {self._retry_delay}s...")
                await asyncio.sleep(self._retry_delay)

        logger.warning(f"Failed to acquire ledger lease after {self._retry_count} retries")
        return None

    async def release(self, token: str) -> bool:
        """Release a lease obtained from acquire()."""
        result = await self._storage.release_lock(LEDGER_LOCK_KEY, token)
        if not result:
            logger.warning("Ledger lease expired before release")
        return result

    async def _keep_alive(self, token: str) -> None:
        interval = self._ttl / 3
        while True:
            await asyncio.sleep(interval)
            try:
                extended = await self._storage.extend_lock(LEDGER_LOCK_KEY, token, self._ttl)
            except Exception:
                logger.exception("Could not extend ledger lease")
                return
            if not extended:
                logger.error("Ledger lease lost while an operation was running")
                return
            logger.debug(f"Extended ledger lease (token: {token[:8]}...)")

    @contextlib.asynccontextmanager
    async def hold(self, operation: str) -> AsyncIterator[None]:
        """
        Run the body as the only ledger writer.

        Raises:
            LedgerBusyError: If the storage lease cannot be obtained
        """
        async with self._local:
            token = await self.acquire()
            if token is None:
                raise LedgerBusyError(operation)
            keeper = asyncio.create_task(self._keep_alive(token))
            try:
                yield
            finally:
                keeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await keeper
                await self.release(token)
