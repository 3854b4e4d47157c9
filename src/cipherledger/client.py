"""ConfidentialLedger - Main entry point."""

from __future__ import annotations

from cipherledger.core.config import Config
from cipherledger.core.events import EventCallback, EventEmitter, LedgerEventType
from cipherledger.core.logging import configure_logging, get_logger
from cipherledger.core.types import (
    BytesLike,
    CiphertextHandle,
    DebtEntryView,
    EntryStatus,
    LedgerStats,
    NetBalance,
)
from cipherledger.gateway import CiphertextGateway, get_gateway
from cipherledger.ledger import AggregationEngine, DecryptionVerifier, LedgerLock, LedgerStore
from cipherledger.storage import StorageBackend, get_storage


class ConfidentialLedger:
    """
    Confidential debt ledger.

    Amounts stay encrypted; balances are computed on ciphertexts, and an
    amount is revealed only against a valid decryption proof.

    Example:
        >>> ledger = ConfidentialLedger()
        >>> sealed = ledger.gateway.encrypt_input(120)
        >>> await ledger.record_debt("e1", "alice", "bob", sealed.ciphertext, sealed.proof)
        >>> balance = await ledger.compute_net_balance("alice")
    """

    def __init__(
        self,
        config: Config | None = None,
        storage: StorageBackend | None = None,
        gateway: CiphertextGateway | None = None,
        log_level: int | str | None = None,
    ) -> None:
        """
        Initialize the ledger.

        Args:
            config: Settings (from CIPHERLEDGER_* environment variables if None)
            storage: Storage backend (built from config if None)
            gateway: Ciphertext gateway (built from config if None)
            log_level: Overrides config.log_level
        """
        self._config = config or Config.from_env()

        configure_logging(level=log_level or self._config.log_level)
        self._logger = get_logger("client")

        if storage is None:
            kwargs = {"redis_url": self._config.redis_url} if self._config.storage_backend == "redis" else {}
            storage = get_storage(self._config.storage_backend, **kwargs)
        self._storage = storage
        self._gateway = gateway or get_gateway(self._config)

        self._events = EventEmitter(history_size=self._config.event_history_size)
        self._lock = LedgerLock(
            storage,
            ttl=self._config.lock_ttl,
            retry_count=self._config.lock_retry_count,
            retry_delay=self._config.lock_retry_delay,
        )
        self._store = LedgerStore(storage, self._gateway, self._events, self._lock)
        self._aggregation = AggregationEngine(self._store, self._gateway)
        self._verifier = DecryptionVerifier(
            self._store, self._gateway, amount_bits=self._config.amount_bits
        )

        self._logger.info(
            f"Ledger ready (storage: {type(storage).__name__}, "
            f"gateway: {type(self._gateway).__name__}, env: {self._config.env})"
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def gateway(self) -> CiphertextGateway:
        return self._gateway

    @property
    def events(self) -> EventEmitter:
        return self._events

    # ── operations ───────────────────────────────────────────────────────

    async def record_debt(
        self,
        entry_id: str,
        creditor: str,
        debtor: str,
        ciphertext: BytesLike,
        proof: BytesLike,
        label: str = "",
    ) -> None:
        """Record a confidential debt owed by ``debtor`` to ``creditor``."""
        await self._store.record_debt(entry_id, creditor, debtor, ciphertext, proof, label)

    async def verify_decryption(
        self,
        entry_id: str,
        cleartext: BytesLike,
        proof: BytesLike,
    ) -> int:
        """Commit an entry's cleartext amount against a decryption proof."""
        return await self._verifier.verify_decryption(entry_id, cleartext, proof)

    async def compute_net_balance(self, participant_id: str) -> NetBalance:
        """Recompute a participant's encrypted net balance from the full log."""
        return await self._aggregation.compute_net_balance(participant_id)

    # ── queries ──────────────────────────────────────────────────────────

    async def get_debt_entry(self, entry_id: str) -> DebtEntryView:
        return await self._store.get_debt_entry(entry_id)

    async def get_encrypted_amount(self, entry_id: str) -> CiphertextHandle:
        return await self._store.get_encrypted_amount(entry_id)

    async def get_net_balance(self, participant_id: str) -> CiphertextHandle:
        """Last computed balance handle; may lag behind newly recorded entries."""
        return (await self._store.get_net_balance(participant_id)).balance_ciphertext

    async def get_all_entry_ids(self) -> list[str]:
        return await self._store.get_all_entry_ids()

    async def get_all_participant_ids(self) -> list[str]:
        return await self._store.get_all_participant_ids()

    async def list_entries(self, status: EntryStatus | None = None) -> list[DebtEntryView]:
        """Entries in log order, optionally only verified or only pending ones."""
        return await self._store.list_entries(status)

    async def get_stats(self) -> LedgerStats:
        return await self._store.get_stats()

    async def is_available(self) -> bool:
        """True when both storage and gateway respond."""
        storage_ok = await self._storage.health_check()
        gateway_ok = await self._gateway.health_check()
        if not (storage_ok and gateway_ok):
            self._logger.warning(f"Ledger unavailable (storage: {storage_ok}, gateway: {gateway_ok})")
        return storage_ok and gateway_ok

    # ── notifications ────────────────────────────────────────────────────

    def subscribe(self, callback: EventCallback, event_type: LedgerEventType | None = None) -> None:
        self._events.subscribe(callback, event_type)

    def unsubscribe(self, callback: EventCallback, event_type: LedgerEventType | None = None) -> bool:
        return self._events.unsubscribe(callback, event_type)

    async def close(self) -> None:
        await self._gateway.close()
        await self._storage.close()

    async def __aenter__(self) -> ConfidentialLedger:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
