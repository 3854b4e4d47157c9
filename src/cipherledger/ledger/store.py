"""
Ledger Store.

Owns the entry table, the append-only entry log, the participant registry
and the balance table. Nothing outside this class writes those collections.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from cipherledger.core.events import EventEmitter, LedgerEventType
from cipherledger.core.exceptions import (
    DuplicateEntryError,
    InvalidCiphertextError,
    NotFoundError,
    SelfDebtError,
    ValidationError,
)
from cipherledger.core.logging import get_logger
from cipherledger.core.types import (
    BytesLike,
    CiphertextHandle,
    DebtEntry,
    DebtEntryView,
    EntryStatus,
    LedgerStats,
    NetBalance,
)
from cipherledger.ledger.lock import LedgerLock

if TYPE_CHECKING:
    from cipherledger.gateway.base import CiphertextGateway
    from cipherledger.storage.base import StorageBackend


class LedgerStore:
    """
    Storage-backed owner of every ledger record.

    Ordered views (entry log, participant registry) are rebuilt from stored
    sequence numbers, so they do not depend on backend iteration order.
    """

    ENTRIES = "debt_entries"
    ENTRY_LOG = "entry_log"
    PARTICIPANTS = "participants"
    BALANCES = "net_balances"

    def __init__(
        self,
        storage: StorageBackend,
        gateway: CiphertextGateway,
        events: EventEmitter | None = None,
        lock: LedgerLock | None = None,
    ) -> None:
        """
        Initialize store.

        Args:
            storage: The unified storage backend (InMemory, Redis, etc.)
            gateway: Ciphertext gateway used to ingest amounts
            events: Emitter for ledger notifications
            lock: Writer lease shared with the other ledger components
        """
        self._storage = storage
        self._gateway = gateway
        self._events = events or EventEmitter()
        self._lock = lock or LedgerLock(storage)
        self._logger = get_logger("store")

    @property
    def events(self) -> EventEmitter:
        return self._events

    @asynccontextmanager
    async def serialized(self, operation: str) -> AsyncIterator[None]:
        """Run one ledger mutation exclusively."""
        async with self._lock.hold(operation):
            yield

    # ── mutations ────────────────────────────────────────────────────────

    async def record_debt(
        self,
        entry_id: str,
        creditor: str,
        debtor: str,
        ciphertext: BytesLike,
        proof: BytesLike,
        label: str = "",
    ) -> DebtEntryView:
        """
        Record a new confidential debt.

        Args:
            entry_id: Caller-assigned unique id
            creditor: Participant owed the amount
            debtor: Participant owing the amount
            ciphertext: Encrypted amount from the client toolkit
            proof: Proof that the ciphertext is well-formed
            label: Optional description

        Returns:
            Read-only view of the stored entry

        Raises:
            ValidationError: If an identifier is empty
            DuplicateEntryError: If entry_id is already recorded
            SelfDebtError: If creditor equals debtor
            InvalidCiphertextError: If the gateway rejects the ciphertext
        """
        for name, value in (("entry_id", entry_id), ("creditor", creditor), ("debtor", debtor)):
            if not isinstance(value, str) or not value:
                raise ValidationError(f"{name} must be a non-empty string")

        async with self.serialized("record_debt"):
            if await self._storage.get(self.ENTRIES, entry_id) is not None:
                self._logger.warning(f"Rejected duplicate entry {entry_id}")
                raise DuplicateEntryError(entry_id)

            if creditor == debtor:
                self._logger.warning(f"Rejected self-debt entry {entry_id}")
                raise SelfDebtError(creditor)

            try:
                handle = await self._gateway.ingest(ciphertext, proof)
            except InvalidCiphertextError as e:
                e.entry_id = entry_id
                self._logger.warning(f"Rejected ciphertext for entry {entry_id}: {e.message}")
                raise
            if not handle.is_initialized:
                self._logger.warning(f"Gateway returned uninitialized handle for {entry_id}")
                raise InvalidCiphertextError("Gateway returned an uninitialized handle", entry_id)

            await self._gateway.grant_public_decryption(handle)

            sequence = await self._storage.count(self.ENTRY_LOG)
            entry = DebtEntry(
                id=entry_id,
                creditor=creditor,
                debtor=debtor,
                amount_ciphertext=handle,
                label=label,
                sequence=sequence,
            )
            records = [(self.ENTRIES, entry_id, entry.to_dict())]
            records += await self._participant_rows(creditor, debtor)
            records.append(
                (self.ENTRY_LOG, f"{sequence:012d}", {"entry_id": entry_id, "sequence": sequence})
            )
            # One batch: a storage failure leaves entry, registry and log untouched
            await self._storage.save_many(records)

        self._logger.info(f"Recorded entry {entry_id} ({creditor} <- {debtor}) as {handle.short()}")
        self._events.emit(
            LedgerEventType.DEBT_RECORDED,
            entry_id=entry_id,
            creditor=creditor,
            debtor=debtor,
        )
        return entry.view()

    async def _participant_rows(self, *participant_ids: str) -> list[tuple[str, str, dict[str, Any]]]:
        """Registry rows for ids not seen before, creditor first."""
        sequence = await self._storage.count(self.PARTICIPANTS)
        rows = []
        for participant_id in participant_ids:
            if await self.has_participant(participant_id):
                continue
            rows.append((self.PARTICIPANTS, participant_id, {"id": participant_id, "sequence": sequence}))
            self._logger.debug(f"Registering participant {participant_id} at position {sequence}")
            sequence += 1
        return rows

    async def commit_decryption(self, entry_id: str, amount: int) -> None:
        """Write the verified cleartext. Callers hold the writer lease."""
        updated = await self._storage.update(
            self.ENTRIES,
            entry_id,
            {"decrypted_amount": str(amount), "verified": True},
        )
        if not updated:
            raise NotFoundError("entry", entry_id)

    async def save_net_balance(self, balance: NetBalance) -> None:
        """Overwrite a participant's balance. Callers hold the writer lease."""
        await self._storage.save(self.BALANCES, balance.participant_id, balance.to_dict())

    # ── reads ────────────────────────────────────────────────────────────

    async def get_entry(self, entry_id: str) -> DebtEntry:
        """Full entry including its ciphertext handle, for ledger components."""
        data = await self._storage.get(self.ENTRIES, entry_id)
        if data is None:
            raise NotFoundError("entry", entry_id)
        return DebtEntry.from_dict(data)

    async def get_debt_entry(self, entry_id: str) -> DebtEntryView:
        return (await self.get_entry(entry_id)).view()

    async def get_encrypted_amount(self, entry_id: str) -> CiphertextHandle:
        return (await self.get_entry(entry_id)).amount_ciphertext

    async def get_net_balance(self, participant_id: str) -> NetBalance:
        data = await self._storage.get(self.BALANCES, participant_id)
        if data is None:
            raise NotFoundError("net balance", participant_id)
        return NetBalance.from_dict(data)

    async def has_participant(self, participant_id: str) -> bool:
        return await self._storage.get(self.PARTICIPANTS, participant_id) is not None

    async def _ordered(self, collection: str, field: str) -> list[str]:
        rows: list[dict[str, Any]] = await self._storage.query(collection)
        rows.sort(key=lambda row: row["sequence"])
        return [row[field] for row in rows]

    async def get_all_entry_ids(self) -> list[str]:
        """Entry ids in creation order."""
        return await self._ordered(self.ENTRY_LOG, "entry_id")

    async def get_all_participant_ids(self) -> list[str]:
        """Participant ids in first-seen order."""
        return await self._ordered(self.PARTICIPANTS, "id")

    async def entries_in_log_order(self) -> list[DebtEntry]:
        """Every entry, following the entry log."""
        by_id = {row["id"]: row for row in await self._storage.query(self.ENTRIES)}
        return [DebtEntry.from_dict(by_id[entry_id]) for entry_id in await self.get_all_entry_ids()]

    async def list_entries(self, status: EntryStatus | None = None) -> list[DebtEntryView]:
        entries = await self.entries_in_log_order()
        return [e.view() for e in entries if status is None or e.status == status]

    async def get_stats(self) -> LedgerStats:
        total = await self._storage.count(self.ENTRIES)
        verified = await self._storage.count(self.ENTRIES, {"verified": True})
        return LedgerStats(
            total_entries=total,
            verified_entries=verified,
            pending_entries=total - verified,
            participants=await self._storage.count(self.PARTICIPANTS),
        )
