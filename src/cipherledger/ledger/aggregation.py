"""
Aggregation Engine.

Recomputes a participant's encrypted net balance from the full entry log on
every call. Nothing is carried between calls, so the result depends only on
the log at the time of the call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cipherledger.core.events import LedgerEventType
from cipherledger.core.exceptions import NotFoundError
from cipherledger.core.logging import get_logger
from cipherledger.core.types import CiphertextHandle, NetBalance

if TYPE_CHECKING:
    from cipherledger.gateway.base import CiphertextGateway
    from cipherledger.ledger.store import LedgerStore


class AggregationEngine:
    """
    Folds signed encrypted contributions into a net balance.

    Entries where the participant is creditor add to the balance, entries
    where they are debtor subtract from it.
    """

    def __init__(self, store: LedgerStore, gateway: CiphertextGateway) -> None:
        self._store = store
        self._gateway = gateway
        self._logger = get_logger("aggregation")

    async def compute_net_balance(self, participant_id: str) -> NetBalance:
        """
        Recompute and store the net balance of ``participant_id``.

        Args:
            participant_id: A participant that appears in at least one entry

        Returns:
            The freshly stored NetBalance

        Raises:
            NotFoundError: If the participant has never appeared in an entry
        """
        async with self._store.serialized("compute_net_balance"):
            if not await self._store.has_participant(participant_id):
                self._logger.warning(f"Net balance requested for unknown participant {participant_id}")
                raise NotFoundError("participant", participant_id)

            balance = await self._fold(participant_id)
            await self._gateway.grant_public_decryption(balance)

            result = NetBalance(participant_id=participant_id, balance_ciphertext=balance)
            await self._store.save_net_balance(result)

        self._logger.info(f"Net balance for {participant_id} is now {balance.short()}")
        self._store.events.emit(
            LedgerEventType.NET_BALANCE_UPDATED,
            participant_id=participant_id,
            balance_ciphertext=balance.hex(),
        )
        return result

    async def _fold(self, participant_id: str) -> CiphertextHandle:
        acc: CiphertextHandle | None = None
        entries = await self._store.entries_in_log_order()
        matched = 0

        for entry in entries:
            if not entry.involves(participant_id):
                continue
            matched += 1
            amount = entry.amount_ciphertext
            if entry.creditor == participant_id:
                acc = amount if acc is None else await self._gateway.add(acc, amount)
            else:
                base = await self._gateway.zero() if acc is None else acc
                acc = await self._gateway.subtract(base, amount)

        self._logger.debug(f"Folded {matched} of {len(entries)} entries for {participant_id}")
        if acc is None:
            # Registered but absent from the log: storage was edited out of band
            raise NotFoundError("participant", participant_id)
        return acc
