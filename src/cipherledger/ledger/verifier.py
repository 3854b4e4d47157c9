"""
Decryption Verifier.

Commits a claimed cleartext into an entry only after the gateway confirms the
proof binds it to the entry's ciphertext. An entry moves from pending to
verified once and never back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cipherledger.core.encoding import decode_uint
from cipherledger.core.events import LedgerEventType
from cipherledger.core.exceptions import AlreadyVerifiedError, InvalidProofError
from cipherledger.core.logging import get_logger
from cipherledger.core.types import BytesLike, to_bytes

if TYPE_CHECKING:
    from cipherledger.gateway.base import CiphertextGateway
    from cipherledger.ledger.store import LedgerStore


class DecryptionVerifier:
    """One-shot, proof-gated reveal of an entry's amount."""

    def __init__(
        self,
        store: LedgerStore,
        gateway: CiphertextGateway,
        amount_bits: int = 32,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._amount_bits = amount_bits
        self._logger = get_logger("verifier")

    async def verify_decryption(
        self,
        entry_id: str,
        cleartext: BytesLike,
        proof: BytesLike,
    ) -> int:
        """
        Verify and commit the cleartext amount of an entry.

        Args:
            entry_id: Entry to reveal
            cleartext: One 32-byte big-endian word holding the amount
            proof: Decryption proof from the key management service

        Returns:
            The committed amount

        Raises:
            NotFoundError: If the entry does not exist
            AlreadyVerifiedError: If the entry was verified before
            InvalidProofError: If the proof fails or the cleartext is malformed
        """
        async with self._store.serialized("verify_decryption"):
            entry = await self._store.get_entry(entry_id)
            if entry.verified:
                self._logger.warning(f"Entry {entry_id} is already verified")
                raise AlreadyVerifiedError(entry_id, entry.decrypted_amount)

            try:
                word = to_bytes(cleartext)
            except ValueError as e:
                raise InvalidProofError(f"Cleartext is not valid hex: {e}", entry_id) from e

            if not await self._gateway.verify_proof(entry.amount_ciphertext, word, proof):
                self._logger.warning(f"Rejected decryption proof for entry {entry_id}")
                raise InvalidProofError(entry_id=entry_id)

            try:
                amount = decode_uint(word, self._amount_bits)
            except ValueError as e:
                self._logger.warning(f"Malformed cleartext for entry {entry_id}: {e}")
                raise InvalidProofError(f"Cleartext is malformed: {e}", entry_id) from e

            await self._store.commit_decryption(entry_id, amount)

        self._logger.info(f"Entry {entry_id} verified")
        self._store.events.emit(
            LedgerEventType.DECRYPTION_VERIFIED,
            entry_id=entry_id,
            decrypted_amount=amount,
        )
        return amount
