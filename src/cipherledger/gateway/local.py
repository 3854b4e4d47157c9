"""
In-process coprocessor gateway.

Simulates the external encryption service for development and tests:
- client inputs are 32-byte words sealed with AES-256-GCM under a network key
- input proofs are Ed25519 signatures from an input-verifier key
- decryption proofs are Ed25519 signatures from a KMS key over (handle, cleartext)

Encrypted values live in a private table keyed by handle; arithmetic wraps
modulo 2**amount_bits. Derived handles are hashes of the operation and its
operands, so recomputing a balance from the same log yields the same handle.
"""

from __future__ import annotations

import hashlib
import os

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from cipherledger.core.encoding import decode_uint, encode_uint
from cipherledger.core.exceptions import DecryptionNotAllowedError, InvalidCiphertextError
from cipherledger.core.logging import get_logger
from cipherledger.core.types import (
    BytesLike,
    CiphertextHandle,
    DecryptionResult,
    EncryptedInput,
    to_bytes,
)
from cipherledger.gateway.base import PUBLIC_SCOPE, CiphertextGateway, register_gateway

NONCE_SIZE = 12
TAG_SIZE = 16
INPUT_AAD = b"cipherledger/input/v1"


def _digest(*parts: bytes) -> bytes:
    h = hashlib.sha256()
    for part in parts:
        h.update(part)
    return h.digest()


class LocalGateway(CiphertextGateway):
    """
    Local stand-in for the encryption coprocessor.

    Also plays the client toolkit (``encrypt_input``) and the key management
    service (``public_decrypt``) so the full reveal protocol can run in-process.

    Example:
        >>> gateway = LocalGateway()
        >>> sealed = gateway.encrypt_input(250)
        >>> handle = await gateway.ingest(sealed.ciphertext, sealed.proof)
    """

    def __init__(
        self,
        amount_bits: int = 32,
        network_key: bytes | None = None,
        input_signer: Ed25519PrivateKey | None = None,
        kms_signer: Ed25519PrivateKey | None = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            amount_bits: Width of encrypted unsigned integers
            network_key: 32-byte AES key sealing client inputs (random if None)
            input_signer: Key attesting input well-formedness (random if None)
            kms_signer: Key attesting decryptions (random if None)
        """
        self._bits = amount_bits
        self._modulus = 1 << amount_bits
        self._aead = AESGCM(network_key or AESGCM.generate_key(bit_length=256))
        self._input_signer = input_signer or Ed25519PrivateKey.generate()
        self._kms_signer = kms_signer or Ed25519PrivateKey.generate()
        self._input_verifier = self._input_signer.public_key()
        self._kms_verifier = self._kms_signer.public_key()

        self._values: dict[bytes, int] = {}
        self._acl: set[tuple[bytes, str]] = set()
        self._logger = get_logger("gateway.local")

    @property
    def amount_bits(self) -> int:
        return self._bits

    # ── client toolkit side ──────────────────────────────────────────────

    def encrypt_input(self, amount: int) -> EncryptedInput:
        """Seal ``amount`` and sign it the way the client toolkit would."""
        word = encode_uint(amount, self._bits)
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = nonce + self._aead.encrypt(nonce, word, INPUT_AAD)
        proof = self._input_signer.sign(_digest(ciphertext))
        return EncryptedInput(ciphertext=ciphertext, proof=proof)

    async def public_decrypt(self, handle: CiphertextHandle) -> DecryptionResult:
        """
        Decrypt a publicly decryptable handle and sign the result.

        Raises:
            DecryptionNotAllowedError: If the handle was never granted
        """
        if (handle.value, PUBLIC_SCOPE) not in self._acl:
            raise DecryptionNotAllowedError(handle.hex())
        cleartext = encode_uint(self._values[handle.value], self._bits)
        proof = self._kms_signer.sign(_digest(b"decrypt", handle.value, cleartext))
        return DecryptionResult(handle=handle, cleartext=cleartext, proof=proof)

    # ── gateway capability ───────────────────────────────────────────────

    async def ingest(self, ciphertext: BytesLike, proof: BytesLike) -> CiphertextHandle:
        try:
            raw = to_bytes(ciphertext)
            proof_bytes = to_bytes(proof)
        except ValueError as e:
            raise InvalidCiphertextError(f"Ciphertext is not valid hex: {e}") from e

        if len(raw) < NONCE_SIZE + TAG_SIZE:
            raise InvalidCiphertextError("Ciphertext is truncated")

        try:
            self._input_verifier.verify(proof_bytes, _digest(raw))
        except InvalidSignature:
            raise InvalidCiphertextError("Input proof does not match ciphertext") from None

        try:
            word = self._aead.decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:], INPUT_AAD)
            value = decode_uint(word, self._bits)
        except (InvalidTag, ValueError):
            raise InvalidCiphertextError("Ciphertext is not a well-formed encrypted amount") from None

        handle = CiphertextHandle(_digest(b"input", raw))
        self._values[handle.value] = value
        self._logger.debug(f"Ingested input as {handle.short()}")
        return handle

    def _lookup(self, handle: CiphertextHandle) -> int:
        try:
            return self._values[handle.value]
        except KeyError:
            raise InvalidCiphertextError(f"Unknown handle {handle.short()}") from None

    def _derive(self, op: bytes, value: int, *operands: CiphertextHandle) -> CiphertextHandle:
        handle = CiphertextHandle(_digest(op, *(h.value for h in operands)))
        self._values[handle.value] = value % self._modulus
        return handle

    async def add(self, lhs: CiphertextHandle, rhs: CiphertextHandle) -> CiphertextHandle:
        return self._derive(b"add", self._lookup(lhs) + self._lookup(rhs), lhs, rhs)

    async def subtract(self, lhs: CiphertextHandle, rhs: CiphertextHandle) -> CiphertextHandle:
        return self._derive(b"sub", self._lookup(lhs) - self._lookup(rhs), lhs, rhs)

    async def zero(self) -> CiphertextHandle:
        handle = CiphertextHandle(_digest(b"trivial", encode_uint(0, self._bits)))
        self._values[handle.value] = 0
        return handle

    async def grant_public_decryption(self, handle: CiphertextHandle) -> None:
        self._lookup(handle)
        self._acl.add((handle.value, PUBLIC_SCOPE))

    async def is_publicly_decryptable(self, handle: CiphertextHandle) -> bool:
        return (handle.value, PUBLIC_SCOPE) in self._acl

    async def verify_proof(
        self,
        handle: CiphertextHandle,
        cleartext: bytes,
        proof: BytesLike,
    ) -> bool:
        try:
            self._kms_verifier.verify(to_bytes(proof), _digest(b"decrypt", handle.value, cleartext))
        except (InvalidSignature, ValueError):
            return False
        return True


register_gateway("local", LocalGateway)
