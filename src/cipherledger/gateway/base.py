"""
Ciphertext Gateway capability.

The ledger consumes the homomorphic scheme only through this interface and
never inspects ciphertext bytes itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cipherledger.core.types import BytesLike, CiphertextHandle

PUBLIC_SCOPE = "public"


class CiphertextGateway(ABC):
    """
    Abstract base class for ciphertext gateways.

    A gateway turns externally produced ciphertexts into handles, performs
    additive arithmetic on handles, holds decryption grants, and checks
    decryption proofs.
    """

    @abstractmethod
    async def ingest(self, ciphertext: BytesLike, proof: BytesLike) -> CiphertextHandle:
        """
        Accept an external ciphertext with its proof of well-formedness.

        Returns:
            Handle to the encrypted value

        Raises:
            InvalidCiphertextError: If the ciphertext or proof is rejected
        """
        ...

    @abstractmethod
    async def add(self, lhs: CiphertextHandle, rhs: CiphertextHandle) -> CiphertextHandle:
        """Homomorphic ``lhs + rhs``."""
        ...

    @abstractmethod
    async def subtract(self, lhs: CiphertextHandle, rhs: CiphertextHandle) -> CiphertextHandle:
        """Homomorphic ``lhs - rhs``."""
        ...

    @abstractmethod
    async def zero(self) -> CiphertextHandle:
        """Handle to an encrypted zero."""
        ...

    @abstractmethod
    async def grant_public_decryption(self, handle: CiphertextHandle) -> None:
        """Mark ``handle`` as eligible for proof-gated reveal by any party."""
        ...

    @abstractmethod
    async def is_publicly_decryptable(self, handle: CiphertextHandle) -> bool:
        ...

    @abstractmethod
    async def verify_proof(
        self,
        handle: CiphertextHandle,
        cleartext: bytes,
        proof: BytesLike,
    ) -> bool:
        """
        Check that ``proof`` attests ``cleartext`` as the decryption of ``handle``.

        Returns:
            True if the proof is valid
        """
        ...

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        return None


_GATEWAYS: dict[str, type[CiphertextGateway]] = {}


def register_gateway(name: str, gateway_class: type[CiphertextGateway]) -> None:
    """Register a gateway implementation by name."""
    _GATEWAYS[name] = gateway_class


def get_gateway_class(name: str) -> type[CiphertextGateway] | None:
    """Get a registered gateway implementation by name."""
    return _GATEWAYS.get(name)


def list_gateways() -> list[str]:
    """List all registered gateway names."""
    return list(_GATEWAYS.keys())
