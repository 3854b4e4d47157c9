"""
Exception hierarchy for CipherLedger.

All ledger-specific exceptions inherit from CipherLedgerError for easy catching.
Every error aborts the operation that raised it before any state is written.
"""

from __future__ import annotations

from typing import Any


class CipherLedgerError(Exception):
    """
    Base exception for all CipherLedger errors.

    Catch this to handle any ledger-related exception.

    Example:
        >>> try:
        ...     await ledger.record_debt(...)
        ... except CipherLedgerError as e:
        ...     print(f"Ledger error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(CipherLedgerError):
    """
    Configuration is missing or invalid.

    Raised when:
    - An unknown storage backend or gateway name is requested
    - A gateway is selected without the settings it needs
    """

    pass


class ValidationError(CipherLedgerError):
    """
    Input validation error.

    Raised when:
    - Required identifiers are empty
    - An entry id is reused
    - A debt names the same party on both sides
    - A referenced entry or participant does not exist
    """

    pass


class DuplicateEntryError(ValidationError):
    """An entry with this id is already recorded."""

    def __init__(self, entry_id: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Entry '{entry_id}' already exists", details)
        self.entry_id = entry_id


class SelfDebtError(ValidationError):
    """Creditor and debtor are the same participant."""

    def __init__(self, participant_id: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            f"Creditor and debtor must differ (both are '{participant_id}')", details
        )
        self.participant_id = participant_id


class NotFoundError(ValidationError):
    """
    A referenced record does not exist.

    Example:
        >>> try:
        ...     await ledger.get_debt_entry("missing")
        ... except NotFoundError as e:
        ...     print(e.kind, e.key)
    """

    def __init__(
        self,
        kind: str,
        key: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{kind.capitalize()} '{key}' not found", details)
        self.kind = kind
        self.key = key


class CryptoError(CipherLedgerError):
    """
    A cryptographic check failed.

    Raised when:
    - The gateway rejects an externally produced ciphertext
    - A decryption proof does not bind the claimed cleartext to the ciphertext
    - Public decryption is requested for a handle that was never granted it
    """

    pass


class InvalidCiphertextError(CryptoError):
    """The ciphertext or its input proof was rejected."""

    def __init__(
        self,
        message: str = "Ciphertext rejected by gateway",
        entry_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.entry_id = entry_id


class InvalidProofError(CryptoError):
    """The decryption proof does not attest the claimed cleartext."""

    def __init__(
        self,
        message: str = "Decryption proof is invalid",
        entry_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.entry_id = entry_id


class DecryptionNotAllowedError(CryptoError):
    """The handle carries no public-decryption grant."""

    def __init__(self, handle: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Handle {handle} is not publicly decryptable", details)
        self.handle = handle


class StateError(CipherLedgerError):
    """
    The operation is not allowed in the record's current state.

    Raised when:
    - An entry is verified a second time
    - The ledger lease is held by another writer
    """

    pass


class AlreadyVerifiedError(StateError):
    """The entry's cleartext has already been committed."""

    def __init__(
        self,
        entry_id: str,
        decrypted_amount: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Entry '{entry_id}' is already verified", details)
        self.entry_id = entry_id
        self.decrypted_amount = decrypted_amount


class LedgerBusyError(StateError):
    """Could not obtain the ledger write lease."""

    def __init__(self, operation: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Ledger is busy, could not start '{operation}'", details)
        self.operation = operation


class GatewayError(CipherLedgerError):
    """
    Ciphertext gateway communication error.

    Raised when:
    - The relayer cannot be reached or times out
    - The relayer returns a server error or a malformed response
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url

    def is_server_error(self) -> bool:
        """Check if this is a server-side error."""
        return self.status_code is not None and 500 <= self.status_code < 600
