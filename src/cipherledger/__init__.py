"""
CipherLedger - Confidential debt ledger over additively homomorphic ciphertexts.

Usage:
    >>> from cipherledger import ConfidentialLedger
    >>>
    >>> ledger = ConfidentialLedger()
    >>> sealed = ledger.gateway.encrypt_input(120)
    >>> await ledger.record_debt("e1", "alice", "bob", sealed.ciphertext, sealed.proof)
    >>> await ledger.compute_net_balance("alice")
    >>>
    >>> handle = await ledger.get_encrypted_amount("e1")
    >>> reveal = await ledger.gateway.public_decrypt(handle)
    >>> await ledger.verify_decryption("e1", reveal.cleartext, reveal.proof)
"""

from cipherledger.client import ConfidentialLedger
from cipherledger.core.config import Config
from cipherledger.core.encoding import decode_uint, encode_uint, to_signed
from cipherledger.core.events import EventEmitter, LedgerEvent, LedgerEventType
from cipherledger.core.exceptions import (
    AlreadyVerifiedError,
    CipherLedgerError,
    ConfigurationError,
    CryptoError,
    DecryptionNotAllowedError,
    DuplicateEntryError,
    GatewayError,
    InvalidCiphertextError,
    InvalidProofError,
    LedgerBusyError,
    NotFoundError,
    SelfDebtError,
    StateError,
    ValidationError,
)
from cipherledger.core.types import (
    CiphertextHandle,
    DebtEntry,
    DebtEntryView,
    DecryptionResult,
    EncryptedInput,
    EntryStatus,
    LedgerStats,
    NetBalance,
)
from cipherledger.gateway import CiphertextGateway, LocalGateway, RelayerGateway

__version__ = "0.1.0"

__all__ = [
    "ConfidentialLedger",
    "Config",
    # Gateways
    "CiphertextGateway",
    "LocalGateway",
    "RelayerGateway",
    # Types
    "CiphertextHandle",
    "DebtEntry",
    "DebtEntryView",
    "DecryptionResult",
    "EncryptedInput",
    "EntryStatus",
    "LedgerStats",
    "NetBalance",
    # Events
    "EventEmitter",
    "LedgerEvent",
    "LedgerEventType",
    # Encoding
    "decode_uint",
    "encode_uint",
    "to_signed",
    # Exceptions
    "AlreadyVerifiedError",
    "CipherLedgerError",
    "ConfigurationError",
    "CryptoError",
    "DecryptionNotAllowedError",
    "DuplicateEntryError",
    "GatewayError",
    "InvalidCiphertextError",
    "InvalidProofError",
    "LedgerBusyError",
    "NotFoundError",
    "SelfDebtError",
    "StateError",
    "ValidationError",
]
