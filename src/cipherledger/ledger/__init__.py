"""
Ledger module - encrypted debt records for CipherLedger.

Store, aggregation and proof-gated decryption over a shared StorageBackend.
"""

from cipherledger.ledger.aggregation import AggregationEngine
from cipherledger.ledger.lock import LedgerLock
from cipherledger.ledger.store import LedgerStore
from cipherledger.ledger.verifier import DecryptionVerifier

__all__ = [
    "AggregationEngine",
    "DecryptionVerifier",
    "LedgerLock",
    "LedgerStore",
]
