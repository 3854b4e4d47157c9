"""
Type definitions for CipherLedger.

This module contains the enums, data classes, and type definitions
used throughout the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeAlias

HANDLE_SIZE = 32

# Raw bytes or 0x-prefixed hex, as produced by the client-side toolkit
BytesLike: TypeAlias = bytes | str


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_bytes(value: BytesLike) -> bytes:
    """Accept raw bytes or a 0x-prefixed hex string."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = value[2:] if value.startswith(("0x", "0X")) else value
    return bytes.fromhex(text)


@dataclass(frozen=True)
class CiphertextHandle:
    """
    Opaque reference to an encrypted value held by the gateway.

    The ledger never looks inside a handle; it only passes handles through
    gateway capability calls and stores their hex form.
    """

    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != HANDLE_SIZE:
            raise ValueError(f"Handle must be {HANDLE_SIZE} bytes, got {len(self.value)}")

    @classmethod
    def from_hex(cls, text: str) -> CiphertextHandle:
        return cls(to_bytes(text))

    @classmethod
    def uninitialized(cls) -> CiphertextHandle:
        return cls(bytes(HANDLE_SIZE))

    @property
    def is_initialized(self) -> bool:
        return any(self.value)

    def hex(self) -> str:
        return "0x" + self.value.hex()

    def short(self) -> str:
        """Abbreviated form for log lines."""
        h = self.value.hex()
        return f"0x{h[:8]}…{h[-4:]}"

    def __str__(self) -> str:
        return self.hex()


class EntryStatus(str, Enum):
    """Lifecycle of a debt entry: Created -> Verified, never back."""

    PENDING = "pending"
    VERIFIED = "verified"


@dataclass
class DebtEntry:
    """
    A single confidential debt obligation as stored by the ledger.

    Attributes:
        id: Caller-assigned unique key
        creditor: Participant owed the amount
        debtor: Participant owing the amount
        amount_ciphertext: Encrypted amount, never replaced
        created_at: When the entry was recorded (UTC)
        decrypted_amount: Committed cleartext, meaningful only once verified
        verified: Whether a decryption proof has been accepted
        label: Free-text description supplied by the submitter
        sequence: Position in the entry log
    """

    id: str
    creditor: str
    debtor: str
    amount_ciphertext: CiphertextHandle
    created_at: datetime = field(default_factory=utcnow)
    decrypted_amount: int = 0
    verified: bool = False
    label: str = ""
    sequence: int = 0

    @property
    def status(self) -> EntryStatus:
        return EntryStatus.VERIFIED if self.verified else EntryStatus.PENDING

    def involves(self, participant_id: str) -> bool:
        return participant_id in (self.creditor, self.debtor)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "creditor": self.creditor,
            "debtor": self.debtor,
            "amount_ciphertext": self.amount_ciphertext.hex(),
            "created_at": self.created_at.isoformat(),
            "decrypted_amount": str(self.decrypted_amount),
            "verified": self.verified,
            "label": self.label,
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DebtEntry:
        """Create DebtEntry from dictionary."""
        return cls(
            id=data["id"],
            creditor=data["creditor"],
            debtor=data["debtor"],
            amount_ciphertext=CiphertextHandle.from_hex(data["amount_ciphertext"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            # Stored as a string so 128-bit amounts survive JSON backends
            decrypted_amount=int(data.get("decrypted_amount", "0")),
            verified=bool(data.get("verified", False)),
            label=data.get("label", ""),
            sequence=int(data.get("sequence", 0)),
        )

    def view(self) -> DebtEntryView:
        return DebtEntryView(
            entry_id=self.id,
            creditor=self.creditor,
            debtor=self.debtor,
            created_at=self.created_at,
            verified=self.verified,
            decrypted_amount=self.decrypted_amount,
            label=self.label,
        )


@dataclass(frozen=True)
class DebtEntryView:
    """Read-only projection of an entry. Never carries the ciphertext handle."""

    entry_id: str
    creditor: str
    debtor: str
    created_at: datetime
    verified: bool
    decrypted_amount: int
    label: str = ""

    @property
    def status(self) -> EntryStatus:
        return EntryStatus.VERIFIED if self.verified else EntryStatus.PENDING


@dataclass(frozen=True)
class NetBalance:
    """Encrypted signed aggregate for one participant."""

    participant_id: str
    balance_ciphertext: CiphertextHandle
    computed_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "balance_ciphertext": self.balance_ciphertext.hex(),
            "computed_at": self.computed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetBalance:
        return cls(
            participant_id=data["participant_id"],
            balance_ciphertext=CiphertextHandle.from_hex(data["balance_ciphertext"]),
            computed_at=datetime.fromisoformat(data["computed_at"]),
        )


@dataclass(frozen=True)
class LedgerStats:
    """Entry counts across the whole ledger."""

    total_entries: int
    verified_entries: int
    pending_entries: int
    participants: int


@dataclass(frozen=True)
class EncryptedInput:
    """Ciphertext plus proof of well-formedness, ready for record_debt."""

    ciphertext: bytes
    proof: bytes


@dataclass(frozen=True)
class DecryptionResult:
    """Cleartext word plus the proof binding it to a handle."""

    handle: CiphertextHandle
    cleartext: bytes
    proof: bytes
