"""Unit tests for types and cleartext encoding."""

from datetime import datetime, timezone

import pytest

from cipherledger.core.encoding import decode_uint, encode_uint, to_signed
from cipherledger.core.types import (
    CiphertextHandle,
    DebtEntry,
    EntryStatus,
    NetBalance,
    to_bytes,
)


class TestCiphertextHandle:
    def test_hex_form(self) -> None:
        handle = CiphertextHandle(bytes(range(32)))
        assert handle.hex().startswith("0x0001020304")
        assert CiphertextHandle.from_hex(handle.hex()) == handle

    def test_rejects_wrong_size(self) -> None:
        with pytest.raises(ValueError, match="32 bytes"):
            CiphertextHandle(b"\x01" * 31)

    def test_uninitialized(self) -> None:
        assert not CiphertextHandle.uninitialized().is_initialized
        assert CiphertextHandle(b"\x00" * 31 + b"\x01").is_initialized

    def test_short_form_does_not_leak_full_handle(self) -> None:
        handle = CiphertextHandle(b"\xab" * 32)
        assert len(handle.short()) < len(handle.hex())


class TestToBytes:
    def test_accepts_hex_with_or_without_prefix(self) -> None:
        assert to_bytes("0x0a0b") == b"\x0a\x0b"
        assert to_bytes("0a0b") == b"\x0a\x0b"

    def test_passes_bytes_through(self) -> None:
        assert to_bytes(b"\x01") == b"\x01"

    def test_rejects_non_hex(self) -> None:
        with pytest.raises(ValueError):
            to_bytes("0xzz")


class TestEncoding:
    def test_word_layout(self) -> None:
        word = encode_uint(258)
        assert len(word) == 32
        assert word[-2:] == b"\x01\x02"
        assert decode_uint(word) == 258

    def test_encode_rejects_overflow(self) -> None:
        with pytest.raises(ValueError):
            encode_uint(2**32)
        with pytest.raises(ValueError):
            encode_uint(-1)

    def test_decode_rejects_short_word(self) -> None:
        with pytest.raises(ValueError, match="32-byte"):
            decode_uint(b"\x00" * 8)

    def test_decode_rejects_value_wider_than_type(self) -> None:
        with pytest.raises(ValueError, match="uint32"):
            decode_uint((2**40).to_bytes(32, "big"))

    def test_to_signed(self) -> None:
        assert to_signed(5) == 5
        assert to_signed(2**32 - 5) == -5
        assert to_signed(2**8 - 1, bits=8) == -1


class TestDebtEntry:
    def test_defaults(self) -> None:
        entry = DebtEntry(
            id="e1",
            creditor="alice",
            debtor="bob",
            amount_ciphertext=CiphertextHandle(b"\x01" * 32),
        )
        assert entry.verified is False
        assert entry.decrypted_amount == 0
        assert entry.status == EntryStatus.PENDING
        assert entry.involves("bob")
        assert not entry.involves("carol")

    def test_dict_round_trip_keeps_large_amounts(self) -> None:
        entry = DebtEntry(
            id="e1",
            creditor="alice",
            debtor="bob",
            amount_ciphertext=CiphertextHandle(b"\x02" * 32),
            created_at=datetime(2026, 1, 2, tzinfo=timezone.utc),
            decrypted_amount=2**100,
            verified=True,
            label="rent",
            sequence=3,
        )
        data = entry.to_dict()
        assert data["decrypted_amount"] == str(2**100)

        restored = DebtEntry.from_dict(data)
        assert restored == entry

    def test_view_hides_ciphertext(self) -> None:
        entry = DebtEntry(
            id="e1",
            creditor="alice",
            debtor="bob",
            amount_ciphertext=CiphertextHandle(b"\x01" * 32),
        )
        view = entry.view()
        assert view.entry_id == "e1"
        assert not hasattr(view, "amount_ciphertext")


class TestNetBalance:
    def test_dict_round_trip(self) -> None:
        balance = NetBalance("alice", CiphertextHandle(b"\x03" * 32))
        assert NetBalance.from_dict(balance.to_dict()) == balance
