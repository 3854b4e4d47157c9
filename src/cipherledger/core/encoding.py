"""Cleartext word encoding shared by the verifier and the gateways."""

from __future__ import annotations

WORD_SIZE = 32


def encode_uint(value: int, bits: int = 32) -> bytes:
    """Encode an unsigned integer as one 32-byte big-endian word."""
    if value < 0 or value >= (1 << bits):
        raise ValueError(f"{value} does not fit in uint{bits}")
    return value.to_bytes(WORD_SIZE, "big")


def decode_uint(word: bytes, bits: int = 32) -> int:
    """
    Decode one 32-byte big-endian word as uint<bits>.

    Raises:
        ValueError: If the word has the wrong size or the value overflows
    """
    if len(word) != WORD_SIZE:
        raise ValueError(f"Expected a {WORD_SIZE}-byte word, got {len(word)} bytes")
    value = int.from_bytes(word, "big")
    if value >= (1 << bits):
        raise ValueError(f"Value does not fit in uint{bits}")
    return value


def to_signed(value: int, bits: int = 32) -> int:
    """Interpret a wrapped uint<bits> net balance as two's complement."""
    if value >= (1 << (bits - 1)):
        return value - (1 << bits)
    return value
