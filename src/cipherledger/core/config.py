"""
Configuration management for CipherLedger.

Handles loading configuration from environment variables and validation.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, fields
from typing import Any

SUPPORTED_AMOUNT_BITS = (8, 16, 32, 64, 128)


def _get_env_var(name: str) -> str | None:
    """Get environment variable, treating an empty value as unset."""
    return os.environ.get(name) or None


# Config field -> (environment variable, parser)
_ENV_VARS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "storage_backend": ("CIPHERLEDGER_STORAGE_BACKEND", str),
    "redis_url": ("CIPHERLEDGER_REDIS_URL", str),
    "gateway": ("CIPHERLEDGER_GATEWAY", str),
    "relayer_url": ("CIPHERLEDGER_RELAYER_URL", str),
    "amount_bits": ("CIPHERLEDGER_AMOUNT_BITS", int),
    "http_timeout": ("CIPHERLEDGER_HTTP_TIMEOUT", float),
    "http_retries": ("CIPHERLEDGER_HTTP_RETRIES", int),
    "lock_ttl": ("CIPHERLEDGER_LOCK_TTL", int),
    "event_history_size": ("CIPHERLEDGER_EVENT_HISTORY_SIZE", int),
    "log_level": ("CIPHERLEDGER_LOG_LEVEL", str),
    "env": ("CIPHERLEDGER_ENV", str),
}


@dataclass(frozen=True)
class Config:
    """Ledger configuration."""

    storage_backend: str = "memory"
    redis_url: str | None = None

    # Ciphertext gateway
    gateway: str = "local"
    relayer_url: str | None = None
    amount_bits: int = 32
    http_timeout: float = 30.0
    http_retries: int = 3

    # Write lease
    lock_ttl: int = 30
    lock_retry_count: int = 20
    lock_retry_delay: float = 0.05

    # Most recent notifications kept in memory (0 keeps none)
    event_history_size: int = 1000

    log_level: str = "INFO"
    env: str = "development"

    def __post_init__(self) -> None:
        if self.amount_bits not in SUPPORTED_AMOUNT_BITS:
            raise ValueError(
                f"amount_bits must be one of {SUPPORTED_AMOUNT_BITS}, got {self.amount_bits}"
            )
        if self.lock_ttl <= 0:
            raise ValueError("lock_ttl must be positive")
        if self.http_retries < 1:
            raise ValueError("http_retries must be at least 1")
        if self.event_history_size < 0:
            raise ValueError("event_history_size must not be negative")
        if self.gateway == "relayer" and not self.relayer_url:
            raise ValueError("relayer_url is required when gateway is 'relayer'")

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """
        Load configuration from environment variables.

        Keyword overrides always win, including falsy ones such as
        ``http_timeout=0``; unset or empty variables keep the field default.
        """
        values: dict[str, Any] = {}
        for name, (env_name, cast) in _ENV_VARS.items():
            raw = _get_env_var(env_name)
            if raw is not None:
                values[name] = cast(raw)
        values.update(overrides)
        return cls(**values)

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)

    @property
    def amount_modulus(self) -> int:
        """Encrypted arithmetic wraps at this value."""
        return 1 << self.amount_bits
