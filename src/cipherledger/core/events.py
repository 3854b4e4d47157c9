"""
Ledger notifications.

Events are emitted only after an operation has fully committed.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from cipherledger.core.logging import get_logger
from cipherledger.core.types import utcnow

logger = get_logger("events")


class LedgerEventType(str, Enum):
    """Types of ledger notifications."""

    DEBT_RECORDED = "debt.recorded"
    DECRYPTION_VERIFIED = "decryption.verified"
    NET_BALANCE_UPDATED = "net_balance.updated"


@dataclass(frozen=True)
class LedgerEvent:
    """A committed ledger notification."""

    type: LedgerEventType
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=utcnow)


EventCallback = Callable[[LedgerEvent], Any]


class EventEmitter:
    """
    Synchronous fan-out of ledger events to subscribers.

    Keeps the most recent events in a bounded history so callers can inspect
    what was emitted; older events fall off the end.
    A subscriber that raises is logged and skipped; the committed operation
    stands.
    """

    def __init__(self, history_size: int = 1000) -> None:
        """
        Args:
            history_size: Most recent events to keep (0 keeps none)
        """
        self._subscribers: dict[LedgerEventType | None, list[EventCallback]] = {}
        self._history: deque[LedgerEvent] = deque(maxlen=history_size)

    def subscribe(
        self,
        callback: EventCallback,
        event_type: LedgerEventType | None = None,
    ) -> None:
        """Register a callback for one event type, or for all when None."""
        self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(
        self,
        callback: EventCallback,
        event_type: LedgerEventType | None = None,
    ) -> bool:
        callbacks = self._subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    def emit(self, event_type: LedgerEventType, **data: Any) -> LedgerEvent:
        event = LedgerEvent(type=event_type, data=data)
        self._history.append(event)

        logger.debug(f"Emitting {event_type.value}")
        for callback in self._subscribers.get(event_type, []) + self._subscribers.get(None, []):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Subscriber failed while handling {event_type.value}")
        return event

    @property
    def history(self) -> list[LedgerEvent]:
        return list(self._history)
