"""Tests for the event emitter."""

from unittest.mock import patch

from cipherledger.core.events import EventEmitter, LedgerEvent, LedgerEventType


class TestEventEmitter:
    def test_emit_builds_event(self):
        emitter = EventEmitter()
        event = emitter.emit(LedgerEventType.DEBT_RECORDED, entry_id="e1")

        assert isinstance(event, LedgerEvent)
        assert event.data == {"entry_id": "e1"}
        assert event.timestamp.tzinfo is not None
        assert emitter.history == [event]

    def test_typed_and_wildcard_subscribers(self):
        emitter = EventEmitter()
        typed, wildcard = [], []
        emitter.subscribe(typed.append, LedgerEventType.NET_BALANCE_UPDATED)
        emitter.subscribe(wildcard.append)

        emitter.emit(LedgerEventType.DEBT_RECORDED)
        emitter.emit(LedgerEventType.NET_BALANCE_UPDATED)

        assert len(typed) == 1
        assert len(wildcard) == 2

    def test_failing_callback_is_isolated(self):
        emitter = EventEmitter()
        seen = []

        def explode(event):
            raise ValueError("boom")

        emitter.subscribe(explode)
        emitter.subscribe(seen.append)

        with patch("cipherledger.core.events.logger") as log:
            emitter.emit(LedgerEventType.DECRYPTION_VERIFIED, entry_id="e1")

        assert len(seen) == 1
        log.exception.assert_called_once()

    def test_history_disabled(self):
        emitter = EventEmitter(history_size=0)
        emitter.emit(LedgerEventType.DEBT_RECORDED)
        assert emitter.history == []

    def test_history_keeps_only_recent_events(self):
        emitter = EventEmitter(history_size=3)
        for i in range(10):
            emitter.emit(LedgerEventType.NET_BALANCE_UPDATED, n=i)

        assert [event.data["n"] for event in emitter.history] == [7, 8, 9]

    def test_event_type_values(self):
        assert LedgerEventType.DEBT_RECORDED.value == "debt.recorded"
        assert LedgerEventType.DECRYPTION_VERIFIED.value == "decryption.verified"
        assert LedgerEventType.NET_BALANCE_UPDATED.value == "net_balance.updated"
