"""
Unit tests for the observer bus.
"""

import pytest

from pulsar_producer.bus import EventBus, Observer
from tests.utils.mocks import RecordingObserver


@pytest.mark.unit
class TestEventBus:
    """Test EventBus subscription and emitting."""

    def test_emit_calls_handlers_in_order(self):
        bus = EventBus()
        calls = []
        bus.on("done", lambda p: calls.append(("first", p)))
        bus.on("done", lambda p: calls.append(("second", p)))
        bus.emit("done", 1)
        assert calls == [("first", 1), ("second", 1)]

    def test_emit_without_subscribers(self):
        EventBus().emit("nothing", {"a": 1})

    def test_off_removes_handler(self):
        bus = EventBus()
        calls = []
        handler = bus.on("end", calls.append)
        bus.off("end", handler)
        bus.emit("end", "x")
        assert calls == []
        assert bus.listeners("end") == []

    def test_off_bound_method(self):
        bus = EventBus()
        observer = RecordingObserver()
        bus.on("end", observer.emit)
        bus.off("end", observer.emit)
        bus.emit("end", "x")
        assert observer.events == []
        assert bus.listeners("end") == []

    def test_off_removes_one_registration(self):
        bus = EventBus()
        calls = []
        bus.on("end", calls.append)
        bus.on("end", calls.append)
        bus.off("end", calls.append)
        bus.emit("end", "x")
        assert calls == ["x"]

    def test_off_unknown_event(self):
        bus = EventBus()
        bus.off("missing", print)
        assert bus.listeners("missing") == []

    def test_aliases(self):
        bus = EventBus()
        calls = []
        bus.subscribe("error", calls.append)
        bus.emit("error", "boom")
        bus.unsubscribe("error", calls.append)
        bus.emit("error", "again")
        assert calls == ["boom"]

    def test_handler_error_is_contained(self, caplog):
        bus = EventBus()
        calls = []

        def broken(payload):
            raise RuntimeError("handler bug")

        bus.on("sent", broken)
        bus.on("sent", calls.append)
        bus.emit("sent", "payload")
        assert calls == ["payload"]
        assert "Observer handler for 'sent' failed" in caplog.text

    def test_observer_protocol(self):
        assert isinstance(EventBus(), Observer)
        assert isinstance(RecordingObserver(), Observer)
        assert not isinstance(object(), Observer)
