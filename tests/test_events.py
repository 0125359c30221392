"""Tests for mindwell/events.py: event bus."""

import pytest

from mindwell.events import GOALS_CHANGED, JOURNAL_CHANGED


def test_emit_calls_subscribers_in_order(bus):
    calls = []
    bus.subscribe(GOALS_CHANGED, lambda ev, p: calls.append(("a", p)))
    bus.subscribe(GOALS_CHANGED, lambda ev, p: calls.append(("b", p)))
    bus.emit(GOALS_CHANGED, 1)
    bus.emit(JOURNAL_CHANGED, 2)
    assert calls == [("a", 1), ("b", 1)]


def test_unsubscribe(bus):
    calls = []
    unsubscribe = bus.subscribe(GOALS_CHANGED, lambda ev, p: calls.append(p))
    unsubscribe()
    unsubscribe()
    bus.emit(GOALS_CHANGED)
    assert calls == []


def test_unknown_event_rejected(bus):
    with pytest.raises(ValueError):
        bus.subscribe("nope", lambda ev, p: None)
    with pytest.raises(ValueError):
        bus.emit("nope")
