"""Tests for mindwell/session.py: end-to-end user actions."""

from datetime import timedelta

import pytest

from conftest import Clock, FakeClient
from mindwell.errors import ExternalServiceError, ValidationError
from mindwell.session import Session
from mindwell.slices import DAILY_QUOTE, JOURNAL_ENTRIES
from mindwell.workspace import load_settings


@pytest.fixture
def session(workspace, client, clock):
    s = Session(workspace, load_settings(workspace), client=client, clock=clock)
    yield s
    s.close()


def test_write_entry_stores_and_unlocks(session):
    result = session.write_entry("Walked in the park", tags=["Outdoors"])
    assert not result.distress
    assert result.entry.mood == "Calm"
    assert result.entry.activity_tags == ("outdoors", "walk", "park")
    assert session.journal.list() == (result.entry,)
    assert session.achievements.is_unlocked("first-spark")
    assert session.achievements.current_toast().id == "first-spark"


def test_ai_failure_mutates_nothing(session, client, workspace):
    client.fail = True
    with pytest.raises(ExternalServiceError):
        session.write_entry("Long day")
    assert session.journal.list() == ()
    assert session.slices.load(JOURNAL_ENTRIES) is None
    assert session.achievements.unlocked_ids() == frozenset()


def test_malformed_ai_reply_mutates_nothing(workspace, clock):
    client = FakeClient(analysis="not json at all")
    s = Session(workspace, load_settings(workspace), client=client, clock=clock)
    with pytest.raises(ExternalServiceError):
        s.write_entry("Long day")
    assert len(s.journal) == 0


def test_crisis_text_is_not_sent(session, client):
    result = session.write_entry("I can't go on like this")
    assert result.distress is True
    assert result.entry is None
    assert client.calls == []
    assert len(session.journal) == 0


def test_empty_entry_rejected(session, client):
    with pytest.raises(ValidationError):
        session.write_entry("   ")
    assert client.calls == []


def test_reframe_unlocks_reframer(workspace, clock):
    client = FakeClient(analysis={
        "emotion": "Sad",
        "response": "That sounds heavy.",
        "suggestions": ["Affirmation"],
        "extractedKeywords": [],
        "reframe": "A setback is not a verdict.",
    })
    s = Session(workspace, load_settings(workspace), client=client, clock=clock)
    s.write_entry("I always fail")
    assert [t.id for t in s.achievements.toast_queue] == ["first-spark", "reframer"]


def test_insights_need_three_recent_entries(session, client):
    session.write_entry("one")
    session.write_entry("two")
    with pytest.raises(ValidationError):
        session.request_insights()
    assert not session.achievements.is_unlocked("deep-diver")
    assert "insights" not in client.calls

    session.write_entry("three")
    summary = session.request_insights()
    assert summary.top_triggers == ["work", "sleep"]
    assert session.achievements.is_unlocked("deep-diver")


def test_insights_unlock_survives_ai_failure(session, client):
    for text in ("one", "two", "three"):
        session.write_entry(text)
    client.fail = True
    with pytest.raises(ExternalServiceError):
        session.request_insights()
    assert session.achievements.is_unlocked("deep-diver")


def test_daily_quote_cached_per_day(session, client, clock):
    first = session.daily_quote()
    again = session.daily_quote()
    assert first == again
    assert client.calls.count("daily_quote") == 1
    assert session.slices.load(DAILY_QUOTE)["date"] == "2024-01-01"

    clock.now += timedelta(days=1)
    session.daily_quote()
    assert client.calls.count("daily_quote") == 2


def test_daily_quote_failure_returns_none(session, client):
    client.fail = True
    assert session.daily_quote() is None


def test_add_goal_and_refine(session):
    goal = session.add_goal("Exercise more")
    assert goal.id == goal.created_at
    assert session.achievements.is_unlocked("goal-setter")
    assert session.refine_goal("Exercise more") == "Walk 20 minutes every weekday this month."
    with pytest.raises(ValidationError):
        session.refine_goal("  ")


def test_creative_tool(session):
    session.use_creative_tool()
    session.use_creative_tool()
    records = {a.id: a for a in session.achievement_records()}
    assert records["creative-outlet"].unlocked
    assert len(session.achievements.toast_queue) == 1


def test_restart_keeps_state(workspace, client, clock):
    s = Session(workspace, load_settings(workspace), client=client, clock=clock)
    s.write_entry("hello")
    s.add_goal("Read")
    s.close()

    reopened = Session.open(workspace, client=client, clock=clock)
    assert len(reopened.journal) == 1
    assert len(reopened.goals.list()) == 1
    assert reopened.achievements.unlocked_ids() == frozenset({"first-spark", "goal-setter"})
    # Nothing new to announce after a restart
    assert reopened.achievements.toast_queue == ()


def test_goals_added_in_same_millisecond_get_distinct_ids(workspace, client):
    frozen = Clock(step=timedelta(0))
    s = Session(workspace, load_settings(workspace), client=client, clock=frozen)
    first = s.add_goal("Read")
    second = s.add_goal("Walk")
    third = s.add_goal("Sleep")
    assert len({first.id, second.id, third.id}) == 3
    assert second.id == f"{first.id}-2"
    assert first.created_at == second.created_at == third.created_at
