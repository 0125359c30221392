"""Tests for mindwell/goals.py: CRUD, toggling, progress."""

import pytest

from mindwell.errors import ValidationError
from mindwell.events import GOALS_CHANGED
from mindwell.goals import GoalsStore, validate_goal
from mindwell.models import Goal
from mindwell.slices import GOALS


def _goal(i: int, text: str = "Exercise more") -> Goal:
    return Goal(id=f"g{i}", text=text, created_at=f"2024-01-01T00:00:0{i}.000Z")


def test_validate_goal_empty_text():
    errors = validate_goal(Goal(id="g1", text="   "))
    assert any("empty" in e for e in errors)


def test_add_prepends_and_persists(slices):
    goals = GoalsStore(slices)
    goals.add(_goal(1, "Read"))
    goals.add(_goal(2, "Sleep early"))
    assert [g.text for g in goals.list()] == ["Sleep early", "Read"]
    assert [g["id"] for g in slices.load(GOALS)] == ["g2", "g1"]


def test_add_strips_text(slices):
    goal = GoalsStore(slices).add(_goal(1, "  Read  "))
    assert goal.text == "Read"


def test_add_duplicate_id_rejected(slices):
    goals = GoalsStore(slices)
    goals.add(_goal(1))
    with pytest.raises(ValidationError, match="already exists"):
        goals.add(_goal(1, "Other"))
    assert len(goals.list()) == 1


def test_add_empty_rejected(slices):
    with pytest.raises(ValidationError):
        GoalsStore(slices).add(_goal(1, ""))


def test_toggle_completion(slices):
    goals = GoalsStore(slices)
    goals.add(_goal(1))
    assert goals.toggle_completion("g1").is_completed is True
    assert goals.toggle_completion("g1").is_completed is False


def test_toggle_unknown_id_changes_nothing(slices):
    goals = GoalsStore(slices)
    goals.add(_goal(1))
    before = goals.list()
    assert goals.toggle_completion("missing") is None
    assert goals.list() == before


def test_remove(slices):
    goals = GoalsStore(slices)
    goals.add(_goal(1))
    goals.add(_goal(2))
    assert goals.remove("g1") is True
    assert [g.id for g in goals.list()] == ["g2"]
    assert goals.remove("g1") is False


def test_reload(slices):
    goals = GoalsStore(slices)
    goals.add(_goal(1))
    goals.toggle_completion("g1")
    reloaded = GoalsStore(slices)
    assert reloaded.get("g1").is_completed is True


def test_list_returns_copies(slices):
    goals = GoalsStore(slices)
    goals.add(_goal(1))
    goals.list()[0].is_completed = True
    assert goals.get("g1").is_completed is False


def test_focus_is_first_incomplete(slices):
    goals = GoalsStore(slices)
    goals.add(_goal(1, "Old"))
    goals.add(_goal(2, "New"))
    assert goals.focus().id == "g2"
    goals.toggle_completion("g2")
    assert goals.focus().id == "g1"
    goals.toggle_completion("g1")
    assert goals.focus() is None


def test_progress(slices):
    goals = GoalsStore(slices)
    assert goals.progress() == (0, 0, 0)
    for i in range(1, 4):
        goals.add(_goal(i))
    goals.toggle_completion("g1")
    assert goals.progress() == (1, 3, 33)


def test_every_mutation_emits(slices, bus):
    goals = GoalsStore(slices, bus)
    seen = []
    bus.subscribe(GOALS_CHANGED, lambda ev, p: seen.append(len(p)))
    goals.add(_goal(1))
    goals.toggle_completion("g1")
    goals.remove("g1")
    assert seen == [1, 1, 0]


def test_toggle_kept_when_save_fails(slices, bus, monkeypatch):
    goals = GoalsStore(slices, bus)
    goals.add(_goal(1))

    def fail(path, data):
        raise OSError("read-only filesystem")

    monkeypatch.setattr("mindwell.slices.write_json_atomic", fail)
    assert slices.save(GOALS, []) is False

    seen = []
    bus.subscribe(GOALS_CHANGED, lambda ev, p: seen.append(p[0].is_completed))
    assert goals.toggle_completion("g1").is_completed is True
    assert goals.get("g1").is_completed is True
    assert seen == [True]
    # Disk still holds the state from before the failure
    assert slices.load(GOALS)[0]["isCompleted"] is False
