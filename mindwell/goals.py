"""Goal CRUD and completion toggling for MindWell."""

from __future__ import annotations

import logging
from typing import Any

from mindwell.errors import ValidationError
from mindwell.events import GOALS_CHANGED, EventBus
from mindwell.models import Goal
from mindwell.slices import GOALS, SliceStore

logger = logging.getLogger(__name__)


def validate_goal(goal: Goal) -> list[str]:
    """Validate goal shape and return list of errors (empty if valid)."""
    errors = []
    if not goal.id:
        errors.append("Missing required field: id")
    if not goal.text.strip():
        errors.append("Goal text must not be empty")
    return errors


class GoalsStore:
    def __init__(self, slices: SliceStore, bus: EventBus | None = None):
        self.slices = slices
        self.bus = bus
        self._goals: list[Goal] = self._load()

    def _load(self) -> list[Goal]:
        raw = self.slices.load(GOALS)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Ignoring goals slice of type %s", type(raw).__name__)
            return []
        return [Goal.from_dict(g) for g in raw if isinstance(g, dict)]

    def _commit(self) -> None:
        # The whole slice is rewritten on every mutation.
        if not self.slices.save(GOALS, [g.to_dict() for g in self._goals]):
            logger.warning("Goals kept in memory only")
        if self.bus is not None:
            self.bus.emit(GOALS_CHANGED, self.list())

    def _find(self, goal_id: str) -> Goal | None:
        for g in self._goals:
            if g.id == goal_id:
                return g
        return None

    def get(self, goal_id: str) -> Goal | None:
        goal = self._find(goal_id)
        return Goal(**vars(goal)) if goal is not None else None

    def add(self, goal: Goal | dict[str, Any]) -> Goal:
        """Prepend *goal* and persist. Raises ValidationError on bad shape or duplicate id."""
        if isinstance(goal, dict):
            goal = Goal.from_dict(goal)
        errors = validate_goal(goal)
        if not errors and self._find(goal.id):
            errors.append(f"Goal ID already exists: {goal.id}")
        if errors:
            raise ValidationError(errors)

        goal = Goal(
            id=goal.id,
            text=goal.text.strip(),
            is_completed=goal.is_completed,
            created_at=goal.created_at,
        )
        self._goals.insert(0, goal)
        self._commit()
        return Goal(**vars(goal))

    def toggle_completion(self, goal_id: str) -> Goal | None:
        """Flip the completion flag of *goal_id*. Unknown ids change nothing."""
        goal = self._find(goal_id)
        if goal is not None:
            goal.is_completed = not goal.is_completed
        self._commit()
        return Goal(**vars(goal)) if goal is not None else None

    def remove(self, goal_id: str) -> bool:
        before = len(self._goals)
        self._goals = [g for g in self._goals if g.id != goal_id]
        self._commit()
        return len(self._goals) != before

    def list(self) -> tuple[Goal, ...]:
        """Snapshot copies, so callers cannot flip flags behind the store's back."""
        return tuple(Goal(**vars(g)) for g in self._goals)

    def focus(self) -> Goal | None:
        """The first incomplete goal, shown as today's focus."""
        for g in self._goals:
            if not g.is_completed:
                return Goal(**vars(g))
        return None

    def progress(self) -> tuple[int, int, int]:
        """Return (completed, total, percent rounded)."""
        total = len(self._goals)
        completed = sum(1 for g in self._goals if g.is_completed)
        percent = round(completed / total * 100) if total else 0
        return completed, total, percent
