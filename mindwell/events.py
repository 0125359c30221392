"""In-process event bus for MindWell.

Stores announce their changes here and the orchestrator listens. The UI layer
uses the same bus to signal discrete actions.

Events:
- journal-changed, goals-changed, lock-changed
- insights-requested, creative-tool-used
- achievement-unlocked
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable


JOURNAL_CHANGED = "journal-changed"
GOALS_CHANGED = "goals-changed"
LOCK_CHANGED = "lock-changed"
INSIGHTS_REQUESTED = "insights-requested"
CREATIVE_TOOL_USED = "creative-tool-used"
ACHIEVEMENT_UNLOCKED = "achievement-unlocked"

VALID_EVENTS = {
    JOURNAL_CHANGED,
    GOALS_CHANGED,
    LOCK_CHANGED,
    INSIGHTS_REQUESTED,
    CREATIVE_TOOL_USED,
    ACHIEVEMENT_UNLOCKED,
}

Callback = Callable[[str, Any], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callback]] = defaultdict(list)

    def subscribe(self, event: str, callback: Callback) -> Callable[[], None]:
        """Register *callback* for *event*. Returns an unsubscribe function."""
        if event not in VALID_EVENTS:
            raise ValueError(f"Unknown event: {event}")
        self._subscribers[event].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[event]:
                self._subscribers[event].remove(callback)

        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        """Call every subscriber of *event* in registration order."""
        if event not in VALID_EVENTS:
            raise ValueError(f"Unknown event: {event}")
        for callback in list(self._subscribers[event]):
            callback(event, payload)
