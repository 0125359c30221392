"""Wires stores to the achievements engine.

Every journal or goals change rebuilds a Snapshot and unlocks whatever rules
it satisfies, in catalog order. The insights-requested and creative-tool-used
signals unlock their achievements directly. Repeated signals and repeated
evaluation are harmless because unlock is idempotent.
"""

from __future__ import annotations

import logging
from datetime import timezone, tzinfo
from typing import Any

from mindwell.achievements import AchievementsEngine, Snapshot, evaluate
from mindwell.events import (
    CREATIVE_TOOL_USED,
    GOALS_CHANGED,
    INSIGHTS_REQUESTED,
    JOURNAL_CHANGED,
    EventBus,
)
from mindwell.goals import GoalsStore
from mindwell.journal import JournalStore
from mindwell.models import Achievement

logger = logging.getLogger(__name__)

ACTION_ACHIEVEMENTS = {
    INSIGHTS_REQUESTED: "deep-diver",
    CREATIVE_TOOL_USED: "creative-outlet",
}


class Orchestrator:
    def __init__(
        self,
        journal: JournalStore,
        goals: GoalsStore,
        engine: AchievementsEngine,
        bus: EventBus,
        tz: tzinfo = timezone.utc,
    ):
        self.journal = journal
        self.goals = goals
        self.engine = engine
        self.bus = bus
        self.tz = tz
        self._unsubscribers: list = []

    def attach(self) -> None:
        if self._unsubscribers:
            return
        for event in (JOURNAL_CHANGED, GOALS_CHANGED):
            self._unsubscribers.append(self.bus.subscribe(event, self._on_state_change))
        for event in ACTION_ACHIEVEMENTS:
            self._unsubscribers.append(self.bus.subscribe(event, self._on_action))

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def snapshot(self) -> Snapshot:
        return Snapshot(entries=self.journal.list(), goals=self.goals.list(), tz=self.tz)

    def reevaluate(self) -> list[Achievement]:
        """Unlock every newly satisfied rule. Returns the new unlocks in catalog order."""
        unlocked = []
        for aid in evaluate(self.snapshot(), self.engine.unlocked_ids()):
            achievement = self.engine.unlock(aid)
            if achievement is not None:
                unlocked.append(achievement)
        return unlocked

    def _on_state_change(self, event: str, payload: Any) -> None:
        new = self.reevaluate()
        if new:
            logger.debug("%s unlocked %s", event, [a.id for a in new])

    def _on_action(self, event: str, payload: Any) -> None:
        self.engine.unlock(ACTION_ACHIEVEMENTS[event])

    # ── Signals from the UI layer ─────────────────────────────

    def insights_requested(self) -> None:
        self.bus.emit(INSIGHTS_REQUESTED)

    def creative_tool_used(self) -> None:
        self.bus.emit(CREATIVE_TOOL_USED)
