"""Achievement catalog, rule evaluation and unlock tracking for MindWell.

Rules are evaluated against a Snapshot, the combined read view of the journal
and goals stores. Two achievements are event-driven instead (insights requested,
creative tool used) and are unlocked by the orchestrator directly.

Unlocks are one-way: once an id has a timestamp it never changes. Every new
unlock persists the full ``achievements-unlocked`` map and queues a toast.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Callable

from mindwell.events import ACHIEVEMENT_UNLOCKED, EventBus
from mindwell.models import Achievement, Goal, JournalEntry, format_timestamp, local_date
from mindwell.slices import ACHIEVEMENTS_UNLOCKED, SliceStore

logger = logging.getLogger(__name__)

MINDFUL_WEEK_DAYS = 7
GOAL_CRUSHER_COUNT = 5


# ── Snapshot ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time view of journal + goals state used for rule evaluation."""

    entries: tuple[JournalEntry, ...] = ()
    goals: tuple[Goal, ...] = ()
    tz: tzinfo = timezone.utc

    def distinct_days(self) -> int:
        days = set()
        for e in self.entries:
            try:
                days.add(local_date(e.timestamp, self.tz))
            except ValueError:
                logger.debug("Entry %s has unparseable timestamp %r", e.id, e.timestamp)
        return len(days)

    def completed_goals(self) -> int:
        return sum(1 for g in self.goals if g.is_completed)


# ── Catalog ───────────────────────────────────────────────────


@dataclass(frozen=True)
class AchievementRule:
    id: str
    title: str
    description: str
    # None for event-driven achievements
    predicate: Callable[[Snapshot], bool] | None = field(default=None, compare=False)

    @property
    def event_driven(self) -> bool:
        return self.predicate is None


CATALOG: tuple[AchievementRule, ...] = (
    AchievementRule(
        "first-spark",
        "First Spark",
        "You've started your journey by writing your first journal entry.",
        lambda s: len(s.entries) >= 1,
    ),
    AchievementRule(
        "mindful-week",
        "Mindful Week",
        "You've journaled on 7 different days. Consistency is key!",
        lambda s: s.distinct_days() >= MINDFUL_WEEK_DAYS,
    ),
    AchievementRule(
        "goal-setter",
        "Goal Setter",
        "You set your very first goal. The journey of a thousand miles begins with a single step.",
        lambda s: len(s.goals) >= 1,
    ),
    AchievementRule(
        "goal-crusher",
        "Goal Crusher",
        "You've completed 5 goals! Look at you making positive changes.",
        lambda s: s.completed_goals() >= GOAL_CRUSHER_COUNT,
    ),
    AchievementRule(
        "reframer",
        "The Reframer",
        "You received your first cognitive reframe, turning a negative thought into a learning moment.",
        lambda s: any(e.has_reframe() for e in s.entries),
    ),
    AchievementRule(
        "deep-diver",
        "Deep Diver",
        "You generated your first weekly insights report. Knowledge is power!",
    ),
    AchievementRule(
        "creative-outlet",
        "Creative Outlet",
        "You tried the Mindful Doodling tool for the first time. Let your thoughts flow!",
    ),
)

CATALOG_BY_ID = {rule.id: rule for rule in CATALOG}
ACHIEVEMENT_IDS = tuple(rule.id for rule in CATALOG)


def evaluate(snapshot: Snapshot, already_unlocked: frozenset[str] | set[str] = frozenset()) -> list[str]:
    """Return state-derived achievement ids satisfied by *snapshot*, in catalog order.

    Ids in *already_unlocked* are left out. Event-driven achievements never appear.
    """
    return [
        rule.id
        for rule in CATALOG
        if not rule.event_driven
        and rule.id not in already_unlocked
        and rule.predicate(snapshot)
    ]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ── Engine ────────────────────────────────────────────────────


class AchievementsEngine:
    def __init__(
        self,
        slices: SliceStore,
        bus: EventBus | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.slices = slices
        self.bus = bus
        self.clock = clock
        self._unlocked: dict[str, str | None] = {aid: None for aid in ACHIEVEMENT_IDS}
        self._toasts: deque[Achievement] = deque()
        self._merge_persisted()

    def _merge_persisted(self) -> None:
        raw = self.slices.load(ACHIEVEMENTS_UNLOCKED)
        if raw is None:
            return
        if not isinstance(raw, dict):
            logger.warning("Ignoring achievements slice of type %s", type(raw).__name__)
            return
        for aid, ts in raw.items():
            if aid not in self._unlocked:
                logger.debug("Ignoring unknown achievement id %r", aid)
                continue
            if isinstance(ts, str) and ts:
                self._unlocked[aid] = ts

    def _record(self, aid: str) -> Achievement:
        rule = CATALOG_BY_ID[aid]
        return Achievement(rule.id, rule.title, rule.description, self._unlocked[aid])

    def is_unlocked(self, aid: str) -> bool:
        return self._unlocked.get(aid) is not None

    def unlocked_ids(self) -> frozenset[str]:
        return frozenset(aid for aid, ts in self._unlocked.items() if ts is not None)

    def progress(self) -> tuple[int, int, int]:
        """Return (unlocked, total, percent rounded)."""
        total = len(self._unlocked)
        unlocked = len(self.unlocked_ids())
        percent = round(unlocked / total * 100) if total else 0
        return unlocked, total, percent

    def records(self) -> list[Achievement]:
        """All achievements in catalog order, locked ones with unlocked_at None."""
        return [self._record(aid) for aid in ACHIEVEMENT_IDS]

    def unlock(self, aid: str) -> Achievement | None:
        """Unlock *aid* once. Returns the new record, or None if it was already unlocked."""
        if aid not in CATALOG_BY_ID:
            raise ValueError(f"Unknown achievement: {aid}")
        if self._unlocked[aid] is not None:
            return None

        self._unlocked[aid] = format_timestamp(self.clock())
        if not self.slices.save(ACHIEVEMENTS_UNLOCKED, dict(self._unlocked)):
            logger.warning("Unlock of %s kept in memory only", aid)

        achievement = self._record(aid)
        self._toasts.append(achievement)
        logger.info("Achievement unlocked: %s", aid)
        if self.bus is not None:
            self.bus.emit(ACHIEVEMENT_UNLOCKED, achievement)
        return achievement

    # ── Toast queue ───────────────────────────────────────────

    @property
    def toast_queue(self) -> tuple[Achievement, ...]:
        return tuple(self._toasts)

    def current_toast(self) -> Achievement | None:
        return self._toasts[0] if self._toasts else None

    def dismiss_toast(self) -> Achievement | None:
        """Pop the queue head. Empty queue is a no-op returning None."""
        if not self._toasts:
            return None
        return self._toasts.popleft()
