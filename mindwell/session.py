"""Session facade: builds every store for one workspace and exposes user actions.

Used by both the web UI and the terminal UI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable

from mindwell.achievements import AchievementsEngine
from mindwell.analysis import (
    AnalysisClient,
    build_entry,
    contains_trigger_phrase,
    parse_analysis,
    parse_daily_quote,
    parse_insights,
    parse_refined_goal,
)
from mindwell.errors import ExternalServiceError, ValidationError
from mindwell.events import EventBus
from mindwell.goals import GoalsStore
from mindwell.journal import JournalStore
from mindwell.lock import LockStore
from mindwell.models import (
    Achievement,
    AnalysisResult,
    DailyQuote,
    Goal,
    InsightsSummary,
    JournalEntry,
    format_timestamp,
)
from mindwell.orchestrator import Orchestrator
from mindwell.slices import DAILY_QUOTE, SliceStore
from mindwell.workspace import Settings, load_settings, timezone_for, workspace_root

logger = logging.getLogger(__name__)

INSIGHTS_WINDOW_DAYS = 7
INSIGHTS_MIN_ENTRIES = 3


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SubmitResult:
    entry: JournalEntry | None = None
    # Crisis language was detected; nothing was sent or stored.
    distress: bool = False


class Session:
    def __init__(
        self,
        root: Path,
        settings: Settings,
        client: AnalysisClient | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.root = root
        self.settings = settings
        self.tz = timezone_for(settings)
        self.clock = clock
        self._client = client

        self.bus = EventBus()
        self.slices = SliceStore(root)
        self.journal = JournalStore(self.slices, self.bus)
        self.goals = GoalsStore(self.slices, self.bus)
        self.lock = LockStore(self.slices, self.bus)
        self.achievements = AchievementsEngine(self.slices, self.bus, clock=clock)
        self.orchestrator = Orchestrator(
            self.journal, self.goals, self.achievements, self.bus, tz=self.tz
        )
        self.orchestrator.attach()
        # State restored from disk may already satisfy rules.
        self.orchestrator.reevaluate()

    @classmethod
    def open(
        cls,
        root: Path | None = None,
        client: AnalysisClient | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> Session:
        if root is None:
            root = workspace_root()
        return cls(root, load_settings(root), client=client, clock=clock)

    def close(self) -> None:
        self.orchestrator.detach()

    @property
    def client(self) -> AnalysisClient:
        if self._client is None:
            from mindwell.gemini import GeminiClient

            try:
                self._client = GeminiClient(model=self.settings.gemini_model)
            except ValueError as e:
                logger.error("AI client not configured: %s", e)
                raise ExternalServiceError("AI service not configured") from e
        return self._client

    def today(self) -> date:
        return self.clock().astimezone(self.tz).date()

    # ── Journal ───────────────────────────────────────────────

    def write_entry(self, text: str, tags: list[str] | None = None) -> SubmitResult:
        """Analyze *text* and store the resulting entry.

        Raises ExternalServiceError without touching any state if the AI call
        fails or returns an unusable payload.
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Journal entry must not be empty")
        if contains_trigger_phrase(text):
            logger.info("Trigger phrase detected; entry not submitted")
            return SubmitResult(distress=True)
        return SubmitResult(entry=self.commit_entry(text, self.analyze(text), tags))

    def analyze(self, text: str) -> AnalysisResult:
        """Call the AI service. Touches no state, so it may run off the main loop."""
        return parse_analysis(self.client.analyze(text))

    def commit_entry(
        self, text: str, analysis: AnalysisResult, tags: list[str] | None = None
    ) -> JournalEntry:
        entry = build_entry(text, analysis, tags, now=self.clock())
        return self.journal.append(entry)

    def request_insights(self) -> InsightsSummary:
        return self.summarize_insights(self.begin_insights())

    def begin_insights(self) -> list[JournalEntry]:
        """Check the entry precondition and signal the request. Returns the entries to summarize."""
        recent = self.journal.recent(INSIGHTS_WINDOW_DAYS, now=self.clock())
        if len(recent) < INSIGHTS_MIN_ENTRIES:
            raise ValidationError(
                f"You need at least {INSIGHTS_MIN_ENTRIES} journal entries from the "
                f"last {INSIGHTS_WINDOW_DAYS} days to generate insights."
            )
        self.orchestrator.insights_requested()
        return recent

    def summarize_insights(self, entries: list[JournalEntry]) -> InsightsSummary:
        return parse_insights(self.client.insights(entries))

    def daily_quote(self) -> DailyQuote | None:
        """Today's quote, fetched at most once per local day. None if unavailable."""
        today = self.today().isoformat()
        cached = self.slices.load(DAILY_QUOTE)
        if isinstance(cached, dict) and cached.get("date") == today:
            return DailyQuote.from_dict(cached.get("quote"))
        try:
            quote = parse_daily_quote(self.client.daily_quote())
        except ExternalServiceError as e:
            logger.warning("Daily quote unavailable: %s", e)
            return None
        self.slices.save(DAILY_QUOTE, {"date": today, "quote": quote.to_dict()})
        return quote

    # ── Goals ─────────────────────────────────────────────────

    def add_goal(self, text: str) -> Goal:
        stamp = format_timestamp(self.clock())
        goal_id, n = stamp, 1
        while self.goals.get(goal_id) is not None:
            n += 1
            goal_id = f"{stamp}-{n}"
        return self.goals.add(Goal(id=goal_id, text=text or "", created_at=stamp))

    def refine_goal(self, text: str) -> str:
        if not (text or "").strip():
            raise ValidationError("Please enter a goal first.")
        return parse_refined_goal(self.client.refine_goal(text.strip()))

    # ── Achievements ──────────────────────────────────────────

    def use_creative_tool(self) -> None:
        self.orchestrator.creative_tool_used()

    def achievement_records(self) -> list[Achievement]:
        return self.achievements.records()
