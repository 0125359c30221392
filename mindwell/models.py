"""Typed dataclasses for MindWell data model.

All models use from_dict/to_dict for JSON serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Any


MOODS = ("Joyful", "Calm", "Sad", "Anxious", "Angry", "Neutral")

SELF_CARE_SUGGESTIONS = (
    "Meditation",
    "Music",
    "Affirmation",
    "Breathing Exercise",
    "Quick Story",
    "5-4-3-2-1 Grounding",
    "Mindful Doodling",
)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z'."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_timestamp(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a 'Z' suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def local_date(value: str, tz: tzinfo) -> date:
    """Calendar date of an ISO timestamp as seen in *tz*.

    Naive timestamps are taken to already be local.
    """
    dt = parse_timestamp(value)
    if dt.tzinfo is None:
        return dt.date()
    return dt.astimezone(tz).date()


def normalize_tags(tags: list[str]) -> list[str]:
    """Lowercase, strip, drop blanks and de-duplicate keeping first-seen order."""
    seen: list[str] = []
    for t in tags:
        tag = str(t).strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# ── Journal ───────────────────────────────────────────────────


@dataclass(frozen=True)
class JournalEntry:
    id: str = ""
    user_content: str = ""
    ai_response: str = ""
    mood: str = "Neutral"
    timestamp: str = ""
    reframe: str | None = None
    activity_tags: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> JournalEntry:
        reframe = d.get("reframe")
        return cls(
            id=str(d.get("id", "")),
            user_content=str(d.get("userContent", "")),
            ai_response=str(d.get("aiResponse", "")),
            mood=str(d.get("mood", "Neutral")),
            timestamp=str(d.get("timestamp", "")),
            reframe=str(reframe) if reframe is not None else None,
            activity_tags=tuple(normalize_tags(d.get("activityTags") or [])),
            suggestions=tuple(str(s) for s in (d.get("suggestions") or [])),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "userContent": self.user_content,
            "aiResponse": self.ai_response,
            "suggestions": list(self.suggestions),
            "mood": self.mood,
            "timestamp": self.timestamp,
            "activityTags": list(self.activity_tags),
        }
        if self.reframe is not None:
            d["reframe"] = self.reframe
        return d

    def has_reframe(self) -> bool:
        return bool(self.reframe and self.reframe.strip())


# ── Goals ─────────────────────────────────────────────────────


@dataclass
class Goal:
    id: str = ""
    text: str = ""
    is_completed: bool = False
    created_at: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Goal:
        return cls(
            id=str(d.get("id", "")),
            text=str(d.get("text", "")),
            is_completed=d.get("isCompleted") is True,
            created_at=str(d.get("createdAt", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "isCompleted": self.is_completed,
            "createdAt": self.created_at,
        }


# ── Achievements ──────────────────────────────────────────────


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    unlocked_at: str | None = None

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "unlockedAt": self.unlocked_at,
        }


# ── AI payloads ───────────────────────────────────────────────


@dataclass
class AnalysisResult:
    emotion: str = "Neutral"
    response: str = ""
    suggestions: list[str] = field(default_factory=list)
    extracted_keywords: list[str] = field(default_factory=list)
    reframe: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "emotion": self.emotion,
            "response": self.response,
            "suggestions": self.suggestions,
            "extractedKeywords": self.extracted_keywords,
        }
        if self.reframe is not None:
            d["reframe"] = self.reframe
        return d


@dataclass
class MoodPattern:
    mood: str = "Neutral"
    pattern: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"mood": self.mood, "pattern": self.pattern}


@dataclass
class InsightsSummary:
    top_triggers: list[str] = field(default_factory=list)
    mood_patterns: list[MoodPattern] = field(default_factory=list)
    positive_highlight: str = ""
    actionable_suggestion: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "topTriggers": self.top_triggers,
            "moodPatterns": [p.to_dict() for p in self.mood_patterns],
            "positiveHighlight": self.positive_highlight,
            "actionableSuggestion": self.actionable_suggestion,
        }


@dataclass
class DailyQuote:
    quote: str = ""
    author: str = "Anonymous"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DailyQuote:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(quote=str(d.get("quote", "")), author=str(d.get("author", "Anonymous")))

    def to_dict(self) -> dict[str, Any]:
        return {"quote": self.quote, "author": self.author}
