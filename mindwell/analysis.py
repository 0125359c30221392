"""Contract with the AI collaborator: response parsing, validation and entry building.

Any malformed or failed response raises ExternalServiceError. Callers must
not mutate state until a response has been parsed successfully.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Any, Protocol

from mindwell.errors import ExternalServiceError
from mindwell.models import (
    MOODS,
    AnalysisResult,
    DailyQuote,
    InsightsSummary,
    JournalEntry,
    MoodPattern,
    format_timestamp,
    normalize_tags,
)

logger = logging.getLogger(__name__)

TRIGGER_PHRASES = (
    "i want to die",
    "kill myself",
    "i can't go on",
    "giving up",
    "end it all",
    "no reason to live",
    "suicidal",
    "feeling hopeless",
)

_FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class AnalysisClient(Protocol):
    """What the core needs from the AI service. Implementations return raw response text."""

    def analyze(self, text: str) -> str: ...

    def insights(self, entries: list[JournalEntry]) -> str: ...

    def refine_goal(self, text: str) -> str: ...

    def daily_quote(self) -> str: ...


def contains_trigger_phrase(text: str) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in TRIGGER_PHRASES)


def parse_json_response(text: str) -> Any | None:
    """Parse JSON, tolerating a surrounding markdown code fence. None on failure."""
    body = (text or "").strip()
    m = _FENCE_RE.match(body)
    if m and m.group(2):
        body = m.group(2).strip()
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse JSON response: %s", e)
        logger.debug("Original text from AI: %s", text)
        return None


def _require_dict(text: str, what: str) -> dict[str, Any]:
    data = parse_json_response(text)
    if not isinstance(data, dict):
        raise ExternalServiceError(f"Invalid {what} format from API")
    return data


def _str_list(value: Any) -> list[str] | None:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return None
    return list(value)


def parse_analysis(text: str) -> AnalysisResult:
    data = _require_dict(text, "analysis")
    emotion = data.get("emotion")
    response = data.get("response")
    suggestions = _str_list(data.get("suggestions"))
    keywords = _str_list(data.get("extractedKeywords"))
    if emotion not in MOODS or not isinstance(response, str) or not response.strip() \
            or suggestions is None or keywords is None:
        logger.error("Invalid analysis format from API. Received: %s", text)
        raise ExternalServiceError("Invalid analysis format from API")

    reframe = data.get("reframe")
    return AnalysisResult(
        emotion=emotion,
        response=response,
        suggestions=suggestions,
        extracted_keywords=keywords,
        reframe=reframe if isinstance(reframe, str) and reframe.strip() else None,
    )


def parse_insights(text: str) -> InsightsSummary:
    data = _require_dict(text, "insights")
    triggers = _str_list(data.get("topTriggers"))
    patterns = data.get("moodPatterns")
    highlight = data.get("positiveHighlight")
    suggestion = data.get("actionableSuggestion")
    if triggers is None or not isinstance(patterns, list) \
            or not isinstance(highlight, str) or not highlight \
            or not isinstance(suggestion, str) or not suggestion:
        logger.error("Invalid insights format from API. Received: %s", text)
        raise ExternalServiceError("Invalid insights format from API")

    mood_patterns = []
    for p in patterns:
        if not isinstance(p, dict):
            continue
        mood = p.get("mood")
        mood_patterns.append(MoodPattern(
            mood=mood if mood in MOODS else "Neutral",
            pattern=str(p.get("pattern", "")),
        ))
    return InsightsSummary(
        top_triggers=triggers,
        mood_patterns=mood_patterns,
        positive_highlight=highlight,
        actionable_suggestion=suggestion,
    )


def parse_refined_goal(text: str) -> str:
    data = _require_dict(text, "goal refinement")
    refined = data.get("refinedGoal")
    if not isinstance(refined, str) or not refined.strip():
        raise ExternalServiceError("Invalid goal refinement format from API")
    return refined.strip()


def parse_daily_quote(text: str) -> DailyQuote:
    data = _require_dict(text, "daily quote")
    quote, author = data.get("quote"), data.get("author")
    if not isinstance(quote, str) or not isinstance(author, str):
        raise ExternalServiceError("Invalid daily quote format from API")
    return DailyQuote(quote=quote, author=author or "Anonymous")


def format_entries_for_insights(entries: list[JournalEntry]) -> str:
    blocks = []
    for e in entries:
        blocks.append(
            f"Date: {e.timestamp[:10]}\nMood: {e.mood}\nEntry: {e.user_content}\n"
            f"Tags: {', '.join(e.activity_tags)}\n"
        )
    return "---\n".join(blocks)


def build_entry(
    text: str,
    analysis: AnalysisResult,
    tags: list[str] | None,
    now: datetime,
) -> JournalEntry:
    """Create a journal entry from user text and a validated analysis."""
    stamp = format_timestamp(now)
    return JournalEntry(
        id=stamp,
        user_content=text.strip(),
        ai_response=analysis.response,
        mood=analysis.emotion,
        timestamp=stamp,
        reframe=analysis.reframe,
        activity_tags=tuple(normalize_tags(list(tags or []) + analysis.extracted_keywords)),
        suggestions=tuple(analysis.suggestions),
    )
