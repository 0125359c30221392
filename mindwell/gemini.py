"""Gemini-backed AnalysisClient.

Returns raw response text; parsing and validation live in mindwell.analysis.
Any SDK failure is reported as ExternalServiceError.
"""

from __future__ import annotations

import logging
import os

from google import genai
from google.genai import types

from mindwell.analysis import format_entries_for_insights
from mindwell.errors import ExternalServiceError
from mindwell.models import MOODS, SELF_CARE_SUGGESTIONS, JournalEntry
from mindwell.workspace import DEFAULT_GEMINI_MODEL

logger = logging.getLogger(__name__)


def _analysis_prompt(text: str) -> str:
    moods = ", ".join(f"'{m}'" for m in MOODS)
    activities = ", ".join(f"'{s}'" for s in SELF_CARE_SUGGESTIONS)
    return (
        "You are MindWell, an empathetic journaling companion. Read the entry below, "
        "reply warmly in 2-3 sentences and identify the dominant emotion.\n\n"
        f'User\'s entry: "{text}"\n\n'
        f"Return one JSON object with keys: \"emotion\" (one of {moods}), "
        "\"response\" (string), "
        f"\"suggestions\" (3 of {activities}), "
        "\"extractedKeywords\" (0-3 lowercase single words for activities or topics), "
        "and, only if the entry contains negative self-talk, \"reframe\" (string)."
    )


def _insights_prompt(entries: list[JournalEntry]) -> str:
    return (
        "You are MindWell. Summarize this week of journal entries for the user.\n\n"
        f"{format_entries_for_insights(entries)}\n"
        "Return one JSON object with keys: \"topTriggers\" (2-3 strings), "
        "\"moodPatterns\" (list of {\"mood\", \"pattern\"}), "
        "\"positiveHighlight\" (string), \"actionableSuggestion\" (string)."
    )


def _refine_goal_prompt(text: str) -> str:
    return (
        "Rewrite this goal as one specific, measurable, achievable, relevant, "
        f'time-bound sentence: "{text}"\n'
        "Return one JSON object with the key \"refinedGoal\" (string)."
    )


def _daily_quote_prompt() -> str:
    return (
        "Give one short, encouraging quote about mindfulness or self-reflection. "
        "Use \"Anonymous\" if the author is unknown. "
        "Return one JSON object with keys \"quote\" and \"author\"."
    )


class GeminiClient:
    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_GEMINI_MODEL,
        client: genai.Client | None = None,
    ):
        if client is None:
            client = genai.Client(api_key=api_key or os.environ.get("GEMINI_API_KEY"))
        self.client = client
        self.model = model

    def _generate(self, prompt: str, temperature: float) -> str:
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    temperature=temperature,
                ),
            )
        except Exception as e:
            logger.error("Gemini request failed: %s", e)
            raise ExternalServiceError() from e
        text = response.text
        if not text:
            raise ExternalServiceError("Empty response from API")
        return text

    def analyze(self, text: str) -> str:
        return self._generate(_analysis_prompt(text), temperature=0.7)

    def insights(self, entries: list[JournalEntry]) -> str:
        return self._generate(_insights_prompt(entries), temperature=0.8)

    def refine_goal(self, text: str) -> str:
        return self._generate(_refine_goal_prompt(text), temperature=0.7)

    def daily_quote(self) -> str:
        return self._generate(_daily_quote_prompt(), temperature=1.0)
