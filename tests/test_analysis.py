"""Tests for mindwell/analysis.py: AI response parsing and entry building."""

import json
from datetime import datetime, timezone

import pytest

from mindwell.analysis import (
    build_entry,
    contains_trigger_phrase,
    format_entries_for_insights,
    parse_analysis,
    parse_daily_quote,
    parse_insights,
    parse_json_response,
    parse_refined_goal,
)
from mindwell.errors import ExternalServiceError
from mindwell.models import AnalysisResult, JournalEntry

VALID = {
    "emotion": "Anxious",
    "response": "Exams are a lot to carry.",
    "suggestions": ["Breathing Exercise", "Music", "Meditation"],
    "extractedKeywords": ["Exams", "study"],
}


def test_parse_json_plain():
    assert parse_json_response('{"a": 1}') == {"a": 1}


def test_parse_json_fenced():
    assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_response('```\n{"a": 2}\n```') == {"a": 2}


def test_parse_json_garbage_returns_none():
    assert parse_json_response("sorry, I can't") is None
    assert parse_json_response("") is None


def test_parse_analysis_valid():
    result = parse_analysis(json.dumps(VALID))
    assert result.emotion == "Anxious"
    assert result.extracted_keywords == ["Exams", "study"]
    assert result.reframe is None


def test_parse_analysis_keeps_reframe():
    result = parse_analysis(json.dumps({**VALID, "reframe": "One exam is not your worth."}))
    assert result.reframe == "One exam is not your worth."


def test_parse_analysis_blank_reframe_dropped():
    assert parse_analysis(json.dumps({**VALID, "reframe": " "})).reframe is None


@pytest.mark.parametrize("broken", [
    {**VALID, "emotion": "Ecstatic"},
    {**VALID, "response": ""},
    {**VALID, "suggestions": "Music"},
    {k: v for k, v in VALID.items() if k != "extractedKeywords"},
    ["not", "an", "object"],
])
def test_parse_analysis_invalid_shape(broken):
    with pytest.raises(ExternalServiceError):
        parse_analysis(json.dumps(broken))


def test_parse_analysis_not_json():
    with pytest.raises(ExternalServiceError):
        parse_analysis("I feel you.")


def test_parse_insights():
    summary = parse_insights(json.dumps({
        "topTriggers": ["work"],
        "moodPatterns": [{"mood": "Sad", "pattern": "Sundays"}, {"mood": "Weird", "pattern": "?"}],
        "positiveHighlight": "Walks",
        "actionableSuggestion": "More walks",
    }))
    assert [p.mood for p in summary.mood_patterns] == ["Sad", "Neutral"]


def test_parse_insights_missing_field():
    with pytest.raises(ExternalServiceError):
        parse_insights(json.dumps({"topTriggers": ["work"]}))


def test_parse_refined_goal():
    assert parse_refined_goal('{"refinedGoal": " Walk daily. "}') == "Walk daily."
    with pytest.raises(ExternalServiceError):
        parse_refined_goal('{"refinedGoal": ""}')


def test_parse_daily_quote_defaults_author():
    quote = parse_daily_quote('{"quote": "Be here now.", "author": ""}')
    assert quote.author == "Anonymous"


def test_build_entry_merges_and_normalizes_tags():
    analysis = AnalysisResult(
        emotion="Calm",
        response="Nice.",
        suggestions=["Music"],
        extracted_keywords=["Walk", "park"],
    )
    now = datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)
    entry = build_entry("  Went for a walk  ", analysis, [" walk", "Friends"], now)
    assert entry.id == entry.timestamp == "2024-03-01T08:30:00.000Z"
    assert entry.user_content == "Went for a walk"
    assert entry.activity_tags == ("walk", "friends", "park")
    assert entry.mood == "Calm"
    assert entry.reframe is None


def test_trigger_phrases_case_insensitive():
    assert contains_trigger_phrase("Honestly I Want To Die some days")
    assert contains_trigger_phrase("feeling hopeless again")
    assert not contains_trigger_phrase("Had a lovely day")


def test_format_entries_for_insights():
    entry = JournalEntry(
        id="1", user_content="Long day", mood="Sad",
        timestamp="2024-01-02T10:00:00.000Z", activity_tags=("work",),
    )
    text = format_entries_for_insights([entry])
    assert "Date: 2024-01-02" in text
    assert "Mood: Sad" in text
    assert "Tags: work" in text
