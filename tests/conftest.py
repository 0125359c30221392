"""Shared test fixtures for MindWell tests."""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from mindwell.errors import ExternalServiceError
from mindwell.events import EventBus
from mindwell.slices import SliceStore


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with standard structure."""
    root = tmp_path / "workspace"
    (root / "data").mkdir(parents=True)

    settings = {
        "timezone": "UTC",
        "toast_timeout_seconds": 5,
        "gemini_model": "gemini-2.5-flash",
        "log_level": "INFO",
    }
    (root / "settings.yaml").write_text(
        yaml.dump(settings, default_flow_style=False), encoding="utf-8"
    )

    # Set env var
    os.environ["MINDWELL_ROOT"] = str(root)
    yield root
    # Cleanup
    if "MINDWELL_ROOT" in os.environ:
        del os.environ["MINDWELL_ROOT"]


@pytest.fixture
def slices(workspace: Path) -> SliceStore:
    return SliceStore(workspace)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


# ── Fakes ─────────────────────────────────────────────────────


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback()


class FakeScheduler:
    """Records scheduled callbacks; tests fire them by hand."""

    def __init__(self):
        self.handles: list[FakeHandle] = []

    def schedule(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]


class FakeClient:
    """AnalysisClient returning canned JSON, or raising when *fail* is set."""

    def __init__(self, analysis=None, insights=None, refined="Walk 20 minutes every weekday this month.", quote=None):
        self.analysis = analysis or {
            "emotion": "Calm",
            "response": "That sounds like a peaceful day.",
            "suggestions": ["Meditation", "Music", "Breathing Exercise"],
            "extractedKeywords": ["Walk", "park"],
        }
        self.insights_payload = insights or {
            "topTriggers": ["work", "sleep"],
            "moodPatterns": [{"mood": "Calm", "pattern": "Evenings are calmer."}],
            "positiveHighlight": "You walked three times.",
            "actionableSuggestion": "Keep the evening walk.",
        }
        self.refined = refined
        self.quote = quote or {"quote": "Breathe.", "author": "Anonymous"}
        self.fail = False
        self.calls: list[str] = []

    def _reply(self, name, payload):
        self.calls.append(name)
        if self.fail:
            raise ExternalServiceError()
        return payload if isinstance(payload, str) else json.dumps(payload)

    def analyze(self, text):
        return self._reply("analyze", self.analysis)

    def insights(self, entries):
        return self._reply("insights", self.insights_payload)

    def refine_goal(self, text):
        return self._reply("refine_goal", {"refinedGoal": self.refined})

    def daily_quote(self):
        return self._reply("daily_quote", self.quote)


class Clock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        current = self.now
        self.now = current + self.step
        return current


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def clock() -> Clock:
    return Clock()
