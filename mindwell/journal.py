"""Append-only journal store for MindWell.

Entries are kept newest first. The full sequence is rewritten to the
``journal-entries`` slice on every append. Stored records are written back
exactly as they were read, including ones this version cannot display, so
the slice never shrinks.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any

from mindwell.errors import ValidationError
from mindwell.events import JOURNAL_CHANGED, EventBus
from mindwell.models import MOODS, JournalEntry, local_date, parse_timestamp
from mindwell.slices import JOURNAL_ENTRIES, SliceStore

logger = logging.getLogger(__name__)

CORRELATION_TAG_LIMIT = 10


def validate_entry(entry: JournalEntry) -> list[str]:
    """Validate entry shape and return list of errors (empty if valid)."""
    errors = []
    if not entry.id:
        errors.append("Missing required field: id")
    if not entry.timestamp:
        errors.append("Missing required field: timestamp")
    else:
        try:
            parse_timestamp(entry.timestamp)
        except ValueError:
            errors.append(f"Invalid timestamp: {entry.timestamp}")
    if entry.mood not in MOODS:
        errors.append(f"Invalid mood: {entry.mood}")
    if not isinstance(entry.user_content, str):
        errors.append("userContent must be a string")
    return errors


class JournalStore:
    def __init__(self, slices: SliceStore, bus: EventBus | None = None):
        self.slices = slices
        self.bus = bus
        # Raw persisted records, newest first. Records that cannot be shown
        # stay here untouched and are written back on the next save.
        self._records: list[Any] = []
        self._entries: list[JournalEntry] = []
        self._load()

    def _load(self) -> None:
        raw = self.slices.load(JOURNAL_ENTRIES)
        if raw is None:
            return
        if not isinstance(raw, list):
            logger.warning("Journal slice is a %s, keeping it as one unreadable record", type(raw).__name__)
            raw = [raw]
        self._records = list(raw)
        for item in self._records:
            entry = self._readable(item)
            if entry is not None:
                self._entries.append(entry)

    @staticmethod
    def _readable(item: Any) -> JournalEntry | None:
        """Entry to display for a stored record, or None if it cannot be shown."""
        if not isinstance(item, dict):
            logger.warning("Keeping unreadable journal record: %r", item)
            return None
        entry = JournalEntry.from_dict(item)
        if entry.mood not in MOODS:
            logger.warning("Journal entry %r has unknown mood %r, shown as Neutral", entry.id, entry.mood)
            entry = replace(entry, mood="Neutral")
        errors = validate_entry(entry)
        if errors:
            logger.warning("Keeping unreadable journal entry %r: %s", entry.id, "; ".join(errors))
            return None
        return entry

    def append(self, entry: JournalEntry | dict[str, Any]) -> JournalEntry:
        """Insert *entry* at the front and persist. Raises ValidationError on bad shape."""
        if isinstance(entry, dict):
            entry = JournalEntry.from_dict(entry)
        errors = validate_entry(entry)
        if errors:
            raise ValidationError(errors)

        self._entries.insert(0, entry)
        self._records.insert(0, entry.to_dict())
        if not self.slices.save(JOURNAL_ENTRIES, self._records):
            logger.warning("Journal entry %s kept in memory only", entry.id)
        if self.bus is not None:
            self.bus.emit(JOURNAL_CHANGED, entry)
        return entry

    def list(self) -> tuple[JournalEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stored_count(self) -> int:
        """Records in the slice, including ones that cannot be displayed."""
        return len(self._records)

    def search(self, query: str) -> list[JournalEntry]:
        """Case-insensitive match over user text, AI response and tags."""
        q = query.strip().lower()
        if not q:
            return list(self._entries)
        return [
            e for e in self._entries
            if q in e.user_content.lower()
            or q in e.ai_response.lower()
            or any(q in tag for tag in e.activity_tags)
        ]

    def recent(self, days: int, now: datetime) -> list[JournalEntry]:
        """Entries strictly newer than ``now - days``."""
        cutoff = now - timedelta(days=days)
        if cutoff.tzinfo is None:
            cutoff = cutoff.astimezone()
        result = []
        for e in self._entries:
            ts = parse_timestamp(e.timestamp)
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=cutoff.tzinfo)
            if ts > cutoff:
                result.append(e)
        return result

    def mood_by_activity(self, limit: int = CORRELATION_TAG_LIMIT) -> dict[str, dict[str, int]]:
        """Mood counts per activity tag, for the first *limit* tags seen newest first."""
        table: dict[str, dict[str, int]] = {}
        for e in self._entries:
            for tag in e.activity_tags:
                counts = table.setdefault(tag, {})
                counts[e.mood] = counts.get(e.mood, 0) + 1
        return dict(list(table.items())[:limit])

    def latest_by_day(self, tz: tzinfo = timezone.utc) -> dict[date, JournalEntry]:
        """Newest entry for each local calendar day, newest day first."""
        days: dict[date, JournalEntry] = {}
        for e in self._entries:
            day = local_date(e.timestamp, tz)
            if day not in days:
                days[day] = e
        return days
