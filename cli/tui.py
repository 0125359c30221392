#!/usr/bin/env python3
"""MindWell TUI: interactive terminal journal powered by Textual."""

from __future__ import annotations

import asyncio
import sys

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.reactive import reactive
from textual.widgets import DataTable, Footer, Header, Input, Label, Static

from mindwell import (
    Achievement,
    AsyncioScheduler,
    ExternalServiceError,
    Session,
    ToastPresenter,
    ValidationError,
    configure_logging,
    contains_trigger_phrase,
    init_workspace,
    load_settings,
    workspace_root,
)
from mindwell.lock import PIN_LENGTH

TRACKER_DAYS = 7

MOOD_EMOJIS = {
    "Joyful": "😊",
    "Calm": "😌",
    "Sad": "😔",
    "Anxious": "😟",
    "Angry": "😠",
    "Neutral": "😐",
}

DISTRESS_MESSAGE = (
    "It sounds like you're going through something really painful. "
    "Take a slow breath with me. If you are in danger, please contact local "
    "emergency services or a crisis line right now."
)


CSS = """
Screen {
    layout: vertical;
}

.section-title {
    text-style: bold;
    color: $accent;
    padding: 0 1;
    margin: 1 0 0 0;
}

#toast {
    dock: top;
    height: auto;
    display: none;
    background: $warning-darken-2;
    color: $text;
    padding: 0 2;
}

#lock-screen {
    align: center middle;
    height: 1fr;
}

#pin-input {
    width: 20;
}

#pin-error {
    color: $error;
    height: 1;
}

#main-layout {
    height: 1fr;
}

#journal-pane {
    width: 2fr;
}

#side-pane {
    width: 1fr;
    padding: 0 1;
}

#entries {
    height: 1fr;
}

.entry {
    height: auto;
    padding: 0 1;
    margin: 0 0 1 0;
    border: tall $primary-background-darken-2;
}

#journal-status {
    height: auto;
    color: $text-muted;
    padding: 0 1;
}

#goals-table {
    height: 1fr;
}

#progress-info {
    height: auto;
}
"""


# ── Widgets ────────────────────────────────────────────────────


class LockScreen(Vertical):
    """PIN entry. Checks once the full PIN is typed."""

    def compose(self) -> ComposeResult:
        yield Label("Enter Your PIN", classes="section-title")
        yield Input(password=True, max_length=PIN_LENGTH, id="pin-input")
        yield Static(id="pin-error")


class EntryView(Static):
    def __init__(self, text: str, **kwargs) -> None:
        super().__init__(text, **kwargs)
        self.add_class("entry")


# ── Main app ───────────────────────────────────────────────────


class MindWellApp(App):
    """MindWell: journal, goals and achievements in the terminal."""

    TITLE = "MindWell"
    CSS = CSS

    BINDINGS = [
        Binding("ctrl+g", "toggle_goal", "Toggle goal"),
        Binding("ctrl+r", "delete_goal", "Delete goal"),
        Binding("ctrl+t", "insights", "Insights"),
        Binding("ctrl+o", "doodle", "Doodle"),
        Binding("escape", "dismiss_toast", "Dismiss"),
        Binding("ctrl+l", "lock", "Lock"),
        Binding("ctrl+q", "quit", "Quit"),
    ]

    locked: reactive[bool] = reactive(False)

    def __init__(self, session: Session) -> None:
        super().__init__()
        self.session = session
        self.toasts: ToastPresenter | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="toast")
        yield LockScreen(id="lock-screen")
        yield Horizontal(
            Vertical(
                Label("Journal", classes="section-title"),
                Input(placeholder="How are you feeling today?", id="entry-input"),
                Input(placeholder="tags, comma separated", id="tags-input"),
                Static(id="journal-status"),
                VerticalScroll(id="entries"),
                id="journal-pane",
            ),
            Vertical(
                Label("Goals", classes="section-title"),
                Input(placeholder="New goal…", id="goal-input"),
                DataTable(id="goals-table", cursor_type="row"),
                Label("Progress", classes="section-title"),
                Static(id="progress-info"),
                id="side-pane",
            ),
            id="main-layout",
        )
        yield Footer()

    def on_mount(self) -> None:
        self.toasts = ToastPresenter(
            self.session.achievements,
            AsyncioScheduler(),
            timeout=self.session.settings.toast_timeout_seconds,
            bus=self.session.bus,
            on_change=self._show_toast,
        )
        self.query_one("#goals-table", DataTable).add_columns("Done", "Goal")
        self.locked = self.session.lock.is_locked
        self._refresh_all()
        # Unlocks computed while the session opened are already queued.
        self.toasts.sync()

    def on_unmount(self) -> None:
        if self.toasts is not None:
            self.toasts.close()
        self.session.close()

    def watch_locked(self, locked: bool) -> None:
        self.query_one("#lock-screen").display = locked
        self.query_one("#main-layout").display = not locked
        if self.toasts is not None:
            # The dismiss timer only runs while the toast can be seen
            if locked:
                self.toasts.pause()
            else:
                self.toasts.resume()
        if locked:
            self.query_one("#pin-input", Input).focus()
        else:
            self.query_one("#entry-input", Input).focus()

    # ── Rendering ──────────────────────────────────────────────

    def _show_toast(self, toast: Achievement | None) -> None:
        widget = self.query_one("#toast", Static)
        if toast is None or self.locked:
            widget.display = False
            return
        widget.update(f"🏆 ACHIEVEMENT UNLOCKED  {toast.title}   (esc to dismiss)")
        widget.display = True

    def _refresh_all(self) -> None:
        self._refresh_entries()
        self._refresh_goals()
        self._refresh_progress()

    def _refresh_entries(self) -> None:
        container = self.query_one("#entries", VerticalScroll)
        container.remove_children()
        for e in self.session.journal.list():
            lines = [
                f"{MOOD_EMOJIS.get(e.mood, '')} {e.mood}  {e.timestamp[:16].replace('T', ' ')}",
                e.user_content,
                f"> {e.ai_response}",
            ]
            if e.reframe:
                lines.append(f"💡 {e.reframe}")
            if e.suggestions:
                lines.append("Try: " + ", ".join(e.suggestions))
            if e.activity_tags:
                lines.append(" ".join(f"#{t}" for t in e.activity_tags))
            container.mount(EntryView("\n".join(lines), markup=False))

    def _refresh_goals(self) -> None:
        table = self.query_one("#goals-table", DataTable)
        table.clear()
        for g in self.session.goals.list():
            table.add_row("✔" if g.is_completed else " ", g.text, key=g.id)

    def _refresh_progress(self) -> None:
        completed, total, percent = self.session.goals.progress()
        unlocked, catalog, earned = self.session.achievements.progress()
        lines = [
            f"Goals: {completed}/{total} ({percent}%)",
            f"Achievements: {unlocked}/{catalog} ({earned}%)",
            "",
        ]
        for a in self.session.achievement_records():
            lines.append(f"{'🏆' if a.unlocked else '🔒'} {a.title}")

        days = list(self.session.journal.latest_by_day(self.session.tz).items())[:TRACKER_DAYS]
        if days:
            lines += ["", "Mood by day"]
            for day, entry in days:
                lines.append(f"{day:%a %d %b}  {MOOD_EMOJIS.get(entry.mood, '')} {entry.mood}")

        table = self.session.journal.mood_by_activity()
        if table:
            lines += ["", "Moods by activity"]
            for tag, moods in table.items():
                counts = ", ".join(f"{MOOD_EMOJIS.get(m, m)}{n}" for m, n in sorted(moods.items(), key=lambda kv: -kv[1]))
                lines.append(f"#{tag}  {counts}")
        self.query_one("#progress-info", Static).update("\n".join(lines))

    def _status(self, message: str) -> None:
        self.query_one("#journal-status", Static).update(message)

    # ── Lock ───────────────────────────────────────────────────

    @on(Input.Changed, "#pin-input")
    def _on_pin_change(self, event: Input.Changed) -> None:
        pin = event.value
        if len(pin) < PIN_LENGTH:
            return
        if self.session.lock.check_pin(pin):
            event.input.value = ""
            self.locked = False
            return
        self.query_one("#pin-error", Static).update("Incorrect PIN. Please try again.")
        self.set_timer(1.0, self._clear_pin)

    def _clear_pin(self) -> None:
        self.query_one("#pin-input", Input).value = ""
        self.query_one("#pin-error", Static).update("")

    def action_lock(self) -> None:
        if not self.session.lock.has_pin:
            self.notify("Set a PIN first (mindwell --set-pin).", severity="warning")
            return
        self.session.lock.lock()
        self.locked = True

    # ── Journal ────────────────────────────────────────────────

    @on(Input.Submitted, "#entry-input")
    def _on_entry_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        if not text or self.locked:
            return
        if contains_trigger_phrase(text):
            self._status(DISTRESS_MESSAGE)
            return
        tags_input = self.query_one("#tags-input", Input)
        tags = [t for t in tags_input.value.split(",") if t.strip()]
        self._status("Reflecting…")
        self._submit_entry(text, tags)

    @work(exclusive=True, group="entry")
    async def _submit_entry(self, text: str, tags: list[str]) -> None:
        try:
            analysis = await asyncio.to_thread(self.session.analyze, text)
        except ExternalServiceError:
            self._status("I'm having trouble reflecting right now. Please try again later.")
            return
        self.session.commit_entry(text, analysis, tags)
        self.query_one("#entry-input", Input).value = ""
        self.query_one("#tags-input", Input).value = ""
        self._status("")
        self._refresh_all()

    def action_insights(self) -> None:
        if self.locked:
            return
        try:
            entries = self.session.begin_insights()
        except ValidationError as e:
            self._status(str(e))
            return
        self._refresh_progress()
        self._request_insights(entries)

    @work(exclusive=True, group="insights")
    async def _request_insights(self, entries: list) -> None:
        self._status("Generating insights…")
        try:
            summary = await asyncio.to_thread(self.session.summarize_insights, entries)
        except ExternalServiceError:
            self._status("Could not generate insights. Please try again later.")
            return
        lines = ["Weekly insights", "Triggers: " + ", ".join(summary.top_triggers)]
        for p in summary.mood_patterns:
            lines.append(f"{MOOD_EMOJIS.get(p.mood, '')} {p.pattern}")
        lines += [f"✨ {summary.positive_highlight}", f"→ {summary.actionable_suggestion}"]
        self._status("\n".join(lines))

    def action_doodle(self) -> None:
        if self.locked:
            return
        self.session.use_creative_tool()
        self._refresh_progress()
        self.notify("Doodle away. Let your thoughts flow!")

    # ── Goals ──────────────────────────────────────────────────

    @on(Input.Submitted, "#goal-input")
    def _on_goal_submitted(self, event: Input.Submitted) -> None:
        try:
            self.session.add_goal(event.value)
        except ValidationError as e:
            self.notify(str(e), severity="warning")
            return
        event.input.value = ""
        self._refresh_goals()
        self._refresh_progress()

    def _selected_goal_id(self) -> str | None:
        table = self.query_one("#goals-table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return row_key.value

    def action_toggle_goal(self) -> None:
        goal_id = self._selected_goal_id()
        if goal_id is None or self.locked:
            return
        self.session.goals.toggle_completion(goal_id)
        self._refresh_goals()
        self._refresh_progress()

    def action_delete_goal(self) -> None:
        goal_id = self._selected_goal_id()
        if goal_id is None or self.locked:
            return
        self.session.goals.remove(goal_id)
        self._refresh_goals()
        self._refresh_progress()

    # ── Toasts ─────────────────────────────────────────────────

    def action_dismiss_toast(self) -> None:
        if self.toasts is not None:
            self.toasts.dismiss()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    root = workspace_root()
    if not root.exists():
        print(f"Creating workspace at {root}")
        init_workspace(root)

    configure_logging(load_settings(root).log_level)
    session = Session.open(root)

    args = sys.argv[1:]
    if args and args[0] == "--set-pin":
        if len(args) != 2:
            print("Usage: mindwell --set-pin 1234")
            sys.exit(2)
        try:
            session.lock.set_pin(args[1])
        except ValidationError as e:
            print(e)
            sys.exit(2)
        print("PIN set.")
        return
    if args and args[0] == "--remove-pin":
        session.lock.remove_pin()
        print("PIN removed.")
        return

    MindWellApp(session).run()


if __name__ == "__main__":
    main()
