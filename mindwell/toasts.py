"""Achievement toast presentation with cancellable auto-dismiss.

The presenter shows the head of the engine's toast queue and schedules its
dismissal. Whenever the head changes the pending timer is cancelled before a
new one is scheduled, and a timer that still fires for a toast no longer at
the head does nothing.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Protocol

from mindwell.achievements import AchievementsEngine
from mindwell.events import ACHIEVEMENT_UNLOCKED, EventBus
from mindwell.models import Achievement
from mindwell.workspace import DEFAULT_TOAST_TIMEOUT

logger = logging.getLogger(__name__)


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay: float, callback: Callable[[], None]) -> Handle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio loop via ``call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop

    def schedule(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self.loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class ToastPresenter:
    def __init__(
        self,
        engine: AchievementsEngine,
        scheduler: Scheduler,
        timeout: float = DEFAULT_TOAST_TIMEOUT,
        bus: EventBus | None = None,
        on_change: Callable[[Achievement | None], None] | None = None,
    ):
        self.engine = engine
        self.scheduler = scheduler
        self.timeout = timeout
        self.on_change = on_change
        self._shown: Achievement | None = None
        self._handle: Handle | None = None
        self._paused = False
        self._unsubscribe = None
        if bus is not None:
            self._unsubscribe = bus.subscribe(ACHIEVEMENT_UNLOCKED, self._on_unlock)

    @property
    def shown(self) -> Achievement | None:
        return self._shown

    @property
    def paused(self) -> bool:
        return self._paused

    def _on_unlock(self, event: str, payload: Any) -> None:
        self.sync()

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def sync(self) -> Achievement | None:
        """Show the current queue head, rescheduling only if it changed.

        While paused nothing is shown and no timer runs; the queue is untouched.
        """
        if self._paused:
            return None
        head = self.engine.current_toast()
        if head is self._shown:
            return head
        self._cancel()
        self._shown = head
        if head is not None:
            self._handle = self.scheduler.schedule(self.timeout, lambda: self._expire(head))
        if self.on_change is not None:
            self.on_change(head)
        return head

    def _expire(self, toast: Achievement) -> None:
        if toast is not self._shown or self.engine.current_toast() is not toast:
            logger.debug("Stale toast timer for %s ignored", toast.id)
            return
        self._handle = None
        self.engine.dismiss_toast()
        self.sync()

    def dismiss(self) -> Achievement | None:
        """Dismiss the visible toast by hand. No-op when nothing is queued."""
        self._cancel()
        dismissed = self.engine.dismiss_toast()
        self.sync()
        return dismissed

    def pause(self) -> None:
        """Hide the toast and stop its timer, e.g. while the app is locked."""
        if self._paused:
            return
        self._paused = True
        self._cancel()
        if self._shown is not None:
            self._shown = None
            if self.on_change is not None:
                self.on_change(None)

    def resume(self) -> Achievement | None:
        """Show the queue head again with a fresh timer."""
        self._paused = False
        return self.sync()

    def close(self) -> None:
        self._cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
