"""Trailing-edge debounce for deferred saves.

Each ``schedule`` cancels whatever is pending and starts the delay over, so a
burst of edits produces exactly one callback with the latest state. The timer
factory is injectable; tests pass a fake timer and fire it by hand.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


class Debouncer:
    """A single cancelable deferred task."""

    def __init__(self, delay: float, *, timer_factory: TimerFactory | None = None, name: str = "debounce"):
        self.delay = delay
        self.name = name
        self._timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer: Any = None
        self._callback: Callable[[], None] | None = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._callback is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        """(Re)start the delay; ``callback`` replaces any pending one."""
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            generation = self._generation
            self._callback = callback
            timer = self._timer_factory(self.delay, lambda: self._fire(generation))
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> bool:
        """Drop the pending callback. Returns True if one was pending."""
        with self._lock:
            had_pending = self._callback is not None
            self._cancel_timer()
            self._callback = None
            self._generation += 1
        return had_pending

    def flush(self) -> bool:
        """Run the pending callback now, on the calling thread.

        Returns True if there was something to run.
        """
        with self._lock:
            callback = self._callback
            self._cancel_timer()
            self._callback = None
            self._generation += 1
        if callback is None:
            return False
        callback()
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer that lost a cancel race must not run a newer callback
            if generation != self._generation or self._callback is None:
                return
            callback = self._callback
            self._callback = None
            self._timer = None
        try:
            callback()
        except Exception as e:
            logger.exception("%s callback failed: %s", self.name, e)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
