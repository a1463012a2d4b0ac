"""
Deferred-call scheduling for the debounced remote write.

``ThreadingScheduler`` runs callbacks on timer threads; ``ManualScheduler``
is a deterministic double whose clock only moves when a test advances it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Runs a callback once after ``delay`` seconds unless cancelled."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class ThreadingScheduler:
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


@dataclass
class _ManualTimer:
    due: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Test double: timers fire only from ``advance``."""

    now: float = 0.0
    timers: list = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(due=self.now + delay, callback=callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire due timers; returns how many ran."""
        self.now += seconds
        fired = 0
        while True:
            due = [t for t in self.pending if t.due <= self.now]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            timer.cancelled = True
            timer.callback()
            fired += 1
        self.timers = self.pending
        return fired


class DebouncedTask:
    """
    A single-slot deferred call.

    Each ``trigger`` replaces the pending call, so a burst of triggers inside
    ``delay`` runs ``callback`` once with the arguments of the last trigger.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        delay: float,
        callback: Callable[..., Any],
    ):
        self._scheduler = scheduler
        self._delay = delay
        self._callback = callback
        self._lock = threading.Lock()
        self._handle: Optional[TimerHandle] = None
        self._args: tuple = ()
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args: Any) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._generation += 1
            generation = self._generation
            self._args = args
            self._handle = self._scheduler.call_later(
                self._delay, lambda: self._fire(generation)
            )

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            self._args = ()

    def flush(self) -> bool:
        """Run the pending call now; returns False when nothing was pending."""
        with self._lock:
            if self._handle is None:
                return False
            self._handle.cancel()
            generation = self._generation
        self._fire(generation)
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer that lost the race with a newer trigger or a cancel.
            if generation != self._generation or self._handle is None:
                return
            args = self._args
            self._handle = None
            self._args = ()
        try:
            self._callback(*args)
        except Exception:
            logger.exception("Deferred call failed")
