"""
kernel/clock.py - Time source and timers for the orchestrator

ManualClock keeps virtual time for tests and synchronous hosts;
AsyncioClock schedules on the running asyncio loop.
"""

from __future__ import annotations
from typing import Callable, List, Optional
import asyncio
import heapq
import itertools
import logging

logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellable handle for a scheduled callback."""

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self._native: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        self.cancelled = True
        if self._native is not None:
            self._native.cancel()


class Clock:
    """Interface for time sources."""

    def monotonic(self) -> float:
        """Current time in seconds."""
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback after delay seconds."""
        raise NotImplementedError


class ManualClock(Clock):
    """Virtual clock; callbacks fire only from advance()."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._timers: List[tuple] = []
        self._counter = itertools.count()

    def monotonic(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._timers, (handle.when, next(self._counter), handle))
        return handle

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, h in self._timers if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move time forward, firing due callbacks in deadline order.

        Callbacks scheduled while advancing fire too if they fall inside
        the window. Returns the number of callbacks run.
        """
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        target = self._now + seconds
        fired = 0
        while self._timers and self._timers[0][0] <= target:
            when, _, handle = heapq.heappop(self._timers)
            if handle.cancelled:
                continue
            self._now = max(self._now, when)
            handle.callback()
            fired += 1
        self._now = target
        return fired

    def advance_ms(self, milliseconds: float) -> int:
        return self.advance(milliseconds / 1000.0)


class AsyncioClock(Clock):
    """Clock backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def monotonic(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self.loop.time() + max(delay, 0.0), callback)
        handle._native = self.loop.call_later(max(delay, 0.0), callback)
        return handle
