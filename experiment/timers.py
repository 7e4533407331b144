"""Timer scheduling: the TimerScheduler Protocol and a virtual-clock backend.

All animation chains are driven by one-shot and repeating callbacks on a
single event loop. Two schedulers implement the Protocol:
  ManualScheduler (here): virtual clock, advanced explicitly; deterministic.
  QtTimerScheduler (flywheel.timers): QTimer on the Qt event loop.

RunTimers binds a scheduler to a CancellationToken scoped to one run, so
every callback of a run becomes a no-op once that run has been cancelled.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)

# Repeating timers never fire more often than this (ms)
MIN_INTERVAL_MS = 1.0


class TimerScheduler(Protocol):
    """Protocol for cancellable one-shot and repeating callbacks."""

    def schedule_one_shot(self, fn: Callable[[], None], delay_ms: float) -> int:
        """Call fn once after delay_ms. Returns a handle."""
        ...

    def schedule_repeating(self, fn: Callable[[], None], interval_ms: float) -> int:
        """Call fn every interval_ms until cancelled. Returns a handle."""
        ...

    def cancel(self, handle: int) -> None:
        """Cancel a pending timer. Unknown or fired handles are ignored."""
        ...

    def now_ms(self) -> float:
        """Current time of the scheduler's clock (ms)."""
        ...


@dataclass(order=True)
class _Entry:
    due: float
    seq: int
    handle: int = field(compare=False)
    fn: Callable[[], None] = field(compare=False)
    interval: float | None = field(compare=False, default=None)


class ManualScheduler:
    """Virtual-clock scheduler. Time only moves in advance()/run_until_idle().

    Callbacks due at the same instant fire in the order they were scheduled.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms
        self._queue: list[_Entry] = []
        self._live: dict[int, _Entry] = {}
        self._handles = itertools.count(1)
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def schedule_one_shot(self, fn, delay_ms):
        return self._push(fn, max(delay_ms, 0.0), None)

    def schedule_repeating(self, fn, interval_ms):
        interval = max(interval_ms, MIN_INTERVAL_MS)
        return self._push(fn, interval, interval)

    def cancel(self, handle):
        self._live.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._live)

    def _push(self, fn, delay, interval):
        handle = next(self._handles)
        entry = _Entry(self._now + delay, next(self._seq), handle, fn, interval)
        self._live[handle] = entry
        heapq.heappush(self._queue, entry)
        return handle

    def _pop_due(self, until: float) -> _Entry | None:
        while self._queue and self._queue[0].due <= until:
            entry = heapq.heappop(self._queue)
            if self._live.get(entry.handle) is entry:
                return entry
        return None

    def _fire(self, entry: _Entry) -> None:
        self._now = max(self._now, entry.due)
        if entry.interval is None:
            del self._live[entry.handle]
        else:
            # Re-arm under the same handle before running
            rearmed = _Entry(entry.due + entry.interval, next(self._seq),
                             entry.handle, entry.fn, entry.interval)
            self._live[entry.handle] = rearmed
            heapq.heappush(self._queue, rearmed)
        entry.fn()

    def advance(self, ms: float) -> int:
        """Move the clock forward by ms, firing everything due. Returns count fired."""
        until = self._now + ms
        fired = 0
        entry = self._pop_due(until)
        while entry is not None:
            self._fire(entry)
            fired += 1
            entry = self._pop_due(until)
        self._now = until
        return fired

    def run_until_idle(self, limit_ms: float = 3_600_000.0) -> bool:
        """Fire callbacks in time order until none are pending.

        Returns True if the queue drained, False if limit_ms of virtual time
        passed first (e.g. a repeating timer nobody cancels).
        """
        until = self._now + limit_ms
        entry = self._pop_due(until)
        while entry is not None:
            self._fire(entry)
            entry = self._pop_due(until)
        drained = not self._live
        if not drained:
            self._now = until
        return drained


class CancellationToken:
    """Set once when a run is reset; checked by every callback of that run."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class RunTimers:
    """Timers belonging to one run, guarded by the run's cancellation token."""

    def __init__(self, scheduler: TimerScheduler, token: CancellationToken | None = None):
        self.scheduler = scheduler
        self.token = token or CancellationToken()
        self._handles: set[int] = set()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def now_ms(self) -> float:
        return self.scheduler.now_ms()

    def one_shot(self, fn: Callable[[], None], delay_ms: float) -> int | None:
        if self.token.cancelled:
            return None
        handle = None

        def fire():
            self._handles.discard(handle)
            if self.token.cancelled:
                return
            fn()

        handle = self.scheduler.schedule_one_shot(fire, delay_ms)
        self._handles.add(handle)
        return handle

    def repeating(self, fn: Callable[[], None], interval_ms: float) -> int | None:
        if self.token.cancelled:
            return None

        def fire():
            if self.token.cancelled:
                return
            fn()

        handle = self.scheduler.schedule_repeating(fire, interval_ms)
        self._handles.add(handle)
        return handle

    def cancel(self, handle: int | None) -> None:
        if handle is None:
            return
        self._handles.discard(handle)
        self.scheduler.cancel(handle)

    def cancel_pending(self) -> None:
        """Cancel every outstanding timer but keep the run alive."""
        for handle in list(self._handles):
            self.scheduler.cancel(handle)
        self._handles.clear()

    def cancel_all(self) -> None:
        """Cancel the run: no callback of it will have any effect afterwards."""
        self.token.cancel()
        self.cancel_pending()
