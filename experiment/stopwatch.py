"""Stopwatch: start / pause / reset elapsed-time measurement.

The clock is injected so the same stopwatch runs on wall time in the GUI
and on the virtual clock of a ManualScheduler in headless runs and tests.
Elapsed time is divided by ``rate`` (clamped to [0.1, 1]), which lets a
slowed-down animation still read in experiment seconds.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> float:
    return time.monotonic() * 1000.0


class Stopwatch:
    """Elapsed-time device with a lap time consumed by the calculator."""

    MIN_RATE = 0.1
    MAX_RATE = 1.0

    def __init__(self, clock: Callable[[], float] | None = None, rate: float = 1.0):
        self._clock = clock or _wall_clock_ms
        self.rate = rate
        self._lap_ms = 0.0
        self._started_at: float | None = None

    @property
    def rate(self) -> float:
        return self._rate

    @rate.setter
    def rate(self, value: float) -> None:
        if value <= 0:
            value = self.MIN_RATE
        self._rate = min(value, self.MAX_RATE)

    @property
    def running(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        """Start timing. No effect if already running."""
        if self.running:
            return
        self._started_at = self._clock()
        logger.debug("Stopwatch started at %.1f ms (lap %.1f ms)",
                     self._started_at, self._lap_ms)

    def pause(self) -> None:
        """Stop timing and fold the running interval into the lap time."""
        if not self.running:
            return
        self._lap_ms += (self._clock() - self._started_at) / self._rate
        self._started_at = None
        logger.debug("Stopwatch paused at lap %.1f ms", self._lap_ms)

    def reset(self) -> None:
        self.pause()
        self._lap_ms = 0.0

    def elapsed_ms(self) -> float:
        """Lap time plus the currently running interval, in ms."""
        if self.running:
            return self._lap_ms + (self._clock() - self._started_at) / self._rate
        return self._lap_ms

    @property
    def lap_seconds(self) -> float | None:
        """Elapsed time in seconds, or None if nothing was timed."""
        elapsed = self.elapsed_ms()
        return elapsed / 1000 if elapsed > 0 else None

    def split(self) -> tuple[int, int, int, int]:
        """Return (hours, minutes, seconds, milliseconds)."""
        total = int(self.elapsed_ms())
        hours, total = divmod(total, 3_600_000)
        minutes, total = divmod(total, 60_000)
        seconds, millis = divmod(total, 1000)
        return hours, minutes, seconds, millis

    def format(self) -> str:
        """Readout as HH:MM:SS.mmm."""
        h, m, s, ms = self.split()
        return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"
