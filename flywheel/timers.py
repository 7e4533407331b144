"""QtTimerScheduler: TimerScheduler backed by QTimer on the Qt event loop."""

import itertools
import logging

from PyQt6.QtCore import Qt, QElapsedTimer, QObject, QTimer

logger = logging.getLogger(__name__)


class QtTimerScheduler(QObject):
    """One QTimer per handle; each timer is parented to the scheduler.

    Intervals are rounded to whole milliseconds (QTimer resolution) and use
    Qt.TimerType.PreciseTimer so long runs do not drift against the
    stopwatch, which reads the same monotonic clock.
    """

    MIN_INTERVAL_MS = 1

    def __init__(self, parent=None):
        super().__init__(parent)
        self._clock = QElapsedTimer()
        self._clock.start()
        self._timers = {}
        self._handles = itertools.count(1)

    def now_ms(self):
        return self._clock.nsecsElapsed() / 1_000_000

    def schedule_one_shot(self, fn, delay_ms):
        return self._start(fn, max(0, round(delay_ms)), single_shot=True)

    def schedule_repeating(self, fn, interval_ms):
        return self._start(fn, max(self.MIN_INTERVAL_MS, round(interval_ms)),
                           single_shot=False)

    def cancel(self, handle):
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.stop()
            timer.deleteLater()

    @property
    def pending(self):
        return len(self._timers)

    def _start(self, fn, interval, single_shot):
        handle = next(self._handles)
        timer = QTimer(self)
        timer.setTimerType(Qt.TimerType.PreciseTimer)
        timer.setSingleShot(single_shot)
        timer.setInterval(int(interval))

        def fire():
            if single_shot:
                self._timers.pop(handle, None)
                timer.deleteLater()
            try:
                fn()
            except Exception:
                # An exception escaping a slot would abort the event loop
                logger.exception("Timer callback failed")

        timer.timeout.connect(fire)
        self._timers[handle] = timer
        timer.start()
        return handle
