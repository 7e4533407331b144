"""Tests for experiment.timers: virtual clock and per-run cancellation."""

from experiment.timers import CancellationToken, ManualScheduler, RunTimers


class TestManualScheduler:

    def test_one_shot_fires_at_due_time(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.schedule_one_shot(lambda: fired.append(scheduler.now_ms()), 250)
        scheduler.advance(249)
        assert fired == []
        scheduler.advance(1)
        assert fired == [250]
        assert scheduler.pending == 0

    def test_same_instant_fires_in_schedule_order(self):
        scheduler = ManualScheduler()
        order = []
        scheduler.schedule_one_shot(lambda: order.append("a"), 100)
        scheduler.schedule_one_shot(lambda: order.append("b"), 100)
        scheduler.schedule_one_shot(lambda: order.append("c"), 50)
        scheduler.advance(100)
        assert order == ["c", "a", "b"]

    def test_repeating_until_cancelled(self):
        scheduler = ManualScheduler()
        ticks = []
        handle = scheduler.schedule_repeating(lambda: ticks.append(scheduler.now_ms()), 30)
        scheduler.advance(95)
        assert ticks == [30, 60, 90]
        scheduler.cancel(handle)
        scheduler.advance(100)
        assert len(ticks) == 3

    def test_repeating_can_cancel_itself(self):
        scheduler = ManualScheduler()
        ticks = []

        def tick():
            ticks.append(1)
            if len(ticks) == 4:
                scheduler.cancel(handle)

        handle = scheduler.schedule_repeating(tick, 10)
        assert scheduler.run_until_idle()
        assert len(ticks) == 4

    def test_cancel_unknown_handle_ignored(self):
        scheduler = ManualScheduler()
        scheduler.cancel(12345)

    def test_callbacks_can_schedule_more(self):
        scheduler = ManualScheduler()
        seen = []

        def chain(n):
            seen.append(scheduler.now_ms())
            if n:
                scheduler.schedule_one_shot(lambda: chain(n - 1), 10)

        scheduler.schedule_one_shot(lambda: chain(3), 0)
        assert scheduler.run_until_idle()
        assert seen == [0, 10, 20, 30]

    def test_run_until_idle_limit(self):
        scheduler = ManualScheduler()
        scheduler.schedule_repeating(lambda: None, 100)
        assert not scheduler.run_until_idle(limit_ms=1000)
        assert scheduler.now_ms() == 1000


class TestRunTimers:

    def test_cancel_all_stops_pending(self):
        scheduler = ManualScheduler()
        timers = RunTimers(scheduler)
        fired = []
        timers.one_shot(lambda: fired.append("once"), 10)
        timers.repeating(lambda: fired.append("again"), 10)
        timers.cancel_all()
        scheduler.advance(100)
        assert fired == []
        assert timers.cancelled
        assert scheduler.pending == 0

    def test_no_scheduling_after_cancel(self):
        timers = RunTimers(ManualScheduler())
        timers.cancel_all()
        assert timers.one_shot(lambda: None, 10) is None
        assert timers.repeating(lambda: None, 10) is None

    def test_stale_callback_is_noop(self):
        """A callback that slips past cancellation has no effect."""

        class CapturingScheduler(ManualScheduler):
            def __init__(self):
                super().__init__()
                self.callbacks = []

            def _push(self, fn, delay, interval):
                self.callbacks.append(fn)
                return super()._push(fn, delay, interval)

        scheduler = CapturingScheduler()
        token = CancellationToken()
        timers = RunTimers(scheduler, token)
        fired = []
        timers.one_shot(lambda: fired.append(1), 10)
        timers.repeating(lambda: fired.append(2), 10)
        token.cancel()
        for callback in scheduler.callbacks:
            callback()
        assert fired == []

    def test_cancel_pending_keeps_run_alive(self):
        scheduler = ManualScheduler()
        timers = RunTimers(scheduler)
        timers.one_shot(lambda: None, 10)
        timers.cancel_pending()
        assert not timers.cancelled
        assert scheduler.pending == 0
        assert timers.one_shot(lambda: None, 10) is not None
