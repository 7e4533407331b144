"""Tests for experiment.stopwatch."""

import pytest

from experiment.stopwatch import Stopwatch


class FakeClock:
    def __init__(self):
        self.ms = 0.0

    def __call__(self):
        return self.ms


@pytest.fixture
def clock():
    return FakeClock()


class TestStopwatch:

    def test_initially_stopped_and_empty(self, clock):
        sw = Stopwatch(clock)
        assert not sw.running
        assert sw.elapsed_ms() == 0
        assert sw.lap_seconds is None

    def test_start_pause(self, clock):
        sw = Stopwatch(clock)
        clock.ms = 100
        sw.start()
        clock.ms = 1600
        assert sw.elapsed_ms() == 1500
        sw.pause()
        clock.ms = 5000
        assert sw.lap_seconds == pytest.approx(1.5)

    def test_pause_resume_accumulates(self, clock):
        sw = Stopwatch(clock)
        sw.start()
        clock.ms = 1000
        sw.pause()
        clock.ms = 2000
        sw.start()
        clock.ms = 2500
        sw.pause()
        assert sw.elapsed_ms() == 1500

    def test_double_start_keeps_origin(self, clock):
        sw = Stopwatch(clock)
        sw.start()
        clock.ms = 400
        sw.start()
        clock.ms = 1000
        assert sw.elapsed_ms() == 1000

    def test_reset(self, clock):
        sw = Stopwatch(clock)
        sw.start()
        clock.ms = 700
        sw.reset()
        assert not sw.running
        assert sw.lap_seconds is None

    def test_rate_divides_elapsed(self, clock):
        sw = Stopwatch(clock, rate=0.5)
        sw.start()
        clock.ms = 1000
        sw.pause()
        assert sw.elapsed_ms() == 2000

    @pytest.mark.parametrize("rate, expected", [
        (0.0, Stopwatch.MIN_RATE),
        (-3, Stopwatch.MIN_RATE),
        (5.0, Stopwatch.MAX_RATE),
        (0.3, 0.3),
    ])
    def test_rate_clamped(self, rate, expected):
        sw = Stopwatch(lambda: 0.0)
        sw.rate = rate
        assert sw.rate == pytest.approx(expected)


class TestFormat:

    def test_split(self, clock):
        sw = Stopwatch(clock)
        sw.start()
        clock.ms = 3_723_045
        assert sw.split() == (1, 2, 3, 45)

    def test_format(self, clock):
        sw = Stopwatch(clock)
        sw.start()
        clock.ms = 61_250
        assert sw.format() == "00:01:01.250"
