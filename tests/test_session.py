"""Tests for experiment.session: run control, resets and results."""

import pytest

from experiment import display as ids
from experiment.display import RecordingDisplay
from experiment.errors import InvalidParameters, MeasurementUnavailable
from experiment.session import ExperimentSession, RunPhase
from experiment.state_machine import THREAD_FALL_TICKS
from experiment.timers import ManualScheduler
from simulation import ExperimentParameters


class CapturingScheduler(ManualScheduler):
    """ManualScheduler that remembers every callback ever scheduled."""

    def __init__(self):
        super().__init__()
        self.callbacks = []

    def _push(self, fn, delay, interval):
        self.callbacks.append(fn)
        return super()._push(fn, delay, interval)


def _session(params=None, auto=False):
    scheduler = CapturingScheduler()
    display = RecordingDisplay()
    session = ExperimentSession(scheduler, display, params)
    if auto:
        session.toggle_auto_lap_timing()
    return session, scheduler, display


class TestDefaultScenario:
    """1 winding, 200 g, 2 cm axle, 5 kg / 10 cm flywheel, g = 9.8."""

    @pytest.fixture
    def finished(self):
        session, scheduler, display = _session(auto=True)
        assert session.start()
        assert scheduler.run_until_idle()
        return session, display

    def test_phase_order(self, finished):
        session, _ = finished
        assert session.get_run_state().history == [
            RunPhase.IDLE, RunPhase.WINDING, RunPhase.DETACHED,
            RunPhase.DECELERATING, RunPhase.FINISHED,
        ]

    def test_single_string_chain_and_thread_fall(self, finished):
        session, _ = finished
        assert session.machine.string_chains_started == 1
        assert session.machine.thread_chains_started == 1
        assert session.machine.thread_ticks == THREAD_FALL_TICKS

    def test_counter_matches_schedule(self, finished):
        session, _ = finished
        state = session.get_run_state()
        schedule = session.schedule
        assert state.total_rotations == pytest.approx(
            schedule.full_rotations + schedule.final_rotation_fraction / 100
        )

    def test_observed_value_available(self, finished):
        session, display = finished
        observed = session.get_observed_moment_of_inertia()
        assert isinstance(observed, float)
        assert observed > 0
        assert session.get_run_state().observed_moment_of_inertia == observed
        assert display.result[1].endswith("kg m²")

    def test_lap_time_is_spin_down(self, finished):
        session, _ = finished
        lap = session.get_run_state().elapsed_lap_seconds
        spin_down_ms = session.schedule.total_ms - session.schedule[0]
        assert lap * 1000 == pytest.approx(spin_down_ms, abs=session.schedule.tail_ms)

    def test_controls_enabled_again(self, finished):
        _, display = finished
        assert display.controls_enabled
        assert display.stopwatch_controls_enabled

    def test_theoretical(self, finished):
        session, _ = finished
        assert session.get_theoretical_moment_of_inertia() == pytest.approx(0.00625)


class TestStart:

    def test_locks_controls(self):
        session, _, display = _session(auto=True)
        session.start()
        assert session.phase is RunPhase.WINDING
        assert not display.controls_enabled
        assert not display.stopwatch_controls_enabled

    def test_manual_mode_unlocks_stopwatch(self):
        session, _, display = _session()
        session.start()
        assert display.stopwatch_controls_enabled

    def test_refused_while_running(self):
        session, scheduler, _ = _session()
        assert session.start()
        scheduler.advance(500)
        assert not session.start()
        assert session.phase is RunPhase.WINDING

    def test_invalid_parameters(self):
        session, _, _ = _session()
        with pytest.raises(InvalidParameters):
            session.start(ExperimentParameters(flywheel_mass_kg=0))
        assert session.phase is RunPhase.IDLE
        assert session.params == ExperimentParameters()

    def test_restart_after_finish(self):
        session, scheduler, _ = _session(auto=True)
        session.start()
        scheduler.run_until_idle()
        first = session.get_observed_moment_of_inertia()
        assert session.start()
        assert session.get_run_state().history == [RunPhase.IDLE, RunPhase.WINDING]
        scheduler.run_until_idle()
        assert session.get_observed_moment_of_inertia() == pytest.approx(first, rel=1e-2)

    def test_start_with_new_parameters(self):
        session, scheduler, _ = _session()
        params = ExperimentParameters(winding_count=2, ring_mass_grams=400)
        session.start(params)
        assert session.params == params
        scheduler.run_until_idle()
        assert session.get_run_state().rotation_index >= 2


class TestManualTiming:

    def test_no_timing_data(self):
        session, scheduler, display = _session()
        session.start()
        scheduler.run_until_idle()
        observed = session.get_observed_moment_of_inertia()
        assert isinstance(observed, MeasurementUnavailable)
        assert str(observed) == "Error: No valid timing data"
        assert display.result[1] == "Error: No valid timing data"

    def test_operator_timing_is_used(self):
        session, scheduler, _ = _session()
        session.start()
        scheduler.advance(5000)
        session.stopwatch.start()
        scheduler.advance(10_000)
        session.stopwatch.pause()
        scheduler.run_until_idle()
        assert session.get_run_state().elapsed_lap_seconds == pytest.approx(10.0)
        assert isinstance(session.get_observed_moment_of_inertia(), float)


class TestZeroTorque:

    def test_finishes_immediately(self):
        session, scheduler, display = _session(ExperimentParameters(ring_mass_grams=0))
        assert session.start()
        assert session.phase is RunPhase.FINISHED
        assert session.schedule.degenerate
        assert scheduler.pending == 0
        assert display.controls_enabled
        assert isinstance(session.get_observed_moment_of_inertia(), MeasurementUnavailable)


class TestResets:

    def test_stale_callbacks_have_no_effect(self):
        session, scheduler, display = _session(auto=True)
        session.start()
        scheduler.advance(1500)
        session.hard_reset()
        calls_after_reset = len(display.calls)

        for callback in list(scheduler.callbacks):
            callback()
        scheduler.run_until_idle()

        assert len(display.calls) == calls_after_reset
        state = session.get_run_state()
        assert state.phase is RunPhase.IDLE
        assert state.rotation_index == 0
        assert state.sub_rotation == 0

    def test_soft_reset_keeps_parameters(self):
        params = ExperimentParameters(winding_count=4, ring_mass_grams=600)
        session, scheduler, display = _session(params, auto=True)
        session.start()
        scheduler.advance(3000)
        session.soft_reset()
        assert session.params == params
        assert session.auto_lap_timing
        assert session.phase is RunPhase.IDLE
        assert session.stopwatch.lap_seconds is None
        assert display.winding_marks == 3
        assert display.texts[ids.HEIGHT] == "08cm"
        assert display.controls_enabled

    def test_soft_reset_with_new_parameters(self):
        session, _, _ = _session()
        params = ExperimentParameters(flywheel_mass_kg=10)
        session.soft_reset(params)
        assert session.params == params
        assert session.derived.moment_of_inertia == pytest.approx(0.0125)

    def test_hard_reset_restores_defaults(self):
        session, scheduler, _ = _session(ExperimentParameters(winding_count=3), auto=True)
        session.start()
        scheduler.advance(1000)
        session.hard_reset()
        assert session.params == ExperimentParameters()
        assert not session.auto_lap_timing
        assert session.phase is RunPhase.IDLE
        assert scheduler.pending == 0

    def test_hard_reset_restores_stopwatch_rate(self):
        session, _, _ = _session()
        session.stopwatch.rate = 0.25
        session.hard_reset()
        assert session.stopwatch.rate == 1.0

    def test_soft_reset_keeps_stopwatch_rate(self):
        session, _, _ = _session()
        session.stopwatch.rate = 0.5
        session.soft_reset()
        assert session.stopwatch.rate == 0.5


class TestSettings:

    def test_toggle_auto_lap_timing(self):
        session, _, _ = _session()
        assert session.toggle_auto_lap_timing()
        assert not session.toggle_auto_lap_timing()

    def test_toggle_refused_while_running(self):
        session, _, _ = _session()
        session.start()
        assert not session.toggle_auto_lap_timing()
        assert not session.auto_lap_timing

    def test_set_parameters_redraws_baseline(self):
        session, _, display = _session()
        assert session.set_parameters(ExperimentParameters(winding_count=5, ring_mass_grams=600))
        assert display.winding_marks == 4
        assert display.texts[ids.HEIGHT] == "10cm"
        assert display.visible[ids.ring_disc_id(3)] is True
        assert display.visible[ids.ring_disc_id(4)] is False

    def test_whole_float_windings_accepted(self):
        session, scheduler, display = _session(ExperimentParameters(winding_count=2.0))
        assert display.texts[ids.HEIGHT] == "04cm"
        assert session.set_parameters(ExperimentParameters(winding_count=3.0))
        assert display.texts[ids.HEIGHT] == "06cm"
        assert session.start(ExperimentParameters(winding_count=2.0))
        assert scheduler.run_until_idle()
        assert session.get_run_state().rotation_index >= 2

    def test_set_parameters_refused_while_running(self):
        session, _, _ = _session()
        session.start()
        assert not session.set_parameters(ExperimentParameters(winding_count=2))
        assert session.params.winding_count == 1

    def test_run_state_is_snapshot(self):
        session, _, _ = _session()
        snapshot = session.get_run_state()
        snapshot.rotation_index = 42
        snapshot.history.append(RunPhase.FINISHED)
        assert session.get_run_state().rotation_index == 0
        assert session.get_run_state().history == [RunPhase.IDLE]
