"""Experiment session: parameters, run state and the start/reset entry points.

The session is the only object the front end talks to. It owns the current
parameters, the stopwatch, the RunState of the current run and the timers
of that run; the state machine it starts is discarded on reset together
with the run's CancellationToken.
"""

from __future__ import annotations

import copy
import logging

from experiment.display import ExperimentDisplay, NullDisplay
from experiment.errors import MeasurementUnavailable, ScheduleDegenerate
from experiment.run_state import RunPhase, RunState
from experiment.schedule import RotationSchedule, compute_schedule
from experiment.state_machine import AnimationStateMachine, draw_baseline
from experiment.stopwatch import Stopwatch
from experiment.timers import RunTimers, TimerScheduler
from simulation import (
    ExperimentParameters, PhysicsDerived, compute_physics,
    observed_moment_of_inertia, theoretical_moment_of_inertia,
)

logger = logging.getLogger(__name__)

__all__ = ["ExperimentSession", "RunPhase", "RunState"]

OBSERVED_LABEL = "Observed moment of inertia"


def format_inertia(value: float) -> str:
    return f"{value:.6f} kg m²"


class ExperimentSession:
    """Controller for one experiment bench.

    Args:
        scheduler: TimerScheduler driving every animation chain. The
            stopwatch reads its clock.
        display: ExperimentDisplay receiving every visual update.
        params: Initial parameters (factory defaults if omitted).
    """

    def __init__(
        self,
        scheduler: TimerScheduler,
        display: ExperimentDisplay | None = None,
        params: ExperimentParameters | None = None,
    ):
        self.scheduler = scheduler
        self.display = display if display is not None else NullDisplay()
        self.params = params or ExperimentParameters()
        self.params.validate()
        self.derived: PhysicsDerived = compute_physics(self.params)
        self.schedule: RotationSchedule | None = None
        self.stopwatch = Stopwatch(clock=scheduler.now_ms)
        self.auto_lap_timing = False

        self.state = RunState()
        self.machine: AnimationStateMachine | None = None
        self._timers = RunTimers(scheduler)
        self._observed: float | MeasurementUnavailable = MeasurementUnavailable(
            "Error: No valid timing data"
        )

        draw_baseline(self.display, self.params)

    # -- Run control --

    def start(self, params: ExperimentParameters | None = None) -> bool:
        """Release the flywheel.

        Returns False (and leaves everything as it was) when a run is
        already in flight.

        Raises:
            InvalidParameters: a parameter is out of range; nothing changes.
        """
        if self.state.running:
            logger.warning("Start refused: run in flight (%s)", self.state.phase.value)
            return False

        if params is not None:
            params.validate()
        if self.state.phase is RunPhase.FINISHED:
            self.soft_reset(params)
        elif params is not None:
            self.set_parameters(params)

        try:
            schedule, derived = compute_schedule(self.params)
        except ScheduleDegenerate:
            logger.warning("Schedule did not terminate; finishing immediately",
                           exc_info=True)
            schedule, derived = RotationSchedule.empty(), compute_physics(self.params)
        self.schedule = schedule
        self.derived = derived

        self._timers.cancel_all()
        self._timers = RunTimers(self.scheduler)
        self.state = RunState()

        self.display.set_controls_enabled(False)
        if self.auto_lap_timing:
            self.stopwatch.reset()
            self.display.set_stopwatch_controls_enabled(False)
        else:
            self.display.set_stopwatch_controls_enabled(True)

        logger.info(
            "Run started: I=%.6f kg m^2, alpha=%.2f deg/s^2, %d slots",
            derived.moment_of_inertia, derived.angular_acceleration, len(schedule),
        )

        if schedule.degenerate:
            # Nothing moves: the run is over as soon as it starts
            self.state.angular_acceleration = derived.angular_acceleration
            self.state.transition(RunPhase.FINISHED)
            self.machine = None
            self._on_finished()
            return True

        self.machine = AnimationStateMachine(
            params=self.params,
            derived=derived,
            schedule=schedule,
            state=self.state,
            timers=self._timers,
            display=self.display,
            stopwatch=self.stopwatch,
            auto_lap_timing=self.auto_lap_timing,
            on_finished=self._on_finished,
        )
        self.machine.start()
        return True

    def _on_finished(self) -> None:
        state = self.state
        state.elapsed_lap_seconds = self.stopwatch.lap_seconds
        try:
            value = observed_moment_of_inertia(
                self.params, state.elapsed_lap_seconds,
                state.rotation_index, state.sub_rotation,
            )
        except MeasurementUnavailable as exc:
            logger.warning("Observed moment of inertia unavailable: %s", exc)
            self._observed = exc
            state.observed_moment_of_inertia = None
            self.display.show_result(OBSERVED_LABEL, str(exc))
        else:
            logger.info("Observed moment of inertia %.6f kg m^2 (lap %.3f s)",
                        value, state.elapsed_lap_seconds)
            self._observed = value
            state.observed_moment_of_inertia = value
            self.display.show_result(OBSERVED_LABEL, format_inertia(value))

        self.display.set_controls_enabled(True)
        self.display.set_stopwatch_controls_enabled(True)

    def _cancel_run(self) -> None:
        self._timers.cancel_all()
        self._timers = RunTimers(self.scheduler)
        self.machine = None
        self.schedule = None

    def soft_reset(self, params: ExperimentParameters | None = None) -> None:
        """Abort the run and restore the baseline, keeping the parameters."""
        if params is not None:
            params.validate()
            self.params = params
        self._cancel_run()
        self.stopwatch.reset()
        self.derived = compute_physics(self.params)
        self.state = RunState()
        self._observed = MeasurementUnavailable("Error: No valid timing data")
        draw_baseline(self.display, self.params)
        self.display.set_controls_enabled(True)
        self.display.set_stopwatch_controls_enabled(True)
        self.display.show_result(OBSERVED_LABEL, "")
        logger.info("Soft reset")

    def hard_reset(self) -> None:
        """Abort the run and restore factory defaults."""
        self.params = ExperimentParameters()
        self.auto_lap_timing = False
        self.stopwatch.rate = 1.0
        self.soft_reset()
        logger.info("Hard reset to factory defaults")

    def toggle_auto_lap_timing(self) -> bool:
        """Flip auto lap-timing. Refused while a run is in flight.

        Returns the mode in effect afterwards.
        """
        if self.state.running:
            logger.warning("Lap-timing mode cannot change during a run")
            return self.auto_lap_timing
        self.auto_lap_timing = not self.auto_lap_timing
        logger.info("Auto lap timing %s", "on" if self.auto_lap_timing else "off")
        return self.auto_lap_timing

    def set_parameters(self, params: ExperimentParameters) -> bool:
        """Replace the parameters while idle and redraw the baseline."""
        if self.state.running:
            logger.warning("Parameters cannot change during a run")
            return False
        params.validate()
        self.params = params
        self.derived = compute_physics(params)
        draw_baseline(self.display, params)
        return True

    # -- Queries --

    def get_theoretical_moment_of_inertia(self) -> float:
        return theoretical_moment_of_inertia(self.params)

    def get_observed_moment_of_inertia(self) -> float | MeasurementUnavailable:
        """Observed value of the last finished run, or the reason there is none."""
        return self._observed

    def get_run_state(self) -> RunState:
        return copy.deepcopy(self.state)

    @property
    def phase(self) -> RunPhase:
        return self.state.phase
