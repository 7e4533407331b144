"""Animation state machine: drives the run from a RotationSchedule.

Five chains run on the same event loop, interleaved through timer
callbacks; each one is internally sequential:

  line    tracking line, one SWEEP + RETURN per rotation (master chain:
          counts rotations, detaches the weight, enters the final rotation)
  wheel   flywheel texture, half a turn per segment
  digits  hundredths counter and height readout, 100 ticks per rotation
  string  cord unwinding, 100 ticks per winding
  thread  detached cord falling off the axle, 21 frames of 30 ms

Positions of LINE and WHEEL carry an angle in degrees in their y value.
Every callback is registered through RunTimers, so once the session
cancels the run no callback can touch the RunState again.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from enum import Enum, auto

from experiment import display as ids
from experiment.display import ExperimentDisplay
from experiment.run_state import RunPhase, RunState
from experiment.schedule import RotationSchedule
from experiment.stopwatch import Stopwatch
from experiment.timers import RunTimers
from simulation import (
    DECELERATION, ExperimentParameters, PhysicsDerived, driving_acceleration,
)

logger = logging.getLogger(__name__)

# Tracking line: sweep 0 -> 270 deg, jump to -90, return to 0
LINE_SWEEP_END = 270.0
LINE_RESET = -90.0

# Wheel texture segment lasts rotation_speed * SPEED_CORRECTION
SPEED_CORRECTION = 2.0001

# Hundredths of a rotation -> degrees
FRACTION_TO_DEGREES = 3.6

DIGIT_DIVISOR = 100

STRING_RELEASE_ITERATIONS = 100
STRING_SLOT_DIVISOR = 200
STRING_DECREMENT = 0.03
STRING_GROWTH = 0.3

THREAD_FALL_TICKS = 21
THREAD_FALL_INTERVAL_MS = 30
THREAD_FRAME_WIDTH = 199.869
THREAD_START_X = 298.0
THREAD_Y = 230.0

FALLING_WEIGHTS_X = 366.5
FALLING_WEIGHTS_START_Y = 600.0
FALLING_WEIGHTS_END_Y = 624.0
FALLING_WEIGHTS_MS = 50

# Axle and cord geometry (display units)
AXLE_X = 385.0
AXLE_TOP_Y = 215.0
STRING_BOTTOM_Y = 556.0
STRING_HANG = 50.0
WINDING_PITCH_X = 3.0
WINDING_DROP_Y = 30.0


class LineStage(Enum):
    SWEEP = auto()         # 0 -> 270 over 3 * speed
    RETURN = auto()        # -90 -> 0 over speed, completes a rotation
    FINAL_DIRECT = auto()  # 0 -> final angle (<= 270) over the tail slot
    FINAL_SWEEP = auto()   # 0 -> 270, final angle > 270
    FINAL_WRAP = auto()    # -90 -> final angle - 360
    DONE = auto()


def weight_baseline(winding_count: int) -> tuple[float, float]:
    """Offset of the weight hanger before release."""
    return (winding_count - 1) * WINDING_PITCH_X, -(winding_count - 1) * WINDING_DROP_Y


def ring_disc_count(ring_mass_grams: float) -> int:
    discs = math.ceil(ring_mass_grams / ids.RING_DISC_GRAMS)
    return max(0, min(discs, ids.MAX_RING_DISCS))


def initial_height_text(winding_count: int) -> str:
    return f"{winding_count * 2:02d}cm"


def draw_baseline(display: ExperimentDisplay, params: ExperimentParameters) -> None:
    """Put every element in its pre-release position for `params`."""
    n = params.winding_count

    for element in (ids.COUNTER_HUNDREDS, ids.COUNTER_TENS, ids.COUNTER_ONES,
                    ids.COUNTER_TENTHS, ids.COUNTER_HUNDREDTHS):
        display.set_display_text(element, "0")
    display.set_display_text(ids.HEIGHT, initial_height_text(n))

    display.set_element_position(ids.LINE, 0, 0)
    display.set_element_position(ids.WHEEL, 0, 0)

    display.set_element_visible(ids.FALLING_WEIGHTS, False)
    display.set_element_position(ids.FALLING_WEIGHTS, FALLING_WEIGHTS_X,
                                 FALLING_WEIGHTS_START_Y)
    display.set_element_visible(ids.THREAD, False)
    display.set_element_position(ids.THREAD, THREAD_START_X, THREAD_Y)

    display.set_element_visible(ids.WEIGHT_CONTAINER, True)
    display.set_element_position(ids.WEIGHT_CONTAINER, *weight_baseline(n))

    discs = ring_disc_count(params.ring_mass_grams)
    for k in range(1, ids.MAX_RING_DISCS + 1):
        display.set_element_visible(ids.ring_disc_id(k), k <= discs)

    display.set_winding_marks(n - 1)
    x = AXLE_X + (n - 1) * WINDING_PITCH_X
    display.redraw_line(ids.STRING, x, AXLE_TOP_Y, x,
                        STRING_BOTTOM_Y - (n - 1) * WINDING_DROP_Y)


class AnimationStateMachine:
    """Runs one experiment: from release until the wheel stands still.

    The machine owns only its chain bookkeeping; counters and the phase
    live in the RunState handed over by the session. on_finished is called
    once, after the stopwatch has been stopped and the final counters set.
    """

    def __init__(
        self,
        params: ExperimentParameters,
        derived: PhysicsDerived,
        schedule: RotationSchedule,
        state: RunState,
        timers: RunTimers,
        display: ExperimentDisplay,
        stopwatch: Stopwatch,
        auto_lap_timing: bool = False,
        on_finished: Callable[[], None] | None = None,
    ):
        self.params = params
        self.derived = derived
        self.schedule = schedule
        self.state = state
        self._timers = timers
        self._display = display
        self._stopwatch = stopwatch
        self.auto_lap_timing = auto_lap_timing
        self._on_finished = on_finished

        self.rotation_speed = schedule.slot(0) / 4
        self.line_stage: LineStage | None = None
        self.final_angle = 0.0
        self.wheel_angle = 0.0

        self.string_iteration = 0
        self.string_decrement = 0.0
        self.string_y = 0.0
        self.string_interval = 0.0
        self.thread_frame = 0
        self.thread_x = THREAD_START_X
        self.weight_x, self.weight_y = weight_baseline(params.winding_count)

        self.stopwatch_started = False
        self.stopwatch_stopped = False

        # Chain statistics
        self.string_chains_started = 0
        self.string_ticks = 0
        self.thread_chains_started = 0
        self.thread_ticks = 0
        self.digit_ticks = 0

        self._line_handle = None
        self._wheel_handle = None
        self._digit_handle = None
        self._string_handle = None
        self._thread_handle = None

    @property
    def finished(self) -> bool:
        return self.state.phase is RunPhase.FINISHED

    def start(self) -> None:
        """Release the wheel: start every chain for rotation 0."""
        self.state.angular_acceleration = self.derived.angular_acceleration
        self.state.transition(RunPhase.WINDING)
        logger.info(
            "Release: %d windings, %d full rotations scheduled, final %.2f",
            self.params.winding_count, self.schedule.full_rotations,
            self.schedule.final_rotation_fraction / 100,
        )

        self._spin_wheel()
        self._enter_line_stage(LineStage.SWEEP)
        self._digit_tick()
        self._start_string_release()
        self._lower_weight(self.schedule.slot(0))

    # -- Tracking line (master chain) --

    def _enter_line_stage(self, stage: LineStage) -> None:
        self.line_stage = stage
        speed = self.rotation_speed

        if stage is LineStage.SWEEP:
            duration = speed * 3
            self._display.move_element(ids.LINE, 0, LINE_SWEEP_END, duration)
        elif stage is LineStage.RETURN:
            duration = speed
            self._display.set_element_position(ids.LINE, 0, LINE_RESET)
            self._display.move_element(ids.LINE, 0, 0, duration)
        elif stage is LineStage.FINAL_DIRECT:
            duration = self._tail()
            self._display.move_element(ids.LINE, 0, self.final_angle, duration)
        elif stage is LineStage.FINAL_SWEEP:
            duration = self._tail() / self.final_angle * LINE_SWEEP_END
            self._display.move_element(ids.LINE, 0, LINE_SWEEP_END, duration)
        elif stage is LineStage.FINAL_WRAP:
            partial = self.final_angle - LINE_SWEEP_END
            duration = self._tail() / self.final_angle * partial
            self._display.set_element_position(ids.LINE, 0, LINE_RESET)
            self._display.move_element(ids.LINE, 0, self.final_angle - 360, duration)
        else:
            return

        self._line_handle = self._timers.one_shot(self._on_line_stage_done, duration)

    def _on_line_stage_done(self) -> None:
        """Single dispatch point of the line chain."""
        self._line_handle = None
        stage = self.line_stage
        if stage is LineStage.SWEEP:
            self._enter_line_stage(LineStage.RETURN)
        elif stage is LineStage.RETURN:
            self._rotation_complete()
        elif stage is LineStage.FINAL_SWEEP:
            self._enter_line_stage(LineStage.FINAL_WRAP)
        elif stage in (LineStage.FINAL_DIRECT, LineStage.FINAL_WRAP):
            self._finish()

    def _rotation_complete(self) -> None:
        state = self.state
        n = self.params.winding_count
        state.rotation_index += 1
        rotation = state.rotation_index
        logger.debug("Rotation %d complete", rotation)

        if rotation < n:
            self._start_string_release()
        self._display.set_winding_marks(max(n - rotation - 1, 0))

        if rotation == n:
            self._detach()

        state.sub_rotation = 0
        self._show_rotation_counter()

        if rotation < self.schedule.full_rotations:
            self.rotation_speed = self.schedule.slot(rotation) / 4
            self._enter_line_stage(LineStage.SWEEP)
        else:
            self._enter_final_rotation()

        if rotation < n and not self.finished:
            self._lower_weight(self.schedule.slot(rotation))

    def _enter_final_rotation(self) -> None:
        self.state.final_rotation = True
        fraction = self.schedule.final_rotation_fraction
        if fraction == 0:
            self._finish()
            return

        tail = self._tail()
        self.rotation_speed = tail / 4
        self.final_angle = fraction * FRACTION_TO_DEGREES
        self._finish_wheel(self.final_angle, tail)

        if self.final_angle > LINE_SWEEP_END:
            self._enter_line_stage(LineStage.FINAL_SWEEP)
        else:
            self._enter_line_stage(LineStage.FINAL_DIRECT)

    def _tail(self) -> float:
        return self.schedule.slot(self.state.rotation_index)

    def _show_rotation_counter(self) -> None:
        rotation = self.state.rotation_index
        self._display.set_display_text(ids.COUNTER_HUNDREDS, str(rotation // 100))
        self._display.set_display_text(ids.COUNTER_TENS, str(rotation // 10 % 10))
        self._display.set_display_text(ids.COUNTER_ONES, str(rotation % 10))

    # -- Wheel --

    def _spin_wheel(self) -> None:
        duration = self.rotation_speed * SPEED_CORRECTION
        self.wheel_angle += 180
        self._display.move_element(ids.WHEEL, 0, self.wheel_angle, duration)
        self._wheel_handle = self._timers.one_shot(self._spin_wheel, duration)

    def _finish_wheel(self, angle: float, tail: float) -> None:
        """Stop the free-running texture and land the wheel on `angle`."""
        self._timers.cancel(self._wheel_handle)
        self._wheel_handle = None
        base = 360.0 * self.state.rotation_index
        self._display.set_element_position(ids.WHEEL, 0, base)

        if angle <= 180:
            self.wheel_angle = base + angle
            self._display.move_element(ids.WHEEL, 0, self.wheel_angle, tail)
            return

        first = tail / angle * 180
        self.wheel_angle = base + 180
        self._display.move_element(ids.WHEEL, 0, self.wheel_angle, first)

        def land():
            self.wheel_angle = base + angle
            self._display.move_element(ids.WHEEL, 0, self.wheel_angle, tail - first)

        self._wheel_handle = self._timers.one_shot(land, first)

    # -- Digits and height --

    def _digit_tick(self) -> None:
        state = self.state
        n = self.params.winding_count
        state.sub_rotation = state.sub_rotation + 1 if state.sub_rotation < 99 else 0
        self.digit_ticks += 1
        self._show_sub_rotation()

        if state.rotation_index < n:
            height = (n - state.rotation_index) * 2 - round(state.sub_rotation / 50, 1)
            self._display.set_display_text(ids.HEIGHT, f"{height:.1f}cm")
        elif state.rotation_index == n:
            self._display.set_display_text(ids.HEIGHT, "0.0cm")
            # Cord has left the axle: start timing the spin-down
            if self.auto_lap_timing and not self.stopwatch_started:
                self._stopwatch.start()
                self.stopwatch_started = True
                logger.info("Stopwatch started at detach")

        divisor = DIGIT_DIVISOR
        fraction = self.schedule.final_rotation_fraction
        if state.final_rotation and fraction > 0:
            divisor = fraction
        interval = self.schedule.slot(state.rotation_index) / divisor
        self._digit_handle = self._timers.one_shot(self._digit_tick, interval)

    def _show_sub_rotation(self) -> None:
        sub = self.state.sub_rotation
        self._display.set_display_text(ids.COUNTER_TENTHS, str(sub // 10))
        self._display.set_display_text(ids.COUNTER_HUNDREDTHS, str(sub % 10))

    # -- Cord unwinding --

    def _start_string_release(self) -> None:
        self._timers.cancel(self._string_handle)
        n = self.params.winding_count
        rotation = self.state.rotation_index
        self.string_iteration = 0
        self.string_decrement = 0.0
        self.string_y = STRING_BOTTOM_Y - (n - rotation - 1) * WINDING_DROP_Y
        self.string_interval = self.schedule.slot(rotation) / STRING_SLOT_DIVISOR
        self.string_chains_started += 1
        self._string_tick()

    def _string_tick(self) -> None:
        n = self.params.winding_count
        rotation = self.state.rotation_index
        self.string_y += STRING_GROWTH
        self.string_decrement += STRING_DECREMENT
        self.string_iteration += 1
        self.string_ticks += 1

        x = AXLE_X + (n - rotation - 1) * WINDING_PITCH_X - self.string_decrement
        self._display.redraw_line(ids.STRING, x, AXLE_TOP_Y, x,
                                  self.string_y + STRING_HANG)

        if self.string_iteration < STRING_RELEASE_ITERATIONS and rotation < n:
            self._string_handle = self._timers.one_shot(
                self._string_tick, self.string_interval,
            )
        else:
            self._string_handle = None

    def _lower_weight(self, duration: float) -> None:
        self.weight_x -= WINDING_PITCH_X
        self.weight_y += WINDING_DROP_Y
        self._display.move_element(ids.WEIGHT_CONTAINER, self.weight_x,
                                   self.weight_y, duration)

    # -- Detach --

    def _detach(self) -> None:
        self._timers.cancel(self._string_handle)
        self._string_handle = None
        self._display.clear_line(ids.STRING)
        self._display.set_element_visible(ids.FALLING_WEIGHTS, True)
        self._display.move_element(ids.FALLING_WEIGHTS, FALLING_WEIGHTS_X,
                                   FALLING_WEIGHTS_END_Y, FALLING_WEIGHTS_MS)
        self._display.set_element_visible(ids.WEIGHT_CONTAINER, False)

        self.state.angular_acceleration = DECELERATION
        self.thread_frame = 0
        self.thread_chains_started += 1
        self._thread_handle = self._timers.repeating(
            self._thread_tick, THREAD_FALL_INTERVAL_MS,
        )
        self.state.transition(RunPhase.DETACHED)

    def _thread_tick(self) -> None:
        self.thread_frame += 1
        self.thread_ticks += 1
        self.thread_x -= THREAD_FRAME_WIDTH
        self._display.set_element_visible(ids.THREAD, True)
        self._display.set_element_position(ids.THREAD, self.thread_x, THREAD_Y)

        if self.thread_frame >= THREAD_FALL_TICKS:
            self._timers.cancel(self._thread_handle)
            self._thread_handle = None
            self._weight_released()

    def _weight_released(self) -> None:
        """The cord is off the axle for good.

        The driving acceleration is re-derived from the parameters so the next
        release starts from it; without rings only the deceleration is left.
        """
        if self.params.ring_mass_grams > 0:
            self.state.angular_acceleration = driving_acceleration(
                self.params, self.derived.moment_of_inertia,
            )
        else:
            self.state.angular_acceleration = DECELERATION
        if self.state.phase is RunPhase.DETACHED:
            self.state.transition(RunPhase.DECELERATING)

    # -- Finish --

    def _finish(self) -> None:
        if self.finished:
            return
        self.line_stage = LineStage.DONE
        self._timers.cancel_pending()

        if self.auto_lap_timing and self.stopwatch_started and not self.stopwatch_stopped:
            self._stopwatch.pause()
            self.stopwatch_stopped = True

        # The counter always ends on the final fraction; 100 rolls over
        carry, sub = divmod(self.schedule.final_rotation_fraction, 100)
        if carry:
            self.state.rotation_index += carry
            self._show_rotation_counter()
        self.state.sub_rotation = sub
        self._show_sub_rotation()

        self.state.transition(RunPhase.FINISHED)
        logger.info(
            "Wheel stopped after %.2f rotations", self.state.total_rotations,
        )
        if self._on_finished is not None:
            self._on_finished()
