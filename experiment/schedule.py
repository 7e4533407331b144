"""Rotation scheduler: fixed-step integration into per-rotation time slots.

The flywheel is integrated in 0.2 s steps. Every time the integer rotation
count increases, the elapsed time is recorded as a checkpoint; the run ends
when the angular velocity has dropped to zero. Successive differences of
the checkpoints become the time slots that pace the animation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from experiment.errors import ScheduleDegenerate
from simulation import (
    DECELERATION, ExperimentParameters, PhysicsDerived, compute_physics,
)

logger = logging.getLogger(__name__)

# Integration step (s)
INTEGRATION_STEP = 0.2

# Hard cap on integration steps (~5.5 h of simulated spin)
MAX_ITERATIONS = 100_000

# Shortest slot handed to the timers (ms)
MIN_SLOT_MS = 1


@dataclass(frozen=True)
class RotationSchedule:
    """Per-rotation durations plus the trailing spin-down tail.

    time_slots[i] for i < full_rotations is the duration (ms) of full
    rotation i; the last entry is the partial rotation before the wheel
    stops. final_rotation_fraction is that partial rotation in hundredths.
    """

    time_slots: tuple[int, ...]
    final_rotation_fraction: int
    degenerate: bool = False

    @classmethod
    def empty(cls) -> RotationSchedule:
        """Schedule of a wheel that never moves."""
        return cls(time_slots=(), final_rotation_fraction=0, degenerate=True)

    def __len__(self) -> int:
        return len(self.time_slots)

    def __getitem__(self, index):
        return self.time_slots[index]

    def __iter__(self):
        return iter(self.time_slots)

    @property
    def full_rotations(self) -> int:
        return max(len(self.time_slots) - 1, 0)

    @property
    def tail_ms(self) -> int:
        return self.time_slots[-1] if self.time_slots else 0

    @property
    def total_ms(self) -> int:
        return sum(self.time_slots)

    def slot(self, rotation: int) -> int:
        """Slot for a rotation index, clamped to the tail."""
        if not self.time_slots:
            return 0
        return self.time_slots[min(rotation, len(self.time_slots) - 1)]

    def cumulative_ms(self) -> np.ndarray:
        """Checkpoint times (ms) reconstructed from the slots."""
        return np.cumsum(np.asarray(self.time_slots, dtype=np.int64))


def _checkpoint_ms(time_s: float) -> int:
    """Round a time to the nearest 0.1 s and express it in whole ms."""
    return int(round(time_s * 10)) * 100


def _integrate(derived: PhysicsDerived, step: float) -> tuple[list[int], float]:
    """Run the fixed-step loop. Returns (checkpoints_ms, final_distance)."""
    accel = derived.angular_acceleration
    total = derived.total_rotation_degrees

    time = 0.0
    distance = 0.0
    velocity = 0.0
    rotations = 0.0
    unwound_once = False
    checkpoints = []

    for _ in range(MAX_ITERATIONS):
        time += step
        distance += velocity * step + 0.5 * accel * step**2
        previous_count = int(rotations)
        rotations = distance / 360

        if distance >= total:
            if unwound_once:
                accel = DECELERATION
            else:
                unwound_once = True

        velocity = max(velocity + accel * step, 0.0)

        crossed = int(rotations) - previous_count
        if crossed > 0:
            step_ms = _checkpoint_ms(time)
            if crossed > 1:
                # Several rotations inside one step: spread them evenly
                start_ms = (time - step) * 1000
                for k in range(1, crossed):
                    checkpoints.append(int(round(start_ms + step * 1000 * k / crossed)))
            checkpoints.append(step_ms)

        if velocity == 0:
            checkpoints.append(_checkpoint_ms(time))
            return checkpoints, distance

    raise ScheduleDegenerate(
        f"flywheel still moving after {MAX_ITERATIONS} integration steps"
    )


def compute_schedule(
    params: ExperimentParameters,
    step: float = INTEGRATION_STEP,
) -> tuple[RotationSchedule, PhysicsDerived]:
    """Integrate the run and return (schedule, derived physics).

    With no driving torque the wheel never starts; the empty degenerate
    schedule is returned without integrating.

    Raises:
        ScheduleDegenerate: the loop hit MAX_ITERATIONS.
    """
    derived = compute_physics(params)
    if derived.angular_acceleration <= 0:
        logger.warning("No driving torque (ring mass %.0f g); empty schedule",
                       params.ring_mass_grams)
        return RotationSchedule.empty(), derived

    checkpoints, distance = _integrate(derived, step)

    diffs = np.diff(np.asarray(checkpoints, dtype=np.int64), prepend=0)
    slots = tuple(int(d) for d in np.maximum(diffs, MIN_SLOT_MS))

    fraction, _ = math.modf(distance / 360)
    final_fraction = int(round(fraction * 100))

    schedule = RotationSchedule(
        time_slots=slots,
        final_rotation_fraction=final_fraction,
    )
    logger.debug(
        "Schedule: %d full rotations + %.2f, %d ms total",
        schedule.full_rotations, final_fraction / 100, schedule.total_ms,
    )
    return schedule, derived
