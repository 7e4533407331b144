"""Headless runner: one complete experiment on the virtual clock.

Standalone script (no Qt) that releases the flywheel on a ManualScheduler,
drains every animation chain and reports the schedule, the theoretical and
observed moments of inertia, and the continuous reference solution.

Usage:
    python -m experiment.headless [--windings N] [--ring-mass G]
        [--axle-diameter CM] [--flywheel-mass KG] [--flywheel-diameter CM]
        [--environment NAME] [--manual-timing]
"""

from __future__ import annotations

import argparse
import logging
from typing import NamedTuple

from experiment.display import HEIGHT, RecordingDisplay
from experiment.errors import MeasurementUnavailable
from experiment.run_state import RunState
from experiment.schedule import RotationSchedule
from experiment.session import ExperimentSession
from experiment.timers import ManualScheduler
from simulation import (
    ENVIRONMENTS, ExperimentParameters, ReferenceMotion, reference_motion,
)

logger = logging.getLogger(__name__)

# Virtual time allowed for one run before giving up (ms)
RUN_LIMIT_MS = 6 * 3_600_000


class HeadlessResult(NamedTuple):
    """Outcome of one headless run."""

    params: ExperimentParameters
    schedule: RotationSchedule
    state: RunState
    theoretical: float
    observed: float | MeasurementUnavailable
    reference: ReferenceMotion
    duration_ms: float
    display: RecordingDisplay


def run_headless(
    params: ExperimentParameters,
    auto_lap_timing: bool = True,
) -> HeadlessResult:
    """Run one experiment to completion and collect the results.

    Raises:
        InvalidParameters: params failed validation.
        RuntimeError: the run did not finish within RUN_LIMIT_MS.
    """
    scheduler = ManualScheduler()
    display = RecordingDisplay()
    session = ExperimentSession(scheduler, display, params)
    if session.auto_lap_timing != auto_lap_timing:
        session.toggle_auto_lap_timing()

    session.start()
    if not scheduler.run_until_idle(RUN_LIMIT_MS):
        raise RuntimeError(
            f"run still active after {RUN_LIMIT_MS / 3_600_000:.0f} h of virtual time"
        )

    return HeadlessResult(
        params=session.params,
        schedule=session.schedule,
        state=session.get_run_state(),
        theoretical=session.get_theoretical_moment_of_inertia(),
        observed=session.get_observed_moment_of_inertia(),
        reference=reference_motion(session.params),
        duration_ms=scheduler.now_ms(),
        display=display,
    )


def report(result: HeadlessResult) -> None:
    """Log a run summary."""
    schedule = result.schedule
    state = result.state
    logger.info(
        "Schedule: %d full rotations + %.2f, slots %s",
        schedule.full_rotations, schedule.final_rotation_fraction / 100,
        list(schedule.time_slots),
    )
    logger.info(
        "Counter %.2f rotations, height %s, phases %s",
        state.total_rotations, result.display.texts.get(HEIGHT, "-"),
        " -> ".join(phase.value for phase in state.history),
    )
    if schedule.time_slots:
        logger.info(
            "Detach %.1f s (reference %.3f s), stop %.1f s (reference %.3f s)",
            schedule.cumulative_ms()[result.params.winding_count - 1] / 1000,
            result.reference.detach_time,
            schedule.total_ms / 1000, result.reference.stop_time,
        )
    logger.info("Theoretical moment of inertia %.6f kg m^2", result.theoretical)
    if isinstance(result.observed, MeasurementUnavailable):
        logger.info("Observed moment of inertia: %s", result.observed)
    else:
        logger.info("Observed moment of inertia %.6f kg m^2", result.observed)


def main(argv: list[str] | None = None) -> HeadlessResult:
    """CLI entry point for a headless run."""
    defaults = ExperimentParameters()
    parser = argparse.ArgumentParser(
        description="Run one flywheel experiment without a GUI.",
    )
    parser.add_argument(
        "--windings", type=int, default=defaults.winding_count,
        help="Cord windings around the axle (default: %(default)s)",
    )
    parser.add_argument(
        "--ring-mass", type=float, default=defaults.ring_mass_grams,
        help="Driving ring mass in grams (default: %(default)s)",
    )
    parser.add_argument(
        "--axle-diameter", type=float, default=defaults.axle_diameter_cm,
        help="Axle diameter in cm (default: %(default)s)",
    )
    parser.add_argument(
        "--flywheel-mass", type=float, default=defaults.flywheel_mass_kg,
        help="Flywheel mass in kg (default: %(default)s)",
    )
    parser.add_argument(
        "--flywheel-diameter", type=float, default=defaults.flywheel_diameter_cm,
        help="Flywheel diameter in cm (default: %(default)s)",
    )
    parser.add_argument(
        "--environment", choices=sorted(ENVIRONMENTS), default="Earth",
        help="Gravity of the simulated environment (default: %(default)s)",
    )
    parser.add_argument(
        "--manual-timing", action="store_true",
        help="Do not start the stopwatch at detach (no observed value)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    params = ExperimentParameters(
        flywheel_mass_kg=args.flywheel_mass,
        flywheel_diameter_cm=args.flywheel_diameter,
        axle_diameter_cm=args.axle_diameter,
        ring_mass_grams=args.ring_mass,
        winding_count=args.windings,
        gravity=ENVIRONMENTS[args.environment],
    )
    result = run_headless(params, auto_lap_timing=not args.manual_timing)
    report(result)
    return result


if __name__ == "__main__":
    main()
