"""Flywheel physics: parameters, derived quantities, moment of inertia.

A flywheel on a horizontal axle is driven by a falling weight (the rings)
hanging from a cord wound around the axle. Once the cord has unwound the
weight detaches and the flywheel spins down under friction.

Also provides a continuous reference model of the same motion integrated
with SciPy's solve_ivp, used to compare against the fixed-step schedule.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple

from scipy.integrate import solve_ivp

from experiment.errors import InvalidParameters, MeasurementUnavailable

# Deceleration once the weight has left the axle (deg/s^2)
DECELERATION = -10.0

# Selectable environments: name -> g (m/s^2)
ENVIRONMENTS = {
    "Earth": 9.8,
    "Moon": 1.63,
    "Uranus": 10.5,
    "Saturn": 11.08,
    "Jupiter": 25.95,
}

# (minimum, maximum, step) for each user-adjustable parameter
PARAMETER_RANGES = {
    "flywheel_mass_kg": (5.0, 10.0, 0.5),
    "flywheel_diameter_cm": (10.0, 20.0, 1.0),
    "ring_mass_grams": (0.0, 1000.0, 200.0),
    "axle_diameter_cm": (2.0, 4.0, 0.5),
    "winding_count": (1, 10, 1),
}


@dataclass(frozen=True)
class ExperimentParameters:
    """User-configured inputs of one experiment run."""

    flywheel_mass_kg: float = 5.0
    flywheel_diameter_cm: float = 10.0
    axle_diameter_cm: float = 2.0
    ring_mass_grams: float = 200.0
    winding_count: int = 1
    gravity: float = 9.8

    def __post_init__(self):
        # Spin boxes and CLI parsers may hand over 2.0 for 2 windings
        count = self.winding_count
        if isinstance(count, float) and count.is_integer():
            object.__setattr__(self, "winding_count", int(count))

    def validate(self) -> None:
        """Raise InvalidParameters unless every field is usable.

        All values must be positive, except the ring mass which may be zero
        (no driving torque). The winding count must be a whole number.
        """
        positive = {
            "flywheel_mass_kg": self.flywheel_mass_kg,
            "flywheel_diameter_cm": self.flywheel_diameter_cm,
            "axle_diameter_cm": self.axle_diameter_cm,
            "winding_count": self.winding_count,
            "gravity": self.gravity,
        }
        for name, value in positive.items():
            if not value > 0:
                raise InvalidParameters(f"{name} must be > 0 (got {value!r})")
        if not self.ring_mass_grams >= 0:
            raise InvalidParameters(
                f"ring_mass_grams must be >= 0 (got {self.ring_mass_grams!r})"
            )
        if int(self.winding_count) != self.winding_count:
            raise InvalidParameters(
                f"winding_count must be a whole number (got {self.winding_count!r})"
            )

    @property
    def axle_radius_m(self) -> float:
        return self.axle_diameter_cm / 200

    @property
    def ring_mass_kg(self) -> float:
        return self.ring_mass_grams / 1000


@dataclass(frozen=True)
class PhysicsDerived:
    """Quantities derived from ExperimentParameters before a run."""

    moment_of_inertia: float      # kg m^2
    angular_acceleration: float   # deg/s^2 while the cord unwinds
    total_rotation_degrees: float


class ReferenceMotion(NamedTuple):
    """Continuous solution of the spin-up / spin-down model."""

    detach_time: float     # s, cord fully unwound
    stop_time: float       # s, flywheel at rest
    total_degrees: float


def theoretical_moment_of_inertia(params: ExperimentParameters) -> float:
    """Moment of inertia of a uniform disc: I = m * r^2 / 2."""
    radius_m = params.flywheel_diameter_cm / 200
    return params.flywheel_mass_kg * radius_m**2 / 2


def driving_acceleration(params: ExperimentParameters, moment_of_inertia: float) -> float:
    """Angular acceleration (deg/s^2) from the torque of the hanging rings."""
    torque = params.axle_radius_m * params.ring_mass_kg * params.gravity
    return math.degrees(torque / moment_of_inertia)


def compute_physics(params: ExperimentParameters) -> PhysicsDerived:
    """Derive moment of inertia, driving acceleration and total cord angle."""
    inertia = theoretical_moment_of_inertia(params)
    return PhysicsDerived(
        moment_of_inertia=inertia,
        angular_acceleration=driving_acceleration(params, inertia),
        total_rotation_degrees=params.winding_count * 360.0,
    )


def observed_moment_of_inertia(params, lap_time, rotation, sub_rotation):
    """Moment of inertia from a timed spin-down.

    Args:
        params: ExperimentParameters of the run.
        lap_time: Stopwatch reading (s) from detach until the wheel stopped.
        rotation: Full rotations counted when the wheel stopped.
        sub_rotation: Hundredths of a rotation on the counter (0-99).

    With r the axle radius, n1 the windings and n2 the rotations made after
    detach:  h = 2*pi*r*n1,  omega = 4*pi*n2 / t,
    I = m * (2*g*h/omega - r^2) / (1 + n1/n2).

    Raises:
        MeasurementUnavailable: no lap time, or no rotations after detach.
    """
    if lap_time is None or lap_time <= 0:
        raise MeasurementUnavailable("Error: No valid timing data")

    r = params.axle_radius_m
    n1 = params.winding_count
    n2 = rotation + sub_rotation / 100 - n1
    if n2 <= 0:
        raise MeasurementUnavailable("Error: No rotations recorded after detach")

    h = 2 * math.pi * r * n1
    omega = 4 * math.pi * n2 / lap_time

    numerator = params.flywheel_mass_kg * (2 * params.gravity * h / omega - r**2)
    return numerator / (1 + n1 / n2)


def reference_motion(params: ExperimentParameters) -> ReferenceMotion:
    """Integrate the piecewise motion continuously (RK45 with events).

    Phase 1 accelerates at the driving acceleration until the cord angle is
    reached; phase 2 decelerates at DECELERATION until the wheel stops.
    Returns zeros when there is no driving torque.
    """
    derived = compute_physics(params)
    alpha = derived.angular_acceleration
    total = derived.total_rotation_degrees
    if alpha <= 0:
        return ReferenceMotion(0.0, 0.0, 0.0)

    def unwound(t, y):
        return y[0] - total

    unwound.terminal = True
    unwound.direction = 1

    t_guess = math.sqrt(2 * total / alpha)
    spin_up = solve_ivp(
        fun=lambda t, y: [y[1], alpha],
        t_span=(0, 2 * t_guess + 1.0),
        y0=[0.0, 0.0],
        events=unwound,
        rtol=1e-10,
        atol=1e-10,
    )
    detach_time = float(spin_up.t_events[0][0])
    detach_state = spin_up.y_events[0][0]

    def stopped(t, y):
        return y[1]

    stopped.terminal = True
    stopped.direction = -1

    coast = detach_state[1] / -DECELERATION
    spin_down = solve_ivp(
        fun=lambda t, y: [y[1], DECELERATION],
        t_span=(detach_time, detach_time + 2 * coast + 1.0),
        y0=list(detach_state),
        events=stopped,
        rtol=1e-10,
        atol=1e-10,
    )
    stop_time = float(spin_down.t_events[0][0])
    total_degrees = float(spin_down.y_events[0][0][0])

    return ReferenceMotion(detach_time, stop_time, total_degrees)
