"""Tests for simulation.py: parameters, derived physics, moment of inertia."""

import math

import pytest

from experiment.errors import InvalidParameters, MeasurementUnavailable
from simulation import (
    DECELERATION, ENVIRONMENTS, ExperimentParameters, compute_physics,
    driving_acceleration, observed_moment_of_inertia, reference_motion,
    theoretical_moment_of_inertia,
)


class TestExperimentParameters:
    """Defaults and validation."""

    def test_factory_defaults(self):
        params = ExperimentParameters()
        assert params.flywheel_mass_kg == 5.0
        assert params.flywheel_diameter_cm == 10.0
        assert params.axle_diameter_cm == 2.0
        assert params.ring_mass_grams == 200.0
        assert params.winding_count == 1
        assert params.gravity == ENVIRONMENTS["Earth"]

    def test_defaults_validate(self):
        ExperimentParameters().validate()

    def test_zero_ring_mass_is_valid(self):
        ExperimentParameters(ring_mass_grams=0).validate()

    @pytest.mark.parametrize("field", [
        "flywheel_mass_kg", "flywheel_diameter_cm", "axle_diameter_cm",
        "winding_count", "gravity",
    ])
    def test_non_positive_rejected(self, field):
        params = ExperimentParameters(**{field: 0})
        with pytest.raises(InvalidParameters, match=field):
            params.validate()

    def test_negative_ring_mass_rejected(self):
        with pytest.raises(InvalidParameters):
            ExperimentParameters(ring_mass_grams=-1).validate()

    def test_fractional_windings_rejected(self):
        with pytest.raises(InvalidParameters):
            ExperimentParameters(winding_count=1.5).validate()

    def test_whole_float_windings_stored_as_int(self):
        params = ExperimentParameters(winding_count=2.0)
        params.validate()
        assert params.winding_count == 2
        assert isinstance(params.winding_count, int)
        assert params == ExperimentParameters(winding_count=2)

    def test_invalid_parameters_is_value_error(self):
        with pytest.raises(ValueError):
            ExperimentParameters(gravity=-9.8).validate()

    def test_unit_conversions(self):
        params = ExperimentParameters(axle_diameter_cm=4.0, ring_mass_grams=600)
        assert params.axle_radius_m == pytest.approx(0.02)
        assert params.ring_mass_kg == pytest.approx(0.6)


class TestDerivedPhysics:

    def test_theoretical_default(self):
        """5 kg disc of 10 cm diameter: I = 5 * 0.05^2 / 2."""
        assert theoretical_moment_of_inertia(ExperimentParameters()) == pytest.approx(0.00625)

    def test_theoretical_scales_with_diameter_squared(self):
        small = theoretical_moment_of_inertia(ExperimentParameters(flywheel_diameter_cm=10))
        large = theoretical_moment_of_inertia(ExperimentParameters(flywheel_diameter_cm=20))
        assert large == pytest.approx(4 * small)

    def test_driving_acceleration_in_degrees(self):
        params = ExperimentParameters()
        torque = 0.01 * 0.2 * 9.8
        expected = torque / 0.00625 * 180 / math.pi
        assert driving_acceleration(params, 0.00625) == pytest.approx(expected)

    def test_compute_physics(self):
        derived = compute_physics(ExperimentParameters(winding_count=3))
        assert derived.moment_of_inertia == pytest.approx(0.00625)
        assert derived.total_rotation_degrees == 1080
        assert derived.angular_acceleration > 0

    def test_no_ring_mass_no_acceleration(self):
        derived = compute_physics(ExperimentParameters(ring_mass_grams=0))
        assert derived.angular_acceleration == 0


class TestObservedMomentOfInertia:

    def test_formula(self):
        params = ExperimentParameters()
        r = 0.01
        n2 = 1.5
        t = 2.0
        h = 2 * math.pi * r
        omega = 4 * math.pi * n2 / t
        expected = 5.0 * (2 * 9.8 * h / omega - r**2) / (1 + 1 / n2)
        assert observed_moment_of_inertia(params, t, 2, 50) == pytest.approx(expected)

    @pytest.mark.parametrize("lap_time", [None, 0, -1.0])
    def test_missing_lap_time(self, lap_time):
        with pytest.raises(MeasurementUnavailable, match="No valid timing data"):
            observed_moment_of_inertia(ExperimentParameters(), lap_time, 5, 0)

    def test_no_rotation_after_detach(self):
        params = ExperimentParameters(winding_count=3)
        with pytest.raises(MeasurementUnavailable, match="No rotations recorded"):
            observed_moment_of_inertia(params, 4.0, 3, 0)

    def test_result_is_finite(self):
        value = observed_moment_of_inertia(ExperimentParameters(), 40.0, 22, 50)
        assert math.isfinite(value)


class TestReferenceMotion:
    """Continuous solution against the closed form of the piecewise model."""

    def test_default_matches_closed_form(self):
        params = ExperimentParameters()
        alpha = compute_physics(params).angular_acceleration
        detach = math.sqrt(2 * 360 / alpha)
        speed = alpha * detach
        stop = detach + speed / -DECELERATION
        total = 360 + speed**2 / (2 * -DECELERATION)

        motion = reference_motion(params)
        assert motion.detach_time == pytest.approx(detach, rel=1e-6)
        assert motion.stop_time == pytest.approx(stop, rel=1e-6)
        assert motion.total_degrees == pytest.approx(total, rel=1e-6)

    def test_zero_torque(self):
        motion = reference_motion(ExperimentParameters(ring_mass_grams=0))
        assert motion == (0.0, 0.0, 0.0)
