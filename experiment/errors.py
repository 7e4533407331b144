"""Error taxonomy of the flywheel experiment engine."""


class FlywheelError(Exception):
    """Base class for experiment errors."""


class InvalidParameters(FlywheelError, ValueError):
    """Raised by start() when a parameter is out of range. The run is not started."""


class MeasurementUnavailable(FlywheelError):
    """The observed moment of inertia cannot be computed from the recorded data.

    Returned (not raised) by ExperimentSession.get_observed_moment_of_inertia()
    so the UI can show the message in place of a value.
    """


class ScheduleDegenerate(FlywheelError):
    """Integration did not terminate; the run finishes immediately."""
