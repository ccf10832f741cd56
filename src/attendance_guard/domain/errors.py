"""Typed failures returned to callers of the attendance core.

All of them are local, recoverable conditions. None indicate a bug in the
caller's process; the HTTP layer translates them into client errors.
"""

from attendance_guard.domain.geofence import Zone


class AttendanceError(Exception):
    """Base class for attendance rule violations."""

    code = "attendance_error"


class LocationUnavailable(AttendanceError):
    """No coordinate could be obtained from the caller."""

    code = "location_unavailable"

    def __init__(self, message: str = "Location is unavailable") -> None:
        super().__init__(message)


class ZeroZonesConfigured(AttendanceError):
    """No active zone exists, so nothing can admit an observation."""

    code = "zero_zones_configured"

    def __init__(self) -> None:
        super().__init__("No active attendance zone is configured")


class OutOfRange(AttendanceError):
    """The observation lies outside every active zone."""

    code = "out_of_range"

    def __init__(self, nearest_zone: Zone | None, distance_meters: float | None) -> None:
        self.nearest_zone = nearest_zone
        self.distance_meters = distance_meters
        if nearest_zone is not None and distance_meters is not None:
            message = (
                f"Outside attendance area: nearest zone {nearest_zone.name} is "
                f"{round(distance_meters)}m away "
                f"(allowed radius {nearest_zone.radius_meters:g}m)"
            )
        else:
            message = "Outside attendance area"
        super().__init__(message)


class AlreadyStarted(AttendanceError):
    """A session was already started for the key."""

    code = "already_started"


class InvalidTransition(AttendanceError):
    """The requested transition is not allowed from the current state."""

    code = "invalid_transition"


class ReasonRequired(InvalidTransition):
    """Excused and sick sessions need a reason."""

    code = "reason_required"


class DuplicateSessionError(Exception):
    """Storage rejected a second row for an existing session key."""
