"""Geofence admission control."""

import math
from collections.abc import Sequence
from dataclasses import dataclass

from attendance_guard.domain.geofence import Coordinate, Decision, Zone

EARTH_RADIUS_METERS = 6_371_000.0


def haversine_distance(origin: Coordinate, target: Coordinate) -> float:
    """Return the great-circle distance between two coordinates in meters."""
    phi1 = math.radians(origin.latitude)
    phi2 = math.radians(target.latitude)
    delta_phi = math.radians(target.latitude - origin.latitude)
    delta_lambda = math.radians(target.longitude - origin.longitude)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


@dataclass(frozen=True)
class GeofenceValidator:
    """Decides whether an observation lies inside an authorized zone.

    The first active zone whose radius covers the observation admits it, so
    the admitted zone is not necessarily the closest one. On rejection the
    decision carries the globally nearest active zone for display.
    """

    def evaluate(
        self, observed: Coordinate | None, zones: Sequence[Zone]
    ) -> Decision:
        """Return the admission decision for an observation."""
        active = [zone for zone in zones if zone.active]
        if observed is None or not active:
            return Decision(admitted=False)

        for zone in active:
            distance = haversine_distance(observed, zone.center)
            if distance <= zone.radius_meters:
                return Decision(admitted=True, nearest_zone=zone, distance_meters=distance)

        nearest: Zone | None = None
        nearest_distance = math.inf
        for zone in active:
            distance = haversine_distance(observed, zone.center)
            if distance < nearest_distance:
                nearest = zone
                nearest_distance = distance
        return Decision(
            admitted=False, nearest_zone=nearest, distance_meters=nearest_distance
        )


def format_rejection(decision: Decision) -> str:
    """Build a user-facing message for a rejected decision."""
    if decision.nearest_zone is None or decision.distance_meters is None:
        return "No attendance location is available or you are too far from all of them."
    zone = decision.nearest_zone
    return (
        "You are outside the attendance area.\n"
        f"Nearest location: {zone.name}\n"
        f"Your distance: {round(decision.distance_meters)}m\n"
        f"Allowed radius: {zone.radius_meters:g}m"
    )
