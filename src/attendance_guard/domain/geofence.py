"""Domain models for geofenced admission."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 position in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class Zone:
    """An authorized attendance location."""

    id: str
    name: str
    center: Coordinate
    radius_meters: float
    active: bool = True

    def __post_init__(self) -> None:
        if self.radius_meters <= 0:
            raise ValueError(f"Zone {self.name!r} radius must be positive")


@dataclass(frozen=True)
class Decision:
    """Outcome of checking an observation against the configured zones."""

    admitted: bool
    nearest_zone: Zone | None = None
    distance_meters: float | None = None
