"""Pydantic models for the attendance API."""

import datetime

from pydantic import BaseModel, Field, model_validator

from attendance_guard.domain.geofence import Coordinate


class LocationPayload(BaseModel):
    """Optional coordinate observed by the client device."""

    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def _both_or_neither(self) -> "LocationPayload":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be sent together")
        return self

    def coordinate(self) -> Coordinate | None:
        """Return the coordinate, or None if the client had no fix."""
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class StartSessionRequest(LocationPayload):
    """Request to open a session."""

    occurrence_id: str
    date: datetime.date
    status: str = "hadir"
    reason: str | None = None


class FinishSessionRequest(LocationPayload):
    """Request to close an open session."""

    occurrence_id: str
    date: datetime.date


class RankingRequest(BaseModel):
    """Entities to rank inside a calendar month."""

    entity_ids: list[str]
    year: int = Field(ge=2000, le=9999)
    month: int = Field(ge=1, le=12)
