"""Domain models for attendance sessions."""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum


class SessionStatus(Enum):
    """Attendance status of a session, valued by its stored code."""

    UNSET = "belum_absen"
    PRESENT = "hadir"
    EXCUSED = "izin"
    SICK = "sakit"
    ABSENT = "tidak_hadir"


STARTABLE_STATUSES = frozenset(
    {SessionStatus.PRESENT, SessionStatus.EXCUSED, SessionStatus.SICK}
)


@dataclass(frozen=True)
class SessionRecord:
    """Attendance state for one occurrence on one date."""

    occurrence_id: str
    date: date
    status: SessionStatus
    started_at: datetime | None = None
    ended_at: datetime | None = None
    note: str | None = None

    @property
    def key(self) -> tuple[str, date]:
        return (self.occurrence_id, self.date)

    @property
    def is_open(self) -> bool:
        return (
            self.status is SessionStatus.PRESENT
            and self.started_at is not None
            and self.ended_at is None
        )


@dataclass(frozen=True)
class Occurrence:
    """A scheduled weekly activity slot owned by a responsible person."""

    id: str
    owner_id: str
    weekday: int
    starts_at: time
    ends_at: time


@dataclass(frozen=True)
class StartAction:
    """Open a session with the given status."""

    status: SessionStatus = SessionStatus.PRESENT


@dataclass(frozen=True)
class FinishAction:
    """Close an open Present session."""


SessionAction = StartAction | FinishAction
