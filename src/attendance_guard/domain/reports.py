"""Derived report rows. Recomputed per request, never stored."""

import calendar
from dataclasses import dataclass, field
from datetime import date

from attendance_guard.domain.points import PointEntry


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar date range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("Window end must not precede its start")

    @classmethod
    def month(cls, year: int, month: int) -> "DateWindow":
        """Return the window covering a whole calendar month."""
        last_day = calendar.monthrange(year, month)[1]
        return cls(start=date(year, month, 1), end=date(year, month, last_day))

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end


@dataclass(frozen=True)
class RateReport:
    """Attendance counts and the resulting percentage."""

    total: int = 0
    present: int = 0
    absent: int = 0
    excused: int = 0
    sick: int = 0
    late: int = 0
    percentage: int = 0


@dataclass(frozen=True)
class ScoredEntity:
    """Input to ranking."""

    entity_id: str
    score: float
    label: str | None = None


@dataclass(frozen=True)
class RankedRow:
    """A ranked entity."""

    entity_id: str
    score: float
    rank: int
    label: str | None = None


@dataclass(frozen=True)
class PointStanding:
    """Net point standing of a subject inside a window."""

    subject_id: str
    merit: int
    demerit: int
    net: int
    rank: int
    recent: list[PointEntry] = field(default_factory=list)
