"""Clock abstractions."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware time."""


@dataclass(frozen=True)
class SystemClock(Clock):
    """Wall clock in the school's local timezone."""

    timezone_name: str

    def now(self) -> datetime:
        """Return the current local time."""
        return datetime.now(tz=ZoneInfo(self.timezone_name))
