"""Domain models for merit and demerit points."""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class PointCategory(Enum):
    """Kind of a point entry, valued by its stored code."""

    MERIT = "prestasi"
    DEMERIT = "pelanggaran"


@dataclass(frozen=True)
class PointEntry:
    """A single behavioral score entry for a subject."""

    subject_id: str
    category: PointCategory
    magnitude: int
    date: date
    note: str | None = None
