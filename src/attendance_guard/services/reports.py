"""Attendance and point rollups over a date window."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol, TypeVar

from attendance_guard.domain.points import PointCategory, PointEntry
from attendance_guard.domain.reports import (
    DateWindow,
    PointStanding,
    RankedRow,
    RateReport,
    ScoredEntity,
)
from attendance_guard.domain.sessions import Occurrence, SessionRecord, SessionStatus
from attendance_guard.services.clock import Clock

LATE_CUTOFF = time(8, 0, 0)
DEFAULT_RECENT_LIMIT = 3

_Dated = TypeVar("_Dated", SessionRecord, PointEntry)


class AttendanceReadRepository(Protocol):
    """Read-only access to the records rollups are computed from."""

    def list_occurrences(self, owner_id: str) -> list[Occurrence]:
        """Return the scheduled occurrences owned by a person."""

    def list_owner_sessions(
        self, owner_id: str, window: DateWindow
    ) -> list[SessionRecord]:
        """Return session records of an owner's occurrences inside a window."""

    def list_subject_attendance(
        self, subject_ids: Sequence[str], window: DateWindow
    ) -> dict[str, list[SessionRecord]]:
        """Return attendance rows per subject inside a window."""


class PointRepository(Protocol):
    """Read-only access to point entries."""

    def list_points(
        self, subject_ids: Sequence[str], window: DateWindow
    ) -> list[PointEntry]:
        """Return point entries for subjects inside a window, newest first."""


def percentage(matching: int, total: int) -> int:
    """Return matching/total as a whole percentage, rounding half up."""
    if total <= 0:
        return 0
    ratio = Decimal(matching) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def is_late(record: SessionRecord, cutoff: time = LATE_CUTOFF) -> bool:
    """Return True for a Present session started strictly after the cutoff."""
    if record.status is not SessionStatus.PRESENT or record.started_at is None:
        return False
    return record.started_at.time() > cutoff


def in_window(items: Iterable[_Dated], window: DateWindow) -> list[_Dated]:
    """Keep only items dated inside the window."""
    return [item for item in items if item.date in window]


def compute_rate(
    records: Iterable[SessionRecord],
    window: DateWindow,
    expected: int | None = None,
    cutoff: time = LATE_CUTOFF,
    require_start: bool = False,
) -> RateReport:
    """Roll session records into counts and an attendance percentage.

    When ``expected`` is given it is the number of occurrences that should
    have a record; occurrences without one count as absent. The total never
    drops below the number of records, so the percentage stays within 100.

    With ``require_start`` a Present record only counts as present once it
    has a start time; one without is counted as absent.
    """
    windowed = in_window(records, window)
    counts = dict.fromkeys(SessionStatus, 0)
    late = 0
    for record in windowed:
        status = record.status
        if require_start and status is SessionStatus.PRESENT and not record.started_at:
            status = SessionStatus.ABSENT
        counts[status] += 1
        if is_late(record, cutoff):
            late += 1

    absent = counts[SessionStatus.ABSENT]
    if expected is None:
        total = len(windowed)
    else:
        total = max(expected, len(windowed))
        absent += total - len(windowed)

    present = counts[SessionStatus.PRESENT]
    return RateReport(
        total=total,
        present=present,
        absent=absent,
        excused=counts[SessionStatus.EXCUSED],
        sick=counts[SessionStatus.SICK],
        late=late,
        percentage=percentage(present, total),
    )


def net_score(entries: Iterable[PointEntry]) -> tuple[int, int, int]:
    """Return (merit, demerit, net) for a set of entries."""
    merit = 0
    demerit = 0
    for entry in entries:
        if entry.category is PointCategory.MERIT:
            merit += abs(entry.magnitude)
        else:
            demerit += abs(entry.magnitude)
    return merit, demerit, merit - demerit


def rank(entities: Sequence[ScoredEntity]) -> list[RankedRow]:
    """Rank entities by descending score.

    Sorting is stable, so tied entities keep their input order. Tied scores
    share the rank of the first of them and the following score skips ahead
    (10, 30, 30, 5 ranks as 3, 1, 1, 4 in input order).
    """
    ordered = sorted(entities, key=lambda entity: entity.score, reverse=True)
    rows: list[RankedRow] = []
    for position, entity in enumerate(ordered, start=1):
        if rows and rows[-1].score == entity.score:
            current_rank = rows[-1].rank
        else:
            current_rank = position
        rows.append(
            RankedRow(
                entity_id=entity.entity_id,
                score=entity.score,
                rank=current_rank,
                label=entity.label,
            )
        )
    return rows


def recent(items: Iterable[_Dated], limit: int) -> list[_Dated]:
    """Return the most recent ``limit`` items by date."""
    if limit <= 0:
        return []
    return sorted(items, key=lambda item: item.date, reverse=True)[:limit]


def expected_occurrences(
    occurrences: Iterable[Occurrence],
    window: DateWindow,
    as_of: datetime | None = None,
) -> int:
    """Count scheduled weekday slots falling inside the window.

    With ``as_of`` only slots that have already started by then are counted:
    later days are skipped and on the ``as_of`` day itself a slot counts once
    its start time has passed.
    """
    by_weekday: dict[int, list[Occurrence]] = {}
    for occurrence in occurrences:
        by_weekday.setdefault(occurrence.weekday, []).append(occurrence)

    last_day = window.end
    if as_of is not None:
        last_day = min(last_day, as_of.date())

    total = 0
    day = window.start
    while day <= last_day:
        slots = by_weekday.get(day.weekday(), [])
        if as_of is not None and day == as_of.date():
            now = as_of.time()
            total += sum(1 for slot in slots if slot.starts_at <= now)
        else:
            total += len(slots)
        day += timedelta(days=1)
    return total


@dataclass
class ReportService:
    """Computes attendance reports and rankings on demand."""

    attendance_repository: AttendanceReadRepository
    point_repository: PointRepository
    late_cutoff: time = LATE_CUTOFF
    clock: Clock | None = None

    def occurrence_report(self, owner_id: str, window: DateWindow) -> RateReport:
        """Return the attendance of a responsible person over their schedule.

        Slots that have not started yet by the clock's current time are not
        expected, so they never count as absences.
        """
        occurrences = self.attendance_repository.list_occurrences(owner_id)
        records = self.attendance_repository.list_owner_sessions(owner_id, window)
        as_of = self.clock.now() if self.clock is not None else None
        expected = expected_occurrences(occurrences, window, as_of=as_of)
        return compute_rate(
            records,
            window,
            expected=expected,
            cutoff=self.late_cutoff,
            require_start=True,
        )

    def attendance_ranking(
        self, owner_ids: Sequence[str], window: DateWindow
    ) -> list[tuple[RankedRow, RateReport]]:
        """Rank responsible people by attendance percentage."""
        reports = {
            owner_id: self.occurrence_report(owner_id, window) for owner_id in owner_ids
        }
        rows = rank(
            [
                ScoredEntity(entity_id=owner_id, score=report.percentage)
                for owner_id, report in reports.items()
            ]
        )
        return [(row, reports[row.entity_id]) for row in rows]

    def subject_report(self, subject_id: str, window: DateWindow) -> RateReport:
        """Return a subject's attendance rate over their recorded sessions."""
        rows = self.attendance_repository.list_subject_attendance([subject_id], window)
        return compute_rate(rows.get(subject_id, []), window, cutoff=self.late_cutoff)

    def subject_ranking(
        self, subject_ids: Sequence[str], window: DateWindow
    ) -> list[tuple[RankedRow, RateReport]]:
        """Rank subjects by attendance percentage."""
        rows_by_subject = self.attendance_repository.list_subject_attendance(
            subject_ids, window
        )
        reports = {
            subject_id: compute_rate(
                rows_by_subject.get(subject_id, []), window, cutoff=self.late_cutoff
            )
            for subject_id in subject_ids
        }
        ranked = rank(
            [
                ScoredEntity(entity_id=subject_id, score=report.percentage)
                for subject_id, report in reports.items()
            ]
        )
        return [(row, reports[row.entity_id]) for row in ranked]

    def group_report(
        self, subject_ids: Sequence[str], window: DateWindow
    ) -> RateReport:
        """Return the pooled attendance rate of a group of subjects."""
        if not subject_ids:
            return RateReport()
        rows_by_subject = self.attendance_repository.list_subject_attendance(
            subject_ids, window
        )
        pooled = [row for rows in rows_by_subject.values() for row in rows]
        return compute_rate(pooled, window, cutoff=self.late_cutoff)

    def point_standings(
        self,
        subject_ids: Sequence[str],
        window: DateWindow,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ) -> list[PointStanding]:
        """Rank subjects by net merit score with their latest entries."""
        entries = in_window(
            self.point_repository.list_points(subject_ids, window), window
        )
        by_subject: dict[str, list[PointEntry]] = {sid: [] for sid in subject_ids}
        for entry in entries:
            by_subject.setdefault(entry.subject_id, []).append(entry)

        scores = {
            subject_id: net_score(subject_entries)
            for subject_id, subject_entries in by_subject.items()
        }
        ranked = rank(
            [
                ScoredEntity(entity_id=subject_id, score=net)
                for subject_id, (_, _, net) in scores.items()
            ]
        )
        standings = []
        for row in ranked:
            merit, demerit, net = scores[row.entity_id]
            standings.append(
                PointStanding(
                    subject_id=row.entity_id,
                    merit=merit,
                    demerit=demerit,
                    net=net,
                    rank=row.rank,
                    recent=recent(by_subject[row.entity_id], recent_limit),
                )
            )
        return standings

    def recent_sessions(
        self, owner_id: str, window: DateWindow, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[SessionRecord]:
        """Return an owner's most recent sessions inside the window."""
        records = self.attendance_repository.list_owner_sessions(owner_id, window)
        return recent(in_window(records, window), limit)
