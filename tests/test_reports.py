"""Tests for attendance and point rollups."""

from datetime import date, datetime, time

import pytest

from attendance_guard.domain.points import PointCategory, PointEntry
from attendance_guard.domain.reports import DateWindow, RateReport, ScoredEntity
from attendance_guard.domain.sessions import Occurrence, SessionStatus
from attendance_guard.services.reports import (
    ReportService,
    compute_rate,
    expected_occurrences,
    is_late,
    net_score,
    percentage,
    rank,
    recent,
)
from tests.conftest import (
    JAKARTA,
    FixedClock,
    InMemoryAttendanceReadRepository,
    InMemoryPointRepository,
    marked,
    present,
)

MARCH = DateWindow.month(2024, 3)
AFTER_MARCH = datetime(2024, 4, 1, 9, 0, tzinfo=JAKARTA)


def _points(subject_id: str, category: PointCategory, magnitude: int, day: int):
    return PointEntry(
        subject_id=subject_id,
        category=category,
        magnitude=magnitude,
        date=date(2024, 3, day),
    )


def test_percentage_handles_zero_total() -> None:
    assert percentage(0, 0) == 0
    assert percentage(5, 0) == 0


def test_percentage_rounds_half_up() -> None:
    assert percentage(1, 8) == 13
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67


def test_compute_rate_over_no_records_is_zero() -> None:
    assert compute_rate([], MARCH) == RateReport()


def test_compute_rate_three_present_one_absent() -> None:
    records = [
        present("s1", date(2024, 3, 4), 7),
        present("s1", date(2024, 3, 5), 7),
        present("s1", date(2024, 3, 6), 7),
        marked("s1", date(2024, 3, 7), SessionStatus.ABSENT),
    ]

    report = compute_rate(records, MARCH)

    assert report.total == 4
    assert report.present == 3
    assert report.absent == 1
    assert report.percentage == 75


def test_compute_rate_excludes_records_outside_window() -> None:
    records = [
        present("s1", date(2024, 2, 29), 7),
        present("s1", date(2024, 3, 1), 7),
        marked("s1", date(2024, 4, 1), SessionStatus.ABSENT),
    ]

    report = compute_rate(records, MARCH)

    assert report.total == 1
    assert report.percentage == 100


def test_compute_rate_counts_missing_expected_as_absent() -> None:
    records = [
        present("s1", date(2024, 3, 4), 7),
        marked("s1", date(2024, 3, 11), SessionStatus.SICK),
    ]

    report = compute_rate(records, MARCH, expected=4)

    assert report.total == 4
    assert report.absent == 2
    assert report.sick == 1
    assert report.percentage == 25


def test_late_is_strictly_after_cutoff() -> None:
    assert not is_late(present("s1", date(2024, 3, 4), 8, 0))
    assert is_late(present("s1", date(2024, 3, 4), 8, 1))
    assert not is_late(marked("s1", date(2024, 3, 4), SessionStatus.EXCUSED))

    records = [
        present("s1", date(2024, 3, 4), 7, 55),
        present("s1", date(2024, 3, 5), 9, 15),
    ]
    assert compute_rate(records, MARCH).late == 1


def test_net_score() -> None:
    entries = [
        _points("a", PointCategory.MERIT, 10, 1),
        _points("a", PointCategory.MERIT, 5, 2),
        _points("a", PointCategory.DEMERIT, 7, 3),
    ]

    assert net_score(entries) == (15, 7, 8)
    assert net_score([]) == (0, 0, 0)


def test_rank_ties_share_rank_in_input_order() -> None:
    entities = [
        ScoredEntity("a", 10),
        ScoredEntity("b", 30),
        ScoredEntity("c", 30),
        ScoredEntity("d", 5),
    ]

    rows = rank(entities)
    ranks = {row.entity_id: row.rank for row in rows}

    assert [ranks[entity.entity_id] for entity in entities] == [3, 1, 1, 4]
    assert [row.entity_id for row in rows] == ["b", "c", "a", "d"]


def test_rank_empty() -> None:
    assert rank([]) == []


def test_recent_returns_newest_slice() -> None:
    entries = [_points("a", PointCategory.MERIT, 1, day) for day in (3, 9, 1, 7)]

    assert [entry.date.day for entry in recent(entries, 2)] == [9, 7]
    assert recent(entries, 0) == []


def test_expected_occurrences_counts_weekdays_in_window() -> None:
    monday = Occurrence("s1", "t1", 0, time(7), time(9))
    friday = Occurrence("s2", "t1", 4, time(10), time(12))

    assert expected_occurrences([monday, friday], MARCH) == 4 + 5
    assert expected_occurrences([], MARCH) == 0


def test_date_window_validation() -> None:
    with pytest.raises(ValueError):
        DateWindow(date(2024, 3, 2), date(2024, 3, 1))
    assert DateWindow.month(2024, 2).end == date(2024, 2, 29)


def test_occurrence_report_uses_schedule_for_total(
    report_service: ReportService,
    attendance_repository: InMemoryAttendanceReadRepository,
    clock: FixedClock,
) -> None:
    clock.current = AFTER_MARCH
    attendance_repository.occurrences = [Occurrence("s1", "t1", 0, time(7), time(9))]
    attendance_repository.sessions = [
        present("s1", date(2024, 3, 4), 7, 30),
        present("s1", date(2024, 3, 11), 8, 20),
    ]

    report = report_service.occurrence_report("t1", MARCH)

    assert report.total == 4
    assert report.present == 2
    assert report.absent == 2
    assert report.late == 1
    assert report.percentage == 50


def test_attendance_ranking_orders_by_percentage(
    report_service: ReportService,
    attendance_repository: InMemoryAttendanceReadRepository,
    clock: FixedClock,
) -> None:
    clock.current = AFTER_MARCH
    attendance_repository.occurrences = [
        Occurrence("s1", "t1", 0, time(7), time(9)),
        Occurrence("s2", "t2", 0, time(7), time(9)),
        Occurrence("s3", "t3", 0, time(7), time(9)),
    ]
    attendance_repository.sessions = [
        present("s2", date(2024, 3, day), 7) for day in (4, 11, 18, 25)
    ] + [present("s1", date(2024, 3, 4), 7)]

    ranked = report_service.attendance_ranking(["t1", "t2", "t3"], MARCH)

    assert [(row.entity_id, row.rank) for row, _ in ranked] == [
        ("t2", 1),
        ("t1", 2),
        ("t3", 3),
    ]
    assert ranked[0][1].percentage == 100
    assert ranked[2][1] == RateReport(total=4, absent=4)


def test_subject_and_group_reports(
    report_service: ReportService,
    attendance_repository: InMemoryAttendanceReadRepository,
) -> None:
    attendance_repository.subject_rows = {
        "st1": [
            marked("s1", date(2024, 3, 4), SessionStatus.PRESENT),
            marked("s1", date(2024, 3, 5), SessionStatus.EXCUSED),
        ],
        "st2": [marked("s1", date(2024, 3, 4), SessionStatus.PRESENT)],
    }

    assert report_service.subject_report("st1", MARCH).percentage == 50
    assert report_service.subject_report("unknown", MARCH) == RateReport()
    group = report_service.group_report(["st1", "st2"], MARCH)
    assert group.total == 3
    assert group.percentage == 67
    assert report_service.group_report([], MARCH) == RateReport()

    ranked = report_service.subject_ranking(["st1", "st2"], MARCH)
    assert [row.entity_id for row, _ in ranked] == ["st2", "st1"]


def test_point_standings_rank_by_net_with_recent_entries(
    report_service: ReportService, point_repository: InMemoryPointRepository
) -> None:
    point_repository.entries = [
        _points("a", PointCategory.MERIT, 10, 1),
        _points("b", PointCategory.MERIT, 40, 2),
        _points("b", PointCategory.DEMERIT, 10, 3),
        _points("c", PointCategory.MERIT, 30, 4),
        _points("a", PointCategory.MERIT, 1, 5),
        _points("a", PointCategory.DEMERIT, 1, 6),
        _points("a", PointCategory.MERIT, 2, 7),
    ]

    standings = report_service.point_standings(["a", "b", "c", "d"], MARCH)

    assert [(s.subject_id, s.net, s.rank) for s in standings] == [
        ("b", 30, 1),
        ("c", 30, 1),
        ("a", 12, 3),
        ("d", 0, 4),
    ]
    a_standing = standings[2]
    assert (a_standing.merit, a_standing.demerit) == (13, 1)
    assert [entry.date.day for entry in a_standing.recent] == [7, 6, 5]
    assert standings[3].recent == []


def test_recent_sessions_slice(
    report_service: ReportService,
    attendance_repository: InMemoryAttendanceReadRepository,
) -> None:
    attendance_repository.occurrences = [Occurrence("s1", "t1", 0, time(7), time(9))]
    attendance_repository.sessions = [
        present("s1", date(2024, 3, day), 7) for day in (4, 11, 18)
    ]

    sessions = report_service.recent_sessions("t1", MARCH, limit=2)

    assert [record.date.day for record in sessions] == [18, 11]


def test_compute_rate_total_never_below_record_count() -> None:
    records = [present("s1", date(2024, 3, day), 7) for day in (4, 5, 6)]

    report = compute_rate(records, MARCH, expected=1)

    assert report.total == 3
    assert report.absent == 0
    assert report.percentage == 100


def test_compute_rate_can_require_a_start_time() -> None:
    records = [
        present("s1", date(2024, 3, 4), 7),
        marked("s1", date(2024, 3, 11), SessionStatus.PRESENT),
    ]

    strict = compute_rate(records, MARCH, require_start=True)
    lenient = compute_rate(records, MARCH)

    assert (strict.present, strict.absent, strict.percentage) == (1, 1, 50)
    assert (lenient.present, lenient.absent, lenient.percentage) == (2, 0, 100)


def test_expected_occurrences_stops_at_as_of() -> None:
    early = Occurrence("s1", "t1", 0, time(7), time(9))
    late = Occurrence("s2", "t1", 0, time(10), time(12))
    as_of = datetime(2024, 3, 11, 8, 0, tzinfo=JAKARTA)

    assert expected_occurrences([early, late], MARCH, as_of=as_of) == 2 + 1
    assert (
        expected_occurrences(
            [early], MARCH, as_of=datetime(2024, 2, 20, tzinfo=JAKARTA)
        )
        == 0
    )


def test_occurrence_report_ignores_slots_not_yet_held(
    report_service: ReportService,
    attendance_repository: InMemoryAttendanceReadRepository,
    clock: FixedClock,
) -> None:
    attendance_repository.occurrences = [Occurrence("s1", "t1", 0, time(7), time(9))]
    attendance_repository.sessions = [present("s1", date(2024, 3, 4), 7, 5)]

    first_week = report_service.occurrence_report("t1", MARCH)
    clock.current = datetime(2024, 3, 12, 9, 0, tzinfo=JAKARTA)
    second_week = report_service.occurrence_report("t1", MARCH)

    assert (first_week.total, first_week.absent, first_week.percentage) == (1, 0, 100)
    assert (second_week.total, second_week.absent) == (2, 1)
    assert second_week.percentage == 50


def test_occurrence_report_with_rows_on_unscheduled_days_stays_within_100(
    report_service: ReportService,
    attendance_repository: InMemoryAttendanceReadRepository,
    clock: FixedClock,
) -> None:
    clock.current = AFTER_MARCH
    attendance_repository.occurrences = [Occurrence("s1", "t1", 0, time(7), time(9))]
    attendance_repository.sessions = [
        present("s1", date(2024, 3, day), 7) for day in (4, 5, 11, 12, 18, 25)
    ]

    report = report_service.occurrence_report("t1", MARCH)

    assert report.total == 6
    assert report.present == 6
    assert report.percentage == 100


def test_occurrence_report_needs_check_in_for_present(
    report_service: ReportService,
    attendance_repository: InMemoryAttendanceReadRepository,
    clock: FixedClock,
) -> None:
    clock.current = AFTER_MARCH
    attendance_repository.occurrences = [Occurrence("s1", "t1", 0, time(7), time(9))]
    attendance_repository.sessions = [
        present("s1", date(2024, 3, 4), 7),
        marked("s1", date(2024, 3, 11), SessionStatus.PRESENT),
    ]

    report = report_service.occurrence_report("t1", MARCH)

    assert (report.total, report.present, report.absent) == (4, 1, 3)
    assert report.percentage == 25
