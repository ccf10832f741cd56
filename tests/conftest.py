"""Shared test fixtures."""

import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from attendance_guard.config import Settings
from attendance_guard.containers import AppContainer
from attendance_guard.domain.errors import DuplicateSessionError
from attendance_guard.domain.geofence import Coordinate, Zone
from attendance_guard.domain.points import PointEntry
from attendance_guard.domain.reports import DateWindow
from attendance_guard.domain.sessions import Occurrence, SessionRecord, SessionStatus
from attendance_guard.services.clock import Clock
from attendance_guard.services.ledger import (
    SessionLedger,
    SessionRepository,
    ZoneRepository,
)
from attendance_guard.services.location import LocationService
from attendance_guard.services.reports import (
    AttendanceReadRepository,
    PointRepository,
    ReportService,
)

JAKARTA = ZoneInfo("Asia/Jakarta")
MAIN_CAMPUS = Zone(
    id="zone-main",
    name="Main Campus",
    center=Coordinate(latitude=-6.2, longitude=106.8),
    radius_meters=50,
)
ON_CAMPUS = Coordinate(latitude=-6.2, longitude=106.8)
OFF_CAMPUS = Coordinate(latitude=-6.21, longitude=106.8)


@dataclass
class FixedClock(Clock):
    """Clock returning a settable instant."""

    current: datetime = field(
        default_factory=lambda: datetime(2024, 3, 4, 7, 30, tzinfo=JAKARTA)
    )

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


@dataclass
class InMemoryZoneRepository(ZoneRepository):
    """In-memory zone repository for tests."""

    zones: list[Zone] = field(default_factory=lambda: [MAIN_CAMPUS])

    def list_active_zones(self) -> list[Zone]:
        return [zone for zone in self.zones if zone.active]


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session store enforcing a unique key like the real table."""

    records: dict[tuple[str, date], SessionRecord] = field(default_factory=dict)
    inserts: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get_session(self, occurrence_id: str, day: date) -> SessionRecord | None:
        return self.records.get((occurrence_id, day))

    def insert_session(self, record: SessionRecord) -> SessionRecord:
        with self._lock:
            if record.key in self.records:
                raise DuplicateSessionError(str(record.key))
            self.records[record.key] = record
            self.inserts += 1
        return record

    def close_session(
        self, occurrence_id: str, day: date, ended_at: datetime
    ) -> SessionRecord | None:
        with self._lock:
            current = self.records.get((occurrence_id, day))
            if current is None or not current.is_open:
                return None
            closed = SessionRecord(
                occurrence_id=current.occurrence_id,
                date=current.date,
                status=current.status,
                started_at=current.started_at,
                ended_at=ended_at,
                note=current.note,
            )
            self.records[(occurrence_id, day)] = closed
        return closed


@dataclass
class InMemoryAttendanceReadRepository(AttendanceReadRepository):
    """In-memory report repository for tests."""

    occurrences: list[Occurrence] = field(default_factory=list)
    sessions: list[SessionRecord] = field(default_factory=list)
    subject_rows: dict[str, list[SessionRecord]] = field(default_factory=dict)

    def list_occurrences(self, owner_id: str) -> list[Occurrence]:
        return [item for item in self.occurrences if item.owner_id == owner_id]

    def list_owner_sessions(
        self, owner_id: str, window: DateWindow
    ) -> list[SessionRecord]:
        owned = {item.id for item in self.list_occurrences(owner_id)}
        return [
            record
            for record in self.sessions
            if record.occurrence_id in owned and record.date in window
        ]

    def list_subject_attendance(
        self, subject_ids: Sequence[str], window: DateWindow
    ) -> dict[str, list[SessionRecord]]:
        return {
            subject_id: [
                row for row in self.subject_rows.get(subject_id, []) if row.date in window
            ]
            for subject_id in subject_ids
        }


@dataclass
class InMemoryPointRepository(PointRepository):
    """In-memory point repository for tests."""

    entries: list[PointEntry] = field(default_factory=list)

    def list_points(
        self, subject_ids: Sequence[str], window: DateWindow
    ) -> list[PointEntry]:
        wanted = set(subject_ids)
        return [
            entry
            for entry in self.entries
            if entry.subject_id in wanted and entry.date in window
        ]


def present(occurrence_id: str, day: date, hour: int, minute: int = 0) -> SessionRecord:
    """Build a Present record started at a local time."""
    return SessionRecord(
        occurrence_id=occurrence_id,
        date=day,
        status=SessionStatus.PRESENT,
        started_at=datetime(day.year, day.month, day.day, hour, minute, tzinfo=JAKARTA),
    )


def marked(occurrence_id: str, day: date, status: SessionStatus) -> SessionRecord:
    """Build a record with a status and no times."""
    return SessionRecord(occurrence_id=occurrence_id, date=day, status=status)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def zone_repository() -> InMemoryZoneRepository:
    return InMemoryZoneRepository()


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def ledger(
    zone_repository: InMemoryZoneRepository,
    session_repository: InMemorySessionRepository,
    clock: FixedClock,
) -> SessionLedger:
    return SessionLedger(
        zone_repository=zone_repository,
        session_repository=session_repository,
        clock=clock,
        location_service=LocationService(timeout_seconds=0.2),
    )


@pytest.fixture
def attendance_repository() -> InMemoryAttendanceReadRepository:
    return InMemoryAttendanceReadRepository()


@pytest.fixture
def point_repository() -> InMemoryPointRepository:
    return InMemoryPointRepository()


@pytest.fixture
def report_service(
    attendance_repository: InMemoryAttendanceReadRepository,
    point_repository: InMemoryPointRepository,
    clock: FixedClock,
) -> ReportService:
    return ReportService(
        attendance_repository=attendance_repository,
        point_repository=point_repository,
        clock=clock,
    )


@pytest.fixture
def container(
    settings: Settings, ledger: SessionLedger, report_service: ReportService
) -> AppContainer:
    return AppContainer(
        settings=settings,
        ledger=ledger,
        report_service=report_service,
    )
