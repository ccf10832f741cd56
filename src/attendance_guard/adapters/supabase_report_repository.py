"""Supabase repository for attendance rollups."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import time
from zoneinfo import ZoneInfo

from supabase import Client

from attendance_guard.adapters.supabase_session_repository import parse_session_row
from attendance_guard.domain.reports import DateWindow
from attendance_guard.domain.sessions import Occurrence, SessionRecord
from attendance_guard.services.reports import AttendanceReadRepository

WEEKDAYS = {
    "senin": 0,
    "selasa": 1,
    "rabu": 2,
    "kamis": 3,
    "jumat": 4,
    "sabtu": 5,
    "minggu": 6,
}


@dataclass
class SupabaseAttendanceReadRepository(AttendanceReadRepository):
    """Supabase implementation for report queries."""

    client: Client
    timezone_name: str

    def list_occurrences(self, owner_id: str) -> list[Occurrence]:
        """Return the schedules taught by an owner."""
        response = (
            self.client.table("schedules")
            .select("id, guru_id, hari, jam_mulai, jam_selesai")
            .eq("guru_id", owner_id)
            .execute()
        )
        occurrences = []
        for row in response.data or []:
            weekday = WEEKDAYS.get(str(row.get("hari", "")).strip().lower())
            if weekday is None:
                continue
            occurrences.append(
                Occurrence(
                    id=str(row["id"]),
                    owner_id=str(row["guru_id"]),
                    weekday=weekday,
                    starts_at=time.fromisoformat(str(row["jam_mulai"])),
                    ends_at=time.fromisoformat(str(row["jam_selesai"])),
                )
            )
        return occurrences

    def list_owner_sessions(
        self, owner_id: str, window: DateWindow
    ) -> list[SessionRecord]:
        """Return session rows of an owner's schedules inside the window."""
        schedule_ids = [occurrence.id for occurrence in self.list_occurrences(owner_id)]
        if not schedule_ids:
            return []
        response = (
            self.client.table("teacher_attendance")
            .select("schedule_id, tanggal, status, jam_masuk, jam_pulang, keterangan")
            .in_("schedule_id", schedule_ids)
            .gte("tanggal", window.start.isoformat())
            .lte("tanggal", window.end.isoformat())
            .order("tanggal", desc=True)
            .execute()
        )
        tz = ZoneInfo(self.timezone_name)
        return [parse_session_row(row, tz) for row in response.data or []]

    def list_subject_attendance(
        self, subject_ids: Sequence[str], window: DateWindow
    ) -> dict[str, list[SessionRecord]]:
        """Return student attendance rows grouped by student."""
        grouped: dict[str, list[SessionRecord]] = {sid: [] for sid in subject_ids}
        if not subject_ids:
            return grouped
        response = (
            self.client.table("attendance")
            .select("siswa_id, schedule_id, tanggal, status, keterangan")
            .in_("siswa_id", list(subject_ids))
            .gte("tanggal", window.start.isoformat())
            .lte("tanggal", window.end.isoformat())
            .order("tanggal", desc=True)
            .execute()
        )
        tz = ZoneInfo(self.timezone_name)
        for row in response.data or []:
            grouped.setdefault(str(row["siswa_id"]), []).append(
                parse_session_row(row, tz)
            )
        return grouped
