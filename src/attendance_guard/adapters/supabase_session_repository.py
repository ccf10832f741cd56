"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from postgrest.exceptions import APIError
from supabase import Client

from attendance_guard.domain.errors import DuplicateSessionError
from attendance_guard.domain.sessions import SessionRecord, SessionStatus
from attendance_guard.services.ledger import SessionRepository

UNIQUE_VIOLATION = "23505"
_COLUMNS = "schedule_id, tanggal, status, jam_masuk, jam_pulang, keterangan"


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Session records stored one row per (schedule_id, tanggal).

    The table carries a unique constraint on that pair; times are stored as
    local wall-clock ``HH:MM:SS`` in the school's timezone.
    """

    client: Client
    timezone_name: str

    def get_session(self, occurrence_id: str, day: date) -> SessionRecord | None:
        """Return the record for a key, if present."""
        response = (
            self.client.table("teacher_attendance")
            .select(_COLUMNS)
            .eq("schedule_id", occurrence_id)
            .eq("tanggal", day.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_session_row(response.data[0], ZoneInfo(self.timezone_name))

    def insert_session(self, record: SessionRecord) -> SessionRecord:
        """Insert a new record, failing on an existing key."""
        payload = {
            "schedule_id": record.occurrence_id,
            "tanggal": record.date.isoformat(),
            "status": record.status.value,
            "jam_masuk": _format_time(record.started_at),
            "keterangan": record.note,
        }
        try:
            response = self.client.table("teacher_attendance").insert(payload).execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise DuplicateSessionError(str(record.key)) from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to create session record")
        return parse_session_row(response.data[0], ZoneInfo(self.timezone_name))

    def close_session(
        self, occurrence_id: str, day: date, ended_at: datetime
    ) -> SessionRecord | None:
        """Set jam_pulang on the open Present row for the key."""
        response = (
            self.client.table("teacher_attendance")
            .update({"jam_pulang": _format_time(ended_at)})
            .eq("schedule_id", occurrence_id)
            .eq("tanggal", day.isoformat())
            .eq("status", SessionStatus.PRESENT.value)
            .is_("jam_pulang", "null")
            .execute()
        )
        if not response.data:
            return None
        return parse_session_row(response.data[0], ZoneInfo(self.timezone_name))


def parse_session_row(row: dict[str, object], tz: ZoneInfo) -> SessionRecord:
    """Build a session record from a stored attendance row."""
    day = date.fromisoformat(str(row["tanggal"]))
    note = row.get("keterangan")
    return SessionRecord(
        occurrence_id=str(row["schedule_id"]),
        date=day,
        status=SessionStatus(row.get("status") or SessionStatus.UNSET.value),
        started_at=_combine(day, row.get("jam_masuk"), tz),
        ended_at=_combine(day, row.get("jam_pulang"), tz),
        note=str(note) if note else None,
    )


def _format_time(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    return moment.strftime("%H:%M:%S")


def _combine(day: date, raw: object, tz: ZoneInfo) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    return datetime.combine(day, time.fromisoformat(raw), tzinfo=tz)
