"""Supabase repository for merit and demerit points."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from supabase import Client

from attendance_guard.domain.points import PointCategory, PointEntry
from attendance_guard.domain.reports import DateWindow
from attendance_guard.services.reports import PointRepository


@dataclass
class SupabasePointRepository(PointRepository):
    """Supabase implementation for point queries."""

    client: Client

    def list_points(
        self, subject_ids: Sequence[str], window: DateWindow
    ) -> list[PointEntry]:
        """Return point entries in the window, newest first."""
        if not subject_ids:
            return []
        response = (
            self.client.table("points")
            .select("siswa_id, jenis, poin, tanggal, keterangan")
            .in_("siswa_id", list(subject_ids))
            .gte("tanggal", window.start.isoformat())
            .lte("tanggal", window.end.isoformat())
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]


def _parse_row(row: dict[str, object]) -> PointEntry:
    note = row.get("keterangan")
    return PointEntry(
        subject_id=str(row["siswa_id"]),
        category=PointCategory(row["jenis"]),
        magnitude=abs(int(row.get("poin", 0))),
        date=date.fromisoformat(str(row["tanggal"])),
        note=str(note) if note else None,
    )
