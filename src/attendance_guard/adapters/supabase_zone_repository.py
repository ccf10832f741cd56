"""Supabase-backed zone repository."""

import logging
from dataclasses import dataclass

from supabase import Client

from attendance_guard.domain.geofence import Coordinate, Zone
from attendance_guard.services.ledger import ZoneRepository

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseZoneRepository(ZoneRepository):
    """Reads attendance zones from the location settings table."""

    client: Client

    def list_active_zones(self) -> list[Zone]:
        """Return zones flagged active."""
        response = (
            self.client.table("location_settings")
            .select("id, name, latitude, longitude, radius, is_active")
            .eq("is_active", True)
            .execute()
        )
        zones = []
        for row in response.data or []:
            zone = _parse_row(row)
            if zone is not None:
                zones.append(zone)
        return zones


def _parse_row(row: dict[str, object]) -> Zone | None:
    try:
        return Zone(
            id=str(row["id"]),
            name=str(row.get("name") or ""),
            center=Coordinate(
                latitude=float(row["latitude"]),
                longitude=float(row["longitude"]),
            ),
            radius_meters=float(row["radius"]),
            active=bool(row.get("is_active", True)),
        )
    except (KeyError, TypeError, ValueError):
        _logger.warning("Skipping malformed zone row id=%s", row.get("id"))
        return None
