"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from attendance_guard.adapters.supabase_point_repository import SupabasePointRepository
from attendance_guard.adapters.supabase_report_repository import (
    SupabaseAttendanceReadRepository,
)
from attendance_guard.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from attendance_guard.adapters.supabase_zone_repository import SupabaseZoneRepository
from attendance_guard.config import Settings
from attendance_guard.services.clock import SystemClock
from attendance_guard.services.geofence import GeofenceValidator
from attendance_guard.services.ledger import SessionLedger
from attendance_guard.services.location import LocationService
from attendance_guard.services.reports import ReportService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    ledger: SessionLedger
    report_service: ReportService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    clock = SystemClock(resolved_settings.school_timezone)
    ledger = SessionLedger(
        zone_repository=SupabaseZoneRepository(supabase_client),
        session_repository=SupabaseSessionRepository(
            supabase_client, resolved_settings.school_timezone
        ),
        clock=clock,
        validator=GeofenceValidator(),
        location_service=LocationService(
            timeout_seconds=resolved_settings.location_timeout_seconds
        ),
    )
    report_service = ReportService(
        attendance_repository=SupabaseAttendanceReadRepository(
            supabase_client, resolved_settings.school_timezone
        ),
        point_repository=SupabasePointRepository(supabase_client),
        clock=clock,
    )

    return AppContainer(
        settings=resolved_settings,
        ledger=ledger,
        report_service=report_service,
    )
