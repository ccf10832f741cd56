"""FastAPI application factory."""

import datetime
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from attendance_guard.api.admin import router as admin_router
from attendance_guard.api.models import (
    FinishSessionRequest,
    RankingRequest,
    StartSessionRequest,
)
from attendance_guard.app_logging import configure_logging
from attendance_guard.containers import AppContainer
from attendance_guard.domain.errors import (
    AlreadyStarted,
    AttendanceError,
    InvalidTransition,
    LocationUnavailable,
    OutOfRange,
    ReasonRequired,
    ZeroZonesConfigured,
)
from attendance_guard.domain.points import PointEntry
from attendance_guard.domain.reports import (
    DateWindow,
    PointStanding,
    RankedRow,
    RateReport,
)
from attendance_guard.domain.sessions import (
    FinishAction,
    SessionRecord,
    SessionStatus,
    StartAction,
)
from attendance_guard.services.location import StaticLocationProvider

_ERROR_STATUS: dict[type[AttendanceError], int] = {
    LocationUnavailable: status.HTTP_422_UNPROCESSABLE_ENTITY,
    OutOfRange: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ZeroZonesConfigured: status.HTTP_503_SERVICE_UNAVAILABLE,
    ReasonRequired: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AlreadyStarted: status.HTTP_409_CONFLICT,
    InvalidTransition: status.HTTP_409_CONFLICT,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(AttendanceError)
    async def attendance_error_handler(
        request: Request, exc: AttendanceError
    ) -> JSONResponse:
        logger.info("Attendance request rejected: %s", exc.code)
        return JSONResponse(
            status_code=_status_for(exc),
            content=serialize_error(exc),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions/start")
    async def start_session(
        payload: StartSessionRequest, request: Request
    ) -> dict[str, object]:
        """Open the session for an occurrence on a date."""
        state_container: AppContainer = request.app.state.container
        try:
            session_status = SessionStatus(payload.status)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown status {payload.status!r}",
            ) from exc
        record = await state_container.ledger.transition_with_location(
            payload.occurrence_id,
            payload.date,
            StartAction(status=session_status),
            StaticLocationProvider(payload.coordinate()),
            reason=payload.reason,
        )
        return {"session": serialize_session(record)}

    @app.post("/sessions/finish")
    async def finish_session(
        payload: FinishSessionRequest, request: Request
    ) -> dict[str, object]:
        """Close the open session for an occurrence on a date."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.ledger.transition_with_location(
            payload.occurrence_id,
            payload.date,
            FinishAction(),
            StaticLocationProvider(payload.coordinate()),
        )
        return {"session": serialize_session(record)}

    @app.get("/sessions/{occurrence_id}/{day}")
    async def get_session(
        occurrence_id: str, day: datetime.date, request: Request
    ) -> dict[str, object]:
        """Return the current session record for a key."""
        state_container: AppContainer = request.app.state.container
        record = state_container.ledger.get_record(occurrence_id, day)
        return {"session": serialize_session(record) if record else None}

    @app.get("/reports/occurrences/{owner_id}")
    async def owner_report(
        owner_id: str, year: int, month: int, request: Request, recent: int = 3
    ) -> dict[str, object]:
        """Return a responsible person's monthly attendance report."""
        state_container: AppContainer = request.app.state.container
        window = _month_window(year, month)
        report = state_container.report_service.occurrence_report(owner_id, window)
        sessions = state_container.report_service.recent_sessions(
            owner_id, window, limit=recent
        )
        return {
            "owner_id": owner_id,
            "report": serialize_report(report),
            "recent": [serialize_session(record) for record in sessions],
        }

    @app.get("/reports/subjects/{subject_id}")
    async def subject_report(
        subject_id: str, year: int, month: int, request: Request
    ) -> dict[str, object]:
        """Return a subject's monthly attendance report."""
        state_container: AppContainer = request.app.state.container
        window = _month_window(year, month)
        report = state_container.report_service.subject_report(subject_id, window)
        return {"subject_id": subject_id, "report": serialize_report(report)}

    @app.post("/reports/groups")
    async def group_report(
        payload: RankingRequest, request: Request
    ) -> dict[str, object]:
        """Return the pooled attendance of a group of subjects."""
        state_container: AppContainer = request.app.state.container
        window = _month_window(payload.year, payload.month)
        report = state_container.report_service.group_report(payload.entity_ids, window)
        return {
            "members": len(payload.entity_ids),
            "report": serialize_report(report),
        }

    @app.post("/reports/rankings/attendance")
    async def attendance_ranking(
        payload: RankingRequest, request: Request
    ) -> dict[str, object]:
        """Rank responsible people by monthly attendance percentage."""
        state_container: AppContainer = request.app.state.container
        window = _month_window(payload.year, payload.month)
        ranked = state_container.report_service.attendance_ranking(
            payload.entity_ids, window
        )
        return {"rankings": [_serialize_ranked(row, report) for row, report in ranked]}

    @app.post("/reports/rankings/subjects")
    async def subject_ranking(
        payload: RankingRequest, request: Request
    ) -> dict[str, object]:
        """Rank subjects by monthly attendance percentage."""
        state_container: AppContainer = request.app.state.container
        window = _month_window(payload.year, payload.month)
        ranked = state_container.report_service.subject_ranking(
            payload.entity_ids, window
        )
        return {"rankings": [_serialize_ranked(row, report) for row, report in ranked]}

    @app.post("/reports/rankings/points")
    async def point_ranking(
        payload: RankingRequest, request: Request
    ) -> dict[str, object]:
        """Rank subjects by monthly net merit score."""
        state_container: AppContainer = request.app.state.container
        window = _month_window(payload.year, payload.month)
        standings = state_container.report_service.point_standings(
            payload.entity_ids,
            window,
            recent_limit=state_container.settings.recent_points_limit,
        )
        return {"standings": [serialize_standing(entry) for entry in standings]}

    return app


def _status_for(exc: AttendanceError) -> int:
    for error_type, code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def _month_window(year: int, month: int) -> DateWindow:
    try:
        return DateWindow.month(year, month)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc


def serialize_error(exc: AttendanceError) -> dict[str, object]:
    """Render an attendance error for API clients."""
    body: dict[str, object] = {"error": exc.code, "detail": str(exc)}
    if isinstance(exc, OutOfRange):
        zone = exc.nearest_zone
        body["nearest_zone"] = (
            {"id": zone.id, "name": zone.name, "radius_meters": zone.radius_meters}
            if zone
            else None
        )
        body["distance_meters"] = (
            round(exc.distance_meters) if exc.distance_meters is not None else None
        )
    return body


def serialize_session(record: SessionRecord) -> dict[str, object]:
    """Render a session record."""
    return {
        "occurrence_id": record.occurrence_id,
        "date": record.date.isoformat(),
        "status": record.status.value,
        "started_at": record.started_at.isoformat() if record.started_at else None,
        "ended_at": record.ended_at.isoformat() if record.ended_at else None,
        "note": record.note,
    }


def serialize_report(report: RateReport) -> dict[str, object]:
    """Render a rate report."""
    return {
        "total": report.total,
        "present": report.present,
        "absent": report.absent,
        "excused": report.excused,
        "sick": report.sick,
        "late": report.late,
        "percentage": report.percentage,
    }


def serialize_standing(standing: PointStanding) -> dict[str, object]:
    """Render a point standing."""
    return {
        "subject_id": standing.subject_id,
        "rank": standing.rank,
        "net": standing.net,
        "merit": standing.merit,
        "demerit": standing.demerit,
        "recent": [_serialize_point(entry) for entry in standing.recent],
    }


def _serialize_point(entry: PointEntry) -> dict[str, object]:
    return {
        "category": entry.category.value,
        "magnitude": entry.magnitude,
        "date": entry.date.isoformat(),
        "note": entry.note,
    }


def _serialize_ranked(row: RankedRow, report: RateReport) -> dict[str, object]:
    return {
        "entity_id": row.entity_id,
        "rank": row.rank,
        "score": row.score,
        "report": serialize_report(report),
    }
