"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from attendance_guard.api.models import LocationPayload
from attendance_guard.services.geofence import format_rejection

if TYPE_CHECKING:
    from attendance_guard.containers import AppContainer
    from attendance_guard.domain.geofence import Zone

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/zones", dependencies=[Depends(require_admin)])
async def list_zones(request: Request) -> dict[str, object]:
    """Return the active attendance zones."""
    container: AppContainer = request.app.state.container
    zones = container.ledger.zone_repository.list_active_zones()
    return {"zones": [_serialize_zone(zone) for zone in zones]}


@router.post("/evaluate", dependencies=[Depends(require_admin)])
async def evaluate_location(
    payload: LocationPayload, request: Request
) -> dict[str, object]:
    """Dry-run a coordinate against the active zones without recording anything."""
    container: AppContainer = request.app.state.container
    ledger = container.ledger
    zones = ledger.zone_repository.list_active_zones()
    decision = ledger.validator.evaluate(payload.coordinate(), zones)
    return {
        "admitted": decision.admitted,
        "zone": _serialize_zone(decision.nearest_zone)
        if decision.nearest_zone
        else None,
        "distance_meters": round(decision.distance_meters)
        if decision.distance_meters is not None
        else None,
        "message": None if decision.admitted else format_rejection(decision),
    }


def _serialize_zone(zone: Zone) -> dict[str, object]:
    return {
        "id": zone.id,
        "name": zone.name,
        "latitude": zone.center.latitude,
        "longitude": zone.center.longitude,
        "radius_meters": zone.radius_meters,
        "active": zone.active,
    }
