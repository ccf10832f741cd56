"""Attendance session ledger gated by geofence admission."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol

from attendance_guard.domain.errors import (
    AlreadyStarted,
    DuplicateSessionError,
    InvalidTransition,
    LocationUnavailable,
    OutOfRange,
    ReasonRequired,
    ZeroZonesConfigured,
)
from attendance_guard.domain.geofence import Coordinate, Decision, Zone
from attendance_guard.domain.sessions import (
    STARTABLE_STATUSES,
    FinishAction,
    SessionAction,
    SessionRecord,
    SessionStatus,
    StartAction,
)
from attendance_guard.services.clock import Clock
from attendance_guard.services.geofence import GeofenceValidator
from attendance_guard.services.location import LocationProvider, LocationService

_logger = logging.getLogger(__name__)


class ZoneRepository(Protocol):
    """Read access to configured attendance zones."""

    def list_active_zones(self) -> list[Zone]:
        """Return all zones flagged active."""


class SessionRepository(Protocol):
    """Persistence interface for session records."""

    def get_session(self, occurrence_id: str, day: date) -> SessionRecord | None:
        """Return the record for a key, if present."""

    def insert_session(self, record: SessionRecord) -> SessionRecord:
        """Create a record. Raise DuplicateSessionError if the key exists."""

    def close_session(
        self, occurrence_id: str, day: date, ended_at: datetime
    ) -> SessionRecord | None:
        """Set ended_at on an open Present record; return None if none matched."""


@dataclass
class _KeyLocks:
    """Registry of one lock per session key.

    Entries are reference counted and dropped when their last holder or
    waiter leaves, so only keys in use are kept.
    """

    _locks: dict[tuple[str, date], threading.Lock] = field(default_factory=dict)
    _holders: dict[tuple[str, date], int] = field(default_factory=dict)
    _guard: threading.Lock = field(default_factory=threading.Lock)

    @contextmanager
    def hold(self, key: tuple[str, date]) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._holders[key] = self._holders.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[key] -= 1
                if not self._holders[key]:
                    del self._holders[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


@dataclass
class SessionLedger:
    """Owns the per-occurrence-per-day attendance lifecycle.

    Unset -> Present(open) -> Present(closed) is the only two-step path.
    Excused and Sick are terminal on start. Absent is never written here.
    """

    zone_repository: ZoneRepository
    session_repository: SessionRepository
    clock: Clock
    validator: GeofenceValidator = field(default_factory=GeofenceValidator)
    location_service: LocationService = field(default_factory=LocationService)
    _locks: _KeyLocks = field(default_factory=_KeyLocks, init=False, repr=False)

    def check_location(self, observed: Coordinate | None) -> Decision:
        """Evaluate an observation against active zones or raise."""
        zones = self.zone_repository.list_active_zones()
        if not zones:
            raise ZeroZonesConfigured()
        if observed is None:
            raise LocationUnavailable()
        decision = self.validator.evaluate(observed, zones)
        if not decision.admitted:
            raise OutOfRange(decision.nearest_zone, decision.distance_meters)
        return decision

    def get_record(self, occurrence_id: str, day: date) -> SessionRecord | None:
        """Return the current record for a key."""
        return self.session_repository.get_session(occurrence_id, day)

    def transition(
        self,
        occurrence_id: str,
        day: date,
        action: SessionAction,
        observed: Coordinate | None,
        reason: str | None = None,
    ) -> SessionRecord:
        """Apply an action to the session for (occurrence_id, day)."""
        try:
            decision = self.check_location(observed)
        except (ZeroZonesConfigured, LocationUnavailable, OutOfRange) as exc:
            _logger.warning(
                "Rejected %s for %s on %s: %s",
                _action_name(action),
                occurrence_id,
                day.isoformat(),
                exc.code,
            )
            raise

        try:
            with self._locks.hold((occurrence_id, day)):
                existing = self.session_repository.get_session(occurrence_id, day)
                if isinstance(action, StartAction):
                    record = self._start(occurrence_id, day, action, existing, reason)
                elif isinstance(action, FinishAction):
                    record = self._finish(occurrence_id, day, existing)
                else:
                    raise InvalidTransition(f"Unsupported action {action!r}")
        except (AlreadyStarted, InvalidTransition) as exc:
            _logger.warning(
                "Rejected %s for %s on %s: %s",
                _action_name(action),
                occurrence_id,
                day.isoformat(),
                exc.code,
            )
            raise

        zone_name = decision.nearest_zone.name if decision.nearest_zone else "?"
        _logger.info(
            "Session %s for %s on %s at %s (status=%s)",
            _action_name(action),
            occurrence_id,
            day.isoformat(),
            zone_name,
            record.status.value,
        )
        return record

    async def transition_with_location(
        self,
        occurrence_id: str,
        day: date,
        action: SessionAction,
        provider: LocationProvider,
        reason: str | None = None,
    ) -> SessionRecord:
        """Acquire the caller's location with a bounded wait, then transition."""
        observed = await self.location_service.acquire(provider)
        return self.transition(occurrence_id, day, action, observed, reason)

    def _start(
        self,
        occurrence_id: str,
        day: date,
        action: StartAction,
        existing: SessionRecord | None,
        reason: str | None,
    ) -> SessionRecord:
        if action.status not in STARTABLE_STATUSES:
            raise InvalidTransition(f"Cannot start a session as {action.status.name}")
        if existing is not None and existing.started_at is not None:
            raise AlreadyStarted(
                f"Session {occurrence_id} on {day.isoformat()} already started"
            )
        if existing is not None:
            raise InvalidTransition(
                f"Session {occurrence_id} on {day.isoformat()} is already "
                f"{existing.status.name}"
            )

        note = None
        if action.status is not SessionStatus.PRESENT:
            note = (reason or "").strip()
            if not note:
                raise ReasonRequired(
                    f"A reason is required for {action.status.name.lower()}"
                )

        record = SessionRecord(
            occurrence_id=occurrence_id,
            date=day,
            status=action.status,
            started_at=self.clock.now(),
            note=note,
        )
        try:
            return self.session_repository.insert_session(record)
        except DuplicateSessionError as exc:
            raise AlreadyStarted(
                f"Session {occurrence_id} on {day.isoformat()} already started"
            ) from exc

    def _finish(
        self, occurrence_id: str, day: date, existing: SessionRecord | None
    ) -> SessionRecord:
        if existing is None:
            raise InvalidTransition("Cannot finish a session that was never started")
        if not existing.is_open:
            raise InvalidTransition(
                f"Cannot finish a {existing.status.name} session"
                if existing.status is not SessionStatus.PRESENT
                else "Session already finished"
            )
        closed = self.session_repository.close_session(
            occurrence_id, day, self.clock.now()
        )
        if closed is None:
            raise InvalidTransition("Session already finished")
        return closed


def _action_name(action: SessionAction) -> str:
    return "finish" if isinstance(action, FinishAction) else "start"
