from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from threading import Lock
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from clock import VenueClock
from models import BusinessHours, Reservation, ReservationIn, Room, RoomAgenda, RoomIn
from notifications import UPDATES_EVENT, Notifier
from repository import (
    InMemoryConfigurationRepository,
    InMemoryReservationRepository,
    InMemoryRoomRepository,
    RepositoryError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DURATION = timedelta(hours=4)
DEFAULT_PAST_GRACE = timedelta(minutes=2)
DEFAULT_COLOR = "#1976D2"

TECHNICAL_FAILURE_MESSAGE = "Technical failure: the reservation could not be saved. Please try again."


# -----------------------------
# Outcomes
# -----------------------------
class RejectionKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    TECHNICAL = "technical"


@dataclass(frozen=True)
class Rejection:
    kind: RejectionKind
    reason: str

    @property
    def retryable(self) -> bool:
        return self.kind is RejectionKind.TECHNICAL


@dataclass(frozen=True)
class ReservationResult:
    reservation: Optional[Reservation] = None
    rejection: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.reservation is not None

    @property
    def reservation_id(self) -> Optional[UUID]:
        return self.reservation.reservation_id if self.reservation else None


# -----------------------------
# Rule failures
# -----------------------------
class BookingError(Exception):
    """Base class for domain/service errors."""

    kind = RejectionKind.VALIDATION
    message = "Validation error."

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = reason or self.message
        super().__init__(self.reason)


class StartNotBeforeEndError(BookingError):
    message = "Validation error: start must be before end."


class StartInPastError(BookingError):
    message = "Validation error: reservation start cannot be in the past."


class DurationTooLongError(BookingError):
    pass


class OutsideBusinessHoursError(BookingError):
    pass


class DateOutOfRangeError(BookingError):
    message = "Validation error: date is out of range."


class RoomNotFoundError(BookingError):
    message = "Validation error: room not found."


class OverlapConflictError(BookingError):
    kind = RejectionKind.CONFLICT
    message = "Overlap conflict: reservation overlaps an existing reservation in this room."


class ReservationNotFoundError(BookingError):
    kind = RejectionKind.NOT_FOUND
    message = "Reservation not found."


def _notify(notifier: Notifier) -> None:
    # Best effort: a failed fanout never undoes a committed change.
    try:
        notifier.broadcast(UPDATES_EVENT)
    except Exception:
        logger.warning("Update notification failed", exc_info=True)


def _describe_duration(limit: timedelta) -> str:
    minutes = int(limit.total_seconds() // 60)
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


# -----------------------------
# Configuration accessor
# -----------------------------
class ConfigurationService:
    def __init__(
        self,
        repo: InMemoryConfigurationRepository,
        default: BusinessHours,
        notifier: Notifier,
    ) -> None:
        self._repo = repo
        self._default = default
        self._notifier = notifier
        self._cached: Optional[BusinessHours] = None
        self._lock = Lock()

    def get(self) -> BusinessHours:
        """Current business hours; the default when none were ever saved. Never writes."""
        cached = self._cached
        if cached is not None:
            return cached
        stored = self._repo.get()
        if stored is None:
            return self._default
        self._cached = stored
        return stored

    def update(self, hours: BusinessHours) -> BusinessHours:
        if not (0 <= hours.opening_hour < hours.closing_hour <= 23):
            raise ValueError("business hours must satisfy 0 <= opening < closing <= 23")

        with self._lock:
            self._repo.upsert(hours)
            self._cached = hours

        logger.info("Business hours set to %02d:00-%02d:00", hours.opening_hour, hours.closing_hour)
        _notify(self._notifier)
        return hours


# -----------------------------
# Booking engine
# -----------------------------
class BookingService:
    def __init__(
        self,
        reservations: InMemoryReservationRepository,
        rooms: InMemoryRoomRepository,
        configuration: ConfigurationService,
        clock: VenueClock,
        notifier: Notifier,
        max_duration: timedelta = DEFAULT_MAX_DURATION,
        past_grace: timedelta = DEFAULT_PAST_GRACE,
        default_color: str = DEFAULT_COLOR,
    ) -> None:
        self._reservations = reservations
        self._rooms = rooms
        self._configuration = configuration
        self._clock = clock
        self._notifier = notifier
        self._max_duration = max_duration
        self._past_grace = past_grace
        self._default_color = default_color

    def reserve(self, payload: ReservationIn) -> ReservationResult:
        """
        Validate and store a reservation (insert, or update when payload.reservation_id is set).

        Rejections come back in the result, never as exceptions.
        """
        try:
            reservation = self._commit(payload)
        except BookingError as e:
            logger.info("Reservation for room %s rejected (%s): %s", payload.room_id, e.kind.value, e.reason)
            return ReservationResult(rejection=Rejection(e.kind, e.reason))
        except RepositoryError:
            logger.exception("Storage failure while saving reservation for room %s", payload.room_id)
            return ReservationResult(rejection=Rejection(RejectionKind.TECHNICAL, TECHNICAL_FAILURE_MESSAGE))

        logger.info(
            "Reservation %s stored for room %s (%s - %s)",
            reservation.reservation_id,
            reservation.room_id,
            reservation.start_utc.isoformat(),
            reservation.end_utc.isoformat(),
        )
        _notify(self._notifier)
        return ReservationResult(reservation=reservation)

    def _commit(self, payload: ReservationIn) -> Reservation:
        try:
            start = self._clock.to_utc(payload.start)
            end = self._clock.to_utc(payload.end)
        except OverflowError:
            raise DateOutOfRangeError() from None

        self._check_interval(start, end)
        self._check_business_hours(start, end)

        editing = payload.reservation_id is not None

        # Unknown ids must not leave a lock behind.
        if not self._rooms.exists(payload.room_id):
            raise RoomNotFoundError()

        # Check-then-write must not interleave with other writers on this room.
        with self._reservations.room_lock(payload.room_id):
            if not self._rooms.exists(payload.room_id):
                # Removed while we waited.
                self._reservations.discard_room_lock(payload.room_id)
                raise RoomNotFoundError()

            existing = None
            if editing:
                existing = self._reservations.find_by_id(payload.reservation_id)
                if existing is None:
                    raise ReservationNotFoundError()

            if self._reservations.find_overlapping(payload.room_id, start, end, exclude_id=payload.reservation_id):
                raise OverlapConflictError()

            reservation = Reservation(
                reservation_id=payload.reservation_id if editing else uuid4(),
                room_id=payload.room_id,
                title=payload.title,
                responsible=payload.responsible,
                start_utc=start,
                end_utc=end,
                color=payload.color or (existing.color if existing else self._default_color),
            )
            if editing:
                self._reservations.update(reservation)
            else:
                self._reservations.insert(reservation)

        return reservation

    def _check_interval(self, start: datetime, end: datetime) -> None:
        if not (start < end):
            raise StartNotBeforeEndError()

        if start < self._clock.now_utc() - self._past_grace:
            raise StartInPastError()

        if end - start > self._max_duration:
            raise DurationTooLongError(
                f"Validation error: reservation cannot exceed {_describe_duration(self._max_duration)}."
            )

    def _check_business_hours(self, start: datetime, end: datetime) -> None:
        hours = self._configuration.get()
        try:
            start_local = self._clock.to_local(start)
            end_local = self._clock.to_local(end)
        except OverflowError:
            raise DateOutOfRangeError() from None

        within = (
            start_local.date() == end_local.date()
            and start_local.hour >= hours.opening_hour
            and end_local.time() <= time(hours.closing_hour)
        )
        if not within:
            raise OutsideBusinessHoursError(
                f"Validation error: reservations must be between "
                f"{hours.opening_hour:02d}:00 and {hours.closing_hour:02d}:00."
            )

    def cancel(self, reservation_id: UUID) -> bool:
        existing = self._reservations.find_by_id(reservation_id)
        if existing is None:
            return False

        with self._reservations.room_lock(existing.room_id):
            removed = self._reservations.delete(reservation_id)
            if not self._rooms.exists(existing.room_id):
                self._reservations.discard_room_lock(existing.room_id)

        if removed:
            logger.info("Reservation %s cancelled", reservation_id)
            _notify(self._notifier)
        return removed

    def get(self, reservation_id: UUID) -> Optional[Reservation]:
        return self._reservations.find_by_id(reservation_id)

    def find_overlapping(self, room_id: UUID, window_start: datetime, window_end: datetime) -> List[Reservation]:
        start = self._clock.window_bound(window_start)
        end = self._clock.window_bound(window_end)
        if end <= start:
            return []
        return self._reservations.find_overlapping(room_id, start, end)

    def list_for_room(self, room_id: UUID) -> List[Reservation]:
        return self._reservations.list_by_room(room_id)

    def list_window(self, window_start: datetime, window_end: datetime) -> List[Reservation]:
        start = self._clock.window_bound(window_start)
        end = self._clock.window_bound(window_end)
        if end <= start:
            return []
        return self._reservations.list_window(start, end)

    def list_calendar(self) -> List[Reservation]:
        return self._reservations.list_all()

    def list_all(self) -> List[Reservation]:
        """Every reservation, latest start first."""
        return sorted(self._reservations.list_all(), key=lambda r: r.start_utc, reverse=True)


# -----------------------------
# Room registry
# -----------------------------
class RoomService:
    def __init__(
        self,
        rooms: InMemoryRoomRepository,
        reservations: InMemoryReservationRepository,
        clock: VenueClock,
        notifier: Notifier,
    ) -> None:
        self._rooms = rooms
        self._reservations = reservations
        self._clock = clock
        self._notifier = notifier

    def add(self, payload: RoomIn) -> Room:
        room = Room(room_id=uuid4(), name=payload.name, capacity=payload.capacity)
        self._rooms.add(room)
        logger.info("Room %s (%s, capacity %d) added", room.room_id, room.name, room.capacity)
        _notify(self._notifier)
        return room

    def remove(self, room_id: UUID) -> bool:
        """Delete a room together with all of its reservations."""
        if not self._rooms.exists(room_id):
            return False

        with self._reservations.room_lock(room_id):
            removed = self._rooms.delete(room_id)
            cascaded = self._reservations.delete_by_room(room_id) if removed else 0
        self._reservations.discard_room_lock(room_id)

        if removed:
            logger.info("Room %s removed with %d reservation(s)", room_id, cascaded)
            _notify(self._notifier)
        return removed

    def get(self, room_id: UUID) -> Optional[Room]:
        return self._rooms.get(room_id)

    def list_rooms(self) -> List[Room]:
        return self._rooms.list_all()

    def list_with_upcoming(self, as_of: Optional[datetime] = None) -> List[RoomAgenda]:
        if as_of is None:
            as_of, _ = self._clock.local_day_bounds(self._clock.today())
        else:
            as_of = self._clock.window_bound(as_of)
        upcoming = [r for r in self._reservations.list_all() if r.start_utc >= as_of]
        return self._group(upcoming)

    def day_agenda(self, day: Optional[date] = None) -> List[RoomAgenda]:
        start, end = self._clock.local_day_bounds(day or self._clock.today())
        same_day = [r for r in self._reservations.list_all() if start <= r.start_utc < end]
        return self._group(same_day)

    def _group(self, reservations: List[Reservation]) -> List[RoomAgenda]:
        by_room: Dict[UUID, RoomAgenda] = {room.room_id: RoomAgenda(room=room) for room in self._rooms.list_all()}
        for r in reservations:
            agenda = by_room.get(r.room_id)
            if agenda is not None:
                agenda.reservations.append(r)
        return list(by_room.values())
