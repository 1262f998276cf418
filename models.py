from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


# -----------------------------
# Shared time helpers
# -----------------------------
def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """
    Half-open interval overlap: [start, end)
    Overlap iff a_start < b_end AND b_start < a_end.
    Back-to-back is allowed (end == other.start is NOT overlap).
    """
    return a_start < b_end and b_start < a_end


def utc_iso_z(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# -----------------------------
# Domain model
# -----------------------------
@dataclass(frozen=True)
class Room:
    room_id: UUID
    name: str
    capacity: int


@dataclass(frozen=True)
class Reservation:
    reservation_id: UUID
    room_id: UUID
    title: str
    responsible: str
    start_utc: datetime  # aware, UTC
    end_utc: datetime    # aware, UTC
    color: str

    @property
    def duration_minutes(self) -> float:
        return (self.end_utc - self.start_utc).total_seconds() / 60


@dataclass(frozen=True)
class BusinessHours:
    opening_hour: int
    closing_hour: int


@dataclass
class RoomAgenda:
    room: Room
    reservations: List[Reservation] = field(default_factory=list)


# -----------------------------
# API models (transport layer)
# -----------------------------
HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class ReservationIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    # Absent for a new reservation, set when editing an existing one.
    reservation_id: Optional[UUID] = None
    room_id: UUID
    title: str = Field(..., min_length=3, max_length=100)
    responsible: str = Field(..., min_length=1, max_length=50)
    start: datetime
    end: datetime
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)


class ReservationOut(BaseModel):
    reservation_id: UUID
    room_id: UUID
    title: str
    responsible: str
    start: str  # ISO-8601 UTC with Z
    end: str
    color: str

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "ReservationOut":
        return cls(
            reservation_id=reservation.reservation_id,
            room_id=reservation.room_id,
            title=reservation.title,
            responsible=reservation.responsible,
            start=utc_iso_z(reservation.start_utc),
            end=utc_iso_z(reservation.end_utc),
            color=reservation.color,
        )


class RoomIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(..., gt=0)


class RoomOut(BaseModel):
    room_id: UUID
    name: str
    capacity: int
    reservations: List[ReservationOut] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, room: Room, reservations: Optional[List[Reservation]] = None) -> "RoomOut":
        return cls(
            room_id=room.room_id,
            name=room.name,
            capacity=room.capacity,
            reservations=[ReservationOut.from_domain(r) for r in reservations or []],
        )

    @classmethod
    def from_agenda(cls, agenda: RoomAgenda) -> "RoomOut":
        return cls.from_domain(agenda.room, agenda.reservations)


class BusinessHoursIn(BaseModel):
    opening_hour: int = Field(..., ge=0, le=23)
    closing_hour: int = Field(..., ge=0, le=23)

    @model_validator(mode="after")
    def opening_before_closing(self) -> "BusinessHoursIn":
        if self.opening_hour >= self.closing_hour:
            raise ValueError("opening_hour must be before closing_hour")
        return self

    def to_domain(self) -> BusinessHours:
        return BusinessHours(opening_hour=self.opening_hour, closing_hour=self.closing_hour)


class BusinessHoursOut(BaseModel):
    opening_hour: int
    closing_hour: int

    @classmethod
    def from_domain(cls, hours: BusinessHours) -> "BusinessHoursOut":
        return cls(opening_hour=hours.opening_hour, closing_hour=hours.closing_hour)


class RoomUsageOut(BaseModel):
    name: str
    count: int


class ColorPreferenceOut(BaseModel):
    responsible: str
    favorite_color: str
    favorite_color_label: str
    total_reservations: int


class ReportOut(BaseModel):
    total_meetings: int = 0
    average_minutes: int = 0
    top_rooms: List[RoomUsageOut] = Field(default_factory=list)
    color_preferences: List[ColorPreferenceOut] = Field(default_factory=list)
