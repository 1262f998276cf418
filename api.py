from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from models import (
    BusinessHoursIn,
    BusinessHoursOut,
    ReportOut,
    ReservationIn,
    ReservationOut,
    RoomIn,
    RoomOut,
)
from notifications import WebSocketHub
from reports import ReportService
from services import (
    BookingService,
    ConfigurationService,
    RejectionKind,
    ReservationNotFoundError,
    ReservationResult,
    RoomService,
)

REJECTION_STATUS: Dict[RejectionKind, int] = {
    RejectionKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_CONTENT,
    RejectionKind.CONFLICT: status.HTTP_409_CONFLICT,
    RejectionKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionKind.TECHNICAL: status.HTTP_503_SERVICE_UNAVAILABLE,
}

ROOM_NOT_FOUND = "Room not found."


def _unwrap(result: ReservationResult) -> ReservationOut:
    if result.rejection is not None:
        raise HTTPException(
            status_code=REJECTION_STATUS[result.rejection.kind],
            detail=result.rejection.reason,
        )
    return ReservationOut.from_domain(result.reservation)


def create_router(
    booking: BookingService,
    rooms: RoomService,
    configuration: ConfigurationService,
) -> APIRouter:
    router = APIRouter()

    @router.post("/reservations", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
    def create_reservation(payload: ReservationIn) -> ReservationOut:
        return _unwrap(booking.reserve(payload))

    @router.put("/reservations/{reservation_id}", response_model=ReservationOut)
    def update_reservation(reservation_id: UUID, payload: ReservationIn) -> ReservationOut:
        return _unwrap(booking.reserve(payload.model_copy(update={"reservation_id": reservation_id})))

    @router.delete("/reservations/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_reservation(reservation_id: UUID) -> None:
        if not booking.cancel(reservation_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=ReservationNotFoundError.message,
            )
        return None

    @router.get("/reservations", response_model=List[ReservationOut])
    def list_reservations(
        start: Optional[datetime] = Query(default=None),
        end: Optional[datetime] = Query(default=None),
    ) -> List[ReservationOut]:
        if start is None or end is None:
            items = booking.list_calendar()
        else:
            items = booking.list_window(start, end)
        return [ReservationOut.from_domain(r) for r in items]

    @router.get("/reservations/{reservation_id}", response_model=ReservationOut)
    def get_reservation(reservation_id: UUID) -> ReservationOut:
        reservation = booking.get(reservation_id)
        if reservation is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=ReservationNotFoundError.message,
            )
        return ReservationOut.from_domain(reservation)

    @router.get("/rooms", response_model=List[RoomOut])
    def list_rooms(as_of: Optional[datetime] = Query(default=None)) -> List[RoomOut]:
        return [RoomOut.from_agenda(a) for a in rooms.list_with_upcoming(as_of)]

    @router.get("/rooms/agenda", response_model=List[RoomOut])
    def day_agenda(day: Optional[date] = Query(default=None)) -> List[RoomOut]:
        return [RoomOut.from_agenda(a) for a in rooms.day_agenda(day)]

    @router.get("/rooms/{room_id}/reservations", response_model=List[ReservationOut])
    def list_reservations_for_room(
        room_id: UUID,
        start: Optional[datetime] = Query(default=None),
        end: Optional[datetime] = Query(default=None),
    ) -> List[ReservationOut]:
        if rooms.get(room_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ROOM_NOT_FOUND)
        if start is None or end is None:
            items = booking.list_for_room(room_id)
        else:
            items = booking.find_overlapping(room_id, start, end)
        return [ReservationOut.from_domain(r) for r in items]

    @router.get("/configuration", response_model=BusinessHoursOut)
    def get_configuration() -> BusinessHoursOut:
        return BusinessHoursOut.from_domain(configuration.get())

    return router


def create_admin_router(
    booking: BookingService,
    rooms: RoomService,
    configuration: ConfigurationService,
    reports: ReportService,
) -> APIRouter:
    router = APIRouter(prefix="/admin")

    @router.get("/rooms", response_model=List[RoomOut])
    def list_rooms() -> List[RoomOut]:
        return [RoomOut.from_domain(room) for room in rooms.list_rooms()]

    @router.post("/rooms", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
    def add_room(payload: RoomIn) -> RoomOut:
        return RoomOut.from_domain(rooms.add(payload))

    @router.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
    def remove_room(room_id: UUID) -> None:
        if not rooms.remove(room_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ROOM_NOT_FOUND)
        return None

    @router.put("/configuration", response_model=BusinessHoursOut)
    def update_configuration(payload: BusinessHoursIn) -> BusinessHoursOut:
        return BusinessHoursOut.from_domain(configuration.update(payload.to_domain()))

    @router.get("/reservations", response_model=List[ReservationOut])
    def list_all_reservations() -> List[ReservationOut]:
        return [ReservationOut.from_domain(r) for r in booking.list_all()]

    @router.get("/reports", response_model=ReportOut)
    def usage_report() -> ReportOut:
        return reports.generate()

    return router


def create_updates_router(hub: WebSocketHub) -> APIRouter:
    router = APIRouter()

    @router.websocket("/ws/updates")
    async def updates(websocket: WebSocket) -> None:
        await hub.connect(websocket)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            hub.disconnect(websocket)

    return router
