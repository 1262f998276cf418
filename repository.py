from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional
from uuid import UUID

from models import BusinessHours, Reservation, Room, intervals_overlap


class RepositoryError(Exception):
    """Storage-layer failure (lost write, constraint violation, ...)."""


class InMemoryReservationRepository:
    def __init__(self) -> None:
        self._items: Dict[UUID, Reservation] = {}
        self._lock = Lock()
        self._room_locks: Dict[UUID, Lock] = {}
        self._room_locks_guard = Lock()

    def room_lock(self, room_id: UUID) -> Lock:
        """
        Lock serializing check-then-write sequences for one room.
        Callers hold it across find_overlapping + insert/update/delete.
        """
        with self._room_locks_guard:
            lock = self._room_locks.get(room_id)
            if lock is None:
                lock = self._room_locks[room_id] = Lock()
            return lock

    def discard_room_lock(self, room_id: UUID) -> None:
        """Forget the lock of a room that no longer exists. Holders keep their reference."""
        with self._room_locks_guard:
            self._room_locks.pop(room_id, None)

    def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        with self._lock:
            return self._items.get(reservation_id)

    def find_overlapping(
        self,
        room_id: UUID,
        start: datetime,
        end: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> List[Reservation]:
        with self._lock:
            found = [
                r
                for r in self._items.values()
                if r.room_id == room_id
                and r.reservation_id != exclude_id
                and intervals_overlap(start, end, r.start_utc, r.end_utc)
            ]
        found.sort(key=lambda r: r.start_utc)
        return found

    def list_window(self, start: datetime, end: datetime) -> List[Reservation]:
        with self._lock:
            found = [r for r in self._items.values() if intervals_overlap(start, end, r.start_utc, r.end_utc)]
        found.sort(key=lambda r: r.start_utc)
        return found

    def list_by_room(self, room_id: UUID) -> List[Reservation]:
        with self._lock:
            found = [r for r in self._items.values() if r.room_id == room_id]
        found.sort(key=lambda r: r.start_utc)
        return found

    def list_all(self) -> List[Reservation]:
        with self._lock:
            found = list(self._items.values())
        found.sort(key=lambda r: r.start_utc)
        return found

    def insert(self, reservation: Reservation) -> None:
        with self._lock:
            if reservation.reservation_id in self._items:
                raise RepositoryError(f"duplicate reservation id {reservation.reservation_id}")
            self._items[reservation.reservation_id] = reservation

    def update(self, reservation: Reservation) -> None:
        with self._lock:
            if reservation.reservation_id not in self._items:
                raise RepositoryError(f"reservation {reservation.reservation_id} vanished before update")
            self._items[reservation.reservation_id] = reservation

    def delete(self, reservation_id: UUID) -> bool:
        with self._lock:
            if reservation_id not in self._items:
                return False
            del self._items[reservation_id]
            return True

    def delete_by_room(self, room_id: UUID) -> int:
        with self._lock:
            doomed = [key for key, r in self._items.items() if r.room_id == room_id]
            for key in doomed:
                del self._items[key]
            return len(doomed)


class InMemoryRoomRepository:
    def __init__(self) -> None:
        self._items: Dict[UUID, Room] = {}
        self._lock = Lock()

    def add(self, room: Room) -> None:
        with self._lock:
            if room.room_id in self._items:
                raise RepositoryError(f"duplicate room id {room.room_id}")
            self._items[room.room_id] = room

    def get(self, room_id: UUID) -> Optional[Room]:
        with self._lock:
            return self._items.get(room_id)

    def exists(self, room_id: UUID) -> bool:
        with self._lock:
            return room_id in self._items

    def list_all(self) -> List[Room]:
        with self._lock:
            rooms = list(self._items.values())
        rooms.sort(key=lambda r: r.name)
        return rooms

    def delete(self, room_id: UUID) -> bool:
        with self._lock:
            if room_id not in self._items:
                return False
            del self._items[room_id]
            return True


class InMemoryConfigurationRepository:
    """Holds at most one BusinessHours record."""

    def __init__(self) -> None:
        self._current: Optional[BusinessHours] = None
        self._lock = Lock()

    def get(self) -> Optional[BusinessHours]:
        with self._lock:
            return self._current

    def upsert(self, hours: BusinessHours) -> None:
        with self._lock:
            self._current = hours
