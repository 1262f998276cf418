"""Usage report over recent reservations.

Read-only aggregation: nothing here takes room locks, the numbers may lag a
concurrent write by a few milliseconds.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import timedelta
from typing import Dict, List

from clock import VenueClock
from models import ColorPreferenceOut, Reservation, ReportOut, RoomUsageOut
from repository import InMemoryReservationRepository, InMemoryRoomRepository

COLOR_LABELS: Dict[str, str] = {
    "#007ACC": "Alignment",
    "#C62828": "Urgent",
    "#2E7D32": "Client",
    "#F57C00": "Planning",
    "#7B1FA2": "Training",
}
OTHER_COLOR_LABEL = "Other / Custom"
NO_ROOM_LABEL = "No room"
TOP_ROOMS = 5


def color_label(color: str) -> str:
    return COLOR_LABELS.get(color.upper(), OTHER_COLOR_LABEL)


class ReportService:
    def __init__(
        self,
        reservations: InMemoryReservationRepository,
        rooms: InMemoryRoomRepository,
        clock: VenueClock,
        window: timedelta = timedelta(days=30),
    ) -> None:
        self._reservations = reservations
        self._rooms = rooms
        self._clock = clock
        self._window = window

    def generate(self) -> ReportOut:
        since = self._clock.now_utc() - self._window
        data = [r for r in self._reservations.list_all() if r.start_utc >= since]

        report = ReportOut()
        if not data:
            return report

        report.total_meetings = len(data)
        report.average_minutes = int(sum(r.duration_minutes for r in data) / len(data))
        report.top_rooms = self._top_rooms(data)
        report.color_preferences = self._color_preferences(data)
        return report

    def _top_rooms(self, data: List[Reservation]) -> List[RoomUsageOut]:
        counts: Counter = Counter()
        for r in data:
            room = self._rooms.get(r.room_id)
            name = room.name if room else NO_ROOM_LABEL
            counts[name] += 1
        return [RoomUsageOut(name=name, count=count) for name, count in counts.most_common(TOP_ROOMS)]

    def _color_preferences(self, data: List[Reservation]) -> List[ColorPreferenceOut]:
        by_person: Dict[str, List[Reservation]] = defaultdict(list)
        for r in data:
            by_person[r.responsible].append(r)

        preferences = []
        for person, items in by_person.items():
            favorite = Counter(r.color.upper() for r in items).most_common(1)[0][0]
            preferences.append(
                ColorPreferenceOut(
                    responsible=person,
                    favorite_color=favorite,
                    favorite_color_label=color_label(favorite),
                    total_reservations=len(items),
                )
            )
        preferences.sort(key=lambda p: p.total_reservations, reverse=True)
        return preferences
