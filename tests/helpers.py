from datetime import datetime
from threading import Lock
from typing import List
from zoneinfo import ZoneInfo

VENUE_TZ = "America/Sao_Paulo"  # UTC-03:00, no DST
VENUE = ZoneInfo(VENUE_TZ)

# Monday 2030-01-07, 10:00 at the venue (13:00Z).
NOW = datetime(2030, 1, 7, 10, 0, tzinfo=VENUE)


def at(hour: int, minute: int = 0, day: int = 8, second: int = 0) -> datetime:
    """Venue-local instant in January 2030 (default: the day after NOW)."""
    return datetime(2030, 1, day, hour, minute, second, tzinfo=VENUE)


def local_iso(hour: int, minute: int = 0, day: int = 8) -> str:
    return f"2030-01-{day:02d}T{hour:02d}:{minute:02d}:00-03:00"


def utc_z(hour: int, minute: int = 0, day: int = 8) -> str:
    """Expected API rendering of a venue-local time."""
    return f"2030-01-{day:02d}T{hour + 3:02d}:{minute:02d}:00Z"


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: List[str] = []
        self._lock = Lock()

    def broadcast(self, event: str) -> None:
        with self._lock:
            self.events.append(event)
