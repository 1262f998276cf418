from __future__ import annotations

from datetime import MAXYEAR, date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfo

UTC_MIN = datetime.min.replace(tzinfo=timezone.utc)
UTC_MAX = datetime.max.replace(tzinfo=timezone.utc)


def _system_now() -> datetime:
    return datetime.now(timezone.utc)


class VenueClock:
    """
    Wall clock of the venue.

    Storage and comparisons happen in UTC; the venue timezone is only used to
    read local hours (business hours) and to find local day boundaries.

    to_utc() and to_local() raise OverflowError when the converted value falls
    outside the datetime range (year 1 to 9999).
    """

    def __init__(self, timezone_name: str, now: Optional[Callable[[], datetime]] = None) -> None:
        self._tz = ZoneInfo(timezone_name)
        self._now = now or _system_now

    @property
    def timezone_name(self) -> str:
        return self._tz.key

    def now_utc(self) -> datetime:
        return self._now().astimezone(timezone.utc)

    def to_local(self, instant: datetime) -> datetime:
        return self.to_utc(instant).astimezone(self._tz)

    def to_utc(self, dt: datetime) -> datetime:
        # Naive values are venue wall time.
        if dt.tzinfo is None or dt.utcoffset() is None:
            dt = dt.replace(tzinfo=self._tz)
        return dt.astimezone(timezone.utc)

    def window_bound(self, dt: datetime) -> datetime:
        """to_utc() for query bounds: values past either end of the range clamp to that end."""
        try:
            return self.to_utc(dt)
        except OverflowError:
            return UTC_MAX if dt.year == MAXYEAR else UTC_MIN

    def today(self) -> date:
        return self.to_local(self.now_utc()).date()

    def local_day_bounds(self, day: date) -> Tuple[datetime, datetime]:
        """UTC instants of local midnight at the start of ``day`` and of the next day."""
        start = self.window_bound(datetime.combine(day, time.min))
        if day == date.max:
            return start, UTC_MAX
        return start, self.window_bound(datetime.combine(day + timedelta(days=1), time.min))
