from __future__ import annotations
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Callable, Optional, Tuple
import pytz

Clock = Callable[[], datetime]

ONE_DAY = timedelta(days=1)


def system_clock() -> datetime:
    return datetime.now(dt_timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat a naive datetime as UTC. Stored timestamps are always compared against an aware clock."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=dt_timezone.utc)
    return value


def local_date(now: datetime, tz_name: str) -> date:
    """Calendar date of ``now`` in the given timezone."""
    tz = pytz.timezone(tz_name)
    return now.astimezone(tz).date()


def local_day_bounds(now: datetime, tz_name: str) -> Tuple[datetime, datetime]:
    """
    Return the ``[start, start + 24h)`` window of the local day containing ``now``.

    Args:
        now: Aware timestamp
        tz_name: IANA timezone name

    Returns:
        Tuple of (start_of_local_day, start_of_local_day + 24h), both aware
    """
    tz = pytz.timezone(tz_name)
    today = now.astimezone(tz).date()
    start = tz.localize(datetime.combine(today, datetime.min.time()))
    return start, start + ONE_DAY


class FrozenClock:
    """A settable clock for simulating day boundaries."""

    def __init__(self, now: datetime):
        self.current = ensure_aware(now)

    def __call__(self) -> datetime:
        return self.current

    def set(self, now: datetime) -> None:
        self.current = ensure_aware(now)

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current
