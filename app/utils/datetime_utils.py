"""
Timezone-aware datetime helpers.
- Store and compare instants in UTC in the DB.
- Cut-offs (09:30 check-in, 18:00 submission) and calendar windows use the
  local civil timezone from settings.TZ.
- Naive datetimes are treated as UTC (SQLite drops tzinfo on the way back).
"""
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc


@lru_cache(maxsize=None)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def local_tz() -> ZoneInfo:
    """Local civil timezone (settings.TZ)."""
    return _zone(settings.TZ)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to local civil time. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(local_tz())


def local_date(dt: datetime) -> date:
    """Local civil date of an instant."""
    return to_local(dt).date()


def parse_hhmm(value: str) -> time:
    """'09:30' -> time(9, 30). Settings already validate the format."""
    hour, minute = value.split(":")
    return time(int(hour), int(minute))


def local_day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """
    UTC instants [lower, upper) covering local dates start..end inclusive.
    """
    tz = local_tz()
    lower = datetime.combine(start, time.min, tzinfo=tz).astimezone(UTC)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz).astimezone(UTC)
    return lower, upper


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 in local civil time with explicit offset. Use for API response datetime fields."""
    if dt is None:
        return None
    return to_local(dt).isoformat()


def assume_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Request input: naive datetimes are local civil time; return timezone-aware UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=local_tz())
    return dt.astimezone(UTC)


def local_day_start(day: date) -> datetime:
    """UTC instant of local midnight starting ``day``."""
    return datetime.combine(day, time.min, tzinfo=local_tz()).astimezone(UTC)
