# booking_engine/utils/time_utils.py
"""Timezone and wall-clock helpers shared by the calendar and booking code"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_timezone(name: Optional[str], fallback: str = "UTC") -> ZoneInfo:
    """Get a ZoneInfo timezone, falling back (with a warning) on unknown names."""
    if not name:
        return ZoneInfo(fallback)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', falling back to {fallback}")
        return ZoneInfo(fallback)


def parse_hhmm(value: str) -> time:
    """Parse a strict HH:MM wall-clock string."""
    return datetime.strptime(value, "%H:%M").time()


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def local_to_utc(day: date, wall_time: time, tz: ZoneInfo) -> datetime:
    """Interpret a wall-clock time on a local calendar date and return it in UTC."""
    return datetime.combine(day, wall_time, tzinfo=tz).astimezone(timezone.utc)


def to_utc(value: datetime, tz: ZoneInfo) -> datetime:
    """Normalize a datetime to UTC; naive values are read as business-local time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(timezone.utc)


def local_day_bounds(day: date, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    """UTC instants of local midnight at the start and end of `day`."""
    start = local_to_utc(day, time(0, 0), tz)
    end = local_to_utc(day + timedelta(days=1), time(0, 0), tz)
    return start, end


def weekday_index(day: date) -> int:
    """Weekday with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7
