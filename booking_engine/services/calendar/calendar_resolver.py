# booking_engine/services/calendar/calendar_resolver.py
"""
Calendar Resolver - open sub-windows of one business-local date

Precedence: date override, then the weekly entry for the weekday. Breaks and
active closures are carved out afterwards. Output is an ordered list of UTC
half-open intervals; an empty list means closed.
"""
import logging
from datetime import date, time
from typing import Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import or_
from sqlalchemy.orm import Session

from booking_engine.config.settings import Settings, get_settings
from booking_engine.models import Business, BusinessClosure, BusinessHoursOverride, Staff
from booking_engine.schemas.hours import BreakPeriod, WeeklyHours
from booking_engine.services.availability.conflict import Interval, intersect, subtract_all
from booking_engine.services.calendar.calendar_cache import CalendarCache
from booking_engine.utils.time_utils import get_timezone, local_to_utc, parse_hhmm, weekday_index

logger = logging.getLogger(__name__)

TimeRange = Tuple[time, time]


def _to_interval(day: date, wall: TimeRange, tz: ZoneInfo) -> Interval:
    return Interval(local_to_utc(day, wall[0], tz), local_to_utc(day, wall[1], tz))


def _override_window(override) -> Tuple[Optional[TimeRange], List[TimeRange], bool]:
    """(window, breaks, misconfigured) for an open override row"""
    breaks = []
    for raw in override.breaks or []:
        try:
            breaks.append(BreakPeriod.model_validate(raw).as_times())
        except ValueError as e:
            logger.warning(f"Ignoring malformed override break {raw!r}: {e}")

    try:
        window = (parse_hhmm(override.open_time), parse_hhmm(override.close_time))
    except (TypeError, ValueError):
        return None, breaks, True
    return window, breaks, window[0] >= window[1]


def _closure_cuts(day: date, closures: Iterable, tz: ZoneInfo) -> Optional[List[Interval]]:
    """Partial-closure intervals for the day, or None when a full-day closure applies."""
    cuts = []
    for closure in closures:
        if not closure.covers(day):
            continue
        if not closure.is_partial:
            return None
        try:
            wall = (parse_hhmm(closure.start_time), parse_hhmm(closure.end_time))
        except ValueError:
            logger.warning(f"Ignoring closure {closure.id} with malformed times")
            continue
        if wall[0] >= wall[1]:
            logger.warning(f"Ignoring closure {closure.id}: start {closure.start_time} >= end {closure.end_time}")
            continue
        cuts.append(_to_interval(day, wall, tz))
    return cuts


def _break_cuts(day: date, breaks: Sequence[TimeRange], tz: ZoneInfo, owner: str) -> List[Interval]:
    cuts = []
    for start, end in breaks:
        if start >= end:
            logger.warning(f"Ignoring break {start}-{end} for {owner} on {day}: start is not before end")
            continue
        cuts.append(_to_interval(day, (start, end), tz))
    return cuts


def resolve_day_windows(
        day: date,
        tz: ZoneInfo,
        weekly_hours: Optional[WeeklyHours],
        override=None,
        closures: Iterable = (),
        default_window: TimeRange = (time(9, 0), time(18, 0)),
        owner: str = "business",
) -> List[Interval]:
    """
    Pure resolution of one date.

    `override` and `closures` only need the attributes of
    BusinessHoursOverride / BusinessClosure.
    """
    if override is not None:
        if not override.is_open:
            return []
        window, breaks, misconfigured = _override_window(override)
    else:
        entry = weekly_hours.for_weekday(weekday_index(day)) if weekly_hours else None
        if entry is None or not entry.is_open:
            return []
        window = entry.window()
        breaks = entry.all_breaks()
        misconfigured = entry.is_misconfigured()

    if misconfigured:
        logger.warning(
            f"Misconfigured hours for {owner} on {day}, "
            f"falling back to {default_window[0]:%H:%M}-{default_window[1]:%H:%M}"
        )
        window = default_window

    closure_cuts = _closure_cuts(day, closures, tz)
    if closure_cuts is None:
        return []

    windows = [_to_interval(day, window, tz)]
    return subtract_all(windows, _break_cuts(day, breaks, tz, owner) + closure_cuts)


def intersect_windows(business_windows: List[Interval], staff_windows: Optional[List[Interval]]) -> List[Interval]:
    """Narrow business windows to a staff member's own hours (None = no personal hours)."""
    if staff_windows is None:
        return list(business_windows)
    return intersect(business_windows, staff_windows)


def resolve_staff_windows(staff: Staff, day: date, tz: ZoneInfo) -> Optional[List[Interval]]:
    """
    Staff personal windows for the day, or None when the staff member has no
    entry for this weekday (business hours apply unchanged).
    """
    owner = f"staff {staff.id}"
    hours = WeeklyHours.from_storage(staff.working_hours, owner=owner)
    if hours is None:
        return None
    entry = hours.for_weekday(weekday_index(day))
    if entry is None:
        return None
    if not entry.is_open:
        return []
    if entry.is_misconfigured():
        logger.warning(f"Misconfigured hours for {owner} on {day}, using business hours")
        return None
    windows = [_to_interval(day, entry.window(), tz)]
    return subtract_all(windows, _break_cuts(day, entry.all_breaks(), tz, owner))


class CalendarResolver:
    """Loads calendar rows for a business and resolves dates, optionally through the cache"""

    def __init__(self, db: Session, cache: Optional[CalendarCache] = None, settings: Optional[Settings] = None):
        self.db = db
        self.cache = cache
        self.settings = settings or get_settings()

    def default_window(self) -> TimeRange:
        return parse_hhmm(self.settings.DEFAULT_OPEN_TIME), parse_hhmm(self.settings.DEFAULT_CLOSE_TIME)

    def timezone_for(self, business: Business) -> ZoneInfo:
        return get_timezone(business.timezone, fallback=self.settings.DEFAULT_TIMEZONE)

    def weekly_hours_for(self, business: Business) -> Optional[WeeklyHours]:
        default_open, default_close = self.settings.DEFAULT_OPEN_TIME, self.settings.DEFAULT_CLOSE_TIME
        return WeeklyHours.from_storage(
            business.weekly_hours,
            fallback=WeeklyHours.default(default_open, default_close),
            owner=f"business {business.id}",
        )

    def resolve(self, business: Business, day: date, use_cache: bool = True) -> List[Interval]:
        use_cache = use_cache and self.cache is not None and self.settings.CALENDAR_CACHE_ENABLED
        version = None
        if use_cache:
            # Read once, before the rows; an admin change after this point bumps
            # the version and orphans whatever this call writes
            version = self.cache.version(business.id)
            cached = self.cache.get(business.id, day, version=version) if version else None
            if cached is not None:
                return cached

        override = self.db.query(BusinessHoursOverride).filter(
            BusinessHoursOverride.business_id == business.id,
            BusinessHoursOverride.date == day
        ).first()

        closures = self.db.query(BusinessClosure).filter(
            BusinessClosure.business_id == business.id,
            BusinessClosure.is_active.is_(True),
            BusinessClosure.start_date <= day,
            or_(BusinessClosure.end_date.is_(None), BusinessClosure.end_date >= day)
        ).all()

        windows = resolve_day_windows(
            day,
            self.timezone_for(business),
            self.weekly_hours_for(business),
            override=override,
            closures=closures,
            default_window=self.default_window(),
            owner=f"business {business.id}",
        )

        if version:
            self.cache.set(business.id, day, windows, version=version)
        return windows

    def resolve_for_staff(self, business: Business, staff: Optional[Staff], day: date,
                          use_cache: bool = True) -> List[Interval]:
        windows = self.resolve(business, day, use_cache=use_cache)
        if staff is None or not windows:
            return windows
        return intersect_windows(windows, resolve_staff_windows(staff, day, self.timezone_for(business)))
