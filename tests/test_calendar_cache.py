"""Tests for the Redis calendar cache and cache invalidation on admin changes."""
import uuid
from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import redis

from booking_engine.core.exceptions import InvalidConfigurationError, NotFoundError
from booking_engine.models import BusinessHoursOverride
from booking_engine.schemas.calendar import ClosureCreateRequest, HoursOverrideRequest
from booking_engine.schemas.hours import WeeklyHours
from booking_engine.services.availability.conflict import Interval
from booking_engine.services.calendar import calendar_resolver
from booking_engine.services.calendar.calendar_admin_service import CalendarAdminService
from booking_engine.services.calendar.calendar_cache import CalendarCache
from booking_engine.services.calendar.calendar_resolver import CalendarResolver

from conftest import MONDAY, at, make_business


class InMemoryRedis:
    """The handful of redis.Redis commands the cache uses"""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, "0")) + 1)
        return int(self.data[key])

    def ping(self):
        return True


@pytest.fixture
def cache():
    return CalendarCache(InMemoryRedis(), ttl_seconds=60)


class TestCalendarCache:

    def test_round_trip(self, cache):
        business_id = uuid.uuid4()
        windows = [Interval(at(MONDAY, 9), at(MONDAY, 12)), Interval(at(MONDAY, 13), at(MONDAY, 17))]

        assert cache.get(business_id, MONDAY) is None
        cache.set(business_id, MONDAY, windows)
        assert cache.get(business_id, MONDAY) == windows

    def test_closed_day_is_cached_as_empty(self, cache):
        business_id = uuid.uuid4()
        cache.set(business_id, MONDAY, [])
        assert cache.get(business_id, MONDAY) == []

    def test_invalidation_hides_old_entries(self, cache):
        business_id = uuid.uuid4()
        other_id = uuid.uuid4()
        cache.set(business_id, MONDAY, [Interval(at(MONDAY, 9), at(MONDAY, 17))])
        cache.set(other_id, MONDAY, [])

        cache.invalidate_business(business_id)

        assert cache.get(business_id, MONDAY) is None
        assert cache.get(other_id, MONDAY) == []

    def test_redis_errors_are_misses(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ConnectionError("down")
        client.incr.side_effect = redis.ConnectionError("down")
        client.ping.side_effect = redis.ConnectionError("down")
        cache = CalendarCache(client)

        assert cache.get(uuid.uuid4(), MONDAY) is None
        cache.set(uuid.uuid4(), MONDAY, [])
        cache.invalidate_business(uuid.uuid4())
        assert cache.ping() is False

    def test_corrupt_entry_is_discarded(self, cache):
        business_id = uuid.uuid4()
        cache.client.data[f"calendar:{business_id}:v0:{MONDAY.isoformat()}"] = "not json at all"
        assert cache.get(business_id, MONDAY) is None

    def test_resolver_fills_and_reuses_cache(self, db, settings, cache):
        settings.CALENDAR_CACHE_ENABLED = True
        business = make_business(db)
        resolver = CalendarResolver(db, cache=cache, settings=settings)

        first = resolver.resolve(business, MONDAY)
        assert cache.get(business.id, MONDAY) == first

        # Stale until invalidated
        db.add(BusinessHoursOverride(business_id=business.id, date=MONDAY, is_open=False))
        db.commit()
        assert resolver.resolve(business, MONDAY) == first
        assert resolver.resolve(business, MONDAY, use_cache=False) == []

    def test_admin_change_during_resolve_is_not_cached_as_current(self, db, settings, cache):
        settings.CALENDAR_CACHE_ENABLED = True
        business = make_business(db)
        resolver = CalendarResolver(db, cache=cache, settings=settings)
        compute = calendar_resolver.resolve_day_windows

        def close_monday_after_rows_are_read(*args, **kwargs):
            windows = compute(*args, **kwargs)
            CalendarAdminService.upsert_override(db, business.id, MONDAY, HoursOverrideRequest(is_open=False),
                                                 cache=cache)
            return windows

        with patch.object(calendar_resolver, "resolve_day_windows", side_effect=close_monday_after_rows_are_read):
            stale = resolver.resolve(business, MONDAY)

        assert stale == [Interval(at(MONDAY, 9), at(MONDAY, 17))]
        assert cache.get(business.id, MONDAY) is None
        assert resolver.resolve(business, MONDAY) == []
        assert cache.get(business.id, MONDAY) == []

    def test_version_is_pinned_by_caller(self, cache):
        business_id = uuid.uuid4()
        version = cache.version(business_id)
        cache.invalidate_business(business_id)

        cache.set(business_id, MONDAY, [], version=version)

        assert cache.get(business_id, MONDAY) is None
        assert cache.get(business_id, MONDAY, version=version) == []


class TestCalendarAdminService:

    def test_mutations_invalidate_cache(self, db, settings, cache):
        settings.CALENDAR_CACHE_ENABLED = True
        business = make_business(db)
        resolver = CalendarResolver(db, cache=cache, settings=settings)
        assert resolver.resolve(business, MONDAY) == [Interval(at(MONDAY, 9), at(MONDAY, 17))]

        CalendarAdminService.upsert_override(
            db, business.id, MONDAY,
            HoursOverrideRequest(is_open=True, open_time="10:00", close_time="12:00"),
            cache=cache,
        )
        assert resolver.resolve(business, MONDAY) == [Interval(at(MONDAY, 10), at(MONDAY, 12))]

        CalendarAdminService.delete_override(db, business.id, MONDAY, cache=cache)
        assert resolver.resolve(business, MONDAY) == [Interval(at(MONDAY, 9), at(MONDAY, 17))]

        closure = CalendarAdminService.add_closure(
            db, business.id, ClosureCreateRequest(start_date=MONDAY, end_date=MONDAY, reason="Holiday"),
            cache=cache,
        )
        assert resolver.resolve(business, MONDAY) == []

        CalendarAdminService.deactivate_closure(db, business.id, closure.id, cache=cache)
        assert resolver.resolve(business, MONDAY) == [Interval(at(MONDAY, 9), at(MONDAY, 17))]

        CalendarAdminService.set_weekly_hours(
            db, business.id,
            WeeklyHours.model_validate({"monday": {"isOpen": True, "openTime": "08:00", "closeTime": "11:00"}}),
            cache=cache,
        )
        assert resolver.resolve(business, MONDAY) == [Interval(at(MONDAY, 8), at(MONDAY, 11))]

    def test_rejects_inverted_weekly_hours(self, db):
        business = make_business(db)
        hours = WeeklyHours.model_validate({"monday": {"isOpen": True, "openTime": "17:00", "closeTime": "09:00"}})
        with pytest.raises(InvalidConfigurationError):
            CalendarAdminService.set_weekly_hours(db, business.id, hours)

    def test_rejects_break_outside_hours(self, db):
        business = make_business(db)
        hours = WeeklyHours.model_validate({"monday": {
            "isOpen": True, "openTime": "09:00", "closeTime": "17:00",
            "breaks": [{"startTime": "16:30", "endTime": "17:30"}],
        }})
        with pytest.raises(InvalidConfigurationError):
            CalendarAdminService.set_weekly_hours(db, business.id, hours)

    def test_rejects_inverted_override(self, db):
        business = make_business(db)
        with pytest.raises(InvalidConfigurationError):
            CalendarAdminService.upsert_override(
                db, business.id, MONDAY, HoursOverrideRequest(is_open=True, open_time="12:00", close_time="10:00")
            )

    def test_rejects_backwards_closure(self, db):
        business = make_business(db)
        with pytest.raises(InvalidConfigurationError):
            CalendarAdminService.add_closure(
                db, business.id, ClosureCreateRequest(start_date=MONDAY, end_date=date(2026, 10, 1), reason="x")
            )
        with pytest.raises(InvalidConfigurationError):
            CalendarAdminService.add_closure(
                db, business.id,
                ClosureCreateRequest(start_date=MONDAY, start_time="14:00", end_time="13:00", reason="x")
            )

    def test_unknown_rows(self, db):
        business = make_business(db)
        with pytest.raises(NotFoundError):
            CalendarAdminService.delete_override(db, business.id, MONDAY)
        with pytest.raises(NotFoundError):
            CalendarAdminService.deactivate_closure(db, business.id, uuid.uuid4())
        with pytest.raises(NotFoundError):
            CalendarAdminService.set_weekly_hours(db, uuid.uuid4(), WeeklyHours())
