# booking_engine/services/calendar/calendar_cache.py
"""
Redis cache for resolved calendar days.

Keys embed a per-business version number; invalidation bumps the version so
every previously cached day of that business becomes unreachable at once and
expires on its TTL.
"""
import json
import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

import redis

from booking_engine.config.redis import RedisKeys
from booking_engine.services.availability.conflict import Interval

logger = logging.getLogger(__name__)


class CalendarCache:

    def __init__(self, client: redis.Redis, ttl_seconds: int = 300):
        self.client = client
        self.ttl_seconds = ttl_seconds

    def version(self, business_id: UUID) -> Optional[str]:
        """Current cache version of the business, or None when Redis is unreachable"""
        try:
            return self.client.get(RedisKeys.CALENDAR_VERSION.format(business_id=business_id)) or "0"
        except redis.RedisError as e:
            logger.warning(f"Calendar cache version read failed for business {business_id}: {e}")
            return None

    @staticmethod
    def _day_key(business_id: UUID, day: date, version: str) -> str:
        return RedisKeys.CALENDAR_DAY.format(business_id=business_id, version=version, date=day.isoformat())

    def get(self, business_id: UUID, day: date, version: Optional[str] = None) -> Optional[List[Interval]]:
        version = version or self.version(business_id)
        if version is None:
            return None
        try:
            raw = self.client.get(self._day_key(business_id, day, version))
        except redis.RedisError as e:
            logger.warning(f"Calendar cache read failed for business {business_id}: {e}")
            return None

        if raw is None:
            return None

        try:
            return [
                Interval(datetime.fromisoformat(start), datetime.fromisoformat(end))
                for start, end in json.loads(raw)
            ]
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding corrupt calendar cache entry for business {business_id}: {e}")
            return None

    def set(self, business_id: UUID, day: date, windows: List[Interval], version: Optional[str] = None) -> None:
        """
        Store windows under `version`, which must be read before the calendar
        rows were queried; an invalidation in between then orphans the entry.
        """
        version = version or self.version(business_id)
        if version is None:
            return
        payload = json.dumps([[w.start.isoformat(), w.end.isoformat()] for w in windows])
        try:
            self.client.set(self._day_key(business_id, day, version), payload, ex=self.ttl_seconds)
        except redis.RedisError as e:
            logger.warning(f"Calendar cache write failed for business {business_id}: {e}")

    def invalidate_business(self, business_id: UUID) -> None:
        try:
            self.client.incr(RedisKeys.CALENDAR_VERSION.format(business_id=business_id))
            logger.debug(f"Invalidated calendar cache for business {business_id}")
        except redis.RedisError as e:
            logger.warning(f"Calendar cache invalidation failed for business {business_id}: {e}")

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False
