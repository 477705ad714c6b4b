# booking_engine/config/redis.py
"""Redis configuration and connection setup"""
import redis

from booking_engine.config.settings import Settings, get_settings


def create_redis_client(settings: Settings = None) -> redis.Redis:
    """Build a Redis client backed by its own connection pool"""
    settings = settings or get_settings()
    pool = redis.ConnectionPool.from_url(
        settings.REDIS_URL,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        retry_on_timeout=True,
        decode_responses=True,
    )
    return redis.Redis(connection_pool=pool)


# Redis key patterns for different data types
class RedisKeys:
    """Redis key patterns for consistent naming"""

    # Calendar resolution cache
    CALENDAR_VERSION = "calendar:{business_id}:version"
    CALENDAR_DAY = "calendar:{business_id}:v{version}:{date}"
