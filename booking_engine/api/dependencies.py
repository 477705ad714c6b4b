# booking_engine/api/dependencies.py
# Process-scoped collaborators built in the app lifespan and read from app.state
from typing import Callable, Optional

from fastapi import Request

from booking_engine.services.calendar.calendar_cache import CalendarCache
from booking_engine.services.events.event_publisher import EventPublisher
from booking_engine.services.gates.quota_gate import QuotaGate
from booking_engine.utils.time_utils import utcnow


def get_calendar_cache(request: Request) -> Optional[CalendarCache]:
    return getattr(request.app.state, "calendar_cache", None)


def get_event_publisher(request: Request) -> Optional[EventPublisher]:
    return getattr(request.app.state, "event_publisher", None)


def get_quota_gate(request: Request) -> Optional[QuotaGate]:
    return getattr(request.app.state, "quota_gate", None)


def get_clock(request: Request) -> Callable:
    return getattr(request.app.state, "clock", None) or utcnow
