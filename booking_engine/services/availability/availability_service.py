# booking_engine/services/availability/availability_service.py
"""
Availability Service - bookable slots for one business-local date

Resolve calendar -> generate candidates per eligible staff -> load occupancy ->
mark each candidate free or taken. Read-only; may be served from the
calendar cache.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from booking_engine.config.settings import Settings, get_settings
from booking_engine.services.availability.booking_policy import (
    eligible_staff,
    is_within_advance_window,
    load_business,
    load_service,
)
from booking_engine.services.availability.conflict import Interval, is_free
from booking_engine.services.availability.occupancy import OccupancyIndex
from booking_engine.services.availability.slot_generator import generate_candidates
from booking_engine.services.calendar.calendar_cache import CalendarCache
from booking_engine.services.calendar.calendar_resolver import CalendarResolver
from booking_engine.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class Slot:
    start: datetime
    end: datetime
    available: bool
    staff_id: Optional[UUID] = None


class AvailabilityService:
    """Unified slot computation for the public booking page and the dashboard"""

    @staticmethod
    def get_available_slots(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            day: date,
            staff_id: Optional[UUID] = None,
            cache: Optional[CalendarCache] = None,
            settings: Optional[Settings] = None,
            clock: Callable[[], datetime] = utcnow
    ) -> List[Slot]:
        """
        Ordered slots for `day`.

        Without a staff id every eligible staff member is considered and a
        slot is available when any of them is free; the first free one in id
        order is reported. A closed day yields an empty list.
        """
        settings = settings or get_settings()
        now = clock()

        business = load_business(db, business_id)
        service = load_service(db, business, service_id)
        targets = eligible_staff(db, business, service, staff_id)

        resolver = CalendarResolver(db, cache=cache, settings=settings)
        business_windows = resolver.resolve(business, day)
        if not business_windows:
            logger.debug(f"Business {business_id} closed on {day}")
            return []

        occupancy = OccupancyIndex(db, settings.OCCUPANCY_PRE_BUFFER_MINUTES).load(
            business_id,
            business_windows[0].start,
            business_windows[-1].end,
            staff_id=staff_id,
            shared_resource=targets == [None],
        )
        occupied_by_staff = OccupancyIndex.group_by_staff(occupancy)

        occupied_length = timedelta(minutes=service.duration + service.buffer_time)
        slots: Dict[datetime, Slot] = {}

        for staff in targets:
            windows = resolver.resolve_for_staff(business, staff, day) if staff else business_windows
            candidates = generate_candidates(
                windows,
                service.duration,
                service.buffer_time,
                settings.SLOT_GRANULARITY_MINUTES,
                align_last_to_close=settings.SLOT_ALIGN_LAST_TO_CLOSE,
            )
            occupied = occupied_by_staff.get(staff.id if staff else None, [])

            for candidate in candidates:
                if candidate.start < now or not is_within_advance_window(candidate.start, service, now):
                    continue

                free = is_free(Interval(candidate.start, candidate.start + occupied_length), occupied)
                existing = slots.get(candidate.start)

                if existing is None:
                    slots[candidate.start] = Slot(
                        start=candidate.start,
                        end=candidate.end,
                        available=free,
                        staff_id=staff.id if staff and (free or staff_id) else None,
                    )
                elif free and not existing.available:
                    existing.available = True
                    existing.staff_id = staff.id if staff else None

        result = sorted(slots.values(), key=lambda s: s.start)
        logger.debug(
            f"Computed {len(result)} slots ({sum(s.available for s in result)} available) "
            f"for business {business_id} service {service_id} on {day}"
        )
        return result
