# booking_engine/services/calendar/calendar_admin_service.py
"""
Calendar administration: weekly hours, date overrides and closures.

Every mutation commits and then invalidates the business's cached
resolutions.
"""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from booking_engine.core.exceptions import InvalidConfigurationError, NotFoundError
from booking_engine.models import Business, BusinessClosure, BusinessHoursOverride
from booking_engine.schemas.calendar import ClosureCreateRequest, HoursOverrideRequest
from booking_engine.schemas.hours import BreakPeriod, WeeklyHours, WEEKDAY_NAMES
from booking_engine.services.calendar.calendar_cache import CalendarCache
from booking_engine.utils.time_utils import parse_hhmm

logger = logging.getLogger(__name__)


def _check_breaks(breaks: List[BreakPeriod], open_time: str, close_time: str, label: str) -> None:
    opens, closes = parse_hhmm(open_time), parse_hhmm(close_time)
    for period in breaks:
        start, end = period.as_times()
        if start >= end:
            raise InvalidConfigurationError(f"{label}: break {period.start_time}-{period.end_time} ends before it starts")
        if start < opens or end > closes:
            raise InvalidConfigurationError(f"{label}: break {period.start_time}-{period.end_time} is outside opening hours")


class CalendarAdminService:

    @staticmethod
    def _get_business(db: Session, business_id: UUID) -> Business:
        business = db.query(Business).filter(Business.id == business_id).first()
        if not business:
            raise NotFoundError(f"Business {business_id} not found")
        return business

    @staticmethod
    def _invalidate(cache: Optional[CalendarCache], business_id: UUID) -> None:
        if cache is not None:
            cache.invalidate_business(business_id)

    @staticmethod
    def set_weekly_hours(
            db: Session,
            business_id: UUID,
            weekly_hours: WeeklyHours,
            cache: Optional[CalendarCache] = None
    ) -> Business:
        """Replace the weekly hours; misconfigured days are rejected, not stored."""
        business = CalendarAdminService._get_business(db, business_id)

        bad_days = weekly_hours.misconfigured_days()
        if bad_days:
            raise InvalidConfigurationError(
                f"Opening time must be before closing time on: {', '.join(bad_days)}"
            )
        for name in WEEKDAY_NAMES:
            entry = getattr(weekly_hours, name)
            if entry is None or not entry.is_open:
                continue
            breaks = list(entry.breaks)
            if entry.break_start and entry.break_end:
                breaks.append(BreakPeriod(start_time=entry.break_start, end_time=entry.break_end))
            _check_breaks(breaks, entry.open_time, entry.close_time, name)

        business.weekly_hours = weekly_hours.to_storage()
        db.commit()
        db.refresh(business)
        CalendarAdminService._invalidate(cache, business_id)

        logger.info(f"Updated weekly hours for business {business_id}")
        return business

    @staticmethod
    def upsert_override(
            db: Session,
            business_id: UUID,
            day: date,
            request: HoursOverrideRequest,
            cache: Optional[CalendarCache] = None
    ) -> BusinessHoursOverride:
        CalendarAdminService._get_business(db, business_id)

        if request.is_open:
            if not request.open_time or not request.close_time:
                raise InvalidConfigurationError("Open overrides need openTime and closeTime")
            if parse_hhmm(request.open_time) >= parse_hhmm(request.close_time):
                raise InvalidConfigurationError("Opening time must be before closing time")
            _check_breaks(request.breaks, request.open_time, request.close_time, day.isoformat())

        override = db.query(BusinessHoursOverride).filter(
            BusinessHoursOverride.business_id == business_id,
            BusinessHoursOverride.date == day
        ).first()
        if override is None:
            override = BusinessHoursOverride(business_id=business_id, date=day)
            db.add(override)

        override.is_open = request.is_open
        override.open_time = request.open_time if request.is_open else None
        override.close_time = request.close_time if request.is_open else None
        override.breaks = [b.model_dump(by_alias=True) for b in request.breaks] if request.is_open else None
        override.reason = request.reason

        db.commit()
        db.refresh(override)
        CalendarAdminService._invalidate(cache, business_id)

        logger.info(f"Set hours override for business {business_id} on {day} (open={request.is_open})")
        return override

    @staticmethod
    def delete_override(
            db: Session,
            business_id: UUID,
            day: date,
            cache: Optional[CalendarCache] = None
    ) -> None:
        override = db.query(BusinessHoursOverride).filter(
            BusinessHoursOverride.business_id == business_id,
            BusinessHoursOverride.date == day
        ).first()
        if not override:
            raise NotFoundError(f"No hours override on {day}")

        db.delete(override)
        db.commit()
        CalendarAdminService._invalidate(cache, business_id)
        logger.info(f"Removed hours override for business {business_id} on {day}")

    @staticmethod
    def add_closure(
            db: Session,
            business_id: UUID,
            request: ClosureCreateRequest,
            cache: Optional[CalendarCache] = None
    ) -> BusinessClosure:
        CalendarAdminService._get_business(db, business_id)

        if request.end_date and request.end_date < request.start_date:
            raise InvalidConfigurationError("Closure end_date is before start_date")
        if request.start_time and parse_hhmm(request.start_time) >= parse_hhmm(request.end_time):
            raise InvalidConfigurationError("Closure start_time must be before end_time")

        closure = BusinessClosure(
            business_id=business_id,
            start_date=request.start_date,
            end_date=request.end_date,
            start_time=request.start_time,
            end_time=request.end_time,
            reason=request.reason,
            closure_type=request.closure_type.value,
            is_active=True,
        )
        db.add(closure)
        db.commit()
        db.refresh(closure)
        CalendarAdminService._invalidate(cache, business_id)

        logger.info(
            f"Added {closure.closure_type} closure {closure.id} for business {business_id} "
            f"({closure.start_date}..{closure.end_date or 'open-ended'})"
        )
        return closure

    @staticmethod
    def deactivate_closure(
            db: Session,
            business_id: UUID,
            closure_id: UUID,
            cache: Optional[CalendarCache] = None
    ) -> BusinessClosure:
        closure = db.query(BusinessClosure).filter(
            BusinessClosure.id == closure_id,
            BusinessClosure.business_id == business_id
        ).first()
        if not closure:
            raise NotFoundError(f"Closure {closure_id} not found")

        closure.is_active = False
        db.commit()
        db.refresh(closure)
        CalendarAdminService._invalidate(cache, business_id)

        logger.info(f"Deactivated closure {closure_id} for business {business_id}")
        return closure

    @staticmethod
    def list_closures(db: Session, business_id: UUID, include_inactive: bool = False) -> List[BusinessClosure]:
        query = db.query(BusinessClosure).filter(BusinessClosure.business_id == business_id)
        if not include_inactive:
            query = query.filter(BusinessClosure.is_active.is_(True))
        return query.order_by(BusinessClosure.start_date).all()
