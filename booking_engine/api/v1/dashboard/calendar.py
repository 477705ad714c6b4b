# ============================================================================
# booking_engine/api/v1/dashboard/calendar.py
# Business hours, overrides and closures - thin HTTP layer
# ============================================================================
from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_calendar_cache
from booking_engine.api.errors import to_http_exception
from booking_engine.config.database import get_db
from booking_engine.core.exceptions import BookingEngineError
from booking_engine.schemas.calendar import (
    ClosureCreateRequest,
    ClosureResponse,
    HoursOverrideRequest,
    HoursOverrideResponse,
    ResolvedDayResponse,
    WindowResponse,
)
from booking_engine.schemas.hours import WeeklyHours
from booking_engine.services.availability.booking_policy import load_business
from booking_engine.services.calendar.calendar_admin_service import CalendarAdminService
from booking_engine.services.calendar.calendar_resolver import CalendarResolver

router = APIRouter(prefix="/businesses/{business_id}/calendar", tags=["dashboard-calendar"])


@router.put("/hours")
def set_weekly_hours(
        weekly_hours: WeeklyHours,
        business_id: UUID = Path(..., description="The business ID"),
        db: Session = Depends(get_db),
        cache=Depends(get_calendar_cache)
):
    """
    Replace the weekly opening hours.
    Days whose opening time is not before their closing time are rejected.
    """
    try:
        business = CalendarAdminService.set_weekly_hours(db, business_id, weekly_hours, cache=cache)
    except BookingEngineError as e:
        raise to_http_exception(e)

    return {"business_id": str(business.id), "weekly_hours": business.weekly_hours}


@router.put("/overrides/{day}", response_model=HoursOverrideResponse)
def upsert_override(
        request: HoursOverrideRequest,
        business_id: UUID = Path(...),
        day: date = Path(..., description="Business-local date"),
        db: Session = Depends(get_db),
        cache=Depends(get_calendar_cache)
):
    try:
        return CalendarAdminService.upsert_override(db, business_id, day, request, cache=cache)
    except BookingEngineError as e:
        raise to_http_exception(e)


@router.delete("/overrides/{day}", status_code=status.HTTP_204_NO_CONTENT)
def delete_override(
        business_id: UUID = Path(...),
        day: date = Path(...),
        db: Session = Depends(get_db),
        cache=Depends(get_calendar_cache)
):
    try:
        CalendarAdminService.delete_override(db, business_id, day, cache=cache)
    except BookingEngineError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/closures", response_model=List[ClosureResponse])
def list_closures(
        business_id: UUID = Path(...),
        include_inactive: bool = Query(False),
        db: Session = Depends(get_db)
):
    return CalendarAdminService.list_closures(db, business_id, include_inactive=include_inactive)


@router.post("/closures", response_model=ClosureResponse, status_code=status.HTTP_201_CREATED)
def add_closure(
        request: ClosureCreateRequest,
        business_id: UUID = Path(...),
        db: Session = Depends(get_db),
        cache=Depends(get_calendar_cache)
):
    try:
        return CalendarAdminService.add_closure(db, business_id, request, cache=cache)
    except BookingEngineError as e:
        raise to_http_exception(e)


@router.delete("/closures/{closure_id}", response_model=ClosureResponse)
def deactivate_closure(
        business_id: UUID = Path(...),
        closure_id: UUID = Path(...),
        db: Session = Depends(get_db),
        cache=Depends(get_calendar_cache)
):
    try:
        return CalendarAdminService.deactivate_closure(db, business_id, closure_id, cache=cache)
    except BookingEngineError as e:
        raise to_http_exception(e)


@router.get("/resolve", response_model=ResolvedDayResponse)
def resolve_day(
        business_id: UUID = Path(...),
        day: date = Query(..., alias="date", description="Business-local date"),
        db: Session = Depends(get_db),
        cache=Depends(get_calendar_cache)
):
    """
    Show the open windows the engine computes for a date (UTC).
    """
    try:
        business = load_business(db, business_id)
    except BookingEngineError as e:
        raise to_http_exception(e)

    windows = CalendarResolver(db, cache=cache).resolve(business, day)
    return ResolvedDayResponse(
        business_id=business_id,
        date=day,
        timezone=business.timezone,
        is_open=bool(windows),
        windows=[WindowResponse(start_time=w.start, end_time=w.end) for w in windows]
    )
