# ============================================================================
# booking_engine/api/v1/public/booking.py
# Customer-facing availability and booking - thin HTTP layer
# ============================================================================
from datetime import date
from typing import Callable, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Path, Query, status
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import (
    get_calendar_cache,
    get_clock,
    get_event_publisher,
    get_quota_gate,
)
from booking_engine.api.errors import to_http_exception
from booking_engine.config.database import get_db
from booking_engine.core.exceptions import BookingEngineError
from booking_engine.schemas.appointment import AppointmentResponse, BookingRequest
from booking_engine.schemas.availability import AvailabilityResponse, SlotResponse
from booking_engine.services.appointment.booking_service import BookingService
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.booking_policy import load_business

router = APIRouter(prefix="/businesses/{business_id}", tags=["public-booking"])


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
        business_id: UUID = Path(..., description="The business ID"),
        service_id: UUID = Query(..., description="Service to check"),
        day: date = Query(..., alias="date", description="Business-local date"),
        staff_id: Optional[UUID] = Query(None, description="Restrict to one staff member"),
        db: Session = Depends(get_db),
        cache=Depends(get_calendar_cache),
        clock: Callable = Depends(get_clock)
):
    """
    Get the slots of a service on one date.
    Unavailable slots are included with available=false.
    """
    try:
        slots = AvailabilityService.get_available_slots(
            db=db,
            business_id=business_id,
            service_id=service_id,
            day=day,
            staff_id=staff_id,
            cache=cache,
            clock=clock
        )
        business = load_business(db, business_id)
    except BookingEngineError as e:
        raise to_http_exception(e)

    return AvailabilityResponse(
        business_id=business_id,
        service_id=service_id,
        requested_date=day,
        timezone=business.timezone,
        slots=[
            SlotResponse(start_time=s.start, end_time=s.end, available=s.available, staff_id=s.staff_id)
            for s in slots
        ]
    )


@router.post("/appointments", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
        request: BookingRequest,
        business_id: UUID = Path(..., description="The business ID"),
        idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=255),
        db: Session = Depends(get_db),
        publisher=Depends(get_event_publisher),
        quota_gate=Depends(get_quota_gate),
        clock: Callable = Depends(get_clock)
):
    """
    Reserve exactly the requested slot.
    Returns 409 when another booking took it first.
    """
    try:
        appointment = BookingService.book_appointment(
            db=db,
            business_id=business_id,
            service_id=request.service_id,
            customer_id=request.customer_id,
            requested_start=request.start_time,
            staff_id=request.staff_id,
            notes=request.notes,
            idempotency_key=idempotency_key,
            publisher=publisher,
            quota_gate=quota_gate,
            clock=clock
        )
    except BookingEngineError as e:
        raise to_http_exception(e)

    return appointment
