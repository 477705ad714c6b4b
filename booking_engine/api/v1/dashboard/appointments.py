# ============================================================================
# booking_engine/api/v1/dashboard/appointments.py
# Business-scoped appointment management - thin HTTP layer
# ============================================================================
from datetime import date
from typing import Callable, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_clock, get_event_publisher
from booking_engine.api.errors import to_http_exception
from booking_engine.config.database import get_db
from booking_engine.core.exceptions import BookingEngineError
from booking_engine.schemas.appointment import (
    AppointmentListResponse,
    AppointmentResponse,
    CancelRequest,
    NoShowRequest,
    RescheduleRequest,
)
from booking_engine.services.appointment.appointment_query_service import AppointmentQueryService
from booking_engine.services.appointment.booking_service import BookingService
from booking_engine.services.appointment.state_machine import AppointmentStateMachine

router = APIRouter(prefix="/businesses/{business_id}/appointments", tags=["dashboard-appointments"])


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
        business_id: UUID = Path(..., description="The business ID"),
        start_date: Optional[date] = Query(None, description="Filter appointments on or after this date"),
        end_date: Optional[date] = Query(None, description="Filter appointments on or before this date"),
        status: Optional[str] = Query(None,
                                      description="Filter by status (PENDING, CONFIRMED, COMPLETED, CANCELED, NO_SHOW)"),
        customer_id: Optional[str] = Query(None, description="Filter by customer"),
        staff_id: Optional[UUID] = Query(None, description="Filter by staff member"),
        service_id: Optional[UUID] = Query(None, description="Filter by service"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=100, description="Number of records to return"),
        db: Session = Depends(get_db)
):
    """
    Get a list of appointments for the business.
    """
    return AppointmentQueryService.list_appointments(
        db=db,
        business_id=business_id,
        start_date=start_date,
        end_date=end_date,
        status=status,
        customer_id=customer_id,
        staff_id=staff_id,
        service_id=service_id,
        skip=skip,
        limit=limit
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
        business_id: UUID = Path(..., description="The business ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        db: Session = Depends(get_db)
):
    """
    Get detailed information about a specific appointment.
    """
    try:
        return AppointmentQueryService.get_appointment(db, business_id, appointment_id)
    except BookingEngineError as e:
        raise to_http_exception(e)


@router.post("/{appointment_id}/confirm", response_model=AppointmentResponse)
def confirm_appointment(
        business_id: UUID = Path(...),
        appointment_id: UUID = Path(...),
        db: Session = Depends(get_db),
        publisher=Depends(get_event_publisher),
        clock: Callable = Depends(get_clock)
):
    try:
        return AppointmentStateMachine.confirm(db, business_id, appointment_id, publisher=publisher, clock=clock)
    except BookingEngineError as e:
        raise to_http_exception(e)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
def complete_appointment(
        business_id: UUID = Path(...),
        appointment_id: UUID = Path(...),
        db: Session = Depends(get_db),
        publisher=Depends(get_event_publisher),
        clock: Callable = Depends(get_clock)
):
    try:
        return AppointmentStateMachine.complete(db, business_id, appointment_id, publisher=publisher, clock=clock)
    except BookingEngineError as e:
        raise to_http_exception(e)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
        request: CancelRequest,
        business_id: UUID = Path(...),
        appointment_id: UUID = Path(...),
        db: Session = Depends(get_db),
        publisher=Depends(get_event_publisher),
        clock: Callable = Depends(get_clock)
):
    """
    Cancel an appointment and release its time. A reason is required.
    """
    try:
        return AppointmentStateMachine.cancel(
            db, business_id, appointment_id, request.reason, publisher=publisher, clock=clock
        )
    except BookingEngineError as e:
        raise to_http_exception(e)


@router.post("/{appointment_id}/no-show", response_model=AppointmentResponse)
def mark_no_show(
        business_id: UUID = Path(...),
        appointment_id: UUID = Path(...),
        request: Optional[NoShowRequest] = Body(None),
        db: Session = Depends(get_db),
        publisher=Depends(get_event_publisher),
        clock: Callable = Depends(get_clock)
):
    try:
        return AppointmentStateMachine.mark_no_show(
            db, business_id, appointment_id,
            reason=request.reason if request else None,
            publisher=publisher,
            clock=clock
        )
    except BookingEngineError as e:
        raise to_http_exception(e)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
        request: RescheduleRequest,
        business_id: UUID = Path(...),
        appointment_id: UUID = Path(...),
        db: Session = Depends(get_db),
        publisher=Depends(get_event_publisher),
        clock: Callable = Depends(get_clock)
):
    """
    Move an appointment to a new start time with the same staff member.
    """
    try:
        return BookingService.reschedule_appointment(
            db, business_id, appointment_id, request.start_time, publisher=publisher, clock=clock
        )
    except BookingEngineError as e:
        raise to_http_exception(e)
