# booking_engine/services/appointment/appointment_query_service.py
# Read-only appointment lookups for the dashboard
from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from booking_engine.core.exceptions import NotFoundError
from booking_engine.models import Appointment
from booking_engine.schemas.appointment import AppointmentResponse


class AppointmentQueryService:
    """Service layer for appointment listing and lookup."""

    @staticmethod
    def list_appointments(
            db: Session,
            business_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            customer_id: Optional[str] = None,
            staff_id: Optional[UUID] = None,
            service_id: Optional[UUID] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Get paginated list of appointments with filters (dates are business-local)."""
        query = db.query(Appointment).filter(Appointment.business_id == business_id)

        if start_date:
            query = query.filter(Appointment.date >= start_date)
        if end_date:
            query = query.filter(Appointment.date <= end_date)
        if status:
            query = query.filter(Appointment.status == status.upper())
        if customer_id:
            query = query.filter(Appointment.customer_id == customer_id)
        if staff_id:
            query = query.filter(Appointment.staff_id == staff_id)
        if service_id:
            query = query.filter(Appointment.service_id == service_id)

        query = query.order_by(Appointment.start_time.asc())
        total = query.count()
        appointments = query.offset(skip).limit(limit).all()

        return {
            "business_id": business_id,
            "total_appointments": total,
            "skip": skip,
            "limit": limit,
            "appointments": [AppointmentResponse.model_validate(appt) for appt in appointments],
        }

    @staticmethod
    def get_appointment(db: Session, business_id: UUID, appointment_id: UUID) -> Appointment:
        """Get a single appointment scoped to the business."""
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.business_id == business_id
        ).first()

        if not appointment:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return appointment
