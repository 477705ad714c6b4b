# booking_engine/services/availability/booking_policy.py
"""
Lookups and policy checks shared by the availability read path and the
booking write path.
"""
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from booking_engine.core.exceptions import NotFoundError, OutOfPolicyWindowError
from booking_engine.models import Business, Service, Staff, staff_services
from booking_engine.services.availability.conflict import Interval


def load_business(db: Session, business_id: UUID) -> Business:
    business = db.query(Business).filter(Business.id == business_id).first()
    if not business or not business.is_active:
        raise NotFoundError(f"Business {business_id} not found")
    return business


def load_service(db: Session, business: Business, service_id: UUID) -> Service:
    service = db.query(Service).filter(
        Service.id == service_id,
        Service.business_id == business.id
    ).first()
    if not service or not service.is_active:
        raise NotFoundError(f"Service {service_id} not found")
    return service


def eligible_staff(
        db: Session,
        business: Business,
        service: Service,
        staff_id: Optional[UUID] = None
) -> List[Optional[Staff]]:
    """
    Staff who may take the booking, in deterministic (id) order.

    `[None]` means the service has no assigned staff and books the
    business-wide shared resource.
    """
    if staff_id is not None:
        staff = db.query(Staff).filter(
            Staff.id == staff_id,
            Staff.business_id == business.id
        ).first()
        if not staff or not staff.is_active:
            raise NotFoundError(f"Staff {staff_id} not found")
        if not staff.performs(service.id):
            raise NotFoundError(f"Staff {staff_id} does not perform service {service.id}")
        return [staff]

    assigned = db.query(Staff).join(staff_services, staff_services.c.staff_id == Staff.id).filter(
        staff_services.c.service_id == service.id,
        Staff.business_id == business.id
    ).all()

    if not assigned:
        return [None]

    active = [staff for staff in assigned if staff.is_active]
    return sorted(active, key=lambda s: str(s.id))


def advance_window(service: Service, now: datetime) -> Tuple[datetime, datetime]:
    """Earliest and latest bookable start instants"""
    earliest = now + timedelta(hours=service.min_advance_booking_hours or 0)
    latest = now + timedelta(days=service.max_advance_booking_days or 0)
    return earliest, latest


def is_within_advance_window(start: datetime, service: Service, now: datetime) -> bool:
    earliest, latest = advance_window(service, now)
    return earliest <= start <= latest


def ensure_within_advance_window(start: datetime, service: Service, now: datetime) -> None:
    earliest, latest = advance_window(service, now)
    if start < earliest:
        raise OutOfPolicyWindowError(
            f"Bookings for this service need {service.min_advance_booking_hours}h notice "
            f"(earliest {earliest.isoformat()})"
        )
    if start > latest:
        raise OutOfPolicyWindowError(
            f"Bookings for this service open {service.max_advance_booking_days} days ahead "
            f"(latest {latest.isoformat()})"
        )


def fits_in_windows(candidate: Interval, windows: List[Interval]) -> bool:
    """Whole buffered candidate inside one open sub-window"""
    return any(w.start <= candidate.start and candidate.end <= w.end for w in windows)
