from .base import Base, UTCDateTime
from .business import Business, BusinessClosure, BusinessHoursOverride, ClosureType
from .staff import Staff, staff_services
from .service import Service
from .appointment import Appointment, AppointmentStatus, OCCUPYING_STATUSES

__all__ = [
    "Base",
    "UTCDateTime",
    "Business",
    "BusinessHoursOverride",
    "BusinessClosure",
    "ClosureType",
    "Staff",
    "staff_services",
    "Service",
    "Appointment",
    "AppointmentStatus",
    "OCCUPYING_STATUSES",
]
