# booking_engine/schemas/appointment.py
"""
Pydantic schemas for booking requests and appointment responses
"""
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Request Schemas
# ============================================================================

class BookingRequest(BaseModel):
    """Reserve exactly one slot"""
    service_id: UUID = Field(..., description="Service to book")
    customer_id: str = Field(..., min_length=1, max_length=100, description="Customer identifier")
    start_time: datetime = Field(..., description="Slot start; naive values are business-local")
    staff_id: Optional[UUID] = Field(None, description="Specific staff member, or any eligible one")
    notes: Optional[str] = Field(None, max_length=2000)


class CancelRequest(BaseModel):
    reason: str = Field(..., description="Why the appointment is canceled")

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        return v.strip()


class NoShowRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class RescheduleRequest(BaseModel):
    start_time: datetime = Field(..., description="New slot start; naive values are business-local")


# ============================================================================
# Response Schemas
# ============================================================================

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    business_id: UUID
    service_id: UUID
    staff_id: Optional[UUID] = None
    customer_id: str
    date: date
    start_time: datetime
    end_time: datetime
    duration: int
    buffer_time: int
    occupied_until: datetime
    status: str
    notes: Optional[str] = None
    booked_at: datetime
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None


class AppointmentListResponse(BaseModel):
    business_id: UUID
    total_appointments: int
    skip: int
    limit: int
    appointments: List[AppointmentResponse] = Field(default_factory=list)
