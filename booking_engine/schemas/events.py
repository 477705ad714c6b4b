# booking_engine/schemas/events.py
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentEvent(BaseModel):
    """Lifecycle notification published after a committed appointment change"""
    event_type: str = Field(..., description="booked, rescheduled, confirmed, completed, canceled, no_show")
    appointment_id: UUID
    business_id: UUID
    customer_id: str
    status: str
    occurred_at: datetime
    staff_id: Optional[UUID] = None
    start_time: Optional[datetime] = None

    @classmethod
    def from_appointment(cls, event_type: str, appointment, occurred_at: datetime) -> "AppointmentEvent":
        return cls(
            event_type=event_type,
            appointment_id=appointment.id,
            business_id=appointment.business_id,
            customer_id=appointment.customer_id,
            status=appointment.status,
            occurred_at=occurred_at,
            staff_id=appointment.staff_id,
            start_time=appointment.start_time,
        )
