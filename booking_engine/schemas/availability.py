# booking_engine/schemas/availability.py
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SlotResponse(BaseModel):
    """One candidate slot"""
    start_time: datetime = Field(..., description="Slot start (UTC)")
    end_time: datetime = Field(..., description="Service end, excluding buffer (UTC)")
    available: bool = Field(..., description="Whether the slot can be booked")
    staff_id: Optional[UUID] = Field(None, description="Staff member who would serve it")


class AvailabilityResponse(BaseModel):
    business_id: UUID
    service_id: UUID
    requested_date: date
    timezone: str = Field("UTC", description="Business timezone")
    slots: List[SlotResponse] = Field(default_factory=list)
