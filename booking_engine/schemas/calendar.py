# booking_engine/schemas/calendar.py
"""
Pydantic schemas for calendar administration (overrides, closures, resolution)
"""
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from booking_engine.models.business import ClosureType
from booking_engine.schemas.hours import BreakPeriod, validate_hhmm


class HoursOverrideRequest(BaseModel):
    """Explicit hours (or closed) for a single date"""
    model_config = ConfigDict(populate_by_name=True)

    is_open: bool = Field(..., alias="isOpen")
    open_time: Optional[str] = Field(None, alias="openTime", description="Opening time (HH:MM)")
    close_time: Optional[str] = Field(None, alias="closeTime", description="Closing time (HH:MM)")
    breaks: List[BreakPeriod] = Field(default_factory=list)
    reason: Optional[str] = Field(None, max_length=255)

    @field_validator("open_time", "close_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return validate_hhmm(v)


class HoursOverrideResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    business_id: UUID
    date: date
    is_open: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    breaks: Optional[list] = None
    reason: Optional[str] = None


class ClosureCreateRequest(BaseModel):
    start_date: date
    end_date: Optional[date] = Field(None, description="Last closed date; omit for an open-ended closure")
    start_time: Optional[str] = Field(None, description="Partial closure start (HH:MM)")
    end_time: Optional[str] = Field(None, description="Partial closure end (HH:MM)")
    reason: str = Field(..., min_length=1)
    closure_type: ClosureType = ClosureType.OTHER

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return validate_hhmm(v)

    @model_validator(mode="after")
    def check_times_paired(self):
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be given together")
        return self


class ClosureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    business_id: UUID
    start_date: date
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: str
    closure_type: str
    is_active: bool


class WindowResponse(BaseModel):
    start_time: datetime
    end_time: datetime


class ResolvedDayResponse(BaseModel):
    business_id: UUID
    date: date
    timezone: str
    is_open: bool
    windows: List[WindowResponse] = Field(default_factory=list)
