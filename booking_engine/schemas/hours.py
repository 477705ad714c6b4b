# booking_engine/schemas/hours.py
"""
Pydantic value objects for weekly business / staff hours.

Stored JSON uses the camelCase keys the dashboard sends
({"monday": {"isOpen": true, "openTime": "09:00", "closeTime": "17:00"}}); the
blob is parsed once into these strict models and never read field by field.
"""
from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# 0=Sunday .. 6=Saturday
WEEKDAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


def validate_hhmm(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    try:
        datetime.strptime(v, "%H:%M")
    except ValueError:
        raise ValueError("Time must be in HH:MM format")
    if len(v) != 5:
        raise ValueError("Time must be in HH:MM format")
    return v


def _to_time(v: str) -> time:
    return datetime.strptime(v, "%H:%M").time()


class BreakPeriod(BaseModel):
    """A wall-clock break carved out of an open window"""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    start_time: str = Field(..., alias="startTime", description="Break start (HH:MM)")
    end_time: str = Field(..., alias="endTime", description="Break end (HH:MM)")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return validate_hhmm(v)

    def as_times(self) -> Tuple[time, time]:
        return _to_time(self.start_time), _to_time(self.end_time)


class DayHours(BaseModel):
    """Opening hours for one weekday"""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    is_open: bool = Field(False, alias="isOpen")
    open_time: Optional[str] = Field(None, alias="openTime", description="Opening time (HH:MM)")
    close_time: Optional[str] = Field(None, alias="closeTime", description="Closing time (HH:MM)")
    break_start: Optional[str] = Field(None, alias="breakStart")
    break_end: Optional[str] = Field(None, alias="breakEnd")
    breaks: List[BreakPeriod] = Field(default_factory=list)

    @field_validator("open_time", "close_time", "break_start", "break_end")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return validate_hhmm(v)

    def window(self) -> Optional[Tuple[time, time]]:
        """(open, close) wall-clock times, or None when closed or incomplete."""
        if not self.is_open or not self.open_time or not self.close_time:
            return None
        return _to_time(self.open_time), _to_time(self.close_time)

    def is_misconfigured(self) -> bool:
        window = self.window()
        if self.is_open and window is None:
            return True
        return window is not None and window[0] >= window[1]

    def all_breaks(self) -> List[Tuple[time, time]]:
        """Single legacy breakStart/breakEnd pair plus the breaks list."""
        result = []
        if self.break_start and self.break_end:
            result.append((_to_time(self.break_start), _to_time(self.break_end)))
        result.extend(b.as_times() for b in self.breaks)
        return result


class WeeklyHours(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    sunday: Optional[DayHours] = None
    monday: Optional[DayHours] = None
    tuesday: Optional[DayHours] = None
    wednesday: Optional[DayHours] = None
    thursday: Optional[DayHours] = None
    friday: Optional[DayHours] = None
    saturday: Optional[DayHours] = None

    def for_weekday(self, weekday: int) -> Optional[DayHours]:
        """Entry for weekday 0=Sunday .. 6=Saturday (None when not configured)."""
        return getattr(self, WEEKDAY_NAMES[weekday])

    def misconfigured_days(self) -> List[str]:
        return [
            name for name in WEEKDAY_NAMES
            if getattr(self, name) is not None and getattr(self, name).is_misconfigured()
        ]

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def default(cls, open_time: str = "09:00", close_time: str = "18:00") -> "WeeklyHours":
        """Monday-Friday open, weekends closed"""
        weekday = {"isOpen": True, "openTime": open_time, "closeTime": close_time}
        weekend = {"isOpen": False}
        return cls.model_validate({
            "monday": weekday, "tuesday": weekday, "wednesday": weekday,
            "thursday": weekday, "friday": weekday,
            "saturday": weekend, "sunday": weekend,
        })

    @classmethod
    def from_storage(
        cls,
        raw: Optional[Dict[str, Any]],
        fallback: Optional["WeeklyHours"] = None,
        owner: str = "",
    ) -> Optional["WeeklyHours"]:
        """
        Parse a stored JSON blob.

        Empty blobs return None. A blob that fails validation is logged and
        replaced by `fallback` (None when not given).
        """
        if not raw:
            return None
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Malformed weekly hours for {owner or 'unknown owner'}, using fallback: {e}")
            return fallback
