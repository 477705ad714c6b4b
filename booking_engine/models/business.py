# booking_engine/models/business.py
"""
Business Model
A business owns its weekly hours, date overrides, closures, services and staff.
"""
import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from booking_engine.models.base import Base, UTCDateTime, utcnow


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)

    # All wall-clock times of this business are read in this zone
    timezone = Column(String(50), nullable=False, default="UTC")

    # {"monday": {"isOpen": true, "openTime": "09:00", "closeTime": "17:00", ...}, ...}
    weekly_hours = Column(JSON, nullable=False, default=dict)

    # False = bookings are confirmed immediately
    requires_confirmation = Column(Boolean, nullable=False, default=False)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    services = relationship("Service", back_populates="business", cascade="all, delete-orphan")
    staff = relationship("Staff", back_populates="business", cascade="all, delete-orphan")
    hours_overrides = relationship(
        "BusinessHoursOverride", back_populates="business", cascade="all, delete-orphan"
    )
    closures = relationship("BusinessClosure", back_populates="business", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"


class BusinessHoursOverride(Base):
    """Explicit hours (or explicit closed) for one calendar date"""
    __tablename__ = "business_hours_overrides"
    __table_args__ = (
        UniqueConstraint("business_id", "date", name="uq_business_hours_overrides_business_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )

    date = Column(Date, nullable=False)
    is_open = Column(Boolean, nullable=False)
    open_time = Column(String(5), nullable=True)  # HH:MM
    close_time = Column(String(5), nullable=True)  # HH:MM
    breaks = Column(JSON, nullable=True)  # [{"startTime": "12:00", "endTime": "13:00"}]
    reason = Column(String(255), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    business = relationship("Business", back_populates="hours_overrides")

    def __repr__(self):
        return f"<BusinessHoursOverride(business_id={self.business_id}, date={self.date})>"


class ClosureType(str, enum.Enum):
    VACATION = "VACATION"
    MAINTENANCE = "MAINTENANCE"
    EMERGENCY = "EMERGENCY"
    HOLIDAY = "HOLIDAY"
    STAFF_SHORTAGE = "STAFF_SHORTAGE"
    OTHER = "OTHER"


class BusinessClosure(Base):
    """
    One or more calendar dates during which the business is unavailable.

    Without start/end times the closure covers whole days; with them only that
    wall-clock range is closed on every covered date. A null end_date keeps the
    closure in force until it is deactivated.
    """
    __tablename__ = "business_closures"
    __table_args__ = (
        Index("ix_business_closures_business_dates", "business_id", "start_date", "end_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    start_time = Column(String(5), nullable=True)  # HH:MM, partial closures only
    end_time = Column(String(5), nullable=True)

    reason = Column(Text, nullable=False)
    closure_type = Column(String(20), nullable=False, default=ClosureType.OTHER.value)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    business = relationship("Business", back_populates="closures")

    @property
    def is_partial(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    def covers(self, day) -> bool:
        if not self.is_active or day < self.start_date:
            return False
        return self.end_date is None or day <= self.end_date

    def __repr__(self):
        return f"<BusinessClosure(business_id={self.business_id}, {self.start_date}..{self.end_date})>"
