# booking_engine/models/service.py
"""
Service Model - Bookable service definitions
Each service belongs to one business and carries the timing rules used when
slots are offered and booked.
"""
import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from booking_engine.models.base import Base, UTCDateTime, utcnow
from booking_engine.models.staff import staff_services


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_services_duration_positive"),
        CheckConstraint("buffer_time >= 0", name="ck_services_buffer_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Minutes
    duration = Column(Integer, nullable=False)
    buffer_time = Column(Integer, nullable=False, default=0)  # idle time after the service

    # How soon / how far out a booking may be made
    min_advance_booking_hours = Column(Integer, nullable=False, default=0)
    max_advance_booking_days = Column(Integer, nullable=False, default=30)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    business = relationship("Business", back_populates="services")
    staff = relationship("Staff", secondary=staff_services, back_populates="services")

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, business_id={self.business_id})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "business_id": str(self.business_id),
            "name": self.name,
            "duration": self.duration,
            "buffer_time": self.buffer_time,
            "formatted_duration": self.formatted_duration,
            "min_advance_booking_hours": self.min_advance_booking_hours,
            "max_advance_booking_days": self.max_advance_booking_days,
            "is_active": self.is_active,
        }

    @property
    def formatted_duration(self) -> str:
        """Return human-readable duration string"""
        hours = self.duration // 60
        minutes = self.duration % 60

        if hours > 0 and minutes > 0:
            return f"{hours}h {minutes}m"
        elif hours > 0:
            return f"{hours}h"
        else:
            return f"{minutes}m"
