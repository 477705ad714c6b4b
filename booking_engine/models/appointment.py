# booking_engine/models/appointment.py
import enum
import uuid

from sqlalchemy import (
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from booking_engine.models.base import Base, UTCDateTime, utcnow


class AppointmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"
    NO_SHOW = "NO_SHOW"


# Statuses whose [start_time, occupied_until) interval blocks the calendar
OCCUPYING_STATUSES = (
    AppointmentStatus.PENDING.value,
    AppointmentStatus.CONFIRMED.value,
    AppointmentStatus.COMPLETED.value,
)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("business_id", "idempotency_key", name="uq_appointments_business_idempotency_key"),
        Index("ix_appointments_business_start", "business_id", "start_time"),
        Index("ix_appointments_staff_start", "staff_id", "start_time"),
        Index("ix_appointments_business_status", "business_id", "status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id"), nullable=False)
    staff_id = Column(Uuid(as_uuid=True), ForeignKey("staff.id"), nullable=True)  # null = shared resource
    customer_id = Column(String(100), nullable=False, index=True)

    # Appointment details
    date = Column(Date, nullable=False)  # business-local calendar date of start_time
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    duration = Column(Integer, nullable=False)
    buffer_time = Column(Integer, nullable=False, default=0)
    occupied_until = Column(UTCDateTime, nullable=False)  # end_time + buffer_time
    notes = Column(Text, nullable=True)

    # Status tracking
    status = Column(String(20), nullable=False, default=AppointmentStatus.PENDING.value)
    idempotency_key = Column(String(255), nullable=True)

    booked_at = Column(UTCDateTime, nullable=False, default=utcnow)
    confirmed_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)
    canceled_at = Column(UTCDateTime, nullable=True)
    cancel_reason = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    service = relationship("Service")
    staff = relationship("Staff")

    @property
    def occupies_calendar(self) -> bool:
        return self.status in OCCUPYING_STATUSES

    def __repr__(self):
        return f"<Appointment(id={self.id}, status={self.status}, start={self.start_time})>"
