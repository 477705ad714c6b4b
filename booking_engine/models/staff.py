# booking_engine/models/staff.py
import uuid

from sqlalchemy import Boolean, Column, ForeignKey, JSON, String, Table, Uuid
from sqlalchemy.orm import relationship

from booking_engine.models.base import Base, UTCDateTime, utcnow

staff_services = Table(
    "staff_services",
    Base.metadata,
    Column("staff_id", Uuid(as_uuid=True), ForeignKey("staff.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", Uuid(as_uuid=True), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)

    # Same day-entry shape as Business.weekly_hours; absent weekdays follow the business
    working_hours = Column(JSON, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    business = relationship("Business", back_populates="staff")
    services = relationship("Service", secondary=staff_services, back_populates="staff")

    def performs(self, service_id) -> bool:
        return any(service.id == service_id for service in self.services)

    def __repr__(self):
        return f"<Staff(id={self.id}, name={self.name}, business_id={self.business_id})>"
