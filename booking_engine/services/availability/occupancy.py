# booking_engine/services/availability/occupancy.py
"""
Occupancy Index - intervals already taken by live appointments

Each appointment blocks [start_time - pre_buffer, occupied_until), where
occupied_until already includes the service buffer captured at booking time.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from booking_engine.models import Appointment, OCCUPYING_STATUSES


@dataclass(frozen=True)
class OccupiedInterval:
    start: datetime
    end: datetime
    appointment_id: UUID
    staff_id: Optional[UUID]


class OccupancyIndex:

    def __init__(self, db: Session, pre_buffer_minutes: int = 5):
        self.db = db
        self.pre_buffer = timedelta(minutes=pre_buffer_minutes)

    def load(
            self,
            business_id: UUID,
            range_start: datetime,
            range_end: datetime,
            staff_id: Optional[UUID] = None,
            service_id: Optional[UUID] = None,
            shared_resource: bool = False,
            exclude_appointment_id: Optional[UUID] = None,
    ) -> List[OccupiedInterval]:
        """
        Occupied intervals touching [range_start, range_end), ordered by start.

        staff_id scopes to one staff member; shared_resource scopes to
        appointments without staff; neither returns the whole business.
        """
        query = self.db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.status.in_(OCCUPYING_STATUSES),
            Appointment.start_time < range_end + self.pre_buffer,
            Appointment.occupied_until > range_start
        )

        if staff_id is not None:
            query = query.filter(Appointment.staff_id == staff_id)
        elif shared_resource:
            query = query.filter(Appointment.staff_id.is_(None))

        if service_id is not None:
            query = query.filter(Appointment.service_id == service_id)

        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)

        return [
            OccupiedInterval(
                start=appointment.start_time - self.pre_buffer,
                end=appointment.occupied_until,
                appointment_id=appointment.id,
                staff_id=appointment.staff_id,
            )
            for appointment in query.order_by(Appointment.start_time).all()
        ]

    @staticmethod
    def group_by_staff(intervals: List[OccupiedInterval]) -> Dict[Optional[UUID], List[OccupiedInterval]]:
        grouped = defaultdict(list)
        for interval in intervals:
            grouped[interval.staff_id].append(interval)
        return grouped
