"""Shared fixtures: file-backed SQLite database, fixed clock, seeded calendars."""
import os

os.environ.setdefault("CALENDAR_CACHE_ENABLED", "false")
os.environ.setdefault("EVENTS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///./booking_engine_test.db")

from datetime import date, datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402

from booking_engine.config.database import Database  # noqa: E402
from booking_engine.config.settings import Settings  # noqa: E402
from booking_engine.models import (  # noqa: E402
    Appointment,
    AppointmentStatus,
    Business,
    Service,
    Staff,
)
from booking_engine.services.events.event_publisher import EventPublisher  # noqa: E402

UTC = timezone.utc

# Friday; the following Monday is 2026-10-19
FIXED_NOW = datetime(2026, 10, 16, 8, 0, tzinfo=UTC)
MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 18)

WEEKDAYS_9_TO_17 = {
    day: {"isOpen": True, "openTime": "09:00", "closeTime": "17:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
}
WEEKDAYS_9_TO_17.update({
    "saturday": {"isOpen": False},
    "sunday": {"isOpen": False},
})


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC)


class RecordingPublisher(EventPublisher):
    """Keeps published events in memory"""

    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)

    @property
    def event_types(self):
        return [e.event_type for e in self.events]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'booking.db'}",
        CALENDAR_CACHE_ENABLED=False,
        EVENTS_ENABLED=False,
        SLOT_GRANULARITY_MINUTES=15,
        RETRY_BACKOFF_SECONDS=0,
    )


@pytest.fixture
def database(settings):
    database = Database(settings.DATABASE_URL, settings=settings)
    database.create_tables()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def publisher():
    return RecordingPublisher()


def make_business(db, weekly_hours=None, tz="UTC", requires_confirmation=False, **kwargs) -> Business:
    business = Business(
        name=kwargs.pop("name", "Corner Barber"),
        timezone=tz,
        weekly_hours=WEEKDAYS_9_TO_17 if weekly_hours is None else weekly_hours,
        requires_confirmation=requires_confirmation,
        **kwargs
    )
    db.add(business)
    db.commit()
    return business


def make_service(db, business, duration=30, buffer_time=10, staff=(), **kwargs) -> Service:
    service = Service(
        business_id=business.id,
        name=kwargs.pop("name", "Haircut"),
        duration=duration,
        buffer_time=buffer_time,
        min_advance_booking_hours=kwargs.pop("min_advance_booking_hours", 0),
        max_advance_booking_days=kwargs.pop("max_advance_booking_days", 30),
        **kwargs
    )
    service.staff = list(staff)
    db.add(service)
    db.commit()
    return service


def make_staff(db, business, name="Alex", working_hours=None, is_active=True) -> Staff:
    staff = Staff(business_id=business.id, name=name, working_hours=working_hours, is_active=is_active)
    db.add(staff)
    db.commit()
    return staff


def make_appointment(db, business, service, start, staff=None, status=AppointmentStatus.CONFIRMED,
                     customer_id="cust-existing") -> Appointment:
    end = start + timedelta(minutes=service.duration)
    appointment = Appointment(
        business_id=business.id,
        service_id=service.id,
        staff_id=staff.id if staff else None,
        customer_id=customer_id,
        date=start.date(),
        start_time=start,
        end_time=end,
        duration=service.duration,
        buffer_time=service.buffer_time,
        occupied_until=end + timedelta(minutes=service.buffer_time),
        status=status.value,
        booked_at=FIXED_NOW,
        confirmed_at=FIXED_NOW if status == AppointmentStatus.CONFIRMED else None,
    )
    db.add(appointment)
    db.commit()
    return appointment
