"""Tests for slot availability across calendars, staff and existing bookings."""
import uuid

import pytest

from booking_engine.core.exceptions import NotFoundError
from booking_engine.models import AppointmentStatus, BusinessClosure
from booking_engine.services.availability.availability_service import AvailabilityService

from conftest import (
    MONDAY,
    SUNDAY,
    at,
    make_appointment,
    make_business,
    make_service,
    make_staff,
)


def by_label(slots):
    return {s.start.strftime("%H:%M"): s for s in slots}


class TestDaySlots:

    def test_monday_nine_to_five(self, db, settings, clock):
        business = make_business(db)
        service = make_service(db, business, duration=30, buffer_time=10)

        slots = AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                        settings=settings, clock=clock)
        labels = [s.start.strftime("%H:%M") for s in slots]

        assert labels[:3] == ["09:00", "09:15", "09:30"]
        assert labels[-1] == "16:20"
        assert all(s.available for s in slots)
        assert slots[0].end == at(MONDAY, 9, 30)
        assert labels == sorted(labels)

    def test_existing_booking_blocks_buffered_neighbours(self, db, settings, clock):
        """A 10:00-10:30 booking with 10 min buffer occupies 09:55-10:40."""
        settings.SLOT_GRANULARITY_MINUTES = 5
        business = make_business(db)
        service = make_service(db, business, duration=30, buffer_time=10)
        make_appointment(db, business, service, at(MONDAY, 10))

        slots = by_label(AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                                 settings=settings, clock=clock))

        assert not slots["09:45"].available
        assert not slots["10:15"].available
        assert not slots["09:20"].available
        assert slots["09:15"].available
        assert slots["10:40"].available

    def test_closed_day_returns_empty_list(self, db, settings, clock):
        business = make_business(db)
        service = make_service(db, business)
        assert AvailabilityService.get_available_slots(db, business.id, service.id, SUNDAY,
                                                       settings=settings, clock=clock) == []

    def test_full_day_closure(self, db, settings, clock):
        business = make_business(db)
        service = make_service(db, business)
        db.add(BusinessClosure(business_id=business.id, start_date=MONDAY, end_date=MONDAY, reason="Holiday"))
        db.commit()

        assert AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                       settings=settings, clock=clock) == []

    def test_canceled_booking_frees_time(self, db, settings, clock):
        business = make_business(db)
        service = make_service(db, business)
        make_appointment(db, business, service, at(MONDAY, 10), status=AppointmentStatus.CANCELED)

        slots = by_label(AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                                 settings=settings, clock=clock))
        assert slots["10:00"].available


class TestPolicyWindow:

    def test_past_slots_are_excluded(self, db, settings):
        business = make_business(db)
        service = make_service(db, business)

        slots = AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                        settings=settings, clock=lambda: at(MONDAY, 12, 5))
        assert slots[0].start == at(MONDAY, 12, 15)

    def test_min_advance_hours(self, db, settings):
        business = make_business(db)
        service = make_service(db, business, min_advance_booking_hours=2)

        slots = AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                        settings=settings, clock=lambda: at(MONDAY, 9))
        assert slots[0].start == at(MONDAY, 11)

    def test_max_advance_days(self, db, settings, clock):
        business = make_business(db)
        service = make_service(db, business, max_advance_booking_days=2)

        # The clock reads Friday 08:00; Monday is more than 2 days ahead
        assert AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                       settings=settings, clock=clock) == []


class TestStaffFanOut:

    def test_any_free_staff_makes_slot_available(self, db, settings, clock):
        business = make_business(db)
        alex = make_staff(db, business, "Alex")
        sam = make_staff(db, business, "Sam")
        service = make_service(db, business, staff=[alex, sam])
        first, second = sorted([alex, sam], key=lambda s: str(s.id))
        make_appointment(db, business, service, at(MONDAY, 10), staff=first)

        slots = by_label(AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                                 settings=settings, clock=clock))
        assert slots["10:00"].available
        assert slots["10:00"].staff_id == second.id
        assert slots["09:00"].staff_id == first.id

    def test_all_staff_busy(self, db, settings, clock):
        business = make_business(db)
        alex = make_staff(db, business, "Alex")
        sam = make_staff(db, business, "Sam")
        service = make_service(db, business, staff=[alex, sam])
        make_appointment(db, business, service, at(MONDAY, 10), staff=alex)
        make_appointment(db, business, service, at(MONDAY, 10), staff=sam)

        slots = by_label(AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                                 settings=settings, clock=clock))
        assert not slots["10:00"].available
        assert slots["10:00"].staff_id is None

    def test_specific_staff(self, db, settings, clock):
        business = make_business(db)
        alex = make_staff(db, business, "Alex")
        sam = make_staff(db, business, "Sam")
        service = make_service(db, business, staff=[alex, sam])
        make_appointment(db, business, service, at(MONDAY, 10), staff=alex)

        slots = by_label(AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                                 staff_id=alex.id, settings=settings, clock=clock))
        assert not slots["10:00"].available
        assert slots["10:00"].staff_id == alex.id

    def test_staff_hours_limit_slots(self, db, settings, clock):
        business = make_business(db)
        alex = make_staff(db, business, "Alex", working_hours={
            "monday": {"isOpen": True, "openTime": "13:00", "closeTime": "15:00"},
        })
        service = make_service(db, business, duration=60, buffer_time=0, staff=[alex])

        slots = AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                        settings=settings, clock=clock)
        assert [s.start.strftime("%H:%M") for s in slots] == ["13:00", "13:15", "13:30", "13:45", "14:00"]

    def test_shared_resource_ignores_staff_bookings(self, db, settings, clock):
        business = make_business(db)
        service = make_service(db, business)
        other_staff = make_staff(db, business, "Alex")
        other_service = make_service(db, business, name="Colour", staff=[other_staff])
        make_appointment(db, business, other_service, at(MONDAY, 10), staff=other_staff)

        slots = by_label(AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                                 settings=settings, clock=clock))
        assert slots["10:00"].available
        assert slots["10:00"].staff_id is None


class TestLookupErrors:

    def test_unknown_business(self, db, settings, clock):
        with pytest.raises(NotFoundError):
            AvailabilityService.get_available_slots(db, uuid.uuid4(), uuid.uuid4(), MONDAY,
                                                    settings=settings, clock=clock)

    def test_inactive_service(self, db, settings, clock):
        business = make_business(db)
        service = make_service(db, business, is_active=False)
        with pytest.raises(NotFoundError):
            AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                    settings=settings, clock=clock)

    def test_service_of_another_business(self, db, settings, clock):
        business = make_business(db)
        other = make_business(db, name="Other")
        service = make_service(db, other)
        with pytest.raises(NotFoundError):
            AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                    settings=settings, clock=clock)

    def test_staff_not_assigned_to_service(self, db, settings, clock):
        business = make_business(db)
        alex = make_staff(db, business, "Alex")
        sam = make_staff(db, business, "Sam")
        service = make_service(db, business, staff=[alex])
        with pytest.raises(NotFoundError):
            AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                    staff_id=sam.id, settings=settings, clock=clock)

    def test_inactive_staff(self, db, settings, clock):
        business = make_business(db)
        alex = make_staff(db, business, "Alex", is_active=False)
        service = make_service(db, business, staff=[alex])
        with pytest.raises(NotFoundError):
            AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                    staff_id=alex.id, settings=settings, clock=clock)
