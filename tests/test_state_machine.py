"""Tests for appointment status transitions."""
import uuid
from types import SimpleNamespace

import pytest

from booking_engine.core.exceptions import CancelReasonRequiredError, InvalidTransitionError, NotFoundError
from booking_engine.models import AppointmentStatus
from booking_engine.services.appointment import state_machine
from booking_engine.services.appointment.state_machine import (
    ALLOWED_TRANSITIONS,
    AppointmentStateMachine,
    auto_complete_due_appointments,
)
from booking_engine.services.availability.availability_service import AvailabilityService

from conftest import FIXED_NOW, MONDAY, at, make_appointment, make_business, make_service

TERMINAL = (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED, AppointmentStatus.NO_SHOW)


def bare(status):
    return SimpleNamespace(status=status.value, confirmed_at=None, completed_at=None,
                           canceled_at=None, cancel_reason=None)


class TestApply:

    def test_pending_to_confirmed_to_completed(self):
        appointment = bare(AppointmentStatus.PENDING)
        assert state_machine.apply(appointment, AppointmentStatus.CONFIRMED, FIXED_NOW)
        assert appointment.confirmed_at == FIXED_NOW

        later = at(MONDAY, 11)
        assert state_machine.apply(appointment, AppointmentStatus.COMPLETED, later)
        assert appointment.status == "COMPLETED"
        assert appointment.completed_at == later
        assert appointment.confirmed_at == FIXED_NOW

    @pytest.mark.parametrize("terminal", TERMINAL)
    @pytest.mark.parametrize("target", list(AppointmentStatus))
    def test_terminal_states_are_closed(self, terminal, target):
        appointment = bare(terminal)
        if target == terminal:
            assert state_machine.apply(appointment, target, FIXED_NOW, reason="x") is False
        else:
            with pytest.raises(InvalidTransitionError) as exc:
                state_machine.apply(appointment, target, FIXED_NOW, reason="x")
            assert exc.value.current == terminal.value
            assert exc.value.attempted == target.value

    def test_pending_cannot_complete(self):
        with pytest.raises(InvalidTransitionError):
            state_machine.apply(bare(AppointmentStatus.PENDING), AppointmentStatus.COMPLETED, FIXED_NOW)

    def test_confirmed_cannot_go_back_to_pending(self):
        with pytest.raises(InvalidTransitionError):
            state_machine.apply(bare(AppointmentStatus.CONFIRMED), AppointmentStatus.PENDING, FIXED_NOW)

    def test_reapplying_current_state_is_noop(self):
        appointment = bare(AppointmentStatus.CONFIRMED)
        appointment.confirmed_at = FIXED_NOW
        assert state_machine.apply(appointment, AppointmentStatus.CONFIRMED, at(MONDAY, 12)) is False
        assert appointment.confirmed_at == FIXED_NOW

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_cancel_requires_reason(self, reason):
        appointment = bare(AppointmentStatus.CONFIRMED)
        with pytest.raises(CancelReasonRequiredError):
            state_machine.apply(appointment, AppointmentStatus.CANCELED, FIXED_NOW, reason=reason)
        assert appointment.status == "CONFIRMED"

    def test_cancel_records_reason(self):
        appointment = bare(AppointmentStatus.PENDING)
        state_machine.apply(appointment, AppointmentStatus.CANCELED, FIXED_NOW, reason="  Customer ill ")
        assert appointment.cancel_reason == "Customer ill"
        assert appointment.canceled_at == FIXED_NOW

    def test_no_show_sets_canceled_at(self):
        appointment = bare(AppointmentStatus.CONFIRMED)
        state_machine.apply(appointment, AppointmentStatus.NO_SHOW, FIXED_NOW)
        assert appointment.canceled_at == FIXED_NOW
        assert appointment.cancel_reason is None

    def test_graph_shape(self):
        assert ALLOWED_TRANSITIONS[AppointmentStatus.PENDING] == {
            AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELED, AppointmentStatus.NO_SHOW
        }
        assert ALLOWED_TRANSITIONS[AppointmentStatus.CONFIRMED] == {
            AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED, AppointmentStatus.NO_SHOW
        }
        for terminal in TERMINAL:
            assert ALLOWED_TRANSITIONS[terminal] == set()


class TestAppointmentStateMachine:

    def test_confirm_publishes_event(self, db, clock, publisher):
        business = make_business(db)
        service = make_service(db, business)
        appointment = make_appointment(db, business, service, at(MONDAY, 10), status=AppointmentStatus.PENDING)

        result = AppointmentStateMachine.confirm(db, business.id, appointment.id, publisher=publisher, clock=clock)

        assert result.status == "CONFIRMED"
        assert result.confirmed_at == FIXED_NOW
        assert publisher.event_types == ["confirmed"]

    def test_noop_publishes_nothing(self, db, clock, publisher):
        business = make_business(db)
        service = make_service(db, business)
        appointment = make_appointment(db, business, service, at(MONDAY, 10))

        AppointmentStateMachine.confirm(db, business.id, appointment.id, publisher=publisher, clock=clock)
        assert publisher.events == []

    def test_invalid_transition_leaves_row_untouched(self, db, clock):
        business = make_business(db)
        service = make_service(db, business)
        appointment = make_appointment(db, business, service, at(MONDAY, 10), status=AppointmentStatus.CANCELED)

        with pytest.raises(InvalidTransitionError):
            AppointmentStateMachine.complete(db, business.id, appointment.id, clock=clock)
        db.refresh(appointment)
        assert appointment.status == "CANCELED"

    def test_foreign_business_sees_not_found(self, db, clock):
        business = make_business(db)
        other = make_business(db, name="Other")
        service = make_service(db, business)
        appointment = make_appointment(db, business, service, at(MONDAY, 10))

        with pytest.raises(NotFoundError):
            AppointmentStateMachine.cancel(db, other.id, appointment.id, "nope", clock=clock)
        with pytest.raises(NotFoundError):
            AppointmentStateMachine.confirm(db, business.id, uuid.uuid4(), clock=clock)

    def test_cancel_frees_the_slot(self, db, settings, clock, publisher):
        business = make_business(db)
        service = make_service(db, business)
        appointment = make_appointment(db, business, service, at(MONDAY, 10))

        def slot_10():
            slots = AvailabilityService.get_available_slots(db, business.id, service.id, MONDAY,
                                                            settings=settings, clock=clock)
            return next(s for s in slots if s.start == at(MONDAY, 10))

        assert not slot_10().available
        AppointmentStateMachine.cancel(db, business.id, appointment.id, "Rain", publisher=publisher, clock=clock)
        assert slot_10().available
        assert publisher.event_types == ["canceled"]

    def test_no_show(self, db, clock, publisher):
        business = make_business(db)
        service = make_service(db, business)
        appointment = make_appointment(db, business, service, at(MONDAY, 10))

        result = AppointmentStateMachine.mark_no_show(db, business.id, appointment.id, publisher=publisher, clock=clock)
        assert result.status == "NO_SHOW"
        assert result.canceled_at == FIXED_NOW
        assert publisher.event_types == ["no_show"]


class TestAutoComplete:

    def test_completes_only_finished_confirmed(self, db, publisher):
        business = make_business(db)
        service = make_service(db, business)
        done = make_appointment(db, business, service, at(MONDAY, 9))
        running = make_appointment(db, business, service, at(MONDAY, 11, 45))
        pending = make_appointment(db, business, service, at(MONDAY, 10), status=AppointmentStatus.PENDING)

        completed = auto_complete_due_appointments(db, publisher=publisher, now=at(MONDAY, 12))

        assert completed == 1
        for appointment in (done, running, pending):
            db.refresh(appointment)
        assert done.status == "COMPLETED"
        assert done.completed_at == at(MONDAY, 12)
        assert running.status == "CONFIRMED"
        assert pending.status == "PENDING"
        assert publisher.event_types == ["completed"]

    def test_nothing_due(self, db):
        assert auto_complete_due_appointments(db, now=at(MONDAY, 12)) == 0
