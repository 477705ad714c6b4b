# booking_engine/services/appointment/state_machine.py
"""
Appointment State Machine

PENDING -> CONFIRMED -> COMPLETED, with CANCELED and NO_SHOW reachable from
PENDING or CONFIRMED. COMPLETED, CANCELED and NO_SHOW are terminal.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from booking_engine.core.exceptions import CancelReasonRequiredError, InvalidTransitionError, NotFoundError
from booking_engine.models import Appointment, AppointmentStatus
from booking_engine.schemas.events import AppointmentEvent
from booking_engine.services.events.event_publisher import EventPublisher, publish_event
from booking_engine.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELED: set(),
    AppointmentStatus.NO_SHOW: set(),
}

# No-show releases the slot like a cancellation and is stamped the same way
TIMESTAMP_FIELDS = {
    AppointmentStatus.CONFIRMED: "confirmed_at",
    AppointmentStatus.COMPLETED: "completed_at",
    AppointmentStatus.CANCELED: "canceled_at",
    AppointmentStatus.NO_SHOW: "canceled_at",
}

EVENT_TYPES = {
    AppointmentStatus.CONFIRMED: "confirmed",
    AppointmentStatus.COMPLETED: "completed",
    AppointmentStatus.CANCELED: "canceled",
    AppointmentStatus.NO_SHOW: "no_show",
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def apply(
        appointment: Appointment,
        target: Union[AppointmentStatus, str],
        now: datetime,
        reason: Optional[str] = None
) -> bool:
    """
    Move `appointment` to `target` in memory.

    Returns False when the appointment is already in `target` (no-op).
    """
    current = AppointmentStatus(appointment.status)
    target = AppointmentStatus(target)

    if current == target:
        return False
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)

    reason = reason.strip() if reason else None
    if target == AppointmentStatus.CANCELED and not reason:
        raise CancelReasonRequiredError("A reason is required to cancel an appointment")

    appointment.status = target.value
    field = TIMESTAMP_FIELDS[target]
    if getattr(appointment, field) is None:
        setattr(appointment, field, now)
    if reason and target in (AppointmentStatus.CANCELED, AppointmentStatus.NO_SHOW):
        appointment.cancel_reason = reason
    return True


class AppointmentStateMachine:

    @staticmethod
    def transition(
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            target: Union[AppointmentStatus, str],
            reason: Optional[str] = None,
            publisher: Optional[EventPublisher] = None,
            clock: Callable[[], datetime] = utcnow
    ) -> Appointment:
        """Load (scoped to the business), lock, transition and commit."""
        try:
            appointment = db.query(Appointment).filter(
                Appointment.id == appointment_id,
                Appointment.business_id == business_id
            ).with_for_update().first()

            if not appointment:
                raise NotFoundError(f"Appointment {appointment_id} not found")

            previous = appointment.status
            now = clock()
            changed = apply(appointment, target, now, reason)
            db.commit()
        except Exception:
            db.rollback()
            raise

        if changed:
            logger.info(f"Appointment {appointment_id}: {previous} -> {appointment.status}")
            publish_event(
                publisher,
                AppointmentEvent.from_appointment(EVENT_TYPES[AppointmentStatus(appointment.status)], appointment, now)
            )
        return appointment

    @staticmethod
    def confirm(db: Session, business_id: UUID, appointment_id: UUID, **kwargs) -> Appointment:
        return AppointmentStateMachine.transition(db, business_id, appointment_id, AppointmentStatus.CONFIRMED, **kwargs)

    @staticmethod
    def complete(db: Session, business_id: UUID, appointment_id: UUID, **kwargs) -> Appointment:
        return AppointmentStateMachine.transition(db, business_id, appointment_id, AppointmentStatus.COMPLETED, **kwargs)

    @staticmethod
    def cancel(db: Session, business_id: UUID, appointment_id: UUID, reason: Optional[str], **kwargs) -> Appointment:
        return AppointmentStateMachine.transition(
            db, business_id, appointment_id, AppointmentStatus.CANCELED, reason=reason, **kwargs
        )

    @staticmethod
    def mark_no_show(db: Session, business_id: UUID, appointment_id: UUID, reason: Optional[str] = None,
                     **kwargs) -> Appointment:
        return AppointmentStateMachine.transition(
            db, business_id, appointment_id, AppointmentStatus.NO_SHOW, reason=reason, **kwargs
        )


def auto_complete_due_appointments(
        db: Session,
        publisher: Optional[EventPublisher] = None,
        now: Optional[datetime] = None
) -> int:
    """Complete CONFIRMED appointments whose end time has passed. Returns the count."""
    now = now or utcnow()
    due = db.query(Appointment.id, Appointment.business_id).filter(
        Appointment.status == AppointmentStatus.CONFIRMED.value,
        Appointment.end_time < now
    ).order_by(Appointment.end_time).all()
    db.commit()

    completed = 0
    for appointment_id, business_id in due:
        try:
            appointment = AppointmentStateMachine.complete(
                db, business_id, appointment_id, publisher=publisher, clock=lambda: now
            )
        except (InvalidTransitionError, NotFoundError) as e:
            logger.info(f"Skipping auto-complete of appointment {appointment_id}: {e}")
            continue
        if appointment.status == AppointmentStatus.COMPLETED.value:
            completed += 1

    if completed:
        logger.info(f"Auto-completed {completed} appointments")
    return completed
