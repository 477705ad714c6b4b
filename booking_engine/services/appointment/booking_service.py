# booking_engine/services/appointment/booking_service.py
"""
Booking Transaction - reserve exactly the requested slot or fail

Inside one database transaction the requested interval is re-validated
against fresh calendar data and live occupancy while the staff row (or the
business row for the shared resource) is locked, then the appointment is
inserted. Two concurrent bookings for the same staff and overlapping time
serialize on that lock; the loser sees the winner's row and gets
SlotNoLongerAvailableError.
"""
import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple, TypeVar
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from booking_engine.config.settings import Settings, get_settings
from booking_engine.core.exceptions import (
    BookingTimeoutError,
    InvalidTransitionError,
    NotFoundError,
    OutOfPolicyWindowError,
    QuotaExceededError,
    SlotNoLongerAvailableError,
    TransientStoreError,
)
from booking_engine.models import Appointment, AppointmentStatus, Business, Staff
from booking_engine.schemas.events import AppointmentEvent
from booking_engine.services.availability.booking_policy import (
    eligible_staff,
    ensure_within_advance_window,
    fits_in_windows,
    load_business,
    load_service,
)
from booking_engine.services.availability.conflict import Interval, find_conflicts
from booking_engine.services.availability.occupancy import OccupancyIndex
from booking_engine.services.calendar.calendar_resolver import CalendarResolver
from booking_engine.services.events.event_publisher import EventPublisher, publish_event
from booking_engine.services.gates.quota_gate import AllowAllQuotaGate, QuotaGate
from booking_engine.utils.time_utils import to_utc, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Postgres SQLSTATEs
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
QUERY_CANCELED = "57014"
EXCLUSION_VIOLATION = "23P01"

RESCHEDULABLE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)


def _pgcode(exc: Exception) -> Optional[str]:
    return getattr(getattr(exc, "orig", None), "pgcode", None)


def _is_transient(exc: OperationalError) -> bool:
    if _pgcode(exc) in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED):
        return True
    return "database is locked" in str(exc.orig).lower()


def _is_statement_timeout(exc: OperationalError) -> bool:
    return _pgcode(exc) == QUERY_CANCELED


def _is_overlap_violation(exc: IntegrityError) -> bool:
    return _pgcode(exc) == EXCLUSION_VIOLATION or "no_overlap" in str(exc.orig)


def run_with_retries(db: Session, settings: Settings, operation: Callable[[], T], description: str) -> T:
    """
    Run a transactional operation, retrying serialization failures, deadlocks
    and lock waits with exponential backoff.

    Business errors are never retried. A statement timeout becomes
    BookingTimeoutError.
    """
    attempts = settings.MAX_RETRY_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except OperationalError as e:
            db.rollback()
            if _is_statement_timeout(e):
                logger.warning(f"{description} hit the statement timeout")
                raise BookingTimeoutError(f"{description} timed out") from e
            if not _is_transient(e):
                raise
            if attempt == attempts:
                logger.error(f"{description} failed after {attempts} attempts: {e.orig}")
                raise TransientStoreError(f"{description} failed, please retry") from e

            delay = settings.RETRY_BACKOFF_SECONDS * (2 ** (attempt - 1))
            logger.warning(f"{description} attempt {attempt}/{attempts} hit a transient error, retrying in {delay:.2f}s: {e.orig}")
            time.sleep(delay)


class BookingService:
    """Write path for new and moved appointments"""

    @staticmethod
    def book_appointment(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            customer_id: str,
            requested_start: datetime,
            staff_id: Optional[UUID] = None,
            notes: Optional[str] = None,
            idempotency_key: Optional[str] = None,
            publisher: Optional[EventPublisher] = None,
            quota_gate: Optional[QuotaGate] = None,
            settings: Optional[Settings] = None,
            clock: Callable[[], datetime] = utcnow
    ) -> Appointment:
        """
        Book exactly `requested_start` for the service.

        Returns the new appointment, or the existing one when the
        idempotency key was already used for this business.
        """
        settings = settings or get_settings()
        quota_gate = quota_gate or AllowAllQuotaGate()

        if not quota_gate.may_accept_appointment(business_id, requested_start):
            logger.info(f"Quota gate refused booking for business {business_id}")
            raise QuotaExceededError("Appointment limit reached for this business")

        appointment, created = run_with_retries(
            db,
            settings,
            lambda: BookingService._book_once(
                db, business_id, service_id, customer_id, requested_start,
                staff_id, notes, idempotency_key, settings, clock
            ),
            f"Booking for business {business_id}",
        )

        if created:
            logger.info(
                f"Booked appointment {appointment.id} for business {business_id} "
                f"at {appointment.start_time.isoformat()} (staff={appointment.staff_id}, status={appointment.status})"
            )
            publish_event(publisher, AppointmentEvent.from_appointment("booked", appointment, clock()))
        else:
            logger.info(f"Idempotent replay for key {idempotency_key!r}, returning appointment {appointment.id}")

        return appointment

    @staticmethod
    def reschedule_appointment(
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            new_start: datetime,
            publisher: Optional[EventPublisher] = None,
            settings: Optional[Settings] = None,
            clock: Callable[[], datetime] = utcnow
    ) -> Appointment:
        """Move a PENDING or CONFIRMED appointment, keeping its staff/resource"""
        settings = settings or get_settings()

        appointment = run_with_retries(
            db,
            settings,
            lambda: BookingService._reschedule_once(db, business_id, appointment_id, new_start, settings, clock),
            f"Reschedule of appointment {appointment_id}",
        )

        logger.info(f"Rescheduled appointment {appointment.id} to {appointment.start_time.isoformat()}")
        publish_event(publisher, AppointmentEvent.from_appointment("rescheduled", appointment, clock()))
        return appointment

    # ------------------------------------------------------------------
    # Transaction bodies
    # ------------------------------------------------------------------

    @staticmethod
    def _book_once(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            customer_id: str,
            requested_start: datetime,
            staff_id: Optional[UUID],
            notes: Optional[str],
            idempotency_key: Optional[str],
            settings: Settings,
            clock: Callable[[], datetime]
    ) -> Tuple[Appointment, bool]:
        started = time.monotonic()
        try:
            BookingService._apply_statement_timeout(db, settings)

            if idempotency_key:
                existing = BookingService._find_by_idempotency_key(db, business_id, idempotency_key)
                if existing:
                    db.commit()
                    return existing, False

            now = clock()
            business = load_business(db, business_id)
            service = load_service(db, business, service_id)
            targets = eligible_staff(db, business, service, staff_id)
            if not targets:
                raise NotFoundError(f"No active staff performs service {service_id}")

            resolver = CalendarResolver(db, cache=None, settings=settings)
            start = to_utc(requested_start, resolver.timezone_for(business))
            ensure_within_advance_window(start, service, now)
            day = start.astimezone(resolver.timezone_for(business)).date()
            occupied_interval = Interval(start, start + timedelta(minutes=service.duration + service.buffer_time))

            try:
                chosen = BookingService._claim_target(
                    db, resolver, business, targets, day, occupied_interval, settings, exclude_appointment_id=None
                )
            except SlotNoLongerAvailableError:
                # A request with the same key may have committed while we waited on the lock
                if idempotency_key:
                    existing = BookingService._find_by_idempotency_key(db, business_id, idempotency_key)
                    if existing:
                        db.commit()
                        return existing, False
                raise

            status = AppointmentStatus.PENDING if business.requires_confirmation else AppointmentStatus.CONFIRMED
            end = start + timedelta(minutes=service.duration)
            appointment = Appointment(
                business_id=business.id,
                service_id=service.id,
                staff_id=chosen.id if chosen else None,
                customer_id=customer_id,
                date=day,
                start_time=start,
                end_time=end,
                duration=service.duration,
                buffer_time=service.buffer_time,
                occupied_until=end + timedelta(minutes=service.buffer_time),
                status=status.value,
                notes=notes,
                idempotency_key=idempotency_key,
                booked_at=now,
                confirmed_at=now if status == AppointmentStatus.CONFIRMED else None,
            )
            db.add(appointment)
            db.flush()

            BookingService._check_deadline(started, settings)
            db.commit()
            return appointment, True

        except IntegrityError as e:
            db.rollback()
            if idempotency_key:
                existing = BookingService._find_by_idempotency_key(db, business_id, idempotency_key)
                db.commit()
                if existing:
                    return existing, False
            if _is_overlap_violation(e):
                logger.info(f"Exclusion constraint rejected booking for business {business_id} at {requested_start}")
                raise SlotNoLongerAvailableError("The requested time is no longer available") from e
            raise
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def _reschedule_once(
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            new_start: datetime,
            settings: Settings,
            clock: Callable[[], datetime]
    ) -> Appointment:
        started = time.monotonic()
        try:
            BookingService._apply_statement_timeout(db, settings)

            appointment = db.query(Appointment).filter(
                Appointment.id == appointment_id,
                Appointment.business_id == business_id
            ).with_for_update().first()
            if not appointment:
                raise NotFoundError(f"Appointment {appointment_id} not found")
            if appointment.status not in RESCHEDULABLE_STATUSES:
                raise InvalidTransitionError(appointment.status, "RESCHEDULED")

            now = clock()
            business = load_business(db, business_id)
            service = load_service(db, business, appointment.service_id)
            # The assigned staff member must still be active and perform the service
            target = eligible_staff(db, business, service, appointment.staff_id)[0] if appointment.staff_id else None

            resolver = CalendarResolver(db, cache=None, settings=settings)
            start = to_utc(new_start, resolver.timezone_for(business))
            ensure_within_advance_window(start, service, now)
            day = start.astimezone(resolver.timezone_for(business)).date()
            occupied_interval = Interval(start, start + timedelta(minutes=appointment.duration + appointment.buffer_time))

            BookingService._claim_target(
                db, resolver, business, [target], day, occupied_interval, settings,
                exclude_appointment_id=appointment.id
            )

            appointment.date = day
            appointment.start_time = start
            appointment.end_time = start + timedelta(minutes=appointment.duration)
            appointment.occupied_until = occupied_interval.end
            db.flush()

            BookingService._check_deadline(started, settings)
            db.commit()
            return appointment

        except IntegrityError as e:
            db.rollback()
            if _is_overlap_violation(e):
                logger.info(f"Exclusion constraint rejected reschedule of appointment {appointment_id}")
                raise SlotNoLongerAvailableError("The requested time is no longer available") from e
            raise
        except Exception:
            db.rollback()
            raise

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _claim_target(
            db: Session,
            resolver: CalendarResolver,
            business: Business,
            targets: list,
            day,
            occupied_interval: Interval,
            settings: Settings,
            exclude_appointment_id: Optional[UUID]
    ) -> Optional[Staff]:
        """
        Lock and re-check each target in order; return the first one whose
        calendar is open and free for the interval.
        """
        business_windows = resolver.resolve(business, day, use_cache=False)
        if not business_windows or not fits_in_windows(occupied_interval, business_windows):
            raise OutOfPolicyWindowError("The requested time is outside opening hours")

        open_targets = [
            staff for staff in targets
            if staff is None or fits_in_windows(occupied_interval, resolver.resolve_for_staff(business, staff, day, use_cache=False))
        ]
        if not open_targets:
            raise OutOfPolicyWindowError("No staff member works at the requested time")

        occupancy = OccupancyIndex(db, settings.OCCUPANCY_PRE_BUFFER_MINUTES)
        for staff in open_targets:
            BookingService._lock_resource(db, business, staff)
            occupied = occupancy.load(
                business.id,
                occupied_interval.start,
                occupied_interval.end,
                staff_id=staff.id if staff else None,
                shared_resource=staff is None,
                exclude_appointment_id=exclude_appointment_id,
            )
            conflicts = find_conflicts(occupied_interval, occupied)
            if not conflicts:
                return staff
            logger.debug(
                f"Staff {staff.id if staff else 'shared'} busy at {occupied_interval.start.isoformat()}: "
                f"{[str(c.appointment_id) for c in conflicts]}"
            )

        logger.info(
            f"Slot {occupied_interval.start.isoformat()} no longer available for business {business.id}"
        )
        raise SlotNoLongerAvailableError("The requested time is no longer available")

    @staticmethod
    def _lock_resource(db: Session, business: Business, staff: Optional[Staff]) -> None:
        if staff is not None:
            db.query(Staff).filter(Staff.id == staff.id).with_for_update().one()
        else:
            db.query(Business).filter(Business.id == business.id).with_for_update().one()

    @staticmethod
    def _find_by_idempotency_key(db: Session, business_id: UUID, key: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.idempotency_key == key
        ).first()

    @staticmethod
    def _apply_statement_timeout(db: Session, settings: Settings) -> None:
        if db.get_bind().dialect.name == "postgresql":
            # SET LOCAL does not accept bind parameters
            db.execute(text(f"SET LOCAL statement_timeout = {int(settings.BOOKING_TIMEOUT_SECONDS * 1000)}"))

    @staticmethod
    def _check_deadline(started: float, settings: Settings) -> None:
        elapsed = time.monotonic() - started
        if elapsed > settings.BOOKING_TIMEOUT_SECONDS:
            logger.warning(f"Booking transaction took {elapsed:.2f}s, rolling back")
            raise BookingTimeoutError("Booking took too long and was rolled back")
