# booking_engine/services/events/event_publisher.py
"""
Appointment event publishing.

Events are published only after the appointment change is committed. A
publishing failure is logged and never undoes or fails the change itself.
"""
import logging
from typing import Optional

from kombu.exceptions import KombuError

from booking_engine.config.settings import Settings, get_settings
from booking_engine.schemas.events import AppointmentEvent

logger = logging.getLogger(__name__)


class EventPublisher:
    """Publishing seam; subclasses decide where events go"""

    def publish(self, event: AppointmentEvent) -> None:
        raise NotImplementedError


class LoggingEventPublisher(EventPublisher):

    def publish(self, event: AppointmentEvent) -> None:
        logger.info(
            f"Appointment event {event.event_type}: appointment={event.appointment_id} "
            f"business={event.business_id} status={event.status}"
        )


class CeleryEventPublisher(EventPublisher):
    """Queues webhook delivery on the events queue"""

    def publish(self, event: AppointmentEvent) -> None:
        from booking_engine.tasks.appointment_tasks import deliver_appointment_event

        try:
            deliver_appointment_event.delay(event.model_dump(mode="json"))
        except KombuError as e:
            logger.warning(f"Could not enqueue {event.event_type} event for appointment {event.appointment_id}: {e}")


def publish_event(publisher: Optional[EventPublisher], event: AppointmentEvent) -> None:
    if publisher is None:
        return
    try:
        publisher.publish(event)
    except Exception as e:
        logger.error(f"Event publisher failed for appointment {event.appointment_id}: {e}")


def build_event_publisher(settings: Optional[Settings] = None) -> EventPublisher:
    settings = settings or get_settings()
    if settings.EVENTS_ENABLED and settings.NOTIFICATION_WEBHOOK_URL:
        return CeleryEventPublisher()
    return LoggingEventPublisher()
