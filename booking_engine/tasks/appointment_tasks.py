# booking_engine/tasks/appointment_tasks.py
import logging
from typing import Optional

import httpx
from celery.signals import worker_process_init, worker_process_shutdown

from booking_engine.config.celery_config import celery_app
from booking_engine.config.database import Database
from booking_engine.config.settings import get_settings
from booking_engine.services.appointment.state_machine import auto_complete_due_appointments
from booking_engine.services.events.event_publisher import build_event_publisher

logger = logging.getLogger(__name__)

# Built per worker process; tasks never create their own engine
_database: Optional[Database] = None


@worker_process_init.connect
def init_worker_database(**kwargs):
    global _database
    _database = Database.from_settings()
    logger.info("Worker database handle ready")


@worker_process_shutdown.connect
def dispose_worker_database(**kwargs):
    global _database
    if _database is not None:
        _database.dispose()
        _database = None


def get_worker_database() -> Database:
    global _database
    if _database is None:
        _database = Database.from_settings()
    return _database


@celery_app.task(bind=True, max_retries=3)
def deliver_appointment_event(self, event: dict):
    """POST an appointment event to the configured notification webhook"""
    settings = get_settings()
    if not settings.NOTIFICATION_WEBHOOK_URL:
        return {"status": "skipped", "reason": "no_webhook_configured"}

    try:
        with httpx.Client(timeout=settings.NOTIFICATION_WEBHOOK_TIMEOUT) as client:
            response = client.post(
                settings.NOTIFICATION_WEBHOOK_URL,
                json=event,
                headers={"X-Event-Type": event.get("event_type", "")}
            )
            response.raise_for_status()

        logger.info(f"Delivered {event.get('event_type')} event for appointment {event.get('appointment_id')}")
        return {"status": "delivered", "status_code": response.status_code}

    except httpx.HTTPError as exc:
        logger.error(f"Event delivery failed for appointment {event.get('appointment_id')}: {exc}")
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task
def auto_complete_appointments():
    """Mark CONFIRMED appointments whose end time has passed as COMPLETED"""
    db = get_worker_database().session()
    try:
        completed = auto_complete_due_appointments(db, publisher=build_event_publisher())
        return {"status": "success", "completed": completed}
    finally:
        db.close()
