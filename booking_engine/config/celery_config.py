# booking_engine/config/celery_config.py
"""Celery configuration and task routing"""
from celery import Celery
from kombu import Queue

from booking_engine.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure Celery application"""

    celery_app = Celery(
        "booking_engine",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,

        # Task routing
        task_routes={
            "booking_engine.tasks.appointment_tasks.deliver_appointment_event": {"queue": "events"},
            "booking_engine.tasks.appointment_tasks.auto_complete_appointments": {"queue": "maintenance"},
        },

        # Queue definitions
        task_queues=(
            Queue("events", routing_key="events"),
            Queue("maintenance", routing_key="maintenance"),
        ),

        # Periodic jobs
        beat_schedule={
            "auto-complete-appointments": {
                "task": "booking_engine.tasks.appointment_tasks.auto_complete_appointments",
                "schedule": float(settings.AUTO_COMPLETE_INTERVAL_SECONDS),
            },
        },

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        broker_connection_retry_on_startup=True,
    )

    celery_app.autodiscover_tasks(["booking_engine.tasks"], related_name="appointment_tasks")

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
