"""
Celery worker entry point
Delivers appointment events and runs the periodic auto-complete sweep
"""
import logging

from celery.signals import worker_ready, worker_shutdown

from booking_engine.config.celery_config import celery_app
from booking_engine.config.settings import get_settings
from booking_engine.utils.my_logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    settings = get_settings()
    booking_tasks = sorted(name for name in celery_app.tasks if name.startswith("booking_engine."))
    logger.info(f"Booking worker ready with tasks: {booking_tasks}")
    if not settings.NOTIFICATION_WEBHOOK_URL:
        logger.warning("NOTIFICATION_WEBHOOK_URL is empty; appointment events will be skipped")
    logger.info(f"Auto-complete sweep every {settings.AUTO_COMPLETE_INTERVAL_SECONDS}s")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("Booking worker shutting down")


if __name__ == "__main__":
    # -B embeds beat so the auto-complete schedule runs without a separate process
    celery_app.start([
        "worker",
        "-B",
        "--queues=events,maintenance",
        "--loglevel=info",
        "--concurrency=4",
        "--max-tasks-per-child=1000",
    ])
