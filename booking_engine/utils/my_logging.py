# booking_engine/utils/my_logging.py
"""Logging configuration shared by the API process and the Celery worker"""
import logging
import sys
from contextvars import ContextVar

from booking_engine.config.settings import get_settings

# Set per request by the correlation id middleware; "-" outside requests
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the current request's correlation id"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def setup_logging(verbose=True):
    """Configure application logging"""
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO) if verbose else logging.WARNING

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[handler])

    # SQL echo and per-request access lines drown out booking decisions
    quiet = ["sqlalchemy.engine", "sqlalchemy.pool", "uvicorn.access"]
    if not verbose:
        quiet += ["alembic", "httpx", "celery"]
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING if verbose else logging.ERROR)
