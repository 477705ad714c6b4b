"""Database handle and session dependency"""
import logging
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from booking_engine.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def _enable_sqlite_immediate_transactions(engine: Engine) -> None:
    """
    Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two bookings read
    the same free slot before either inserts. BEGIN IMMEDIATE serializes them
    the way a row lock does on Postgres.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Process-scoped store handle: built at startup, disposed at shutdown"""

    def __init__(self, url: str, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.url = url

        if url.startswith("sqlite"):
            self.engine = create_engine(
                url,
                # Lock waits end with "database is locked" inside the booking deadline
                connect_args={"check_same_thread": False, "timeout": settings.BOOKING_TIMEOUT_SECONDS},
                echo=settings.DB_ECHO,
            )
            _enable_sqlite_immediate_transactions(self.engine)
        else:
            self.engine = create_engine(
                url,
                poolclass=QueuePool,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_pre_ping=True,
                echo=settings.DB_ECHO,
            )

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        settings = settings or get_settings()
        return cls(settings.DATABASE_URL, settings=settings)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def session(self) -> Session:
        return self.SessionLocal()

    def create_tables(self) -> None:
        """Create all tables (tests and local development; production uses Alembic)"""
        from booking_engine.models import Base

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        logger.info("Disposing database engine")
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    """Database dependency for FastAPI"""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
