"""
Database engine and session management.
Uses SQLModel; SQLite by default, with Write-Ahead Logging (WAL) mode
for concurrent readers while the refresh job writes.
"""

from sqlmodel import SQLModel, Session, create_engine
from typing import Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from config import get_settings

logger = logging.getLogger(__name__)

# Global engine instance
_engine: Optional[object] = None


def get_engine():
    """Get or create the database engine (WAL mode enabled on SQLite)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        connect_args = {}
        if settings.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False  # Allow use across threads
        _engine = create_engine(
            settings.database_url,
            echo=settings.db_echo,
            connect_args=connect_args
        )
        if _engine.dialect.name == "sqlite":
            _enable_wal_mode()
    return _engine


def _enable_wal_mode():
    """Enable SQLite WAL mode for improved concurrent read/write performance."""
    if _engine is None:
        return

    try:
        with _engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")
            # Overlapping manual and scheduled refreshes wait instead of failing
            conn.exec_driver_sql("PRAGMA busy_timeout=5000")
            logger.info("SQLite WAL mode enabled for concurrent access")
    except SQLAlchemyError as e:
        logger.warning(f"Could not enable WAL mode: {e}")


def init_db(engine=None):
    """Initialize the database and create all tables."""
    from models import Asset, Alert  # noqa: F401  (registers the tables)

    engine = engine or get_engine()
    SQLModel.metadata.create_all(engine)
    logger.info("Database initialized")


def get_session():
    """Get a new database session."""
    return Session(get_engine())


def reset_engine():
    """Dispose of the global engine so the next call rebuilds it from settings."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None
