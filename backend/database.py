"""Database setup and session management."""

import logging
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import settings

logger = logging.getLogger(__name__)

# Milliseconds a SQLite connection waits on a locked database before failing
SQLITE_BUSY_TIMEOUT_MS = 5000


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def _attach_sqlite_pragmas(engine) -> None:
    """Register a ``connect`` event listener that configures each SQLite connection."""

    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        cursor.close()


@lru_cache
def get_engine():
    """Get or create the database engine (cached)."""
    connect_args = {}
    database_url = settings.DATABASE_URL

    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
    )
    if database_url.startswith("sqlite"):
        _attach_sqlite_pragmas(engine)

    return engine


def get_session_local():
    """Get a sessionmaker bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db() -> None:
    """Create any missing tables.

    Importing ``models`` registers every table on ``Base.metadata``.
    """
    import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database schema ready")


def get_db():
    """Dependency that provides a database session for read-only routes.

    Transaction conventions:
    - Routes read through this session and never write.
    - Every write (linking an Item, applying a sync delta, the pass lease)
      goes through ``TransactionStore``, which opens its own session per
      unit of work and serializes writers.
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
