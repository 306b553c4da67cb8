"""
Database connection and session management.
"""
import logging
from contextlib import contextmanager
from typing import Generator
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from config.settings import settings
from .models import Base

logger = logging.getLogger(__name__)


def _ensure_database_exists():
    """Create the MySQL database if it does not already exist."""
    url = make_url(settings.database_url)
    if not url.get_backend_name().startswith("mysql"):
        return

    db_name = url.database
    # Build a URL without the database name so we can connect to the server
    server_url = url.set(database=None)
    tmp_engine = create_engine(server_url, pool_pre_ping=True)
    with tmp_engine.connect() as conn:
        conn.execute(text(f"CREATE DATABASE IF NOT EXISTS `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"))
        conn.commit()
    tmp_engine.dispose()


def _connect_args() -> dict:
    """Driver arguments bounding how long a single store call may block."""
    backend = make_url(settings.database_url).get_backend_name()
    timeout = settings.store_timeout_seconds
    if backend == "sqlite":
        return {"check_same_thread": False, "timeout": timeout}
    if backend.startswith("mysql"):
        return {"connect_timeout": timeout, "read_timeout": timeout, "write_timeout": timeout}
    return {}


# Ensure the target database exists before creating the main engine
_ensure_database_exists()

# Create engine
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_recycle=3600,
    echo=settings.debug,
    connect_args=_connect_args(),
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Initialize database by creating all tables."""
    logger.info("Creating database tables")
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.
    Use as dependency injection in FastAPI.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context():
    """
    Context manager for database session.
    Use for non-FastAPI contexts.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
