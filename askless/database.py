"""
Database configuration and session management.

Provides SQLAlchemy engine, session factory, and dependency injection
for FastAPI endpoints.
"""

import logging
from contextlib import contextmanager

from fastapi import Depends
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from .config import settings
from .db_models import Base

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

logger.info(f"Database URL: {DATABASE_URL.split('@')[-1] if '@' in DATABASE_URL else DATABASE_URL}")

# Create engine with connection pooling
if DATABASE_URL.startswith("postgresql"):
    engine = create_engine(
        DATABASE_URL,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,
        echo=False,
    )
else:
    # SQLite (development/testing)
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign keys for SQLite connections (cascade deletes rely on it)."""
    if not DATABASE_URL.startswith("sqlite"):
        return
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """
    Initialize database - create all tables.
    Should be called on application startup.
    """
    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("✅ Database tables created/verified")
    except Exception as e:
        logger.error(f"❌ Failed to initialize database: {e}")
        raise


def get_session_factory() -> sessionmaker:
    """
    Dependency returning the session factory.

    Background work (the fast-path bot fan-out) opens its own session from
    this factory, so overriding it in tests redirects every session.
    """
    return SessionLocal


def get_db(factory: sessionmaker = Depends(get_session_factory)) -> Session:
    """
    Dependency for FastAPI endpoints.

    Usage:
        @router.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    db = factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context(factory: sessionmaker = None):
    """
    Context manager for database sessions outside FastAPI.

    Usage:
        with get_db_context() as db:
            profile = db.get(DBProfile, profile_id)
    """
    db = (factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def has_table(db: Session, table_name: str) -> bool:
    """Check whether a table exists on the session's bind."""
    return inspect(db.get_bind()).has_table(table_name)


def check_database_health() -> dict:
    """
    Check database connectivity.
    Used by health check endpoint.
    """
    try:
        with get_db_context() as db:
            db.execute(text("SELECT 1"))

            return {
                "database_connected": True,
                "database_type": "postgresql" if DATABASE_URL.startswith("postgresql") else "sqlite",
            }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "database_connected": False,
            "database_error": str(e),
        }
