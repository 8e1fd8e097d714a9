from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager, suppress

from fastapi import HTTPException
from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from fittrainer.config.settings import settings
from fittrainer.core.errors import FitTrainerError, StoreUnavailableError


def _is_postgresql(database_url: str) -> bool:
    lowered = database_url.lower()
    return "postgresql" in lowered or "postgres" in lowered


def _connect_args(database_url: str) -> dict:
    """Driver connection arguments, including per-statement timeouts."""
    if "sqlite" in database_url.lower():
        return {
            "check_same_thread": False,
            "timeout": settings.db_connect_timeout_seconds,
        }
    if _is_postgresql(database_url):
        return {
            "connect_timeout": settings.db_connect_timeout_seconds,
            "application_name": "fittrainer",
            "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
        }
    return {}


def check_database_connection() -> None:
    """Test database connection on startup."""
    try:
        with _get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✅ Database connection test successful")
    except Exception as e:
        logger.error(f"❌ Database connection test failed: {e}")
        raise


# Lazy initialization to avoid import-time database connections
_engine = None
_SessionLocal = None


def _get_engine():
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        logger.info(f"Initializing database engine: {settings.database_url}")

        if _is_postgresql(settings.database_url):
            logger.info("Using PostgreSQL database")
        else:
            logger.warning("Using SQLite database (local development only)")

        _engine = create_engine(
            settings.database_url,
            connect_args=_connect_args(settings.database_url),
            echo=False,  # Set to True for SQL query logging
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        logger.info("Database engine initialized")
    return _engine


def _get_session_local():
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
        logger.info("Database session factory initialized")
    return _SessionLocal


def init_db() -> None:
    """Create all tables that do not exist yet."""
    from fittrainer.db.models import Base

    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=_get_engine())
    logger.info("Database tables verified")


def _handle_session_commit(session: Session) -> None:
    """Handle session commit with logging."""
    if session.dirty or session.new or session.deleted:
        with suppress(Exception):
            logger.debug(f"Committing: dirty={len(session.dirty)}, new={len(session.new)}, deleted={len(session.deleted)}")
    # Flushed work is not tracked in dirty/new/deleted.
    session.commit()
    logger.debug("Database session committed successfully")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get database session context manager.

    One session is one transaction: commit on clean exit, rollback on any error.

    Handles errors by kind:
    - HTTPException and FitTrainerError: rolled back and re-raised without
      error logging (expected API responses / business rule rejections)
    - OperationalError and non-integrity DBAPIError: logged, rolled back and
      re-raised as StoreUnavailableError (retryable)
    - Other exceptions: logged as database errors, rolled back and re-raised
    """
    logger.debug("Creating new database session")
    session = _get_session_local()()
    try:
        yield session
        _handle_session_commit(session)
    except (HTTPException, FitTrainerError) as e:
        logger.debug(f"{type(e).__name__} in session, rolling back (business logic error, not DB error)")
        session.rollback()
        raise
    except IntegrityError as e:
        logger.error(f"Integrity error, rolling back: {e.orig}")
        session.rollback()
        raise
    except (OperationalError, DBAPIError) as e:
        logger.error(f"Store unavailable, rolling back: {type(e).__name__}: {e}")
        session.rollback()
        raise StoreUnavailableError(f"Database unavailable: {type(e).__name__}") from e
    except Exception as e:
        logger.error(
            f"Database session error, rolling back: {e}. "
            f"Error type: {type(e).__name__}, session state: "
            f"dirty={len(session.dirty)}, new={len(session.new)}, deleted={len(session.deleted)}"
        )
        logger.exception("Full exception traceback:")
        session.rollback()
        raise
    finally:
        logger.debug("Closing database session")
        session.close()
