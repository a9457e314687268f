"""Database session and base configuration.

WHAT:
    Provides the SQLAlchemy engine and session factory, plus the FastAPI
    dependency and context manager used to obtain sessions.

WHY:
    - Routers get a request-scoped session through `get_db()`
    - Sync jobs and scripts use `get_sync_session()` outside FastAPI
    - The aggregation core never opens sessions itself; it receives
      already-loaded rows from `OverviewService`

USAGE:
    from growthpilot.database import SessionLocal, get_db

    @router.get("/items")
    def get_items(db: Session = Depends(get_db)):
        return db.query(Model).all()

REFERENCES:
    - growthpilot/services/overview_service.py (consumer of sessions)
    - growthpilot/tests/conftest.py (overrides get_db with SQLite)
"""

import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================

def _get_database_url() -> str:
    """Get DATABASE_URL from environment, loading .env if needed.

    Returns:
        Database connection string

    Raises:
        RuntimeError: If DATABASE_URL is not configured
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        # Attempt to load from local .env for developer convenience
        from growthpilot.utils.env import load_env_file
        load_env_file()
        database_url = os.getenv("DATABASE_URL")

    if not database_url:
        raise RuntimeError(
            "DATABASE_URL is not set. "
            "Ensure backend/.env is loaded or env var is exported."
        )

    if database_url.startswith("postgres://"):
        # Heroku/Supabase-style URL
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    return database_url


DATABASE_URL = _get_database_url()


# =============================================================================
# ENGINE
# =============================================================================

# NOTE: SQLite engines (used in tests/dev) do not support pool_size/max_overflow.
if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=10,           # Base pool size
        max_overflow=20,        # Allow up to 30 total connections under load
        pool_recycle=3600,      # Recycle connections every hour
        pool_pre_ping=True,     # Validate connections before use
    )

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


# Base is defined in growthpilot.models to ensure a single registry across the app
from .models import Base  # noqa: E402,F401


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

def get_db() -> Generator[Session, None, None]:
    """Yield a database session for FastAPI dependency injection.

    Yields:
        SQLAlchemy Session instance, closed when the request finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_sync_session() -> Generator[Session, None, None]:
    """Context manager for sessions outside FastAPI (sync jobs, scripts).

    Example:
        with get_sync_session() as db:
            result = sync_ad_metrics(db, user_id, insights_client, since, until)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
