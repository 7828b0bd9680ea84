"""Database session and base configuration.

WHAT:
    Provides the SQLAlchemy engine and session factory, plus the FastAPI
    dependency.

WHY:
    - Routers get a request-scoped session through Depends(get_db)
    - Tests swap the engine by overriding get_db
    - Allocation maths never touches the session; routers load rows and hand
      canonical records to app services

USAGE:
    from spendboard.database import SessionLocal, get_db

    @router.get("/items")
    def list_items(db: Session = Depends(get_db)):
        return db.query(Item).all()

REFERENCES:
    - spendboard/routers/ (consumers of these sessions)
    - alembic/ (schema migrations against the same DATABASE_URL)
"""

import os
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================

def _get_database_url() -> str:
    """Get DATABASE_URL from environment, loading .env if needed.

    Returns:
        SQLAlchemy connection string

    Raises:
        RuntimeError: If DATABASE_URL is not configured
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        # Attempt to load from local .env for developer convenience
        from spendboard.utils.env import load_env_file
        load_env_file()
        database_url = os.getenv("DATABASE_URL")

    if not database_url:
        raise RuntimeError(
            "DATABASE_URL is not set. "
            "Ensure backend/.env is loaded or env var is exported."
        )

    # Heroku-style URL
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    return database_url


DATABASE_URL = _get_database_url()


# =============================================================================
# ENGINE
# =============================================================================

# Connection pool configuration for production performance:
# - pool_size: Number of persistent connections to maintain
# - max_overflow: Additional connections allowed beyond pool_size during load spikes
# - pool_recycle: Recreate connections after 1 hour to prevent stale connections
# - pool_pre_ping: Check connection health before use
#
# NOTE: SQLite engines (tests/dev) do not support pool_size/max_overflow.
if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
        pool_pre_ping=True,
    )

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


# =============================================================================
# BASE MODEL (imported from models for single registry)
# =============================================================================

from .models import Base  # noqa: E402


def init_db() -> None:
    """Create missing tables on the configured engine.

    Alembic owns the schema in deployed environments; this is for local
    SQLite databases and first runs.
    """
    Base.metadata.create_all(bind=engine)


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

def get_db() -> Generator[Session, None, None]:
    """Yield a database session for FastAPI dependency injection.

    Yields:
        SQLAlchemy Session instance

    Example:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

