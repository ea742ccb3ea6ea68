"""Engine, session factory and session providers.

WHAT:
    Builds the SQLAlchemy engine from DATABASE_URL and hands out short-lived
    sessions, one per request or script run.

WHY:
    - Service functions all take an explicit Session; this module is the only
      place that knows how to open one.
    - SQLite (tests, local dev) and PostgreSQL (deployments) need different
      engine arguments.

REFERENCES:
    - adlens/routers/ (use `Depends(get_db)`)
    - adlens/seed_mock.py (uses `get_sync_session()`)
    - alembic/env.py (reuses DATABASE_URL)
"""

import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


def _get_database_url() -> str:
    """Resolve DATABASE_URL, falling back to a local .env file.

    Raises:
        RuntimeError: If no URL can be found
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        from adlens.utils.env import load_env_file
        load_env_file()
        url = os.getenv("DATABASE_URL")

    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set. Export it or add it to backend/.env."
        )

    # SQLAlchemy 2.x only accepts the postgresql:// scheme
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]

    return url


DATABASE_URL = _get_database_url()

if DATABASE_URL.startswith("sqlite"):
    # Sessions may be used from FastAPI's threadpool
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
        pool_pre_ping=True,
    )

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

from .models import Base  # noqa: E402


def init_db() -> None:
    """Create missing tables. Local/demo use only; deployments run Alembic."""
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_sync_session() -> Generator[Session, None, None]:
    """Session for code running outside FastAPI (scripts, demo seed).

    Example:
        with get_sync_session() as db:
            users = db.query(User).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
