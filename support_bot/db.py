"""
Database connection management.

Environment variables:
    - DATABASE_URL: SQLAlchemy connection URL (default: local SQLite file)

Tables are created by init_db(), which the application calls on startup.
Startup retries transient connection errors with jittered backoff so the API
can come up before the database container is ready.
"""

import logging
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session

from . import config
from .models import Base
from .retry import retry_call

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    config.DATABASE_URL,
    connect_args=_connect_args(config.DATABASE_URL),
    pool_pre_ping=True,
    echo=False,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a SQLAlchemy Session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables, retrying while the database is unreachable."""
    retry_call(
        lambda: Base.metadata.create_all(bind=engine),
        retry_on=(OperationalError,),
        description="database init",
    )
    logger.info("Database tables ready")
